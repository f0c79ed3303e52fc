"""Domain-specific exceptions and the exit codes the CLI maps them to."""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    CLEAN_EXIT = 0
    GENERIC_ERROR = 1
    ITEMS_FAILED = 2
    CANNOT_CREATE_DIR = 3
    CANNOT_CONNECT = 4
    REQUEST_ERROR = 5
    CANNOT_PARSE_RESPONSE = 6
    APPLICATION_ERROR = 7
    CONFIG_ERROR = 8
    CANNOT_WRITE_FILE = 9
    DOWNLOAD_FAILED = 10
    REMUX_FAILED = 11
    INTERRUPTED = 130


class VodBotError(Exception):
    """Base class for all vodbot errors."""

    exit_code: ExitCode = ExitCode.GENERIC_ERROR


class TransportError(VodBotError):
    """The query endpoint could not be reached or answered with a non-2xx status."""

    exit_code = ExitCode.CANNOT_CONNECT

    def __init__(self, message: str, *, status: int | None = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body
        if status is not None:
            self.exit_code = ExitCode.REQUEST_ERROR


class ApplicationError(VodBotError):
    """The endpoint was reachable but returned an error list instead of data."""

    exit_code = ExitCode.APPLICATION_ERROR

    def __init__(self, errors: list[dict]):
        msgs = "; ".join(str(e.get("message", e)) for e in errors) or "unknown error"
        super().__init__(f"Error response from Twitch GQL: {msgs}")
        self.errors = errors


class ResponseShapeError(VodBotError):
    """A response parsed, but not into the shape we expected."""

    exit_code = ExitCode.CANNOT_PARSE_RESPONSE


class ManifestError(ResponseShapeError):
    """Base class for manifest resolution failures."""


class ManifestFetchError(ManifestError):
    """Network failure while fetching a manifest."""

    exit_code = ExitCode.CANNOT_CONNECT


class NotAManifestError(ManifestError):
    """The payload is not an HLS playlist at all."""


class EmptyVariantListError(ManifestError):
    """A variant playlist listed no renditions."""


class WrongManifestKindError(ManifestError):
    """Got a media playlist where a variant playlist was expected, or vice versa."""

    def __init__(self, expected: str, got: str, url: str = ""):
        super().__init__(f"Expected a {expected} manifest, got a {got} manifest ({url})")
        self.expected = expected
        self.got = got


class FilesystemError(VodBotError):
    """Creating, writing or moving a local file failed."""

    exit_code = ExitCode.CANNOT_WRITE_FILE


class SegmentDownloadError(VodBotError):
    """One or more segments of an item failed to download."""

    exit_code = ExitCode.DOWNLOAD_FAILED

    def __init__(self, message: str, *, failed: int = 0, first: BaseException | None = None):
        super().__init__(message)
        self.failed = failed
        self.first = first


class RemuxError(VodBotError):
    """The external remux process failed."""

    exit_code = ExitCode.REMUX_FAILED

    def __init__(self, message: str, *, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode


class RemuxInterruptedError(RemuxError):
    """The external remux process was terminated by a signal."""


class CleanupError(VodBotError):
    """Removing a temporary directory failed. Reported, never fatal."""

    exit_code = ExitCode.CANNOT_WRITE_FILE


class ConfigError(VodBotError):
    """The configuration file is missing or invalid."""

    exit_code = ExitCode.CONFIG_ERROR
