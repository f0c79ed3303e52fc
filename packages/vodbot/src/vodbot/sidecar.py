"""vodbot.sidecar – ``<key>.meta.json`` files next to downloaded media.

A sidecar is written only after its item finished successfully, so its
presence is the one and only "already pulled" signal.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from .constants import META_SUFFIX
from .errors import ExitCode, FilesystemError

logger = logging.getLogger(__name__)

__all__ = ["ensure_dir", "meta_ids", "meta_path", "write_json_atomic", "write_meta", "read_meta"]


def ensure_dir(path: Path) -> Path:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        err = FilesystemError(f'Cannot create directory `{path}`, reason "{exc}".')
        err.exit_code = ExitCode.CANNOT_CREATE_DIR
        raise err from exc
    return path


def meta_ids(directory: Path) -> set[str]:
    """Keys of every item in *directory* that has a sidecar. Missing dir → empty."""
    if not directory.is_dir():
        return set()
    return {
        p.name[: -len(META_SUFFIX)]
        for p in directory.iterdir()
        if p.is_file() and p.name.endswith(META_SUFFIX)
    }


def meta_path(directory: Path, key: str) -> Path:
    return directory / f"{key}{META_SUFFIX}"


def write_json_atomic(path: Path, data: Any) -> Path:
    """Write *data* as JSON to a sibling temp file, then rename over *path*."""
    tmp = path.with_name(path.name + ".part")
    try:
        with tmp.open("w", encoding="utf-8") as fh:
            json.dump(data, fh, ensure_ascii=False, indent=2)
        os.replace(tmp, path)
    except OSError as exc:
        tmp.unlink(missing_ok=True)
        raise FilesystemError(f'Failed to write `{path}`, reason "{exc}".') from exc
    return path


def write_meta(directory: Path, key: str, meta: dict[str, Any]) -> Path:
    path = write_json_atomic(meta_path(directory, key), meta)
    logger.debug("wrote %s", path)
    return path


def read_meta(path: Path) -> dict[str, Any]:
    try:
        with path.open(encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, ValueError) as exc:
        raise FilesystemError(f'Failed to read `{path}`, reason "{exc}".') from exc
