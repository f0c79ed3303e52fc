"""vodbot.manifest – resolve a VOD's HLS manifests and plan its segment downloads.

The usher endpoint answers with a *variant* playlist listing one rendition
per quality, source first. The first rendition's *media* playlist lists the
segments that make up the file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import urljoin, urlparse

import m3u8
import requests

from .constants import MANIFEST_TIMEOUT, USHER_VOD_URL
from .errors import (
    EmptyVariantListError,
    FilesystemError,
    ManifestFetchError,
    NotAManifestError,
    ResponseShapeError,
    WrongManifestKindError,
)
from .models import PlaybackToken

logger = logging.getLogger(__name__)

__all__ = [
    "ResolvedManifest",
    "SegmentTask",
    "ManifestResolver",
    "build_segment_tasks",
    "write_local_manifest",
]


@dataclass(frozen=True)
class ResolvedManifest:
    url: str
    playlist: m3u8.M3U8


@dataclass(frozen=True)
class SegmentTask:
    source_url: str
    local_path: Path


class ManifestResolver:
    """Fetch and validate the variant → media manifest chain of one item."""

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        timeout: float = MANIFEST_TIMEOUT,
        usher_url: str = USHER_VOD_URL,
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.usher_url = usher_url

    def _fetch(self, url: str, params: dict[str, str] | None = None) -> str:
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            raise ManifestFetchError(f'Cannot fetch manifest {url}, reason: "{exc}".') from exc
        if not 200 <= resp.status_code < 300:
            raise ManifestFetchError(f"Manifest request {url} answered HTTP {resp.status_code}")
        return resp.text

    @staticmethod
    def _parse(text: str, url: str) -> m3u8.M3U8:
        if not text.lstrip().startswith("#EXTM3U"):
            raise NotAManifestError(f"{url} did not return an HLS playlist")
        try:
            return m3u8.loads(text, uri=url)
        except Exception as exc:  # noqa: BLE001  m3u8 raises bare ValueError/ParseError
            raise NotAManifestError(f"{url} returned an unparseable playlist: {exc}") from exc

    def resolve_source_variant(self, item_id: str, token: PlaybackToken) -> ResolvedManifest:
        url = self.usher_url.format(video_id=item_id)
        params = {
            "nauth": token.value,
            "nauthsig": token.signature,
            "allow_source": "true",
            "player": "twitchweb",
        }
        top = self._parse(self._fetch(url, params), url)
        if not top.is_variant:
            if top.segments:
                raise WrongManifestKindError("variant", "media", url)
            raise EmptyVariantListError(f"{url} lists no renditions")
        if not top.playlists:
            raise EmptyVariantListError(f"{url} lists no renditions")

        # source quality is listed first
        variant = top.playlists[0]
        media_url = urljoin(url, variant.uri)
        logger.debug("%s: selected rendition %s", item_id, media_url)

        media = self._parse(self._fetch(media_url), media_url)
        if media.is_variant:
            raise WrongManifestKindError("media", "variant", media_url)
        return ResolvedManifest(url=media_url, playlist=media)


def build_segment_tasks(resolved: ResolvedManifest, item_id: str, dest_dir: Path) -> list[SegmentTask]:
    """One task per segment, named ``<item_id>_<index:05d><ext>`` inside *dest_dir*."""
    tasks = []
    for index, segment in enumerate(resolved.playlist.segments):
        ext = PurePosixPath(urlparse(segment.uri).path).suffix or ".ts"
        tasks.append(
            SegmentTask(
                source_url=urljoin(resolved.url, segment.uri),
                local_path=dest_dir / f"{item_id}_{index:05d}{ext}",
            )
        )
    return tasks


def write_local_manifest(resolved: ResolvedManifest, tasks: list[SegmentTask], path: Path) -> Path:
    """Write a copy of the media playlist whose segments point at the local files."""
    try:
        local = m3u8.loads(resolved.playlist.dumps())
    except Exception as exc:  # noqa: BLE001  m3u8 raises bare ValueError/ParseError
        raise NotAManifestError(f"{resolved.url} could not be re-serialised: {exc}") from exc
    if len(local.segments) != len(tasks):
        raise ResponseShapeError(f"{len(tasks)} tasks for {len(local.segments)} segments of {resolved.url}")
    for segment, task in zip(local.segments, tasks):
        segment.uri = task.local_path.name
    try:
        path.write_text(local.dumps(), encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(f'Failed to write `{path}`, reason "{exc}".') from exc
    return path
