"""vodbot.pipeline – take one item from "listed" to "on disk with a sidecar".

VODs (and highlights, uploads, premieres) move through

    PENDING → TOKEN_FETCHED → MANIFEST_RESOLVED → SEGMENTS_DOWNLOADING
            → REMUXING → DONE | FAILED

Clips skip the manifest and remux steps: their source is a single file.
The sidecar is written only on DONE and the item's temp dir is always removed.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Callable, Optional, Union
from urllib.parse import urlparse

import requests

from .constants import CHAT_SUFFIX, LOCAL_MANIFEST, MEDIA_EXT
from .downloader import download_all
from .errors import FilesystemError, VodBotError
from .gql import GQLClient
from .manifest import ManifestResolver, SegmentTask, build_segment_tasks, write_local_manifest
from .models import ChatLog, Clip, Video
from .remux import cleanup_temp_dir, remux
from .sidecar import ensure_dir, write_json_atomic, write_meta
from .status_display import FallbackStatusDisplay, StatusDisplay
from .twitch import get_clip_source, get_video_playback_token

logger = logging.getLogger(__name__)

__all__ = ["ItemState", "ItemOutcome", "PullContext", "pull_video", "pull_clip", "save_chat"]


class ItemState(str, Enum):
    PENDING = "pending"
    TOKEN_FETCHED = "token_fetched"
    MANIFEST_RESOLVED = "manifest_resolved"
    SEGMENTS_DOWNLOADING = "segments_downloading"
    REMUXING = "remuxing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ItemOutcome:
    key: str
    state: ItemState = ItemState.PENDING
    bytes_written: int = 0
    error: Optional[VodBotError] = None

    @property
    def ok(self) -> bool:
        return self.state is ItemState.DONE


@dataclass
class PullContext:
    """Everything the per-item pipeline needs, built once per run."""

    client: GQLClient
    session: requests.Session
    temp_dir: Path
    workers: int = 1
    timeout: float = 5.0
    ffmpeg: str = "ffmpeg"
    ffmpeg_loglevel: str = "warning"
    resolver: Optional[ManifestResolver] = None
    display: Union[StatusDisplay, FallbackStatusDisplay, None] = None

    def __post_init__(self) -> None:
        if self.resolver is None:
            self.resolver = ManifestResolver(self.session)
        if self.display is None:
            self.display = FallbackStatusDisplay()


def _advance(outcome: ItemOutcome, state: ItemState) -> None:
    logger.debug("%s: %s -> %s", outcome.key, outcome.state.value, state.value)
    outcome.state = state


def _run_item(
    ctx: PullContext,
    noun: str,
    key: str,
    output_dir: Path,
    meta: dict,
    body: Callable[[ItemOutcome, Path, Path], int],
) -> ItemOutcome:
    """Shared shell: temp dir, failure logging, sidecar on success, cleanup always."""
    outcome = ItemOutcome(key)
    output = output_dir / f"{key}{MEDIA_EXT}"
    item_temp: Optional[Path] = None
    try:
        ensure_dir(output_dir)
        ensure_dir(ctx.temp_dir)
        try:
            item_temp = Path(tempfile.mkdtemp(prefix=f"{key}_", dir=ctx.temp_dir))
        except OSError as exc:
            raise FilesystemError(f'Cannot create temp dir in `{ctx.temp_dir}`, reason "{exc}".') from exc
        outcome.bytes_written = body(outcome, item_temp, output)
        write_meta(output_dir, key, meta)
        _advance(outcome, ItemState.DONE)
        logger.info("%s %s done (%d bytes)", noun, key, outcome.bytes_written)
    except VodBotError as exc:
        _advance(outcome, ItemState.FAILED)
        outcome.error = exc
        logger.error("%s %s failed: %s", noun, key, exc)
        output.unlink(missing_ok=True)
    finally:
        if item_temp is not None:
            cleanup_temp_dir(item_temp)
    return outcome


def pull_video(ctx: PullContext, video: Video, output_dir: Path, noun: str = "Vod") -> ItemOutcome:
    """Download one HLS video into ``<output_dir>/<id>.mp4`` plus its sidecar."""

    def body(outcome: ItemOutcome, item_temp: Path, output: Path) -> int:
        token = get_video_playback_token(ctx.client, video.id)
        _advance(outcome, ItemState.TOKEN_FETCHED)

        resolved = ctx.resolver.resolve_source_variant(video.id, token)
        tasks = build_segment_tasks(resolved, video.id, item_temp)
        manifest = write_local_manifest(resolved, tasks, item_temp / LOCAL_MANIFEST)
        _advance(outcome, ItemState.MANIFEST_RESOLVED)

        _advance(outcome, ItemState.SEGMENTS_DOWNLOADING)
        with ctx.display.track(f"{noun} {video.id}", len(tasks)) as bar:
            written = download_all(tasks, ctx.workers, ctx.timeout, ctx.session, progress=bar)

        _advance(outcome, ItemState.REMUXING)
        remux(manifest, output, ctx.ffmpeg_loglevel, ctx.ffmpeg)
        return written

    return _run_item(ctx, noun, video.id, output_dir, video.to_meta(), body)


def pull_clip(ctx: PullContext, clip: Clip, output_dir: Path) -> ItemOutcome:
    """Download one clip file straight into ``<output_dir>/<slug>.mp4``."""

    def body(outcome: ItemOutcome, item_temp: Path, output: Path) -> int:
        source = get_clip_source(ctx.client, clip.slug)
        _advance(outcome, ItemState.TOKEN_FETCHED)

        ext = PurePosixPath(urlparse(source.source_url).path).suffix or MEDIA_EXT
        task = SegmentTask(source_url=source.signed_url, local_path=item_temp / f"{clip.slug}{ext}")
        _advance(outcome, ItemState.SEGMENTS_DOWNLOADING)
        with ctx.display.track(f"Clip {clip.slug}", 1) as bar:
            written = download_all([task], 1, ctx.timeout, ctx.session, progress=bar)

        try:
            shutil.move(str(task.local_path), str(output))
        except OSError as exc:
            raise FilesystemError(f'Cannot move clip into `{output}`, reason "{exc}".') from exc
        return written

    return _run_item(ctx, "Clip", clip.slug, output_dir, clip.to_meta(), body)


def save_chat(chat_dir: Path, video: Video, chat: ChatLog) -> Path:
    """Write ``<id>.chat.json`` then the video's sidecar (with ``hasChat`` set)."""
    ensure_dir(chat_dir)
    path = write_json_atomic(chat_dir / f"{video.id}{CHAT_SUFFIX}", chat.to_meta())
    write_meta(chat_dir, video.id, replace(video, has_chat=True).to_meta())
    logger.info("Chatlog %s saved (%d messages)", video.id, len(chat.messages))
    return path
