"""``vodbot pull`` – list, filter and download everything the config asks for."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import requests
from rich.console import Console

from ..config import Config, load_config
from ..errors import VodBotError
from ..gql import DeviceId, GQLClient
from ..models import ChatLog, Clip, ContentKind, Video
from ..pipeline import ItemOutcome, PullContext, pull_clip, pull_video, save_chat
from ..sidecar import meta_ids
from ..status_display import create_status_display
from ..twitch import get_channels_clips, get_channels_videos, get_videos_chapters, get_videos_comments

logger = logging.getLogger(__name__)

Record = Union[Video, Clip]


class PullMode(str, Enum):
    ALL = "all"
    VODS = "vods"
    CLIPS = "clips"


VIDEO_KINDS = (ContentKind.VODS, ContentKind.HIGHLIGHTS, ContentKind.PREMIERES, ContentKind.UPLOADS)

MODE_KINDS: dict[PullMode, tuple[ContentKind, ...]] = {
    PullMode.ALL: (*VIDEO_KINDS, ContentKind.CLIPS, ContentKind.CHAT),
    PullMode.VODS: (*VIDEO_KINDS, ContentKind.CHAT),
    PullMode.CLIPS: (ContentKind.CLIPS,),
}


@dataclass
class PullSummary:
    pulled: list[ItemOutcome] = field(default_factory=list)
    failed: list[ItemOutcome] = field(default_factory=list)
    chatlogs: int = 0

    def add(self, outcome: ItemOutcome) -> None:
        (self.pulled if outcome.ok else self.failed).append(outcome)


def list_content(
    client: GQLClient, config: Config, kinds: tuple[ContentKind, ...]
) -> dict[ContentKind, dict[str, list[Record]]]:
    """One batched pagination per kind, over every channel that wants it.

    VODs are also listed when only chat is wanted, since chat is keyed by VOD.
    """
    listed: dict[ContentKind, dict[str, list[Record]]] = {}
    for kind in kinds:
        if kind is ContentKind.CHAT:
            continue
        users = [
            c.username
            for c in config.channels
            if config.wants(c, kind)
            or (kind is ContentKind.VODS and ContentKind.CHAT in kinds and config.wants(c, ContentKind.CHAT))
        ]
        if not users:
            continue
        logger.info("Listing %s for %d channel(s)", kind.value, len(users))
        if kind is ContentKind.CLIPS:
            listed[kind] = get_channels_clips(client, users)
        else:
            listed[kind] = get_channels_videos(client, users, kind)
    return listed


def filter_pending(
    config: Config,
    listed: dict[ContentKind, dict[str, list[Record]]],
    kinds: tuple[ContentKind, ...],
) -> dict[ContentKind, dict[str, list[Record]]]:
    """Drop everything that already has a sidecar. Each skip-set is read once."""
    pending: dict[ContentKind, dict[str, list[Record]]] = {}
    by_name = {c.username: c for c in config.channels}
    for kind, per_user in listed.items():
        base = config.directories.for_kind(kind)
        for user, records in per_user.items():
            if not config.wants(by_name[user], kind):
                records = []
            have = meta_ids(base / user)
            pending.setdefault(kind, {})[user] = [r for r in records if r.key not in have]

    if ContentKind.CHAT in kinds and ContentKind.VODS in listed:
        for user, vods in listed[ContentKind.VODS].items():
            if not config.wants(by_name[user], ContentKind.CHAT):
                continue
            have = meta_ids(config.directories.chat / user)
            pending.setdefault(ContentKind.CHAT, {})[user] = [v for v in vods if v.key not in have]
    return pending


def attach_chapters(client: GQLClient, pending: dict[ContentKind, dict[str, list[Record]]]) -> None:
    """Fetch chapters once for every pending video, chat sidecars included."""
    kinds = (*VIDEO_KINDS, ContentKind.CHAT)
    ids = list(dict.fromkeys(
        v.id
        for kind in kinds
        for videos in pending.get(kind, {}).values()
        for v in videos
    ))
    if not ids:
        return
    chapters = get_videos_chapters(client, ids)
    for kind in kinds:
        for user, videos in pending.get(kind, {}).items():
            pending[kind][user] = [replace(v, chapters=tuple(chapters.get(v.id, ()))) for v in videos]


def print_counts(console: Console, users: list[str], pending: dict[ContentKind, dict[str, list[Record]]]) -> int:
    order = (*VIDEO_KINDS, ContentKind.CLIPS, ContentKind.CHAT)
    totals = {kind: 0 for kind in order}
    # config order, not listing order
    for user in users:
        counts = {kind: len(pending.get(kind, {}).get(user, [])) for kind in order}
        for kind, n in counts.items():
            totals[kind] += n
        console.print(f"{user}: " + ", ".join(f"{counts[k]} {k.noun}s" for k in order))
    for kind in order:
        console.print(f"Total {kind.noun}s: {totals[kind]}")
    total = sum(totals.values())
    console.print(f"Total: {total}")
    console.print()
    return total


def run(
    config_path: Optional[Path],
    mode: PullMode,
    console: Console,
    *,
    device_id: Optional[DeviceId] = None,
    session: Optional[requests.Session] = None,
) -> PullSummary:
    config = load_config(config_path)
    summary = PullSummary()
    users = [c.username for c in config.channels]
    if not users:
        logger.warning("No channels configured, nothing to pull.")
        return summary

    console.print(f"Checking users: {', '.join(users)} ...")
    session = session or requests.Session()
    client = GQLClient(
        config.pull.gql_client_id,
        device_id or DeviceId.generate(),
        session=session,
        timeout=config.pull.connection_timeout,
    )
    kinds = MODE_KINDS[mode]

    listed = list_content(client, config, kinds)
    pending = filter_pending(config, listed, kinds)
    attach_chapters(client, pending)
    if not print_counts(console, users, pending):
        return summary

    ctx = PullContext(
        client=client,
        session=session,
        temp_dir=config.directories.temp,
        workers=config.pull.max_download_workers,
        timeout=config.pull.connection_timeout,
        ffmpeg=config.pull.ffmpeg_path,
        ffmpeg_loglevel=config.pull.ffmpeg_loglevel,
        display=create_status_display(console),
    )

    for user in users:
        user_total = sum(len(pending.get(k, {}).get(user, [])) for k in kinds if k is not ContentKind.CHAT)
        if not user_total:
            continue
        console.print(f"Pulling {user_total} item(s) for `{user}` ...")
        for kind in kinds:
            if kind is ContentKind.CHAT:
                continue
            output_dir = config.directories.for_kind(kind) / user
            for record in pending.get(kind, {}).get(user, []):
                if isinstance(record, Clip):
                    summary.add(pull_clip(ctx, record, output_dir))
                else:
                    summary.add(pull_video(ctx, record, output_dir, kind.noun))

    chat_pending = pending.get(ContentKind.CHAT, {})
    chat_ids = [v.id for vods in chat_pending.values() for v in vods]
    if chat_ids:
        console.print(f"Pulling {len(chat_ids)} chatlog(s) ...")
        logs = get_videos_comments(client, chat_ids)
        for user, vods in chat_pending.items():
            for video in vods:
                outcome = ItemOutcome(video.id)
                try:
                    save_chat(config.directories.chat / user, video, logs.get(video.id, ChatLog(video.id)))
                except VodBotError as exc:
                    logger.error("Chatlog %s failed: %s", video.id, exc)
                    outcome.error = exc
                    summary.failed.append(outcome)
                else:
                    summary.chatlogs += 1

    console.print(
        f"Done: {len(summary.pulled)} item(s) and {summary.chatlogs} chatlog(s) pulled, "
        f"{len(summary.failed)} failed."
    )
    return summary
