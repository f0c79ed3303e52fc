"""``vodbot info`` – look up channels, videos and clips by id, login, slug or URL."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from ..config import load_config
from ..gql import DeviceId, GQLClient
from ..models import Channel, Clip, Video
from ..twitch import get_channels, get_clips, get_videos

logger = logging.getLogger(__name__)


class InfoKind(str, Enum):
    CHANNEL = "channel"
    VIDEO = "video"
    CLIP = "clip"


_SLUG = r"[A-Za-z0-9]+(?:-[A-Za-z0-9_-]{16})?"
_LOGIN = r"[a-zA-Z0-9]\w{3,24}"

# first match wins
PATTERNS: list[tuple[InfoKind, re.Pattern[str]]] = [
    (InfoKind.VIDEO, re.compile(r"^(?P<id>\d+)$")),
    (InfoKind.VIDEO, re.compile(r"^(https?://)?(www\.)?twitch\.tv/videos/(?P<id>\d+)(\?.*)?$")),
    (InfoKind.CHANNEL, re.compile(rf"^(?P<id>{_LOGIN})$")),
    (InfoKind.CHANNEL, re.compile(rf"^(https?://)?(www\.)?twitch\.tv/(?P<id>{_LOGIN})(\?.*)?$")),
    (InfoKind.CLIP, re.compile(rf"^(?P<id>{_SLUG})$")),
    (InfoKind.CLIP, re.compile(rf"^(https?://)?(www\.)?twitch\.tv/\w+/clip/(?P<id>{_SLUG})(\?.*)?$")),
    (InfoKind.CLIP, re.compile(rf"^(https?://)?clips\.twitch\.tv/(?P<id>{_SLUG})(\?.*)?$")),
]


def classify(value: str) -> Optional[tuple[InfoKind, str]]:
    value = value.strip()
    for kind, pattern in PATTERNS:
        match = pattern.match(value)
        if match:
            return kind, match.group("id")
    return None


@dataclass
class InfoResult:
    query: str
    kind: InfoKind
    key: str
    record: Channel | Video | Clip | None = None

    def to_json(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "type": self.kind.value,
            "id": self.key,
            "data": self.record.to_meta() if self.record else None,
        }


def lookup(client: GQLClient, strings: Sequence[str]) -> list[InfoResult]:
    """Classify *strings* and resolve them with one batched wave per kind.

    A numeric string that is not a video id gets a second chance as a
    channel login.
    """
    results: list[InfoResult] = []
    for s in strings:
        found = classify(s)
        if found is None:
            logger.warning("Could not recognise %r as a channel, video or clip", s)
            continue
        results.append(InfoResult(s, *found))

    def keys(kind: InfoKind) -> list[str]:
        return [r.key for r in results if r.kind is kind]

    videos = get_videos(client, keys(InfoKind.VIDEO)) if keys(InfoKind.VIDEO) else {}
    for r in results:
        if r.kind is InfoKind.VIDEO:
            r.record = videos.get(r.key)
            if r.record is None:
                logger.debug("%s is not a video, trying it as a channel", r.key)
                r.kind = InfoKind.CHANNEL

    channels = get_channels(client, keys(InfoKind.CHANNEL)) if keys(InfoKind.CHANNEL) else {}
    clips = get_clips(client, keys(InfoKind.CLIP)) if keys(InfoKind.CLIP) else {}
    for r in results:
        if r.kind is InfoKind.CHANNEL:
            r.record = channels.get(r.key)
        elif r.kind is InfoKind.CLIP:
            r.record = clips.get(r.key)
    return results


def _render(result: InfoResult) -> Table:
    table = Table.grid(padding=(0, 1))
    table.add_column(style="bold blue")
    table.add_column()
    for name, value in (result.record.to_meta() if result.record else {}).items():
        if isinstance(value, list):
            value = f"{len(value)} item(s)"
        table.add_row(f"{name}:", Text(str(value)))
    return table


def run(
    config_path: Optional[Path],
    as_json: bool,
    strings: Sequence[str],
    console: Console,
    *,
    device_id: Optional[DeviceId] = None,
) -> list[InfoResult]:
    config = load_config(config_path)
    client = GQLClient(
        config.pull.gql_client_id,
        device_id or DeviceId.generate(),
        timeout=config.pull.connection_timeout,
    )
    results = lookup(client, strings)

    if as_json:
        console.print_json(json.dumps([r.to_json() for r in results]))
        return results

    for r in results:
        key = escape(r.key)
        if r.record is None:
            console.print(f"[yellow]{r.kind.value.title()} `{key}` not found.[/yellow]")
            continue
        console.print(f"[bold]{r.kind.value.title()}[/bold] `{key}`")
        console.print(_render(r))
    return results
