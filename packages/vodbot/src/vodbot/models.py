"""Immutable domain records produced from Twitch API nodes.

Records serialise to the camelCase JSON stored in ``<key>.meta.json``
sidecars via :meth:`to_meta` and load back with :meth:`from_meta`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar
from urllib.parse import urlencode


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p.title() for p in rest)


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


class ContentKind(str, Enum):
    VODS = "vods"
    HIGHLIGHTS = "highlights"
    UPLOADS = "uploads"
    PREMIERES = "premieres"
    CLIPS = "clips"
    CHAT = "chat"

    @property
    def noun(self) -> str:
        return {
            ContentKind.VODS: "Vod",
            ContentKind.HIGHLIGHTS: "Highlight",
            ContentKind.UPLOADS: "Upload",
            ContentKind.PREMIERES: "Premiere",
            ContentKind.CLIPS: "Clip",
            ContentKind.CHAT: "Chatlog",
        }[self]


class _Record:
    """Sidecar (de)serialisation shared by every record type."""

    nested: ClassVar[dict[str, type]] = {}

    def to_meta(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if isinstance(value, tuple):
                value = [v.to_meta() if isinstance(v, _Record) else v for v in value]
            out[_camel(f.name)] = value
        return out

    @classmethod
    def from_meta(cls, data: dict[str, Any]):
        kwargs: dict[str, Any] = {}
        names = {f.name for f in fields(cls)}  # type: ignore[arg-type]
        for key, value in data.items():
            name = _snake(key)
            if name not in names:
                continue
            if name in cls.nested:
                value = tuple(cls.nested[name].from_meta(v) for v in value)
            kwargs[name] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class Channel(_Record):
    id: str
    login: str
    name: str = ""
    created_at: str = ""
    description: str = ""


@dataclass(frozen=True)
class Chapter(_Record):
    description: str
    kind: str = ""
    position_ms: int = 0
    duration_ms: int = 0


@dataclass(frozen=True)
class Video(_Record):
    id: str
    broadcast_type: str = ""
    streamer_id: str = ""
    streamer_login: str = ""
    streamer_name: str = ""
    game_id: str = ""
    game_name: str = ""
    title: str = ""
    created_at: str = ""
    duration: int = 0
    chapters: tuple[Chapter, ...] = field(default_factory=tuple)
    has_chat: bool = False

    nested: ClassVar[dict[str, type]] = {"chapters": Chapter}

    @property
    def key(self) -> str:
        return self.id


@dataclass(frozen=True)
class Clip(_Record):
    id: str
    slug: str
    streamer_id: str = ""
    streamer_login: str = ""
    streamer_name: str = ""
    clipper_id: str = ""
    clipper_login: str = ""
    clipper_name: str = ""
    game_id: str = ""
    game_name: str = ""
    title: str = ""
    created_at: str = ""
    view_count: int = 0
    duration: int = 0
    offset: int = 0
    vod_id: str = ""

    @property
    def key(self) -> str:
        return self.slug


@dataclass(frozen=True)
class ChatMessage(_Record):
    user_name: str
    color: str = ""
    offset: int = 0
    msg: str = ""


@dataclass(frozen=True)
class ChatLog(_Record):
    video_id: str
    messages: tuple[ChatMessage, ...] = field(default_factory=tuple)

    nested: ClassVar[dict[str, type]] = {"messages": ChatMessage}

    @property
    def key(self) -> str:
        return self.video_id


@dataclass(frozen=True)
class PlaybackToken:
    """Short-lived signed credential; never written to disk."""

    value: str
    signature: str

    def __repr__(self) -> str:  # keep tokens out of logs
        return f"PlaybackToken(signature={self.signature[:8]}…)"


@dataclass(frozen=True)
class ClipSource:
    """Clip playback token plus the direct media URL it authorises."""

    token: PlaybackToken
    source_url: str

    @property
    def signed_url(self) -> str:
        return f"{self.source_url}?{urlencode({'sig': self.token.signature, 'token': self.token.value})}"
