"""vodbot.mapper – raw GQL node → domain record.

Every function here is pure. Optional fields missing from the response map
to empty/zero defaults; only a missing identifier is rejected.
"""

from __future__ import annotations

from typing import Any, Mapping

from .errors import ResponseShapeError
from .models import Channel, Chapter, ChatMessage, Clip, PlaybackToken, Video

__all__ = [
    "channel_from_node",
    "video_from_node",
    "clip_from_node",
    "chapter_from_node",
    "chat_message_from_node",
    "token_from_node",
]

Node = Mapping[str, Any]


def _obj(node: Node | None, name: str) -> Node:
    value = node.get(name) if node else None
    return value if isinstance(value, Mapping) else {}


def _str(node: Node | None, name: str) -> str:
    value = node.get(name) if node else None
    return "" if value is None else str(value)


def _int(node: Node | None, name: str) -> int:
    value = node.get(name) if node else None
    try:
        return int(value) if value is not None else 0
    except (TypeError, ValueError):
        return 0


def _required(node: Node | None, name: str, what: str) -> str:
    value = _str(node, name)
    if not value:
        raise ResponseShapeError(f"{what} node is missing required field {name!r}")
    return value


def channel_from_node(node: Node) -> Channel:
    return Channel(
        id=_required(node, "id", "channel"),
        login=_str(node, "login"),
        name=_str(node, "displayName"),
        created_at=_str(node, "createdAt"),
        description=_str(node, "description"),
    )


def video_from_node(node: Node, owner: Node | None = None) -> Video:
    """Map a ``Video`` node; *owner* is the parent ``user`` when listing a channel."""
    creator = _obj(node, "creator") or (owner or {})
    game = _obj(node, "game")
    return Video(
        id=_required(node, "id", "video"),
        broadcast_type=_str(node, "broadcastType"),
        streamer_id=_str(creator, "id"),
        streamer_login=_str(creator, "login"),
        streamer_name=_str(creator, "displayName"),
        game_id=_str(game, "id"),
        game_name=_str(game, "name"),
        title=_str(node, "title"),
        created_at=_str(node, "publishedAt") or _str(node, "createdAt"),
        duration=_int(node, "lengthSeconds"),
    )


def clip_from_node(node: Node, owner: Node | None = None) -> Clip:
    broadcaster = _obj(node, "broadcaster") or (owner or {})
    curator = _obj(node, "curator")
    game = _obj(node, "game")
    return Clip(
        id=_str(node, "id"),
        slug=_required(node, "slug", "clip"),
        streamer_id=_str(broadcaster, "id"),
        streamer_login=_str(broadcaster, "login"),
        streamer_name=_str(broadcaster, "displayName"),
        clipper_id=_str(curator, "id"),
        clipper_login=_str(curator, "login"),
        clipper_name=_str(curator, "displayName"),
        game_id=_str(game, "id"),
        game_name=_str(game, "name"),
        title=_str(node, "title"),
        created_at=_str(node, "createdAt"),
        view_count=_int(node, "viewCount"),
        duration=_int(node, "durationSeconds"),
        offset=_int(node, "videoOffsetSeconds"),
        vod_id=_str(_obj(node, "video"), "id"),
    )


def chapter_from_node(node: Node) -> Chapter:
    return Chapter(
        description=_str(node, "description"),
        kind=_str(node, "type"),
        position_ms=_int(node, "positionMilliseconds"),
        duration_ms=_int(node, "durationMilliseconds"),
    )


def chat_message_from_node(node: Node) -> ChatMessage:
    message = _obj(node, "message")
    fragments = message.get("fragments") or []
    text = "".join(_str(f, "text") for f in fragments if isinstance(f, Mapping))
    return ChatMessage(
        user_name=_str(_obj(node, "commenter"), "displayName"),
        color=_str(message, "userColor"),
        offset=_int(node, "contentOffsetSeconds"),
        msg=text,
    )


def token_from_node(node: Node) -> PlaybackToken:
    return PlaybackToken(
        value=_required(node, "value", "playback token"),
        signature=_required(node, "signature", "playback token"),
    )
