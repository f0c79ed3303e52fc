"""vodbot.twitch – the concrete Twitch queries.

Paginated lists (videos by broadcast type, clips, comments, chapters) are
:class:`~vodbot.pagination.ConnectionQuery` subclasses driven by
:func:`~vodbot.pagination.paginate`; single lookups (channel, video, clip,
playback tokens) go through :func:`~vodbot.pagination.fetch_nodes`.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from .constants import PAGE_SIZE, PLAYBACK_PARAMS, VIDEO_KINDS
from .errors import ResponseShapeError
from .gql import Field, Fragment, GQLClient, GqlEnum
from .mapper import (
    channel_from_node,
    chapter_from_node,
    chat_message_from_node,
    clip_from_node,
    token_from_node,
    video_from_node,
)
from .models import Channel, Chapter, ChatLog, ChatMessage, Clip, ClipSource, ContentKind, PlaybackToken, Video
from .pagination import ConnectionQuery, fetch_nodes, paginate

logger = logging.getLogger(__name__)

Node = Mapping[str, Any]

USER_FIELDS = "id login displayName"
CHANNEL_FIELDS = "id login displayName description createdAt"
VIDEO_FIELDS = """
    id title publishedAt broadcastType status lengthSeconds
    game { id name }
    creator { id login displayName }
"""
CLIP_FIELDS = """
    id slug title createdAt viewCount
    durationSeconds videoOffsetSeconds
    video { id }
    game { id name }
    broadcaster { id displayName login }
    curator { id displayName login }
"""
COMMENT_FIELDS = """
    contentOffsetSeconds
    commenter { displayName }
    message { userColor fragments { text } }
"""
CHAPTER_FIELDS = "description type positionMilliseconds durationMilliseconds"


# ---------------------------------------------------------------------------
# Paginated lists
# ---------------------------------------------------------------------------

class VideosQuery(ConnectionQuery[Video]):
    """``user(login) { videos(type: …) }`` for one broadcast type."""

    root_field = "user"
    root_argument = "login"

    def __init__(self, broadcast_type: str):
        self.broadcast_type = broadcast_type

    def connection_field(self) -> str:
        return "videos"

    def connection_arguments(self, cursor: str) -> dict[str, Any]:
        return {
            "first": PAGE_SIZE,
            "sort": GqlEnum("TIME"),
            "type": GqlEnum(self.broadcast_type),
            "after": cursor or None,
        }

    def root_selection(self) -> str:
        return USER_FIELDS

    def node_selection(self) -> str:
        return VIDEO_FIELDS

    def record(self, key: str, root: Node, node: Node) -> Video:
        return video_from_node(node, owner=root)


class ClipsQuery(ConnectionQuery[Clip]):
    root_field = "user"
    root_argument = "login"

    def connection_field(self) -> str:
        return "clips"

    def connection_arguments(self, cursor: str) -> dict[str, Any]:
        return {
            "first": PAGE_SIZE,
            "after": cursor or None,
            "criteria": {"period": GqlEnum("ALL_TIME"), "sort": GqlEnum("CREATED_AT_DESC")},
        }

    def root_selection(self) -> str:
        return USER_FIELDS

    def node_selection(self) -> str:
        return CLIP_FIELDS

    def record(self, key: str, root: Node, node: Node) -> Clip:
        return clip_from_node(node, owner=root)


class CommentsQuery(ConnectionQuery[ChatMessage]):
    """Chat replay; the first page is addressed by offset, later ones by cursor."""

    root_field = "video"
    root_argument = "id"

    def connection_field(self) -> str:
        return "comments"

    def connection_arguments(self, cursor: str) -> dict[str, Any]:
        if cursor:
            return {"after": cursor}
        return {"contentOffsetSeconds": 0}

    def node_selection(self) -> str:
        return COMMENT_FIELDS

    def record(self, key: str, root: Node, node: Node) -> ChatMessage:
        return chat_message_from_node(node)


class ChaptersQuery(ConnectionQuery[Chapter]):
    root_field = "video"
    root_argument = "id"

    def connection_field(self) -> str:
        return "moments"

    def connection_arguments(self, cursor: str) -> dict[str, Any]:
        return {
            "first": PAGE_SIZE,
            "momentRequestType": GqlEnum("VIDEO_CHAPTER_MARKERS"),
            "after": cursor or None,
        }

    def node_selection(self) -> str:
        return CHAPTER_FIELDS

    def record(self, key: str, root: Node, node: Node) -> Chapter:
        return chapter_from_node(node)


def get_channels_videos(
    client: GQLClient, users: Iterable[str], kind: ContentKind
) -> dict[str, list[Video]]:
    """Every video of *kind* (vods/highlights/uploads/premieres) per channel login."""
    try:
        broadcast_type = VIDEO_KINDS[kind.value]
    except KeyError:
        raise ValueError(f"{kind.value!r} is not a video kind") from None
    return paginate(client, users, VideosQuery(broadcast_type))


def get_channels_clips(client: GQLClient, users: Iterable[str]) -> dict[str, list[Clip]]:
    return paginate(client, users, ClipsQuery())


def get_videos_comments(client: GQLClient, video_ids: Iterable[str]) -> dict[str, ChatLog]:
    pages = paginate(client, video_ids, CommentsQuery())
    return {vid: ChatLog(video_id=vid, messages=tuple(msgs)) for vid, msgs in pages.items()}


def get_videos_chapters(client: GQLClient, video_ids: Iterable[str]) -> dict[str, list[Chapter]]:
    return paginate(client, video_ids, ChaptersQuery())


# ---------------------------------------------------------------------------
# Single-wave lookups
# ---------------------------------------------------------------------------

def get_channels(client: GQLClient, logins: Iterable[str]) -> dict[str, Channel | None]:
    nodes = fetch_nodes(
        client, logins, lambda alias, key: Fragment(alias, "user", {"login": key}, CHANNEL_FIELDS)
    )
    return {k: channel_from_node(n) if n else None for k, n in nodes.items()}


def get_videos(client: GQLClient, video_ids: Iterable[str]) -> dict[str, Video | None]:
    nodes = fetch_nodes(
        client, video_ids, lambda alias, key: Fragment(alias, "video", {"id": key}, VIDEO_FIELDS)
    )
    return {k: video_from_node(n) if n else None for k, n in nodes.items()}


def get_clips(client: GQLClient, slugs: Iterable[str]) -> dict[str, Clip | None]:
    nodes = fetch_nodes(
        client, slugs, lambda alias, key: Fragment(alias, "clip", {"slug": key}, CLIP_FIELDS)
    )
    return {k: clip_from_node(n) if n else None for k, n in nodes.items()}


def get_video_playback_token(client: GQLClient, video_id: str) -> PlaybackToken:
    """Fetch a fresh playback token for one video. Tokens expire quickly."""
    nodes = fetch_nodes(
        client,
        [video_id],
        lambda alias, key: Fragment(
            alias,
            "videoPlaybackAccessToken",
            {"id": key, "params": PLAYBACK_PARAMS},
            "signature value",
        ),
    )
    node = nodes.get(video_id)
    if not node:
        raise ResponseShapeError(f"No playback token returned for video {video_id}")
    return token_from_node(node)


def get_clip_source(client: GQLClient, slug: str) -> ClipSource:
    """Playback token plus the source-quality media URL of one clip."""
    nodes = fetch_nodes(
        client,
        [slug],
        lambda alias, key: Fragment(
            alias,
            "clip",
            {"slug": key},
            (
                Field("playbackAccessToken", {"params": PLAYBACK_PARAMS}, "signature value"),
                "videoQualities { quality frameRate sourceURL }",
            ),
        ),
    )
    node = nodes.get(slug)
    if not node:
        raise ResponseShapeError(f"Clip {slug} not found")
    token_node = node.get("playbackAccessToken")
    if not isinstance(token_node, Mapping):
        raise ResponseShapeError(f"No playback token returned for clip {slug}")
    qualities = [q for q in node.get("videoQualities") or [] if isinstance(q, Mapping)]
    if not qualities or not qualities[0].get("sourceURL"):
        raise ResponseShapeError(f"Clip {slug} lists no video qualities")
    logger.debug("clip %s: using %sp source", slug, qualities[0].get("quality", "?"))
    return ClipSource(token=token_from_node(token_node), source_url=str(qualities[0]["sourceURL"]))
