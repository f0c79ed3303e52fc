import pytest

from vodbot.errors import ResponseShapeError
from vodbot.mapper import (
    channel_from_node,
    chapter_from_node,
    chat_message_from_node,
    clip_from_node,
    token_from_node,
    video_from_node,
)

VIDEO_NODE = {
    "id": "1818343419",
    "title": "Chill stream",
    "publishedAt": "2023-05-01T10:00:00Z",
    "broadcastType": "ARCHIVE",
    "status": "RECORDED",
    "lengthSeconds": 7200,
    "game": {"id": "509658", "name": "Just Chatting"},
    "creator": {"id": "42", "login": "vodbot_fti", "displayName": "VodBot_FTI"},
}


def test_video_full_node():
    video = video_from_node(VIDEO_NODE)
    assert video.id == "1818343419"
    assert video.streamer_login == "vodbot_fti"
    assert video.streamer_name == "VodBot_FTI"
    assert video.game_name == "Just Chatting"
    assert video.created_at == "2023-05-01T10:00:00Z"
    assert video.duration == 7200
    assert video.chapters == ()
    assert video.has_chat is False


def test_video_missing_optional_fields_default():
    video = video_from_node({"id": "7", "game": None, "creator": None})
    assert video.title == ""
    assert video.game_id == ""
    assert video.duration == 0


def test_video_creator_falls_back_to_owner():
    owner = {"id": "42", "login": "vodbot_fti", "displayName": "VodBot_FTI"}
    video = video_from_node({"id": "7"}, owner=owner)
    assert video.streamer_id == "42"


def test_video_without_id_is_rejected():
    with pytest.raises(ResponseShapeError):
        video_from_node({"title": "no id"})


def test_clip_node():
    clip = clip_from_node(
        {
            "id": "99",
            "slug": "SourHardLEDDBstyle-NMdErh41r1IN9cjm",
            "title": "nice",
            "viewCount": "12",
            "durationSeconds": 30,
            "videoOffsetSeconds": None,
            "video": {"id": "1818343419"},
            "broadcaster": {"id": "42", "login": "vodbot_fti", "displayName": "VodBot_FTI"},
            "curator": {"id": "7", "login": "fan", "displayName": "Fan"},
        }
    )
    assert clip.key == "SourHardLEDDBstyle-NMdErh41r1IN9cjm"
    assert clip.view_count == 12
    assert clip.offset == 0
    assert clip.vod_id == "1818343419"
    assert clip.clipper_login == "fan"


def test_clip_without_slug_is_rejected():
    with pytest.raises(ResponseShapeError):
        clip_from_node({"id": "99"})


def test_chat_message_joins_fragments():
    msg = chat_message_from_node(
        {
            "contentOffsetSeconds": 65,
            "commenter": {"displayName": "Fan"},
            "message": {"userColor": "#FF0000", "fragments": [{"text": "hi "}, {"text": "@VodBot"}]},
        }
    )
    assert msg.user_name == "Fan"
    assert msg.color == "#FF0000"
    assert msg.offset == 65
    assert msg.msg == "hi @VodBot"


def test_chat_message_deleted_commenter():
    msg = chat_message_from_node({"contentOffsetSeconds": 1, "commenter": None, "message": {}})
    assert msg.user_name == ""
    assert msg.msg == ""


def test_chapter_and_channel():
    chapter = chapter_from_node(
        {"description": "Just Chatting", "type": "GAME_CHANGE", "positionMilliseconds": 0, "durationMilliseconds": 60000}
    )
    assert chapter.kind == "GAME_CHANGE"
    assert chapter.duration_ms == 60000

    channel = channel_from_node({"id": "42", "login": "vodbot_fti", "displayName": "VodBot_FTI"})
    assert channel.name == "VodBot_FTI"
    assert channel.created_at == ""


def test_token_requires_both_parts():
    token = token_from_node({"value": "{}", "signature": "abc123"})
    assert token.signature == "abc123"
    with pytest.raises(ResponseShapeError):
        token_from_node({"value": "{}"})
