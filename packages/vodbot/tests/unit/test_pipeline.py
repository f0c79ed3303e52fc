import json
import tempfile
from pathlib import Path
from types import SimpleNamespace

import pytest

from conftest import FakeResponse, FakeSession

from vodbot.errors import FilesystemError, RemuxError, TransportError
from vodbot.models import ChatLog, ChatMessage, Clip, ClipSource, PlaybackToken, Video
from vodbot.pipeline import ItemState, PullContext, pull_clip, pull_video, save_chat

USHER = "https://usher.ttvnw.net/vod/111.m3u8"
SOURCE = "https://cdn.example/111/chunked/index-dvr.m3u8"

VARIANT = f"#EXTM3U\n#EXT-X-STREAM-INF:BANDWIDTH=6000000\n{SOURCE}\n"
MEDIA = """#EXTM3U
#EXT-X-TARGETDURATION:10
#EXTINF:10.000,
0.ts
#EXTINF:10.000,
1.ts
#EXT-X-ENDLIST
"""


@pytest.fixture
def ctx(tmp_path, monkeypatch):
    session = FakeSession(
        {
            USHER: FakeResponse(text=VARIANT),
            SOURCE: FakeResponse(text=MEDIA),
            "https://cdn.example/111/chunked/0.ts": FakeResponse(content=b"a" * 100),
            "https://cdn.example/111/chunked/1.ts": FakeResponse(content=b"b" * 50),
        }
    )
    monkeypatch.setattr(
        "vodbot.pipeline.get_video_playback_token",
        lambda client, vid: PlaybackToken("tok", "sig"),
    )
    return PullContext(client=SimpleNamespace(), session=session, temp_dir=tmp_path / "temp", workers=2)


def _fake_remux(calls):
    def remux(manifest, output, loglevel, ffmpeg):
        calls.append(manifest.read_text())
        output.write_bytes(b"".join(p.read_bytes() for p in sorted(manifest.parent.glob("111_*.ts"))))

    return remux


def test_video_success_writes_media_and_sidecar(ctx, tmp_path, monkeypatch):
    calls = []
    monkeypatch.setattr("vodbot.pipeline.remux", _fake_remux(calls))
    out_dir = tmp_path / "vods" / "vodbot_fti"

    outcome = pull_video(ctx, Video(id="111", title="t"), out_dir)

    assert outcome.state is ItemState.DONE and outcome.ok
    assert outcome.bytes_written == 150
    assert (out_dir / "111.mp4").stat().st_size == 150
    assert json.loads((out_dir / "111.meta.json").read_text())["title"] == "t"
    assert "111_00001.ts" in calls[0]
    assert list((tmp_path / "temp").iterdir()) == []


def test_remux_failure_leaves_no_sidecar_and_no_temp(ctx, tmp_path, monkeypatch):
    def failing(manifest, output, loglevel, ffmpeg):
        output.write_bytes(b"partial")
        raise RemuxError("ffmpeg exited with status 1", returncode=1)

    monkeypatch.setattr("vodbot.pipeline.remux", failing)
    out_dir = tmp_path / "vods" / "vodbot_fti"

    outcome = pull_video(ctx, Video(id="111"), out_dir)

    assert outcome.state is ItemState.FAILED
    assert isinstance(outcome.error, RemuxError)
    assert not (out_dir / "111.meta.json").exists()
    assert not (out_dir / "111.mp4").exists()
    assert list((tmp_path / "temp").iterdir()) == []


def test_segment_failure_skips_remux(ctx, tmp_path, monkeypatch):
    ctx.session.routes["https://cdn.example/111/chunked/1.ts"] = FakeResponse(404)
    called = []
    monkeypatch.setattr("vodbot.pipeline.remux", lambda *a: called.append(a))

    outcome = pull_video(ctx, Video(id="111"), tmp_path / "vods")

    assert outcome.state is ItemState.FAILED
    assert called == []
    assert list((tmp_path / "temp").iterdir()) == []


def test_token_failure_is_item_failure(ctx, tmp_path, monkeypatch):
    def no_token(client, vid):
        raise TransportError("Cannot connect to Twitch")

    monkeypatch.setattr("vodbot.pipeline.get_video_playback_token", no_token)
    outcome = pull_video(ctx, Video(id="111"), tmp_path / "vods")
    assert outcome.state is ItemState.FAILED
    assert isinstance(outcome.error, TransportError)


def test_clip_is_downloaded_and_moved(ctx, tmp_path, monkeypatch):
    source = ClipSource(PlaybackToken("tok", "sig"), "https://clips.example/AT-cm-1.mp4")
    ctx.session.routes[source.signed_url] = FakeResponse(content=b"clip-bytes")
    monkeypatch.setattr("vodbot.pipeline.get_clip_source", lambda client, slug: source)
    out_dir = tmp_path / "clips" / "vodbot_fti"

    outcome = pull_clip(ctx, Clip(id="9", slug="Funny-Slug"), out_dir)

    assert outcome.ok
    assert (out_dir / "Funny-Slug.mp4").read_bytes() == b"clip-bytes"
    assert json.loads((out_dir / "Funny-Slug.meta.json").read_text())["slug"] == "Funny-Slug"
    assert list((tmp_path / "temp").iterdir()) == []


def test_save_chat_marks_video(tmp_path: Path):
    chat_dir = tmp_path / "chat" / "vodbot_fti"
    log = ChatLog("111", (ChatMessage("Fan", "", 1, "hi"),))

    path = save_chat(chat_dir, Video(id="111"), log)

    assert path.name == "111.chat.json"
    assert json.loads(path.read_text())["messages"][0]["msg"] == "hi"
    assert json.loads((chat_dir / "111.meta.json").read_text())["hasChat"] is True


def test_temp_dir_failure_fails_only_that_item(ctx, tmp_path, monkeypatch):
    real_mkdtemp = tempfile.mkdtemp
    attempts = []

    def flaky_mkdtemp(*args, **kwargs):
        attempts.append(kwargs.get("prefix"))
        if len(attempts) == 1:
            raise PermissionError(13, "Permission denied")
        return real_mkdtemp(*args, **kwargs)

    monkeypatch.setattr("vodbot.pipeline.tempfile.mkdtemp", flaky_mkdtemp)
    monkeypatch.setattr("vodbot.pipeline.remux", _fake_remux([]))
    out_dir = tmp_path / "vods" / "vodbot_fti"

    first = pull_video(ctx, Video(id="111"), out_dir)
    second = pull_video(ctx, Video(id="111"), out_dir)

    assert first.state is ItemState.FAILED
    assert isinstance(first.error, FilesystemError)
    assert second.ok
    assert (out_dir / "111.meta.json").exists()
