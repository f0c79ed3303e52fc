import subprocess
from pathlib import Path

import pytest

from vodbot.errors import RemuxError, RemuxInterruptedError
from vodbot.remux import cleanup_temp_dir, ffmpeg_command, remux


@pytest.fixture
def ffmpeg_present(monkeypatch):
    monkeypatch.setattr("vodbot.remux.shutil.which", lambda name: f"/usr/bin/{name}")


def _fake_run(returncode, stderr="", calls=None):
    def run(cmd, **kw):
        if calls is not None:
            calls.append((cmd, kw))
        return subprocess.CompletedProcess(cmd, returncode, stdout="", stderr=stderr)

    return run


def test_command_shape(tmp_path: Path):
    cmd = ffmpeg_command(tmp_path / "index.m3u8", tmp_path / "out.mp4", "warning", "ffmpeg")
    assert cmd[0] == "ffmpeg"
    assert cmd[cmd.index("-i") + 1] == "index.m3u8"
    assert cmd[cmd.index("-c") + 1] == "copy"
    assert cmd[cmd.index("-bsf:a") + 1] == "aac_adtstoasc"
    assert cmd[cmd.index("-loglevel") + 1] == "warning"
    assert cmd[-2] == "-y"
    assert Path(cmd[-1]).is_absolute()


def test_runs_inside_the_manifest_directory(tmp_path, monkeypatch, ffmpeg_present):
    calls = []
    monkeypatch.setattr("vodbot.remux.subprocess.run", _fake_run(0, calls=calls))
    remux(tmp_path / "index.m3u8", tmp_path / "out.mp4")
    assert calls[0][1]["cwd"] == tmp_path


def test_non_zero_exit(tmp_path, monkeypatch, ffmpeg_present):
    monkeypatch.setattr("vodbot.remux.subprocess.run", _fake_run(1, stderr="index.m3u8: Invalid data"))
    with pytest.raises(RemuxError) as exc:
        remux(tmp_path / "index.m3u8", tmp_path / "out.mp4")
    assert exc.value.returncode == 1
    assert "Invalid data" in str(exc.value)
    assert not isinstance(exc.value, RemuxInterruptedError)


def test_killed_by_signal(tmp_path, monkeypatch, ffmpeg_present):
    monkeypatch.setattr("vodbot.remux.subprocess.run", _fake_run(-2))
    with pytest.raises(RemuxInterruptedError):
        remux(tmp_path / "index.m3u8", tmp_path / "out.mp4")


def test_missing_executable(tmp_path, monkeypatch):
    monkeypatch.setattr("vodbot.remux.shutil.which", lambda name: None)
    with pytest.raises(RemuxError):
        remux(tmp_path / "index.m3u8", tmp_path / "out.mp4", ffmpeg="no-such-ffmpeg")


def test_cleanup_removes_tree(tmp_path):
    target = tmp_path / "item"
    (target / "nested").mkdir(parents=True)
    (target / "nested" / "seg.ts").write_bytes(b"x")
    assert cleanup_temp_dir(target) is True
    assert not target.exists()
    assert cleanup_temp_dir(target) is True


def test_cleanup_failure_is_reported_not_raised(tmp_path, monkeypatch):
    target = tmp_path / "item"
    target.mkdir()

    def boom(path):
        raise PermissionError("busy")

    monkeypatch.setattr("vodbot.remux.shutil.rmtree", boom)
    assert cleanup_temp_dir(target) is False
