"""vodbot.remux – join downloaded segments into one file with ffmpeg."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from .errors import CleanupError, RemuxError, RemuxInterruptedError

logger = logging.getLogger(__name__)

__all__ = ["ffmpeg_command", "remux", "cleanup_temp_dir"]


def ffmpeg_command(manifest_path: Path, output_path: Path, loglevel: str, ffmpeg: str) -> list[str]:
    """Stream-copy remux; the manifest is relative because ffmpeg runs inside its directory."""
    return [
        ffmpeg,
        "-hide_banner",
        "-loglevel", loglevel,
        "-i", manifest_path.name,
        "-c", "copy",
        "-bsf:a", "aac_adtstoasc",
        "-y", str(output_path.resolve()),
    ]


def remux(
    manifest_path: Path,
    output_path: Path,
    loglevel: str = "warning",
    ffmpeg: str = "ffmpeg",
) -> None:
    """Remux the local HLS playlist at *manifest_path* into *output_path*."""
    if shutil.which(ffmpeg) is None:
        raise RemuxError(f"ffmpeg executable {ffmpeg!r} was not found on PATH")

    cmd = ffmpeg_command(manifest_path, output_path, loglevel, ffmpeg)
    logger.debug("running %s (cwd=%s)", " ".join(cmd), manifest_path.parent)
    try:
        process = subprocess.run(
            cmd,
            cwd=manifest_path.parent,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise RemuxError(f'Cannot run ffmpeg, reason: "{exc}".') from exc

    if process.stderr:
        logger.debug("ffmpeg: %s", process.stderr.strip())
    if process.returncode < 0:
        raise RemuxInterruptedError(
            f"ffmpeg was terminated by signal {-process.returncode}",
            returncode=process.returncode,
        )
    if process.returncode != 0:
        tail = process.stderr.strip().splitlines()[-1:] if process.stderr else []
        raise RemuxError(
            f"ffmpeg exited with status {process.returncode}" + (f": {tail[0]}" if tail else ""),
            returncode=process.returncode,
        )


def cleanup_temp_dir(path: Path) -> bool:
    """Remove an item's temp directory. Failures are logged, never raised."""
    if not path.exists():
        return True
    try:
        shutil.rmtree(path)
    except OSError as exc:
        err = CleanupError(f'Cannot remove temp directory `{path}`, reason: "{exc}".')
        logger.warning("%s", err)
        return False
    return True
