"""Live per-item download progress line using Rich."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import timedelta
from typing import Iterator, Optional

from rich import filesize
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TaskID, TextColumn

from .downloader import DownloadProgress

logger = logging.getLogger(__name__)


def format_progress(snapshot: DownloadProgress) -> str:
    """``"12.3 MB, 1.2 MB/s, ETA 0:00:42"``"""
    parts = [
        filesize.decimal(snapshot.bytes_written),
        f"{filesize.decimal(int(snapshot.throughput))}/s",
    ]
    eta = snapshot.eta
    parts.append(f"ETA {timedelta(seconds=int(eta))}" if eta is not None else "ETA -:--:--")
    return ", ".join(parts)


class StatusDisplay:
    """Progress bar that updates in place while one item downloads."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)
        self.progress: Optional[Progress] = None
        self.task_id: Optional[TaskID] = None
        self._active = False

    def start(self, label: str, total: int) -> None:
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("{task.fields[stats]}"),
            console=self.console,
            transient=True,
        )
        self.task_id = self.progress.add_task(label, total=total, stats="")
        self.progress.start()
        self._active = True

    def update(self, snapshot: DownloadProgress) -> None:
        if not self._active or self.progress is None or self.task_id is None:
            return
        self.progress.update(
            self.task_id,
            completed=snapshot.done,
            total=snapshot.total,
            stats=format_progress(snapshot),
        )

    __call__ = update

    def stop(self) -> None:
        if self.progress is not None and self._active:
            self.progress.stop()
            self._active = False

    @contextmanager
    def track(self, label: str, total: int) -> Iterator["StatusDisplay"]:
        self.start(label, total)
        try:
            yield self
        finally:
            self.stop()


class FallbackStatusDisplay:
    """Logs a line per completed item instead of drawing a live bar."""

    def __init__(self, console: Optional[Console] = None):
        self.label = ""
        self.last: Optional[DownloadProgress] = None

    def start(self, label: str, total: int) -> None:
        self.label = label
        self.last = None

    def update(self, snapshot: DownloadProgress) -> None:
        self.last = snapshot

    __call__ = update

    def stop(self) -> None:
        if self.last is not None:
            logger.info("%s: %d segments, %s", self.label, self.last.total, format_progress(self.last))

    @contextmanager
    def track(self, label: str, total: int) -> Iterator["FallbackStatusDisplay"]:
        self.start(label, total)
        try:
            yield self
        finally:
            self.stop()


def create_status_display(console: Optional[Console] = None) -> StatusDisplay | FallbackStatusDisplay:
    """A live bar on an interactive terminal, plain log lines otherwise."""
    console = console or Console(stderr=True)
    if console.is_terminal:
        return StatusDisplay(console)
    return FallbackStatusDisplay(console)
