"""vodbot.downloader – fetch every segment of one item with a fixed worker pool.

Workers never touch shared counters: each one reports exactly one
:class:`DownloadResult` on a queue, and the calling thread is the only
consumer (bytes, timing and progress reporting all live there).
"""

from __future__ import annotations

import logging
import queue
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import requests

from .errors import SegmentDownloadError
from .manifest import SegmentTask

logger = logging.getLogger(__name__)

__all__ = ["DownloadResult", "DownloadProgress", "fetch_segment", "download_all"]

CHUNK_SIZE = 1 << 20


@dataclass(frozen=True)
class DownloadResult:
    task: SegmentTask
    bytes_written: int = 0
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class DownloadProgress:
    """Aggregator snapshot handed to the progress callback after every result."""

    done: int
    total: int
    bytes_written: int
    elapsed: float

    @property
    def throughput(self) -> float:
        """Bytes per second so far."""
        return self.bytes_written / self.elapsed if self.elapsed > 0 else 0.0

    @property
    def eta(self) -> Optional[float]:
        """Seconds left, assuming remaining segments average the same size."""
        if not self.done or not self.throughput:
            return None
        remaining = (self.total - self.done) * (self.bytes_written / self.done)
        return remaining / self.throughput


ProgressCallback = Callable[[DownloadProgress], None]


def fetch_segment(session: requests.Session, task: SegmentTask, timeout: float) -> int:
    """GET one segment and write it to ``task.local_path``; returns the byte count."""
    written = 0
    with session.get(task.source_url, timeout=timeout, stream=True) as resp:
        resp.raise_for_status()
        with open(task.local_path, "wb") as fh:
            for chunk in resp.iter_content(CHUNK_SIZE):
                if chunk:
                    fh.write(chunk)
                    written += len(chunk)
    return written


def _worker(
    session: requests.Session,
    task: SegmentTask,
    timeout: float,
    results: "queue.Queue[DownloadResult]",
) -> None:
    try:
        written = fetch_segment(session, task, timeout)
    except Exception as exc:  # noqa: BLE001  reported through the queue
        results.put(DownloadResult(task, error=exc))
    else:
        results.put(DownloadResult(task, bytes_written=written))


def download_all(
    tasks: Iterable[SegmentTask],
    workers: int,
    timeout: float,
    session: requests.Session | None = None,
    progress: ProgressCallback | None = None,
) -> int:
    """Download *tasks* concurrently and return the total bytes written.

    Every task is awaited even after a failure; if any failed, a
    :class:`SegmentDownloadError` is raised once the queue is drained.
    """
    tasks = list(tasks)
    if not tasks:
        return 0
    session = session or requests.Session()
    results: "queue.Queue[DownloadResult]" = queue.Queue()

    total_bytes = 0
    failures: list[DownloadResult] = []
    start = time.monotonic()
    with ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="segment") as pool:
        for task in tasks:
            pool.submit(_worker, session, task, timeout, results)

        for done in range(1, len(tasks) + 1):
            result = results.get()
            if result.ok:
                total_bytes += result.bytes_written
            else:
                logger.debug("segment %s failed: %s", result.task.source_url, result.error)
                failures.append(result)
            if progress is not None:
                progress(DownloadProgress(done, len(tasks), total_bytes, time.monotonic() - start))

    if failures:
        first = failures[0]
        raise SegmentDownloadError(
            f"{len(failures)} of {len(tasks)} segments failed "
            f'(first: {first.task.local_path.name}, reason: "{first.error}")',
            failed=len(failures),
            first=first.error,
        )
    logger.debug("downloaded %d segments, %d bytes", len(tasks), total_bytes)
    return total_bytes
