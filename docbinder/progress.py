"""Cooperative cancellation and live progress accounting.

Three progress channels are tracked for a run:

- scan: pages visited during discovery against the page budget
- read: fetches completed during ingestion plus the URLs currently in flight
- write: documents stored during ingestion and the label of the last one

Snapshots are immutable and can be polled from any thread, or pushed to
listeners registered with :meth:`ProgressTracker.subscribe`.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, replace
from time import monotonic
from typing import Callable, FrozenSet, List, Union

LOGGER = logging.getLogger(__name__)

_POLL_INTERVAL = 0.05


class CancellationToken:
    """Run-scoped stop flag; once set it stays set."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def set(self) -> None:
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def sleep(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True as soon as cancellation is seen."""
        deadline = monotonic() + max(0.0, seconds)
        while not self.is_set():
            remaining = deadline - monotonic()
            if remaining <= 0:
                return False
            await asyncio.sleep(min(remaining, _POLL_INTERVAL))
        return True


@dataclass(frozen=True)
class ScanProgress:
    visited_count: int = 0
    budget: int = 0
    current_url: str = ""


@dataclass(frozen=True)
class ReadProgress:
    completed_count: int = 0
    total: int = 0
    in_flight_urls: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class WriteProgress:
    completed_count: int = 0
    total: int = 0
    last_label: str = ""


Snapshot = Union[ScanProgress, ReadProgress, WriteProgress]
ProgressListener = Callable[[str, Snapshot], None]


def percent(current: int, total: int) -> int:
    """Completion percentage clamped to 0..100."""
    if total <= 0:
        return 0
    return min(100, round(current * 100 / total))


class ProgressTracker:
    """Mutex-guarded progress state shared by the crawler and the workers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._scan = ScanProgress()
        self._read = ReadProgress()
        self._write = WriteProgress()
        self._listeners: List[ProgressListener] = []

    @property
    def scan(self) -> ScanProgress:
        with self._lock:
            return self._scan

    @property
    def read(self) -> ReadProgress:
        with self._lock:
            return self._read

    @property
    def write(self) -> WriteProgress:
        with self._lock:
            return self._write

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Register ``listener(channel, snapshot)``; returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, channel: str, snapshot: Snapshot) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(channel, snapshot)
            except Exception:
                LOGGER.exception("Progress listener failed on %s update", channel)

    # -- scan -------------------------------------------------------------

    def start_scan(self, budget: int) -> None:
        with self._lock:
            self._scan = ScanProgress(budget=budget, current_url="Starting...")
            self._read = ReadProgress()
            self._write = WriteProgress()
            snapshot = self._scan
        self._notify("scan", snapshot)

    def scan_visiting(self, url: str) -> None:
        with self._lock:
            self._scan = replace(self._scan, current_url=url)
            snapshot = self._scan
        self._notify("scan", snapshot)

    def scan_visited(self, visited_count: int) -> None:
        with self._lock:
            count = max(self._scan.visited_count, visited_count)
            self._scan = replace(self._scan, visited_count=count)
            snapshot = self._scan
        self._notify("scan", snapshot)

    def finish_scan(self, label: str = "Done") -> None:
        self.scan_visiting(label)

    # -- read / write -----------------------------------------------------

    def start_ingest(self, total: int) -> None:
        with self._lock:
            self._read = ReadProgress(total=total)
            self._write = WriteProgress(total=total, last_label="Waiting...")
            read, write = self._read, self._write
        self._notify("read", read)
        self._notify("write", write)

    def read_started(self, url: str) -> None:
        with self._lock:
            self._read = replace(
                self._read, in_flight_urls=self._read.in_flight_urls | {url}
            )
            snapshot = self._read
        self._notify("read", snapshot)

    def read_finished(self, url: str) -> None:
        with self._lock:
            self._read = replace(
                self._read,
                completed_count=self._read.completed_count + 1,
                in_flight_urls=self._read.in_flight_urls - {url},
            )
            snapshot = self._read
        self._notify("read", snapshot)

    def document_written(self, label: str) -> None:
        with self._lock:
            self._write = replace(
                self._write,
                completed_count=self._write.completed_count + 1,
                last_label=label,
            )
            snapshot = self._write
        self._notify("write", snapshot)
