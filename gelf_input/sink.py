"""Emit sinks — where decoded events go.

The dispatcher only needs something with ``emit(tag, time, record)``.
EventFileWriter encodes each event on the caller's thread, queues the line,
and a background thread appends batches of lines to a JSON-lines file.
"""

import json
import logging
import os
import queue
import time
from threading import Thread
from typing import Protocol, runtime_checkable

from gelf_input.models import EmittedEvent

logger = logging.getLogger(__name__)


@runtime_checkable
class EventSink(Protocol):
    def emit(self, tag: str, time: float, record: dict) -> None: ...


def encode_event(event: EmittedEvent) -> str:
    """One strict JSON line; raises ValueError for NaN/Infinity anywhere in the event."""
    return json.dumps(
        {"tag": event.tag, "time": event.time, "record": event.record},
        ensure_ascii=False,
        allow_nan=False,
    )


class EventFileWriter(Thread):
    """Consumer thread that drains encoded events and appends them to one file.

    Lines are written once ``batch_size`` are pending or ``flush_interval``
    seconds have passed since the last write. The file is rolled to
    ``<name>.1`` .. ``<name>.<backups>`` once it grows past ``max_bytes``.
    """

    def __init__(self, output_dir: str, filename: str, batch_size: int, flush_interval: float,
                 max_bytes: int = 100 * 1024 * 1024, backups: int = 10):
        super().__init__(daemon=True, name="event-file-writer")
        self.path = os.path.join(output_dir, filename)
        self._batch_size = batch_size
        self._flush_interval = flush_interval
        self._max_bytes = max_bytes
        self._backups = backups
        self._queue: queue.Queue[str] = queue.Queue()
        self._pending: list[str] = []
        self._last_write = time.monotonic()
        self._running = True
        self.events_written = 0
        self.files_rotated = 0

        os.makedirs(output_dir, exist_ok=True)

    def emit(self, tag: str, time: float, record: dict):
        """Encode and queue one event. Never blocks on disk I/O."""
        self._queue.put(encode_event(EmittedEvent(tag, time, record)))

    def run(self):
        while self._running:
            try:
                line = self._queue.get(timeout=0.2)
            except queue.Empty:
                if self._pending and time.monotonic() - self._last_write >= self._flush_interval:
                    self._write_pending()
                continue

            self._pending.append(line)
            if len(self._pending) >= self._batch_size:
                self._write_pending()

    def stop(self, timeout: float = 5.0):
        """Stop the consumer, then write everything still queued."""
        self._running = False
        if self.is_alive():
            self.join(timeout=timeout)
        while True:
            try:
                self._pending.append(self._queue.get_nowait())
            except queue.Empty:
                break
        self._write_pending()
        logger.info("EventFileWriter stopped after %d events", self.events_written)

    def _write_pending(self):
        if not self._pending:
            return
        if os.path.exists(self.path) and os.path.getsize(self.path) >= self._max_bytes:
            self._roll_files()

        with open(self.path, "a", encoding="utf-8") as f:
            f.write("\n".join(self._pending) + "\n")

        self.events_written += len(self._pending)
        logger.debug("Wrote %d events to %s", len(self._pending), self.path)
        self._pending = []
        self._last_write = time.monotonic()

    def _roll_files(self):
        oldest = f"{self.path}.{self._backups}"
        if os.path.exists(oldest):
            os.remove(oldest)
        for i in range(self._backups - 1, 0, -1):
            if os.path.exists(f"{self.path}.{i}"):
                os.replace(f"{self.path}.{i}", f"{self.path}.{i + 1}")
        os.replace(self.path, f"{self.path}.1")
        self.files_rotated += 1
        logger.info("Rolled %s (rotation #%d)", self.path, self.files_rotated)
