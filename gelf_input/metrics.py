"""Thread-safe counters for datagram outcomes."""

import threading
import time
from collections import defaultdict


class Metrics:
    def __init__(self):
        self._lock = threading.Lock()
        self._total_received = 0
        self._total_emitted = 0
        self._emit_failed = 0
        self._drop_counts: dict[str, int] = defaultdict(int)
        self._start_time = time.monotonic()

    def record_received(self):
        with self._lock:
            self._total_received += 1

    def record_emitted(self):
        with self._lock:
            self._total_emitted += 1

    def record_dropped(self, reason: str):
        """Bump the per-reason drop counter."""
        with self._lock:
            self._drop_counts[reason] += 1

    def record_emit_failed(self):
        with self._lock:
            self._emit_failed += 1

    def snapshot(self) -> dict:
        """Return a point-in-time snapshot of all metrics."""
        with self._lock:
            elapsed = time.monotonic() - self._start_time
            received = self._total_received
            emitted = self._total_emitted
            emit_failed = self._emit_failed
            drops = dict(self._drop_counts)

        return {
            "total_received": received,
            "total_emitted": emitted,
            "total_dropped": sum(drops.values()),
            "drop_reasons": drops,
            "emit_failed": emit_failed,
            "elapsed_seconds": round(elapsed, 2),
            "datagrams_per_second": round(received / elapsed, 2) if elapsed > 0 else 0.0,
        }
