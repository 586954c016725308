"""In-memory ring buffer describing recently dropped datagrams."""

import threading
from collections import deque

PREVIEW_BYTES = 200


class DropTracker:
    def __init__(self, max_size: int = 100):
        self._drops: deque[dict] = deque(maxlen=max_size)
        self._lock = threading.Lock()

    def add(self, reason: str, detail: str, source=None, payload: bytes = b"",
            received_at: float | None = None):
        """Remember a drop, evicting the oldest if at capacity."""
        entry = {
            "reason": reason,
            "detail": detail,
            "source": f"{source[0]}:{source[1]}" if source else None,
            "received_at": received_at,
            "preview": payload[:PREVIEW_BYTES].decode("utf-8", errors="replace"),
        }
        with self._lock:
            self._drops.append(entry)

    def get_recent(self, n: int = 10, reason: str | None = None) -> list[dict]:
        """Return the N most recent drops, oldest first, optionally of one reason."""
        if n <= 0:
            return []
        with self._lock:
            drops = list(self._drops)
        if reason is not None:
            drops = [d for d in drops if d["reason"] == reason]
        return drops[-n:]

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._drops)
