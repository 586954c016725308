"""Datagram dispatcher — decode each datagram and hand successes to the sink."""

import logging
import time

from gelf_input.config import Config
from gelf_input.decoder import decode
from gelf_input.drop_tracker import DropTracker
from gelf_input.metrics import Metrics
from gelf_input.models import DecodeError, EmittedEvent, RawDatagram
from gelf_input.sink import EventSink

logger = logging.getLogger(__name__)


class DatagramDispatcher:
    """Applies the decoder to one datagram at a time.

    Each call is independent: a failure while decoding or emitting one
    datagram is logged and counted, never raised, so the receive loop keeps
    going. Safe to call from several threads at once.
    """

    def __init__(self, config: Config, sink: EventSink, metrics: Metrics | None = None,
                 drop_tracker: DropTracker | None = None):
        self._config = config
        self._sink = sink
        self.metrics = metrics or Metrics()
        self.drop_tracker = drop_tracker or DropTracker(config.max_drops)

    def dispatch(self, payload: bytes, source=None,
                 received_at: float | None = None) -> EmittedEvent | None:
        """Decode and emit one datagram. Returns the event, or None if dropped."""
        if received_at is None:
            received_at = time.time()
        datagram = RawDatagram(payload, received_at, source)
        self.metrics.record_received()

        try:
            event = decode(datagram, self._config)
        except DecodeError as exc:
            logger.warning("Dropped datagram from %s: %s", source, exc)
            self.metrics.record_dropped(exc.kind.value)
            self.drop_tracker.add(exc.kind.value, exc.detail, source, payload, received_at)
            return None

        try:
            self._sink.emit(*event.as_tuple())
        except Exception:
            logger.exception("Sink failed to accept event from %s", source)
            self.metrics.record_emit_failed()
            return None

        self.metrics.record_emitted()
        logger.debug("Emitted %s event at %r from %s", event.tag, event.time, source)
        return event
