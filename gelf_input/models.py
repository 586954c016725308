"""Value types passed between the decode stages."""

from dataclasses import dataclass
from enum import Enum


class DecodeFailure(Enum):
    MALFORMED_PAYLOAD = "malformed_payload"
    MISSING_SHORT_MESSAGE = "missing_short_message"


class DecodeError(Exception):
    """Raised when a datagram cannot be turned into an event and is dropped."""

    def __init__(self, kind: DecodeFailure, detail: str = ""):
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)
        self.kind = kind
        self.detail = detail


@dataclass(frozen=True)
class RawDatagram:
    payload: bytes
    received_at: float   # wall-clock seconds since epoch
    source: tuple | None = None


@dataclass(frozen=True)
class EmittedEvent:
    tag: str
    time: float
    record: dict

    def as_tuple(self) -> tuple[str, float, dict]:
        return self.tag, self.time, self.record
