"""Timestamp resolver — turns a client-supplied GELF timestamp into event time.

GELF clients send ``timestamp`` as seconds since the epoch with the sub-second
part in the decimal fraction. In practice the field arrives as an int, a float,
a numeric string, garbage, or not at all. Resolution never fails: anything that
cannot be honoured falls back to the instant the datagram was received.
"""

import logging
import math
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Absent:
    pass


@dataclass(frozen=True)
class Number:
    value: int | float


@dataclass(frozen=True)
class Text:
    value: str


TimestampInput = Absent | Number | Text

ABSENT = Absent()

# Longest leading decimal literal: sign, digits with single underscores between
# them, optional fraction, optional exponent. ASCII digits only.
_NUMERIC_PREFIX = re.compile(
    r"[ \t\n\v\f\r]*"
    r"([+-]?(?:[0-9]+(?:_[0-9]+)*(?:\.[0-9]+(?:_[0-9]+)*)?|\.[0-9]+(?:_[0-9]+)*)"
    r"(?:[eE][+-]?[0-9]+)?)"
)


def classify_timestamp(value) -> TimestampInput:
    """Tag a raw JSON value as Absent, Number or Text."""
    if value is None or isinstance(value, bool):
        return ABSENT
    if isinstance(value, (int, float)):
        return Number(value)
    if isinstance(value, str):
        return Text(value)
    return ABSENT


def coerce_numeric_text(text: str) -> float:
    """Best-effort string to number: parse the leading numeric literal, else 0.0.

    >>> coerce_numeric_text("1234567890.1234")
    1234567890.1234
    >>> coerce_numeric_text("12abc")
    12.0
    >>> coerce_numeric_text("BAD TIME")
    0.0
    """
    match = _NUMERIC_PREFIX.match(text)
    if match is None:
        return 0.0
    return float(match.group(1).replace("_", ""))


def is_clean_numeric_text(text: str) -> bool:
    match = _NUMERIC_PREFIX.match(text)
    return match is not None and match.end() == len(text)


def resolve_timestamp(raw_value, received_at: float, trust_client: bool,
                      truncate: bool = False) -> float:
    """Resolve the event time for one message.

    Returns *received_at* unchanged when the client is not trusted or sent no
    usable timestamp, or when the value is not a finite float. Numbers are
    otherwise taken as given, with no range check; strings go through
    :func:`coerce_numeric_text`. With *truncate* the client value is cut to
    whole seconds.
    """
    if not trust_client:
        return received_at

    ts_input = classify_timestamp(raw_value)

    if isinstance(ts_input, Number):
        try:
            seconds = float(ts_input.value)
        except OverflowError:
            seconds = math.inf
    elif isinstance(ts_input, Text):
        seconds = coerce_numeric_text(ts_input.value)
        if not is_clean_numeric_text(ts_input.value):
            logger.debug("Ambiguous client timestamp %r coerced to %r", ts_input.value, seconds)
    else:
        return received_at

    if not math.isfinite(seconds):
        logger.warning("Client timestamp resolved to %r, using receipt time", seconds)
        return received_at

    if truncate:
        seconds = float(math.trunc(seconds))
    return seconds
