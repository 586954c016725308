"""GELF decoder — one datagram in, one event out (or a DecodeError)."""

import json
import logging
import math

from gelf_input.config import Config
from gelf_input.models import DecodeError, DecodeFailure, EmittedEvent, RawDatagram
from gelf_input.normalizer import TIMESTAMP_KEY, normalize_fields
from gelf_input.timestamp import resolve_timestamp

logger = logging.getLogger(__name__)

SHORT_MESSAGE_KEY = "short_message"


def _reject_constant(name: str):
    raise ValueError(f"non-standard JSON constant {name}")


def _parse_int(literal: str):
    """Integer literal, or its text when too long for int() to convert."""
    try:
        return int(literal)
    except ValueError:
        return literal


def _parse_float(literal: str):
    """Float literal, or its text when it overflows to infinity."""
    value = float(literal)
    return value if math.isfinite(value) else literal


def parse_payload(payload: bytes) -> dict:
    """Parse a datagram body as a strict JSON object."""
    try:
        text = payload.decode("utf-8")
        message = json.loads(
            text,
            parse_constant=_reject_constant,
            parse_int=_parse_int,
            parse_float=_parse_float,
        )
    except (UnicodeDecodeError, ValueError, RecursionError) as exc:
        raise DecodeError(DecodeFailure.MALFORMED_PAYLOAD, str(exc)) from exc

    if not isinstance(message, dict):
        raise DecodeError(
            DecodeFailure.MALFORMED_PAYLOAD,
            f"expected a JSON object, got {type(message).__name__}",
        )
    return message


def decode(datagram: RawDatagram, config: Config) -> EmittedEvent:
    """Turn a datagram into an EmittedEvent.

    Raises DecodeError when the payload is not a JSON object, or when it lacks
    ``short_message`` and ``config.require_short_message`` is set. A bad or
    missing timestamp never raises; it falls back to the receipt time.
    """
    message = parse_payload(datagram.payload)

    if SHORT_MESSAGE_KEY not in message:
        if config.require_short_message:
            raise DecodeError(DecodeFailure.MISSING_SHORT_MESSAGE, "no short_message field")
        logger.debug("Message from %s has no short_message, emitting anyway", datagram.source)

    time = resolve_timestamp(
        message.get(TIMESTAMP_KEY),
        datagram.received_at,
        config.trust_client_timestamp,
        truncate=config.client_timestamp_to_i,
    )
    record = normalize_fields(
        message,
        strip_leading_underscore=config.strip_leading_underscore,
        remove_timestamp=config.remove_timestamp_record,
    )
    return EmittedEvent(config.tag, time, record)
