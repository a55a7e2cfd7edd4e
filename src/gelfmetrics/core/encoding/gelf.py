"""GELF 1.1 encoder and UDP chunker for GelfMessage objects."""

import json
import math
import os
import re
from typing import Any

from gelfmetrics.core.models import GelfMessage

GELF_VERSION = "1.1"

# Largest datagram written to the network, header included.
DEFAULT_CHUNK_SIZE = 1420
MAX_CHUNKS = 128
CHUNK_MAGIC = b"\x1e\x0f"
_CHUNK_HEADER_SIZE = len(CHUNK_MAGIC) + 8 + 2

_INVALID_FIELD_CHARS = re.compile(r"[^\w.\-]")


class MessageTooLarge(ValueError):
    """A payload needs more than MAX_CHUNKS UDP chunks."""


def field_key(key: str) -> str:
    """Return the GELF additional-field key for ``key``.

    GELF keys are restricted to word characters, dots and dashes and carry
    a leading underscore.
    """
    return "_" + _INVALID_FIELD_CHARS.sub("_", key)


def to_gelf_dict(message: GelfMessage) -> dict[str, Any]:
    """Convert a message to a GELF 1.1 dictionary.

    Args:
        message: The message to convert.

    Returns:
        Dictionary with the GELF standard fields followed by every
        additional field under an underscore-prefixed key. A field named
        ``id`` is skipped, since GELF reserves ``_id``.
    """
    payload: dict[str, Any] = {
        "version": GELF_VERSION,
        "host": message.host,
        "short_message": message.message,
        "timestamp": message.timestamp,
        "level": int(message.level),
    }
    for key, value in message.fields.items():
        if key == "id":
            continue
        payload[field_key(key)] = value
    return payload


def encode(message: GelfMessage) -> bytes:
    """Encode a message to compact UTF-8 JSON.

    Values JSON cannot represent are written with ``str()``. Non-finite
    floats are written as the ``NaN`` and ``Infinity`` tokens.
    """
    return json.dumps(
        to_gelf_dict(message), separators=(",", ":"), default=str
    ).encode("utf-8")


def chunk(payload: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE) -> list[bytes]:
    """Split a payload into GELF UDP chunks.

    Payloads that fit into one datagram are returned unchanged. Larger ones
    are split into chunks carrying the magic bytes, a random 8-byte message
    id, the sequence number and the sequence count.

    Raises:
        MessageTooLarge: If more than MAX_CHUNKS chunks would be needed.
    """
    if len(payload) <= chunk_size:
        return [payload]

    body_size = chunk_size - _CHUNK_HEADER_SIZE
    count = math.ceil(len(payload) / body_size)
    if count > MAX_CHUNKS:
        raise MessageTooLarge(
            f"GELF payload of {len(payload)} bytes needs {count} chunks "
            f"(maximum {MAX_CHUNKS})"
        )

    message_id = os.urandom(8)
    return [
        CHUNK_MAGIC
        + message_id
        + bytes((sequence, count))
        + payload[sequence * body_size : (sequence + 1) * body_size]
        for sequence in range(count)
    ]
