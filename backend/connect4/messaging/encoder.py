"""
MessagePack framing for arena WebSocket traffic.

Outbound payloads are plain dicts (usually a pydantic `model_dump()`);
enum members are sent as their values and tuples as arrays. Inbound frames
must decode to a map, anything else is rejected with DecodeError.
"""

from enum import Enum
from typing import Any

import msgpack


class DecodeError(Exception):
    """Inbound frame is malformed, oversized or not a map."""


# Per-frame limits. Client messages are tiny, so these are generous.
MAX_BUFFER_LEN = 64 * 1024
MAX_STR_LEN = 4 * 1024
MAX_BIN_LEN = 4 * 1024
MAX_ARRAY_LEN = 256
MAX_MAP_LEN = 64
MAX_EXT_LEN = 256


def _default(obj: object) -> object:
    if isinstance(obj, Enum):
        return obj.value
    raise TypeError(f"cannot serialize {type(obj).__name__}")


def encode(data: dict[str, Any]) -> bytes:
    return msgpack.packb(data, default=_default, use_bin_type=True)


def decode(data: bytes) -> dict[str, Any]:
    """
    Decode one inbound frame.

    Raises DecodeError if the frame exceeds the size limits, is not valid
    MessagePack, or does not decode to a dict.
    """
    if len(data) > MAX_BUFFER_LEN:
        raise DecodeError(f"payload too large: {len(data)} bytes (max {MAX_BUFFER_LEN})")
    try:
        result = msgpack.unpackb(
            data,
            raw=False,
            strict_map_key=True,
            max_str_len=MAX_STR_LEN,
            max_bin_len=MAX_BIN_LEN,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
            max_ext_len=MAX_EXT_LEN,
        )
    except (msgpack.UnpackException, ValueError) as e:
        raise DecodeError(f"failed to decode MessagePack data: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected map, got {type(result).__name__}")

    return result
