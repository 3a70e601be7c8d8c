"""
MessagePack codec for snapshot frames.

Snapshots travel as MessagePack maps: self-describing key/value data with the
same field names the JSON form would have, so a decoded frame can be diffed
and logged directly.
"""

from typing import Any

import msgpack


class DecodeError(Exception):
    """Frame is not valid MessagePack, is not a map, or exceeds size limits."""


# A full 4-player snapshot (107 tiles plus players) stays well under these.
MAX_FRAME_LEN = 64 * 1024
MAX_STR_LEN = 4 * 1024
MAX_BIN_LEN = 64 * 1024
MAX_ARRAY_LEN = 512
MAX_MAP_LEN = 64


def encode(data: dict[str, Any]) -> bytes:
    """
    Encode a dict to MessagePack bytes.
    """
    return msgpack.packb(data, use_bin_type=True)


def decode(data: bytes) -> dict[str, Any]:
    """
    Decode MessagePack bytes to a dict.

    Raises DecodeError if data is invalid, not a dict, or exceeds size limits.
    """
    if len(data) > MAX_FRAME_LEN:
        raise DecodeError(f"frame too large: {len(data)} bytes (max {MAX_FRAME_LEN})")
    try:
        result = msgpack.unpackb(
            data,
            raw=False,
            max_str_len=MAX_STR_LEN,
            max_bin_len=MAX_BIN_LEN,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
        )
    except (msgpack.UnpackException, ValueError) as e:
        raise DecodeError(f"failed to decode MessagePack data: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected map, got {type(result).__name__}")

    return result
