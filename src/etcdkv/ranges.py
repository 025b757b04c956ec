"""
Byte-range helpers for prefix scans and deletes.
"""

from typing import Tuple, Union

KeyLike = Union[str, bytes]


def to_bytes(value: KeyLike) -> bytes:
    """Coerce a key or value to bytes, encoding strings as UTF-8."""
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    raise TypeError(f"Expected str or bytes, got {type(value).__name__}")


def prefix_range(prefix: KeyLike) -> Tuple[bytes, bytes]:
    """
    Compute the half-open range ``[prefix, end)`` covering every key that
    starts with ``prefix``.

    ``end`` is the prefix with its last byte incremented. A trailing 0xFF
    wraps to 0x00, which etcd reads as "no upper bound". An empty prefix
    yields an empty end.
    """
    key = to_bytes(prefix)
    if not key:
        return key, b""
    end = bytearray(key)
    end[-1] = (end[-1] + 1) & 0xFF
    return key, bytes(end)
