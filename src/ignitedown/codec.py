"""
Key/value codec for the fixed-width character columns of the backing table.

Each byte ``b`` is stored as the single character ``U+0100 + b`` (the Latin
Extended-A/B block). The mapping is:

- one character per byte, so a ``CHAR(n)`` column holds ``n`` bytes;
- order-preserving: code points, UTF-8 and UTF-16 all compare monotonically
  in this block, so ``ORDER BY k`` returns keys in byte order and range
  bounds compare the same way before and after encoding;
- free of control characters, NUL and blanks, so trailing blank padding
  added by CHAR columns can be stripped without touching the payload.

The encoding is part of the table format. Tables written with one codec
cannot be read with another.
"""

from __future__ import annotations

from ignitedown.exceptions import InvalidKeyError, ValueTooLargeError
from ignitedown.types import to_bytes

OFFSET = 0x100

_ENCODE_TABLE = {b: OFFSET + b for b in range(256)}


def encode(data: bytes | str) -> str:
    """Encode bytes (or UTF-8 text) to the column representation."""
    return to_bytes(data).decode("latin-1").translate(_ENCODE_TABLE)


def decode(text: str) -> bytes:
    """Decode a column value back to bytes.

    Raises:
        ValueError: If the text holds a character outside the encoded range.
    """
    return bytes(ord(c) - OFFSET for c in text.rstrip(" "))


def max_payload(width: int) -> int:
    """Largest byte length that fits a column of ``width`` characters."""
    return width


class Codec:
    """Size-checked codec bound to the configured column widths."""

    def __init__(self, key_size: int, value_size: int) -> None:
        self.key_size = key_size
        self.value_size = value_size

    @property
    def max_key_bytes(self) -> int:
        return max_payload(self.key_size)

    @property
    def max_value_bytes(self) -> int:
        return max_payload(self.value_size)

    def encode_key(self, key: bytes | str) -> str:
        data = to_bytes(key)
        if not data:
            raise InvalidKeyError("Key cannot be empty")
        self._check("key", data, self.max_key_bytes)
        return encode(data)

    def encode_value(self, value: bytes | str) -> str:
        data = to_bytes(value)
        self._check("value", data, self.max_value_bytes)
        return encode(data)

    def encode_bound(self, bound: bytes | str) -> str:
        """Encode a range bound. Bounds are not size-checked."""
        return encode(bound)

    @staticmethod
    def decode(text: str) -> bytes:
        return decode(text)

    @staticmethod
    def _check(field: str, data: bytes, limit: int) -> None:
        if len(data) > limit:
            raise ValueTooLargeError(
                f"{field.capitalize()} exceeds the configured maximum size",
                {"field": field, "size": len(data), "limit": limit},
            )
