"""Bencode encoding and decoding for BitTorrent metadata.

Bencode has four value types, mapped onto plain Python types:

- Integer    -> ``int``
- ByteString -> ``bytes``
- List       -> ``list``
- Dictionary -> ``dict`` with ``bytes`` keys

The decoder is strict: it rejects leading zeros, negative zero, unsorted or
duplicate dictionary keys and anything it does not recognise, so that
re-encoding a decoded value reproduces the input byte for byte. That property
is what makes info-hash computation reproducible.

Decoding is recursive descent over immutable input; each helper takes the
current index and returns ``(value, next_index)``, so the cursor only moves
forward and nothing is shared between calls.
"""

from __future__ import annotations

import re
from typing import Any, Union

from btmeta.utils.exceptions import (
    BencodeDecodeError,
    BencodeEncodeError,
    BencodeErrorKind,
)

BencodeValue = Union[int, bytes, list["BencodeValue"], dict[bytes, "BencodeValue"]]

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
DEFAULT_MAX_DEPTH = 256
# Longest literal that can hold an int64, sign included
_MAX_INT_DIGITS = 20

_INTEGER_RE = re.compile(rb"-?(?:0|[1-9][0-9]*)")

_INT_START = ord("i")
_LIST_START = ord("l")
_DICT_START = ord("d")
_END = ord("e")
_COLON = ord(":")
_ZERO = ord("0")
_NINE = ord("9")


def _is_digit(byte: int) -> bool:
    return _ZERO <= byte <= _NINE


def _decode_integer(data: bytes, index: int) -> tuple[int, int]:
    """Decode ``i<digits>e`` starting at ``index`` (which holds the ``i``)."""
    start = index + 1
    end = data.find(b"e", start)
    if end == -1:
        msg = "Unterminated integer"
        raise BencodeDecodeError(BencodeErrorKind.UNEXPECTED_END, msg, index)

    digits = data[start:end]
    if digits == b"-0" or not _INTEGER_RE.fullmatch(digits):
        msg = f"Invalid integer literal: {digits[:32]!r}"
        raise BencodeDecodeError(BencodeErrorKind.INVALID_INTEGER, msg, start)

    value = int(digits) if len(digits) <= _MAX_INT_DIGITS else None
    if value is None or not INT64_MIN <= value <= INT64_MAX:
        msg = f"Integer out of 64-bit range: {digits[:32]!r}"
        raise BencodeDecodeError(BencodeErrorKind.INVALID_INTEGER, msg, start)

    return value, end + 1


def _decode_string(data: bytes, index: int) -> tuple[bytes, int]:
    """Decode ``<length>:<bytes>`` starting at ``index``."""
    pos = index
    size = len(data)
    while pos < size and _is_digit(data[pos]):
        pos += 1

    if pos >= size or data[pos] != _COLON:
        msg = "Missing ':' after string length"
        raise BencodeDecodeError(BencodeErrorKind.INVALID_STRING, msg, pos)

    significant = data[index:pos].lstrip(b"0") or b"0"
    length = int(significant) if len(significant) <= _MAX_INT_DIGITS else None
    if length is None or length > INT64_MAX:
        msg = f"String length too large: {data[index:pos][:32]!r}"
        raise BencodeDecodeError(BencodeErrorKind.INVALID_LENGTH, msg, index)

    start = pos + 1
    end = start + length
    if end > size:
        msg = f"String declares {length} bytes but only {size - start} remain"
        raise BencodeDecodeError(BencodeErrorKind.UNEXPECTED_END, msg, start)

    return data[start:end], end


def _decode_list(
    data: bytes, index: int, depth: int, max_depth: int
) -> tuple[list[BencodeValue], int]:
    pos = index + 1
    size = len(data)
    items: list[BencodeValue] = []

    while pos < size and data[pos] != _END:
        item, pos = _decode_value(data, pos, depth, max_depth)
        items.append(item)

    if pos >= size:
        msg = "Unterminated list"
        raise BencodeDecodeError(BencodeErrorKind.UNEXPECTED_END, msg, index)

    return items, pos + 1


def _decode_dict(
    data: bytes, index: int, depth: int, max_depth: int
) -> tuple[dict[bytes, BencodeValue], int]:
    pos = index + 1
    size = len(data)
    result: dict[bytes, BencodeValue] = {}
    last_key: bytes | None = None

    while pos < size and data[pos] != _END:
        if not _is_digit(data[pos]):
            msg = "Dictionary key must be a byte string"
            raise BencodeDecodeError(BencodeErrorKind.INVALID_FORMAT, msg, pos)

        key_pos = pos
        key, pos = _decode_string(data, pos)
        # Strictly increasing keys reject both duplicates and unsorted input.
        if last_key is not None and key <= last_key:
            msg = f"Dictionary key {key[:32]!r} is duplicate or out of order"
            raise BencodeDecodeError(BencodeErrorKind.INVALID_FORMAT, msg, key_pos)
        last_key = key

        value, pos = _decode_value(data, pos, depth, max_depth)
        result[key] = value

    if pos >= size:
        msg = "Unterminated dictionary"
        raise BencodeDecodeError(BencodeErrorKind.UNEXPECTED_END, msg, index)

    return result, pos + 1


def _decode_value(
    data: bytes, index: int, depth: int, max_depth: int
) -> tuple[BencodeValue, int]:
    if index >= len(data):
        msg = "Unexpected end of input"
        raise BencodeDecodeError(BencodeErrorKind.UNEXPECTED_END, msg, index)

    lead = data[index]
    if lead == _INT_START:
        return _decode_integer(data, index)
    if _is_digit(lead):
        return _decode_string(data, index)
    if lead in (_LIST_START, _DICT_START):
        if depth >= max_depth:
            msg = f"Nesting deeper than {max_depth} levels"
            raise BencodeDecodeError(BencodeErrorKind.INVALID_FORMAT, msg, index)
        if lead == _LIST_START:
            return _decode_list(data, index, depth + 1, max_depth)
        return _decode_dict(data, index, depth + 1, max_depth)

    msg = f"Unexpected character {bytes([lead])!r}"
    raise BencodeDecodeError(BencodeErrorKind.UNEXPECTED_CHARACTER, msg, index)


class BencodeDecoder:
    """Decoder for bencoded data.

    The decoder only holds its input; every call starts from offset 0, so one
    instance may be used from several threads.
    """

    def __init__(
        self, data: bytes | bytearray | memoryview, max_depth: int = DEFAULT_MAX_DEPTH
    ) -> None:
        """Initialize decoder.

        Args:
            data: Bencoded input
            max_depth: Maximum nesting of lists and dictionaries

        """
        if not isinstance(data, (bytes, bytearray, memoryview)):
            msg = f"Bencode input must be bytes-like, not {type(data).__name__}"
            raise TypeError(msg)
        self.data = bytes(data)
        self.max_depth = max_depth

    def decode(self) -> BencodeValue:
        """Decode the input, which must hold exactly one value.

        Raises:
            BencodeDecodeError: If the input is malformed or has trailing bytes

        """
        value, end = self.decode_prefix()
        if end != len(self.data):
            msg = f"Trailing data after bencoded value ({len(self.data) - end} bytes)"
            raise BencodeDecodeError(BencodeErrorKind.INVALID_FORMAT, msg, end)
        return value

    def decode_prefix(self) -> tuple[BencodeValue, int]:
        """Decode the first value of the input and ignore what follows.

        Returns:
            The value and the number of bytes it occupied

        """
        return _decode_value(self.data, 0, 0, self.max_depth)


class BencodeEncoder:
    """Encoder producing canonical bencode."""

    def encode(self, obj: Any) -> bytes:
        """Encode a value.

        ``str`` is accepted wherever ``bytes`` is and encoded as UTF-8.
        Dictionary keys are always written in sorted byte order.

        Raises:
            BencodeEncodeError: If the value contains an unsupported type

        """
        out: list[bytes] = []
        self._encode_into(obj, out)
        return b"".join(out)

    def _encode_into(self, obj: Any, out: list[bytes]) -> None:
        # bool is an int subclass but has no bencode representation
        if isinstance(obj, bool):
            msg = "Cannot encode bool"
            raise BencodeEncodeError(msg)
        if isinstance(obj, int):
            if not INT64_MIN <= obj <= INT64_MAX:
                msg = f"Integer out of 64-bit range: {obj}"
                raise BencodeEncodeError(msg)
            out.append(b"i%de" % obj)
        elif isinstance(obj, (bytes, bytearray, memoryview)):
            raw = bytes(obj)
            out.append(b"%d:" % len(raw))
            out.append(raw)
        elif isinstance(obj, str):
            self._encode_into(obj.encode("utf-8"), out)
        elif isinstance(obj, (list, tuple)):
            out.append(b"l")
            for item in obj:
                self._encode_into(item, out)
            out.append(b"e")
        elif isinstance(obj, dict):
            out.append(b"d")
            for key, value in self._sorted_items(obj):
                self._encode_into(key, out)
                self._encode_into(value, out)
            out.append(b"e")
        else:
            msg = f"Cannot encode type {type(obj).__name__}"
            raise BencodeEncodeError(msg)

    def _sorted_items(self, obj: dict[Any, Any]) -> list[tuple[bytes, Any]]:
        items: dict[bytes, Any] = {}
        for key, value in obj.items():
            if isinstance(key, str):
                raw_key = key.encode("utf-8")
            elif isinstance(key, bytes):
                raw_key = key
            else:
                msg = f"Dictionary keys must be bytes or str, not {type(key).__name__}"
                raise BencodeEncodeError(msg)
            if raw_key in items:
                msg = f"Duplicate dictionary key: {raw_key!r}"
                raise BencodeEncodeError(msg)
            items[raw_key] = value
        return sorted(items.items())


def decode(data: bytes | bytearray | memoryview, max_depth: int = DEFAULT_MAX_DEPTH) -> BencodeValue:
    """Decode bencoded data that must contain exactly one value."""
    return BencodeDecoder(data, max_depth).decode()


def decode_prefix(
    data: bytes | bytearray | memoryview, max_depth: int = DEFAULT_MAX_DEPTH
) -> tuple[BencodeValue, int]:
    """Decode the leading value of ``data``; return it with its encoded size."""
    return BencodeDecoder(data, max_depth).decode_prefix()


def encode(obj: Any) -> bytes:
    """Encode a value to canonical bencode."""
    return BencodeEncoder().encode(obj)
