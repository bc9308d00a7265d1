"""Property-based tests for bencode encoding/decoding.

Tests invariants and properties of the bencode implementation
using Hypothesis for automatic test case generation.
"""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from btmeta.bencode import BencodeDecodeError, decode, decode_prefix, encode
from btmeta.core.bencode import INT64_MAX, INT64_MIN

pytestmark = [pytest.mark.property, pytest.mark.core]

int64s = st.integers(min_value=INT64_MIN, max_value=INT64_MAX)

bencode_values = st.recursive(
    int64s | st.binary(max_size=64),
    lambda children: st.lists(children, max_size=8)
    | st.dictionaries(st.binary(max_size=16), children, max_size=8),
    max_leaves=40,
)


class TestBencodeProperties:
    """Property-based tests for bencode operations."""

    @given(bencode_values)
    def test_value_roundtrip(self, value):
        """Decoding an encoded value gives the value back."""
        assert decode(encode(value)) == value

    @given(bencode_values)
    def test_encoding_is_canonical(self, value):
        """Re-encoding decoded bytes reproduces them exactly."""
        encoded = encode(value)
        assert encode(decode(encoded)) == encoded

    @given(st.text())
    def test_text_encoding(self, text):
        """Text is encoded as its UTF-8 bytes."""
        decoded = decode(encode(text))
        assert isinstance(decoded, bytes)
        assert decoded.decode("utf-8") == text

    @given(int64s)
    def test_integer_encoding_properties(self, i):
        """Integers are written as their shortest decimal form."""
        encoded = encode(i)
        assert encoded == b"i" + str(i).encode("ascii") + b"e"

    @given(st.binary())
    def test_string_encoding_properties(self, data):
        """Byte strings carry their exact length as a prefix."""
        encoded = encode(data)
        colon_pos = encoded.find(b":")
        assert int(encoded[:colon_pos]) == len(data)
        assert encoded[colon_pos + 1 :] == data

    @given(st.dictionaries(st.binary(), int64s))
    def test_dict_keys_written_sorted(self, dct):
        """Keys are emitted in ascending byte order."""
        encoded = encode(dct)
        assert list(decode(encoded)) == sorted(dct)

    @given(bencode_values, st.binary(min_size=1))
    def test_decode_prefix_reports_consumed_size(self, value, trailer):
        """The prefix decoder stops exactly at the end of the first value."""
        encoded = encode(value)
        decoded, consumed = decode_prefix(encoded + trailer)
        assert decoded == value
        assert consumed == len(encoded)

    @given(bencode_values, st.binary(min_size=1))
    def test_strict_decode_rejects_trailing_bytes(self, value, trailer):
        """Strict decoding fails when anything follows the value."""
        with pytest.raises(BencodeDecodeError):
            decode(encode(value) + trailer)

    @given(st.binary(max_size=256))
    def test_arbitrary_bytes_never_crash(self, data):
        """Any input either decodes or raises BencodeDecodeError."""
        try:
            decode(data)
        except BencodeDecodeError as e:
            assert e.kind is not None

    @given(st.integers(min_value=1, max_value=10**6))
    def test_leading_zero_integers_rejected(self, i):
        """A zero-padded integer is never valid."""
        with pytest.raises(BencodeDecodeError):
            decode(b"i0" + str(i).encode("ascii") + b"e")
