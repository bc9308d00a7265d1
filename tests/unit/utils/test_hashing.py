"""Tests for SHA-1 helpers and the hex codec."""

from __future__ import annotations

import pytest

pytestmark = [pytest.mark.unit]

from btmeta.utils.hashing import SHA1_LENGTH, from_hex, sha1, to_hex


class TestSha1:
    """Test cases for the hash boundary."""

    def test_known_vectors(self):
        """Digests match published SHA-1 test vectors."""
        assert sha1(b"").hex() == "da39a3ee5e6b4b0d3255bfef95601890afd80709"
        assert sha1(b"abc").hex() == "a9993e364706816aba3e25717850c26c9cd0d89d"

    def test_digest_length(self):
        """Digests are always 20 bytes."""
        assert len(sha1(b"x" * 10_000)) == SHA1_LENGTH


class TestHexCodec:
    """Test cases for to_hex/from_hex."""

    def test_to_hex(self):
        """Digests are written as lowercase hex."""
        assert to_hex(bytes(range(20))) == "000102030405060708090a0b0c0d0e0f10111213"
        assert to_hex(b"\xab" * 20) == "ab" * 20

    def test_from_hex(self):
        """Upper and lower case hex both parse."""
        assert from_hex("000102030405060708090a0b0c0d0e0f10111213") == bytes(range(20))
        assert from_hex("AB" * 20) == b"\xab" * 20

    def test_roundtrip(self):
        """Hex output parses back to the same digest."""
        digest = sha1(b"round trip")
        assert from_hex(to_hex(digest)) == digest

    @pytest.mark.parametrize("digest", [b"", b"\x00" * 19, b"\x00" * 21])
    def test_to_hex_wrong_length(self, digest):
        """Only 20-byte digests are accepted."""
        with pytest.raises(ValueError):
            to_hex(digest)

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "00" * 19,
            "00" * 21,
            "zz" + "00" * 19,
            " 0" + "00" * 19,
            "0x" + "00" * 19,
        ],
    )
    def test_from_hex_invalid(self, text):
        """Wrong lengths and non-hex characters are rejected."""
        with pytest.raises(ValueError):
            from_hex(text)
