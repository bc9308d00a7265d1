"""SHA-1 digests and their hex representation."""

from __future__ import annotations

import hashlib
import string

SHA1_LENGTH = 20
SHA1_HEX_LENGTH = SHA1_LENGTH * 2

_HEX_DIGITS = frozenset(string.hexdigits)


def sha1(data: bytes) -> bytes:
    """Return the 20-byte SHA-1 digest of ``data``."""
    return hashlib.sha1(data).digest()  # nosec B324 - SHA-1 required by BitTorrent protocol (BEP 3)


def to_hex(digest: bytes) -> str:
    """Format a 20-byte digest as 40 lowercase hex characters."""
    if len(digest) != SHA1_LENGTH:
        msg = f"Digest must be {SHA1_LENGTH} bytes, got {len(digest)}"
        raise ValueError(msg)
    return digest.hex()


def from_hex(text: str) -> bytes:
    """Parse 40 hex characters back into a 20-byte digest.

    Raises:
        ValueError: If ``text`` is not exactly 40 hex characters

    """
    if len(text) != SHA1_HEX_LENGTH:
        msg = f"Invalid hex string length (expected {SHA1_HEX_LENGTH} characters, got {len(text)})"
        raise ValueError(msg)
    # bytes.fromhex alone would accept embedded whitespace
    if not _HEX_DIGITS.issuperset(text):
        msg = f"Invalid hex character in {text!r}"
        raise ValueError(msg)
    return bytes.fromhex(text)
