"""Bencoding module for BitTorrent protocol.

This module provides a convenient interface to the core bencode functionality.
"""

from __future__ import annotations

from btmeta.core.bencode import BencodeValue, decode, decode_prefix, encode
from btmeta.utils.exceptions import BencodeDecodeError, BencodeEncodeError

__all__ = [
    "BencodeDecodeError",
    "BencodeEncodeError",
    "BencodeValue",
    "decode",
    "decode_prefix",
    "encode",
]
