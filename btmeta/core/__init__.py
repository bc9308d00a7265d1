"""Core decoding: bencode codec and torrent metainfo."""

from __future__ import annotations

from btmeta.core.bencode import BencodeDecoder, BencodeEncoder, decode, encode
from btmeta.core.torrent import TorrentParser

__all__ = ["BencodeDecoder", "BencodeEncoder", "TorrentParser", "decode", "encode"]
