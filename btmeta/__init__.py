"""btmeta - BitTorrent metainfo and tracker response decoding."""

from __future__ import annotations

__version__ = "0.1.0"

from btmeta.core.bencode import decode, decode_prefix, encode
from btmeta.core.torrent import TorrentParser
from btmeta.discovery.tracker import (
    TrackerResponseParser,
    announce,
    build_announce_url,
    parse_tracker_response,
)
from btmeta.models import FileInfo, PeerInfo, TorrentInfo, TrackerEvent, TrackerResponse
from btmeta.utils.exceptions import (
    BencodeDecodeError,
    BencodeEncodeError,
    BencodeErrorKind,
    BtmetaError,
    TorrentError,
    TorrentErrorKind,
    TrackerError,
    TrackerErrorKind,
)

__all__ = [
    "BencodeDecodeError",
    "BencodeEncodeError",
    "BencodeErrorKind",
    "BtmetaError",
    "FileInfo",
    "PeerInfo",
    "TorrentError",
    "TorrentErrorKind",
    "TorrentInfo",
    "TorrentParser",
    "TrackerError",
    "TrackerErrorKind",
    "TrackerEvent",
    "TrackerResponse",
    "TrackerResponseParser",
    "__version__",
    "announce",
    "build_announce_url",
    "decode",
    "decode_prefix",
    "encode",
    "parse_tracker_response",
]
