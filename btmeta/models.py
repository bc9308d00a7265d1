"""Pydantic models for btmeta.

Provides validated, immutable data models for decoded torrents and tracker
responses, plus the configuration schema.
"""

from __future__ import annotations

import bisect
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from btmeta.utils.hashing import to_hex


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class TrackerEvent(str, Enum):
    """Announce events understood by HTTP trackers."""

    STARTED = "started"
    STOPPED = "stopped"
    COMPLETED = "completed"
    NONE = ""


class FileInfo(BaseModel):
    """A file inside a torrent, positioned in the concatenated payload."""

    path: str = Field(..., description="File path, rooted at the torrent name for multi-file torrents")
    path_parts: tuple[str, ...] = Field(..., description="Path components")
    length: int = Field(..., ge=0, description="File length in bytes")
    offset: int = Field(..., ge=0, description="Byte offset of the file in the torrent payload")

    model_config = {"frozen": True}

    @property
    def name(self) -> str:
        """Final path component."""
        return self.path_parts[-1]

    @property
    def end(self) -> int:
        """Offset one past the last byte of the file."""
        return self.offset + self.length


class TorrentInfo(BaseModel):
    """Torrent information decoded from a metainfo file."""

    name: str = Field(..., description="Torrent name")
    info_hash: bytes = Field(..., min_length=20, max_length=20, description="Info hash")
    announce: str = Field(..., description="Announce URL")
    announce_list: tuple[tuple[str, ...], ...] = Field(
        default=(), description="Tiered fallback tracker URLs (BEP 12)"
    )
    comment: str | None = Field(None, description="Torrent comment")
    created_by: str | None = Field(None, description="Created by")
    creation_date: datetime | None = Field(None, description="Creation date (UTC)")
    encoding: str | None = Field(None, description="String encoding")
    is_private: bool = Field(
        default=False,
        description="Whether torrent is marked as private (BEP 27)",
    )

    # File information
    files: tuple[FileInfo, ...] = Field(..., description="File list")
    total_size: int = Field(..., ge=0, description="Total length in bytes")

    # Piece information
    piece_length: int = Field(..., gt=0, description="Piece length in bytes")
    pieces: tuple[bytes, ...] = Field(default=(), description="Piece hashes")

    model_config = {"frozen": True}

    @property
    def num_pieces(self) -> int:
        """Number of pieces."""
        return len(self.pieces)

    @property
    def is_single_file(self) -> bool:
        """Whether the torrent holds exactly one file."""
        return len(self.files) == 1

    @property
    def info_hash_hex(self) -> str:
        """Info hash as 40 lowercase hex characters."""
        return to_hex(self.info_hash)

    def piece_size(self, index: int) -> int:
        """Size of piece ``index`` in bytes; 0 if the index is out of range.

        Only the final piece may be short.
        """
        if index < 0 or index >= self.num_pieces:
            return 0
        if index == self.num_pieces - 1:
            remainder = self.total_size % self.piece_length
            return remainder or self.piece_length
        return self.piece_length

    def piece_hash(self, index: int) -> bytes | None:
        """Expected SHA-1 of piece ``index``, or None if out of range."""
        if index < 0 or index >= self.num_pieces:
            return None
        return self.pieces[index]

    def verify_piece_hash(self, index: int, candidate: bytes) -> bool:
        """Check a piece digest against the one recorded in the torrent."""
        expected = self.piece_hash(index)
        return expected is not None and expected == candidate

    def file_for_offset(self, offset: int) -> FileInfo | None:
        """Return the file containing payload byte ``offset``.

        Zero-length files never contain a byte, so they are never returned.
        """
        if offset < 0 or offset >= self.total_size:
            return None
        ends = [f.end for f in self.files]
        return self.files[bisect.bisect_right(ends, offset)]


class PeerInfo(BaseModel):
    """IPv4 peer returned by a tracker."""

    ip: bytes = Field(..., min_length=4, max_length=4, description="IPv4 address octets")
    port: int = Field(..., ge=0, le=65535, description="Peer port number")
    peer_id: bytes | None = Field(None, description="Peer ID (dictionary peer form only)")

    model_config = {"frozen": True}

    @property
    def ip_string(self) -> str:
        """Dotted-quad form of the address."""
        return ".".join(str(octet) for octet in self.ip)

    def __str__(self) -> str:
        """String representation of peer info."""
        return f"{self.ip_string}:{self.port}"


class TrackerResponse(BaseModel):
    """Decoded tracker announce response."""

    interval: int = Field(..., description="Announce interval in seconds")
    min_interval: int | None = Field(None, description="Minimum announce interval in seconds")
    tracker_id: bytes | None = Field(None, description="Opaque token to send on later announces")
    complete: int = Field(default=0, description="Number of seeders")
    incomplete: int = Field(default=0, description="Number of leechers")
    peers: tuple[PeerInfo, ...] = Field(default=(), description="List of peers")
    warning_message: str | None = Field(None, description="Warning message")

    model_config = {"frozen": True}


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    log_file: str | None = Field(None, description="Log file path")
    structured_logging: bool = Field(
        default=False, description="Write JSON records to the log file"
    )
    log_correlation_id: bool = Field(
        default=True,
        description="Include correlation IDs",
    )


class BencodeConfig(BaseModel):
    """Bencode decoder limits."""

    max_depth: int = Field(
        default=256,
        ge=1,
        le=400,
        description="Maximum nesting of lists and dictionaries",
    )


class TorrentConfig(BaseModel):
    """Metainfo loading configuration."""

    max_file_size: int = Field(
        default=50 * 1024 * 1024,
        gt=0,
        description="Largest torrent file accepted from disk, in bytes",
    )


class TrackerConfig(BaseModel):
    """Tracker response handling configuration."""

    accept_dictionary_peers: bool = Field(
        default=True,
        description="Decode the non-compact (list of dictionaries) peer form",
    )


class Config(BaseModel):
    """Main configuration model."""

    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )
    bencode: BencodeConfig = Field(
        default_factory=BencodeConfig,
        description="Bencode configuration",
    )
    torrent: TorrentConfig = Field(
        default_factory=TorrentConfig,
        description="Torrent configuration",
    )
    tracker: TrackerConfig = Field(
        default_factory=TrackerConfig,
        description="Tracker configuration",
    )
