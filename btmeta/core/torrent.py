"""Torrent file parsing for BitTorrent metainfo.

This module validates the metainfo dictionary, extracts file and piece
layout, and calculates the info hash as required by the BitTorrent protocol.
Decoding is all-or-nothing: the first violated constraint raises
:class:`~btmeta.utils.exceptions.TorrentError` and no partial result escapes.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from btmeta.config import get_config
from btmeta.core.bencode import BencodeValue, decode, encode
from btmeta.models import FileInfo, TorrentInfo
from btmeta.utils.exceptions import (
    BencodeDecodeError,
    ConfigurationError,
    TorrentError,
    TorrentErrorKind,
)
from btmeta.utils.hashing import SHA1_LENGTH, sha1
from btmeta.utils.logging_config import LoggingContext

if TYPE_CHECKING:  # pragma: no cover
    from btmeta.models import Config

logger = logging.getLogger(__name__)

BencodeDict = dict[bytes, BencodeValue]


def _text(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def _field_name(key: bytes) -> str:
    return key.decode("ascii", errors="replace")


def _require(container: BencodeDict, key: bytes) -> BencodeValue:
    if key not in container:
        msg = f"Missing required field: {_field_name(key)}"
        raise TorrentError(TorrentErrorKind.MISSING_REQUIRED_FIELD, msg, _field_name(key))
    return container[key]


def _require_bytes(container: BencodeDict, key: bytes) -> bytes:
    value = _require(container, key)
    if not isinstance(value, bytes):
        msg = f"Field {_field_name(key)} must be a byte string"
        raise TorrentError(TorrentErrorKind.INVALID_FIELD_TYPE, msg, _field_name(key))
    return value


def _require_int(container: BencodeDict, key: bytes) -> int:
    value = _require(container, key)
    if not isinstance(value, int):
        msg = f"Field {_field_name(key)} must be an integer"
        raise TorrentError(TorrentErrorKind.INVALID_FIELD_TYPE, msg, _field_name(key))
    return value


def _optional_text(container: BencodeDict, key: bytes) -> str | None:
    value = container.get(key)
    return _text(value) if isinstance(value, bytes) else None


def _parse_creation_date(container: BencodeDict) -> datetime | None:
    value = container.get(b"creation date")
    if not isinstance(value, int):
        return None
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        logger.debug("Ignoring out-of-range creation date: %d", value)
        return None


def _parse_announce_list(root: BencodeDict) -> tuple[tuple[str, ...], ...]:
    """Extract BEP 12 tiers; malformed tiers and URLs are skipped."""
    raw_tiers = root.get(b"announce-list")
    if not isinstance(raw_tiers, list):
        return ()

    tiers = []
    for raw_tier in raw_tiers:
        if not isinstance(raw_tier, list):
            continue
        tier = tuple(_text(url) for url in raw_tier if isinstance(url, bytes))
        if tier:
            tiers.append(tier)
    return tuple(tiers)


def _split_piece_hashes(pieces: bytes) -> tuple[bytes, ...]:
    if len(pieces) % SHA1_LENGTH != 0:
        msg = f"Invalid pieces data length: {len(pieces)} bytes (should be multiple of {SHA1_LENGTH})"
        raise TorrentError(TorrentErrorKind.INVALID_PIECE_HASH, msg, "pieces")
    return tuple(
        pieces[start : start + SHA1_LENGTH]
        for start in range(0, len(pieces), SHA1_LENGTH)
    )


def _check_length(length: int, field: str) -> int:
    if length < 0:
        msg = f"File length must not be negative: {length}"
        raise TorrentError(TorrentErrorKind.INVALID_FIELD_TYPE, msg, field)
    return length


class TorrentParser:
    """Parser for BitTorrent torrent files."""

    def __init__(self, config: Config | None = None) -> None:
        """Initialize the torrent parser.

        Args:
            config: Configuration to use; defaults to the global configuration

        Raises:
            TorrentError: ``INVALID_FORMAT`` if the global configuration is invalid

        """
        if config is None:
            try:
                config = get_config()
            except ConfigurationError as e:
                msg = f"Cannot load configuration: {e}"
                raise TorrentError(TorrentErrorKind.INVALID_FORMAT, msg) from e
        self.max_depth = config.bencode.max_depth
        self.max_file_size = config.torrent.max_file_size

    def parse(self, torrent_path: str | Path) -> TorrentInfo:
        """Parse a torrent file from a local path.

        Raises:
            TorrentError: If the file cannot be read or is not a valid torrent

        """
        with LoggingContext("torrent_parse", torrent_path=str(torrent_path)):
            return self.parse_bytes(self._read_from_file(torrent_path))

    def parse_bytes(self, data: bytes) -> TorrentInfo:
        """Parse raw metainfo bytes."""
        try:
            value = decode(data, self.max_depth)
        except BencodeDecodeError as e:
            msg = f"Invalid bencode in torrent: {e}"
            raise TorrentError(TorrentErrorKind.INVALID_FORMAT, msg) from e
        return self.parse_value(value)

    def parse_value(self, value: BencodeValue) -> TorrentInfo:
        """Build a :class:`TorrentInfo` from an already decoded metainfo value."""
        if not isinstance(value, dict):
            msg = "Torrent metainfo must be a dictionary"
            raise TorrentError(TorrentErrorKind.INVALID_FORMAT, msg)

        announce = _text(_require_bytes(value, b"announce"))

        info = _require(value, b"info")
        if not isinstance(info, dict):
            msg = "Field info must be a dictionary"
            raise TorrentError(TorrentErrorKind.INVALID_FIELD_TYPE, msg, "info")

        name = _text(_require_bytes(info, b"name"))
        piece_length = self._extract_piece_length(info)
        pieces = _split_piece_hashes(_require_bytes(info, b"pieces"))
        files = self._extract_file_info(info, name)

        # Hash the info value exactly as decoded, before any conversion.
        info_hash = sha1(encode(info))

        torrent = TorrentInfo(
            name=name,
            info_hash=info_hash,
            announce=announce,
            announce_list=_parse_announce_list(value),
            comment=_optional_text(value, b"comment"),
            created_by=_optional_text(value, b"created by"),
            creation_date=_parse_creation_date(value),
            encoding=_optional_text(value, b"encoding"),
            is_private=info.get(b"private") == 1,
            files=files,
            total_size=sum(f.length for f in files),
            piece_length=piece_length,
            pieces=pieces,
        )
        logger.debug(
            "Parsed %s torrent %s: %d file(s), %d bytes, %d pieces, info hash %s",
            "single-file" if b"length" in info else "multi-file",
            torrent.name,
            len(torrent.files),
            torrent.total_size,
            torrent.num_pieces,
            torrent.info_hash_hex,
        )
        return torrent

    def _read_from_file(self, file_path: str | Path) -> bytes:
        """Read torrent data from a local file."""
        path = Path(file_path)
        try:
            with open(path, "rb") as f:
                data = f.read(self.max_file_size + 1)
        except OSError as e:
            msg = f"Cannot read torrent file {path}: {e}"
            raise TorrentError(TorrentErrorKind.INVALID_FORMAT, msg) from e

        if len(data) > self.max_file_size:
            msg = f"Torrent file {path} exceeds {self.max_file_size} bytes"
            raise TorrentError(TorrentErrorKind.INVALID_FORMAT, msg)
        return data

    def _extract_piece_length(self, info: BencodeDict) -> int:
        piece_length = info.get(b"piece length")
        if not isinstance(piece_length, int) or piece_length <= 0:
            msg = f"Invalid piece length: {piece_length!r}"
            raise TorrentError(TorrentErrorKind.INVALID_PIECE_LENGTH, msg, "piece length")
        return piece_length

    def _extract_file_info(self, info: BencodeDict, name: str) -> tuple[FileInfo, ...]:
        """Extract file information from info dictionary.

        A ``length`` key selects single-file mode; otherwise ``files`` must
        list one dictionary per file with ``length`` and ``path`` keys.
        """
        if b"length" in info:
            length = _check_length(_require_int(info, b"length"), "length")
            return (FileInfo(path=name, path_parts=(name,), length=length, offset=0),)

        raw_files = info.get(b"files")
        if not isinstance(raw_files, list):
            msg = "Torrent must specify either length (single file) or files (multi-file)"
            raise TorrentError(TorrentErrorKind.MISSING_REQUIRED_FIELD, msg, "files")

        files = []
        offset = 0
        for raw_file in raw_files:
            if not isinstance(raw_file, dict):
                msg = "Entries of files must be dictionaries"
                raise TorrentError(TorrentErrorKind.INVALID_FIELD_TYPE, msg, "files")

            length = _check_length(_require_int(raw_file, b"length"), "length")

            raw_path = raw_file.get(b"path")
            if not isinstance(raw_path, list):
                msg = "File entry is missing its path list"
                raise TorrentError(TorrentErrorKind.MISSING_REQUIRED_FIELD, msg, "path")
            if not all(isinstance(part, bytes) for part in raw_path):
                msg = "Path components must be byte strings"
                raise TorrentError(TorrentErrorKind.INVALID_FIELD_TYPE, msg, "path")

            parts = (name, *(_text(part) for part in raw_path))
            files.append(
                FileInfo(path="/".join(parts), path_parts=parts, length=length, offset=offset)
            )
            offset += length

        return tuple(files)
