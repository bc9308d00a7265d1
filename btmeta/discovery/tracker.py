"""HTTP tracker announce responses.

This module decodes the bencoded body a tracker returns for an announce and
builds the announce URL for the caller's HTTP transport. Fetching the bytes
is left to a :class:`TrackerTransport` supplied by the caller.
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import urllib.parse
from typing import TYPE_CHECKING, Protocol

from btmeta.config import get_config
from btmeta.core.bencode import BencodeValue, decode
from btmeta.models import PeerInfo, TrackerEvent, TrackerResponse
from btmeta.utils.exceptions import (
    BencodeDecodeError,
    ConfigurationError,
    TrackerError,
    TrackerErrorKind,
)
from btmeta.utils.logging_config import (
    get_correlation_id,
    log_exception,
    set_correlation_id,
)

if TYPE_CHECKING:  # pragma: no cover
    from btmeta.models import Config

logger = logging.getLogger(__name__)

COMPACT_PEER_SIZE = 6
INFO_HASH_LENGTH = 20
PEER_ID_LENGTH = 20


class TrackerTransport(Protocol):
    """Fetches an announce URL and returns the raw response body.

    Implementations raise :class:`TrackerError` with kind ``CONNECTION_FAILED``
    or ``TIMEOUT`` when the request cannot be completed.
    """

    async def fetch(self, url: str) -> bytes:
        """Perform the HTTP GET for ``url``."""
        ...


def _invalid(msg: str) -> TrackerError:
    return TrackerError(TrackerErrorKind.INVALID_RESPONSE, msg)


class TrackerResponseParser:
    """Decoder for HTTP tracker announce responses."""

    def __init__(self, config: Config | None = None) -> None:
        """Initialize the response parser.

        Args:
            config: Configuration to use; defaults to the global configuration

        Raises:
            TrackerError: ``INVALID_RESPONSE`` if the global configuration is invalid

        """
        if config is None:
            try:
                config = get_config()
            except ConfigurationError as e:
                msg = f"Cannot load configuration: {e}"
                raise _invalid(msg) from e
        self.max_depth = config.bencode.max_depth
        self.accept_dictionary_peers = config.tracker.accept_dictionary_peers

    def parse(self, response_data: bytes) -> TrackerResponse:
        """Parse a tracker response body.

        Args:
            response_data: Raw response data from tracker

        Returns:
            TrackerResponse object

        Raises:
            TrackerError: ``PARSE_ERROR`` for malformed bencode,
                ``TRACKER_FAILURE`` if the tracker reported a failure reason,
                ``INVALID_RESPONSE`` for anything else that is malformed

        """
        try:
            decoded = decode(response_data, self.max_depth)
        except BencodeDecodeError as e:
            logger.debug("Failed to parse tracker response: %s", e)
            msg = f"Failed to parse tracker response: {e}"
            raise TrackerError(TrackerErrorKind.PARSE_ERROR, msg) from e

        if not isinstance(decoded, dict):
            msg = "Tracker response is not a dictionary"
            raise _invalid(msg)

        # A failure reason wins over every other field.
        if b"failure reason" in decoded:
            raw_reason = decoded[b"failure reason"]
            reason = (
                raw_reason.decode("utf-8", errors="replace")
                if isinstance(raw_reason, bytes)
                else None
            )
            logger.debug("Tracker failure: %s", reason)
            msg = f"Tracker failure: {reason}" if reason else "Tracker failure"
            raise TrackerError(TrackerErrorKind.TRACKER_FAILURE, msg, reason)

        interval = decoded.get(b"interval")
        if not isinstance(interval, int):
            msg = "Missing or invalid interval in tracker response"
            raise _invalid(msg)

        peers = self._parse_peers(decoded.get(b"peers"))

        warning = decoded.get(b"warning message")
        response = TrackerResponse(
            interval=interval,
            min_interval=self._optional_int(decoded, b"min interval"),
            tracker_id=self._optional_bytes(decoded, b"tracker id"),
            complete=self._optional_int(decoded, b"complete") or 0,
            incomplete=self._optional_int(decoded, b"incomplete") or 0,
            peers=peers,
            warning_message=(
                warning.decode("utf-8", errors="replace")
                if isinstance(warning, bytes)
                else None
            ),
        )

        logger.debug(
            "Parsed tracker response: interval=%ds, peers=%d, seeders=%d, leechers=%d",
            response.interval,
            len(response.peers),
            response.complete,
            response.incomplete,
        )
        if response.warning_message:
            logger.warning("Tracker warning: %s", response.warning_message)
        return response

    @staticmethod
    def _optional_int(decoded: dict[bytes, BencodeValue], key: bytes) -> int | None:
        value = decoded.get(key)
        return value if isinstance(value, int) else None

    @staticmethod
    def _optional_bytes(decoded: dict[bytes, BencodeValue], key: bytes) -> bytes | None:
        value = decoded.get(key)
        return value if isinstance(value, bytes) else None

    def _parse_peers(self, peers_data: BencodeValue | None) -> tuple[PeerInfo, ...]:
        if peers_data is None:
            return ()
        if isinstance(peers_data, bytes):
            return self._parse_compact_peers(peers_data)
        if isinstance(peers_data, list):
            if not self.accept_dictionary_peers:
                msg = "Dictionary peer format is not supported"
                raise _invalid(msg)
            return self._parse_dictionary_peers(peers_data)
        msg = f"Unknown peers format: {type(peers_data).__name__}"
        raise _invalid(msg)

    def _parse_compact_peers(self, peers_data: bytes) -> tuple[PeerInfo, ...]:
        """Parse compact peer format.

        In compact format, peers are encoded as 6 bytes per peer:
        - 4 bytes: IP address (network byte order)
        - 2 bytes: port (network byte order)
        """
        if len(peers_data) % COMPACT_PEER_SIZE != 0:
            msg = f"Invalid compact peer data length: {len(peers_data)} bytes"
            raise _invalid(msg)

        return tuple(
            PeerInfo(
                ip=peers_data[start : start + 4],
                port=int.from_bytes(peers_data[start + 4 : start + 6], byteorder="big"),
            )
            for start in range(0, len(peers_data), COMPACT_PEER_SIZE)
        )

    def _parse_dictionary_peers(self, peers_data: list[BencodeValue]) -> tuple[PeerInfo, ...]:
        """Parse the non-compact form: a list of ``{ip, port, peer id}`` dicts.

        Entries that are not dictionaries, carry no IPv4 address, or have an
        invalid port are skipped.
        """
        peers = []
        for entry in peers_data:
            if not isinstance(entry, dict):
                logger.warning(
                    "Invalid peer entry type in dictionary format: %s, skipping peer",
                    type(entry).__name__,
                )
                continue

            raw_ip = entry.get(b"ip")
            port = entry.get(b"port")
            peer_id = entry.get(b"peer id")
            try:
                if not isinstance(raw_ip, bytes):
                    raise ValueError("missing ip")
                address = ipaddress.IPv4Address(raw_ip.decode("ascii"))
            except (UnicodeDecodeError, ValueError):
                logger.warning("Skipping peer without IPv4 address: %r", raw_ip)
                continue
            if not isinstance(port, int) or not 0 <= port <= 65535:
                logger.warning("Skipping peer %s with invalid port: %r", address, port)
                continue

            peers.append(
                PeerInfo(
                    ip=address.packed,
                    port=port,
                    peer_id=peer_id if isinstance(peer_id, bytes) else None,
                )
            )
        return tuple(peers)


def parse_tracker_response(response_data: bytes, config: Config | None = None) -> TrackerResponse:
    """Decode a tracker announce response body."""
    return TrackerResponseParser(config).parse(response_data)


def build_announce_url(
    announce_url: str,
    info_hash: bytes,
    peer_id: bytes,
    port: int,
    uploaded: int = 0,
    downloaded: int = 0,
    left: int = 0,
    event: TrackerEvent = TrackerEvent.NONE,
) -> str:
    """Build the complete tracker URL with all required parameters.

    Args:
        announce_url: Base tracker URL from torrent
        info_hash: SHA-1 hash of info dictionary
        peer_id: Client's peer ID
        port: Client listening port
        uploaded: Bytes uploaded
        downloaded: Bytes downloaded
        left: Bytes left to download
        event: Event type

    Returns:
        Complete tracker URL with query parameters

    """
    if len(info_hash) != INFO_HASH_LENGTH:
        msg = f"info_hash must be {INFO_HASH_LENGTH} bytes, got {len(info_hash)}"
        raise ValueError(msg)
    if len(peer_id) != PEER_ID_LENGTH:
        msg = f"peer_id must be {PEER_ID_LENGTH} bytes, got {len(peer_id)}"
        raise ValueError(msg)
    if not 0 <= port <= 65535:
        msg = f"Invalid port: {port}"
        raise ValueError(msg)

    # Raw bytes must be percent-encoded directly; urlencode() would re-encode them.
    query_parts = [
        f"info_hash={urllib.parse.quote(info_hash, safe='')}",
        f"peer_id={urllib.parse.quote(peer_id, safe='')}",
        f"port={port}",
        f"uploaded={uploaded}",
        f"downloaded={downloaded}",
        f"left={left}",
        "compact=1",
    ]
    if event is not TrackerEvent.NONE:
        query_parts.append(f"event={event.value}")

    separator = "&" if "?" in announce_url else "?"
    return f"{announce_url}{separator}{'&'.join(query_parts)}"


async def announce(
    transport: TrackerTransport,
    announce_url: str,
    info_hash: bytes,
    peer_id: bytes,
    port: int,
    uploaded: int = 0,
    downloaded: int = 0,
    left: int = 0,
    event: TrackerEvent = TrackerEvent.NONE,
    parser: TrackerResponseParser | None = None,
) -> TrackerResponse:
    """Announce to a tracker through ``transport`` and decode its response.

    Raises:
        TrackerError: With ``TIMEOUT`` or ``CONNECTION_FAILED`` when the
            transport fails, otherwise as :meth:`TrackerResponseParser.parse`

    """
    url = build_announce_url(
        announce_url, info_hash, peer_id, port, uploaded, downloaded, left, event
    )
    if get_correlation_id() is None:
        set_correlation_id()
    logger.debug("Announcing to tracker: %s", url)

    try:
        body = await transport.fetch(url)
    except TrackerError as e:
        log_exception(logger, e, f"Announce to {announce_url}")
        raise
    except (asyncio.TimeoutError, TimeoutError) as e:
        msg = f"Tracker request timed out: {announce_url}"
        error = TrackerError(TrackerErrorKind.TIMEOUT, msg)
        log_exception(logger, error, f"Announce to {announce_url}")
        raise error from e
    except OSError as e:
        msg = f"Tracker connection failed: {e}"
        error = TrackerError(TrackerErrorKind.CONNECTION_FAILED, msg)
        log_exception(logger, error, f"Announce to {announce_url}")
        raise error from e

    return (parser or TrackerResponseParser()).parse(body)
