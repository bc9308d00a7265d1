"""Exception hierarchy for btmeta.

Every decoding layer raises exactly one exception type, and each of them
carries a closed ``kind`` enum so callers can branch on the failure without
parsing messages.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class BtmetaError(Exception):
    """Base exception for all btmeta errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize btmeta error."""
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class ValidationError(BtmetaError):
    """Data validation errors."""


class ConfigurationError(ValidationError):
    """Configuration validation errors."""


class NetworkError(BtmetaError):
    """Network-related errors."""


class BencodeErrorKind(str, Enum):
    """Ways a bencode parse can fail."""

    UNEXPECTED_END = "unexpected_end"
    INVALID_INTEGER = "invalid_integer"
    INVALID_STRING = "invalid_string"
    INVALID_LENGTH = "invalid_length"
    INVALID_FORMAT = "invalid_format"
    UNEXPECTED_CHARACTER = "unexpected_character"


class TorrentErrorKind(str, Enum):
    """Ways a metainfo decode can fail."""

    INVALID_FORMAT = "invalid_format"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    INVALID_FIELD_TYPE = "invalid_field_type"
    INVALID_PIECE_LENGTH = "invalid_piece_length"
    INVALID_PIECE_HASH = "invalid_piece_hash"


class TrackerErrorKind(str, Enum):
    """Ways an announce can fail."""

    CONNECTION_FAILED = "connection_failed"
    INVALID_RESPONSE = "invalid_response"
    TRACKER_FAILURE = "tracker_failure"
    TIMEOUT = "timeout"
    PARSE_ERROR = "parse_error"


class BencodeError(ValidationError):
    """Bencode encoding/decoding errors."""


class BencodeDecodeError(BencodeError):
    """Raised when input bytes are not valid bencode."""

    def __init__(
        self,
        kind: BencodeErrorKind,
        message: str,
        position: int | None = None,
    ):
        """Initialize decode error with its kind and input offset."""
        details = {"position": position} if position is not None else None
        super().__init__(message, details)
        self.kind = kind
        self.position = position


class BencodeEncodeError(BencodeError):
    """Raised when a value cannot be represented in bencode."""


class TorrentError(ValidationError):
    """Torrent file validation errors."""

    def __init__(
        self,
        kind: TorrentErrorKind,
        message: str,
        field: str | None = None,
    ):
        """Initialize torrent error with its kind and offending field."""
        super().__init__(message, {"field": field} if field else None)
        self.kind = kind
        self.field = field


class TrackerError(NetworkError):
    """Tracker communication errors."""

    def __init__(
        self,
        kind: TrackerErrorKind,
        message: str,
        reason: str | None = None,
    ):
        """Initialize tracker error.

        Args:
            kind: Failure category
            message: Human readable message
            reason: Tracker supplied ``failure reason`` text, if any

        """
        super().__init__(message, {"reason": reason} if reason else None)
        self.kind = kind
        self.reason = reason
