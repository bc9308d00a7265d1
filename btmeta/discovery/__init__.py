"""Tracker communication helpers."""

from __future__ import annotations

from btmeta.discovery.tracker import (
    TrackerResponseParser,
    TrackerTransport,
    announce,
    build_announce_url,
    parse_tracker_response,
)

__all__ = [
    "TrackerResponseParser",
    "TrackerTransport",
    "announce",
    "build_announce_url",
    "parse_tracker_response",
]
