"""Pytest configuration and shared fixtures for btmeta tests."""

from __future__ import annotations

import logging

import pytest

from btmeta.config import reset_config
from btmeta.config.config import ENV_MAPPINGS
from btmeta.models import Config


def pytest_configure(config):
    """Register all project markers to avoid warnings when ini isn't loaded."""
    markers = [
        ("asyncio", "marks tests as async (deselect with '-m \"not asyncio\"')"),
        ("unit", "marks tests as unit tests"),
        ("core", "marks tests as core functionality tests"),
        ("tracker", "marks tests as tracker tests"),
        ("config", "marks tests as configuration tests"),
        ("observability", "marks tests as observability tests"),
        ("property", "marks tests as property-based tests"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch):
    """Keep BTMETA_* variables from the outer environment out of tests."""
    for env_name in ENV_MAPPINGS:
        monkeypatch.delenv(env_name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Clean up logging handlers after each test to prevent closed file errors."""
    yield
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    # setup_logging() detaches the package logger from the root logger
    package_logger = logging.getLogger("btmeta")
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def config() -> Config:
    """Default configuration, independent of the global instance."""
    return Config()


@pytest.fixture
def single_file_torrent() -> dict:
    """Metainfo dictionary for a 1000-byte single-file torrent."""
    return {
        b"announce": b"http://tracker.example.com:6969/announce",
        b"info": {
            b"name": b"test.txt",
            b"length": 1000,
            b"piece length": 256,
            b"pieces": bytes(range(20)) * 4,
        },
    }


@pytest.fixture
def multi_file_torrent() -> dict:
    """Metainfo dictionary for a two-file torrent."""
    return {
        b"announce": b"http://tracker.example.com/announce",
        b"info": {
            b"name": b"album",
            b"piece length": 512,
            b"pieces": b"\xaa" * 60,
            b"files": [
                {b"length": 512, b"path": [b"a.txt"]},
                {b"length": 1024, b"path": [b"sub", b"b.txt"]},
            ],
        },
    }
