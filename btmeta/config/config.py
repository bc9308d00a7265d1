"""Configuration management for btmeta.

Configuration is read from a TOML file, then overridden from ``BTMETA_*``
environment variables, then validated by the pydantic models in
:mod:`btmeta.models`.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import toml

from btmeta.models import (
    BencodeConfig,
    Config,
    TorrentConfig,
    TrackerConfig,
)
from btmeta.utils.exceptions import ConfigurationError
from btmeta.utils.logging_config import setup_logging

CONFIG_FILENAME = "btmeta.toml"

ENV_MAPPINGS: dict[str, str] = {
    "BTMETA_LOG_LEVEL": "observability.log_level",
    "BTMETA_LOG_FILE": "observability.log_file",
    "BTMETA_STRUCTURED_LOGGING": "observability.structured_logging",
    "BTMETA_LOG_CORRELATION_ID": "observability.log_correlation_id",
    "BTMETA_BENCODE_MAX_DEPTH": "bencode.max_depth",
    "BTMETA_TORRENT_MAX_FILE_SIZE": "torrent.max_file_size",
    "BTMETA_TRACKER_ACCEPT_DICT_PEERS": "tracker.accept_dictionary_peers",
}

# Global configuration instance
_config_manager: ConfigManager | None = None


_BOOL_PATHS = frozenset(
    {
        "observability.structured_logging",
        "observability.log_correlation_id",
        "tracker.accept_dictionary_peers",
    }
)


def _parse_env_value(raw: str, path: str) -> bool | int | str:
    if path == "observability.log_level":
        return raw.upper()

    if path in _BOOL_PATHS:
        low = raw.lower()
        if low in {"true", "1", "yes", "on"}:
            return True
        if low in {"false", "0", "no", "off"}:
            return False
        return raw
    try:
        return int(raw)
    except ValueError:
        return raw


def _set_nested(d: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    cur = d
    for p in parts[:-1]:
        cur = cur.setdefault(p, {})
    cur[parts[-1]] = value


class ConfigManager:
    """Loads and validates configuration."""

    def __init__(self, config_file: str | Path | None = None):
        """Initialize configuration manager.

        Args:
            config_file: Path to TOML config file. If None, searches for btmeta.toml

        """
        self.config_file = self._find_config_file(config_file)
        self.config = self._load_config()

    def _find_config_file(
        self,
        config_file: str | Path | None,
    ) -> Path | None:
        """Find configuration file in standard locations."""
        if config_file:
            return Path(config_file)

        search_paths = [
            Path.cwd() / CONFIG_FILENAME,
            Path.home() / ".config" / "btmeta" / CONFIG_FILENAME,
            Path.home() / f".{CONFIG_FILENAME}",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    def _load_config(self) -> Config:
        """Load configuration from file and environment."""
        config_data: dict[str, Any] = {}

        if self.config_file and self.config_file.exists():
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    config_data.update(toml.load(f))
            except (OSError, toml.TomlDecodeError) as e:
                logging.getLogger(__name__).warning(
                    "Failed to load config file %s: %s", self.config_file, e
                )

        config_data = self._merge_config(config_data, self._get_env_config())

        try:
            return Config(**config_data)
        except Exception as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigurationError(msg) from e

    def _get_env_config(self) -> dict[str, Any]:
        """Get configuration from environment variables."""
        env_config: dict[str, Any] = {}

        for env_name, cfg_path in ENV_MAPPINGS.items():
            raw = os.getenv(env_name)
            if raw is None:
                continue
            _set_nested(env_config, cfg_path, _parse_env_value(raw, cfg_path))

        return env_config

    def _merge_config(
        self,
        base: dict[str, Any],
        override: dict[str, Any],
    ) -> dict[str, Any]:
        """Merge configuration dictionaries recursively."""
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value

        return result

    def export(self) -> str:
        """Export current configuration as TOML."""
        return toml.dumps(self.config.model_dump(mode="json", exclude_none=True))

    def _setup_logging(self) -> None:
        setup_logging(self.config.observability)


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager.config


def init_config(config_file: str | Path | None = None) -> ConfigManager:
    """Initialize the global configuration manager and set up logging from it.

    :func:`get_config` alone never touches logging.
    """
    global _config_manager
    _config_manager = ConfigManager(config_file)
    _config_manager._setup_logging()  # noqa: SLF001
    return _config_manager


def set_config(new_config: Config) -> None:
    """Replace the global configuration at runtime.

    Reconfigures logging based on the new config.
    """
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager(None)
    _config_manager.config = new_config
    _config_manager._setup_logging()  # noqa: SLF001


def reset_config() -> None:
    """Drop the global configuration so the next access reloads it."""
    global _config_manager
    _config_manager = None


def get_bencode_config() -> BencodeConfig:
    """Get bencode configuration."""
    return get_config().bencode


def get_torrent_config() -> TorrentConfig:
    """Get torrent configuration."""
    return get_config().torrent


def get_tracker_config() -> TrackerConfig:
    """Get tracker configuration."""
    return get_config().tracker
