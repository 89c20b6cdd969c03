"""Configuration management for the Phoenix migration CLI."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

from diffslot.rules import rule_from_dict
from diffslot.types import TranslationRule
from phoenix.exceptions import ConfigError
from phoenix.version import DEFAULT_CONFIG

LOGGER = logging.getLogger(__name__)


class Config:
    """Configuration manager with file and environment support."""

    CONFIG_FILENAMES = [
        ".phoenix.yaml",
        ".phoenix.yml",
        "phoenix.yaml",
        "phoenix.yml",
    ]

    def __init__(self) -> None:
        self._config: dict[str, Any] = dict(DEFAULT_CONFIG)
        self._config_path: Path | None = None

    def load(self, config_path: Path | None = None) -> "Config":
        """Load configuration from file and environment."""
        # 1. Load from config file
        if config_path:
            if not config_path.exists():
                raise ConfigError(f"Config file not found: {config_path}")
            self._load_file(config_path)
        else:
            self._auto_discover()

        # 2. Override with environment variables
        self._load_env()

        return self

    def _auto_discover(self) -> None:
        """Auto-discover config file in current directory or home."""
        search_dirs = [Path.cwd(), Path.home()]

        for search_dir in search_dirs:
            for filename in self.CONFIG_FILENAMES:
                config_path = search_dir / filename
                if config_path.exists():
                    self._load_file(config_path)
                    return

    def _load_file(self, path: Path) -> None:
        """Load configuration from YAML file."""
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            LOGGER.warning("Ignoring unreadable config file %s: %s", path, exc)
            return

        if not isinstance(data, dict):
            LOGGER.warning("Ignoring config file %s: top level is not a mapping", path)
            return

        self._config.update(data)
        self._config_path = path

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        env_mappings = {
            "PHOENIX_STORE_DIR": "store_dir",
            "PHOENIX_OUTPUT_DIR": "output_dir",
            "PHOENIX_LEDGER_PATH": "ledger_path",
            "PHOENIX_ROLLOUT_STATE": "rollout_state_path",
            "PHOENIX_CONCURRENCY": "concurrency",
            "PHOENIX_MIN_CONFIDENCE": "min_confidence",
            "PHOENIX_MAX_DIFF_BYTES": "max_diff_bytes",
            "PHOENIX_VERBOSE": "verbose",
        }

        for env_var, config_key in env_mappings.items():
            value = os.environ.get(env_var)
            if value is None:
                continue
            try:
                if config_key in ("concurrency", "max_diff_bytes"):
                    self._config[config_key] = int(value)
                elif config_key == "min_confidence":
                    self._config[config_key] = float(value)
                elif config_key == "verbose":
                    self._config[config_key] = value.lower() in ("1", "true", "yes")
                else:
                    self._config[config_key] = value
            except ValueError as exc:
                raise ConfigError(f"Invalid value for {env_var}: {value!r}") from exc

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value."""
        self._config[key] = value

    def path(self, key: str) -> Path:
        """Get a configuration value as a filesystem path."""
        return Path(str(self._config.get(key) or DEFAULT_CONFIG[key]))

    def extra_rules(self) -> dict[str, TranslationRule]:
        """Translation rules declared under ``rules:`` in the config file."""
        rules: dict[str, TranslationRule] = {}
        for index, entry in enumerate(self._config.get("rules") or []):
            if not isinstance(entry, dict) or "pattern" not in entry:
                raise ConfigError(f"Rule #{index + 1} needs at least a pattern")
            rule_id = str(entry.get("id") or f"custom_rule_{index + 1}")
            try:
                rules[rule_id] = rule_from_dict(entry)
            except (ValueError, re.error) as exc:
                raise ConfigError(f"Invalid rule {rule_id}: {exc}") from exc
        return rules

    @property
    def config_path(self) -> Path | None:
        """Return the path to the loaded config file."""
        return self._config_path

    def to_dict(self) -> dict[str, Any]:
        """Return configuration as dictionary."""
        return dict(self._config)
