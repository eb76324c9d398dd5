"""
Configuration management for solrepl.

Settings come from ~/.solrepl/config.json, overridden by SOLREPL_*
environment variables.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONFIG_PATH = Path.home() / ".solrepl" / "config.json"

DEFAULT_CONFIG = {
    "cache_dir": "~/.cache/solrepl",
    "solc_version": None,
    "snapshot_prefix": "solrepl",
    "log_level": "WARNING",
}

# Environment variable -> config field
ENV_OVERRIDES = {
    "SOLREPL_CACHE_DIR": "cache_dir",
    "SOLREPL_SOLC_VERSION": "solc_version",
    "SOLREPL_LOG_LEVEL": "log_level",
}


def _filter_dataclass_fields(data: dict[str, Any], cls: type) -> dict[str, Any]:
    """Filter dict to only include fields that exist in the dataclass."""
    valid_fields = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in valid_fields}


@dataclass
class ReplConfig:
    """
    solrepl user configuration.

    Attributes:
        cache_dir: Directory holding session snapshots
        solc_version: Pinned compiler version for new sessions (None = toolchain default)
        snapshot_prefix: Snapshot files are named ``<prefix>-<id>.json``
        log_level: Logging level name used by the CLI
    """

    cache_dir: str = "~/.cache/solrepl"
    solc_version: str | None = None
    snapshot_prefix: str = "solrepl"
    log_level: str = "WARNING"

    @property
    def resolved_cache_dir(self) -> Path:
        return Path(self.cache_dir).expanduser()

    @classmethod
    def load(cls, path: Path | None = None, environ: dict[str, str] | None = None) -> "ReplConfig":
        """
        Load config from file with defaults, then apply environment overrides.

        Args:
            path: Optional config file path. Defaults to ~/.solrepl/config.json
            environ: Environment mapping (defaults to os.environ)

        Returns:
            ReplConfig with user settings merged over defaults
        """
        if path is None:
            path = CONFIG_PATH
        if environ is None:
            environ = dict(os.environ)

        config = DEFAULT_CONFIG.copy()

        if path.exists():
            try:
                user_config = json.loads(path.read_text())
                if isinstance(user_config, dict):
                    config.update(user_config)
                else:
                    logger.warning(f"Ignoring config file {path}: expected a JSON object")
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Ignoring unreadable config file {path}: {e}")

        for env_name, field_name in ENV_OVERRIDES.items():
            value = environ.get(env_name)
            if value:
                config[field_name] = value

        return cls(**_filter_dataclass_fields(config, cls))

    def save(self, path: Path | None = None) -> None:
        """Save configuration to file."""
        if path is None:
            path = CONFIG_PATH

        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(
                {
                    "cache_dir": self.cache_dir,
                    "solc_version": self.solc_version,
                    "snapshot_prefix": self.snapshot_prefix,
                    "log_level": self.log_level,
                },
                f,
                indent=2,
            )


__all__ = ["CONFIG_PATH", "DEFAULT_CONFIG", "ENV_OVERRIDES", "ReplConfig"]
