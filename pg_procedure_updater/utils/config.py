"""Configuration management for the procedure list updater."""
from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional

from pg_procedure_updater.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULTS: Dict[str, Any] = {
    "app": {
        "name": "PgSQL Procedure List Updater",
        "version": "1.0.0",
    },
    "updater": {
        "recurse": True,
        "output_suffix": "_updated",
        "encoding": "utf-8",
        "argument_indent": "    ",
        "emit_argument_comments": False,
        "return_code_arguments": ["_returnCode"],
    },
    "logging": {
        "level": "INFO",
        "log_dir": "logs",
    },
    "report": {
        "format": "csv",
    },
}


class Config:
    """Application configuration stored as JSON."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_path: Path to the configuration file. If None, the defaults
                are used and nothing is written to disk.
        """
        self.config_path = Path(config_path) if config_path is not None else None
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file, or create the file with defaults."""
        self._config = self._get_defaults()
        if self.config_path is None:
            return

        if not self.config_path.exists():
            self._save_config()
            return

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Error loading config {self.config_path}: {e}. Using defaults.")
            return

        if not isinstance(loaded, dict):
            logger.warning(f"Config {self.config_path} does not contain a JSON object. Using defaults.")
            return

        # Sections in the file override the defaults key by key
        for section, values in loaded.items():
            if isinstance(values, dict) and isinstance(self._config.get(section), dict):
                self._config[section].update(values)
            else:
                self._config[section] = values

    def _save_config(self) -> None:
        if self.config_path is None:
            return
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            json.dump(self._config, f, indent=2)

    @staticmethod
    def _get_defaults() -> Dict[str, Any]:
        return copy.deepcopy(DEFAULTS)

    @property
    def config(self) -> Dict[str, Any]:
        return self._config

    def get(self, section: str, key: Optional[str] = None, default: Any = None) -> Any:
        """Get configuration value.

        Args:
            section: Configuration section name
            key: Optional key within section. If None, returns entire section.
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if section not in self._config:
            return default

        if key is None:
            return self._config[section]

        return self._config[section].get(key, default)

    def set(self, section: str, key: str, value: Any) -> None:
        """Set a configuration value and save the file (when there is one)."""
        self._config.setdefault(section, {})[key] = value
        self._save_config()

    def get_section(self, section: str) -> Dict[str, Any]:
        return self._config.get(section, {})

    def reload(self) -> None:
        self._load_config()
