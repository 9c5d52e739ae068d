# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Configuration loading and validation for codemap."""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".codemap.yml"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigurationError(Exception):
    """Raised when configuration validation fails critically."""

    pass


class Config:
    """Configuration for codemap analysis runs.

    Loads configuration from .codemap.yml with validation and defaults.
    Invalid values are logged as warnings and replaced by their defaults.
    """

    DEFAULTS: Dict[str, Any] = {
        "default_depth": 5,
        "ignore_patterns": [],
        "max_file_lines": 10000,
        "parse_workers": 4,
        "cache_enabled": True,
        "cache_file": ".codemap_cache.json",  # Relative to the project root; "" disables
        "log_level": "WARNING",
        "rules": {},
    }

    def __init__(self, config_path: Optional[Path] = None, required: bool = False):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, uses .codemap.yml
                in the current directory.
            required: Whether a missing file is an error rather than "use defaults".

        Raises:
            ConfigurationError: If required and the file does not exist.
        """
        if config_path is None:
            config_path = Path.cwd() / CONFIG_FILE_NAME

        if required and not config_path.is_file():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        self.config_path = config_path
        self._config: Dict[str, Any] = {}
        self._load_config()

    @classmethod
    def for_project(cls, project_root: Path) -> "Config":
        """Load .codemap.yml from a project root."""
        return cls(Path(project_root) / CONFIG_FILE_NAME)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "Config":
        """Build a configuration from a dict, validated like a loaded file."""
        config = cls.__new__(cls)
        config.config_path = None
        config._config = cls._copy_defaults()
        config._validate_and_merge(values)
        return config

    @classmethod
    def _copy_defaults(cls) -> Dict[str, Any]:
        return copy.deepcopy(cls.DEFAULTS)

    def _load_config(self) -> None:
        """Load and validate configuration from file."""
        self._config = self._copy_defaults()

        if not self.config_path.exists():
            logger.info(f"Configuration file not found at {self.config_path}, using defaults")
            return

        try:
            with open(self.config_path, encoding="utf-8") as f:
                loaded_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.warning(
                f"Error parsing configuration file {self.config_path}: {e}, using defaults"
            )
            return
        except OSError as e:
            logger.warning(
                f"Unexpected error loading configuration file "
                f"{self.config_path}: {e}, using defaults"
            )
            return

        if loaded_config is None:
            logger.warning("Configuration file is empty, using defaults")
            return

        if not isinstance(loaded_config, dict):
            logger.warning(
                f"Configuration file must contain a YAML dictionary, "
                f"got {type(loaded_config)}, using defaults"
            )
            return

        self._validate_and_merge(loaded_config)

    def _validate_and_merge(self, loaded_config: Dict[str, Any]) -> None:
        """Validate loaded configuration and merge with defaults.

        Invalid parameters are logged as warnings and defaults are used.
        """
        for key, value in loaded_config.items():
            if key not in self.DEFAULTS:
                logger.warning(f"Unknown configuration parameter '{key}', ignoring")
                continue

            if not self._validate_parameter(key, value):
                logger.warning(
                    f"Invalid value for '{key}': {value}, using default {self.DEFAULTS[key]}"
                )
                continue

            if key == "log_level":
                value = value.upper()
            self._config[key] = value

    def _validate_parameter(self, key: str, value: Any) -> bool:
        """Validate a configuration parameter.

        Returns:
            True if valid, False if invalid
        """
        expected_type = type(self.DEFAULTS[key])
        if not isinstance(value, expected_type):
            return False
        # bool is a subclass of int
        if expected_type is int and isinstance(value, bool):
            return False

        if key == "default_depth":
            return bool(value >= -1)
        elif key in ("max_file_lines", "parse_workers"):
            return bool(value > 0)
        elif key == "ignore_patterns":
            return all(isinstance(pattern, str) for pattern in value)
        elif key == "log_level":
            return value.upper() in LOG_LEVELS
        elif key == "rules":
            # Rule name -> option mapping (or null for defaults)
            for rule_name, options in value.items():
                if not isinstance(rule_name, str):
                    return False
                if options is not None and not isinstance(options, dict):
                    return False
            return True

        return True

    @property
    def default_depth(self) -> int:
        """Call graph depth used when none is given (-1 means unlimited)."""
        value = self._config["default_depth"]
        assert isinstance(value, int)
        return value

    @property
    def ignore_patterns(self) -> List[str]:
        """Glob patterns for files and directories to skip."""
        value = self._config["ignore_patterns"]
        assert isinstance(value, list)
        return value

    @property
    def max_file_lines(self) -> int:
        """Files with more lines than this are skipped."""
        value = self._config["max_file_lines"]
        assert isinstance(value, int)
        return value

    @property
    def parse_workers(self) -> int:
        """Number of threads used to parse files."""
        value = self._config["parse_workers"]
        assert isinstance(value, int)
        return value

    @property
    def cache_enabled(self) -> bool:
        """Whether parsed declarations are cached by content fingerprint."""
        value = self._config["cache_enabled"]
        assert isinstance(value, bool)
        return value

    @property
    def cache_file(self) -> str:
        """Cache persistence file relative to the project root, empty to disable."""
        value = self._config["cache_file"]
        assert isinstance(value, str)
        return value

    @property
    def log_level(self) -> str:
        """Logging level name."""
        value = self._config["log_level"]
        assert isinstance(value, str)
        return value

    @property
    def rules(self) -> Dict[str, Any]:
        """Rule name to rule options."""
        value = self._config["rules"]
        assert isinstance(value, dict)
        return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Args:
            key: Configuration parameter name
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        return self._config.get(key, default)
