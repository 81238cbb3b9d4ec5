"""Configuration management for the covered call tracker.

Settings come from a YAML file, environment variables and built-in
defaults, in that order of increasing precedence for the environment.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from .constants import DEFAULT_DB_PATH

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ConfigurationError(Exception):
    """Exception raised for configuration errors."""

    pass


class TrackerConfig:
    """Configuration for the covered call tracker.

    Attributes:
        db_path: SQLite database file
        default_user: User id applied when --user is not given
        default_account: Account name applied when add omits --account
        log_level: Root logging level name
        verbose: Enable verbose logging
        json_output: Output in JSON format
    """

    def __init__(
        self,
        db_path: str = DEFAULT_DB_PATH,
        default_user: str = "default",
        default_account: Optional[str] = None,
        log_level: str = "WARNING",
        verbose: bool = False,
        json_output: bool = False,
    ):
        """Initialize configuration.

        Example:
            >>> config = TrackerConfig(db_path="/tmp/positions.db", default_user="alice")
        """
        self.db_path = db_path
        self.default_user = default_user
        self.default_account = default_account
        self.log_level = str(log_level).upper()
        self.verbose = verbose
        self.json_output = json_output

        self._validate()

    def _validate(self):
        """Validate configuration values.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.db_path or not str(self.db_path).strip():
            raise ConfigurationError("db_path must not be empty")

        if not self.default_user or not str(self.default_user).strip():
            raise ConfigurationError("default_user must not be empty")

        if self.log_level not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )

    @property
    def effective_log_level(self) -> int:
        """Numeric level; --verbose lowers it to INFO at most."""
        level = getattr(logging, self.log_level)
        if self.verbose:
            return min(level, logging.INFO)
        return level

    @classmethod
    def get_default_config_path(cls) -> Path:
        """Get default configuration file path (~/.covered_calls/config.yaml)."""
        return Path.home() / ".covered_calls" / "config.yaml"

    @classmethod
    def load_from_file(cls, path: Optional[Path] = None) -> "TrackerConfig":
        """Load configuration from YAML file.

        A missing file yields the defaults. Environment variables override
        file values.

        Raises:
            ConfigurationError: If configuration file is invalid
        """
        config_path = Path(path) if path else cls.get_default_config_path()

        config_dict: dict[str, Any] = {}

        if config_path.exists():
            try:
                with open(config_path) as f:
                    file_config = yaml.safe_load(f)
                    if file_config:
                        config_dict = file_config
                logger.debug(f"Loaded configuration from {config_path}")
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    f"Invalid YAML in configuration file: {e}"
                ) from e
            except OSError as e:
                raise ConfigurationError(
                    f"Failed to load configuration file: {e}"
                ) from e
        else:
            logger.debug(f"Configuration file not found at {config_path}, using defaults")

        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration file must contain a mapping")

        return cls.merge_with_defaults(config_dict)

    @classmethod
    def merge_with_defaults(cls, config_dict: dict[str, Any]) -> "TrackerConfig":
        """Merge configuration dictionary with defaults and environment variables.

        Precedence order (highest to lowest):
        1. Environment variables
        2. Config file values
        3. Default values

        Example:
            >>> config = TrackerConfig.merge_with_defaults({
            ...     "database": {"path": "/tmp/positions.db"}
            ... })
        """
        database_config = config_dict.get("database", {}) or {}
        defaults_config = config_dict.get("defaults", {}) or {}
        cli_config = config_dict.get("cli", {}) or {}

        db_path = os.getenv(
            "COVERED_CALLS_DB_PATH",
            database_config.get("path", DEFAULT_DB_PATH),
        )
        default_user = os.getenv(
            "COVERED_CALLS_USER",
            defaults_config.get("user", "default"),
        )
        default_account = defaults_config.get("account")
        log_level = os.getenv(
            "COVERED_CALLS_LOG_LEVEL",
            cli_config.get("log_level", "WARNING"),
        )
        verbose = bool(cli_config.get("verbose", False))
        json_output = bool(cli_config.get("json_output", False))

        try:
            return cls(
                db_path=db_path,
                default_user=default_user,
                default_account=default_account,
                log_level=log_level,
                verbose=verbose,
                json_output=json_output,
            )
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def save_to_file(self, path: Optional[Path] = None):
        """Save configuration to YAML file.

        Raises:
            ConfigurationError: If save fails
        """
        config_path = Path(path) if path else self.get_default_config_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(config_path, "w") as f:
                yaml.dump(self.to_dict(), f, default_flow_style=False)
            logger.info(f"Configuration saved to {config_path}")
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Configuration in the nested file layout."""
        return {
            "database": {"path": self.db_path},
            "defaults": {
                "user": self.default_user,
                "account": self.default_account,
            },
            "cli": {
                "log_level": self.log_level,
                "verbose": self.verbose,
                "json_output": self.json_output,
            },
        }

    def __repr__(self) -> str:
        return (
            f"TrackerConfig("
            f"db_path={self.db_path!r}, "
            f"default_user={self.default_user!r}, "
            f"default_account={self.default_account!r}, "
            f"log_level={self.log_level!r}, "
            f"verbose={self.verbose}, "
            f"json_output={self.json_output}"
            ")"
        )


def load_config(config_path: Optional[Path] = None) -> TrackerConfig:
    """Load configuration from file or defaults."""
    return TrackerConfig.load_from_file(config_path)
