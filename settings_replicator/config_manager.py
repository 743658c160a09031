"""
Configuration Management for the settings replicator.

Environment-driven configuration with validation. A .env file in the working
directory is loaded before any value is read.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional

import colorlog
from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .policy_engine import build_policy
from .replication_models import ExclusionPolicy
from .resource_directory import WriteMode

load_dotenv()

logger = logging.getLogger(__name__)


def _set_azure_http_log_level(log_level: str) -> None:
    """Set log levels for HTTP-related loggers to reduce noise."""
    http_loggers = [
        "azure.core.pipeline.policies.http_logging_policy",
        "azure.core.pipeline",
        "azure.identity",
        "azure.mgmt",
        "azure",
        "urllib3",
        "urllib3.connectionpool",
        "msal",
    ]
    # HTTP logging should only appear at DEBUG level
    target_level = logging.DEBUG if log_level == "DEBUG" else logging.WARNING
    for name in http_loggers:
        logging.getLogger(name).setLevel(target_level)


def _split_env_list(name: str) -> FrozenSet[str]:
    raw = os.getenv(name, "")
    return frozenset(item.strip() for item in raw.split(",") if item.strip())


def _parse_write_mode(value: str, env_var: str) -> WriteMode:
    try:
        return WriteMode(value.strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"{env_var} must be one of: {', '.join(m.value for m in WriteMode)}",
            config_key=env_var,
        ) from None


@dataclass
class LoggingConfig:
    """Configuration for logging behavior."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    format: str = field(
        default_factory=lambda: os.getenv(
            "LOG_FORMAT", "%(log_color)s%(levelname)s:%(name)s:%(message)s"
        )
    )
    file_output: Optional[str] = field(default_factory=lambda: os.getenv("LOG_FILE"))
    json_report: bool = field(
        default_factory=lambda: os.getenv("LOG_JSON_REPORT", "false").lower() == "true"
    )

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            raise ConfigurationError(
                f"Log level must be one of: {valid_levels}", config_key="LOG_LEVEL"
            )
        self.level = self.level.upper()

    def get_log_level(self) -> int:
        """Convert string log level to logging constant."""
        return int(getattr(logging, self.level))


@dataclass
class ReplicatorConfig:
    """
    Run-wide configuration.

    Attributes:
        extra_excluded_settings: Setting keys excluded on top of the defaults
        excluded_connection_strings: Connection string names to exclude
        settings_mode: How settings are written to the target
        connection_strings_mode: How connection strings are written to the target
        logging: Logging configuration
    """

    extra_excluded_settings: FrozenSet[str] = field(
        default_factory=lambda: _split_env_list("REPLICATOR_EXTRA_EXCLUDED_SETTINGS")
    )
    excluded_connection_strings: FrozenSet[str] = field(
        default_factory=lambda: _split_env_list("REPLICATOR_EXCLUDED_CONNECTION_STRINGS")
    )
    settings_mode: WriteMode = field(
        default_factory=lambda: _parse_write_mode(
            os.getenv("REPLICATOR_SETTINGS_MODE", "merge"), "REPLICATOR_SETTINGS_MODE"
        )
    )
    connection_strings_mode: WriteMode = field(
        default_factory=lambda: _parse_write_mode(
            os.getenv("REPLICATOR_CONNECTION_STRINGS_MODE", "merge"),
            "REPLICATOR_CONNECTION_STRINGS_MODE",
        )
    )
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def exclusion_policy(
        self,
        extra_setting_keys: Iterable[str] = (),
        extra_connection_string_names: Iterable[str] = (),
    ) -> ExclusionPolicy:
        """
        Policy for this run: default exclusions plus configured additions.

        Args:
            extra_setting_keys: Further setting keys, e.g. from the command line
            extra_connection_string_names: Further connection string names
        """
        return build_policy(
            extra_setting_keys=self.extra_excluded_settings | frozenset(extra_setting_keys),
            excluded_connection_string_names=(
                self.excluded_connection_strings | frozenset(extra_connection_string_names)
            ),
        )

    def log_configuration_summary(self) -> None:
        """Log configuration summary."""
        logger.info("=" * 60)
        logger.info("Settings replicator configuration")
        logger.info("=" * 60)
        logger.info(f"Settings write mode: {self.settings_mode.value}")
        logger.info(f"Connection strings write mode: {self.connection_strings_mode.value}")
        if self.extra_excluded_settings:
            logger.info(
                f"Extra excluded settings: {', '.join(sorted(self.extra_excluded_settings))}"
            )
        if self.excluded_connection_strings:
            logger.info(
                "Excluded connection strings: "
                f"{', '.join(sorted(self.excluded_connection_strings))}"
            )
        logger.info(f"Log level: {self.logging.level}")
        logger.info("=" * 60)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "extra_excluded_settings": sorted(self.extra_excluded_settings),
            "excluded_connection_strings": sorted(self.excluded_connection_strings),
            "settings_mode": self.settings_mode.value,
            "connection_strings_mode": self.connection_strings_mode.value,
            "logging": {
                "level": self.logging.level,
                "file_output": self.logging.file_output,
                "json_report": self.logging.json_report,
            },
        }


def create_config_from_env(log_level: Optional[str] = None) -> ReplicatorConfig:
    """
    Create configuration from environment variables.

    Args:
        log_level: Overrides LOG_LEVEL when given

    Raises:
        ConfigurationError: If any value is invalid
    """
    config = ReplicatorConfig()
    if log_level:
        config.logging = LoggingConfig(
            level=log_level,
            format=config.logging.format,
            file_output=config.logging.file_output,
            json_report=config.logging.json_report,
        )
    return config


def setup_logging(config: LoggingConfig) -> None:
    """
    Setup logging configuration based on config.
    """
    _set_azure_http_log_level(config.level)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(config.get_log_level())

    console_handler = colorlog.StreamHandler()
    console_handler.setFormatter(colorlog.ColoredFormatter(config.format))
    root_logger.addHandler(console_handler)

    if config.file_output:
        file_handler = logging.FileHandler(config.file_output)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s:%(name)s:%(message)s")
        )
        root_logger.addHandler(file_handler)
