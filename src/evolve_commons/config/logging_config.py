"""Centralized logging configuration for evolve-commons.

Provides consistent, configurable logging with environment-based control over
verbosity and log levels.
"""

import logging
import logging.config
import os
from enum import Enum


class LogLevel(str, Enum):
    """Supported log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogVerbosity(str, Enum):
    """Log verbosity modes."""
    QUIET = "QUIET"      # Only errors and critical
    NORMAL = "NORMAL"    # Standard logging (warnings and above)
    VERBOSE = "VERBOSE"  # Info level logging
    DEBUG = "DEBUG"      # Full debug logging


class LogFormat(str, Enum):
    """Log format options."""
    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"


def get_log_level_from_verbosity(verbosity: str) -> str:
    """Map verbosity mode to log level."""
    verbosity_map = {
        LogVerbosity.QUIET: LogLevel.ERROR.value,
        LogVerbosity.NORMAL: LogLevel.WARNING.value,
        LogVerbosity.VERBOSE: LogLevel.INFO.value,
        LogVerbosity.DEBUG: LogLevel.DEBUG.value,
    }
    try:
        return verbosity_map[LogVerbosity(verbosity.upper())]
    except ValueError:
        return LogLevel.WARNING.value


class LoggingConfig:
    """Centralized logging configuration manager."""

    # Modules that should only log errors
    ERROR_ONLY_MODULES = [
        "httpx",
        "httpcore",
        "redis",
        "asyncio",
    ]

    FORMATS = {
        LogFormat.JSON: '{"time":"%(asctime)s","level":"%(levelname)s","module":"%(name)s","message":"%(message)s"}',
        LogFormat.DETAILED: "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
        LogFormat.SIMPLE: "%(asctime)s - %(levelname)s - %(message)s",
    }

    @classmethod
    def build_config(cls) -> dict:
        """Build a dictConfig mapping from environment variables."""
        log_level = os.getenv("LOG_LEVEL")
        log_verbosity = os.getenv("LOG_VERBOSITY", "NORMAL")
        log_format = os.getenv("LOG_FORMAT", LogFormat.SIMPLE.value).lower()
        enable_cache_logging = os.getenv("ENABLE_CACHE_LOGGING", "false").lower() == "true"

        # An explicit level wins over verbosity
        if log_level and log_level.upper() in LogLevel.__members__:
            effective_log_level = log_level.upper()
        else:
            effective_log_level = get_log_level_from_verbosity(log_verbosity)

        try:
            format_string = cls.FORMATS[LogFormat(log_format)]
        except ValueError:
            format_string = cls.FORMATS[LogFormat.SIMPLE]

        logging_config = {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": format_string,
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": effective_log_level,
                    "formatter": "default",
                    "stream": "ext://sys.stdout",
                },
            },
            "loggers": {
                "evolve_commons": {
                    "level": effective_log_level,
                    "handlers": ["console"],
                    "propagate": False,
                },
            },
        }

        for module in cls.ERROR_ONLY_MODULES:
            logging_config["loggers"][module] = {
                "level": "ERROR",
                "handlers": ["console"],
                "propagate": False,
            }

        # Cache hit/miss chatter is DEBUG; keep it out unless asked for
        if not enable_cache_logging and effective_log_level == LogLevel.DEBUG.value:
            logging_config["loggers"]["evolve_commons.features.cache"] = {
                "level": "INFO",
                "handlers": ["console"],
                "propagate": False,
            }

        return logging_config

    @classmethod
    def configure(cls) -> None:
        """Configure logging based on environment variables."""
        config = cls.build_config()
        logging.config.dictConfig(config)

        logger = logging.getLogger(__name__)
        level = config["handlers"]["console"]["level"]
        if level == LogLevel.DEBUG.value:
            logger.debug(f"Logging configured: level={level}")

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a configured logger for the given module name."""
        return logging.getLogger(name)

    @classmethod
    def set_module_level(cls, module_name: str, level: str) -> None:
        """Set log level for a specific module."""
        logger = logging.getLogger(module_name)
        logger.setLevel(getattr(logging, level.upper()))

    @classmethod
    def silence_module(cls, module_name: str) -> None:
        """Silence all logging from a module."""
        cls.set_module_level(module_name, "CRITICAL")


def setup_logging() -> None:
    """Setup logging configuration from environment variables.

    Skipped when EVOLVE_CONFIGURE_LOGGING is "false" so host applications that
    own their logging setup are left alone.
    """
    if os.getenv("EVOLVE_CONFIGURE_LOGGING", "true").lower() == "false":
        return
    LoggingConfig.configure()


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger."""
    return LoggingConfig.get_logger(name)
