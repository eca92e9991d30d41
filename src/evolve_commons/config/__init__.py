"""Configuration for evolve-commons."""

from .settings import EvolveSettings, get_settings, MINUTE_MS
from .logging_config import LoggingConfig, setup_logging, get_logger

__all__ = [
    "EvolveSettings",
    "get_settings",
    "MINUTE_MS",
    "LoggingConfig",
    "setup_logging",
    "get_logger",
]
