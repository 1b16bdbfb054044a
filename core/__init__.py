"""
Core Module - Foundation components for Simple Bot
==================================================

This module provides the foundational components including:
- Settings management
- Logging setup
- Exception handling
- Rate limiting
"""

from .config import Settings, load_settings, save_settings
from .exceptions import (
    BotError,
    ConfigError,
    DefinitionError,
    DuplicateTriggerError,
    NotFoundError,
    ProcessSpawnError,
    PersistError,
    TransportError,
)
from .logging import setup_logging, get_logger
from .rate_limiter import RateLimiter

__all__ = [
    "Settings",
    "load_settings",
    "save_settings",
    "BotError",
    "ConfigError",
    "DefinitionError",
    "DuplicateTriggerError",
    "NotFoundError",
    "ProcessSpawnError",
    "PersistError",
    "TransportError",
    "setup_logging",
    "get_logger",
    "RateLimiter",
]
