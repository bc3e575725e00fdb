"""Core ShelfGuard utilities.

This module exports core utilities for use throughout the application.
"""

from shelfguard.core.config import Settings, get_settings
from shelfguard.core.logging import (
    LoggingContext,
    configure_logging,
    get_logger,
)

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "LoggingContext",
]
