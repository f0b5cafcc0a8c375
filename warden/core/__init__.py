"""
Warden - Core Package
=====================

Configuration, logging, errors and persistence.
"""

from warden.core.config import Config, ConfigValidationError, get_config, load_config
from warden.core.logger import logger, TreeLogger
from warden.core.errors import (
    WardenError,
    ValidationError,
    HierarchyViolation,
    NotFoundError,
    StateError,
    PersistenceError,
    NotificationError,
    NotConfiguredError,
    InvalidDestinationError,
)

__all__ = [
    "Config",
    "ConfigValidationError",
    "get_config",
    "load_config",
    "logger",
    "TreeLogger",
    "WardenError",
    "ValidationError",
    "HierarchyViolation",
    "NotFoundError",
    "StateError",
    "PersistenceError",
    "NotificationError",
    "NotConfiguredError",
    "InvalidDestinationError",
]
