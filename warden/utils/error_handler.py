"""
Warden - Error Handler
======================

Categorizes and logs unexpected errors with context.

Features:
- Error categorization (domain, discord, network, database)
- Recovery suggestions per category
- Traceback logging for critical errors
"""

import sqlite3
import traceback
from datetime import datetime
from typing import Any, Dict

import aiohttp
import discord

from warden.core.errors import (
    HierarchyViolation,
    InvalidDestinationError,
    NotConfiguredError,
    NotFoundError,
    PersistenceError,
    StateError,
    ValidationError,
    WardenError,
)
from warden.core.logger import logger
from warden.core.constants import LOG_TRUNCATE_MEDIUM


class ErrorContext:
    """Captures error context for logging."""

    @staticmethod
    def get_full_context(e: BaseException, location: str, **kwargs: Any) -> Dict[str, Any]:
        return {
            "timestamp": datetime.now().isoformat(),
            "location": location,
            "error_type": type(e).__name__,
            "error_message": str(e),
            "traceback": "".join(traceback.format_exception(type(e), e, e.__traceback__)),
            "additional_context": kwargs,
        }


class ErrorHandler:
    """Error handling with categorization and recovery hints."""

    ERROR_CATEGORIES = (
        ("persistence", (PersistenceError, sqlite3.Error)),
        ("domain", (WardenError,)),
        ("discord", (discord.HTTPException,)),
        ("network", (aiohttp.ClientError, ConnectionError, TimeoutError)),
    )

    RECOVERY_SUGGESTIONS = (
        (ValidationError, "Check the command input"),
        (HierarchyViolation, "Actor must outrank the target"),
        (NotFoundError, "Resource not found - check IDs and channels"),
        (StateError, "Action not allowed in the current state"),
        (NotConfiguredError, "Run the setup command for this community"),
        (InvalidDestinationError, "Configured channel is missing or not a text channel"),
        (PersistenceError, "Database write failed - check the database file"),
        (sqlite3.OperationalError, "Database locked or unavailable"),
        (sqlite3.IntegrityError, "Database constraint violation - check data validity"),
        (discord.Forbidden, "Check bot permissions in server settings"),
        (discord.NotFound, "Resource not found - check IDs and channels"),
        (discord.HTTPException, "Discord API issue - retry later"),
        (aiohttp.ClientError, "Network issue - check connectivity"),
    )

    @classmethod
    def categorize_error(cls, e: BaseException) -> str:
        for category, error_types in cls.ERROR_CATEGORIES:
            if isinstance(e, error_types):
                return category
        return "general"

    @classmethod
    def get_recovery_suggestion(cls, e: BaseException) -> str:
        for error_type, suggestion in cls.RECOVERY_SUGGESTIONS:
            if isinstance(e, error_type):
                return suggestion
        return "Unexpected error - check logs for details"

    @classmethod
    def handle(cls, e: BaseException, location: str, critical: bool = False, **context: Any) -> None:
        """
        Log an error with its category, context and a recovery hint.

        Args:
            e: The exception.
            location: Where the error occurred.
            critical: Whether this error stops the process.
            **context: Additional key/value context for the log entry.
        """
        category = cls.categorize_error(e)
        suggestion = cls.get_recovery_suggestion(e)
        full_context = ErrorContext.get_full_context(e, location, **context)

        details = [
            ("Category", category.upper()),
            ("Location", location),
            ("Error Type", full_context["error_type"]),
            ("Error", full_context["error_message"][:LOG_TRUNCATE_MEDIUM]),
            ("Recovery", suggestion),
        ]
        details.extend((key, str(value)[:LOG_TRUNCATE_MEDIUM]) for key, value in context.items())

        if critical:
            logger.critical("Critical Error", details)
            logger.info(f"Traceback:\n{full_context['traceback']}")
        elif category == "domain":
            logger.warning("Request Rejected", details)
        else:
            logger.error("Unhandled Error", details)


__all__ = ["ErrorHandler", "ErrorContext"]
