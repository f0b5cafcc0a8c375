"""
Warden - Domain Errors
======================

Exception taxonomy shared by the ledger, scheduler and workflows.

DESIGN:
    Validation, hierarchy, not-found and state errors are raised before
    any mutation happens, so callers can surface them to the invoking
    moderator as-is. PersistenceError is fatal to the enclosing action.
    NotificationError is only ever logged, never propagated out of a
    workflow.
"""

from typing import Optional


class WardenError(Exception):
    """
    Base class for all domain errors.

    Attributes:
        user_message: Short text safe to show to the invoking user.
    """

    def __init__(self, message: str, user_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.user_message = user_message or message


class ValidationError(WardenError):
    """Malformed input: bad duration, empty reason, too much evidence."""


class HierarchyViolation(WardenError):
    """Actor lacks rank over the subject, or targets themselves."""


class NotFoundError(WardenError):
    """Unresolvable member, channel, case, ticket or report."""


class StateError(WardenError):
    """Illegal workflow transition."""


class PersistenceError(WardenError):
    """Ledger, counter or workflow write failure."""


class NotificationError(WardenError):
    """DM or log delivery failure."""


class NotConfiguredError(WardenError):
    """A required per-community setting is missing."""


class InvalidDestinationError(WardenError):
    """A configured destination channel exists in settings but is unusable."""


__all__ = [
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
