"""
Error taxonomy for the warm intro engine.

- InvalidInputError: caller mistakes (self paths, malformed ids, unknown users)
- StorageError: the backing store failed; safe to retry at the storage boundary

Missing source/target nodes are not errors; path queries return [] instead.
"""
from typing import Any, Optional


class WarmIntroError(Exception):
    """Base class for engine errors."""


class InvalidInputError(WarmIntroError):
    """Raised when a request is malformed or refers to something invalid."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


class SelfPathError(InvalidInputError):
    """Raised when a path is requested from a person to themselves."""

    def __init__(self, person_id: str):
        self.person_id = person_id
        super().__init__(f"Cannot find a path from '{person_id}' to itself", field="target_person_id")


class UnknownUserError(InvalidInputError):
    """Raised when a user id has no record in the store."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"Unknown user '{user_id}'", field="user_id")


class TenantIsolationError(InvalidInputError):
    """Raised when evidence from another user leaks into a per-user computation."""

    def __init__(self, expected_user_id: str, found_user_id: str, event_id: str):
        self.expected_user_id = expected_user_id
        self.found_user_id = found_user_id
        self.event_id = event_id
        super().__init__(
            f"Evidence '{event_id}' belongs to user '{found_user_id}', not '{expected_user_id}'",
            field="user_id",
        )


class StorageError(WarmIntroError):
    """Raised when a read or write against the evidence store fails."""

    retryable = True

    def __init__(self, operation: str, message: str, cause: Any = None):
        self.operation = operation
        self.message = message
        self.cause = cause
        super().__init__(f"{operation}: {message}")
