"""
Common Exception Classes

This module defines the exception hierarchy used throughout the engine.
Generic categories live at the top; gamification-specific failures
subclass them so callers can catch either the broad or the precise type.
"""

from typing import Optional, Any


class BaseError(Exception):
    """Base class for all custom exceptions."""

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        """
        Initialize the exception.

        Args:
            message: Error message
            original_exception: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception


class ValidationError(BaseError):
    """Exception raised for validation errors."""

    def __init__(self, message: str, errors: Optional[dict] = None):
        super().__init__(f"Validation error: {message}")
        self.errors = errors or {}


class ConfigurationError(BaseError):
    """Exception raised for configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(f"Configuration error: {message}")
        self.config_key = config_key


class NotFoundError(BaseError):
    """Exception raised when a resource is not found."""

    def __init__(self, resource_type: str, resource_id: Any):
        super().__init__(f"{resource_type} with ID {resource_id} not found")
        self.resource_type = resource_type
        self.resource_id = resource_id


class DuplicateError(BaseError):
    """Exception raised when attempting to create a duplicate resource."""

    def __init__(self, resource_type: str, identifier: Any):
        super().__init__(f"Duplicate {resource_type} with identifier {identifier}")
        self.resource_type = resource_type
        self.identifier = identifier


# Gamification errors

class GamificationError(BaseError):
    """Base class for failures raised by the gamification engine."""


class UserNotFoundError(NotFoundError, GamificationError):
    """The referenced user has no game state in the store."""

    def __init__(self, user_id: str):
        NotFoundError.__init__(self, "UserGameState", user_id)
        self.user_id = user_id


class InvalidInputError(ValidationError, GamificationError):
    """
    Input rejected before any read or write.

    Raised for negative or non-integer XP amounts and for badge ids that
    are not part of the catalog.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        ValidationError.__init__(self, message, {field: message} if field else None)
        self.field = field


class ConcurrencyConflictError(GamificationError):
    """
    A conditional write lost against a concurrent writer.

    The service retries the whole read-modify-write on this error; it only
    reaches callers once the retry budget is spent.
    """

    def __init__(self, user_id: str, expected_version: Any = None, attempts: int = 1):
        super().__init__(
            f"Concurrent update detected for user {user_id} "
            f"(expected version {expected_version}, attempts {attempts})"
        )
        self.user_id = user_id
        self.expected_version = expected_version
        self.attempts = attempts


class StoreUnavailableError(GamificationError):
    """The backing user-record store failed; the operation did not apply."""

    def __init__(self, operation: str, original_exception: Optional[Exception] = None):
        detail = f": {original_exception}" if original_exception else ""
        super().__init__(f"Store unavailable during {operation}{detail}", original_exception)
        self.operation = operation


class CatalogError(ConfigurationError, GamificationError):
    """Badge or achievement tables violate their ordering rules."""

    def __init__(self, message: str):
        ConfigurationError.__init__(self, message, config_key="catalog")
