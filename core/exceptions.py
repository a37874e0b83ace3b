"""
Centralized exception hierarchy for domain-specific errors.

This module provides custom exception classes that represent specific
error conditions in the application, enabling better error handling and
client-side error recovery.
"""


class TrainStateError(Exception):
    """Base exception for all application-specific errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(TrainStateError):
    """Exception raised when data validation fails."""


class ExternalServiceError(TrainStateError):
    """Exception raised when service calls fail."""


class SourceReadError(ExternalServiceError):
    """Exception raised when workouts cannot be read from the health service."""


class HealthDataUnavailableError(SourceReadError):
    """Exception raised when the health service has no data available."""


class UnexpectedHealthDataError(SourceReadError):
    """Exception raised when the health service returns an unreadable payload."""


class AuthorizationError(TrainStateError):
    """Exception raised when authorization fails."""


class HealthAuthorizationError(AuthorizationError):
    """Exception raised when workout read access is denied."""


class StoreWriteError(TrainStateError):
    """Exception raised when a workout or route commit fails."""


class ResourceNotFoundError(TrainStateError):
    """Exception raised when a requested resource is not found."""
