from typing import Any


class AppError(Exception):
    """Base class for errors that map onto an HTTP error envelope."""

    status_code = 500

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """Duplicate registration, roll number collision, capacity violations."""

    status_code = 400


class CapacityExceededError(ConflictError):
    pass


class ForbiddenError(AppError):
    status_code = 403


class UnauthorizedError(AppError):
    status_code = 401


class ServiceBusyError(AppError):
    """A shared resource could not be acquired in time; safe for the client to retry."""

    status_code = 503
