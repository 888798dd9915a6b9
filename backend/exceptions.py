"""
Custom exception classes for the application.

This module defines domain-specific exceptions that provide better error handling
and clearer error messages throughout the application. Every exception carries
an ErrorKind so observers can report failures without isinstance checks.
"""
from constants import ErrorKind, OperationKind


class ApplicationError(Exception):
    """Base exception for all application errors"""

    kind = ErrorKind.UNKNOWN

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(ApplicationError):
    """Raised when there's a configuration issue"""

    def __init__(self, message: str, invalid_keys: list[str] | None = None):
        details = {"invalid_keys": invalid_keys} if invalid_keys else {}
        super().__init__(message, details)


class ValidationError(ApplicationError):
    """Raised when a URL, file type or setting is rejected before any work starts"""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, invalid_fields: dict | None = None):
        details = {"invalid_fields": invalid_fields} if invalid_fields else {}
        super().__init__(message, details)


class NetworkError(ApplicationError):
    """Raised when a remote fetch fails with a bad status or a transport error"""

    kind = ErrorKind.NETWORK

    def __init__(self, url: str, status_code: int | None = None, cause: str | None = None):
        self.url = url
        self.status_code = status_code
        self.cause = cause
        details = {"url": url, "status_code": status_code, "cause": cause}
        if status_code is not None:
            msg = f"HTTP error {status_code} while fetching {url}"
        else:
            msg = f"Failed to fetch {url}: {cause or 'connection failed'}"
        super().__init__(msg, details)


class OperationCancelled(ApplicationError):
    """Raised when an in-flight transfer observes a cancellation request"""

    kind = ErrorKind.CANCELLED

    def __init__(self, url: str, reason: str = "cancelled"):
        self.url = url
        self.reason = reason
        super().__init__(f"Download of {url} {reason}", {"url": url, "reason": reason})


class ConflictError(ApplicationError):
    """Raised when the same operation is already in progress for an entry"""

    kind = ErrorKind.CONFLICT

    def __init__(self, entry_id: str, operation: OperationKind):
        self.entry_id = entry_id
        self.operation = operation
        details = {"entry_id": entry_id, "operation": operation.value}
        super().__init__(f"{operation.value.lower()} already in progress for {entry_id}", details)


class EntryNotFoundError(ApplicationError):
    """Raised by services when an entry id is not in the registry"""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Entry '{entry_id}' not found", {"entry_id": entry_id})
