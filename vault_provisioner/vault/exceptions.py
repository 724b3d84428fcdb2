"""Custom exceptions for the Vault logical client and provisioning engine.

This module defines all custom exceptions used when talking to Vault and
when planning or applying resources, for consistent error handling.
"""

from typing import Optional


class VaultError(Exception):
    """Base exception for Vault-related errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        """Initialize Vault error.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return error string representation."""
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class VaultConnectionError(VaultError):
    """Raised when connection to Vault fails."""

    def __init__(
        self,
        message: str = "Failed to connect to Vault server",
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)


class VaultAuthenticationError(VaultError):
    """Raised when authentication to Vault fails."""

    def __init__(
        self,
        message: str = "Vault authentication failed",
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.status_code = 401


class VaultResponseError(VaultError):
    """Raised when Vault answers a request with an error status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        path: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code
        self.path = path


class VaultPermissionError(VaultResponseError):
    """Raised when permission is denied on a path."""

    def __init__(
        self,
        path: str,
        operation: str,
        message: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        full_message = (
            message or f"Permission denied for {operation} on path: {path}"
        )
        super().__init__(full_message, status_code=403, path=path, details=details)
        self.operation = operation


class VaultSealedError(VaultResponseError):
    """Raised when Vault is sealed and cannot serve requests."""

    def __init__(
        self,
        message: str = "Vault is sealed. Unseal required.",
        path: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, status_code=503, path=path, details=details)


class VaultUninitializedError(VaultResponseError):
    """Raised when Vault is not initialized."""

    def __init__(
        self,
        message: str = "Vault is not initialized. Initialization required.",
        path: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, status_code=501, path=path, details=details)


class VaultNotFoundError(VaultError):
    """Raised when an object that must exist is missing from Vault."""

    def __init__(
        self,
        path: str,
        message: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        full_message = message or f"Object not found at path: {path}"
        super().__init__(full_message, details)
        self.path = path


class VaultValidationError(VaultError):
    """Raised when configuration or schema validation fails."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)


class ResourceError(VaultError):
    """Raised when a resource operation fails during plan or apply."""

    def __init__(
        self,
        address: str,
        message: str,
        details: Optional[dict] = None,
    ):
        super().__init__(f"{address}: {message}", details)
        self.address = address


def is_404(err: Optional[BaseException]) -> bool:
    """Return True when err carries an HTTP 404 status."""
    return error_contains_http_code(err, 404)


def error_contains_http_code(err: Optional[BaseException], *codes: int) -> bool:
    """Return True when err is a response error with one of the given codes."""
    if err is None:
        return False
    status = getattr(err, "status_code", None)
    return status is not None and status in codes
