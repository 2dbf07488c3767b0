"""Exception types and user-safe error messages for the CRM client."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

LOGGER = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"

GENERIC_MESSAGE = "An error occurred while processing your request. Please try again."


class CrmError(Exception):
    """Base class for errors raised by :mod:`estate_crm`."""


class DataServiceError(CrmError):
    """Raised when the remote data service rejects or fails a request."""

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status
        self.details = dict(details or {})

    @property
    def is_unique_violation(self) -> bool:
        return self.code == UNIQUE_VIOLATION or "duplicate key" in self.message

    def __str__(self) -> str:
        if self.code:
            return f"{self.message} (code {self.code})"
        return self.message


class AuthorizationError(CrmError):
    """Raised when the acting identity may not perform an operation."""


class CrmValidationError(CrmError, ValueError):
    """Raised for input the backend would reject; the message is safe to show."""


@dataclass(frozen=True)
class SecureError:
    """A message that can be shown to a user, plus a stable error code."""

    message: str
    code: str
    is_public: bool


_VERBATIM_VALIDATION = ("Invalid email", "Invalid phone", "exceeds maximum limit")
_VERBATIM_FILE = ("File size exceeds", "Invalid file type")


def _error_text(error: Any) -> str:
    message = getattr(error, "message", None)
    if message:
        return str(message)
    text = str(error) if error is not None else ""
    return text or "Unknown error"


def handle_secure_error(error: Any, context: Optional[str] = None) -> SecureError:
    """Log ``error`` in full and map it onto a message that leaks nothing internal."""

    LOGGER.error("Security error%s: %r", f" in {context}" if context else "", error)
    text = _error_text(error)

    if isinstance(error, AuthorizationError) or "violates row-level security" in text:
        if "Only administrators can assign roles" in text:
            return SecureError(text, "INSUFFICIENT_PRIVILEGES", True)
        return SecureError("You do not have permission to perform this action", "PERMISSION_DENIED", True)

    if "JWT" in text or "auth" in text:
        return SecureError("Authentication required. Please log in again", "AUTH_REQUIRED", True)

    if isinstance(error, CrmValidationError) or any(marker in text for marker in _VERBATIM_VALIDATION):
        return SecureError(text, "VALIDATION_ERROR", True)

    if "Only administrators can assign roles" in text:
        return SecureError("Only administrators can assign roles", "INSUFFICIENT_PRIVILEGES", True)

    if any(marker in text for marker in _VERBATIM_FILE):
        return SecureError(text, "FILE_ERROR", True)

    return SecureError(GENERIC_MESSAGE, "INTERNAL_ERROR", False)


def format_error_for_user(error: Any, context: Optional[str] = None) -> str:
    return handle_secure_error(error, context).message


def is_error_public(error: Any) -> bool:
    return handle_secure_error(error).is_public


__all__ = [
    "AuthorizationError",
    "CrmError",
    "CrmValidationError",
    "DataServiceError",
    "GENERIC_MESSAGE",
    "SecureError",
    "UNIQUE_VIOLATION",
    "format_error_for_user",
    "handle_secure_error",
    "is_error_public",
]
