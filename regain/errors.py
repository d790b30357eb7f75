"""Domain errors raised by handlers and the data layer."""

from __future__ import annotations


class RegainError(Exception):
    """Base exception for request-level failures reported to the client."""

    status = "failed"


class AuthenticationError(RegainError):
    """Raised when the caller has no valid session."""


class InvalidRequestError(RegainError):
    """Raised when a request breaks a business rule."""


class NotFoundError(RegainError):
    """Raised when a referenced record does not exist or is not visible."""


class DuplicateEmailError(RegainError):
    """Raised when registering an email that is already taken."""

    def __init__(self, message: str = "User Already Exists"):
        super().__init__(message)
