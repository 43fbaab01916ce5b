"""
Authentication Exceptions

This module defines the exception classes raised while identifying a caller.
They extend the application error hierarchy so the API layer renders them
with the same envelope as every other error.
"""

from assessly.common.error_handling import AuthenticationError


class AuthError(AuthenticationError):
    """Base exception for authentication errors."""

    def __init__(self, message: str = "Authentication error"):
        super().__init__(message)


class MissingTokenError(AuthError):
    """Exception raised when no bearer token was supplied."""

    def __init__(self, message: str = "Missing authorization header"):
        super().__init__(message)


class InvalidTokenError(AuthError):
    """Exception raised when a token is invalid."""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class ExpiredTokenError(AuthError):
    """Exception raised when a token has expired."""

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message)
