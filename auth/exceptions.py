"""Typed exceptions for auth failures."""


class AuthError(Exception):
    """Base class for authentication errors."""


class SessionExpiredError(AuthError):
    """Session is unknown or has expired; the user must sign in again."""
