# error_handler.py
"""Errors raised while parsing connection strings and loading settings."""


class ConnectionStringError(Exception):
    """Base connection string error."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class MalformedFragmentError(ConnectionStringError):
    """Fragment without ``=`` or without a key (strict parsing only).

    Only the fragment position is reported: the fragment text may hold a password.
    """

    def __init__(self, position: int):
        super().__init__(f'Malformed connection string fragment at position {position}')
        self.position = position


class ConfigurationError(ConnectionStringError, ValueError):
    """Invalid settings or .env file."""
