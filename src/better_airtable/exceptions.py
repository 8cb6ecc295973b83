"""Exception hierarchy for better_airtable.

All exceptions inherit from :class:`BetterAirtableError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`better_airtable.exit_codes`. The CLI entry point in
:func:`better_airtable.app.main` catches ``BetterAirtableError`` and exits
with the appropriate code, while unexpected exceptions produce a crash log.

Subclass hierarchy::

    BetterAirtableError   (exit 1)
    +-- ConfigurationError (exit 2)
    +-- TransportError     (exit 6)
    +-- ApiError           (exit 3 / 4 / 5 depending on status)
    +-- FilesystemError    (exit 7)
"""

from __future__ import annotations

from typing import Optional

from better_airtable.exit_codes import (
    EXIT_API_ERROR,
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_FILESYSTEM_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
)


class BetterAirtableError(Exception):
    """Base exception for all better_airtable errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(BetterAirtableError):
    """Raised for missing credentials/identifiers and unreadable config files."""

    exit_code = EXIT_INVALID_USAGE


class TransportError(BetterAirtableError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused)."""

    exit_code = EXIT_CONNECTION_ERROR


class ApiError(BetterAirtableError):
    """Raised when the API answers with an HTTP status of 400 or above.

    The message is the server-provided error message when the body carries
    one, otherwise ``HTTP <status>``.

    Args:
        status_code: The HTTP status returned by the server.
        message: Server-provided error message, if any.
    """

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        self.api_message = message
        if status_code in (401, 403):
            code = EXIT_AUTH_FAILURE
        elif status_code == 404:
            code = EXIT_NOT_FOUND
        else:
            code = EXIT_API_ERROR
        super().__init__(
            f"Airtable API error: {message or f'HTTP {status_code}'}",
            exit_code=code,
        )


class FilesystemError(BetterAirtableError):
    """Raised when a cache directory cannot be created or a cache file cannot be written."""

    exit_code = EXIT_FILESYSTEM_ERROR
