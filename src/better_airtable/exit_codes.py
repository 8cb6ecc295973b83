"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~better_airtable.exceptions.BetterAirtableError`
subclass. Shell wrappers can inspect the exit code to determine the failure
class without parsing stderr.

Example::

    $ better-airtable records get recMISSING
    $ echo $?
    4   # EXIT_NOT_FOUND -- the record does not exist
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments, missing credentials or an unreadable configuration."""

EXIT_AUTH_FAILURE = 3
"""The API rejected the credentials (HTTP 401 / 403)."""

EXIT_NOT_FOUND = 4
"""The requested record or table was not found (HTTP 404)."""

EXIT_API_ERROR = 5
"""The API returned any other error status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_FILESYSTEM_ERROR = 7
"""A cache directory or cache file could not be created or written."""
