"""better_airtable -- a caching client for a single Airtable table.

The package wraps the Airtable REST API with CRUD helpers, an optional
on-disk response cache and an optional on-disk attachment cache. A small
Typer command-line front end is shipped alongside the library.

Typical use::

    from better_airtable import AirtableClient

    client = AirtableClient("key", "appXXXX", "Projects", cache_dir="./cache")
    records = client.list_records(view="Grid view")

Modules:
    client: :class:`AirtableClient`, the request dispatcher and CRUD surface.
    cache: Response-cache storage backends and the key derivation.
    attachments: Download-and-annotate logic for attachment fields.
    models: Pydantic models for configuration, records and attachments.
    config: XDG-aware profiles and global configuration.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
    app: Typer application and CLI entry point.
"""

__version__ = "0.1.0"

from better_airtable.client import AirtableClient  # noqa: E402
from better_airtable.exceptions import (  # noqa: E402
    ApiError,
    BetterAirtableError,
    ConfigurationError,
    FilesystemError,
    TransportError,
)

__all__ = [
    "AirtableClient",
    "ApiError",
    "BetterAirtableError",
    "ConfigurationError",
    "FilesystemError",
    "TransportError",
    "__version__",
]
