"""HTTP client module for better_airtable.

Classes:
    :class:`AirtableClient` -- blocking, caching client for one table,
    backed by :class:`httpx.Client`.

Example::

    from better_airtable.client import AirtableClient

    with AirtableClient(api_key, "appXXXX", "Tasks", cache_dir="./cache") as client:
        client.get_record("recXXXX")
"""

from better_airtable.client.airtable import AirtableClient

__all__ = ["AirtableClient"]
