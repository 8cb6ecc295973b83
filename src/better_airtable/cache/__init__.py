"""Response caching for better_airtable.

:class:`ResponseCache` decides what gets cached and under which key; the
storage itself is pluggable through the :class:`ResponseStore` protocol.
The client builds a :class:`JsonFileStore` when given a ``cache_dir`` and
accepts any other store through its ``store`` argument.
"""

from better_airtable.cache.cache import ResponseCache, make_key
from better_airtable.cache.store import DiskCacheStore, JsonFileStore, MemoryStore, ResponseStore

__all__ = [
    "DiskCacheStore",
    "JsonFileStore",
    "MemoryStore",
    "ResponseCache",
    "ResponseStore",
    "make_key",
]
