"""Response caching for GET requests.

:class:`ResponseCache` sits between
:class:`~better_airtable.client.AirtableClient` and a
:class:`~better_airtable.cache.store.ResponseStore`. It derives the cache
key, restricts caching to GET requests with a non-empty payload, and turns
into a no-op when no store is configured.

Cache keys are MD5 hex digests (128 bits) of ``METHOD_URL_BODY`` where
``BODY`` is the JSON encoding of the request body (``null`` when there is
none). There is no TTL: entries live until :meth:`ResponseCache.invalidate_all`.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Optional

from better_airtable.cache.store import ResponseStore
from better_airtable.output import debug


def make_key(method: str, url: str, body: Any = None) -> str:
    """Return the cache key for a request.

    Example::

        key = make_key("GET", "https://api.airtable.com/v0/appX/Tasks/recX")
        assert len(key) == 32
    """
    raw = f"{method.upper()}_{url}_{json.dumps(body, sort_keys=True)}"
    return hashlib.md5(raw.encode("utf-8")).hexdigest()


class ResponseCache:
    """GET-only cache of decoded responses.

    Args:
        store: Backend to persist entries in. ``None`` disables the cache:
            :meth:`get` always misses and :meth:`set` ignores its input.

    Example::

        from better_airtable.cache import MemoryStore, ResponseCache

        cache = ResponseCache(MemoryStore())
        cache.set("GET", url, None, {"records": []})
        hit = cache.get("GET", url)
    """

    def __init__(self, store: Optional[ResponseStore] = None) -> None:
        self._store = store

    @property
    def enabled(self) -> bool:
        return self._store is not None

    @property
    def store(self) -> Optional[ResponseStore]:
        return self._store

    def get(self, method: str, url: str, body: Any = None) -> Optional[Any]:
        """Return the cached payload for a GET request, or ``None``.

        Falsy payloads are treated as a miss.
        """
        if self._store is None or method.upper() != "GET":
            return None
        key = make_key(method, url, body)
        data = self._store.get(key)
        if not data:
            debug(f"Cache miss: {key}")
            return None
        debug(f"Cache hit: {key}")
        return data

    def set(self, method: str, url: str, body: Any, data: Any) -> None:
        """Store *data* for a GET request. Non-GET and falsy payloads are skipped.

        Raises:
            FilesystemError: If the backend cannot persist the entry.
        """
        if self._store is None or method.upper() != "GET" or not data:
            return
        self._store.set(make_key(method, url, body), data)

    def invalidate_all(self) -> None:
        """Drop every cached response."""
        if self._store is None:
            return
        debug("Invalidating the response cache")
        self._store.invalidate_all()

    def stats(self) -> dict[str, Any]:
        if self._store is None:
            return {"enabled": False}
        return {"enabled": True, **self._store.stats()}

    def close(self) -> None:
        if self._store is not None:
            self._store.close()
