"""Caching Airtable client.

This module provides :class:`AirtableClient`, a blocking client for one
table of the Airtable REST API. It wraps :class:`httpx.Client` and layers
on:

- **Response caching** -- GET responses are stored through a
  :class:`~better_airtable.cache.ResponseCache` and served from it until
  an update or delete invalidates the whole cache.
- **Attachment caching** -- image attachments in GET responses are
  downloaded by an :class:`~better_airtable.attachments.AttachmentCache`
  and annotated with ``cached_url``.
- **Error mapping** -- connection problems raise
  :class:`~better_airtable.exceptions.TransportError`, statuses of 400
  and above raise :class:`~better_airtable.exceptions.ApiError`.

There is no retry layer: every failure reaches the caller immediately.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Optional
from urllib.parse import quote, urlencode

import httpx
from pydantic import ValidationError

from better_airtable.attachments import DEFAULT_MIME_PREFIXES, AttachmentCache
from better_airtable.cache import JsonFileStore, ResponseCache, ResponseStore
from better_airtable.client.response import decode_json, error_message
from better_airtable.config import describe_validation_error
from better_airtable.exceptions import ApiError, ConfigurationError, TransportError
from better_airtable.models import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, ClientConfig
from better_airtable.output import debug

_IPV4_ANY = "0.0.0.0"


class AirtableClient:
    """CRUD access to one Airtable table with optional on-disk caches.

    The underlying :class:`httpx.Client` is created on first use; the
    client can also be used as a context manager so that it is closed
    deterministically.

    Args:
        api_key: Personal access token sent as a bearer token.
        base_id: Airtable base identifier (``app...``).
        table_name: Table name or identifier.
        cache_dir: Directory for the response cache. ``None`` disables it.
        file_cache_dir: Directory for downloaded attachments. ``None``
            disables attachment caching.
        store: Response store to use instead of the ``cache_dir`` files,
            e.g. :class:`~better_airtable.cache.MemoryStore`.
        timeout: Seconds allowed for each phase (connect, read, write,
            pool) of a request; not a cap on the whole exchange.
        force_ipv4: Bind outgoing connections to an IPv4 address.
        base_url: API root; the table URL is
            ``{base_url}/{base_id}/{table_name}/``.
        cached_mime_prefixes: MIME prefixes whose attachments are downloaded.
        transport: Optional :class:`httpx.BaseTransport` shared by API
            requests and attachment downloads (tests pass a
            :class:`httpx.MockTransport`).

    Raises:
        ConfigurationError: If ``api_key``, ``base_id`` or ``table_name``
            is empty.

    Example::

        with AirtableClient(key, "appXXXX", "Tasks", cache_dir="./cache") as client:
            tasks = client.list_records(view="Open")
            client.update_record(tasks["records"][0]["id"], {"Done": True})
    """

    def __init__(
        self,
        api_key: str,
        base_id: str,
        table_name: str,
        cache_dir: Optional[str] = None,
        file_cache_dir: Optional[str] = None,
        *,
        store: Optional[ResponseStore] = None,
        timeout: float = DEFAULT_TIMEOUT,
        force_ipv4: bool = True,
        base_url: str = DEFAULT_BASE_URL,
        cached_mime_prefixes: Iterable[str] = DEFAULT_MIME_PREFIXES,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        try:
            self._config = ClientConfig(
                api_key=api_key,
                base_id=base_id,
                table_name=table_name,
                cache_dir=cache_dir,
                file_cache_dir=file_cache_dir,
                timeout=timeout,
                force_ipv4=force_ipv4,
                base_url=base_url,
                cached_mime_prefixes=tuple(cached_mime_prefixes),
            )
        except ValidationError as exc:
            raise ConfigurationError(describe_validation_error(exc)) from exc

        if store is None and self._config.cache_dir is not None:
            store = JsonFileStore(self._config.cache_dir)
        self._cache = ResponseCache(store)
        self._transport = transport
        self._client: Optional[httpx.Client] = None
        self._attachments: Optional[AttachmentCache] = None
        if self._config.file_cache_dir is not None:
            self._attachments = AttachmentCache(
                self._config.file_cache_dir,
                self._new_http_client,
                self._config.cached_mime_prefixes,
            )

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        *,
        store: Optional[ResponseStore] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> AirtableClient:
        """Build a client from a validated :class:`ClientConfig`."""
        return cls(**config.model_dump(), store=store, transport=transport)

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def table_url(self) -> str:
        return (
            f"{self._config.base_url.rstrip('/')}/"
            f"{quote(self._config.base_id, safe='')}/"
            f"{quote(self._config.table_name, safe='')}/"
        )

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> AirtableClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Release the HTTP connections and the response store."""
        if self._client is not None:
            self._client.close()
            self._client = None
        if self._attachments is not None:
            self._attachments.close()
        self._cache.close()

    # ------------------------------------------------------------------ #
    # Request dispatcher
    # ------------------------------------------------------------------ #

    def request(
        self,
        method: str,
        path: str = "",
        body: Optional[Any] = None,
        bypass_cache: bool = False,
    ) -> Any:
        """Send one request to the table endpoint and return the decoded JSON.

        GET requests are answered from the response cache when possible
        (unless *bypass_cache* is set). Successful GET payloads have their
        attachments cached and are then stored in the response cache.

        Args:
            method: GET, POST, PATCH or DELETE.
            path: Appended to :attr:`table_url` (a record id or ``?query``).
            body: JSON-serialisable request body.
            bypass_cache: Skip the cache lookup and do not store the result.

        Returns:
            The decoded JSON payload, or ``None`` when the body is empty or
            not valid JSON.

        Raises:
            TransportError: On connection, timeout or other network errors.
            ApiError: When the server answers with status 400 or above.
            FilesystemError: When the response cache cannot be written.
        """
        method = method.upper()
        url = f"{self.table_url}{path}"
        use_cache = method == "GET" and not bypass_cache

        if use_cache:
            cached = self._cache.get(method, url, body)
            if cached is not None:
                debug(f"Served from cache: {method} {url}")
                return cached

        response = self._send(method, url, body)
        self._raise_for_status(response)
        data = decode_json(response)

        if method == "GET" and data and self._attachments is not None:
            data = self._attachments.process(data)
        if use_cache and data:
            self._cache.set(method, url, body, data)
        return data

    # ------------------------------------------------------------------ #
    # Record operations
    # ------------------------------------------------------------------ #

    def list_records(
        self,
        view: Optional[str] = None,
        filter_by_formula: Optional[str] = None,
        bypass_cache: bool = False,
    ) -> Any:
        """List the table's records, optionally restricted to a view or formula."""
        query = urlencode(
            {
                key: value
                for key, value in (("view", view), ("filterByFormula", filter_by_formula))
                if value
            }
        )
        return self.request("GET", f"?{query}" if query else "", bypass_cache=bypass_cache)

    def get_record(self, record_id: str, bypass_cache: bool = False) -> Any:
        """Fetch one record by id."""
        return self.request("GET", record_id, bypass_cache=bypass_cache)

    def add_record(self, fields: dict[str, Any]) -> Any:
        """Create a record. The response cache is neither read nor invalidated."""
        return self.request("POST", "", {"fields": fields}, bypass_cache=True)

    def update_record(self, record_id: str, fields: dict[str, Any]) -> Any:
        """Update one record's fields, then drop the whole response cache."""
        payload = {"records": [{"id": record_id, "fields": fields}]}
        result = self.request("PATCH", "", payload, bypass_cache=True)
        if result:
            self._cache.invalidate_all()
        return result

    def delete_record(self, record_id: str) -> Any:
        """Delete one record, then drop the whole response cache."""
        result = self.request("DELETE", record_id, bypass_cache=True)
        if result:
            self._cache.invalidate_all()
        return result

    # ------------------------------------------------------------------ #
    # Cache management
    # ------------------------------------------------------------------ #

    def clear_cache(self, attachments: bool = False) -> None:
        """Drop every cached response, and the attachment files if asked."""
        self._cache.invalidate_all()
        if attachments and self._attachments is not None:
            removed = self._attachments.clear()
            debug(f"Removed {removed} cached attachment(s)")

    def cache_stats(self) -> dict[str, Any]:
        """Describe the response and attachment caches."""
        stats: dict[str, Any] = {"responses": self._cache.stats()}
        if self._attachments is None:
            stats["attachments"] = {"enabled": False}
        else:
            stats["attachments"] = {
                "enabled": True,
                "directory": self._attachments.directory,
                "size": len(self._attachments.files()),
            }
        return stats

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    @property
    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = self._new_http_client(
                headers={
                    "Authorization": f"Bearer {self._config.api_key}",
                    "Content-Type": "application/json",
                }
            )
        return self._client

    def _new_http_client(self, headers: Optional[dict[str, str]] = None) -> httpx.Client:
        transport = self._transport
        if transport is None:
            transport = httpx.HTTPTransport(
                local_address=_IPV4_ANY if self._config.force_ipv4 else None
            )
        return httpx.Client(
            headers=headers,
            timeout=self._config.timeout,
            transport=transport,
        )

    def _send(self, method: str, url: str, body: Optional[Any]) -> httpx.Response:
        content = json.dumps(body) if body is not None else None
        debug(f"{method} {url}")
        try:
            return self._http.request(method, url, content=content)
        except httpx.TransportError as exc:
            raise TransportError(f"Request to Airtable failed: {exc}") from exc

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        raise ApiError(response.status_code, error_message(response))
