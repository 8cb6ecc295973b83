"""Local copies of attachment files referenced by records.

:class:`AttachmentCache` walks a decoded response (a ``records`` list or a
single record), finds attachment-type field values and downloads each
qualifying attachment to ``<directory>/<attachment id>.<extension>``. A
successful download (or an already present file) is recorded on the
attachment object itself as ``cached_url``.

Files are addressed by the remote attachment id, not by content: once a
file exists locally it is reused as-is.

Download problems never propagate. A failed download only means the
attachment is left without ``cached_url``; the reason is written to the
debug channel.
"""

from __future__ import annotations

import os
from pathlib import PurePosixPath
from typing import Any, Callable, Iterable, Optional
from urllib.parse import urlparse

import httpx

from better_airtable.config import atomic_write
from better_airtable.models import Attachment
from better_airtable.output import debug

MIME_EXTENSIONS: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
    "application/pdf": "pdf",
}

DEFAULT_EXTENSION = "jpg"
DEFAULT_MIME_PREFIXES: tuple[str, ...] = ("image/",)


def _is_safe_name(name: str) -> bool:
    """True when *name* can be used as a file name inside the cache directory."""
    return name not in (".", "..") and "/" not in name and os.sep not in name and "\0" not in name


def extension_for(attachment: dict[str, Any]) -> str:
    """Pick the file extension for *attachment*.

    Known MIME types map through :data:`MIME_EXTENSIONS`. Anything else
    falls back to the extension of the URL path, then to ``jpg``.
    """
    mime = attachment.get("type")
    if mime in MIME_EXTENSIONS:
        return MIME_EXTENSIONS[mime]
    path = urlparse(str(attachment.get("url") or "")).path
    suffix = PurePosixPath(path).suffix.lstrip(".").lower()
    return suffix or DEFAULT_EXTENSION


class AttachmentCache:
    """Downloads attachments into a local directory and annotates them.

    Args:
        directory: Where files are stored. Created on first download.
        http_factory: Builds the client used for downloads, on first use
            and again after :meth:`close`. That client must not carry the
            API credentials, since attachment URLs point at another host.
        mime_prefixes: Only attachments whose ``type`` starts with one of
            these prefixes are downloaded.

    Example::

        cache = AttachmentCache("./cache/files", httpx.Client)
        data = cache.process(client.list_records())
    """

    def __init__(
        self,
        directory: str,
        http_factory: Callable[[], httpx.Client],
        mime_prefixes: Iterable[str] = DEFAULT_MIME_PREFIXES,
    ) -> None:
        self._directory = str(directory)
        self._http_factory = http_factory
        self._client: Optional[httpx.Client] = None
        self._mime_prefixes = tuple(mime_prefixes)

    @property
    def directory(self) -> str:
        return self._directory

    def process(self, data: Any) -> Any:
        """Annotate every qualifying attachment in *data* and return it.

        *data* is modified in place. Payloads that are neither a record list
        nor a single record are returned untouched.
        """
        if not isinstance(data, dict):
            return data
        if "records" in data:
            for record in data["records"] or []:
                if isinstance(record, dict):
                    self._process_record(record)
        elif "fields" in data:
            self._process_record(data)
        return data

    def local_path(self, attachment: dict[str, Any]) -> str:
        return os.path.join(self._directory, f"{attachment['id']}.{extension_for(attachment)}")

    def ensure_local(self, attachment: dict[str, Any]) -> Optional[str]:
        """Return the local path of *attachment*, downloading it if needed.

        Returns ``None`` when the file is not present and could not be
        fetched or written.
        """
        if not attachment.get("id") or not attachment.get("url"):
            return None
        if not _is_safe_name(str(attachment["id"])):
            debug(f"Skipping attachment with unusable id {attachment['id']!r}")
            return None

        target = self.local_path(attachment)
        if os.path.exists(target):
            return target

        url = str(attachment["url"])
        try:
            response = self._http.get(url, follow_redirects=True)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            debug(f"Attachment {attachment['id']} download failed: {exc}")
            return None

        if not (200 <= response.status_code < 300) or not response.content:
            debug(
                f"Attachment {attachment['id']} download failed: "
                f"HTTP {response.status_code}"
            )
            return None

        try:
            atomic_write(target, response.content)
        except OSError as exc:
            debug(f"Attachment {attachment['id']} could not be written to {target}: {exc}")
            return None

        debug(f"Cached attachment {attachment['id']} at {target}")
        return target

    def files(self) -> list[str]:
        """Return the names of the files currently in the cache directory."""
        if not os.path.isdir(self._directory):
            return []
        return sorted(
            name
            for name in os.listdir(self._directory)
            if not name.startswith(".") and os.path.isfile(os.path.join(self._directory, name))
        )

    def clear(self) -> int:
        """Delete every cached file and return how many were removed."""
        removed = 0
        for name in self.files():
            os.unlink(os.path.join(self._directory, name))
            removed += 1
        return removed

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    @property
    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = self._http_factory()
        return self._client

    def _wants(self, mime: Any) -> bool:
        return isinstance(mime, str) and mime.startswith(self._mime_prefixes)

    def _process_record(self, record: dict[str, Any]) -> None:
        fields = record.get("fields")
        if not isinstance(fields, dict):
            return
        for value in fields.values():
            if not Attachment.is_attachment_list(value):
                continue
            for attachment in value:
                if not isinstance(attachment, dict) or not self._wants(attachment.get("type")):
                    continue
                cached = self.ensure_local(attachment)
                if cached:
                    attachment["cached_url"] = cached
