"""Storage backends for the response cache.

Every backend implements :class:`ResponseStore`: an opaque string key maps
to one decoded JSON payload, and the only form of invalidation is
:meth:`~ResponseStore.invalidate_all`. Entries are never updated in place.

Backends:

* :class:`JsonFileStore` -- one ``<key>.json`` file per entry. This is the
  layout the client uses when it is given a ``cache_dir``.
* :class:`DiskCacheStore` -- the same contract on top of
  :class:`diskcache.Cache` (a SQLite-backed directory).
* :class:`MemoryStore` -- a plain dict; used by the test-suite and for
  short-lived scripts that should not touch the disk.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

import diskcache

from better_airtable.config import atomic_write
from better_airtable.exceptions import FilesystemError
from better_airtable.output import debug


@runtime_checkable
class ResponseStore(Protocol):
    """Key/value storage for decoded API responses."""

    def get(self, key: str) -> Optional[Any]:
        """Return the payload stored under *key*, or ``None``."""
        ...

    def set(self, key: str, data: Any) -> None:
        """Store *data* under *key*, replacing any previous entry."""
        ...

    def invalidate_all(self) -> None:
        """Remove every entry."""
        ...

    def stats(self) -> dict[str, Any]:
        ...

    def close(self) -> None:
        ...


class JsonFileStore:
    """One JSON file per entry, named ``<key>.json``.

    The directory is created on the first write. Writes are atomic, so a
    concurrent reader sees either the old file or the new one. Files that
    cannot be read or parsed count as a miss.

    Args:
        directory: Directory that holds the entry files.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, key: str) -> Path:
        return self._directory / f"{key}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self.path_for(key)
        if not path.is_file():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            debug(f"Ignoring unreadable cache file {path}: {exc}")
            return None

    def set(self, key: str, data: Any) -> None:
        """Write *data* to ``<key>.json``.

        Raises:
            FilesystemError: If the directory cannot be created or the file
                cannot be written.
        """
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(
                f"Failed to create cache directory: {self._directory}"
            ) from exc
        path = self.path_for(key)
        try:
            atomic_write(path, json.dumps(data, ensure_ascii=False))
        except OSError as exc:
            raise FilesystemError(f"Failed to write cache file: {path}") from exc

    def invalidate_all(self) -> None:
        """Delete every ``*.json`` file in the directory.

        Raises:
            FilesystemError: If a cache file cannot be removed.
        """
        if not self._directory.is_dir():
            return
        for path in self._directory.glob("*.json"):
            if not path.is_file():
                continue
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise FilesystemError(f"Failed to remove cache file: {path}") from exc

    def stats(self) -> dict[str, Any]:
        size = len(list(self._directory.glob("*.json"))) if self._directory.is_dir() else 0
        return {"backend": "files", "directory": str(self._directory), "size": size}

    def close(self) -> None:
        pass


class DiskCacheStore:
    """Response store backed by :class:`diskcache.Cache`.

    Entries never expire; they only disappear through
    :meth:`invalidate_all`.

    Args:
        directory: Directory handed to :class:`diskcache.Cache`.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)
        try:
            self._cache = diskcache.Cache(str(self._directory))
        except OSError as exc:
            raise FilesystemError(
                f"Failed to create cache directory: {self._directory}"
            ) from exc

    def get(self, key: str) -> Optional[Any]:
        return self._cache.get(key)

    def set(self, key: str, data: Any) -> None:
        try:
            self._cache.set(key, data)
        except OSError as exc:
            raise FilesystemError(f"Failed to write cache entry {key}: {exc}") from exc

    def invalidate_all(self) -> None:
        self._cache.clear()

    def stats(self) -> dict[str, Any]:
        return {"backend": "diskcache", "directory": str(self._directory), "size": len(self._cache)}

    def close(self) -> None:
        self._cache.close()


class MemoryStore:
    """In-process store. Payloads are copied through JSON on the way in and out."""

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def get(self, key: str) -> Optional[Any]:
        raw = self._entries.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, data: Any) -> None:
        self._entries[key] = json.dumps(data)

    def invalidate_all(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, Any]:
        return {"backend": "memory", "size": len(self._entries)}

    def close(self) -> None:
        pass

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
