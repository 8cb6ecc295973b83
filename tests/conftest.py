"""Shared test fixtures for better_airtable.

Provides a stub Airtable server built on :class:`httpx.MockTransport`,
client factories wired to it, config isolation and output reset. These
fixtures are discovered by pytest and available to every test module.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import httpx
import pytest

from better_airtable.client import AirtableClient
from better_airtable.output import OutputFormat, OutputManager, reset_output, set_output

API_KEY = "keyTEST123"
BASE_ID = "appTEST"
TABLE = "Tasks"
TABLE_URL = f"https://api.airtable.com/v0/{BASE_ID}/{TABLE}/"


# ---------------------------------------------------------------------------
# Stub Airtable server
# ---------------------------------------------------------------------------


class StubApi:
    """Callable handler for :class:`httpx.MockTransport`.

    Requests under :data:`TABLE_URL` are API calls and are answered from
    :attr:`routes`, keyed by ``(method, suffix)`` where *suffix* is the part
    of the URL after the table prefix. Every other URL is treated as an
    attachment download and answered from :attr:`files`.
    """

    def __init__(self) -> None:
        self.api_requests: list[httpx.Request] = []
        self.downloads: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], tuple[int, dict[str, Any]]] = {}
        self.files: dict[str, tuple[int, bytes]] = {}
        self.fail_with: Optional[Exception] = None

    def route(
        self,
        method: str,
        suffix: str = "",
        json: Any = None,
        status: int = 200,
        content: Optional[bytes] = None,
    ) -> None:
        kwargs: dict[str, Any] = {"content": content} if content is not None else {"json": json}
        self.routes[(method, suffix)] = (status, kwargs)

    def file(self, url: str, content: bytes = b"\x89PNG data", status: int = 200) -> None:
        self.files[url] = (status, content)

    def calls(self, method: Optional[str] = None) -> list[httpx.Request]:
        return [r for r in self.api_requests if method is None or r.method == method]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.fail_with is not None:
            raise self.fail_with
        url = str(request.url)
        if url.startswith(TABLE_URL):
            self.api_requests.append(request)
            route = self.routes.get((request.method, url[len(TABLE_URL):]))
            if route is None:
                return httpx.Response(404, json={"error": "NOT_FOUND"})
            status, kwargs = route
            return httpx.Response(status, **kwargs)

        self.downloads.append(request)
        status, content = self.files.get(url, (404, b""))
        return httpx.Response(status, content=content)


def request_json(request: httpx.Request) -> Any:
    return json.loads(request.content)


@pytest.fixture
def stub_api() -> StubApi:
    return StubApi()


@pytest.fixture
def make_client(stub_api: StubApi):
    """Factory for clients talking to :func:`stub_api`; closed after the test."""
    clients: list[AirtableClient] = []

    def _make(**kwargs: Any) -> AirtableClient:
        kwargs.setdefault("transport", httpx.MockTransport(stub_api))
        client = AirtableClient(API_KEY, BASE_ID, TABLE, **kwargs)
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()


# ---------------------------------------------------------------------------
# Output / config isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Install a quiet manager for library tests and drop it afterwards.

    The OutputManager binds sys.stdout/sys.stderr when it is created, so a
    stale instance from an earlier CliRunner invocation must not leak.
    """
    set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True))
    yield
    reset_output()


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the XDG directories at *tmp_path* and chdir into it."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("better_airtable.config._is_xdg_platform", lambda: True)
    monkeypatch.delenv("BETTER_AIRTABLE_PROFILE", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
