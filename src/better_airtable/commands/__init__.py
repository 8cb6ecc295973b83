"""Sub-command groups for the ``better-airtable`` CLI.

Shared helpers used by every group:

* :func:`open_client` -- build an :class:`~better_airtable.client.AirtableClient`
  for the active profile.
* :func:`handle_errors` -- report a
  :class:`~better_airtable.exceptions.BetterAirtableError` on stderr and
  exit with its code.
* :func:`parse_fields` -- turn ``--field NAME=VALUE`` / ``--data JSON``
  options into a fields mapping.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import typer

from better_airtable.client import AirtableClient
from better_airtable.config import load_global_config, profile_to_client_config, resolve_profile
from better_airtable.exceptions import BetterAirtableError, ConfigurationError
from better_airtable.output import error


@contextmanager
def handle_errors() -> Iterator[None]:
    """Turn library errors into a message on stderr and a non-zero exit."""
    try:
        yield
    except BetterAirtableError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def open_client(ctx: typer.Context) -> AirtableClient:
    """Build a client for the profile selected by ``--profile`` or the config files.

    ``ctx.obj["transport"]``, when present, is handed to the client as its
    HTTP transport.
    """
    obj = ctx.obj or {}
    profile = resolve_profile(obj.get("profile"))
    config = profile_to_client_config(
        profile,
        load_global_config(),
        use_cache=not obj.get("no_cache", False),
    )
    return AirtableClient.from_config(config, transport=obj.get("transport"))


def _coerce(value: str) -> Any:
    """Decode *value* as JSON when possible, otherwise keep the raw string."""
    try:
        return json.loads(value)
    except ValueError:
        return value


def parse_fields(fields: Optional[list[str]], data: Optional[str]) -> dict[str, Any]:
    """Merge ``--data`` (a JSON object) and repeated ``--field NAME=VALUE`` options.

    ``--field`` values override keys from ``--data``.

    Raises:
        ConfigurationError: On malformed input or when nothing was given.
    """
    result: dict[str, Any] = {}
    if data:
        try:
            parsed = json.loads(data)
        except ValueError as exc:
            raise ConfigurationError(f"--data is not valid JSON: {exc}") from exc
        if not isinstance(parsed, dict):
            raise ConfigurationError("--data must be a JSON object")
        result.update(parsed)

    for item in fields or []:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise ConfigurationError(f"Expected NAME=VALUE, got: {item}")
        result[name] = _coerce(value)

    if not result:
        raise ConfigurationError("No fields given; use --field NAME=VALUE or --data JSON")
    return result
