"""Decoding helpers for :class:`httpx.Response` objects returned by Airtable.

Kept apart from the client so that the lenient decoding rules live in one
place:

* a 2xx body that is empty or not valid JSON decodes to ``None``;
* any other status below 400 also decodes to ``None``;
* for error statuses, :func:`error_message` digs the server message out of
  the two shapes Airtable uses: ``{"error": {"type": ..., "message": ...}}``
  and ``{"error": "NOT_FOUND"}``.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from better_airtable.output import debug


def decode_json(response: httpx.Response) -> Any:
    """Return the decoded body of a successful response, or ``None``."""
    if not (200 <= response.status_code < 300):
        return None
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as exc:
        debug(f"Discarding undecodable response body (HTTP {response.status_code}): {exc}")
        return None


def error_message(response: httpx.Response) -> Optional[str]:
    """Extract the server-provided error message, if the body carries one."""
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None

    err = payload.get("error")
    if isinstance(err, dict) and err.get("message"):
        return str(err["message"])
    if isinstance(err, str) and err:
        return err
    if payload.get("message"):
        return str(payload["message"])
    return None
