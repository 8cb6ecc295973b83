"""Cache commands -- inspect and clear the active profile's caches."""

from __future__ import annotations

import typer

from better_airtable.commands import handle_errors, open_client
from better_airtable.output import format_response, info, success

cache_app = typer.Typer(no_args_is_help=True)


@cache_app.command("info")
def cache_info(ctx: typer.Context) -> None:
    """Show where the caches live and how many entries they hold."""
    with handle_errors(), open_client(ctx) as client:
        stats = client.cache_stats()
    if not stats["responses"].get("enabled"):
        info("Response cache is disabled for this profile.")
    format_response(stats)


@cache_app.command("clear")
def cache_clear(
    ctx: typer.Context,
    attachments: bool = typer.Option(
        False, "--attachments", help="Also delete downloaded attachment files."
    ),
) -> None:
    """Drop every cached response (and optionally the attachment files)."""
    with handle_errors(), open_client(ctx) as client:
        client.clear_cache(attachments=attachments)
    success("Attachment and response caches cleared." if attachments else "Response cache cleared.")
