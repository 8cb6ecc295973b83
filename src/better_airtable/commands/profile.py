"""Profile commands -- create, inspect and select saved table connections.

A profile names one table (base id + table name), where its API key comes
from, and optionally where its caches live. Profiles are stored as JSON
under the config directory (see :mod:`better_airtable.config`).
"""

from __future__ import annotations

from typing import Optional

import typer

from better_airtable.commands import handle_errors
from better_airtable.output import error, format_response, info, print_table, success

profile_app = typer.Typer(no_args_is_help=True)


@profile_app.command("add")
def profile_add(
    name: str = typer.Argument(help="Profile name."),
    base_id: str = typer.Option(..., "--base", help="Airtable base id (app...)."),
    table_name: str = typer.Option(..., "--table", help="Table name or id."),
    key_source: str = typer.Option(
        "env:AIRTABLE_API_KEY",
        "--key-source",
        help="Where to read the API key: env:VAR, file:/path or prompt.",
    ),
    cache_dir: Optional[str] = typer.Option(None, "--cache-dir", help="Response cache directory."),
    file_cache_dir: Optional[str] = typer.Option(
        None, "--file-cache-dir", help="Attachment cache directory."
    ),
    timeout: float = typer.Option(30, "--timeout", help="Request timeout in seconds."),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace an existing profile."),
) -> None:
    """Save a new profile.

    Example::

        better-airtable profile add tasks --base appXXXX --table Tasks
    """
    from better_airtable.config import profile_exists, save_profile
    from better_airtable.models import Profile

    with handle_errors():
        if profile_exists(name) and not overwrite:
            error(f"Profile '{name}' already exists (use --overwrite to replace it)")
            raise typer.Exit(code=2)

        save_profile(
            Profile(
                name=name,
                base_id=base_id,
                table_name=table_name,
                api_key_source=key_source,
                cache_dir=cache_dir,
                file_cache_dir=file_cache_dir,
                timeout=timeout,
            )
        )
    success(f"Saved profile '{name}'")


@profile_app.command("list")
def profile_list() -> None:
    """List saved profiles; the default one is marked with ``*``."""
    from better_airtable.config import list_profiles, load_global_config, load_profile

    with handle_errors():
        default = load_global_config().default_profile
        rows = []
        for name in list_profiles():
            profile = load_profile(name)
            rows.append(["*" if name == default else "", name, profile.base_id, profile.table_name])

    if not rows:
        info("No profiles saved yet.")
        return
    print_table(["", "name", "base", "table"], rows)


@profile_app.command("show")
def profile_show(name: str = typer.Argument(help="Profile name.")) -> None:
    """Print a saved profile."""
    from better_airtable.config import load_profile

    with handle_errors():
        profile = load_profile(name)
    format_response(profile.model_dump(mode="json"))


@profile_app.command("use")
def profile_use(name: str = typer.Argument(help="Profile name.")) -> None:
    """Make *name* the default profile."""
    from better_airtable.config import load_global_config, profile_exists, save_global_config

    with handle_errors():
        if not profile_exists(name):
            error(f"Profile '{name}' not found")
            raise typer.Exit(code=2)
        config = load_global_config()
        config.default_profile = name
        save_global_config(config)
    success(f"Default profile set to '{name}'")


@profile_app.command("remove")
def profile_remove(
    name: str = typer.Argument(help="Profile name."),
    force: bool = typer.Option(False, "--force", help="Skip the confirmation prompt."),
) -> None:
    """Delete a saved profile (its cache directories are left alone)."""
    from better_airtable.config import delete_profile, load_global_config, save_global_config

    if not force and not typer.confirm(f'Remove profile "{name}"?'):
        info("Cancelled.")
        raise typer.Exit()

    with handle_errors():
        delete_profile(name)
        config = load_global_config()
        if config.default_profile == name:
            config.default_profile = None
            save_global_config(config)
    success(f"Removed profile '{name}'")
