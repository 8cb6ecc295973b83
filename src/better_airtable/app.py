"""Typer application and CLI entry point for better_airtable.

The root callback turns the global flags into an
:class:`~better_airtable.output.OutputManager` and stores shared options in
``ctx.obj``; sub-command groups live in :mod:`better_airtable.commands`.

:func:`main` is the console-script entry point declared in
``pyproject.toml``. It maps :class:`~better_airtable.exceptions.BetterAirtableError`
to its exit code and writes a crash log for anything unexpected.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from better_airtable import __version__
from better_airtable.commands.cache import cache_app
from better_airtable.commands.profile import profile_app
from better_airtable.commands.records import records_app
from better_airtable.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="better-airtable",
    help="Read and write an Airtable table through a local cache.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(records_app, name="records", help="List, fetch and modify records.")
app.add_typer(cache_app, name="cache", help="Inspect or clear the local caches.")
app.add_typer(profile_app, name="profile", help="Manage saved table connections.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"better-airtable {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
    ),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Profile name to use."),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    no_cache: bool = typer.Option(
        False, "--no-cache", help="Disable the response and attachment caches."
    ),
    output_file: Optional[str] = typer.Option(None, "-o", "--output", help="Output file path."),
) -> None:
    """Install the output manager and stash shared options in ``ctx.obj``.

    Without ``--json`` or ``--plain`` the format comes from ``config.json``.
    """
    from better_airtable.commands import handle_errors
    from better_airtable.config import load_global_config
    from better_airtable.output import OutputFormat, OutputManager, set_output

    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        with handle_errors():
            fmt = OutputFormat(load_global_config().output.format)

    set_output(
        OutputManager(
            format=fmt,
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
            output_file=output_file,
        )
    )

    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile
    ctx.obj["no_cache"] = no_cache
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log() -> str:
    """Write the current traceback under the data directory and return its path."""
    from better_airtable.config import get_data_dir

    log_path = get_data_dir() / f"crash-{datetime.now().strftime('%Y%m%d-%H%M%S')}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``better-airtable`` console script."""
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from better_airtable.exceptions import BetterAirtableError
        from better_airtable.output import error

        if isinstance(exc, BetterAirtableError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log()
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
