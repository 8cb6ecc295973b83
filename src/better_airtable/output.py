"""Output and diagnostics for better_airtable, split across stdout and stderr.

* **stdout** carries data only: records, JSON payloads, tables.
* **stderr** carries everything else: status lines, warnings, errors and
  the ``debug`` trace that the client emits for cache hits, misses,
  requests and swallowed attachment failures.

Colour is disabled when ``NO_COLOR`` is set, when ``TERM=dumb``, or when
``--no-color`` is passed. ``AUTO`` format resolves to Rich on an
interactive terminal and to plain text when piped.

Library code never holds an :class:`OutputManager`; it calls the
module-level helpers (:func:`debug`, :func:`warning`, ...) which delegate
to the instance installed by :func:`set_output`, creating a default one on
first use.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """Supported output formats for data written to stdout."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Routes data to stdout and diagnostics to stderr.

    Args:
        format: Desired output format. ``AUTO`` resolves on TTY detection.
        no_color: Disable colour and Rich markup.
        quiet: Suppress ``info`` and ``success`` messages.
        verbose: Show ``debug`` messages.
        output_file: Write data to this path instead of stdout.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
        output_file: Optional[str] = None,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._output_file = output_file

        if format == OutputFormat.AUTO:
            self._format = (
                OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
            )
        else:
            self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Write a decoded API payload to stdout in the active format."""
        if self._output_file:
            self._write_to_file(data)
            return

        if self._format == OutputFormat.JSON:
            self.print_data(_dumps(data))
        elif self._format == OutputFormat.PLAIN:
            self._print_plain(data)
        elif isinstance(data, (dict, list)):
            self._stdout.print(Syntax(_dumps(data), "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(str(data))

    def print_data(self, text: str) -> None:
        """Write *text* plus a trailing newline to stdout or the output file."""
        if self._output_file:
            with open(self._output_file, "a", encoding="utf-8") as f:
                f.write(text if text.endswith("\n") else text + "\n")
        else:
            print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows as a Rich table, JSON objects or tab-separated lines."""
        if self._format == OutputFormat.JSON:
            self.print_data(_dumps([dict(zip(headers, row)) for row in rows]))
        elif self._format == OutputFormat.PLAIN:
            self.print_data("\t".join(headers))
            for row in rows:
                self.print_data("\t".join(row))
        else:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for header in headers:
                table.add_column(header)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        if not self._quiet:
            self._emit(message, "{}")

    def success(self, message: str) -> None:
        if not self._quiet:
            self._emit(message, "[green]{}[/green]")

    def warning(self, message: str) -> None:
        """Print a warning. Shown even in quiet mode."""
        self._emit(f"Warning: {message}", "[yellow]Warning:[/yellow] {}", message)

    def error(self, message: str) -> None:
        """Print an error. Never suppressed."""
        self._emit(f"Error: {message}", "[bold red]Error:[/bold red] {}", message)

    def debug(self, message: str) -> None:
        """Print a ``[debug]`` line, only when verbose."""
        if self._verbose:
            self._emit(f"[debug] {message}", "[dim][debug] {}[/dim]", message)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _emit(self, plain: str, markup: str, body: Optional[str] = None) -> None:
        if self._no_color:
            print(plain, file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup.format(plain if body is None else body))

    def _print_plain(self, data: Any) -> None:
        if isinstance(data, dict):
            for key, value in data.items():
                self.print_data(f"{key}\t{_cell(value)}")
        elif isinstance(data, list):
            for item in data:
                if isinstance(item, dict):
                    self.print_data("\t".join(_cell(v) for v in item.values()))
                else:
                    self.print_data(_cell(item))
        else:
            self.print_data(str(data))

    def _write_to_file(self, data: Any) -> None:
        assert self._output_file is not None
        content = _dumps(data) if isinstance(data, (dict, list)) else str(data)
        with open(self._output_file, "w", encoding="utf-8") as f:
            f.write(content if content.endswith("\n") else content + "\n")


# ------------------------------------------------------------------ #
# Module-level helpers
# ------------------------------------------------------------------ #


def _dumps(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _cell(value: Any) -> str:
    """Render one value for plain/table output; containers become compact JSON."""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    if value is None:
        return ""
    return str(value)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global output instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the installed manager. Used by the test-suite between tests."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
