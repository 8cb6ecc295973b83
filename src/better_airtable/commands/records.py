"""Record commands -- the CRUD surface of the client on the command line.

Provides the ``better-airtable records`` group. Read commands go through
the response cache unless ``--fresh`` is given; ``update`` and ``delete``
invalidate it, exactly like the library calls they wrap.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import typer

from better_airtable.commands import handle_errors, open_client, parse_fields
from better_airtable.models import Record
from better_airtable.output import OutputFormat, format_response, get_output, info, print_table, success

records_app = typer.Typer(no_args_is_help=True)


def _cell(value: Any) -> str:
    if isinstance(value, list) and value and isinstance(value[0], dict) and "url" in value[0]:
        return ", ".join(
            str(item.get("cached_url") or item.get("filename") or item.get("url"))
            for item in value
            if isinstance(item, dict)
        )
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    return "" if value is None else str(value)


def _print_records(data: Any) -> None:
    """Render a list response as a table, or as raw JSON in ``--json`` mode."""
    if get_output().format == OutputFormat.JSON or not isinstance(data, dict):
        format_response(data)
        return

    records = [Record.from_api(item) for item in data.get("records") or []]
    columns: list[str] = []
    for record in records:
        for name in record.fields:
            if name not in columns:
                columns.append(name)

    rows = [[record.id] + [_cell(record.fields.get(name)) for name in columns] for record in records]
    print_table(["id"] + columns, rows)
    info(f"{len(records)} record(s)")


@records_app.command("list")
def records_list(
    ctx: typer.Context,
    view: Optional[str] = typer.Option(None, "--view", help="Only records visible in this view."),
    formula: Optional[str] = typer.Option(
        None, "--formula", help="Airtable formula passed as filterByFormula."
    ),
    fresh: bool = typer.Option(False, "--fresh", help="Bypass the response cache."),
) -> None:
    """List records.

    Example::

        better-airtable records list --view "Grid view"
        better-airtable --json records list --formula "{Status}='Done'"
    """
    with handle_errors(), open_client(ctx) as client:
        data = client.list_records(view=view, filter_by_formula=formula, bypass_cache=fresh)
    _print_records(data)


@records_app.command("get")
def records_get(
    ctx: typer.Context,
    record_id: str = typer.Argument(help="Record id (rec...)."),
    fresh: bool = typer.Option(False, "--fresh", help="Bypass the response cache."),
) -> None:
    """Fetch a single record."""
    with handle_errors(), open_client(ctx) as client:
        data = client.get_record(record_id, bypass_cache=fresh)
    format_response(data)


@records_app.command("add")
def records_add(
    ctx: typer.Context,
    field: Optional[list[str]] = typer.Option(
        None, "--field", "-f", help="Field value as NAME=VALUE (repeatable)."
    ),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="Fields as a JSON object."),
) -> None:
    """Create a record.

    Values given with ``--field`` are decoded as JSON when they parse
    (``Count=3``, ``Done=true``) and kept as text otherwise.
    """
    with handle_errors():
        fields = parse_fields(field, data)
        with open_client(ctx) as client:
            result = client.add_record(fields)
    new_id = result.get("id") if isinstance(result, dict) else None
    success(f"Created record {new_id}" if new_id else "Created record")
    format_response(result)


@records_app.command("update")
def records_update(
    ctx: typer.Context,
    record_id: str = typer.Argument(help="Record id (rec...)."),
    field: Optional[list[str]] = typer.Option(
        None, "--field", "-f", help="Field value as NAME=VALUE (repeatable)."
    ),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="Fields as a JSON object."),
) -> None:
    """Update a record's fields. Clears the response cache on success."""
    with handle_errors():
        fields = parse_fields(field, data)
        with open_client(ctx) as client:
            result = client.update_record(record_id, fields)
    success(f"Updated record {record_id}")
    format_response(result)


@records_app.command("delete")
def records_delete(
    ctx: typer.Context,
    record_id: str = typer.Argument(help="Record id (rec...)."),
    force: bool = typer.Option(False, "--force", help="Skip the confirmation prompt."),
) -> None:
    """Delete a record. Clears the response cache on success."""
    if not force and not typer.confirm(f'Delete record "{record_id}"?'):
        info("Cancelled.")
        raise typer.Exit()

    with handle_errors(), open_client(ctx) as client:
        result = client.delete_record(record_id)
    success(f"Deleted record {record_id}")
    format_response(result)
