"""Rendering of exchange results for the terminal."""

import json
from datetime import datetime, timezone
from typing import Any

import click
import yaml
from pydantic import BaseModel

# (field, header, width)
Column = tuple[str, str, int]

# Fields holding a unix timestamp in seconds
TIMESTAMP_FIELDS = {"time"}


def to_data(value: Any) -> Any:
    """Plain data for a result; amounts become fixed-point strings."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [to_data(v) for v in value]
    return value


def format_cell(field: str, value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "yes" if value else "no"
    if field in TIMESTAMP_FIELDS and isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
    # IDs and amounts are printed as the exchange sent them, ungrouped
    return str(value)


def format_table(rows: list[dict], columns: list[Column]) -> str:
    if not rows:
        return "No data found."

    lines = ["  ".join(header.ljust(width) for _, header, width in columns).rstrip()]
    lines.append("-" * len(lines[0]))
    for row in rows:
        cells = []
        for field, _, width in columns:
            cell = format_cell(field, row.get(field))
            if len(cell) > width:
                cell = cell[: width - 2] + ".."
            cells.append(cell.ljust(width))
        lines.append("  ".join(cells).rstrip())
    return "\n".join(lines)


def format_record(record: dict) -> str:
    """Key/value listing of a single result; nested objects use dotted keys."""
    pairs = []

    def walk(prefix: str, obj: dict) -> None:
        for key, value in obj.items():
            name = f"{prefix}{key}"
            if isinstance(value, dict):
                walk(f"{name}.", value)
            elif isinstance(value, list):
                pairs.append((name, json.dumps(value) if value else "(none)"))
            else:
                pairs.append((name, format_cell(key, value)))

    walk("", record)
    width = max((len(name) for name, _ in pairs), default=0)
    return "\n".join(f"{name.ljust(width)}  {value}" for name, value in pairs)


def format_output(data: Any, fmt: str, columns: list[Column] | None = None) -> str:
    """Render a result as 'table', 'json' or 'yaml'.

    Lists are tabulated with ``columns`` (every field when omitted),
    single objects are listed field by field.
    """
    data = to_data(data)
    if fmt == "json":
        return json.dumps(data, indent=2)
    if fmt == "yaml":
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    if isinstance(data, list):
        if columns is None:
            columns = [(field, field, 14) for field in (data[0] if data else {})]
        return format_table(data, columns)
    if isinstance(data, dict):
        return format_record(data)
    return str(data)


def output(data: Any, fmt: str, columns: list[Column] | None = None) -> None:
    click.echo(format_output(data, fmt, columns))


def success(message: str) -> None:
    click.echo(click.style(message, fg="green"))


def error(message: str) -> None:
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)


def info(message: str) -> None:
    click.echo(message)
