"""Output helpers for the CLI.

Results are written either as Rich tables and key/value lines for a terminal
or as one JSON object per command when JSON mode is on (the default when
stdout is not a terminal).
"""

import json
import sys
from dataclasses import dataclass
from typing import Any, TypedDict

import structlog
from rich.console import Console
from rich.table import Table

from cloudindex.utils.logging_utils import get_logger

stdout_console = Console()
stderr_console = Console(stderr=True)

logger = get_logger()


def set_json_mode(value: bool) -> None:
    """Switch between JSON and Rich output."""
    set_json_mode.mode = value  # type: ignore[attr-defined]


set_json_mode.mode = False  # type: ignore[attr-defined]


def is_json_mode() -> bool:
    return getattr(set_json_mode, "mode", False) or not sys.stdout.isatty()


def get_console() -> Console:
    """Console for human-readable output; stderr while stdout carries JSON."""
    return stderr_console if is_json_mode() else stdout_console


@dataclass
class Error:
    """Error message for output."""

    message: str


class TableData(TypedDict):
    """Table data for output."""

    title: str
    columns: list[str]
    rows: list[list[str]]


Payload = str | Error | TableData | dict[str, Any]


def is_table_data(data: dict[str, Any]) -> bool:
    return all(key in data for key in ("title", "columns", "rows"))


def _print_table(table_data: TableData) -> None:
    table = Table(title=table_data["title"])
    for column in table_data["columns"]:
        table.add_column(column)
    for row in table_data["rows"]:
        table.add_row(*row)
    get_console().print(table)


def _log_error(message: str) -> None:
    if structlog.is_configured():
        logger.error(message, subsystem="CLI")


def write(payload: Payload) -> None:
    """Write *payload* in the current output mode.

    Args:
        payload: A message, an ``Error``, a ``TableData`` table or a plain
            dictionary of results
    """
    if is_json_mode():
        _write_json(payload)
    else:
        _write_rich(payload)


def _write_json(payload: Payload) -> None:
    if isinstance(payload, str):
        print(json.dumps({"message": payload}))
    elif isinstance(payload, Error):
        print(json.dumps({"error": payload.message}))
        _log_error(payload.message)
    elif is_table_data(payload):
        print(json.dumps({"table": payload}, default=str))
    else:
        print(json.dumps(payload, default=str))


def _write_rich(payload: Payload) -> None:
    if isinstance(payload, str):
        get_console().print(payload)
    elif isinstance(payload, Error):
        stderr_console.print(f"[bold red]Error:[/bold red] {payload.message}")
        _log_error(payload.message)
    elif is_table_data(payload):
        _print_table(payload)  # type: ignore[arg-type]
    else:
        for key, value in payload.items():
            if isinstance(value, dict | list):
                get_console().print(f"[bold]{key}:[/bold] {json.dumps(value, default=str)}")
            else:
                get_console().print(f"[bold]{key}:[/bold] {value}")
