"""CLI package for the managed index client.

This package contains the command-line interface components, including:
- Output formatting (JSON and Rich text)
- Command implementations
"""

from cloudindex.cli.cli import app, run_cli
from cloudindex.cli.output import Error, TableData, set_json_mode, write

__all__ = ["Error", "TableData", "app", "run_cli", "set_json_mode", "write"]
