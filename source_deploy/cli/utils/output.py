"""Output helpers shared by CLI commands"""

import json
from typing import Any

import click
from rich import box
from rich.console import Console
from rich.table import Table

from ...api.exceptions import ConflictError, SourceDeployError
from ...constants import ExitCode

console = Console()
# Log records never share stdout with --json payloads
err_console = Console(stderr=True)


def print_json(data: Any) -> None:
    """Machine-readable output goes to stdout unformatted"""
    click.echo(json.dumps(data, indent=2))


def error_json(error: Exception, exit_code: int = ExitCode.FAILURE) -> dict:
    return {
        "status": exit_code,
        "name": type(error).__name__,
        "message": str(error),
        "exit_code": exit_code,
        "data": error.data if isinstance(error, SourceDeployError) else None,
    }


def print_conflicts(error: ConflictError) -> None:
    table = Table(title="Conflicts", box=box.SIMPLE, title_style="bold red")
    table.add_column("State")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Path", style="dim")
    for conflict in error.conflicts:
        table.add_row(conflict.state, conflict.full_name, conflict.type, conflict.file_path)
    console.print(table)


def print_error(error: Exception, json_output: bool = False) -> None:
    if json_output:
        print_json(error_json(error))
        return
    console.print(f"[red]Error:[/red] {error}")
    if isinstance(error, ConflictError):
        print_conflicts(error)
