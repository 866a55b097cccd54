"""Shared plumbing for CLI commands: client lifetime, error exit and output."""

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from lnbridge.domain.ports import LightningClient
from lnbridge.exceptions import LnBridgeError
from lnbridge.factory import create_client_from_settings
from lnbridge.utils.logging import clear_correlation_id, set_correlation_id

console = Console()
error_console = Console(stderr=True)

T = TypeVar("T")


def run_with_client(operation: Callable[[LightningClient], Awaitable[T]]) -> T:
    """Run ``operation`` against a client built from settings.

    Library errors are printed in red and turn into exit code 1.
    """

    async def _run() -> T:
        set_correlation_id()
        client = create_client_from_settings()
        try:
            return await operation(client)
        finally:
            await client.aclose()
            clear_correlation_id()

    try:
        return asyncio.run(_run())
    except LnBridgeError as e:
        error_console.print(f"[red]❌ Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e


def wants_json(ctx: typer.Context) -> bool:
    obj = ctx.find_root().obj
    return bool(obj and obj.get("json"))


def render_record(ctx: typer.Context, data: dict[str, Any], title: str) -> None:
    """Print one record as a two-column table, or as JSON with ``--json``."""
    if wants_json(ctx):
        console.print_json(json.dumps(data))
        return

    table = Table(title=title, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in data.items():
        table.add_row(key, "-" if value is None else str(value))
    console.print(table)


def render_rows(ctx: typer.Context, rows: list[dict[str, Any]], title: str) -> None:
    """Print records as one table row each, or as a JSON list with ``--json``."""
    if wants_json(ctx):
        console.print_json(json.dumps(rows))
        return
    if not rows:
        console.print(f"[yellow]No {title.lower()}[/yellow]")
        return

    table = Table(title=title)
    for column in rows[0]:
        table.add_column(column)
    for row in rows:
        table.add_row(*("-" if value is None else str(value) for value in row.values()))
    console.print(table)
