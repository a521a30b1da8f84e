"""
Saved filter commands for cortex.

    cortex filters list            → list saved filters
    cortex filters save NAME ...   → save a filter snapshot
    cortex filters show ID         → print a saved filter
    cortex filters rename ID NAME  → rename a saved filter
    cortex filters delete ID       → delete a saved filter
"""

from typing import List, Optional

import typer
from rich.table import Table

from cortex.models.filters import FilterState
from cortex.services.saved_filters import SavedFilterRegistry
from cortex.utils.datetime_utils import format_datetime
from cortex.utils.error_handling import handle_cli_error
from cortex.utils.output import console, print_json

from ._helpers import merge_filters, open_preferences

app = typer.Typer(help="Manage saved filters")


def _registry() -> SavedFilterRegistry:
    return SavedFilterRegistry(open_preferences())


def _describe(filters: FilterState) -> str:
    params = filters.to_query_params()
    if not params:
        return "(no constraints)"
    return " ".join(f"{key}={value}" for key, value in params.items())


@app.command("list")
@handle_cli_error("listing saved filters", console=console)
def list_cmd(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List saved filters in creation order."""
    saved = _registry().list()

    if json_output:
        print_json([f.to_dict() for f in saved])
        return

    if not saved:
        console.print("[yellow]No saved filters[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Filters", style="green")
    table.add_column("Created", style="dim")
    for f in saved:
        table.add_row(f.id, f.name, _describe(f.filters), format_datetime(f.created_at))
    console.print(table)


@app.command()
@handle_cli_error("saving filter", console=console)
def save(
    name: str = typer.Argument(..., help="Label for the filter (need not be unique)"),
    scope: Optional[str] = typer.Option(
        None, "--scope", help="Start from the scope's remembered filter"
    ),
    types: Optional[List[str]] = typer.Option(None, "--type", "-t", help="Item type (repeatable)"),
    spaces: Optional[List[str]] = typer.Option(None, "--space", "-s", help="Space id (repeatable)"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", help="Required tag (repeatable)"),
    date_from: Optional[str] = typer.Option(None, "--from", help="Created on or after (YYYY-MM-DD)"),
    date_to: Optional[str] = typer.Option(None, "--to", help="Created on or before (YYYY-MM-DD)"),
    sort: Optional[str] = typer.Option(None, "--sort", help="newest, oldest, title-az or title-za"),
) -> None:
    """Save a filter snapshot under a name."""
    preferences = open_preferences()
    base = FilterState.default()
    if scope:
        base = preferences.get_scope_filters(scope) or base
    filters = merge_filters(base, types, spaces, tags, date_from, date_to, sort)

    saved = SavedFilterRegistry(preferences).save(name, filters)
    console.print(f"[green]Saved filter {saved.id}[/green] [dim]{saved.name}[/dim]")


@app.command()
@handle_cli_error("showing saved filter", console=console)
def show(
    filter_id: str = typer.Argument(..., help="Saved filter id"),
) -> None:
    """Print a saved filter as JSON."""
    saved = _registry().get(filter_id)
    if saved is None:
        console.print(f"[red]Error: Saved filter '{filter_id}' not found[/red]")
        raise typer.Exit(1)
    print_json(saved.to_dict())


@app.command()
@handle_cli_error("renaming saved filter", console=console)
def rename(
    filter_id: str = typer.Argument(..., help="Saved filter id"),
    name: str = typer.Argument(..., help="New name"),
) -> None:
    """Rename a saved filter."""
    if not _registry().rename(filter_id, name):
        console.print(f"[red]Error: Saved filter '{filter_id}' not found[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Renamed {filter_id}[/green] to [cyan]{name.strip()}[/cyan]")


@app.command()
@handle_cli_error("deleting saved filter", console=console)
def delete(
    filter_id: str = typer.Argument(..., help="Saved filter id"),
) -> None:
    """Delete a saved filter."""
    if not _registry().delete(filter_id):
        console.print(f"[red]Error: Saved filter '{filter_id}' not found[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Deleted saved filter {filter_id}[/green]")
