"""
Browse command for cortex.

Shows one page of a library as a table: the scope's remembered filter is
restored, any axis options given on the command line are overlaid on it,
and the result is remembered for the next run.
"""

import asyncio
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

import typer
from rich.table import Table

from cortex.exceptions import ValidationError
from cortex.services.protocols import ConsoleNotificationSink
from cortex.ui.presenters import LibraryPresenter
from cortex.ui.viewmodels import ItemListVM
from cortex.utils.error_handling import handle_cli_error
from cortex.utils.output import console, print_json

from ._helpers import merge_filters, open_library, open_preferences


def _render_table(vm: ItemListVM) -> None:
    if not vm.rows:
        console.print("[yellow]No items match the current filters[/yellow]")
        console.print(f"[dim]{vm.status_text}[/dim]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Type", style="magenta")
    table.add_column("Space", style="green")
    table.add_column("Tags", style="yellow")
    table.add_column("Created", style="dim")

    for row in vm.rows:
        table.add_row(row.id, row.title, row.type, row.space, row.tags_display, row.created_at)

    console.print(table)
    console.print(f"[dim]{vm.status_text}[/dim]")


@handle_cli_error("browsing library", console=console)
def browse(
    library: Path = typer.Argument(..., help="Library JSON file"),
    scope: Optional[str] = typer.Option(None, "--scope", help="Space id to browse (default: whole library)"),
    types: Optional[List[str]] = typer.Option(None, "--type", "-t", help="Item type (repeatable)"),
    spaces: Optional[List[str]] = typer.Option(None, "--space", "-s", help="Space id (repeatable)"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", help="Required tag (repeatable)"),
    date_from: Optional[str] = typer.Option(None, "--from", help="Created on or after (YYYY-MM-DD)"),
    date_to: Optional[str] = typer.Option(None, "--to", help="Created on or before (YYYY-MM-DD)"),
    sort: Optional[str] = typer.Option(None, "--sort", help="newest, oldest, title-az or title-za"),
    search: Optional[str] = typer.Option(None, "--search", "-q", help="Match title or tags"),
    page: int = typer.Option(1, "--page", "-p", help="Page number"),
    page_size: Optional[int] = typer.Option(None, "--page-size", help="25, 50 or 100"),
    saved: Optional[str] = typer.Option(None, "--saved", help="Apply a saved filter by id"),
    clear: bool = typer.Option(False, "--clear", help="Forget the scope's remembered filter"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Browse a library with filters, search and pagination."""
    store, data = open_library(library)
    views: List[ItemListVM] = []

    async def on_list_update(vm: ItemListVM) -> None:
        views.append(vm)

    presenter = LibraryPresenter(
        store,
        on_list_update,
        preferences=open_preferences(),
        notifier=ConsoleNotificationSink(console),
        space_names={space.id: space.name for space in data.spaces},
    )

    async def _run() -> None:
        if not await presenter.load(scope):
            raise typer.Exit(1)
        if clear:
            await presenter.clear_filters()
        if saved:
            if not await presenter.apply_saved(saved):
                raise ValidationError("No saved filter with this id", filter_id=saved)
        if any([types, spaces, tags, date_from, date_to, sort]):
            await presenter.set_filters(
                merge_filters(presenter.filters, types, spaces, tags, date_from, date_to, sort)
            )
        if search:
            await presenter.set_search(search)
        if page_size is not None:
            await presenter.set_page_size(page_size)
        if page != 1:
            await presenter.go_to_page(page)

    asyncio.run(_run())
    vm = views[-1]

    if json_output:
        print_json(
            {
                "scope": vm.scope,
                "filters": presenter.filters.to_dict(),
                "page": vm.current_page,
                "total_pages": vm.total_pages,
                "page_size": vm.page_size,
                "total_items": vm.filtered_count,
                "items": [asdict(row) for row in vm.rows],
            }
        )
        return

    _render_table(vm)
