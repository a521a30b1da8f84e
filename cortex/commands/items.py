"""
Item mutation commands for cortex.

Batches go through the optimistic mutation coordinator, so a batch either
succeeds for every id or is reported as failed as a whole.
"""

import asyncio
from pathlib import Path
from typing import List

import typer

from cortex.config.constants import OVERVIEW_SPACE_ID
from cortex.services.library_store import JsonLibraryStore
from cortex.services.mutations import ItemCollection, MutationResult, OptimisticMutationCoordinator
from cortex.services.protocols import ConsoleNotificationSink
from cortex.utils.error_handling import handle_cli_error
from cortex.utils.output import console

from ._helpers import open_library

app = typer.Typer(help="Move, delete and restore items")


def _coordinator(store: JsonLibraryStore, items) -> OptimisticMutationCoordinator:
    return OptimisticMutationCoordinator(
        ItemCollection(items),
        store,
        notifier=ConsoleNotificationSink(console),
        tag_store=store,
    )


def _warn_missing(ids: List[str], known: List[str]) -> List[str]:
    missing = [i for i in ids if i not in known]
    for item_id in missing:
        console.print(f"[yellow]Skipping unknown item {item_id}[/yellow]")
    return [i for i in ids if i in known]


@app.command()
@handle_cli_error("deleting items", console=console)
def delete(
    library: Path = typer.Argument(..., help="Library JSON file"),
    ids: List[str] = typer.Argument(..., help="Item ids to delete"),
) -> None:
    """Delete items (restorable with `cortex items restore`)."""
    store, data = open_library(library)
    ids = _warn_missing(ids, [item.id for item in data.items])
    if not ids:
        raise typer.Exit(1)

    async def _run() -> MutationResult:
        return await _coordinator(store, data.items).delete(ids)

    asyncio.run(_run()).raise_for_error()


@app.command()
@handle_cli_error("moving items", console=console)
def move(
    library: Path = typer.Argument(..., help="Library JSON file"),
    ids: List[str] = typer.Argument(..., help="Item ids to move"),
    to: str = typer.Option(..., "--to", help=f"Target space id ('{OVERVIEW_SPACE_ID}' to unassign)"),
) -> None:
    """Move items to another space."""
    store, data = open_library(library)
    ids = _warn_missing(ids, [item.id for item in data.items])
    if not ids:
        raise typer.Exit(1)
    target = None if to == OVERVIEW_SPACE_ID else to

    async def _run() -> MutationResult:
        return await _coordinator(store, data.items).move(ids, target)

    asyncio.run(_run()).raise_for_error()


@app.command()
@handle_cli_error("restoring items", console=console)
def restore(
    library: Path = typer.Argument(..., help="Library JSON file"),
    ids: List[str] = typer.Argument(..., help="Deleted item ids to restore"),
) -> None:
    """Restore deleted items to the front of the library."""
    store, data = open_library(library)
    ids = _warn_missing(ids, [item.id for item in data.trash])
    if not ids:
        raise typer.Exit(1)

    async def _run() -> None:
        for item_id in ids:
            await store.restore(item_id)

    asyncio.run(_run())
    console.print(f"[green]Restored {len(ids)} item(s)[/green]")
