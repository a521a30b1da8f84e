"""
Space and category commands for cortex.

    cortex spaces tree LIBRARY
    cortex spaces move LIBRARY SPACE [--above|--below TARGET] [--to CATEGORY]
    cortex spaces reorder-category LIBRARY CATEGORY (--above|--below) TARGET
    cortex spaces add LIBRARY NAME --category CATEGORY [--emoji E]
    cortex spaces remove LIBRARY SPACE
    cortex spaces add-category LIBRARY NAME [--icon I] [--color C]
    cortex spaces remove-category LIBRARY CATEGORY
"""

from pathlib import Path
from typing import Optional, Tuple

import typer
from rich.tree import Tree

from cortex.exceptions import ValidationError
from cortex.models.spaces import Category, Space
from cortex.services.library_store import JsonLibraryStore
from cortex.services.ordering import DragController, HierarchyOrderingEngine, OrderKind
from cortex.utils.error_handling import handle_cli_error
from cortex.utils.output import console, print_json

from ._helpers import build_ordering, open_library, open_preferences, parse_position

app = typer.Typer(help="Manage and order spaces and categories")


def _render_tree(engine: HierarchyOrderingEngine) -> None:
    tree = Tree("[bold]Library[/bold]")
    for category, spaces in engine.tree():
        branch = tree.add(f"[bold cyan]{category.name}[/bold cyan] [dim]({category.id})[/dim]")
        for space in spaces:
            branch.add(f"{space.emoji} {space.name} [dim]({space.id})[/dim]")
    console.print(tree)


def _open(library: Path) -> Tuple[JsonLibraryStore, HierarchyOrderingEngine]:
    store, data = open_library(library)
    engine = build_ordering(store, data, open_preferences())
    # Drop stored ids of spaces and categories removed outside cortex
    engine.heal()
    return store, engine


@app.command()
@handle_cli_error("showing space tree", console=console)
def tree(
    library: Path = typer.Argument(..., help="Library JSON file"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show categories and their spaces in display order."""
    _, engine = _open(library)

    if json_output:
        print_json(
            [
                {**category.to_dict(), "spaces": [space.to_dict() for space in spaces]}
                for category, spaces in engine.tree()
            ]
        )
        return

    _render_tree(engine)


@app.command()
@handle_cli_error("moving space", console=console)
def move(
    library: Path = typer.Argument(..., help="Library JSON file"),
    space_id: str = typer.Argument(..., help="Space to move"),
    above: Optional[str] = typer.Option(None, "--above", help="Drop above this space"),
    below: Optional[str] = typer.Option(None, "--below", help="Drop below this space"),
    to: Optional[str] = typer.Option(None, "--to", help="Destination category"),
) -> None:
    """Move a space within its category or into another one."""
    target, position = parse_position(above, below)
    _, engine = _open(library)
    space = engine.get_space(space_id)
    if space is None:
        console.print(f"[red]Error: Space '{space_id}' not found[/red]")
        raise typer.Exit(1)

    drag = DragController(engine)
    drag.start(OrderKind.SPACE, space_id, source_parent=space.category)
    if not drag.drop(target, position, target_parent=to):
        console.print("[yellow]Order unchanged[/yellow]")
        return

    moved = engine.get_space(space_id)
    console.print(f"[green]Moved {space.name}[/green] in [cyan]{moved.category}[/cyan]")
    _render_tree(engine)


@app.command("reorder-category")
@handle_cli_error("reordering categories", console=console)
def reorder_category(
    library: Path = typer.Argument(..., help="Library JSON file"),
    category_id: str = typer.Argument(..., help="Category to move"),
    above: Optional[str] = typer.Option(None, "--above", help="Drop above this category"),
    below: Optional[str] = typer.Option(None, "--below", help="Drop below this category"),
) -> None:
    """Move a category above or below another one."""
    target, position = parse_position(above, below, required=True)
    _, engine = _open(library)
    if engine.get_category(category_id) is None:
        console.print(f"[red]Error: Category '{category_id}' not found[/red]")
        raise typer.Exit(1)

    drag = DragController(engine)
    drag.start(OrderKind.CATEGORY, category_id)
    if not drag.drop(target, position):
        console.print("[yellow]Order unchanged[/yellow]")
        return

    console.print(f"[green]Moved category {category_id}[/green]")
    _render_tree(engine)


@app.command()
@handle_cli_error("adding space", console=console)
def add(
    library: Path = typer.Argument(..., help="Library JSON file"),
    name: str = typer.Argument(..., help="Name of the new space"),
    category_id: str = typer.Option(..., "--category", "-c", help="Category to add it to"),
    emoji: str = typer.Option("📁", "--emoji", help="Emoji shown next to the name"),
) -> None:
    """Create a space at the end of a category."""
    store, engine = _open(library)
    if engine.get_category(category_id) is None:
        console.print(f"[red]Error: Category '{category_id}' not found[/red]")
        raise typer.Exit(1)
    try:
        space = Space.create(name, category_id, emoji)
    except ValueError as e:
        raise ValidationError(str(e), field="name") from e

    engine.add_space(space)
    store.save_space(space)
    console.print(f"[green]Added space {space.name}[/green] [dim]({space.id})[/dim]")


@app.command()
@handle_cli_error("removing space", console=console)
def remove(
    library: Path = typer.Argument(..., help="Library JSON file"),
    space_id: str = typer.Argument(..., help="Space to remove"),
) -> None:
    """Remove a space. Its items move to the overview."""
    store, engine = _open(library)
    if not engine.remove_space(space_id):
        console.print(f"[red]Error: Space '{space_id}' not found[/red]")
        raise typer.Exit(1)

    unassigned = store.delete_space(space_id)
    console.print(f"[green]Removed space {space_id}[/green]")
    if unassigned:
        console.print(f"[dim]{unassigned} items moved to overview[/dim]")


@app.command("add-category")
@handle_cli_error("adding category", console=console)
def add_category(
    library: Path = typer.Argument(..., help="Library JSON file"),
    name: str = typer.Argument(..., help="Name of the new category"),
    icon: str = typer.Option("folder", "--icon", help="Icon name"),
    color: str = typer.Option("gray", "--color", help="Color name"),
) -> None:
    """Create a category after the existing ones."""
    store, engine = _open(library)
    try:
        category = Category.create(name, icon=icon, color=color)
    except ValueError as e:
        raise ValidationError(str(e), field="name") from e
    if engine.get_category(category.id) is not None:
        console.print(f"[red]Error: Category '{category.id}' already exists[/red]")
        raise typer.Exit(1)

    engine.add_category(category)
    store.save_category(category)
    console.print(f"[green]Added category {category.name}[/green] [dim]({category.id})[/dim]")


@app.command("remove-category")
@handle_cli_error("removing category", console=console)
def remove_category(
    library: Path = typer.Argument(..., help="Library JSON file"),
    category_id: str = typer.Argument(..., help="Category to remove"),
) -> None:
    """Remove a category with all of its spaces. Their items move to the overview."""
    store, engine = _open(library)
    if not engine.remove_category(category_id):
        console.print(f"[red]Error: Category '{category_id}' not found[/red]")
        raise typer.Exit(1)

    unassigned = store.delete_category(category_id)
    console.print(f"[green]Removed category {category_id}[/green]")
    if unassigned:
        console.print(f"[dim]{unassigned} items moved to overview[/dim]")
