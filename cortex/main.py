#!/usr/bin/env python3
"""
Main CLI entry point for cortex
"""

import typer

from cortex import __version__
from cortex.commands.browse import browse
from cortex.commands.filters import app as filters_app
from cortex.commands.items import app as items_app
from cortex.commands.spaces import app as spaces_app
from cortex.config.settings import validate_all_env_vars
from cortex.utils.logging_utils import setup_cli_logging

app = typer.Typer(help="cortex - knowledge library organization and query engine")


# Version command
@app.command()
def version():
    """Show cortex version"""
    typer.echo(f"cortex version {__version__}")


# Callback for global options
@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-error output"),
):
    """
    cortex - Knowledge library organization and query engine

    [bold]Examples:[/bold]

    Browse a library, newest first:
        [cyan]cortex browse library.json[/cyan]

    Only PDFs tagged "ml", second page:
        [cyan]cortex browse library.json --type pdf --tag ml --page 2[/cyan]

    Save the filter for later:
        [cyan]cortex filters save "ML papers" --type pdf --tag ml[/cyan]

    Reorder spaces:
        [cyan]cortex spaces move library.json team-2 --above team-1[/cyan]
    """
    if verbose and quiet:
        typer.echo("Error: --verbose and --quiet are mutually exclusive", err=True)
        raise typer.Exit(1)

    setup_cli_logging(verbose=verbose, quiet=quiet)
    for problem in validate_all_env_vars():
        typer.echo(f"Warning: {problem}", err=True)


app.command()(browse)
app.add_typer(filters_app, name="filters")
app.add_typer(spaces_app, name="spaces")
app.add_typer(items_app, name="items")


def run():
    """Entry point for the CLI"""
    app()


if __name__ == "__main__":
    run()
