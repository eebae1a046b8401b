"""ftcrag CLI entry point."""

from __future__ import annotations

import importlib.metadata
import sys
from typing import Annotated

import typer
from loguru import logger

from ftcrag.cli.add_repo import add_repo_cmd
from ftcrag.cli.ingest import ingest_cmd
from ftcrag.cli.query import query_cmd
from ftcrag.cli.status import status_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("ftcrag")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"ftcrag {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="ftcrag",
    help=(
        "ftcrag: FTC documentation retrieval for code-assistant prompts.\n\n"
        "  ftcrag ingest     Fetch the source catalog into the local cache.\n"
        "  ftcrag query      Rank documentation for a prompt and print the context."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log ingestion and ranking details to stderr."),
    ] = False,
) -> None:
    """ftcrag: FTC documentation retrieval for code-assistant prompts."""
    if verbose:
        logger.remove()
        logger.add(
            sys.stderr,
            level="DEBUG",
            format="<dim>{time:HH:mm:ss.SSS}</dim> | <level>{level: <8}</level> | <level>{message}</level>",
        )
        logger.enable("ftcrag")
    else:
        logger.disable("ftcrag")


app.command("ingest")(ingest_cmd)
app.command("query")(query_cmd)
app.command("status")(status_cmd)
app.command("add-repo")(add_repo_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed ftcrag version."""
    typer.echo(f"ftcrag {_installed_version()}")


if __name__ == "__main__":
    app()
