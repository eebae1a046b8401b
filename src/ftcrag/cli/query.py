"""ftcrag query: rank documentation for a prompt and print the context block.

Usage:
  ftcrag query "how do I switch limelight pipelines" [--top-k 5] [--json]
  ftcrag query "auto path" --drive-type mecanum --roadrunner --output context.md

Flags:
  --top-k N            Maximum documents returned
  --drive-type TYPE    mecanum | tank | omni
  --roadrunner / --ftclib / --dashboard / --external-vision
                       Framework toggles added to the query
  --json               Print {documents, scores, context} as JSON
  --output PATH        Write the formatted context to PATH (inside CWD)
  --yes                Skip the overwrite prompt
"""

from __future__ import annotations

import asyncio
import json
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from ftcrag.catalog import SourceCatalog
from ftcrag.cli.errors import err_init_failed, err_output_path_unsafe
from ftcrag.cli.output import check_overwrite, validate_output_path
from ftcrag.cli.runtime import build_controller, load_cli_config
from ftcrag.config import FtcRagConfig
from ftcrag.rag.retriever import QueryResult
from ftcrag.rag.rewriter import DriveType, RobotConfig
from ftcrag.store.snapshot import atomic_write

console = Console()


def query_cmd(
    prompt: Annotated[str, typer.Argument(help="Free-text question or request.")],
    top_k: Annotated[
        int | None,
        typer.Option("--top-k", "-k", min=1, help="Maximum documents to return."),
    ] = None,
    drive_type: Annotated[
        DriveType | None,
        typer.Option("--drive-type", case_sensitive=False, help="Robot drive type."),
    ] = None,
    roadrunner: Annotated[bool, typer.Option("--roadrunner", help="Road Runner enabled.")] = False,
    ftclib: Annotated[bool, typer.Option("--ftclib", help="FTCLib enabled.")] = False,
    dashboard: Annotated[bool, typer.Option("--dashboard", help="FTC Dashboard enabled.")] = False,
    external_vision: Annotated[
        bool, typer.Option("--external-vision", help="External vision processor present.")
    ] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON output.")] = False,
    output: Annotated[
        str | None,
        typer.Option("--output", "-o", help="Write the formatted context to this file."),
    ] = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompts.")] = False,
) -> None:
    """Retrieve ranked documentation for PROMPT."""
    output_path = None
    if output is not None:
        try:
            output_path = validate_output_path(output)
        except ValueError:
            console.print(err_output_path_unsafe(output))
            raise typer.Exit(1)
        if not check_overwrite(output_path, yes=yes):
            console.print("  [dim]Cancelled.[/]")
            raise typer.Exit(0)

    cfg = load_cli_config()
    robot = RobotConfig(
        drive_type=drive_type,
        roadrunner=roadrunner,
        ftclib=ftclib,
        dashboard=dashboard,
        external_vision=external_vision,
    )

    try:
        result, context, catalog = asyncio.run(_query(cfg, prompt, top_k, robot))
    except Exception as exc:
        console.print(err_init_failed(exc))
        raise typer.Exit(1)

    if as_json:
        payload = {**result.to_dict(), "context": context}
        typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        _print_ranking(result, catalog)
        if output_path is None:
            console.print(context, markup=False, highlight=False)

    if output_path is not None:
        atomic_write(output_path, context)
        console.print(f"\n  [green]✓[/] Context written to [bold]{output_path}[/]")


async def _query(
    cfg: FtcRagConfig, prompt: str, top_k: int | None, robot: RobotConfig
) -> tuple[QueryResult, str, SourceCatalog]:
    controller, ingestor = build_controller(cfg)
    try:
        await controller.ensure_initialized()
        result, context = await controller.retrieve_context(prompt, top_k, robot)
    finally:
        await ingestor.aclose()
    return result, context, controller.catalog


def _print_ranking(result: QueryResult, catalog: SourceCatalog) -> None:
    if not result.documents:
        console.print("[yellow]No matching documents.[/]")
        return

    table = Table(title="Ranked documents", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Score", justify="right")
    table.add_column("Tier")
    table.add_column("Title", style="bold")
    table.add_column("URL", style="dim")

    for rank, (doc, score) in enumerate(zip(result.documents, result.scores), start=1):
        table.add_row(
            str(rank),
            f"{score:.3f}",
            catalog.label(doc.source_priority),
            doc.title,
            doc.source_url,
        )
    console.print(table)
