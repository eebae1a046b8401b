"""ftcrag ingest: build (or refresh) the document cache and index.

Usage:
  ftcrag ingest [--force] [--embed]

Flags:
  --force   Ignore the cached snapshot and re-fetch every catalog source
  --embed   Embed all chunks (reads OPENAI_API_KEY)
"""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from ftcrag.cli.errors import err_init_failed
from ftcrag.cli.runtime import build_controller, embedding_key, load_cli_config, status_panel
from ftcrag.config import FtcRagConfig
from ftcrag.rag.lifecycle import RagStatus

console = Console()


def ingest_cmd(
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Re-fetch all sources, ignoring the cache."),
    ] = False,
    embed: Annotated[
        bool,
        typer.Option("--embed", help="Compute embeddings (requires OPENAI_API_KEY)."),
    ] = False,
) -> None:
    """Ingest the FTC source catalog and report the index status."""
    cfg = load_cli_config()
    api_key = embedding_key(embed)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
        console=console,
    ) as prog:
        prog.add_task("Ingesting sources…" if force else "Loading documents…", total=None)
        try:
            status = asyncio.run(_ingest(cfg, api_key, force))
        except Exception as exc:
            console.print(err_init_failed(exc))
            raise typer.Exit(1)

    console.print(f"  [green]✓[/] Cache: [bold]{cfg.ingest.cache_path}[/]")
    console.print(status_panel(status))


async def _ingest(cfg: FtcRagConfig, api_key: str | None, force: bool) -> RagStatus:
    controller, ingestor = build_controller(cfg)
    try:
        await controller.initialize(embedding_api_key=api_key, force=force)
    finally:
        await ingestor.aclose()
    return controller.status()
