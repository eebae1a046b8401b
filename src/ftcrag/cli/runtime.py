"""Shared CLI plumbing: config loading, controller wiring, status rendering."""

from __future__ import annotations

import os
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from ftcrag.catalog import default_catalog
from ftcrag.cli.errors import err_config, err_no_api_key
from ftcrag.config import ConfigError, FtcRagConfig, load_config
from ftcrag.ingest.ingestor import Ingestor
from ftcrag.rag.lifecycle import LifecycleController, RagStatus

console = Console()

API_KEY_ENV = "OPENAI_API_KEY"


def load_cli_config() -> FtcRagConfig:
    """load_config() with config errors mapped to exit code 1."""
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(exc))
        raise typer.Exit(1)


def embedding_key(embed: bool) -> str | None:
    """Return the API key when --embed is set; exit 1 if it is missing."""
    if not embed:
        return None
    key = os.environ.get(API_KEY_ENV, "").strip()
    if not key:
        console.print(err_no_api_key(API_KEY_ENV))
        raise typer.Exit(1)
    return key


def build_controller(cfg: FtcRagConfig) -> tuple[LifecycleController, Ingestor]:
    catalog = default_catalog()
    ingestor = Ingestor.from_config(cfg, catalog)
    return LifecycleController(ingestor, catalog, cfg), ingestor


def status_panel(status: RagStatus, title: str = "RAG Status") -> Panel:
    state = (
        "[green]ready[/]"
        if status.ready
        else "[yellow]initializing[/]"
        if status.in_progress
        else "[dim]not initialized[/]"
    )
    lines = [
        f"State:     {state}",
        f"Scoring:   [bold]{status.scoring_mode}[/]",
        f"Documents: [bold]{status.document_count:,}[/]  |  "
        f"Chunks: [bold]{status.chunk_count:,}[/]  |  "
        f"Embedded: [bold]{status.embedded_chunk_count:,}[/]",
    ]
    return Panel("\n".join(lines), title=f"[bold]{title}[/]", expand=False)


def cache_path(cfg: FtcRagConfig) -> Path:
    return Path(cfg.ingest.cache_path)
