"""ftcrag status: cache file overview, without triggering ingestion.

Reads the snapshot from disk only; no source is fetched.
"""

from __future__ import annotations

from collections import Counter
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ftcrag.catalog import SourceCatalog, default_catalog
from ftcrag.cli.errors import err_no_cache
from ftcrag.cli.runtime import build_controller, cache_path, load_cli_config, status_panel
from ftcrag.store.models import Document
from ftcrag.store.snapshot import load_snapshot

console = Console()


def status_cmd() -> None:
    """Show the document cache and the state of a fresh index."""
    cfg = load_cli_config()
    path = cache_path(cfg)

    controller, _ = build_controller(cfg)
    console.print(status_panel(controller.status(), title="Index"))

    if not path.exists():
        console.print(Panel(err_no_cache(str(path)), title="[bold]Document Cache[/]", expand=False))
        return

    docs = load_snapshot(path)
    _show_cache_panel(path, docs, default_catalog())


def _show_cache_panel(path: Path, docs: list[Document] | None, catalog: SourceCatalog) -> None:
    size_mb = path.stat().st_size / (1024 * 1024)
    lines = [f"File:      {path} ({size_mb:.1f} MB)"]
    if docs is None:
        lines.append("[yellow]Cache is unreadable and will be rebuilt on next ingest.[/]")
        console.print(Panel("\n".join(lines), title="[bold]Document Cache[/]", expand=False))
        return

    lines.append(f"Documents: [bold]{len(docs):,}[/]")
    console.print(Panel("\n".join(lines), title="[bold]Document Cache[/]", expand=False))

    per_tier = Counter(d.source_priority for d in docs)
    table = Table(show_header=True, box=None, padding=(0, 1))
    table.add_column("Tier", justify="right", style="dim")
    table.add_column("Source")
    table.add_column("Weight", justify="right")
    table.add_column("Documents", justify="right", style="bold")
    for tier in sorted(per_tier):
        table.add_row(
            str(tier), catalog.label(tier), f"{catalog.weight(tier):.1f}", str(per_tier[tier])
        )
    console.print(table)
