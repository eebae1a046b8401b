"""ftcrag add-repo: fetch a team repository into the index.

Usage:
  ftcrag add-repo https://github.com/<owner>/<repo> [--embed]

The catalog index is loaded first (from the cache when present). The user
repository is not written to the cache.
"""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.console import Console

from ftcrag.cli.errors import err_init_failed, err_invalid_repo_url
from ftcrag.cli.runtime import build_controller, embedding_key, load_cli_config, status_panel
from ftcrag.config import FtcRagConfig
from ftcrag.ingest.github import InvalidRepositoryURL, parse_repository_url
from ftcrag.rag.lifecycle import RagStatus

console = Console()


def add_repo_cmd(
    url: Annotated[str, typer.Argument(help="GitHub repository URL.")],
    embed: Annotated[
        bool,
        typer.Option("--embed", help="Embed the new chunks (requires OPENAI_API_KEY)."),
    ] = False,
) -> None:
    """Add a user repository (TeamCode sources) to the index."""
    try:
        owner, repo = parse_repository_url(url)
    except InvalidRepositoryURL:
        console.print(err_invalid_repo_url(url))
        raise typer.Exit(1)

    cfg = load_cli_config()
    api_key = embedding_key(embed)

    try:
        before, after = asyncio.run(_add(cfg, url, api_key))
    except Exception as exc:
        console.print(err_init_failed(exc))
        raise typer.Exit(1)

    added = after.document_count - before.document_count
    if added > 0:
        console.print(f"  [green]✓[/] Added [bold]{added}[/] files from {owner}/{repo}")
    else:
        console.print(f"  [yellow]No files added from {owner}/{repo}.[/]")
    console.print(status_panel(after))


async def _add(cfg: FtcRagConfig, url: str, api_key: str | None) -> tuple[RagStatus, RagStatus]:
    controller, ingestor = build_controller(cfg)
    try:
        await controller.ensure_initialized()
        before = controller.status()
        after = await controller.add_user_repository(url, embedding_api_key=api_key)
    finally:
        await ingestor.aclose()
    return before, after
