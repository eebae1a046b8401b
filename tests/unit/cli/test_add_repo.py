"""Tests for ftcrag add-repo."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

from typer.testing import CliRunner

from ftcrag.catalog import SourcePriority
from ftcrag.cli.main import app

runner = CliRunner()


def test_add_repo_invalid_url(workdir: Path) -> None:
    fetch = AsyncMock(return_value=[])
    with patch("ftcrag.ingest.ingestor.Ingestor.ingest_user_repository", fetch):
        result = runner.invoke(app, ["add-repo", "https://gitlab.com/team/bot"])

    assert result.exit_code == 1
    assert "Not a GitHub repository URL" in result.output
    fetch.assert_not_awaited()


def test_add_repo_merges_files(cached: Path, make_doc) -> None:
    docs = [
        make_doc("github-team-bot-1", "custom claw macro", priority=SourcePriority.USER_REPO),
        make_doc("github-team-bot-2", "custom lift macro", priority=SourcePriority.USER_REPO),
    ]
    with patch(
        "ftcrag.ingest.ingestor.Ingestor.ingest_user_repository", AsyncMock(return_value=docs)
    ):
        result = runner.invoke(app, ["add-repo", "https://github.com/team/bot"])

    assert result.exit_code == 0, result.output
    assert "Added 2 files from team/bot" in result.output
    assert "Documents: 5" in result.output


def test_add_repo_nothing_fetched(cached: Path) -> None:
    with patch(
        "ftcrag.ingest.ingestor.Ingestor.ingest_user_repository", AsyncMock(return_value=[])
    ):
        result = runner.invoke(app, ["add-repo", "https://github.com/team/empty"])

    assert result.exit_code == 0, result.output
    assert "No files added from team/empty" in result.output


def test_add_repo_does_not_touch_cache(cached: Path, make_doc) -> None:
    before = cached.read_bytes()
    docs = [make_doc("github-team-bot-1", "macro", priority=SourcePriority.USER_REPO)]
    with patch(
        "ftcrag.ingest.ingestor.Ingestor.ingest_user_repository", AsyncMock(return_value=docs)
    ):
        runner.invoke(app, ["add-repo", "https://github.com/team/bot"])

    assert cached.read_bytes() == before


def test_add_repo_embed_without_key(cached: Path) -> None:
    result = runner.invoke(app, ["add-repo", "https://github.com/team/bot", "--embed"])
    assert result.exit_code == 1
    assert "OPENAI_API_KEY" in result.output
