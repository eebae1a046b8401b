"""Tests for the Ingestor: cache hits, partial-ingestion tolerance, user repositories."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from ftcrag.catalog import (
    DocumentSource,
    RepositorySource,
    SourceCatalog,
    SourcePriority,
    WebSource,
)
from ftcrag.config import FtcRagConfig
from ftcrag.ingest.ingestor import Ingestor
from ftcrag.ingest.web import WebFetcher
from ftcrag.ingest.seed import seed_documents


def _zip(files: dict[str, str], root: str = "repo-main") -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for path, content in files.items():
            zf.writestr(f"{root}/{path}", content)
    return buf.getvalue()


_GOOD_ZIP = _zip(
    {
        "TeamCode/src/main/java/org/team/Auto.java": "public class Auto {}",
        "TeamCode/src/main/java/org/team/TeleOp.java": "public class TeleOp {}",
        "docs/readme.md": "# readme",
    }
)

_CATALOG = SourceCatalog(
    sources=(
        RepositorySource("Good repo", "https://github.com/good/repo", SourcePriority.SDK, ("TeamCode",)),
        RepositorySource("Broken repo", "https://github.com/broken/repo", SourcePriority.TOP_TEAMS, ("TeamCode",)),
        RepositorySource("Bad url", "https://example.com/not-github", SourcePriority.FTCLIB, ("x",)),
        WebSource("Docs", "https://docs.example.com/page", SourcePriority.DASHBOARD),
        DocumentSource("Manual", "https://docs.example.com/manual.pdf", SourcePriority.OFFICIAL_DOCS),
    )
)


class _Server:
    """MockTransport handler that counts requests."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(str(request.url))
        host, path = request.url.host, request.url.path
        if host == "codeload.github.com" and path.startswith("/good/repo/"):
            return httpx.Response(200, content=_GOOD_ZIP)
        if host == "codeload.github.com":
            return httpx.Response(500)
        if path == "/page":
            body = "<html><body><p>" + "FTC Dashboard telemetry packets. " * 10 + "</p></body></html>"
            return httpx.Response(200, text=body, headers={"Content-Type": "text/html"})
        if path == "/manual.pdf":
            return httpx.Response(200, content=b"%PDF")
        return httpx.Response(404)


def _ingestor(tmp_path: Path, server: _Server, **kwargs) -> Ingestor:
    client = httpx.AsyncClient(transport=httpx.MockTransport(server))
    return Ingestor(_CATALOG, tmp_path / "documents.json", client=client, page_delay=0, **kwargs)


@pytest.fixture(autouse=True)
def _no_dns():
    with patch.object(WebFetcher, "_check_ssrf", AsyncMock(return_value=None)):
        yield


# ------------------------------------------------------------------
# ingest_all()
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_failing_sources_contribute_nothing(tmp_path: Path) -> None:
    server = _Server()
    docs = await _ingestor(tmp_path, server).ingest_all()

    by_tier = {d.source_priority for d in docs}
    assert SourcePriority.TOP_TEAMS not in by_tier  # HTTP 500
    assert SourcePriority.FTCLIB not in by_tier  # malformed URL
    assert [d.title for d in docs if d.source_priority == SourcePriority.SDK] == [
        "TeamCode/src/main/java/org/team/Auto.java",
        "TeamCode/src/main/java/org/team/TeleOp.java",
    ]
    assert SourcePriority.DASHBOARD in by_tier
    assert SourcePriority.OFFICIAL_DOCS in by_tier
    assert not any("example.com/not-github" in url for url in server.calls)


@pytest.mark.asyncio
async def test_documents_follow_catalog_order(tmp_path: Path) -> None:
    docs = await _ingestor(tmp_path, _Server()).ingest_all()
    tiers = [d.source_priority for d in docs]
    assert tiers == sorted(tiers)


@pytest.mark.asyncio
async def test_snapshot_written(tmp_path: Path) -> None:
    docs = await _ingestor(tmp_path, _Server()).ingest_all()
    assert (tmp_path / "documents.json").exists()
    assert len(docs) == 4


@pytest.mark.asyncio
async def test_cache_hit_is_byte_identical_without_fetching(tmp_path: Path) -> None:
    first_server = _Server()
    first = await _ingestor(tmp_path, first_server).ingest_all()
    persisted = (tmp_path / "documents.json").read_bytes()

    second_server = _Server()
    second = await _ingestor(tmp_path, second_server).ingest_all()

    assert second_server.calls == []
    assert second == first
    assert (tmp_path / "documents.json").read_bytes() == persisted


@pytest.mark.asyncio
async def test_force_refresh_refetches(tmp_path: Path) -> None:
    await _ingestor(tmp_path, _Server()).ingest_all()
    server = _Server()
    await _ingestor(tmp_path, server).ingest_all(force_refresh=True)
    assert server.calls


@pytest.mark.asyncio
async def test_seed_documents_appended(tmp_path: Path) -> None:
    seeds = seed_documents()
    docs = await _ingestor(tmp_path, _Server(), seed=seeds).ingest_all()
    assert docs[-3:] == seeds


@pytest.mark.asyncio
async def test_snapshot_write_failure_propagates(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")
    client = httpx.AsyncClient(transport=httpx.MockTransport(_Server()))
    ingestor = Ingestor(_CATALOG, blocker / "documents.json", client=client, page_delay=0)
    with pytest.raises(OSError):
        await ingestor.ingest_all()


@pytest.mark.asyncio
async def test_concurrency_bounded(tmp_path: Path) -> None:
    many = SourceCatalog(
        sources=tuple(
            DocumentSource(f"Doc {i}", f"https://docs.example.com/manual.pdf?i={i}", SourcePriority.OFFICIAL_DOCS)
            for i in range(6)
        )
    )
    client = httpx.AsyncClient(transport=httpx.MockTransport(_Server()))
    ingestor = Ingestor(many, tmp_path / "d.json", client=client, max_concurrency=2)
    docs = await ingestor.ingest_all()
    assert len(docs) == 6
    assert len({d.id for d in docs}) == 6


# ------------------------------------------------------------------
# ingest_user_repository()
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_user_repository_uses_prefix_and_lowest_tier(tmp_path: Path) -> None:
    ingestor = _ingestor(tmp_path, _Server(), user_repo_prefix="TeamCode/src/main/java")
    docs = await ingestor.ingest_user_repository("https://github.com/good/repo")

    assert len(docs) == 2
    assert all(d.source_priority == SourcePriority.USER_REPO for d in docs)
    assert not (tmp_path / "documents.json").exists()


@pytest.mark.asyncio
async def test_user_repository_invalid_url_no_network(tmp_path: Path) -> None:
    server = _Server()
    docs = await _ingestor(tmp_path, server).ingest_user_repository("not a url")
    assert docs == []
    assert server.calls == []


@pytest.mark.asyncio
async def test_user_repository_fetch_failure_returns_empty(tmp_path: Path) -> None:
    docs = await _ingestor(tmp_path, _Server()).ingest_user_repository("https://github.com/broken/repo")
    assert docs == []


@pytest.mark.asyncio
async def test_user_repository_reuses_catalog_archive(tmp_path: Path) -> None:
    server = _Server()
    ingestor = _ingestor(tmp_path, server)
    await ingestor.ingest_all()
    downloads = sum("codeload.github.com/good" in url for url in server.calls)

    await ingestor.ingest_user_repository("https://github.com/good/repo")

    assert sum("codeload.github.com/good" in url for url in server.calls) == downloads == 1


# ------------------------------------------------------------------
# from_config()
# ------------------------------------------------------------------


def test_from_config_wires_settings(tmp_path: Path) -> None:
    cfg = FtcRagConfig()
    cfg.ingest.cache_path = str(tmp_path / "c.json")
    cfg.ingest.branches = ["develop"]
    cfg.ingest.include_seed_documents = False

    ingestor = Ingestor.from_config(cfg, _CATALOG)

    assert ingestor.cache_path == tmp_path / "c.json"
    assert ingestor.branches == ("develop",)
    assert ingestor.seed == []
