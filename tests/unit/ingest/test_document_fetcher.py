"""Tests for DocumentFetcher (reference records) and the seed documents."""

from __future__ import annotations

import httpx
import pytest

from ftcrag.catalog import DocumentSource, SourcePriority
from ftcrag.ingest.base import SourceFetchError
from ftcrag.ingest.document import DocumentFetcher
from ftcrag.ingest.seed import create_document, seed_documents

_MANUAL = DocumentSource(
    name="Competition Manual",
    url="https://example.com/ftc/Competition-Manual.pdf",
    priority=SourcePriority.OFFICIAL_DOCS,
)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_reachable_document_becomes_reference() -> None:
    async with _client(lambda request: httpx.Response(200, content=b"%PDF-1.7")) as client:
        docs = await DocumentFetcher(client).fetch(_MANUAL)

    assert len(docs) == 1
    doc = docs[0]
    assert doc.id.startswith("pdf-")
    assert doc.title == "Competition-Manual.pdf"
    assert doc.source_priority == SourcePriority.OFFICIAL_DOCS
    assert doc.content == (
        "Competition Manual - Full rules and specifications available at "
        "https://example.com/ftc/Competition-Manual.pdf"
    )


@pytest.mark.asyncio
async def test_unreachable_document_raises() -> None:
    async with _client(lambda request: httpx.Response(404)) as client:
        with pytest.raises(SourceFetchError, match="HTTP 404"):
            await DocumentFetcher(client).fetch(_MANUAL)


# ------------------------------------------------------------------
# Seed documents
# ------------------------------------------------------------------


def test_create_document_id_from_title() -> None:
    doc = create_document("Road Runner Quickstart!", "body", "https://x", SourcePriority.ROADRUNNER)
    assert doc.id == "manual-road-runner-quickstart"
    assert doc.source_priority == 3


def test_seed_documents_have_unique_ids() -> None:
    docs = seed_documents()
    assert len(docs) == 3
    assert len({d.id for d in docs}) == 3


def test_seed_documents_carry_season_tag() -> None:
    assert {d.season_tag for d in seed_documents("TEST SEASON")} == {"TEST SEASON"}


def test_limelight_seed_in_vendor_tier() -> None:
    limelight = [d for d in seed_documents() if "Limelight" in d.title]
    assert limelight[0].source_priority == SourcePriority.LIMELIGHT
    assert "Limelight3A" in limelight[0].content
