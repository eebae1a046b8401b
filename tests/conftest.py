"""Shared pytest fixtures."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from ftcrag.catalog import SourcePriority, default_catalog
from ftcrag.store.models import Document

FIXED_TIME = datetime(2025, 9, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_doc():
    """Factory for Documents with deterministic timestamps."""

    def _make(
        doc_id: str,
        content: str,
        priority: int = SourcePriority.SDK,
        title: str | None = None,
        url: str | None = None,
    ) -> Document:
        return Document(
            id=doc_id,
            title=title or f"{doc_id}.java",
            content=content,
            source_url=url or f"https://example.com/{doc_id}",
            season_tag="DECODE 2025-26",
            source_priority=int(priority),
            last_updated=FIXED_TIME,
        )

    return _make


@pytest.fixture
def catalog():
    return default_catalog()
