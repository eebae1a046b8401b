"""Base fetcher interface for all ftcrag source kinds."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

import httpx

from ftcrag.catalog import CURRENT_SEASON, SourceDescriptor
from ftcrag.store.models import Document, utcnow

USER_AGENT = "ftcrag/0.1 (FTC code assistant retrieval)"

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")


class SourceFetchError(RuntimeError):
    """A source could not be fetched or parsed (network, status, size, format)."""


class BaseFetcher(ABC):
    """Abstract base for all fetchers.

    Subclasses turn one catalog entry into Documents already tagged with the
    entry's priority tier and the configured season tag. The HTTP client is
    owned by the caller and shared across fetchers so connection pooling and
    timeouts are configured once.
    """

    def __init__(self, client: httpx.AsyncClient, season_tag: str = CURRENT_SEASON) -> None:
        self._client = client
        self.season_tag = season_tag

    @abstractmethod
    async def fetch(self, source: SourceDescriptor) -> list[Document]:
        """Fetch *source* and return its Documents.

        Raises:
            SourceFetchError: If the source as a whole cannot be retrieved.
        """

    @staticmethod
    def url_slug(url: str) -> str:
        """Deterministic id fragment for *url*: every non-alphanumeric becomes '-'."""
        return _NON_ALNUM_RE.sub("-", url)

    def _make_document(
        self,
        doc_id: str,
        title: str,
        content: str,
        source_url: str,
        priority: int,
    ) -> Document:
        return Document(
            id=doc_id,
            title=title,
            content=content,
            source_url=source_url,
            season_tag=self.season_tag,
            source_priority=int(priority),
            last_updated=utcnow(),
        )


async def read_capped(response: httpx.Response, limit: int) -> bytes | None:
    """Read a streamed *response* body, giving up once it passes *limit* bytes.

    Returns None when the declared Content-Length or the bytes received so far
    exceed *limit*; the rest of the body is never pulled.
    """
    declared = response.headers.get("Content-Length", "")
    if declared.isdigit() and int(declared) > limit:
        return None
    chunks: list[bytes] = []
    received = 0
    async for chunk in response.aiter_bytes():
        received += len(chunk)
        if received > limit:
            return None
        chunks.append(chunk)
    return b"".join(chunks)
