"""Document-extraction sources (PDF manuals): reference records only.

The document body is not downloaded or parsed. The fetcher checks that the
URL answers with a success status and records a short reference document
pointing at it, so retrieval can still cite where the full text lives.
"""

from __future__ import annotations

import httpx

from ftcrag.catalog import DocumentSource
from ftcrag.ingest.base import USER_AGENT, BaseFetcher, SourceFetchError
from ftcrag.store.models import Document


class DocumentFetcher(BaseFetcher):
    async def fetch(self, source: DocumentSource) -> list[Document]:
        await self._probe(source.url)
        title = source.url.rstrip("/").rsplit("/", 1)[-1] or source.name
        content = f"{source.name} - Full rules and specifications available at {source.url}"
        return [
            self._make_document(
                doc_id=f"pdf-{self.url_slug(source.url)}",
                title=title,
                content=content,
                source_url=source.url,
                priority=source.priority,
            )
        ]

    async def _probe(self, url: str) -> None:
        """Open a streaming GET and close it after the status line."""
        try:
            async with self._client.stream(
                "GET", url, headers={"User-Agent": USER_AGENT}, follow_redirects=True
            ) as response:
                status = response.status_code
        except httpx.HTTPError as exc:
            raise SourceFetchError(f"Failed to reach document '{url}': {exc}") from exc
        if not 200 <= status < 300:
            raise SourceFetchError(f"HTTP {status} for document '{url}'")
