"""Retrieval index: the published, read-only view queries run against.

A RetrievalIndex is never mutated after construction. (Re)initialization and
user-repository additions build a new instance off to the side and the
lifecycle controller swaps the reference, so a query that captured an index
keeps seeing exactly that set of documents and chunks.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Literal

from ftcrag.ingest.chunker import CHUNK_OVERLAP, CHUNK_SIZE, document_to_chunks
from ftcrag.store.models import Chunk, Document

if TYPE_CHECKING:
    from ftcrag.rag.embeddings import EmbeddingProvider

ScoringMode = Literal["embedding", "lexical"]


class RetrievalIndex:
    """Documents in ingestion order, their chunks, and the optional embedder.

    Document ids are unique: a later document with an already-seen id
    replaces the earlier one in place.
    """

    __slots__ = ("_documents", "_by_id", "_chunks", "_embedder")

    def __init__(
        self,
        documents: Iterable[Document] = (),
        chunks: Iterable[Chunk] = (),
        embedder: EmbeddingProvider | None = None,
    ) -> None:
        by_id: dict[str, Document] = {}
        for doc in documents:
            by_id[doc.id] = doc
        self._by_id = by_id
        self._documents: tuple[Document, ...] = tuple(by_id.values())
        self._chunks: tuple[Chunk, ...] = tuple(chunks)
        self._embedder = embedder

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def empty(cls) -> RetrievalIndex:
        return cls()

    @classmethod
    def build(
        cls,
        documents: Iterable[Document],
        size: int = CHUNK_SIZE,
        overlap: int = CHUNK_OVERLAP,
    ) -> RetrievalIndex:
        """Deduplicate *documents* by id and chunk every survivor."""
        deduped: dict[str, Document] = {}
        for doc in documents:
            deduped[doc.id] = doc
        chunks = [c for doc in deduped.values() for c in document_to_chunks(doc, size, overlap)]
        return cls(deduped.values(), chunks)

    def with_documents(
        self, documents: Sequence[Document], chunks: Sequence[Chunk]
    ) -> RetrievalIndex:
        """Return a new index with *documents* (and their *chunks*) merged in.

        Existing documents sharing an id with a new one are replaced, and
        their old chunks dropped.
        """
        replaced = {d.id for d in documents}
        kept_chunks = [c for c in self._chunks if c.document_id not in replaced]
        return RetrievalIndex(
            [*self._documents, *documents],
            [*kept_chunks, *chunks],
            self._embedder,
        )

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def documents(self) -> tuple[Document, ...]:
        return self._documents

    @property
    def chunks(self) -> tuple[Chunk, ...]:
        return self._chunks

    @property
    def embedder(self) -> EmbeddingProvider | None:
        return self._embedder

    def document(self, doc_id: str) -> Document | None:
        return self._by_id.get(doc_id)

    @property
    def document_count(self) -> int:
        return len(self._documents)

    @property
    def chunk_count(self) -> int:
        return len(self._chunks)

    @property
    def embedded_chunk_count(self) -> int:
        return sum(1 for c in self._chunks if c.embedding)

    @property
    def scoring_mode(self) -> ScoringMode:
        if self._embedder is not None and self.embedded_chunk_count:
            return "embedding"
        return "lexical"

    def __len__(self) -> int:
        return len(self._documents)
