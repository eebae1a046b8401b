"""Lifecycle controller: single-flight initialization and atomic index publish.

States: UNINITIALIZED → INITIALIZING → READY, with a forced run going
READY → INITIALIZING → READY.

Only one initialization runs at a time. Every caller arriving while a run is
in flight awaits that same task (shielded, so a cancelled caller does not
cancel the run for the others) and sees the same outcome.

A run builds its RetrievalIndex off to the side and publishes it with one
reference assignment. During a forced run queries keep using the previous
index; they never observe a partially built one. A failed run resets the
controller to UNINITIALIZED with an empty index and re-raises to every
awaiter, so the next call retries.
"""

from __future__ import annotations

import asyncio
import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from loguru import logger

from ftcrag.catalog import SourceCatalog
from ftcrag.config import FtcRagConfig
from ftcrag.ingest.chunker import document_to_chunks
from ftcrag.rag.assembler import format_context
from ftcrag.rag.embeddings import EmbeddingProvider
from ftcrag.rag.retriever import QueryEngine, QueryResult
from ftcrag.rag.rewriter import RobotConfig
from ftcrag.store.index import RetrievalIndex, ScoringMode
from ftcrag.store.models import Chunk, Document


class DocumentSource(Protocol):
    """What the controller needs from an ingestor."""

    async def ingest_all(self, force_refresh: bool = False) -> list[Document]: ...

    async def ingest_user_repository(self, repo_url: str) -> list[Document]: ...


class LifecycleState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


@dataclass(frozen=True)
class RagStatus:
    ready: bool
    in_progress: bool
    scoring_mode: ScoringMode
    document_count: int
    chunk_count: int
    embedded_chunk_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "ready": self.ready,
            "inProgress": self.in_progress,
            "scoringMode": self.scoring_mode,
            "documentCount": self.document_count,
            "chunkCount": self.chunk_count,
            "embeddedChunkCount": self.embedded_chunk_count,
        }


class LifecycleController:
    """Owns the published RetrievalIndex and the initialization state.

    Construct one per process and call ``ensure_initialized()`` from the
    host's startup routine; nothing starts on import or construction.

    Args:
        ingestor: Produces catalog and user-repository documents.
        catalog: Tier weights, labels and vendor metadata for querying.
        cfg: Chunking, embedding, retrieval and context settings.
    """

    def __init__(
        self,
        ingestor: DocumentSource,
        catalog: SourceCatalog,
        cfg: FtcRagConfig | None = None,
    ) -> None:
        self.ingestor = ingestor
        self.catalog = catalog
        self.cfg = cfg or FtcRagConfig()
        self.engine = QueryEngine(catalog, self.cfg.retrieval)

        self._index = RetrievalIndex.empty()
        self._published = False
        self._state = LifecycleState.UNINITIALIZED
        self._task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def index(self) -> RetrievalIndex:
        return self._index

    def status(self) -> RagStatus:
        index = self._index
        return RagStatus(
            ready=self._state is LifecycleState.READY,
            in_progress=self._state is LifecycleState.INITIALIZING,
            scoring_mode=index.scoring_mode,
            document_count=index.document_count,
            chunk_count=index.chunk_count,
            embedded_chunk_count=index.embedded_chunk_count,
        )

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    async def ensure_initialized(self) -> None:
        """No-op when READY; otherwise join or start a default lexical run."""
        if self._state is LifecycleState.READY and self._task is None:
            return
        await self.initialize()

    async def initialize(self, embedding_api_key: str | None = None, force: bool = False) -> None:
        """Run (or join) an ingestion pass and publish a fresh index.

        A call made while a run is in flight joins that run, whatever its
        own arguments. Without *force* a READY controller returns at once.

        Raises:
            Exception: Whatever failed inside the run (snapshot write,
                embedding service, ...), re-raised to every awaiter.
        """
        if self._task is not None:
            await asyncio.shield(self._task)
            return
        if self._state is LifecycleState.READY and not force:
            return

        self._state = LifecycleState.INITIALIZING
        task = asyncio.create_task(self._run(embedding_api_key, force))
        task.add_done_callback(self._clear_task)
        self._task = task
        await asyncio.shield(task)

    def _clear_task(self, task: asyncio.Task[None]) -> None:
        if self._task is task:
            self._task = None

    async def _run(self, embedding_api_key: str | None, force: bool) -> None:
        mode = "embedding" if embedding_api_key else "lexical"
        logger.info(f"[rag] Initializing ({mode} mode{', forced refresh' if force else ''})")
        try:
            docs = await self.ingestor.ingest_all(force_refresh=force)
            chunking = self.cfg.chunking
            index = RetrievalIndex.build(docs, chunking.chunk_size, chunking.overlap)

            if embedding_api_key:
                embedder = self._make_embedder(embedding_api_key)
                chunks = await self._embed_chunks(embedder, index.chunks)
                index = RetrievalIndex(index.documents, chunks, embedder)
        except BaseException:
            self._index = RetrievalIndex.empty()
            self._published = False
            self._state = LifecycleState.UNINITIALIZED
            logger.warning("[rag] Initialization failed; state reset to uninitialized")
            raise

        self._index = index
        self._published = True
        self._state = LifecycleState.READY
        logger.info(
            f"[rag] Initialization complete: {index.document_count} documents, "
            f"{index.chunk_count} chunks, {index.scoring_mode} scoring"
        )

    def _make_embedder(self, api_key: str) -> EmbeddingProvider:
        emb = self.cfg.embedding
        return EmbeddingProvider(
            api_key, model=emb.model, batch_size=emb.batch_size, batch_delay=emb.batch_delay
        )

    @staticmethod
    async def _embed_chunks(
        embedder: EmbeddingProvider, chunks: tuple[Chunk, ...] | list[Chunk]
    ) -> list[Chunk]:
        """Return copies of *chunks* with embeddings attached to those lacking one."""
        pending = [i for i, c in enumerate(chunks) if not c.embedding]
        if not pending:
            return list(chunks)
        vectors = await embedder.embed_texts([chunks[i].text for i in pending])
        out = list(chunks)
        for i, vector in zip(pending, vectors):
            out[i] = dataclasses.replace(out[i], embedding=vector)
        return out

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def query(
        self,
        text: str,
        top_k: int | None = None,
        robot_config: RobotConfig | None = None,
    ) -> QueryResult:
        """Rank documents for *text* against the currently published index.

        Never raises for an index that is not ready: the result is empty and
        ``ready`` is False.
        """
        index = self._index
        if not self._published:
            logger.warning("[rag] Index not initialized, returning empty results")
            return QueryResult(ready=False)
        return await self.engine.query(index, text, top_k, robot_config)

    async def retrieve_context(
        self,
        text: str,
        top_k: int | None = None,
        robot_config: RobotConfig | None = None,
    ) -> tuple[QueryResult, str]:
        result = await self.query(text, top_k, robot_config)
        return result, format_context(result, self.catalog, self.cfg.context)

    # ------------------------------------------------------------------
    # User repositories
    # ------------------------------------------------------------------

    async def add_user_repository(
        self, repo_url: str, embedding_api_key: str | None = None
    ) -> RagStatus:
        """Fetch *repo_url* and merge its documents into the published index.

        Embeds the new chunks when the index already has an embedder or a
        key is supplied; in the latter case existing chunks without vectors
        are embedded too, so the index switches to embedding mode as a whole.
        The snapshot on disk is not touched.
        """
        await self.ensure_initialized()

        docs = await self.ingestor.ingest_user_repository(repo_url)
        if not docs:
            logger.warning(f"[rag] No documents added from {repo_url}")
            return self.status()

        chunking = self.cfg.chunking
        chunks = [
            c for d in docs for c in document_to_chunks(d, chunking.chunk_size, chunking.overlap)
        ]

        start = self._index
        base = start
        embedder = start.embedder
        if embedder is None and embedding_api_key:
            embedder = self._make_embedder(embedding_api_key)
            base = RetrievalIndex(
                start.documents, await self._embed_chunks(embedder, start.chunks), embedder
            )
        if embedder is not None:
            chunks = await self._embed_chunks(embedder, chunks)

        if self._index is not start:
            # A run published while embedding; merge onto the newer index.
            base = self._index
        self._index = base.with_documents(docs, chunks)
        logger.info(f"[rag] Added {len(docs)} files from user repository {repo_url}")
        return self.status()
