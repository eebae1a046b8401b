"""Ingestor: materialise Documents from the source catalog.

Pipeline for a catalog run:
  1. Cache hit: a snapshot on disk and no forced refresh → return it as-is,
     no network activity.
  2. Otherwise fetch every catalog entry (bounded concurrency), dispatching
     on the source kind: repository archive, web page, or document reference.
  3. A source that fails contributes zero documents; the run continues.
  4. Append the seed documents, persist the whole list atomically, return it.

User repositories are fetched on demand with the narrower user prefix and
the USER_REPO tier; they never touch the snapshot.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
from loguru import logger

from ftcrag.catalog import (
    CURRENT_SEASON,
    DocumentSource,
    RepositorySource,
    SourceCatalog,
    SourceDescriptor,
    SourcePriority,
    WebSource,
    default_catalog,
)
from ftcrag.config import FtcRagConfig
from ftcrag.ingest.document import DocumentFetcher
from ftcrag.ingest.github import GitHubFetcher, InvalidRepositoryURL, parse_repository_url
from ftcrag.ingest.seed import seed_documents
from ftcrag.ingest.web import WebFetcher
from ftcrag.store.models import Document
from ftcrag.store.snapshot import load_snapshot, save_snapshot


class Ingestor:
    """Fetches catalog sources and user repositories into Documents.

    The HTTP client and the GitHub archive cache live as long as the
    Ingestor, so repeated path filtering over the same repository (several
    catalog entries, or a later user-repository request) downloads it once.

    Args:
        catalog: Sources to ingest.
        cache_path: Location of the JSON snapshot.
        client: Optional pre-built client (tests inject a mock transport);
            when omitted the Ingestor creates and owns one.
        seed: Documents appended to every non-cached catalog run.
    """

    def __init__(
        self,
        catalog: SourceCatalog,
        cache_path: Path,
        *,
        client: httpx.AsyncClient | None = None,
        season_tag: str = CURRENT_SEASON,
        branches: tuple[str, ...] | list[str] = ("main", "master"),
        user_repo_prefix: str = "TeamCode/src/main/java",
        timeout: float = 30.0,
        max_concurrency: int = 4,
        seed: list[Document] | None = None,
        page_delay: float = 0.2,
    ) -> None:
        self.catalog = catalog
        self.cache_path = Path(cache_path)
        self.season_tag = season_tag
        self.branches = tuple(branches)
        self.user_repo_prefix = user_repo_prefix
        self.timeout = timeout
        self.max_concurrency = max(1, max_concurrency)
        self.seed = list(seed or [])
        self.page_delay = page_delay

        self._client = client
        self._owns_client = client is None
        self._github: GitHubFetcher | None = None
        self._web: WebFetcher | None = None
        self._document: DocumentFetcher | None = None

    @classmethod
    def from_config(
        cls,
        cfg: FtcRagConfig,
        catalog: SourceCatalog | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> Ingestor:
        ing = cfg.ingest
        return cls(
            catalog or default_catalog(),
            Path(ing.cache_path),
            client=client,
            season_tag=ing.season_tag,
            branches=ing.branches,
            user_repo_prefix=ing.user_repo_prefix,
            timeout=ing.timeout,
            max_concurrency=ing.max_concurrency,
            seed=seed_documents(ing.season_tag) if ing.include_seed_documents else None,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest_all(self, force_refresh: bool = False) -> list[Document]:
        """Return all catalog documents, from the snapshot unless *force_refresh*.

        Raises:
            OSError: If the snapshot cannot be written after a fresh run.
        """
        if not force_refresh:
            cached = load_snapshot(self.cache_path)
            if cached is not None:
                logger.info(f"[ingest] Loaded {len(cached)} documents from cache {self.cache_path}")
                return cached

        semaphore = asyncio.Semaphore(self.max_concurrency)
        batches = await asyncio.gather(
            *(self._ingest_source(source, semaphore) for source in self.catalog.sources)
        )

        documents = [doc for batch in batches for doc in batch]
        documents.extend(self.seed)
        logger.info(f"[ingest] Total documents ingested: {len(documents)}")

        save_snapshot(self.cache_path, documents)
        return documents

    async def ingest_user_repository(self, repo_url: str) -> list[Document]:
        """Fetch a team's own repository under the user prefix, tier USER_REPO.

        Never raises: a malformed URL returns [] before any network call,
        and fetch failures are logged and return [].
        """
        try:
            owner, repo = parse_repository_url(repo_url)
        except InvalidRepositoryURL as exc:
            logger.warning(f"[ingest] {exc}")
            return []

        source = RepositorySource(
            name=f"User repository {owner}/{repo}",
            url=repo_url,
            priority=SourcePriority.USER_REPO,
            paths=(self.user_repo_prefix,),
        )
        docs = await self._ingest_source(source, asyncio.Semaphore(1))
        return docs

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
            self._github = self._web = self._document = None

    # ------------------------------------------------------------------
    # Per-source dispatch
    # ------------------------------------------------------------------

    async def _ingest_source(
        self, source: SourceDescriptor, semaphore: asyncio.Semaphore
    ) -> list[Document]:
        async with semaphore:
            try:
                docs = await self._fetch(source)
            except Exception as exc:
                logger.warning(f"[ingest] Failed to load {source.name}: {exc}")
                return []
        logger.info(f"[ingest] Loaded {len(docs)} documents from {source.name}")
        return docs

    async def _fetch(self, source: SourceDescriptor) -> list[Document]:
        match source:
            case RepositorySource():
                return await self._github_fetcher().fetch(source)
            case WebSource():
                return await self._web_fetcher().fetch(source)
            case DocumentSource():
                return await self._document_fetcher().fetch(source)
            case _:
                raise TypeError(f"Unsupported source kind: {type(source).__name__}")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, max_redirects=3)
        return self._client

    def _github_fetcher(self) -> GitHubFetcher:
        if self._github is None:
            self._github = GitHubFetcher(self._get_client(), self.season_tag, self.branches)
        return self._github

    def _web_fetcher(self) -> WebFetcher:
        if self._web is None:
            self._web = WebFetcher(self._get_client(), self.season_tag, self.page_delay)
        return self._web

    def _document_fetcher(self) -> DocumentFetcher:
        if self._document is None:
            self._document = DocumentFetcher(self._get_client(), self.season_tag)
        return self._document
