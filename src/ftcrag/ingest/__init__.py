"""ftcrag ingest pipeline: chunker, source fetchers, ingestor."""

from ftcrag.ingest.base import BaseFetcher, SourceFetchError
from ftcrag.ingest.chunker import chunk_text, document_to_chunks
from ftcrag.ingest.document import DocumentFetcher
from ftcrag.ingest.github import GitHubFetcher, InvalidRepositoryURL, parse_repository_url
from ftcrag.ingest.ingestor import Ingestor
from ftcrag.ingest.web import SsrfError, WebFetcher

__all__ = [
    "BaseFetcher",
    "DocumentFetcher",
    "GitHubFetcher",
    "Ingestor",
    "InvalidRepositoryURL",
    "SourceFetchError",
    "SsrfError",
    "WebFetcher",
    "chunk_text",
    "document_to_chunks",
    "parse_repository_url",
]
