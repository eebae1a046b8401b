"""GitHub repository fetcher: zip archive download + in-memory extraction.

- Repository URLs are parsed to (owner, repo) before any network call;
  anything without both segments raises InvalidRepositoryURL.
- The default branch is not looked up via the API: candidate branch names
  are probed in order and the first archive that resolves is used.
- One archive per repository per process: several catalog entries that
  point at the same repository with different path prefixes share a
  single download.
- Only ``.java``, ``.kt``, ``.md`` and ``.rst`` files are kept.
"""

from __future__ import annotations

import asyncio
import hashlib
import io
import re
import zipfile
from dataclasses import dataclass, field

import httpx
from loguru import logger

from ftcrag.catalog import CURRENT_SEASON, RepositorySource
from ftcrag.ingest.base import USER_AGENT, BaseFetcher, SourceFetchError, read_capped
from ftcrag.store.models import Document

_ARCHIVE_URL = "https://codeload.github.com/{owner}/{repo}/zip/refs/heads/{branch}"
_BLOB_URL = "https://github.com/{owner}/{repo}/blob/{branch}/{path}"
_MAX_ARCHIVE_BYTES = 256 * 1024 * 1024  # 256 MB
_CODE_EXTENSIONS = (".java", ".kt", ".md", ".rst")
_DEFAULT_BRANCHES = ("main", "master")

_REPO_URL_RE = re.compile(r"github\.com[/:]([A-Za-z0-9_.\-]+)/([A-Za-z0-9_.\-]+)")


class InvalidRepositoryURL(ValueError):
    """Raised when a URL has no recognisable GitHub owner/repo segments."""


def parse_repository_url(url: str) -> tuple[str, str]:
    """Return ``(owner, repo)`` for a GitHub URL.

    Accepts ``https://github.com/OWNER/REPO``, trailing paths, a ``.git``
    suffix and ``git@github.com:OWNER/REPO.git``.

    Raises:
        InvalidRepositoryURL: If no owner/repo pair can be found.
    """
    match = _REPO_URL_RE.search(url or "")
    if not match:
        raise InvalidRepositoryURL(f"Not a GitHub repository URL: '{url}'")
    owner, repo = match.group(1), match.group(2)
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not owner or not repo or repo in {".", ".."}:
        raise InvalidRepositoryURL(f"Not a GitHub repository URL: '{url}'")
    return owner, repo


@dataclass
class RepositoryArchive:
    """Code files of one repository at one branch, keyed by repo-relative path."""

    owner: str
    repo: str
    branch: str
    files: dict[str, bytes] = field(default_factory=dict)


class GitHubFetcher(BaseFetcher):
    """Fetch code and docs from a GitHub repository.

    Archives are cached on the instance for the rest of the process; a
    failed download is not cached, so a later call retries it.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        season_tag: str = CURRENT_SEASON,
        branches: tuple[str, ...] | list[str] = _DEFAULT_BRANCHES,
    ) -> None:
        super().__init__(client, season_tag)
        self.branches = tuple(branches)
        self._archives: dict[tuple[str, str], RepositoryArchive] = {}
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self.download_count = 0

    async def fetch(self, source: RepositorySource) -> list[Document]:
        """Return one Document per code file under ``source.paths``.

        Raises:
            InvalidRepositoryURL: If ``source.url`` is not a GitHub repository URL.
            SourceFetchError: If no candidate branch resolves or the archive is unusable.
        """
        owner, repo = parse_repository_url(source.url)
        archive = await self.get_archive(owner, repo)

        docs: list[Document] = []
        for path in sorted(archive.files):
            if not any(path.startswith(prefix) for prefix in source.paths):
                continue
            content = archive.files[path].decode("utf-8", errors="replace")
            if not content.strip():
                continue
            docs.append(
                self._make_document(
                    doc_id=self.document_id(owner, repo, path),
                    title=path,
                    content=content,
                    source_url=_BLOB_URL.format(
                        owner=owner, repo=repo, branch=archive.branch, path=path
                    ),
                    priority=source.priority,
                )
            )
        logger.debug(f"[github] {owner}/{repo}: {len(docs)} files under {list(source.paths)}")
        return docs

    @staticmethod
    def document_id(owner: str, repo: str, path: str) -> str:
        """Stable id for a repository file: the same path always maps to the same id."""
        digest = hashlib.sha1(path.encode("utf-8")).hexdigest()[:16]
        return f"github-{owner.lower()}-{repo.lower()}-{digest}"

    # ------------------------------------------------------------------
    # Archive cache
    # ------------------------------------------------------------------

    async def get_archive(self, owner: str, repo: str) -> RepositoryArchive:
        """Return the cached archive for *owner/repo*, downloading it once."""
        key = (owner.lower(), repo.lower())
        cached = self._archives.get(key)
        if cached is not None:
            return cached

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            cached = self._archives.get(key)
            if cached is not None:
                return cached
            archive = await self._download(owner, repo)
            self._archives[key] = archive
            return archive

    async def _download(self, owner: str, repo: str) -> RepositoryArchive:
        for branch in self.branches:
            url = _ARCHIVE_URL.format(owner=owner, repo=repo, branch=branch)
            body: bytes | None = None
            try:
                async with self._client.stream(
                    "GET", url, headers={"User-Agent": USER_AGENT}, follow_redirects=True
                ) as response:
                    if response.is_success:
                        body = await read_capped(response, _MAX_ARCHIVE_BYTES)
            except httpx.HTTPError as exc:
                raise SourceFetchError(f"Failed to download {owner}/{repo}@{branch}: {exc}") from exc

            if response.status_code == 404:
                logger.debug(f"[github] {owner}/{repo}: no branch '{branch}'")
                continue
            if not response.is_success:
                raise SourceFetchError(
                    f"GitHub returned HTTP {response.status_code} for {owner}/{repo}@{branch}"
                )
            if body is None:
                raise SourceFetchError(
                    f"Archive for {owner}/{repo} exceeds "
                    f"{_MAX_ARCHIVE_BYTES // (1024 * 1024)} MB limit."
                )

            self.download_count += 1
            files = self._extract(body, f"{owner}/{repo}")
            logger.info(f"[github] {owner}/{repo}@{branch}: {len(files)} code files in archive")
            return RepositoryArchive(owner=owner, repo=repo, branch=branch, files=files)

        raise SourceFetchError(
            f"No candidate branch resolved for {owner}/{repo} "
            f"(tried: {', '.join(self.branches)})"
        )

    @staticmethod
    def _extract(body: bytes, label: str) -> dict[str, bytes]:
        """Read code files out of a GitHub zipball held in memory.

        GitHub nests everything under a single ``<repo>-<branch>/`` directory;
        that first component is dropped so paths are repo-relative.
        """
        try:
            archive = zipfile.ZipFile(io.BytesIO(body))
        except zipfile.BadZipFile as exc:
            raise SourceFetchError(f"Archive for {label} is not a valid zip file") from exc

        files: dict[str, bytes] = {}
        with archive:
            for info in archive.infolist():
                if info.is_dir():
                    continue
                parts = info.filename.split("/", 1)
                if len(parts) < 2 or not parts[1]:
                    continue
                rel_path = parts[1]
                if not rel_path.endswith(_CODE_EXTENSIONS):
                    continue
                files[rel_path] = archive.read(info)
        return files
