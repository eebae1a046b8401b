"""Web fetcher: page download + HTML-to-text extraction with SSRF protection.

Security requirements:
- SSRF guard: resolved addresses in private/loopback/link-local/reserved
  ranges are rejected before any connection is established.
- Allowed URL schemes: https:// and http:// only.
- Content-Type whitelist: text/html and text/plain only.
- Max response body: 5 MB.
- Pages yielding 100 characters of text or fewer are dropped.
"""

from __future__ import annotations

import asyncio
import ipaddress
import socket
import urllib.parse

import html2text
import httpx
from bs4 import BeautifulSoup
from loguru import logger

from ftcrag.catalog import CURRENT_SEASON, WebSource
from ftcrag.ingest.base import USER_AGENT, BaseFetcher, SourceFetchError, read_capped
from ftcrag.store.models import Document

_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
_MIN_TEXT_CHARS = 100
_ALLOWED_SCHEMES = {"https", "http"}
_ALLOWED_CONTENT_TYPES = {"text/html", "text/plain"}

# html2text converter
_h2t = html2text.HTML2Text()
_h2t.ignore_links = True
_h2t.ignore_images = True
_h2t.body_width = 0


class SsrfError(ValueError):
    """Raised when a URL resolves to a private or reserved address."""


class WebFetcher(BaseFetcher):
    """Fetch one page per entry in ``source.paths`` (or the base URL alone).

    A failing page is logged and skipped; the remaining pages of the same
    source are still fetched.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        season_tag: str = CURRENT_SEASON,
        page_delay: float = 0.2,
    ) -> None:
        super().__init__(client, season_tag)
        self.page_delay = page_delay

    async def fetch(self, source: WebSource) -> list[Document]:
        urls = [f"{source.url}{p}" for p in source.paths] if source.paths else [source.url]

        docs: list[Document] = []
        for i, url in enumerate(urls):
            if i and self.page_delay:
                await asyncio.sleep(self.page_delay)
            try:
                text = await self.fetch_text(url)
            except (SourceFetchError, ValueError) as exc:
                logger.warning(f"[web] Skipping {url}: {exc}")
                continue

            if len(text) <= _MIN_TEXT_CHARS:
                logger.debug(f"[web] Skipping {url}: only {len(text)} characters of text")
                continue

            docs.append(
                self._make_document(
                    doc_id=f"web-{self.url_slug(url)}",
                    title=url.rstrip("/").rsplit("/", 1)[-1] or url,
                    content=text,
                    source_url=url,
                    priority=source.priority,
                )
            )
        return docs

    # ------------------------------------------------------------------
    # Fetch pipeline
    # ------------------------------------------------------------------

    async def fetch_text(self, url: str) -> str:
        """Validate, fetch, and convert *url* to plain text."""
        self._validate_scheme(url)
        await self._check_ssrf(url)
        raw, content_type = await self._fetch(url)
        return self._to_plain_text(raw, content_type)

    @staticmethod
    def _validate_scheme(url: str) -> None:
        parsed = urllib.parse.urlparse(url)
        if parsed.scheme not in _ALLOWED_SCHEMES:
            raise ValueError(
                f"Unsupported URL scheme '{parsed.scheme}'. Only https:// and http:// are allowed."
            )

    @staticmethod
    async def _check_ssrf(url: str) -> None:
        """Resolve the hostname and block private/reserved IP ranges.

        Raises SsrfError if any resolved address is private, loopback,
        link-local, or otherwise reserved.
        """
        parsed = urllib.parse.urlparse(url)
        hostname = parsed.hostname
        if not hostname:
            raise ValueError(f"URL has no hostname: {url}")

        loop = asyncio.get_running_loop()
        try:
            addrinfos = await loop.getaddrinfo(hostname, None)
        except socket.gaierror as exc:
            raise ValueError(f"DNS resolution failed for '{hostname}': {exc}") from exc

        for addrinfo in addrinfos:
            addr_str = addrinfo[4][0]
            try:
                ip = ipaddress.ip_address(addr_str)
            except ValueError:
                continue
            if (
                ip.is_private
                or ip.is_loopback
                or ip.is_link_local
                or ip.is_reserved
                or ip.is_multicast
                or ip.is_unspecified
            ):
                raise SsrfError(
                    f"URL resolves to private address ({ip}). "
                    "Access to internal network addresses is not allowed."
                )

    async def _fetch(self, url: str) -> tuple[bytes, str]:
        """GET *url* with size cap and Content-Type check.

        Returns (body_bytes, content_type_without_params).
        """
        try:
            async with self._client.stream(
                "GET", url, headers={"User-Agent": USER_AGENT}, follow_redirects=True
            ) as response:
                if not response.is_success:
                    raise SourceFetchError(f"HTTP {response.status_code} for URL '{url}'")

                raw_ct = response.headers.get("Content-Type", "text/html")
                ct = raw_ct.split(";")[0].strip().lower()
                if ct not in _ALLOWED_CONTENT_TYPES:
                    raise SourceFetchError(
                        f"Unsupported Content-Type '{ct}' for URL '{url}'. "
                        f"Accepted: {', '.join(sorted(_ALLOWED_CONTENT_TYPES))}"
                    )

                body = await read_capped(response, _MAX_BYTES)
        except httpx.HTTPError as exc:
            raise SourceFetchError(f"Failed to fetch URL '{url}': {exc}") from exc

        if body is None:
            raise SourceFetchError(
                f"Response body exceeds {_MAX_BYTES // (1024 * 1024)} MB limit for URL '{url}'."
            )

        return body, ct

    @staticmethod
    def _to_plain_text(body: bytes, content_type: str) -> str:
        """Convert *body* to plain text based on *content_type*."""
        text = body.decode("utf-8", errors="replace")
        if content_type == "text/plain":
            return text.strip()

        # HTML: strip non-content tags, then html2text
        soup = BeautifulSoup(text, "html.parser")
        for tag in soup.find_all(["script", "style", "nav", "footer", "head"]):
            tag.decompose()
        return _h2t.handle(str(soup)).strip()
