"""Web page fetcher using httpx and trafilatura.

Fetches a page over HTTPS, retrying once over plain HTTP when the HTTPS
request fails at the transport level.  Readable text comes from
trafilatura's main-content extraction, falling back to BeautifulSoup's
full-page text when trafilatura finds no article body (navigation-heavy
pages such as help-desk indexes).
"""

from __future__ import annotations

import httpx
import structlog
import trafilatura
from bs4 import BeautifulSoup

from folderlens.interfaces.page_fetcher import IPageFetcher, PageContent
from folderlens.utils.errors import AcquisitionError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 20.0
_MAX_TEXT_CHARS = 20000
_MIN_USEFUL_CHARS = 50
_DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


class WebPageProvider(IPageFetcher):
    """Page fetcher backed by httpx + trafilatura (BeautifulSoup fallback)."""

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(_DEFAULT_TIMEOUT),
            headers=_DEFAULT_HEADERS,
            follow_redirects=True,
        )

    # ------------------------------------------------------------------
    # IPageFetcher implementation
    # ------------------------------------------------------------------

    async def fetch(self, url: str) -> PageContent:
        """Fetch *url*, trying HTTP after a failed HTTPS attempt."""
        try:
            response = await self._get(url)
        except (httpx.InvalidURL, ValueError) as exc:
            raise self._error(url, exc) from exc
        except httpx.HTTPError as https_exc:
            if not url.startswith("https://"):
                raise self._error(url, https_exc) from https_exc
            fallback = "http://" + url[len("https://"):]
            logger.info("https_fetch_failed_trying_http", url=url, error=str(https_exc))
            try:
                response = await self._get(fallback)
            except (httpx.HTTPError, httpx.InvalidURL, ValueError) as http_exc:
                raise self._error(url, http_exc) from http_exc
            url = fallback

        html = response.text
        if not html:
            raise AcquisitionError(
                message=f"No content received for {url}",
                provider_name=self.get_provider_name(),
            )

        title, text = self._readable_text(html)
        if len(text) < _MIN_USEFUL_CHARS:
            logger.warning("page_text_very_short", url=url, chars=len(text))
        logger.debug("page_fetched", url=url, status=response.status_code, chars=len(text))
        return PageContent(url=url, html=html, text=text, title=title)

    async def aclose(self) -> None:
        await self._client.aclose()

    def is_available(self) -> bool:
        """Always available; no credentials required."""
        return True

    def get_provider_name(self) -> str:
        return "web_page"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _get(self, url: str) -> httpx.Response:
        response = await self._client.get(url)
        # Client errors still carry a page worth reviewing; server errors do not.
        if response.status_code >= 500:
            response.raise_for_status()
        return response

    @staticmethod
    def _readable_text(html: str) -> tuple[str, str]:
        soup = BeautifulSoup(html, "html.parser")
        title = soup.title.get_text(strip=True) if soup.title else ""

        text = trafilatura.extract(html, include_comments=False, include_tables=True)
        if not text:
            for tag in soup(["script", "style", "noscript"]):
                tag.decompose()
            text = soup.get_text(" ", strip=True)
        return title, " ".join(text.split())[:_MAX_TEXT_CHARS]

    def _error(self, url: str, exc: Exception) -> AcquisitionError:
        if not isinstance(exc, httpx.HTTPError):
            message = f"Invalid URL {url!r}: {exc}"
        elif isinstance(exc, httpx.TimeoutException):
            message = f"Timeout fetching {url}: {exc}"
        elif isinstance(exc, httpx.HTTPStatusError):
            message = f"HTTP {exc.response.status_code} for {url}"
        else:
            message = f"HTTP error fetching {url}: {exc}"
        return AcquisitionError(message=message, provider_name=self.get_provider_name())
