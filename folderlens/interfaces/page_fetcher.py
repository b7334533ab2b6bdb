"""Abstract base class for web page fetchers used by content review.

A fetcher produces the raw HTML plus readable text for one URL.  Network
mechanics (redirects, protocol fallback, headers) are the implementation's
concern.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PageContent:
    """Fetched content of one web page.

    Attributes
    ----------
    url:
        The URL that was finally fetched (may differ after protocol fallback).
    html:
        The raw response body.
    text:
        Readable text with markup, scripts and styles removed.
    title:
        The page title if identifiable.
    """

    url: str
    html: str
    text: str
    title: str = ""


class IPageFetcher(ABC):
    """Contract for services that fetch a page and extract readable text."""

    @abstractmethod
    async def fetch(self, url: str) -> PageContent:
        """Fetch *url* and return its content.

        Raises
        ------
        folderlens.utils.errors.AcquisitionError
            If the page cannot be fetched over HTTPS or HTTP.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable name for this fetcher."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if the fetcher can accept requests."""
