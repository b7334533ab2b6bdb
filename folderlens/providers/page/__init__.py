"""Web page fetchers for content review."""

from folderlens.providers.page.web_page_provider import WebPageProvider

__all__ = ["WebPageProvider"]
