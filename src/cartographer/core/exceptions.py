"""
Crawl error taxonomy.

Per-URL and per-source errors (network, HTTP status, parse) are recovered
locally and written to the crawl's error log. Only FatalError propagates out
of crawl().
"""

from typing import Optional


class CrawlError(Exception):
    """Base exception for recoverable crawl errors"""

    kind = "crawl"

    def __init__(self, url: str, message: str):
        super().__init__(f"{message} ({url})")
        self.url = url
        self.message = message


class NetworkError(CrawlError):
    """Raised on timeout, DNS failure or refused connection"""

    kind = "network"


class HTTPError(CrawlError):
    """Raised when the server answers with a non-2xx status"""

    kind = "http"

    def __init__(self, url: str, status_code: int, message: Optional[str] = None):
        super().__init__(url, message or f"HTTP {status_code}")
        self.status_code = status_code


class ParseError(CrawlError):
    """Raised when a sitemap or HTML document cannot be parsed"""

    kind = "parse"

    def __init__(self, url: str, message: str, source: str = "document"):
        super().__init__(url, message)
        self.source = source


class FatalError(Exception):
    """Raised when the crawl cannot run at all"""
    pass


class EngineBootstrapError(FatalError):
    """Raised when the rendering/HTTP engine fails to start"""
    pass
