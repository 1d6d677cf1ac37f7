"""
Crawl Session - All mutable state of one crawl invocation.

The visited set, frontier, counters, error log and findings live here rather
than in module globals, so independent crawls can run side by side and every
component can be tested with a fresh session.
"""

import asyncio
from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional

import structlog

from ..crawler.frontier import Frontier
from ..crawler.normalizer import URLNormalizer, coerce_target
from ..models import ErrorRecord, Page, SecurityFindings
from .config import CrawlConfig
from .exceptions import CrawlError


class CrawlSession:
    """
    Per-invocation crawl state passed explicitly through all components.

    Example:
        >>> session = CrawlSession("https://example.com", CrawlConfig())
        >>> session.frontier.add("/", DiscoveryMethod.CRAWL)
        >>> session.record_error(NetworkError("https://example.com/x", "timeout"))
    """

    def __init__(
        self,
        target_url: str,
        config: Optional[CrawlConfig] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        self.target_url = coerce_target(target_url)
        self.config = config or CrawlConfig()
        self.cancel_event = cancel_event or asyncio.Event()

        self.normalizer = URLNormalizer(
            self.target_url, include_external=self.config.include_external
        )
        self.frontier = Frontier(
            self.normalizer,
            max_depth=self.config.max_depth,
            max_pages=self.config.max_pages,
        )

        # Accumulated results
        self.pages: Dict[str, Page] = {}
        self.errors: List[ErrorRecord] = []
        self.security = SecurityFindings()
        self.processed_sitemaps: List[str] = []
        self.exposed_directories: List[str] = []

        # Bookkeeping for responses that did not become pages
        self.status_codes: Counter = Counter()
        self.content_types: Counter = Counter()

        self.started_at = datetime.now()

        self.logger = structlog.get_logger(__name__)

    @property
    def root_url(self) -> str:
        return self.normalizer.root_url

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self):
        self.cancel_event.set()

    def record_error(self, error: Exception, url: Optional[str] = None) -> ErrorRecord:
        """
        Append an error to the crawl log.

        CrawlError subclasses keep their kind; anything else is recorded as
        "unexpected".
        """
        if isinstance(error, CrawlError):
            record = ErrorRecord(kind=error.kind, url=error.url, message=error.message)
        else:
            record = ErrorRecord(
                kind="unexpected",
                url=url or self.target_url,
                message=str(error) or type(error).__name__,
            )

        self.errors.append(record)
        self.logger.warning(
            "crawl_error_recorded",
            kind=record.kind,
            url=record.url,
            error=record.message,
        )
        return record

    def tally_response(self, status_code: int, content_type: str):
        self.status_codes[status_code] += 1
        self.content_types[content_type] += 1

    def add_page(self, page: Page) -> bool:
        """Register a fetched page; returns False if the URL is already known"""
        if page.url in self.pages:
            return False
        self.pages[page.url] = page
        return True

    def __repr__(self) -> str:
        return (
            f"CrawlSession("
            f"target={self.target_url}, "
            f"pages={len(self.pages)}, "
            f"errors={len(self.errors)})"
        )
