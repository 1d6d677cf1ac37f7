"""
Site Crawler - Discovery pipeline that ties all components together.

Phases:
1. Seed discovery (robots.txt, sitemaps, conventional sitemap locations)
2. Crawling (frontier drained through the fetcher and the content extractor)
3. Directory probing (optional, for exposed listings)
4. Reconciliation (tree repair, statistics, immutable result)

Usage:
    result = await crawl("https://example.com", CrawlConfig(max_pages=50))
"""

import asyncio
from datetime import datetime
from typing import Optional

import structlog
import yaml

from ..analysis.reconciler import TreeReconciler
from ..analysis.security import SecurityClassifier
from ..analysis.statistics import StatisticsAggregator
from ..crawler.extractor import ContentExtractor, Extraction
from ..crawler.fetcher import BaseFetcher, FetchResult, build_fetcher
from ..crawler.normalizer import get_extension, is_directory_url
from ..crawler.seeds import SeedDiscovery
from ..models import CrawlResult, DiscoveredURL, DiscoveryMethod, Page
from .config import CrawlConfig
from .exceptions import FatalError, HTTPError, NetworkError, ParseError
from .session import CrawlSession


class SiteCrawler:
    """
    Runs one crawl from seeds to result.

    A crawler instance owns one CrawlSession and is used once. Per-URL and
    per-source failures are recorded in the session's error log; only
    FatalError (engine bootstrap) leaves ``run()``.

    Example:
        >>> crawler = SiteCrawler("https://example.com", CrawlConfig(max_depth=2))
        >>> result = await crawler.run()
        >>> print(f"Mapped {result.total_pages} pages")
    """

    def __init__(
        self,
        target_url: str,
        config: Optional[CrawlConfig] = None,
        fetcher: Optional[BaseFetcher] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        """
        Initialize the crawler.

        Args:
            target_url: Start URL (https:// is assumed when no scheme is given)
            config: Crawl configuration
            fetcher: Fetcher to use instead of the one built from ``config``
            cancel_event: Set to stop scheduling new fetches
        """
        self.config = config or CrawlConfig()
        self.session = CrawlSession(target_url, self.config, cancel_event)
        self.fetcher = fetcher

        # Components
        self.extractor = ContentExtractor()
        self.classifier = SecurityClassifier()
        self.reconciler = TreeReconciler(self.session.normalizer)
        self.aggregator = StatisticsAggregator()

        self.logger = structlog.get_logger(__name__)
        self.crawl_id = f"crawl_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

    async def run(self) -> CrawlResult:
        """
        Run the complete discovery pipeline.

        Returns:
            Immutable CrawlResult (partial if cancelled)

        Raises:
            FatalError: If the fetch engine cannot be started or configured
        """
        session = self.session
        self.logger.info(
            "crawl_started",
            crawl_id=self.crawl_id,
            target=session.target_url,
            max_depth=self.config.max_depth,
            max_pages=self.config.max_pages,
            fetch_mode=self.config.fetch_mode.value,
        )

        fetcher = self.fetcher or self._build_fetcher()

        try:
            async with fetcher:
                # Phase 1: Seed Discovery
                await self._phase_seed_discovery(fetcher)

                # Phase 2: Crawling
                await self._phase_crawling(fetcher)

                # Phase 3: Directory Probing
                if self.config.check_sensitive_files and not session.cancelled:
                    await self._phase_directory_probe(fetcher)

        except FatalError as e:
            self.logger.error(
                "crawl_failed",
                crawl_id=self.crawl_id,
                error=str(e),
                exc_info=True,
            )
            raise

        # Phase 4: Reconciliation
        result = self._phase_reconciliation()

        self.logger.info(
            "crawl_complete",
            crawl_id=self.crawl_id,
            pages=result.total_pages,
            directories=result.total_directories,
            errors=len(result.errors),
            cancelled=result.cancelled,
            duration=round(result.duration, 2),
        )
        return result

    def _build_fetcher(self) -> BaseFetcher:
        try:
            return build_fetcher(self.config)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise FatalError(f"Invalid identity file {self.config.identity_file}: {e}") from e

    async def _phase_seed_discovery(self, fetcher: BaseFetcher):
        """Phase 1: Seed the frontier from robots.txt and sitemaps"""
        self.logger.info("phase_seed_discovery_started")

        try:
            discovery = SeedDiscovery(fetcher, self.session)
            await discovery.discover()
        except Exception as e:
            self.logger.error("seed_discovery_failed", error=str(e), exc_info=True)
            self.session.record_error(e)

        # The start URL is always scheduled, after seeds so a sitemap tag wins
        self.session.frontier.add(self.session.target_url, DiscoveryMethod.CRAWL)

        self.logger.info(
            "phase_seed_discovery_complete",
            pending=len(self.session.frontier),
        )

    async def _phase_crawling(self, fetcher: BaseFetcher):
        """Phase 2: Drain the frontier in batches of the fetcher's concurrency"""
        frontier = self.session.frontier
        batch_size = max(1, fetcher.concurrency)

        self.logger.info("phase_crawling_started", batch_size=batch_size)

        while len(frontier) and frontier.budget_left:
            if self.session.cancelled:
                self.logger.info("crawl_cancelled", fetched=len(frontier.visited))
                break

            batch = frontier.pop_batch(batch_size)
            if not batch:
                break

            await asyncio.gather(*(self._process(fetcher, discovered) for discovered in batch))

            if batch_size > 1 and len(frontier) and self.config.batch_pause:
                await asyncio.sleep(self.config.batch_pause)

        self.logger.info(
            "phase_crawling_complete",
            pages=len(self.session.pages),
            frontier=frontier.get_statistics(),
        )

    async def _process(self, fetcher: BaseFetcher, discovered: DiscoveredURL):
        """Fetch, extract and register one URL. Never raises."""
        url = discovered.url

        try:
            result = await fetcher.fetch_page(url)

            if not result.ok:
                self.session.tally_response(result.status, result.content_type)
                self.session.record_error(HTTPError(url, result.status))
                return

            try:
                extraction = self.extractor.extract(result.text, url, result.content_type)
            except ParseError as e:
                self.session.record_error(e)
                extraction = Extraction()

            page = self._build_page(discovered, result, extraction)
            if not self.session.add_page(page):
                return

            self.extractor.feed_frontier(extraction.links, self.session.frontier, url)

            if self.config.check_sensitive_files:
                self.classifier.classify(url, self.session.security)

        except NetworkError as e:
            self.session.record_error(e)
        except Exception as e:
            self.logger.error("page_processing_failed", url=url, error=str(e), exc_info=True)
            self.session.record_error(e, url=url)

    def _build_page(
        self,
        discovered: DiscoveredURL,
        result: FetchResult,
        extraction: Extraction,
    ) -> Page:
        url = discovered.url
        return Page(
            url=url,
            title=extraction.title,
            status_code=result.status,
            size=result.size,
            content_type=result.content_type,
            depth=discovered.depth,
            parent=self.session.normalizer.parent_of(url),
            links=extraction.links,
            forms=extraction.forms,
            headers=dict(result.headers),
            metadata=extraction.metadata,
            last_modified=result.headers.get("last-modified") or discovered.last_modified,
            is_directory=is_directory_url(url),
            extension=get_extension(url),
            discovery_method=discovered.method,
        )

    async def _phase_directory_probe(self, fetcher: BaseFetcher):
        """Phase 3: Probe conventional directories for exposed listings"""
        try:
            await self.classifier.probe_directories(fetcher, self.session)
        except Exception as e:
            self.logger.error("directory_probe_failed", error=str(e), exc_info=True)
            self.session.record_error(e)

    def _phase_reconciliation(self) -> CrawlResult:
        """Phase 4: Repair the tree and build the result"""
        session = self.session

        pages = self.reconciler.reconcile(list(session.pages.values()))
        aggregate = self.aggregator.aggregate(
            pages,
            extra_status_codes=session.status_codes,
            extra_content_types=session.content_types,
            exposed_directories=session.exposed_directories,
        )

        return CrawlResult(
            target_url=session.target_url,
            root_url=session.root_url,
            sitemap=tuple(pages),
            directories=tuple(aggregate.directories),
            files=aggregate.files,
            forms=tuple(aggregate.forms),
            errors=tuple(session.errors),
            statistics=aggregate.statistics,
            discovery_methods=aggregate.discovery_methods,
            security=session.security,
            sitemaps=tuple(session.processed_sitemaps),
            cancelled=session.cancelled,
            started_at=session.started_at,
            finished_at=datetime.now(),
        )


async def crawl(
    target_url: str,
    config: Optional[CrawlConfig] = None,
    fetcher: Optional[BaseFetcher] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> CrawlResult:
    """
    Map the structure of a site.

    Args:
        target_url: Start URL
        config: Crawl configuration (defaults apply when None)
        fetcher: Optional pre-built fetcher; it is started and closed here
        cancel_event: Optional event; once set, no new fetches are scheduled
            and the partial result is returned

    Returns:
        CrawlResult

    Raises:
        FatalError: If the fetch engine fails to start
    """
    crawler = SiteCrawler(target_url, config, fetcher=fetcher, cancel_event=cancel_event)
    return await crawler.run()
