"""
Fetchers - One network/render round-trip per URL with a rotating identity.

Two implementations share the BaseFetcher contract:
- PlaywrightFetcher: sequential rendering through one headless browser that is
  owned by a single crawl and closed on every exit path
- HttpFetcher: plain aiohttp requests, processed by the crawler in fixed-size
  concurrent batches

Both pick a random identity per request, wait a randomized politeness delay
before it, and translate library failures into NetworkError.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional

import aiohttp
import structlog
from playwright.async_api import (
    Browser,
    Error as PlaywrightError,
    Playwright,
    Route,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from ..core.config import CrawlConfig, FetchMode
from ..core.exceptions import EngineBootstrapError, NetworkError
from ..core.rate_limiter import PolitenessConfig, PolitenessLimiter
from .identity import FetchIdentity, IdentityPool


# Heavy subresources aborted at the network layer
BLOCKED_RESOURCE_TYPES = frozenset({"image", "stylesheet", "font"})

BROWSER_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
    "--no-first-run",
    "--no-default-browser-check",
    "--disable-extensions",
]


@dataclass
class FetchResult:
    """Outcome of one fetch. Header names are lowercased."""
    url: str
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    content: bytes = b""
    text: str = ""
    final_url: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "unknown")

    @property
    def size(self) -> int:
        return len(self.content) if self.content else len(self.text.encode("utf-8"))


class BaseFetcher(ABC):
    """
    Abstract base class for fetchers.

    Subclasses implement the engine lifecycle (start/close) and the two
    round-trips: ``_render`` for crawl pages and ``_request`` for plain
    documents such as robots.txt, sitemaps and directory probes.

    Use as an async context manager so the engine is released on every exit
    path:

        >>> async with PlaywrightFetcher() as fetcher:
        ...     result = await fetcher.fetch_page("https://example.com/")
    """

    # Number of fetches the crawler may keep in flight at once
    concurrency: int = 1

    def __init__(
        self,
        rate_limiter: Optional[PolitenessLimiter] = None,
        identities: Optional[IdentityPool] = None,
    ):
        self.rate_limiter = rate_limiter or PolitenessLimiter()
        self.identities = identities or IdentityPool()

        # Statistics
        self.request_count = 0
        self.failure_count = 0

        self.logger = structlog.get_logger(__name__, fetcher=type(self).__name__)

    async def __aenter__(self) -> "BaseFetcher":
        try:
            await self.start()
        except Exception as e:
            await self._close_quietly()
            if isinstance(e, EngineBootstrapError):
                raise
            raise EngineBootstrapError(f"Fetch engine failed to start: {e}") from e
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _close_quietly(self):
        try:
            await self.close()
        except Exception as e:
            self.logger.warning("fetcher_close_failed", error=str(e))

    @abstractmethod
    async def start(self):
        """Start the underlying engine"""
        pass

    @abstractmethod
    async def close(self):
        """Release the underlying engine. Must be safe to call twice."""
        pass

    @abstractmethod
    async def _render(self, url: str) -> FetchResult:
        pass

    @abstractmethod
    async def _request(self, url: str) -> FetchResult:
        pass

    async def fetch_page(self, url: str) -> FetchResult:
        """
        Fetch a crawl page (rendered where the engine supports it).

        Raises:
            NetworkError: On timeout, DNS failure or connection errors
        """
        return await self._paced(self._render, url)

    async def fetch_raw(self, url: str) -> FetchResult:
        """
        Fetch a plain document without rendering.

        Raises:
            NetworkError: On timeout, DNS failure or connection errors
        """
        return await self._paced(self._request, url)

    async def _paced(self, round_trip, url: str) -> FetchResult:
        await self.rate_limiter.wait()
        self.request_count += 1

        try:
            result = await round_trip(url)
        except NetworkError:
            self.failure_count += 1
            raise

        self.rate_limiter.on_response(result.status)
        self.logger.debug("fetched", url=url, status=result.status, size=result.size)
        return result

    def get_stats(self) -> Dict[str, object]:
        return {
            "requests": self.request_count,
            "failures": self.failure_count,
            "politeness": self.rate_limiter.get_stats(),
        }


class PlaywrightFetcher(BaseFetcher):
    """
    Headless Chromium fetcher with anti-fingerprinting.

    Features:
    1. One browser per crawl, one short-lived context and page per URL
    2. Random user agent, header set and viewport per request
    3. navigator.webdriver / plugins / languages patched before navigation
    4. Images, stylesheets and fonts aborted at the network layer
    """

    concurrency = 1

    def __init__(
        self,
        headless: bool = True,
        page_timeout: float = 15.0,
        request_timeout: float = 10.0,
        settle_time: float = 1.0,
        rate_limiter: Optional[PolitenessLimiter] = None,
        identities: Optional[IdentityPool] = None,
    ):
        """
        Initialize the Playwright fetcher.

        Args:
            headless: Run browser in headless mode
            page_timeout: Navigation timeout in seconds
            request_timeout: Timeout for plain document requests in seconds
            settle_time: Pause after DOMContentLoaded for scripts to run
            rate_limiter: Politeness limiter
            identities: Identity pool
        """
        super().__init__(rate_limiter=rate_limiter, identities=identities)
        self.headless = headless
        self.page_timeout = page_timeout
        self.request_timeout = request_timeout
        self.settle_time = settle_time

        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None

    async def start(self):
        """Launch Playwright and the browser"""
        self.logger.info("browser_starting", headless=self.headless)

        self.playwright = await async_playwright().start()
        self.browser = await self.playwright.chromium.launch(
            headless=self.headless,
            args=BROWSER_LAUNCH_ARGS,
        )

        self.logger.info("browser_started")

    async def close(self):
        """Close browser and stop Playwright"""
        if self.browser:
            try:
                await self.browser.close()
            finally:
                self.browser = None
        if self.playwright:
            try:
                await self.playwright.stop()
            finally:
                self.playwright = None
            self.logger.info("browser_closed")

    @staticmethod
    def stealth_script(identity: FetchIdentity) -> str:
        """Init script hiding automation fingerprints"""
        return (
            "Object.defineProperty(navigator, 'webdriver', {get: () => undefined});\n"
            f"Object.defineProperty(navigator, 'languages', {{get: () => {json.dumps(identity.languages)}}});\n"
            "Object.defineProperty(navigator, 'plugins', {get: () => [1, 2, 3, 4, 5]});\n"
        )

    @staticmethod
    async def _route_request(route: Route):
        if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
            await route.abort()
        else:
            await route.continue_()

    async def _render(self, url: str) -> FetchResult:
        if not self.browser:
            raise RuntimeError("Fetcher not started. Use 'async with' or call start().")

        identity = self.identities.choose()
        context = await self.browser.new_context(
            user_agent=identity.user_agent,
            viewport=identity.viewport,
            extra_http_headers=identity.headers,
            locale=identity.languages[0] if identity.languages else None,
            ignore_https_errors=True,
        )

        try:
            await context.add_init_script(self.stealth_script(identity))
            await context.route("**/*", self._route_request)

            page = await context.new_page()
            response = await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.page_timeout * 1000,
            )
            if response is None:
                raise NetworkError(url, "No response received")

            # Let client-side scripts populate the DOM
            await asyncio.sleep(self.settle_time)

            body = await page.content()
            headers = await response.all_headers()
            try:
                content = await response.body()
            except PlaywrightError:
                content = body.encode("utf-8")

            return FetchResult(
                url=url,
                status=response.status,
                headers={k.lower(): v for k, v in headers.items()},
                content=content,
                text=body,
                final_url=page.url,
            )

        except PlaywrightTimeoutError as e:
            raise NetworkError(url, f"Navigation timeout after {self.page_timeout}s") from e
        except PlaywrightError as e:
            raise NetworkError(url, str(e).splitlines()[0] if str(e) else "Browser error") from e
        finally:
            try:
                await context.close()
            except PlaywrightError as e:
                self.logger.debug("context_close_failed", url=url, error=str(e))

    async def _request(self, url: str) -> FetchResult:
        if not self.playwright:
            raise RuntimeError("Fetcher not started. Use 'async with' or call start().")

        identity = self.identities.choose()
        request_context = await self.playwright.request.new_context(
            user_agent=identity.user_agent,
            extra_http_headers=identity.headers,
            ignore_https_errors=True,
        )

        try:
            response = await request_context.get(url, timeout=self.request_timeout * 1000)
            content = await response.body()
            return FetchResult(
                url=url,
                status=response.status,
                headers={k.lower(): v for k, v in response.headers.items()},
                content=content,
                text=content.decode("utf-8", errors="replace"),
                final_url=response.url,
            )

        except PlaywrightTimeoutError as e:
            raise NetworkError(url, f"Request timeout after {self.request_timeout}s") from e
        except PlaywrightError as e:
            raise NetworkError(url, str(e).splitlines()[0] if str(e) else "Request error") from e
        finally:
            await request_context.dispose()


class HttpFetcher(BaseFetcher):
    """
    Plain-HTTP fetcher built on aiohttp.

    Pages are not rendered: the body is the server response. The crawler
    drives this fetcher in batches of ``concurrency`` requests.
    """

    def __init__(
        self,
        concurrency: int = 10,
        request_timeout: float = 10.0,
        rate_limiter: Optional[PolitenessLimiter] = None,
        identities: Optional[IdentityPool] = None,
    ):
        """
        Initialize the HTTP fetcher.

        Args:
            concurrency: Batch size (and connection limit)
            request_timeout: Total timeout per request in seconds
            rate_limiter: Politeness limiter
            identities: Identity pool
        """
        super().__init__(rate_limiter=rate_limiter, identities=identities)
        self.concurrency = concurrency
        self.request_timeout = request_timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def start(self):
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.request_timeout),
            connector=aiohttp.TCPConnector(limit=self.concurrency, ttl_dns_cache=300),
        )
        self.logger.info("http_session_started", concurrency=self.concurrency)

    async def close(self):
        if self.session and not self.session.closed:
            await self.session.close()
            self.logger.info("http_session_closed")
        self.session = None

    async def _render(self, url: str) -> FetchResult:
        return await self._get(url)

    async def _request(self, url: str) -> FetchResult:
        return await self._get(url)

    async def _get(self, url: str) -> FetchResult:
        if self.session is None:
            raise RuntimeError("Fetcher not started. Use 'async with' or call start().")

        identity = self.identities.choose()
        # aiohttp negotiates Accept-Encoding with the codecs it can decode
        headers = {
            k: v for k, v in identity.headers.items() if k.lower() != "accept-encoding"
        }
        headers["User-Agent"] = identity.user_agent

        try:
            async with self.session.get(url, headers=headers, allow_redirects=True) as response:
                content = await response.read()
                charset = response.charset or "utf-8"
                try:
                    text = content.decode(charset, errors="replace")
                except LookupError:
                    text = content.decode("utf-8", errors="replace")

                return FetchResult(
                    url=url,
                    status=response.status,
                    headers={k.lower(): v for k, v in response.headers.items()},
                    content=content,
                    text=text,
                    final_url=str(response.url),
                )

        except asyncio.TimeoutError as e:
            raise NetworkError(url, f"Request timeout after {self.request_timeout}s") from e
        except aiohttp.ClientError as e:
            raise NetworkError(url, str(e) or type(e).__name__) from e


def build_fetcher(config: CrawlConfig) -> BaseFetcher:
    """Create the fetcher matching ``config.fetch_mode``"""
    rate_limiter = PolitenessLimiter(PolitenessConfig.from_crawl_config(config))
    identities = IdentityPool.from_file_or_default(config.identity_file)

    if config.fetch_mode == FetchMode.HTTP:
        return HttpFetcher(
            concurrency=config.batch_size,
            request_timeout=config.request_timeout,
            rate_limiter=rate_limiter,
            identities=identities,
        )

    return PlaywrightFetcher(
        headless=config.headless,
        page_timeout=config.page_timeout,
        request_timeout=config.request_timeout,
        rate_limiter=rate_limiter,
        identities=identities,
    )
