"""
Shared fixtures: an in-memory fetcher and HTML/sitemap builders.
"""

import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

# Allow running the suite from a source checkout
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from cartographer.core.rate_limiter import PolitenessConfig, PolitenessLimiter
from cartographer.crawler.fetcher import BaseFetcher, FetchResult


def instant_limiter() -> PolitenessLimiter:
    return PolitenessLimiter(PolitenessConfig(min_delay=0.0, max_delay=0.0))


class FakeFetcher(BaseFetcher):
    """
    Fetcher answering from a route table.

    A route is ``(status, body)``, ``(status, body, headers)`` or an exception
    instance to raise. Unknown URLs answer 404.
    """

    def __init__(self, routes: Optional[Dict[str, object]] = None, concurrency: int = 1, fail_start: bool = False):
        super().__init__(rate_limiter=instant_limiter())
        self.routes = dict(routes or {})
        self.concurrency = concurrency
        self.fail_start = fail_start

        self.started = False
        self.closed = False
        self.calls: List[str] = []

    async def start(self):
        if self.fail_start:
            raise RuntimeError("Executable doesn't exist")
        self.started = True

    async def close(self):
        self.closed = True

    async def _render(self, url: str) -> FetchResult:
        return self._respond(url)

    async def _request(self, url: str) -> FetchResult:
        return self._respond(url)

    def call_count(self, url: str) -> int:
        return self.calls.count(url)

    def _respond(self, url: str) -> FetchResult:
        self.calls.append(url)
        route = self.routes.get(url)

        if route is None:
            return FetchResult(
                url=url,
                status=404,
                headers={"content-type": "text/html"},
                content=b"Not Found",
                text="Not Found",
            )

        if isinstance(route, Exception):
            raise route

        status, body = route[0], route[1]
        extra_headers = route[2] if len(route) > 2 else {}

        headers = {"content-type": "text/html; charset=utf-8"}
        headers.update({k.lower(): v for k, v in extra_headers.items()})

        content = body if isinstance(body, bytes) else body.encode("utf-8")
        text = body if isinstance(body, str) else body.decode("utf-8", errors="replace")

        return FetchResult(url=url, status=status, headers=headers, content=content, text=text, final_url=url)


def make_html(title: str = "", links: Iterable[str] = (), body: str = "") -> str:
    anchors = "".join(f'<a href="{href}">{href}</a>' for href in links)
    return f"<html><head><title>{title}</title></head><body>{anchors}{body}</body></html>"


def make_urlset(locs: Iterable[str], lastmod: Optional[str] = None) -> str:
    entries = []
    for loc in locs:
        extra = f"<lastmod>{lastmod}</lastmod>" if lastmod else ""
        entries.append(f"<url><loc>{loc}</loc>{extra}</url>")
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
        + "".join(entries)
        + "</urlset>"
    )


def make_sitemap_index(locs: Iterable[str]) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
        + "".join(f"<sitemap><loc>{loc}</loc></sitemap>" for loc in locs)
        + "</sitemapindex>"
    )


XML = {"Content-Type": "application/xml"}
TEXT = {"Content-Type": "text/plain"}


@pytest.fixture
def fake_fetcher():
    """FakeFetcher class, called with a route table"""
    return FakeFetcher


@pytest.fixture
def html():
    return make_html


@pytest.fixture
def urlset():
    return make_urlset


@pytest.fixture
def sitemap_index():
    return make_sitemap_index


@pytest.fixture
def xml_headers():
    return dict(XML)


@pytest.fixture
def text_headers():
    return dict(TEXT)
