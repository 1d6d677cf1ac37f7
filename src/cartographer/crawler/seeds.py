"""
Seed Discovery - robots.txt and sitemap analysis before any page is rendered.

Sources:
- robots.txt: ``Sitemap:`` directives and ``Disallow:`` paths. Disallowed
  paths are treated as discovery signal, not as exclusions.
- Sitemaps: XML URL sets, XML sitemap indexes (resolved recursively with a
  seen-set guard), gzip-compressed sitemaps and plain-text sitemaps.
- Conventional sitemap locations, probed in order when robots.txt declares
  none.

A failure on any single source is logged and skipped; seed discovery never
aborts the crawl.
"""

import gzip
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple
from urllib.parse import urljoin

import structlog
from defusedxml import ElementTree as ET
from defusedxml.common import DefusedXmlException

from ..core.exceptions import HTTPError, NetworkError, ParseError
from ..models import DiscoveryMethod
from .fetcher import BaseFetcher, FetchResult


# Probed in order when robots.txt declares no sitemap
SITEMAP_CANDIDATES = [
    "sitemap.xml",
    "sitemap_index.xml",
    "sitemap-index.xml",
    "sitemapindex.xml",
    "sitemaps.xml",
    "sitemap.xml.gz",
    "sitemap.txt",
    "sitemap1.xml",
    "sitemap2.xml",
    "sitemap-1.xml",
    "sitemap_1.xml",
    "wp-sitemap.xml",
    "page-sitemap.xml",
    "post-sitemap.xml",
    "category-sitemap.xml",
    "product-sitemap.xml",
    "news-sitemap.xml",
    "sitemap/sitemap.xml",
    "sitemap/index.xml",
    "sitemaps/sitemap.xml",
]

# Guessed locations must answer with one of these; text/html is a soft 404
SITEMAP_CONTENT_TYPES = ("xml", "text/plain", "gzip")
GZIP_MAGIC = b"\x1f\x8b"


@dataclass
class SitemapEntry:
    """One <loc> of a sitemap, with its optional <lastmod>"""
    loc: str
    lastmod: Optional[str] = None


@dataclass
class SeedReport:
    """Summary of a seed discovery run"""
    robots_found: bool = False
    declared_sitemaps: List[str] = field(default_factory=list)
    processed_sitemaps: List[str] = field(default_factory=list)
    seeds: Counter = field(default_factory=Counter)


def parse_robots(text: str) -> Tuple[List[str], List[str]]:
    """
    Extract sitemap URLs and disallowed paths from robots.txt.

    Disallow values that are empty, "/" or contain wildcards are skipped since
    they do not name a concrete location.

    Returns:
        (sitemaps, disallowed_paths), both deduplicated in file order
    """
    sitemaps: List[str] = []
    disallows: List[str] = []

    for raw in (text or "").splitlines():
        line = raw.split("#", 1)[0].strip()
        if not line or ":" not in line:
            continue

        key, value = line.split(":", 1)
        key = key.strip().lower()
        value = value.strip()

        if key == "sitemap" and value and value not in sitemaps:
            sitemaps.append(value)
        elif key == "disallow" and value and value != "/":
            if "*" in value or "$" in value:
                continue
            if value not in disallows:
                disallows.append(value)

    return sitemaps, disallows


def _local_name(tag) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1].lower()


def parse_sitemap(content: bytes, url: str) -> Tuple[str, List[SitemapEntry]]:
    """
    Parse a sitemap document.

    Args:
        content: Raw response body (gzip is detected by magic bytes)
        url: Sitemap URL, for error reporting

    Returns:
        (kind, entries) where kind is "sitemapindex", "urlset" or "text"

    Raises:
        ParseError: If the document is empty, corrupt or not well-formed XML
    """
    data = content or b""

    if data[:2] == GZIP_MAGIC:
        try:
            data = gzip.decompress(data)
        except (OSError, EOFError) as e:
            raise ParseError(url, f"Corrupt gzip sitemap: {e}", source="sitemap") from e

    stripped = data.lstrip()
    if not stripped:
        raise ParseError(url, "Empty sitemap", source="sitemap")

    # Plain-text sitemap: one absolute URL per line
    if not stripped.startswith(b"<"):
        text = data.decode("utf-8", errors="replace")
        entries = [
            SitemapEntry(loc=line.strip())
            for line in text.splitlines()
            if line.strip().startswith(("http://", "https://"))
        ]
        return "text", entries

    try:
        root = ET.fromstring(stripped)
    except (ET.ParseError, DefusedXmlException) as e:
        raise ParseError(url, f"Malformed sitemap XML: {e}", source="sitemap") from e

    kind = "sitemapindex" if _local_name(root.tag) == "sitemapindex" else "urlset"
    entry_tag = "sitemap" if kind == "sitemapindex" else "url"

    entries: List[SitemapEntry] = []
    for element in root.iter():
        if _local_name(element.tag) != entry_tag:
            continue

        loc = lastmod = None
        for child in element:
            name = _local_name(child.tag)
            if name == "loc" and child.text:
                loc = child.text.strip()
            elif name == "lastmod" and child.text:
                lastmod = child.text.strip()

        if loc:
            entries.append(SitemapEntry(loc=loc, lastmod=lastmod))

    return kind, entries


class SeedDiscovery:
    """
    Resolves robots.txt and sitemaps into frontier seeds.

    Every page URL from a sitemap is scheduled tagged ``sitemap``; every
    Disallow path is scheduled tagged ``robots``.

    Example:
        >>> discovery = SeedDiscovery(fetcher, session)
        >>> report = await discovery.discover()
        >>> report.seeds["sitemap"]
        42
    """

    def __init__(self, fetcher: BaseFetcher, session):
        """
        Initialize seed discovery.

        Args:
            fetcher: Started fetcher used for plain document requests
            session: CrawlSession receiving seeds, errors and findings
        """
        self.fetcher = fetcher
        self.session = session
        self.origin = session.normalizer.origin

        self.logger = structlog.get_logger(__name__)

    async def discover(self) -> SeedReport:
        """Run robots.txt analysis, declared sitemaps, then fallback probing"""
        report = SeedReport()
        seen: Set[str] = set()

        self.logger.info("seed_discovery_started", origin=self.origin)

        report.declared_sitemaps = await self._process_robots(report)

        for sitemap_url in report.declared_sitemaps:
            await self.resolve_sitemap(sitemap_url, seen, report)

        if not report.declared_sitemaps:
            for candidate in SITEMAP_CANDIDATES:
                if self.session.cancelled:
                    break
                candidate_url = f"{self.origin}/{candidate}"
                if await self.resolve_sitemap(candidate_url, seen, report, probe=True):
                    self.logger.info("sitemap_probe_hit", url=candidate_url)
                    break

        self.session.processed_sitemaps.extend(report.processed_sitemaps)

        self.logger.info(
            "seed_discovery_complete",
            robots_found=report.robots_found,
            sitemaps=len(report.processed_sitemaps),
            seeds=dict(report.seeds),
        )
        return report

    async def _process_robots(self, report: SeedReport) -> List[str]:
        robots_url = f"{self.origin}/robots.txt"

        try:
            result = await self.fetcher.fetch_raw(robots_url)
        except NetworkError as e:
            self.session.record_error(e)
            return []

        if result.status != 200:
            self.logger.info("robots_not_found", url=robots_url, status=result.status)
            return []

        report.robots_found = True
        self.session.security.add("sensitive_files", robots_url)

        sitemaps, disallows = parse_robots(result.text)

        for path in disallows:
            if self.session.frontier.add(path, DiscoveryMethod.ROBOTS, base=robots_url):
                report.seeds[DiscoveryMethod.ROBOTS.value] += 1

        self.logger.info(
            "robots_parsed",
            url=robots_url,
            sitemaps=len(sitemaps),
            disallowed=len(disallows),
        )
        return [urljoin(robots_url, sitemap) for sitemap in sitemaps]

    async def resolve_sitemap(
        self,
        sitemap_url: str,
        seen: Set[str],
        report: SeedReport,
        probe: bool = False,
    ) -> bool:
        """
        Fetch and parse one sitemap, recursing into sitemap indexes.

        ``seen`` is shared across the whole recursion; a sitemap URL already in
        it is neither fetched nor parsed again, which guards against cyclic and
        duplicate references.

        Args:
            sitemap_url: Absolute sitemap URL
            seen: Sitemap URLs already processed in this discovery run
            report: Report to update
            probe: URL is a guessed location; verify status and content type
                and do not record misses or unparseable bodies as errors

        Returns:
            True if the document was fetched and parsed as a sitemap
        """
        sitemap_url = sitemap_url.strip().split("#", 1)[0]
        if not sitemap_url or sitemap_url in seen:
            self.logger.debug("sitemap_already_seen", url=sitemap_url)
            return False
        seen.add(sitemap_url)

        try:
            result = await self.fetcher.fetch_raw(sitemap_url)
        except NetworkError as e:
            if probe:
                self.logger.debug("sitemap_probe_failed", url=sitemap_url, error=e.message)
            else:
                self.session.record_error(e)
            return False

        if result.status != 200:
            if not probe:
                self.session.record_error(HTTPError(sitemap_url, result.status))
            return False

        if probe and not self._looks_like_sitemap(result):
            self.logger.debug(
                "sitemap_probe_rejected",
                url=sitemap_url,
                content_type=result.content_type,
            )
            return False

        try:
            kind, entries = parse_sitemap(result.content or result.text.encode("utf-8"), sitemap_url)
        except ParseError as e:
            if probe:
                self.logger.debug("sitemap_probe_unparseable", url=sitemap_url, error=e.message)
            else:
                self.session.record_error(e)
            return False

        report.processed_sitemaps.append(sitemap_url)
        self.session.security.add("sensitive_files", sitemap_url)

        self.logger.info("sitemap_parsed", url=sitemap_url, kind=kind, entries=len(entries))

        if kind == "sitemapindex":
            for entry in entries:
                await self.resolve_sitemap(urljoin(sitemap_url, entry.loc), seen, report)
            return True

        for entry in entries:
            added = self.session.frontier.add(
                entry.loc,
                DiscoveryMethod.SITEMAP,
                base=sitemap_url,
                last_modified=entry.lastmod,
            )
            if added:
                report.seeds[DiscoveryMethod.SITEMAP.value] += 1

        return True

    @staticmethod
    def _looks_like_sitemap(result: FetchResult) -> bool:
        content_type = result.content_type.lower()
        if any(marker in content_type for marker in SITEMAP_CONTENT_TYPES):
            return True
        return result.content[:2] == GZIP_MAGIC
