"""
Content Extractor - Title, links, forms and metadata from a fetched page.

The extractor works on HTML text, which is the rendered DOM for the browser
fetcher and the raw response for the HTTP fetcher. Extracted links are fed
back into the frontier; this is the edge that turns a fixed seed set into an
expanding crawl.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import urljoin

import structlog
from bs4 import BeautifulSoup

from ..core.exceptions import ParseError
from ..models import DiscoveryMethod, FormInfo, FormInput
from .frontier import Frontier
from .normalizer import IGNORED_SCHEMES


NON_HTML_MARKERS = ("image/", "font/", "audio/", "video/", "application/pdf", "application/zip")


@dataclass
class Extraction:
    """What the extractor found on one page"""
    title: str = ""
    links: List[str] = field(default_factory=list)
    forms: List[FormInfo] = field(default_factory=list)
    metadata: Dict[str, str] = field(default_factory=dict)


class ContentExtractor:
    """
    Parses pages and feeds in-budget links back into the frontier.

    Example:
        >>> extractor = ContentExtractor()
        >>> extraction = extractor.extract(html, "https://example.com/")
        >>> extractor.feed_frontier(extraction.links, frontier, "https://example.com/")
    """

    def __init__(self, parser: str = "html.parser"):
        self.parser = parser
        self.logger = structlog.get_logger(__name__)

    @staticmethod
    def is_html(content_type: str) -> bool:
        content_type = (content_type or "").lower()
        return not any(marker in content_type for marker in NON_HTML_MARKERS)

    def extract(self, html: str, page_url: str, content_type: str = "text/html") -> Extraction:
        """
        Extract title, anchors, forms and meta tags.

        Args:
            html: Page markup
            page_url: URL the markup was fetched from (relative link base)
            content_type: Response content type; binary documents yield an
                empty extraction

        Returns:
            Extraction with absolute links in document order, deduplicated

        Raises:
            ParseError: If the markup cannot be parsed
        """
        if not html or not self.is_html(content_type):
            return Extraction()

        try:
            soup = BeautifulSoup(html, self.parser)
        except Exception as e:
            raise ParseError(page_url, f"Unparseable HTML: {e}", source="html") from e

        base_url = page_url
        base_tag = soup.find("base", href=True)
        if base_tag is not None:
            base_url = urljoin(page_url, base_tag["href"].strip())

        extraction = Extraction(
            title=self._extract_title(soup),
            links=self._extract_links(soup, base_url),
            forms=self._extract_forms(soup, base_url, page_url),
            metadata=self._extract_metadata(soup, base_url),
        )

        self.logger.debug(
            "content_extracted",
            url=page_url,
            links=len(extraction.links),
            forms=len(extraction.forms),
        )
        return extraction

    @staticmethod
    def _extract_title(soup: BeautifulSoup) -> str:
        if soup.title is None:
            return ""
        return soup.title.get_text(strip=True)

    @staticmethod
    def _extract_links(soup: BeautifulSoup, base_url: str) -> List[str]:
        links: List[str] = []
        seen = set()

        for anchor in soup.find_all("a", href=True):
            href = anchor["href"].strip()
            if not href or href.lower().startswith(IGNORED_SCHEMES):
                continue

            absolute = urljoin(base_url, href)
            if absolute not in seen:
                seen.add(absolute)
                links.append(absolute)

        return links

    @staticmethod
    def _extract_forms(soup: BeautifulSoup, base_url: str, page_url: str) -> List[FormInfo]:
        forms: List[FormInfo] = []

        for form in soup.find_all("form"):
            action = (form.get("action") or "").strip()
            inputs = [
                FormInput(
                    name=field_tag.get("name") or "",
                    type=field_tag.get("type") or ("text" if field_tag.name == "input" else field_tag.name),
                    required=field_tag.has_attr("required"),
                )
                for field_tag in form.find_all(["input", "textarea", "select"])
            ]
            forms.append(
                FormInfo(
                    action=urljoin(base_url, action) if action else page_url,
                    method=(form.get("method") or "GET").upper(),
                    inputs=inputs,
                )
            )

        return forms

    @staticmethod
    def _extract_metadata(soup: BeautifulSoup, base_url: str) -> Dict[str, str]:
        metadata: Dict[str, str] = {}

        for meta in soup.find_all("meta"):
            key = meta.get("name") or meta.get("property") or meta.get("http-equiv")
            content = meta.get("content")
            if key and content is not None:
                metadata[key.lower()] = content.strip()

        canonical = soup.find("link", rel="canonical", href=True)
        if canonical is not None:
            metadata["canonical"] = urljoin(base_url, canonical["href"].strip())

        return metadata

    def feed_frontier(
        self,
        links: List[str],
        frontier: Frontier,
        page_url: Optional[str] = None,
    ) -> int:
        """
        Schedule newly found links, tagged as crawl discoveries.

        Normalization, deduplication and budget checks happen in the frontier;
        links failing them are dropped silently.

        Returns:
            Number of links newly scheduled
        """
        if frontier.budget_left <= 0:
            return 0

        added = 0
        for link in links:
            if frontier.add(link, DiscoveryMethod.CRAWL, base=page_url):
                added += 1

        if added:
            self.logger.debug("links_scheduled", url=page_url, added=added)
        return added
