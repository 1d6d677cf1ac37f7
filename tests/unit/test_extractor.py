"""
Unit tests for ContentExtractor module.

Run with: pytest tests/unit/test_extractor.py -v
"""

import pytest

from cartographer.crawler.extractor import ContentExtractor
from cartographer.crawler.frontier import Frontier
from cartographer.crawler.normalizer import URLNormalizer
from cartographer.models import DiscoveryMethod


PAGE_URL = "https://example.com/blog/"

SAMPLE_PAGE = """
<html>
<head>
  <title>
    Blog Home
  </title>
  <meta name="description" content=" Latest posts ">
  <meta property="og:type" content="website">
  <link rel="canonical" href="/blog/">
</head>
<body>
  <a href="post-1/">First</a>
  <a href="/about/">About</a>
  <a href="post-1/">First again</a>
  <a href="javascript:void(0)">JS</a>
  <a href="mailto:editor@example.com">Mail</a>
  <a href="tel:+3312345">Call</a>
  <a href="https://other.org/">Elsewhere</a>
  <a>No href</a>
  <form action="/search" method="post">
    <input type="text" name="q" required>
    <input type="hidden" name="csrf">
    <select name="category"></select>
    <textarea name="notes"></textarea>
  </form>
  <form>
    <input name="email">
  </form>
</body>
</html>
"""


class TestContentExtractor:
    """Test suite for ContentExtractor class"""

    def test_extracts_title(self):
        """Test title text is collected and stripped"""
        extraction = ContentExtractor().extract(SAMPLE_PAGE, PAGE_URL)

        assert extraction.title == "Blog Home"

    def test_extracts_links_in_order_without_ignored_schemes(self):
        """Test anchors are absolute, deduplicated and filtered"""
        extraction = ContentExtractor().extract(SAMPLE_PAGE, PAGE_URL)

        assert extraction.links == [
            "https://example.com/blog/post-1/",
            "https://example.com/about/",
            "https://other.org/",
        ]

    def test_extracts_forms(self):
        """Test form action, method and inputs"""
        forms = ContentExtractor().extract(SAMPLE_PAGE, PAGE_URL).forms

        assert len(forms) == 2

        search = forms[0]
        assert search.action == "https://example.com/search"
        assert search.method == "POST"
        assert [(i.name, i.type, i.required) for i in search.inputs] == [
            ("q", "text", True),
            ("csrf", "hidden", False),
            ("category", "select", False),
            ("notes", "textarea", False),
        ]

        newsletter = forms[1]
        assert newsletter.action == PAGE_URL
        assert newsletter.method == "GET"
        assert newsletter.inputs[0].type == "text"

    def test_extracts_metadata_and_canonical(self):
        """Test meta tags and the canonical link"""
        metadata = ContentExtractor().extract(SAMPLE_PAGE, PAGE_URL).metadata

        assert metadata["description"] == "Latest posts"
        assert metadata["og:type"] == "website"
        assert metadata["canonical"] == "https://example.com/blog/"

    def test_base_href_changes_link_resolution(self):
        """Test <base href> is honoured"""
        html = '<html><head><base href="https://example.com/docs/"></head><body><a href="intro">x</a></body></html>'

        extraction = ContentExtractor().extract(html, "https://example.com/")

        assert extraction.links == ["https://example.com/docs/intro"]

    def test_non_html_content_is_skipped(self):
        """Test binary documents produce an empty extraction"""
        extraction = ContentExtractor().extract("%PDF-1.4 ...", "https://example.com/a.pdf", "application/pdf")

        assert extraction.title == ""
        assert extraction.links == []

    def test_empty_document(self):
        """Test empty bodies are not an error"""
        extraction = ContentExtractor().extract("", PAGE_URL)

        assert extraction.links == []
        assert extraction.forms == []

    def test_missing_title(self):
        """Test pages without a title get an empty one"""
        assert ContentExtractor().extract("<p>hi</p>", PAGE_URL).title == ""

    def test_feed_frontier_tags_links_as_crawl(self):
        """Test extracted links enter the frontier in scope and in budget"""
        frontier = Frontier(URLNormalizer("https://example.com"), max_depth=1, max_pages=10)
        extractor = ContentExtractor()
        extraction = extractor.extract(SAMPLE_PAGE, PAGE_URL)

        added = extractor.feed_frontier(extraction.links, frontier, PAGE_URL)

        # post-1/ is too deep and other.org is external
        assert added == 1
        discovered = frontier.pop()
        assert discovered.url == "https://example.com/about/"
        assert discovered.method == DiscoveryMethod.CRAWL

    def test_feed_frontier_stops_when_budget_spent(self):
        """Test nothing is scheduled once the page budget is used up"""
        frontier = Frontier(URLNormalizer("https://example.com"), max_depth=3, max_pages=1)
        frontier.add("/", DiscoveryMethod.CRAWL)
        frontier.pop()

        added = ContentExtractor().feed_frontier(["https://example.com/new/"], frontier, PAGE_URL)

        assert added == 0
        assert len(frontier) == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
