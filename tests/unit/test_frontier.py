"""
Unit tests for Frontier module.

Run with: pytest tests/unit/test_frontier.py -v
"""

import pytest

from cartographer.crawler.frontier import Frontier
from cartographer.crawler.normalizer import URLNormalizer
from cartographer.models import DiscoveryMethod


def make_frontier(max_depth: int = 3, max_pages: int = 100, **kwargs) -> Frontier:
    return Frontier(URLNormalizer("https://example.com", **kwargs), max_depth=max_depth, max_pages=max_pages)


class TestFrontier:
    """Test suite for Frontier class"""

    def test_add_normalizes_and_schedules(self):
        """Test a new URL is normalized and scheduled once"""
        frontier = make_frontier()

        assert frontier.add("/about/#team", DiscoveryMethod.SITEMAP) is True
        assert "https://example.com/about/" in frontier
        assert len(frontier) == 1

    def test_duplicates_are_rejected(self):
        """Test at-most-once scheduling per normalized URL"""
        frontier = make_frontier()

        assert frontier.add("/about/", DiscoveryMethod.SITEMAP) is True
        assert frontier.add("https://example.com/about/?ref=nav", DiscoveryMethod.CRAWL) is False
        assert frontier.add("/about/#top", DiscoveryMethod.ROBOTS) is False

        assert len(frontier) == 1
        assert frontier.duplicate_count == 2

    def test_dot_segment_variants_scheduled_once(self):
        """Test ./ and ../ spellings of one path share a single slot"""
        frontier = make_frontier()

        assert frontier.add("https://example.com/a/b/", DiscoveryMethod.CRAWL) is True
        assert frontier.add("https://example.com/a/./b/", DiscoveryMethod.CRAWL) is False
        assert frontier.add("https://example.com/a/x/../b/", DiscoveryMethod.CRAWL) is False

        assert len(frontier) == 1
        assert frontier.pop().depth == 2

    def test_first_discovery_method_wins(self):
        """Test the provenance of the first registration is kept"""
        frontier = make_frontier()
        frontier.add("/about/", DiscoveryMethod.SITEMAP)
        frontier.add("/about/", DiscoveryMethod.CRAWL)

        discovered = frontier.pop()

        assert discovered.method == DiscoveryMethod.SITEMAP
        assert discovered.depth == 1

    def test_depth_limit_drops_deep_urls(self):
        """Test URLs deeper than max_depth are dropped silently"""
        frontier = make_frontier(max_depth=1)

        assert frontier.add("/a/", DiscoveryMethod.CRAWL) is True
        assert frontier.add("/a/b/", DiscoveryMethod.CRAWL) is False
        assert frontier.dropped_depth == 1

    def test_unusable_hrefs_are_ignored(self):
        """Test hrefs the normalizer rejects never enter the queue"""
        frontier = make_frontier()

        assert frontier.add("mailto:x@example.com", DiscoveryMethod.CRAWL) is False
        assert frontier.add("https://other.org/", DiscoveryMethod.CRAWL) is False
        assert len(frontier) == 0

    def test_pop_order_is_depth_then_lexicographic(self):
        """Test shallower URLs come first, ties broken by URL"""
        frontier = make_frontier()
        for href in ["/b/c/", "/z/", "/", "/a/", "/a/b/"]:
            frontier.add(href, DiscoveryMethod.CRAWL)

        order = [d.url for d in frontier.pop_batch(10)]

        assert order == [
            "https://example.com/",
            "https://example.com/a/",
            "https://example.com/z/",
            "https://example.com/a/b/",
            "https://example.com/b/c/",
        ]

    def test_urls_added_while_draining_are_served(self):
        """Test URLs added after a pop are still handed out"""
        frontier = make_frontier()
        frontier.add("/", DiscoveryMethod.CRAWL)

        first = frontier.pop()
        frontier.add("/found-later/", DiscoveryMethod.CRAWL)
        second = frontier.pop()

        assert first.url == "https://example.com/"
        assert second.url == "https://example.com/found-later/"

    def test_page_budget_is_never_exceeded(self):
        """Test reserved pages never exceed max_pages"""
        frontier = make_frontier(max_pages=3)
        for i in range(10):
            frontier.add(f"/page-{i}/", DiscoveryMethod.CRAWL)

        batch = frontier.pop_batch(10)

        # /page-0/ and /page-1/ plus the root they hang under
        assert [d.url for d in batch] == ["https://example.com/page-0/", "https://example.com/page-1/"]
        assert len(frontier.reserved) == 3
        assert frontier.budget_left == 0
        assert frontier.pop_batch(10) == []
        assert frontier.pop() is None

    def test_pop_batch_marks_urls_visited(self):
        """Test taken URLs count against the budget immediately"""
        frontier = make_frontier(max_pages=5)
        frontier.add("/a/", DiscoveryMethod.CRAWL)
        frontier.add("/b/", DiscoveryMethod.CRAWL)

        frontier.pop_batch(1)

        assert frontier.visited == {"https://example.com/a/"}
        assert frontier.reserved == {"https://example.com/a/", "https://example.com/"}
        assert frontier.budget_left == 3
        assert len(frontier) == 1

    def test_missing_ancestors_are_reserved(self):
        """Test a deep URL reserves room for the directories above it"""
        frontier = make_frontier(max_pages=2)
        frontier.add("/", DiscoveryMethod.SITEMAP)
        frontier.add("/a/b/", DiscoveryMethod.SITEMAP)

        batch = frontier.pop_batch(10)

        assert [d.url for d in batch] == ["https://example.com/"]
        assert frontier.dropped_budget == 1
        assert len(frontier) == 0

    def test_chain_that_fits_is_taken_whole(self):
        """Test ancestors already reserved are not counted twice"""
        frontier = make_frontier(max_pages=4)
        frontier.add("/a/b/", DiscoveryMethod.SITEMAP)
        frontier.add("/a/c/", DiscoveryMethod.SITEMAP)

        batch = frontier.pop_batch(10)

        assert [d.url for d in batch] == ["https://example.com/a/b/", "https://example.com/a/c/"]
        assert frontier.reserved == {
            "https://example.com/",
            "https://example.com/a/",
            "https://example.com/a/b/",
            "https://example.com/a/c/",
        }
        assert frontier.visited == {"https://example.com/a/b/", "https://example.com/a/c/"}

    def test_skipped_urls_do_not_consume_budget(self):
        """Test URLs whose chain does not fit leave the budget untouched"""
        frontier = Frontier(URLNormalizer("https://example.com/docs/guide/"), max_depth=3, max_pages=2)
        frontier.add("https://example.com/docs/guide/", DiscoveryMethod.CRAWL)
        frontier.add("https://example.com/x/y/z/", DiscoveryMethod.CRAWL)

        assert frontier.pop_batch(10) == []
        assert frontier.dropped_budget == 2

        frontier.add("/", DiscoveryMethod.CRAWL)
        frontier.add("/faq/", DiscoveryMethod.CRAWL)

        assert [d.url for d in frontier.pop_batch(10)] == ["https://example.com/", "https://example.com/faq/"]

    def test_last_modified_hint_is_carried(self):
        """Test last-modified hints travel with the discovered URL"""
        frontier = make_frontier()
        frontier.add("/news/", DiscoveryMethod.SITEMAP, last_modified="2024-01-15")

        assert frontier.pop().last_modified == "2024-01-15"

    def test_get_statistics(self):
        """Test statistics report counts by method"""
        frontier = make_frontier()
        frontier.add("/a/", DiscoveryMethod.SITEMAP)
        frontier.add("/b/", DiscoveryMethod.ROBOTS)
        frontier.add("/a/", DiscoveryMethod.CRAWL)
        frontier.pop()

        stats = frontier.get_statistics()

        assert stats["scheduled"] == 2
        assert stats["visited"] == 1
        assert stats["pending"] == 1
        assert stats["duplicates"] == 1
        assert stats["by_method"] == {"sitemap": 1, "robots": 1}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
