"""
Frontier - Deduplicated, budget-aware work queue of URLs to fetch.

Pending URLs are kept in a heap ordered by (depth, url), so shallower and more
structural pages tend to be fetched first. This raises the odds that a parent
is already known when the tree is reconciled but does not guarantee it.
"""

import heapq
from collections import Counter
from typing import Dict, List, Optional, Set, Tuple

import structlog

from ..models import DiscoveredURL, DiscoveryMethod
from .normalizer import URLNormalizer, url_depth


class Frontier:
    """
    Work queue guaranteeing at-most-once scheduling per normalized URL.

    Two hard stops are enforced:
    1. ``depth <= max_depth`` when a URL is added
    2. ``len(reserved) <= max_pages`` when URLs are taken for fetching

    ``reserved`` holds every URL handed out plus its logical ancestors, i.e.
    every page the reconciled tree can contain. A URL whose missing ancestor
    chain does not fit in the remaining budget is skipped. URLs violating
    either stop are dropped silently.

    Example:
        >>> frontier = Frontier(URLNormalizer("https://example.com"), 3, 100)
        >>> frontier.add("/about/", DiscoveryMethod.SITEMAP)
        True
        >>> frontier.pop_batch(10)
        [DiscoveredURL(url='https://example.com/about/', depth=1, ...)]
    """

    def __init__(self, normalizer: URLNormalizer, max_depth: int, max_pages: int):
        """
        Initialize the frontier.

        Args:
            normalizer: Normalizer bound to the crawl target
            max_depth: Deepest path depth allowed for scheduling
            max_pages: Maximum number of pages, ancestors included
        """
        self.normalizer = normalizer
        self.max_depth = max_depth
        self.max_pages = max_pages

        self._heap: List[Tuple[int, str]] = []
        self._pending: Dict[str, DiscoveredURL] = {}
        self.scheduled: Set[str] = set()
        self.visited: Set[str] = set()
        self.reserved: Set[str] = set()

        # Statistics
        self.added_by_method: Counter = Counter()
        self.duplicate_count = 0
        self.dropped_depth = 0
        self.dropped_budget = 0

        self.logger = structlog.get_logger(__name__)

    def add(
        self,
        href: str,
        method: DiscoveryMethod,
        base: Optional[str] = None,
        last_modified: Optional[str] = None,
    ) -> bool:
        """
        Normalize and schedule a URL.

        Args:
            href: Raw href or absolute URL
            method: Discovery provenance
            base: Page the href was found on
            last_modified: Last-modified hint (e.g. a sitemap <lastmod>)

        Returns:
            True if the URL was newly scheduled
        """
        url = self.normalizer.normalize(href, base=base)
        if url is None:
            return False

        if url in self.scheduled:
            self.duplicate_count += 1
            return False

        depth = url_depth(url)
        if depth > self.max_depth:
            self.dropped_depth += 1
            self.logger.debug("frontier_depth_exceeded", url=url, depth=depth)
            return False

        self.scheduled.add(url)
        self._pending[url] = DiscoveredURL(
            url=url, depth=depth, method=method, last_modified=last_modified
        )
        heapq.heappush(self._heap, (depth, url))
        self.added_by_method[method.value] += 1

        self.logger.debug("frontier_added", url=url, depth=depth, method=method.value)
        return True

    @property
    def budget_left(self) -> int:
        return max(0, self.max_pages - len(self.reserved))

    def missing_chain(self, url: str) -> List[str]:
        """``url`` and its logical ancestors that are not reserved yet"""
        chain: List[str] = []
        current: Optional[str] = url
        while current is not None and current not in self.reserved:
            chain.append(current)
            current = self.normalizer.parent_of(current)
        return chain

    def pop(self) -> Optional[DiscoveredURL]:
        """Take the shallowest pending URL, or None if empty or out of budget"""
        batch = self.pop_batch(1)
        return batch[0] if batch else None

    def pop_batch(self, size: int) -> List[DiscoveredURL]:
        """
        Take up to ``size`` URLs, never exceeding the page budget.

        Taken URLs are marked visited and their ancestor chains reserved
        immediately, so the budget holds even while fetches are in flight.
        URLs whose chain no longer fits are discarded; the reserved set only
        grows, so they could never fit later either.
        """
        batch: List[DiscoveredURL] = []

        while self._heap and len(batch) < size and self.budget_left:
            _, url = heapq.heappop(self._heap)
            discovered = self._pending.pop(url)

            chain = self.missing_chain(url)
            if len(chain) > self.budget_left:
                self.dropped_budget += 1
                self.logger.debug("frontier_budget_exceeded", url=url, chain=len(chain))
                continue

            self.reserved.update(chain)
            self.visited.add(url)
            batch.append(discovered)

        return batch

    def __len__(self) -> int:
        """Number of URLs still pending"""
        return len(self._heap)

    def __contains__(self, url: str) -> bool:
        return url in self.scheduled

    def get_statistics(self) -> Dict[str, object]:
        return {
            "scheduled": len(self.scheduled),
            "visited": len(self.visited),
            "reserved": len(self.reserved),
            "pending": len(self._heap),
            "duplicates": self.duplicate_count,
            "dropped_depth": self.dropped_depth,
            "dropped_budget": self.dropped_budget,
            "by_method": dict(self.added_by_method),
        }

    def __repr__(self) -> str:
        return (
            f"Frontier("
            f"pending={len(self._heap)}, "
            f"visited={len(self.visited)}, "
            f"max_pages={self.max_pages})"
        )
