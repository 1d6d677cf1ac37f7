"""
Tree Reconciler - Turns the flat page set into one connected tree.

Fetch order is not parent-before-child, so hierarchy is rebuilt after the
frontier drains, from URLs alone:

1. Gap filling: every missing logical ancestor is synthesized as a zero-size
   directory page, recursively up to the root.
2. Linking: every page is registered once in its parent's children.
3. Ordering: children are sorted directories first, then by URL.
"""

from typing import Dict, List, Optional

import structlog

from ..crawler.normalizer import URLNormalizer, path_segments, url_depth
from ..models import DiscoveryMethod, Page


class TreeReconciler:
    """
    Reconciles parent/child links across all pages of a crawl.

    Example:
        >>> reconciler = TreeReconciler(URLNormalizer("https://example.com"))
        >>> pages = reconciler.reconcile([Page(url="https://example.com/a/b/")])
        >>> [p.url for p in pages]
        ['https://example.com/a/b/', 'https://example.com/a/', 'https://example.com/']
    """

    def __init__(self, normalizer: URLNormalizer):
        self.normalizer = normalizer
        self.synthesized_count = 0
        self.logger = structlog.get_logger(__name__)

    @staticmethod
    def directory_title(url: str) -> str:
        segments = path_segments(url)
        return f"Directory: {segments[-1]}" if segments else "Directory: root"

    def synthesize(self, url: str) -> Page:
        """Placeholder page for a directory that was never fetched"""
        return Page(
            url=url,
            title=self.directory_title(url),
            status_code=200,
            size=0,
            content_type="directory",
            depth=url_depth(url),
            parent=self.normalizer.parent_of(url),
            is_directory=True,
            extension=None,
            discovery_method=DiscoveryMethod.DIRECTORY,
            synthesized=True,
        )

    def reconcile(self, pages: List[Page]) -> List[Page]:
        """
        Fill gaps, link and order.

        Args:
            pages: Fetched pages in crawl order (URLs are unique)

        Returns:
            The input pages followed by the synthesized ancestors, with every
            non-root page listed in its parent's children exactly once
        """
        index: Dict[str, Page] = {}
        ordered: List[Page] = []
        for page in pages:
            if page.url not in index:
                index[page.url] = page
                ordered.append(page)

        self._fill_gaps(index, ordered)
        self._link(index, ordered)
        self._order(ordered)

        self.logger.info(
            "tree_reconciled",
            pages=len(ordered),
            synthesized=self.synthesized_count,
        )
        return ordered

    def _fill_gaps(self, index: Dict[str, Page], ordered: List[Page]):
        # Iterating over a growing list also visits synthesized pages, which
        # walks each missing chain up to the root.
        position = 0
        while position < len(ordered):
            page = ordered[position]
            position += 1

            parent_url = page.parent
            if parent_url is None and page.url != self.normalizer.root_url:
                parent_url = self.normalizer.parent_of(page.url)
                page.parent = parent_url

            if parent_url is None or parent_url in index:
                continue

            # "/about" fetched without its trailing slash stands in for "/about/"
            alias = parent_url.rstrip("/")
            if parent_url != self.normalizer.root_url and alias in index:
                page.parent = alias
                continue

            placeholder = self.synthesize(parent_url)
            index[parent_url] = placeholder
            ordered.append(placeholder)
            self.synthesized_count += 1

            self.logger.debug("directory_synthesized", url=parent_url, child=page.url)

    @staticmethod
    def _link(index: Dict[str, Page], ordered: List[Page]):
        for page in ordered:
            if page.parent is None:
                continue
            parent: Optional[Page] = index.get(page.parent)
            if parent is not None and page.url not in parent.children:
                parent.children.append(page.url)

    @staticmethod
    def _order(ordered: List[Page]):
        directories = {page.url for page in ordered if page.is_directory}
        for page in ordered:
            page.children.sort(key=lambda url: (url not in directories, url))
