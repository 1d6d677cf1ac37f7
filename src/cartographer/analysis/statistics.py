"""
Statistics Aggregator - Pure fold over the reconciled page set.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from ..models import CrawlStatistics, DiscoveryMethod, FormInfo, Page


@dataclass
class Aggregate:
    """Everything the result needs that is derived from pages"""
    statistics: CrawlStatistics
    discovery_methods: Dict[str, int]
    files: Dict[str, List[str]] = field(default_factory=dict)
    directories: List[str] = field(default_factory=list)
    forms: List[FormInfo] = field(default_factory=list)


class StatisticsAggregator:
    """
    Builds histograms, discovery counts and the file/directory indexes.

    Synthesized pages are structure, not responses: they appear in
    ``directories`` but are not counted in any histogram or discovery count.

    Example:
        >>> aggregate = StatisticsAggregator().aggregate(pages)
        >>> aggregate.discovery_methods
        {'sitemap': 3, 'robots': 0, 'crawl': 1, 'directory': 0}
    """

    def aggregate(
        self,
        pages: Iterable[Page],
        extra_status_codes: Optional[Mapping[int, int]] = None,
        extra_content_types: Optional[Mapping[str, int]] = None,
        exposed_directories: Iterable[str] = (),
    ) -> Aggregate:
        """
        Fold pages into statistics.

        Args:
            pages: Reconciled pages
            extra_status_codes: Tallies of responses that did not become pages
            extra_content_types: Content types of those responses
            exposed_directories: Directory probe hits, each counted as one
                ``directory`` discovery

        Returns:
            Aggregate for the crawl result
        """
        status_codes: Counter = Counter(extra_status_codes or {})
        content_types: Counter = Counter(extra_content_types or {})
        extensions: Counter = Counter()
        methods: Counter = Counter({method.value: 0 for method in DiscoveryMethod})

        files: Dict[str, List[str]] = {}
        directories: List[str] = []
        forms: List[FormInfo] = []

        for page in pages:
            if page.is_directory and page.url not in directories:
                directories.append(page.url)

            if page.synthesized:
                continue

            status_codes[page.status_code] += 1
            content_types[page.content_type] += 1
            methods[page.discovery_method.value] += 1
            forms.extend(page.forms)

            if page.extension:
                extensions[page.extension] += 1
                files.setdefault(page.extension, []).append(page.url)

        for url in exposed_directories:
            methods[DiscoveryMethod.DIRECTORY.value] += 1
            if url not in directories:
                directories.append(url)

        return Aggregate(
            statistics=CrawlStatistics(
                status_codes=dict(status_codes),
                content_types=dict(content_types),
                extensions=dict(extensions),
            ),
            discovery_methods=dict(methods),
            files=files,
            directories=directories,
            forms=forms,
        )
