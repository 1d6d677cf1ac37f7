"""
Crawler module - URL handling, seeding, fetching and extraction.

This package contains the discovery front half of the pipeline:
- URLNormalizer: Canonical URLs and path helpers
- Frontier: Deduplicated, budget-aware work queue
- SeedDiscovery: robots.txt and sitemap analysis
- PlaywrightFetcher / HttpFetcher: Paced fetches with rotating identities
- ContentExtractor: Titles, links, forms and metadata
"""

from .normalizer import URLNormalizer
from .frontier import Frontier
from .identity import IdentityPool, FetchIdentity
from .fetcher import BaseFetcher, FetchResult, PlaywrightFetcher, HttpFetcher, build_fetcher
from .extractor import ContentExtractor, Extraction
from .seeds import SeedDiscovery, SeedReport


__all__ = [
    # URLs
    "URLNormalizer",
    "Frontier",
    # Seeds
    "SeedDiscovery",
    "SeedReport",
    # Fetching
    "IdentityPool",
    "FetchIdentity",
    "BaseFetcher",
    "FetchResult",
    "PlaywrightFetcher",
    "HttpFetcher",
    "build_fetcher",
    # Extraction
    "ContentExtractor",
    "Extraction",
]
