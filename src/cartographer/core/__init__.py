"""
Core module - Crawl orchestration and shared infrastructure.

This package contains the configuration, error taxonomy, politeness pacing,
per-crawl session state and the pipeline that ties the components together.
"""

from .exceptions import (
    CrawlError,
    NetworkError,
    HTTPError,
    ParseError,
    FatalError,
    EngineBootstrapError,
)
from .config import CrawlConfig, FetchMode, load_config
from .rate_limiter import PolitenessLimiter, PolitenessConfig
from .session import CrawlSession
from .site_crawler import SiteCrawler, crawl
from .orchestrator import Orchestrator, CrawlTask, TaskStatus


__all__ = [
    # Errors
    "CrawlError",
    "NetworkError",
    "HTTPError",
    "ParseError",
    "FatalError",
    "EngineBootstrapError",
    # Configuration
    "CrawlConfig",
    "FetchMode",
    "load_config",
    # Politeness
    "PolitenessLimiter",
    "PolitenessConfig",
    # Pipeline
    "CrawlSession",
    "SiteCrawler",
    "crawl",
    # Jobs
    "Orchestrator",
    "CrawlTask",
    "TaskStatus",
]
