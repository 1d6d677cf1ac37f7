"""
Data model - Records produced and consumed by the discovery pipeline.

DiscoveredURL only lives inside the frontier. Page is the durable record of a
fetched (or synthesized) resource, and CrawlResult is the read-only aggregate
returned by a crawl.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple


class DiscoveryMethod(str, Enum):
    """Provenance tag recorded on every discovered URL and page"""
    SITEMAP = "sitemap"
    ROBOTS = "robots"
    CRAWL = "crawl"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class DiscoveredURL:
    """A normalized URL waiting in the frontier"""
    url: str
    depth: int
    method: DiscoveryMethod = DiscoveryMethod.CRAWL
    last_modified: Optional[str] = None


@dataclass
class FormInput:
    """Single input descriptor of an HTML form"""
    name: str = ""
    type: str = "text"
    required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type, "required": self.required}


@dataclass
class FormInfo:
    """Form found on a page"""
    action: str
    method: str = "GET"
    inputs: List[FormInput] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "method": self.method,
            "inputs": [i.to_dict() for i in self.inputs],
        }


@dataclass
class Page:
    """
    Durable record of one resource in the site map.

    Pages are created when a fetch completes with a 2xx status, or synthesized
    as zero-size directory placeholders by the tree reconciler. The only
    mutation after creation is appending to ``children`` during
    reconciliation.
    """
    url: str
    title: str = ""
    status_code: int = 200
    size: int = 0
    content_type: str = "unknown"
    depth: int = 0
    parent: Optional[str] = None
    children: List[str] = field(default_factory=list)
    links: List[str] = field(default_factory=list)
    forms: List[FormInfo] = field(default_factory=list)
    headers: Dict[str, str] = field(default_factory=dict)
    metadata: Dict[str, str] = field(default_factory=dict)
    last_modified: Optional[str] = None
    is_directory: bool = False
    extension: Optional[str] = None
    discovery_method: DiscoveryMethod = DiscoveryMethod.CRAWL
    synthesized: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "url": self.url,
            "title": self.title,
            "status_code": self.status_code,
            "size": self.size,
            "content_type": self.content_type,
            "depth": self.depth,
            "parent": self.parent,
            "children": list(self.children),
            "links": list(self.links),
            "forms": [f.to_dict() for f in self.forms],
            "headers": dict(self.headers),
            "metadata": dict(self.metadata),
            "last_modified": self.last_modified,
            "is_directory": self.is_directory,
            "extension": self.extension,
            "discovery_method": self.discovery_method.value,
            "synthesized": self.synthesized,
        }


@dataclass
class SecurityFindings:
    """
    Heuristic security observations.

    Matches are substring based and unverified: expect false positives (a blog
    post named "admin-tips") and false negatives (renamed files).
    """
    sensitive_files: List[str] = field(default_factory=list)
    exposed_directories: List[str] = field(default_factory=list)
    admin_panels: List[str] = field(default_factory=list)
    config_files: List[str] = field(default_factory=list)

    def add(self, bucket: str, url: str) -> bool:
        """Append url to the named list unless already present"""
        entries: List[str] = getattr(self, bucket)
        if url in entries:
            return False
        entries.append(url)
        return True

    def total(self) -> int:
        return (
            len(self.sensitive_files)
            + len(self.exposed_directories)
            + len(self.admin_panels)
            + len(self.config_files)
        )

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "sensitive_files": list(self.sensitive_files),
            "exposed_directories": list(self.exposed_directories),
            "admin_panels": list(self.admin_panels),
            "config_files": list(self.config_files),
        }


@dataclass
class CrawlStatistics:
    """Histograms over the crawl"""
    status_codes: Dict[int, int] = field(default_factory=dict)
    content_types: Dict[str, int] = field(default_factory=dict)
    extensions: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status_codes": {str(k): v for k, v in self.status_codes.items()},
            "content_types": dict(self.content_types),
            "extensions": dict(self.extensions),
        }


@dataclass(frozen=True)
class ErrorRecord:
    """Entry of the crawl error log"""
    kind: str
    url: str
    message: str

    def __str__(self) -> str:
        return f"[{self.kind}] {self.url}: {self.message}"

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "url": self.url, "message": self.message}


@dataclass(frozen=True)
class CrawlResult:
    """
    Root aggregate of a crawl. Built once and returned once.

    ``sitemap`` holds every page, fetched ones in crawl order followed by the
    directories synthesized during reconciliation.

    ``directories`` holds absolute URLs, not bare paths: every directory page
    (trailing "/" or extensionless) plus exposed directory hits. Paths alone
    would collide across origins when external hosts are included; use
    ``urlsplit(url).path`` for the path.
    """
    target_url: str
    root_url: str
    sitemap: Tuple[Page, ...]
    directories: Tuple[str, ...]
    files: Dict[str, List[str]]
    forms: Tuple[FormInfo, ...]
    errors: Tuple[ErrorRecord, ...]
    statistics: CrawlStatistics
    discovery_methods: Dict[str, int]
    security: SecurityFindings
    sitemaps: Tuple[str, ...] = ()
    cancelled: bool = False
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        object.__setattr__(self, "_index", {page.url: page for page in self.sitemap})

    @property
    def total_pages(self) -> int:
        return len(self.sitemap)

    @property
    def total_directories(self) -> int:
        return len(self.directories)

    @property
    def max_depth(self) -> int:
        return max((page.depth for page in self.sitemap), default=0)

    @property
    def duration(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def root(self) -> Optional[Page]:
        return self._index.get(self.root_url)

    def get_page(self, url: str) -> Optional[Page]:
        return self._index.get(url)

    def walk(self) -> Iterator[Page]:
        """Pre-order traversal of the reconciled tree, starting at the root"""
        root = self.root
        if root is None:
            return
        stack = [root]
        while stack:
            page = stack.pop()
            yield page
            for child_url in reversed(page.children):
                child = self._index.get(child_url)
                if child is not None:
                    stack.append(child)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "target_url": self.target_url,
            "root_url": self.root_url,
            "total_pages": self.total_pages,
            "total_directories": self.total_directories,
            "max_depth": self.max_depth,
            "sitemap": [page.to_dict() for page in self.sitemap],
            "directories": list(self.directories),
            "files": {ext: list(urls) for ext, urls in self.files.items()},
            "forms": [form.to_dict() for form in self.forms],
            "errors": [error.to_dict() for error in self.errors],
            "statistics": self.statistics.to_dict(),
            "discovery_methods": dict(self.discovery_methods),
            "security": self.security.to_dict(),
            "sitemaps": list(self.sitemaps),
            "cancelled": self.cancelled,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "duration": self.duration,
        }
