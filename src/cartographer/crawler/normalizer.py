"""
URL Normalizer - Canonical form and classification of discovered URLs.

One policy is applied everywhere: scheme and host are lowercased, default
ports dropped, an empty path becomes "/", and both fragment and query string
are removed so that a URL identifies a structural location in the site.
"""

from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

import structlog


IGNORED_SCHEMES = ("javascript:", "mailto:", "tel:", "data:")
DEFAULT_PORTS = {"http": 80, "https": 443}


def coerce_target(target: str) -> str:
    """Prepend https:// to a bare host such as "example.com" """
    target = target.strip()
    if not target.startswith(("http://", "https://")):
        target = "https://" + target
    return target


def remove_dot_segments(path: str) -> str:
    """
    Resolve "." and ".." segments of an absolute path (RFC 3986, 5.2.4).

    urljoin only does this for relative references, so absolute hrefs such as
    "https://example.com/a/./b/" would otherwise keep them. ".." never climbs
    above the root.
    """
    segments = path.split("/")
    if "." not in segments and ".." not in segments:
        return path or "/"

    resolved = []
    for segment in segments:
        if segment == ".":
            continue
        if segment == "..":
            if len(resolved) > 1:
                resolved.pop()
            continue
        resolved.append(segment)

    result = "/".join(resolved)
    if segments[-1] in (".", ".."):
        result += "/"
    if not result.startswith("/"):
        result = "/" + result
    return result


def path_segments(url: str):
    return [segment for segment in urlsplit(url).path.split("/") if segment]


def url_depth(url: str) -> int:
    """Number of non-empty path segments"""
    return len(path_segments(url))


def get_extension(url: str) -> Optional[str]:
    """Lowercased file extension of the last path segment, if any"""
    path = urlsplit(url).path
    last_dot = path.rfind(".")
    last_slash = path.rfind("/")
    if last_dot > last_slash and last_dot != len(path) - 1:
        return path[last_dot + 1:].lower()
    return None


def is_directory_url(url: str) -> bool:
    """A URL is a directory if its path ends in "/" or has no extension"""
    return urlsplit(url).path.endswith("/") or get_extension(url) is None


def directory_path(url: str) -> str:
    """Directory portion of the path, always ending in "/" """
    path = urlsplit(url).path or "/"
    if path.endswith("/"):
        return path
    if is_directory_url(url):
        return path + "/"
    return path[: path.rfind("/") + 1]


def origin_of(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def logical_parent(url: str) -> Optional[str]:
    """
    URL obtained by removing the last non-empty path segment.

    Parents always end in "/". The origin root has no parent.
    """
    segments = path_segments(url)
    if not segments:
        return None

    segments.pop()
    parent_path = "/" + "/".join(segments) + "/" if segments else "/"
    return origin_of(url) + parent_path


class URLNormalizer:
    """
    Canonicalizes hrefs relative to a crawl target.

    Example:
        >>> normalizer = URLNormalizer("https://example.com")
        >>> normalizer.normalize("/about/#team")
        'https://example.com/about/'
        >>> normalizer.normalize("mailto:me@example.com") is None
        True
    """

    def __init__(self, target: str, include_external: bool = False):
        """
        Initialize the normalizer.

        Args:
            target: Crawl target URL (scheme is added if missing)
            include_external: Keep URLs on other hosts instead of dropping them
        """
        self.target = coerce_target(target)
        self.include_external = include_external

        parsed = urlsplit(self.target)
        self.scheme = parsed.scheme.lower()
        self.hostname = (parsed.hostname or "").lower()
        self.origin = f"{self.scheme}://{self._netloc(parsed)}"
        self.root_url = self.origin + "/"

        self.logger = structlog.get_logger(__name__)

    @staticmethod
    def _netloc(parsed) -> str:
        host = (parsed.hostname or "").lower()
        if ":" in host:
            host = f"[{host}]"
        port = parsed.port
        scheme = parsed.scheme.lower()
        if port is not None and DEFAULT_PORTS.get(scheme) != port:
            host = f"{host}:{port}"
        return host

    def normalize(self, href: Optional[str], base: Optional[str] = None) -> Optional[str]:
        """
        Resolve and canonicalize an href.

        Args:
            href: Raw href, absolute or relative
            base: URL the href was found on (defaults to the origin)

        Returns:
            Normalized absolute URL, or None when the href is unusable,
            unparseable or out of scope
        """
        if not href:
            return None

        href = href.strip()
        if not href or href.lower().startswith(IGNORED_SCHEMES):
            return None

        try:
            absolute = urljoin(base or self.root_url, href)
            parsed = urlsplit(absolute)
            netloc = self._netloc(parsed)  # .port raises on malformed ports
        except ValueError:
            self.logger.debug("url_unparseable", href=href)
            return None

        scheme = parsed.scheme.lower()
        if scheme not in DEFAULT_PORTS or not parsed.hostname:
            return None

        if not self.include_external and parsed.hostname.lower() != self.hostname:
            return None

        return urlunsplit((scheme, netloc, remove_dot_segments(parsed.path), "", ""))

    def is_external(self, url: str) -> bool:
        return (urlsplit(url).hostname or "").lower() != self.hostname

    def parent_of(self, url: str) -> Optional[str]:
        """
        Logical parent inside the crawl tree.

        The root of an external origin hangs below the target root so that the
        result stays a single tree.
        """
        parent = logical_parent(url)
        if parent is None and url != self.root_url:
            return self.root_url
        return parent

    def __repr__(self) -> str:
        return f"URLNormalizer(origin={self.origin}, include_external={self.include_external})"
