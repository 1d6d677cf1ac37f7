"""
Security Classifier - Heuristic flagging of discovered paths.

Two passes:
1. Passive: every fetched URL path is matched by substring against lists of
   well-known sensitive files, admin panel names and configuration markers.
2. Active: a fixed list of conventional directories is probed once per crawl;
   a 200 response whose body carries server listing markers is reported as an
   exposed directory.

This is an approximation, not a finding of fact. Substring matching flags a
blog post named "admin-tips" and misses a renamed backup; nothing here is
verified or exploited.
"""

from typing import List
from urllib.parse import urlsplit

import structlog

from ..core.exceptions import NetworkError
from ..crawler.fetcher import BaseFetcher
from ..models import SecurityFindings


SENSITIVE_FILES = [
    "robots.txt",
    "sitemap.xml",
    ".htaccess",
    "web.config",
    "wp-config.php",
    "config.php",
    "database.php",
    "settings.php",
    ".env",
    ".git",
    "admin.php",
    "login.php",
    "phpmyadmin",
    "wp-admin",
    "backup.sql",
    "dump.sql",
    "config.json",
    "package.json",
    "composer.json",
    ".ds_store",
    "thumbs.db",
    "error_log",
]

ADMIN_PATHS = [
    "admin",
    "administrator",
    "wp-admin",
    "phpmyadmin",
    "cpanel",
    "webmail",
    "panel",
    "dashboard",
    "backend",
    "console",
    "manage",
    "control",
]

CONFIG_MARKERS = ["config", "settings", ".env"]

# Probed once per crawl, relative to the origin
PROBE_DIRECTORIES = [
    "admin",
    "wp-admin",
    "backup",
    "backups",
    "assets",
    "css",
    "js",
    "images",
    "img",
    "uploads",
    "files",
    "documents",
    "downloads",
    "media",
    "static",
    "public",
    "resources",
    "lib",
    "vendor",
    "node_modules",
    "bower_components",
    "wp-content",
    "wp-includes",
    "themes",
    "plugins",
    "modules",
    "includes",
    "templates",
]

DIRECTORY_LISTING_MARKERS = [
    "Index of",
    "Directory listing",
    "Parent Directory",
    "[To Parent Directory]",
]


class SecurityClassifier:
    """
    Flags sensitive, admin and config paths, and probes for directory listings.

    Example:
        >>> classifier = SecurityClassifier()
        >>> findings = SecurityFindings()
        >>> classifier.classify("https://example.com/wp-admin/", findings)
        ['sensitive_files', 'admin_panels']
    """

    def __init__(self, probe_directories: List[str] = None):
        self.probe_paths = list(probe_directories or PROBE_DIRECTORIES)
        self.logger = structlog.get_logger(__name__)

    def classify(self, url: str, findings: SecurityFindings) -> List[str]:
        """
        Match one fetched URL against the passive lists.

        Only the path is inspected, so a host such as ``admin.example.com`` does
        not flag every page of the site.

        Returns:
            Names of the finding lists the URL was added to
        """
        path = urlsplit(url).path.lower()
        matched: List[str] = []

        if any(name in path for name in SENSITIVE_FILES):
            if findings.add("sensitive_files", url):
                matched.append("sensitive_files")

        if any(name in path for name in ADMIN_PATHS):
            if findings.add("admin_panels", url):
                matched.append("admin_panels")

        if any(marker in path for marker in CONFIG_MARKERS):
            if findings.add("config_files", url):
                matched.append("config_files")

        if matched:
            self.logger.info("security_path_flagged", url=url, lists=matched)
        return matched

    @staticmethod
    def is_directory_listing(body: str) -> bool:
        if not body:
            return False
        return any(marker in body for marker in DIRECTORY_LISTING_MARKERS)

    async def probe_directories(self, fetcher: BaseFetcher, session) -> List[str]:
        """
        Request every probe directory once and collect exposed listings.

        Hits are appended to ``session.exposed_directories`` and to the
        session's security findings. Network failures are recorded on the
        session; non-200 responses are expected and ignored.

        Returns:
            URLs of the exposed directories found by this pass
        """
        origin = session.normalizer.origin
        exposed: List[str] = []

        self.logger.info("directory_probe_started", origin=origin, paths=len(self.probe_paths))

        for name in self.probe_paths:
            if session.cancelled:
                self.logger.info("directory_probe_cancelled", probed=len(exposed))
                break

            url = f"{origin}/{name.strip('/')}/"
            try:
                result = await fetcher.fetch_raw(url)
            except NetworkError as e:
                session.record_error(e)
                continue

            if result.status != 200 or not self.is_directory_listing(result.text):
                continue

            if url not in session.exposed_directories:
                session.exposed_directories.append(url)
                exposed.append(url)
            session.security.add("exposed_directories", url)

            self.logger.warning("exposed_directory_found", url=url)

        self.logger.info("directory_probe_complete", exposed=len(exposed))
        return exposed
