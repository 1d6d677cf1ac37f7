"""
Fetch identity pool - Rotating user agents, header sets and viewports.

The pool is configuration data, not a contract: detection techniques drift,
so deployments can replace it with a YAML file of the form::

    user_agents:
      - "Mozilla/5.0 ..."
    header_sets:
      - Accept: "text/html,..."
        Accept-Language: "en-US,en;q=0.5"
    viewport: {width: 1920, height: 1080, jitter: 100}
"""

import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml


DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0",
]

DEFAULT_HEADER_SETS = [
    {
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
        "Accept-Language": "fr-FR,fr;q=0.9,en;q=0.8",
        "DNT": "1",
        "Upgrade-Insecure-Requests": "1",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "none",
        "Sec-Fetch-User": "?1",
        "Cache-Control": "max-age=0",
    },
    {
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
        "DNT": "1",
        "Upgrade-Insecure-Requests": "1",
    },
    {
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": "de-DE,de;q=0.9,en;q=0.8",
        "Upgrade-Insecure-Requests": "1",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "cross-site",
    },
]


@dataclass(frozen=True)
class FetchIdentity:
    """Identity presented for one request"""
    user_agent: str
    headers: Dict[str, str]
    viewport: Dict[str, int]

    @property
    def languages(self) -> List[str]:
        """Navigator languages matching the Accept-Language header"""
        accept = self.headers.get("Accept-Language", "en-US,en")
        return [part.split(";")[0].strip() for part in accept.split(",") if part.strip()]


@dataclass
class IdentityPool:
    """
    Curated pool the fetchers draw a random identity from per request.

    Example:
        >>> pool = IdentityPool()
        >>> identity = pool.choose()
        >>> identity.viewport["width"] >= 1920
        True
    """
    user_agents: List[str] = field(default_factory=lambda: list(DEFAULT_USER_AGENTS))
    header_sets: List[Dict[str, str]] = field(
        default_factory=lambda: [dict(h) for h in DEFAULT_HEADER_SETS]
    )
    viewport_width: int = 1920
    viewport_height: int = 1080
    viewport_jitter: int = 100
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def __post_init__(self):
        if not self.user_agents:
            raise ValueError("Identity pool needs at least one user agent")
        if not self.header_sets:
            self.header_sets = [{}]

    def choose(self) -> FetchIdentity:
        """Draw a user agent, a header set and a jittered viewport"""
        return FetchIdentity(
            user_agent=self.rng.choice(self.user_agents),
            headers=dict(self.rng.choice(self.header_sets)),
            viewport={
                "width": self.viewport_width + self.rng.randint(0, self.viewport_jitter),
                "height": self.viewport_height + self.rng.randint(0, self.viewport_jitter),
            },
        )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "IdentityPool":
        """
        Load a pool from YAML. Missing keys fall back to the defaults.

        Raises:
            ValueError: If the file does not contain a mapping
        """
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Identity file {path} must contain a mapping")

        viewport = data.get("viewport") or {}
        return cls(
            user_agents=list(data.get("user_agents") or DEFAULT_USER_AGENTS),
            header_sets=[
                {str(k): str(v) for k, v in headers.items()}
                for headers in (data.get("header_sets") or DEFAULT_HEADER_SETS)
            ],
            viewport_width=int(viewport.get("width", 1920)),
            viewport_height=int(viewport.get("height", 1080)),
            viewport_jitter=int(viewport.get("jitter", 100)),
        )

    @classmethod
    def from_file_or_default(cls, path: Optional[str]) -> "IdentityPool":
        return cls.from_yaml(path) if path else cls()
