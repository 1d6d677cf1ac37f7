"""
Crawl configuration.

CrawlConfig is frozen for the lifetime of one crawl and validated on
construction. It can be loaded from a YAML file and overridden field by field.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator


class FetchMode(str, Enum):
    """Execution shape of the fetch layer"""
    BROWSER = "browser"  # sequential, one rendering session per crawl
    HTTP = "http"        # batched concurrent plain-HTTP fetches


class CrawlConfig(BaseModel):
    """
    Budgets and policies for a single crawl.

    Example:
        >>> config = CrawlConfig(max_depth=2, max_pages=50)
        >>> config.model_copy(update={"include_external": True})
    """

    model_config = ConfigDict(frozen=True, extra="forbid", use_enum_values=False)

    # Budgets
    max_depth: int = Field(default=3, ge=0)
    max_pages: int = Field(default=100, ge=1)

    # Scope
    include_external: bool = False
    check_sensitive_files: bool = True

    # Fetch layer
    fetch_mode: FetchMode = FetchMode.BROWSER
    headless: bool = True
    page_timeout: float = Field(default=15.0, gt=0)
    request_timeout: float = Field(default=10.0, gt=0)
    identity_file: Optional[str] = None

    # Politeness
    min_delay: float = Field(default=0.5, ge=0)
    max_delay: float = Field(default=3.0, ge=0)
    batch_size: int = Field(default=10, ge=1)
    batch_pause: float = Field(default=1.0, ge=0)

    @model_validator(mode="after")
    def _check_delay_range(self) -> "CrawlConfig":
        if self.max_delay < self.min_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must be >= min_delay ({self.min_delay})"
            )
        return self


def load_config(
    path: Optional[Union[str, Path]] = None,
    **overrides: Any,
) -> CrawlConfig:
    """
    Build a CrawlConfig from an optional YAML file plus keyword overrides.

    Overrides whose value is None are ignored so CLI options that were not
    given do not clobber file values.

    Args:
        path: YAML file holding a mapping of CrawlConfig fields
        **overrides: Field values taking precedence over the file

    Returns:
        Validated CrawlConfig

    Raises:
        ValueError: If the file does not contain a mapping
        pydantic.ValidationError: If a field is invalid
    """
    data: Dict[str, Any] = {}

    if path is not None:
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        data.update(loaded)

    data.update({k: v for k, v in overrides.items() if v is not None})

    return CrawlConfig(**data)
