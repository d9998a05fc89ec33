"""
Run configuration for a GCPD export.

A PipelineConfig is built once at the start of a run (from CLI arguments or
an options mapping using the browser script's option names) and passed to
every component. It is frozen; nothing mutates it mid-run.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional
from urllib.parse import urlsplit, urlunsplit

DEFAULT_TAB = "playermatchhistory"
DEFAULT_DELAY_MS = 100
DEFAULT_MAX_PAGES = 2000
DEFAULT_FILENAME_BASE = "gcpd_matches"

PROFILE_ID_RE = re.compile(r"(?:profiles|id)/([^/]+)")

# Option name as accepted by from_options() -> dataclass field.
OPTION_FIELDS = {
    "tab": "tab",
    "delay": "delay_ms",
    "maxPages": "max_pages",
    "verbose": "verbose",
    "filenameBase": "filename_base",
    "parseDates": "parse_dates",
    "parseNumbers": "parse_numbers",
    "dedupe": "dedupe",
}

ENV_PROFILE_URL = "GCPD_PROFILE_URL"
ENV_SESSIONID = "GCPD_SESSIONID"
ENV_STORAGE_STATE = "GCPD_STORAGE_STATE"


@dataclass(frozen=True)
class PipelineConfig:
    tab: str = DEFAULT_TAB
    delay_ms: int = DEFAULT_DELAY_MS
    max_pages: int = DEFAULT_MAX_PAGES
    verbose: bool = False
    filename_base: str = DEFAULT_FILENAME_BASE
    parse_dates: bool = True
    parse_numbers: bool = True
    dedupe: bool = True

    def __post_init__(self):
        if self.max_pages < 1:
            raise ValueError(f"maxPages must be at least 1 (got {self.max_pages})")
        if self.delay_ms < 0:
            raise ValueError(f"delay must not be negative (got {self.delay_ms})")
        if not self.tab:
            raise ValueError("tab must not be empty")

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000.0

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None, **overrides: Any) -> "PipelineConfig":
        """
        Build a config from browser-script style option names.

        Args:
            options: Mapping using the names tab, delay, maxPages, verbose,
                     filenameBase, parseDates, parseNumbers, dedupe.
            overrides: Dataclass field names applied last.

        Raises:
            ValueError: On unknown option names or out-of-range values.
        """
        kwargs = {}
        for name, value in (options or {}).items():
            if name not in OPTION_FIELDS:
                raise ValueError(f"Unknown option '{name}'")
            kwargs[OPTION_FIELDS[name]] = value
        kwargs.update(overrides)

        for field_name in ("delay_ms", "max_pages"):
            if field_name in kwargs:
                kwargs[field_name] = int(kwargs[field_name])
        for field_name in ("verbose", "parse_dates", "parse_numbers", "dedupe"):
            if field_name in kwargs:
                kwargs[field_name] = bool(kwargs[field_name])
        return cls(**kwargs)


def base_url_from_profile(profile_url: str) -> str:
    """Origin + path of the profile page, without query, fragment or trailing slash."""
    parts = urlsplit(profile_url.strip())
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"Profile URL must be absolute: {profile_url!r}")
    return urlunsplit((parts.scheme, parts.netloc, parts.path.rstrip("/"), "", ""))


def filename_base_from_url(profile_url: Optional[str], default: str = DEFAULT_FILENAME_BASE) -> str:
    """Use the profile segment after /profiles/ or /id/ as the export name root."""
    if not profile_url:
        return default
    match = PROFILE_ID_RE.search(profile_url)
    return match.group(1) if match else default


def env_profile_url() -> Optional[str]:
    return os.getenv(ENV_PROFILE_URL, "").strip() or None


def env_session_id() -> Optional[str]:
    return os.getenv(ENV_SESSIONID, "").strip() or None


def env_storage_state() -> Optional[str]:
    return os.getenv(ENV_STORAGE_STATE, "").strip() or None
