"""
================================================================================
GameNexus - Configuration
================================================================================
Environment-driven settings for the search engine and the source adapters.

Values come from the process environment (a local .env file is loaded by the
app factory through python-dotenv before anything reads them).

Example .env:
    SEARCH_MIN_RELEVANCE=50
    SEARCH_MAX_RESULTS=20
    COVER_PRIORITY=IGDB,OpenCritic
    COVER_DEPRIORITIZED=RAWG
    RAWG_API_KEY=...
================================================================================
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence, Tuple


# Default cover-image preference: best-known sources first, worst-known last.
DEFAULT_COVER_PREFERRED = ("IGDB", "OpenCritic")
DEFAULT_COVER_DEPRIORITIZED = ("RAWG",)

DEFAULT_MIN_RELEVANCE = 50
DEFAULT_MAX_RESULTS = 20
DEFAULT_DATE_TOLERANCE_DAYS = 31
DEFAULT_SOURCE_TIMEOUT = 10.0


@dataclass(frozen=True)
class CoverPriority:
    """
    Ordered source preference used when two records both carry a cover.

    Sources in `preferred` rank first (in list order), unlisted sources share
    a mid rank, and sources in `deprioritized` rank last (in list order).
    Lower rank wins.
    """
    preferred: Tuple[str, ...] = DEFAULT_COVER_PREFERRED
    deprioritized: Tuple[str, ...] = DEFAULT_COVER_DEPRIORITIZED

    def rank(self, source: Optional[str]) -> int:
        if source in self.preferred:
            return self.preferred.index(source)
        mid = len(self.preferred)
        if source in self.deprioritized:
            return mid + 1 + self.deprioritized.index(source)
        return mid


@dataclass
class SearchSettings:
    """Tunables for scoring, merging and the source adapters."""

    min_relevance: int = DEFAULT_MIN_RELEVANCE
    max_results: int = DEFAULT_MAX_RESULTS
    date_tolerance_days: int = DEFAULT_DATE_TOLERANCE_DAYS
    cover_priority: CoverPriority = field(default_factory=CoverPriority)

    # Source adapters
    request_timeout: float = DEFAULT_SOURCE_TIMEOUT
    igdb_client_id: Optional[str] = None
    igdb_access_token: Optional[str] = None
    rawg_api_key: Optional[str] = None
    opencritic_api_key: Optional[str] = None


def _get_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _get_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _get_list(environ: Mapping[str, str], name: str, default: Sequence[str]) -> Tuple[str, ...]:
    raw = environ.get(name)
    if raw is None:
        return tuple(default)
    return tuple(item.strip() for item in raw.split(',') if item.strip())


def load_settings(environ: Optional[Mapping[str, str]] = None) -> SearchSettings:
    """
    Build SearchSettings from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        SearchSettings instance

    Raises:
        ValueError: If a numeric variable cannot be parsed
    """
    if environ is None:
        environ = os.environ

    return SearchSettings(
        min_relevance=_get_int(environ, 'SEARCH_MIN_RELEVANCE', DEFAULT_MIN_RELEVANCE),
        max_results=_get_int(environ, 'SEARCH_MAX_RESULTS', DEFAULT_MAX_RESULTS),
        date_tolerance_days=_get_int(environ, 'SEARCH_DATE_TOLERANCE_DAYS', DEFAULT_DATE_TOLERANCE_DAYS),
        cover_priority=CoverPriority(
            preferred=_get_list(environ, 'COVER_PRIORITY', DEFAULT_COVER_PREFERRED),
            deprioritized=_get_list(environ, 'COVER_DEPRIORITIZED', DEFAULT_COVER_DEPRIORITIZED),
        ),
        request_timeout=_get_float(environ, 'SOURCE_TIMEOUT', DEFAULT_SOURCE_TIMEOUT),
        igdb_client_id=environ.get('IGDB_CLIENT_ID') or None,
        igdb_access_token=environ.get('IGDB_ACCESS_TOKEN') or None,
        rawg_api_key=environ.get('RAWG_API_KEY') or None,
        opencritic_api_key=environ.get('OPENCRITIC_RAPIDAPI_KEY') or None,
    )
