"""
================================================================================
GameNexus - Base Source Adapter
================================================================================
Abstract base class for all game catalog adapters, plus the SourceRecord model
every adapter returns.

Each catalog (IGDB, RAWG, OpenCritic, ...) implements:
  _search(query)                             -> List[SourceRecord]
  _get_game_details(source_ids, name, date)  -> Optional[GameSourceInfo]
  _get_popular_games(limit)                  -> List[SourceRecord]
  _get_new_games(limit)                      -> List[SourceRecord]

The public wrappers (search(), get_game_details(), ...) make sure an adapter
NEVER raises: any failure is logged and turned into an empty result. The
search engine and the game service rely on that.

RATE LIMITING & RETRIES:
  - Minimum interval between requests per adapter (requests_per_minute)
  - 429 responses back off exponentially
  - 5xx and transport errors retry after retry_delay
================================================================================
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TypeVar
import asyncio
import logging
import time

import httpx


logger = logging.getLogger(__name__)

T = TypeVar('T')

# Target scale for normalized ratings
RATING_NORMALIZED_SCALE = 100

# Default listing sizes for the home page
POPULAR_GAMES_LIMIT = 12
NEW_GAMES_LIMIT = 4

# Hits inspected when a game has to be found by name
NAME_SEARCH_LIMIT = 5


# =============================================================================
# ENUMS & DATA CLASSES
# =============================================================================

class ReleaseKind(str, Enum):
    """What kind of product a catalog entry is."""
    BASE_GAME = "BASE_GAME"
    DLC = "DLC"
    BUNDLE = "BUNDLE"
    EXPANSION = "EXPANSION"
    UNKNOWN = "UNKNOWN"

    @property
    def is_specific(self) -> bool:
        """True for add-on kinds that a source positively identified."""
        return self in (ReleaseKind.DLC, ReleaseKind.EXPANSION, ReleaseKind.BUNDLE)


@dataclass
class SourceRecord:
    """
    One source's view of a single game title.

    Every adapter returns this same structure, and the search engine merges
    records describing the same game into one (accumulating source_ids and
    sources along the way).
    """
    name: str                                            # Display title as returned
    sources: List[str]                                   # Contributing sources (never empty)
    source_ids: Dict[str, str] = field(default_factory=dict)
    cover_url: Optional[str] = None
    cover_source: Optional[str] = None                   # Who supplied cover_url
    release_date: Optional[str] = None                   # None = unknown
    rating: Optional[float] = None                       # 0-100 scale
    platforms: List[str] = field(default_factory=list)
    release_kind: ReleaseKind = ReleaseKind.UNKNOWN
    match_score: int = 0                                 # Relevance tier for the current query

    def __post_init__(self):
        if not self.sources:
            raise ValueError(f"SourceRecord '{self.name}' must have at least one source")
        self.sources = unique(self.sources)
        self.platforms = unique(self.platforms)
        # Keep source_ids keys a subset of sources
        for source in self.source_ids:
            if source not in self.sources:
                self.sources.append(source)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary for API responses."""
        return {
            "sourceIds": dict(self.source_ids),
            "name": self.name,
            "coverUrl": self.cover_url,
            "coverSource": self.cover_source,
            "releaseDate": self.release_date,
            "rating": self.rating,
            "sources": list(self.sources),
            "platforms": list(self.platforms),
            "releaseKind": self.release_kind.value,
            "matchScore": self.match_score,
        }


@dataclass
class RatingData:
    """One rating a catalog publishes for a game (critics, users, ...)."""
    score: int                                           # 0-100 scale
    source_name: str                                     # "IGDB Critics", "RAWG Users", ...
    url: Optional[str] = None
    summary: Optional[str] = None
    count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "sourceName": self.source_name,
            "url": self.url,
            "summary": self.summary,
            "count": self.count,
        }


@dataclass
class Screenshot:
    id: str
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "url": self.url}


@dataclass
class GameSourceInfo:
    """
    One catalog's detailed view of a game, shown per source on a game page.

    Unlike SourceRecord this is never merged: every catalog keeps its own
    description, screenshots and ratings.
    """
    source_name: str
    name: Optional[str] = None
    description: Optional[str] = None
    cover_url: Optional[str] = None
    screenshots: List[Screenshot] = field(default_factory=list)
    ratings: List[RatingData] = field(default_factory=list)
    release_date: Optional[str] = None
    developer: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceName": self.source_name,
            "name": self.name,
            "description": self.description,
            "coverUrl": self.cover_url,
            "screenshots": [shot.to_dict() for shot in self.screenshots],
            "ratings": [rating.to_dict() for rating in self.ratings],
            "releaseDate": self.release_date,
            "developer": self.developer,
        }


def unique(items) -> List[str]:
    """De-duplicate while keeping first-seen order."""
    seen = set()
    result = []
    for item in items or []:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


# =============================================================================
# HELPERS
# =============================================================================

def unix_to_iso_date(timestamp: Optional[float]) -> Optional[str]:
    """Convert a Unix timestamp (seconds) to YYYY-MM-DD, or None."""
    if not timestamp:
        return None
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).date().isoformat()
    except (OverflowError, OSError, ValueError):
        return None


def normalize_rating(score: float, max_score: float = RATING_NORMALIZED_SCALE) -> int:
    """
    Rescale a rating to 0-100 and round it.

    normalize_rating(4.5, 5) -> 90
    """
    return round((score / max_score) * RATING_NORMALIZED_SCALE)


def format_image_url(url: Optional[str]) -> Optional[str]:
    """Give protocol-relative image URLs an https scheme."""
    if not url:
        return None
    if url.startswith('//'):
        return f"https:{url}"
    return url


class RateLimiter:
    """
    Minimum-interval rate limiter for API requests.

    Catalog limits:
      - IGDB: 4/sec
      - RAWG: generous, 60/min is polite
      - OpenCritic (RapidAPI free tier): very low, keep conservative
    """

    def __init__(self, requests_per_minute: int):
        self.requests_per_minute = requests_per_minute
        self.min_interval = 60.0 / requests_per_minute
        self.last_request = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self):
        """Wait until a request slot is available."""
        async with self._lock:
            now = time.monotonic()
            time_since_last = now - self.last_request

            if time_since_last < self.min_interval:
                wait_time = self.min_interval - time_since_last
                logger.debug(f"Rate limit: waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)

            self.last_request = time.monotonic()


# =============================================================================
# BASE ADAPTER CLASS
# =============================================================================

class BaseSearchAdapter(ABC):
    """
    Abstract base class for game catalog adapters.

    Subclasses set the class attributes and implement _search() plus the
    detail and listing hooks.

    Example:
        class RAWGAdapter(BaseSearchAdapter):
            name = "RAWG"
            base_url = "https://api.rawg.io/api"
            rate_limit = 60

            async def _search(self, query):
                data = await self._request("GET", f"{self.base_url}/games", params=...)
                return [self._map_game(g) for g in data["results"]]
    """

    # Source identification (stable, used in SourceRecord.sources)
    name: str = "base"
    base_url: str = ""

    # Requests per minute
    rate_limit: int = 60

    # Request timeout (seconds)
    timeout: float = 10.0

    # Retry configuration
    max_retries: int = 3
    retry_delay: float = 1.0

    user_agent: str = "GameNexus/1.0"

    def __init__(self, timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            timeout: Request timeout override (seconds)
            transport: Optional httpx transport (tests inject MockTransport)
        """
        if timeout is not None:
            self.timeout = timeout
        self.rate_limiter = RateLimiter(self.rate_limit)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def default_headers(self) -> Dict[str, str]:
        """Headers sent with every request. Override to add credentials."""
        return {
            'User-Agent': self.user_agent,
            'Accept': 'application/json',
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self.default_headers(),
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        """
        Make rate-limited HTTP request with retries.

        Returns:
            Decoded JSON body

        Raises:
            httpx.HTTPError: On request failure after retries
        """
        client = await self._get_client()

        for attempt in range(self.max_retries):
            try:
                await self.rate_limiter.acquire()

                response = await client.request(method, url, **kwargs)
                response.raise_for_status()

                return response.json()

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if attempt < self.max_retries - 1:
                    if status == 429:
                        wait_time = self.retry_delay * (2 ** attempt)
                        logger.warning(f"{self.name}: Rate limited (429), waiting {wait_time}s")
                        await asyncio.sleep(wait_time)
                        continue
                    if status >= 500:
                        logger.warning(
                            f"{self.name}: Server error ({status}), "
                            f"retry {attempt + 1}/{self.max_retries}"
                        )
                        await asyncio.sleep(self.retry_delay)
                        continue
                raise

            except httpx.RequestError as e:
                if attempt < self.max_retries - 1:
                    logger.warning(
                        f"{self.name}: Request error ({e}), "
                        f"retry {attempt + 1}/{self.max_retries}"
                    )
                    await asyncio.sleep(self.retry_delay)
                    continue
                raise

        raise httpx.RequestError(f"{self.name}: Max retries exceeded")

    # =========================================================================
    # SEARCH
    # =========================================================================

    async def search(self, query: str) -> List[SourceRecord]:
        """
        Search this catalog for games matching query.

        Never raises: failures are logged and yield an empty list.
        """
        return await self._handle_error(
            lambda: self._search(query),
            f"Search failed for '{query}'",
            [],
        )

    @abstractmethod
    async def _search(self, query: str) -> List[SourceRecord]:
        """Catalog-specific search. May raise; search() contains it."""
        pass

    # =========================================================================
    # DETAILS & LISTINGS
    # =========================================================================

    async def get_game_details(
        self,
        source_ids: Dict[str, Any],
        name: Optional[str] = None,
        release_date: Optional[str] = None
    ) -> Optional[GameSourceInfo]:
        """
        Fetch this catalog's detailed view of a game.

        Looks the game up by this catalog's id in source_ids when present;
        otherwise adapters that support it fall back to a name search
        confirmed by release date.

        Args:
            source_ids: Catalog name -> game id (e.g. {"IGDB": "113112"})
            name: Game title, used when this catalog's id is unknown
            release_date: Known release date, used to confirm a name match

        Returns:
            GameSourceInfo, or None when not found or on any failure
        """
        return await self._handle_error(
            lambda: self._get_game_details(source_ids, name, release_date),
            f"Details failed for {source_ids.get(self.name) or name!r}",
            None,
        )

    async def get_popular_games(self, limit: int = POPULAR_GAMES_LIMIT) -> List[SourceRecord]:
        """Popular games on this catalog. Never raises."""
        return await self._handle_error(
            lambda: self._get_popular_games(limit),
            "Popular games failed",
            [],
        )

    async def get_new_games(self, limit: int = NEW_GAMES_LIMIT) -> List[SourceRecord]:
        """Recently released games on this catalog. Never raises."""
        return await self._handle_error(
            lambda: self._get_new_games(limit),
            "New games failed",
            [],
        )

    @abstractmethod
    async def _get_game_details(
        self,
        source_ids: Dict[str, Any],
        name: Optional[str],
        release_date: Optional[str]
    ) -> Optional[GameSourceInfo]:
        pass

    @abstractmethod
    async def _get_popular_games(self, limit: int) -> List[SourceRecord]:
        pass

    @abstractmethod
    async def _get_new_games(self, limit: int) -> List[SourceRecord]:
        pass

    def _own_id(self, source_ids: Optional[Dict[str, Any]]) -> Optional[str]:
        """This catalog's id from a source_ids map, as a string."""
        game_id = (source_ids or {}).get(self.name)
        if game_id is None or str(game_id).strip() == "":
            return None
        return str(game_id).strip()

    def _log_details(self, game_id: Any, found: bool) -> None:
        if found:
            logger.info(f"{self.name}: Fetched details for game {game_id}")
        else:
            logger.info(f"{self.name}: No details for game {game_id}")

    def _add_rating(
        self,
        ratings: List[RatingData],
        score: Optional[float],
        source_name: str,
        url: Optional[str] = None,
        summary: Optional[str] = None,
        count: Optional[int] = None
    ) -> None:
        """Append a rating rounded to an int; missing or zero scores are skipped."""
        if not score:
            return
        ratings.append(RatingData(
            score=round(score),
            source_name=source_name,
            url=url,
            summary=summary,
            count=count,
        ))

    async def _handle_error(
        self,
        operation: Callable[[], Any],
        error_message: str,
        fallback: T
    ) -> T:
        """Run an async operation, logging and returning fallback on error."""
        try:
            return await operation()
        except Exception as e:
            logger.error(f"{self.name}: {error_message}: {e}")
            return fallback

    def _log_search(self, query: str, result_count: int) -> None:
        logger.info(f"{self.name}: Searched for \"{query}\", found {result_count} results")

    def _parse_games(
        self,
        games: Optional[List[Any]],
        parser: Callable[[Dict[str, Any]], SourceRecord]
    ) -> List[SourceRecord]:
        """
        Map raw catalog objects with parser.

        Entries without an id, or that fail to parse, are logged and dropped.
        """
        results = []
        for game in games or []:
            if not isinstance(game, dict) or game.get('id') is None:
                logger.warning(f"{self.name}: Skipping result without an id")
                continue
            try:
                results.append(parser(game))
            except Exception as e:
                logger.error(f"{self.name}: Error parsing result {game.get('id')}: {e}")
                continue
        return results

    def create_record(
        self,
        game_id: Any,
        name: Optional[str],
        cover_url: Optional[str] = None,
        release_date: Optional[str] = None,
        rating: Optional[float] = None,
        platforms: Optional[List[str]] = None,
        release_kind: ReleaseKind = ReleaseKind.UNKNOWN,
    ) -> SourceRecord:
        """Build a SourceRecord attributed to this adapter."""
        return SourceRecord(
            name=name or "",
            sources=[self.name],
            source_ids={self.name: str(game_id)},
            cover_url=cover_url,
            cover_source=self.name if cover_url else None,
            release_date=release_date,
            rating=rating,
            platforms=[p for p in (platforms or []) if p],
            release_kind=release_kind,
        )

    def __repr__(self):
        return f"<{self.__class__.__name__}(name='{self.name}', rate_limit={self.rate_limit}/min)>"
