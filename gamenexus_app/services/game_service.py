"""
================================================================================
GameNexus - Game Service
================================================================================
Game pages and home-page listings on top of the source adapters.

get_game(source_ids, name, release_date):
  1. Ask every adapter for its detailed view, in parallel
  2. Pick the primary view: IGDB when it answered, else the first answer
  3. Headline fields come from the primary view; gaps are filled from the
     other catalogs in adapter order
  4. Every catalog's own view is kept under `sources` (one tab per catalog)

get_popular_games(limit) / get_new_games(limit):
  Served by the primary catalog when it is configured, else by the first
  configured adapter.
================================================================================
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from sources.base import (
    NEW_GAMES_LIMIT,
    POPULAR_GAMES_LIMIT,
    GameSourceInfo,
    SourceRecord,
)

logger = logging.getLogger(__name__)


PRIMARY_SOURCE = "IGDB"
UNKNOWN_GAME_NAME = "Unknown Game"
PLACEHOLDER_COVER_URL = "/placeholder-game.jpg"


class GameDetailsAdapter(Protocol):
    """Anything with a stable name and never-raising detail/listing calls."""

    name: str

    async def get_game_details(
        self,
        source_ids: Dict[str, Any],
        name: Optional[str] = None,
        release_date: Optional[str] = None
    ) -> Optional[GameSourceInfo]:
        ...

    async def get_popular_games(self, limit: int = POPULAR_GAMES_LIMIT) -> List[SourceRecord]:
        ...

    async def get_new_games(self, limit: int = NEW_GAMES_LIMIT) -> List[SourceRecord]:
        ...


@dataclass
class GameDetails:
    """
    One game page, unified across catalogs.

    The main_* fields and release_date/developer are resolved once; `sources`
    keeps each catalog's unmerged view for per-source tabs.
    """
    source_ids: Dict[str, str]
    name: str
    main_cover_url: str
    primary_source: str
    sources: Dict[str, GameSourceInfo] = field(default_factory=dict)
    main_description: Optional[str] = None
    release_date: Optional[str] = None
    developer: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary for API responses."""
        return {
            "sourceIds": dict(self.source_ids),
            "name": self.name,
            "mainCoverUrl": self.main_cover_url,
            "mainDescription": self.main_description,
            "releaseDate": self.release_date,
            "developer": self.developer,
            "sources": {name: info.to_dict() for name, info in self.sources.items()},
            "primarySource": self.primary_source,
        }


class GameService:
    """Builds game pages and listings from a set of source adapters."""

    def __init__(
        self,
        adapters: Optional[Sequence[GameDetailsAdapter]] = None,
        primary_source: str = PRIMARY_SOURCE
    ):
        """
        Args:
            adapters: Source adapters in priority order
            primary_source: Catalog whose details win when it answers
        """
        self.adapters: List[GameDetailsAdapter] = list(adapters or [])
        self.primary_source = primary_source

    @property
    def adapter_names(self) -> List[str]:
        return [adapter.name for adapter in self.adapters]

    # =========================================================================
    # GAME PAGE
    # =========================================================================

    async def get_game(
        self,
        source_ids: Dict[str, Any],
        name: Optional[str] = None,
        release_date: Optional[str] = None
    ) -> Optional[GameDetails]:
        """
        Fetch and unify one game's details from every adapter.

        Args:
            source_ids: Catalog name -> game id, as returned by search
            name: Game title; adapters without an id may look it up by name
            release_date: Known release date, confirms name lookups

        Returns:
            GameDetails, or None when no catalog knows the game
        """
        if not self.adapters:
            logger.warning("No available sources for game details")
            return None

        start_time = time.time()

        results = await asyncio.gather(
            *(adapter.get_game_details(source_ids, name, release_date) for adapter in self.adapters),
            return_exceptions=True,
        )

        details: List[GameSourceInfo] = []
        for adapter, result in zip(self.adapters, results):
            if isinstance(result, BaseException):
                logger.error(f"Details failed for {adapter.name}: {result}")
                continue
            if result is not None:
                details.append(result)

        if not details:
            logger.info(f"No source has details for {source_ids or name!r}")
            return None

        sources: Dict[str, GameSourceInfo] = {}
        for info in details:
            sources.setdefault(info.source_name, info)

        primary = sources.get(self.primary_source) or details[0]

        def first_known(attr: str) -> Optional[str]:
            value = getattr(primary, attr)
            if value:
                return value
            for info in details:
                value = getattr(info, attr)
                if value:
                    return value
            return None

        game = GameDetails(
            source_ids={source: str(game_id) for source, game_id in (source_ids or {}).items()},
            name=primary.name or name or UNKNOWN_GAME_NAME,
            main_cover_url=first_known('cover_url') or PLACEHOLDER_COVER_URL,
            primary_source=primary.source_name,
            sources=sources,
            main_description=first_known('description'),
            release_date=first_known('release_date'),
            developer=first_known('developer'),
        )

        elapsed = time.time() - start_time
        logger.info(
            f"Game details for '{game.name}' from {', '.join(sources)} "
            f"in {elapsed:.2f}s (primary: {game.primary_source})"
        )

        return game

    # =========================================================================
    # LISTINGS
    # =========================================================================

    def _listing_adapter(self) -> Optional[GameDetailsAdapter]:
        """The primary catalog when configured, else the first adapter."""
        for adapter in self.adapters:
            if adapter.name == self.primary_source:
                return adapter
        return self.adapters[0] if self.adapters else None

    async def get_popular_games(self, limit: int = POPULAR_GAMES_LIMIT) -> List[SourceRecord]:
        adapter = self._listing_adapter()
        if adapter is None:
            return []
        try:
            return list(await adapter.get_popular_games(limit) or [])
        except Exception as e:
            logger.error(f"Popular games failed for {adapter.name}: {e}")
            return []

    async def get_new_games(self, limit: int = NEW_GAMES_LIMIT) -> List[SourceRecord]:
        adapter = self._listing_adapter()
        if adapter is None:
            return []
        try:
            return list(await adapter.get_new_games(limit) or [])
        except Exception as e:
            logger.error(f"New games failed for {adapter.name}: {e}")
            return []

    async def close(self):
        """Close adapter HTTP clients."""
        for adapter in self.adapters:
            close = getattr(adapter, 'close', None)
            if close is not None:
                await close()
