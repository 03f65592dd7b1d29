"""
================================================================================
GameNexus - RAWG Adapter
================================================================================
RAWG video game database.

API Documentation: https://api.rawg.io/docs/
Format: REST + JSON, API key as a query parameter

Key Features:
  - Large community catalog, fast search
  - Metacritic score when known, otherwise a 0-5 community rating
  - parents_count marks add-ons (DLC, editions)
  - Details by id, or by a name search confirmed by release date
  - Popular = ordered by metacritic, new = ordered by release date

Rate Limit: generous; 60 requests/minute keeps us polite
================================================================================
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote
import logging

from .base import (
    NAME_SEARCH_LIMIT, BaseSearchAdapter, GameSourceInfo, RatingData,
    ReleaseKind, Screenshot, SourceRecord, format_image_url, normalize_rating
)
from gamenexus_app.search.compatibility import find_matching_game

logger = logging.getLogger(__name__)


# Maximum rating on RAWG's community scale
RATING_RAWG_SCALE = 5

SEARCH_PAGE_SIZE = 20


class RAWGAdapter(BaseSearchAdapter):
    """RAWG search adapter."""

    name = "RAWG"
    base_url = "https://api.rawg.io/api"
    rate_limit = 60

    def __init__(self, api_key: str, **kwargs):
        self.api_key = api_key
        super().__init__(**kwargs)

    async def _search(self, query: str) -> List[SourceRecord]:
        params = {
            'search': query,
            'page_size': SEARCH_PAGE_SIZE,
            'key': self.api_key,
        }

        data = await self._request("GET", f"{self.base_url}/games", params=params)

        results = self._parse_games((data or {}).get('results'), self._parse_game)

        self._log_search(query, len(results))
        return results

    def _parse_game(self, game: Dict[str, Any]) -> SourceRecord:
        """Map a RAWG game object to a SourceRecord."""
        return self.create_record(
            game_id=game['id'],
            name=game.get('name'),
            cover_url=format_image_url(game.get('background_image')),
            release_date=game.get('released') or None,
            rating=self._rating(game),
            platforms=[
                (entry.get('platform') or {}).get('name')
                for entry in game.get('platforms') or []
            ],
            release_kind=ReleaseKind.DLC if (game.get('parents_count') or 0) > 0 else ReleaseKind.BASE_GAME,
        )

    @staticmethod
    def _rating(game: Dict[str, Any]):
        """Metacritic when known, else the community rating rescaled to 0-100."""
        if game.get('metacritic'):
            return game['metacritic']
        if game.get('rating'):
            return normalize_rating(game['rating'], RATING_RAWG_SCALE)
        return None

    # =========================================================================
    # DETAILS & LISTINGS
    # =========================================================================

    async def _get_game_details(
        self,
        source_ids: Dict[str, Any],
        name: Optional[str],
        release_date: Optional[str]
    ) -> Optional[GameSourceInfo]:
        game_id = self._own_id(source_ids)
        if game_id is None and name:
            game_id = await self._find_id_by_name(name, release_date)

        if game_id is None:
            self._log_details(name or "unknown", False)
            return None

        game = await self._request("GET", f"{self.base_url}/games/{game_id}", params={'key': self.api_key})
        if not game:
            self._log_details(game_id, False)
            return None

        screenshots = await self._fetch_screenshots(game_id)
        self._log_details(game_id, True)

        return GameSourceInfo(
            source_name=self.name,
            name=game.get('name'),
            description=game.get('description_raw') or game.get('description'),
            cover_url=format_image_url(game.get('background_image')),
            screenshots=screenshots,
            ratings=self._build_ratings(game),
            release_date=game.get('released') or None,
            developer=((game.get('developers') or [{}])[0] or {}).get('name'),
        )

    async def _find_id_by_name(self, name: str, release_date: Optional[str]) -> Optional[str]:
        """Search by title and keep the first hit whose name and date agree."""
        data = await self._request(
            "GET",
            f"{self.base_url}/games",
            params={'search': name, 'page_size': NAME_SEARCH_LIMIT, 'key': self.api_key},
        )
        candidates = [
            game for game in (data or {}).get('results') or []
            if isinstance(game, dict) and game.get('id') is not None
        ]
        match = find_matching_game(
            candidates, name, release_date,
            lambda game: game.get('name'),
            lambda game: game.get('released'),
        )
        return str(match['id']) if match else None

    async def _fetch_screenshots(self, game_id: str) -> List[Screenshot]:
        """Screenshots are optional; a failure leaves the details intact."""
        try:
            data = await self._request(
                "GET",
                f"{self.base_url}/games/{game_id}/screenshots",
                params={'key': self.api_key},
            )
        except Exception as e:
            logger.warning(f"{self.name}: Screenshots failed for {game_id}: {e}")
            return []

        return [
            Screenshot(id=str(shot['id']), url=shot['image'])
            for shot in (data or {}).get('results') or []
            if shot.get('id') is not None and shot.get('image')
        ]

    def _build_ratings(self, game: Dict[str, Any]) -> List[RatingData]:
        ratings: List[RatingData] = []
        name = game.get('name') or ''

        self._add_rating(
            ratings, game.get('metacritic'), "Metacritic",
            url=f"https://www.metacritic.com/search/game/{quote(name, safe='')}/results",
            summary="Aggregated review score from critics.",
        )
        if game.get('rating'):
            self._add_rating(
                ratings, normalize_rating(game['rating'], RATING_RAWG_SCALE), "RAWG Users",
                summary="Average rating from RAWG community.",
                count=game.get('ratings_count'),
            )
        return ratings

    async def _get_popular_games(self, limit: int) -> List[SourceRecord]:
        return await self._ranked_games("-metacritic", limit)

    async def _get_new_games(self, limit: int) -> List[SourceRecord]:
        return await self._ranked_games("-released", limit)

    async def _ranked_games(self, ordering: str, limit: int) -> List[SourceRecord]:
        data = await self._request(
            "GET",
            f"{self.base_url}/games",
            params={'ordering': ordering, 'page_size': limit, 'key': self.api_key},
        )
        return self._parse_games((data or {}).get('results'), self._parse_game)
