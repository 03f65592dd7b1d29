"""
================================================================================
GameNexus - IGDB Adapter
================================================================================
IGDB (Twitch) game database.

API Documentation: https://api-docs.igdb.com/
Format: Apicalypse query language in a POST body

Key Features:
  - Structured release data (first_release_date, platforms, game_type)
  - Best cover art of the three catalogs (t_720p renditions)
  - Requires a Twitch Client-ID and an app access token
  - Details carry IGDB's own rating breakdown

Rate Limit: 4 requests/second
================================================================================
"""

from typing import Any, Dict, List, Optional
import logging
import time

from .base import (
    NAME_SEARCH_LIMIT, BaseSearchAdapter, GameSourceInfo, RatingData, ReleaseKind,
    Screenshot, SourceRecord, format_image_url, unix_to_iso_date
)
from gamenexus_app.search.compatibility import find_matching_game

logger = logging.getLogger(__name__)


# Results requested per search
SEARCH_LIMIT = 20


class IGDBAdapter(BaseSearchAdapter):
    """
    IGDB search adapter.

    Only games with a cover are requested; IGDB's catalog is full of
    placeholder entries without one.
    """

    name = "IGDB"
    base_url = "https://api.igdb.com/v4"
    rate_limit = 240

    # game_type enum from the IGDB API
    GAME_TYPE_MAP = {
        0: ReleaseKind.BASE_GAME,   # main_game
        1: ReleaseKind.DLC,         # dlc_addon
        2: ReleaseKind.EXPANSION,   # expansion
        3: ReleaseKind.BUNDLE,      # bundle
        4: ReleaseKind.EXPANSION,   # standalone_expansion
    }

    def __init__(self, client_id: str, access_token: str, **kwargs):
        self.client_id = client_id
        self.access_token = access_token
        super().__init__(**kwargs)

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        headers['Client-ID'] = self.client_id
        headers['Authorization'] = f"Bearer {self.access_token}"
        return headers

    @staticmethod
    def build_query(query: str, limit: int = SEARCH_LIMIT) -> str:
        """Build the Apicalypse search body, escaping embedded quotes."""
        sanitized = query.replace('"', '\\"')
        return (
            f'search "{sanitized}"; '
            'fields name, cover.url, total_rating, first_release_date, platforms.name, game_type; '
            'where cover != null; '
            f'limit {limit};'
        )

    async def _search(self, query: str) -> List[SourceRecord]:
        games = await self._request(
            "POST",
            f"{self.base_url}/games",
            content=self.build_query(query),
        )

        results = self._parse_games(games, self._parse_game)

        self._log_search(query, len(results))
        return results

    def _parse_game(self, game: Dict[str, Any]) -> SourceRecord:
        """Map an IGDB game object to a SourceRecord."""
        rating = game.get('total_rating')

        return self.create_record(
            game_id=game['id'],
            name=game.get('name'),
            cover_url=self._cover_url(game),
            release_date=unix_to_iso_date(game.get('first_release_date')),
            rating=round(rating) if rating else None,
            platforms=[p.get('name') for p in game.get('platforms') or []],
            release_kind=self.GAME_TYPE_MAP.get(game.get('game_type'), ReleaseKind.UNKNOWN),
        )

    @classmethod
    def _cover_url(cls, game: Dict[str, Any]) -> Optional[str]:
        url = (game.get('cover') or {}).get('url')
        if not url:
            return None
        return cls._image_url(url)

    @staticmethod
    def _image_url(url: str) -> str:
        # The API returns thumbnails; swap in the large rendition
        return format_image_url(url.replace('t_thumb', 't_720p'))

    # =========================================================================
    # DETAILS & LISTINGS
    # =========================================================================

    DETAIL_FIELDS = (
        'name, cover.url, summary, first_release_date, involved_companies.company.name, '
        'involved_companies.developer, screenshots.url, total_rating, total_rating_count, '
        'aggregated_rating, aggregated_rating_count, rating, rating_count, url, '
        'platforms.name, game_type'
    )

    LIST_FIELDS = 'name, cover.url, total_rating, summary, first_release_date, platforms.name, game_type'

    async def _get_game_details(
        self,
        source_ids: Dict[str, Any],
        name: Optional[str],
        release_date: Optional[str]
    ) -> Optional[GameSourceInfo]:
        game_id = self._own_id(source_ids)
        if game_id is None and name:
            game_id = await self._find_id_by_name(name, release_date)

        if game_id is None or not game_id.isdigit():
            self._log_details(game_id or name or "unknown", False)
            return None

        games = await self._request(
            "POST",
            f"{self.base_url}/games",
            content=f'fields {self.DETAIL_FIELDS}; where id = {game_id};',
        )
        game = (games or [None])[0]
        if not game:
            self._log_details(game_id, False)
            return None

        self._log_details(game_id, True)

        return GameSourceInfo(
            source_name=self.name,
            name=game.get('name'),
            description=game.get('summary'),
            cover_url=self._cover_url(game),
            screenshots=[
                Screenshot(id=str(shot.get('id', index)), url=self._image_url(shot['url']))
                for index, shot in enumerate(game.get('screenshots') or [])
                if shot.get('url')
            ],
            ratings=self._build_ratings(game),
            release_date=unix_to_iso_date(game.get('first_release_date')),
            developer=self._developer(game),
        )

    async def _find_id_by_name(self, name: str, release_date: Optional[str]) -> Optional[str]:
        """Search by title and keep the first hit whose name and date agree."""
        games = await self._request(
            "POST",
            f"{self.base_url}/games",
            content=self.build_query(name, NAME_SEARCH_LIMIT),
        )
        candidates = [
            game for game in games or []
            if isinstance(game, dict) and game.get('id') is not None
        ]
        match = find_matching_game(
            candidates, name, release_date,
            lambda game: game.get('name'),
            lambda game: unix_to_iso_date(game.get('first_release_date')),
        )
        return str(match['id']) if match else None

    def _build_ratings(self, game: Dict[str, Any]) -> List[RatingData]:
        ratings: List[RatingData] = []
        url = game.get('url')

        self._add_rating(
            ratings, game.get('total_rating'), "IGDB Aggregate", url=url,
            summary="Weighted average of critic and user scores.",
            count=game.get('total_rating_count') or 0,
        )
        self._add_rating(
            ratings, game.get('aggregated_rating'), "IGDB Critics", url=url,
            summary="Aggregated score from external critics.",
            count=game.get('aggregated_rating_count') or 0,
        )
        self._add_rating(
            ratings, game.get('rating'), "IGDB Users", url=url,
            summary="Average score submitted by IGDB community members.",
            count=game.get('rating_count') or 0,
        )
        return ratings

    @staticmethod
    def _developer(game: Dict[str, Any]) -> Optional[str]:
        """Prefer a company flagged as developer, else the first involved company."""
        companies = [c for c in game.get('involved_companies') or [] if isinstance(c, dict)]
        flagged = [c for c in companies if c.get('developer')]
        for company in flagged + companies:
            name = (company.get('company') or {}).get('name')
            if name:
                return name
        return None

    async def _get_popular_games(self, limit: int) -> List[SourceRecord]:
        games = await self._request(
            "POST",
            f"{self.base_url}/games",
            content=(
                f'fields {self.LIST_FIELDS}; '
                'sort popularity desc; '
                'where cover != null & total_rating != null; '
                f'limit {limit};'
            ),
        )
        return self._parse_games(games, self._parse_game)

    async def _get_new_games(self, limit: int) -> List[SourceRecord]:
        now = int(time.time())
        games = await self._request(
            "POST",
            f"{self.base_url}/games",
            content=(
                f'fields {self.LIST_FIELDS}; '
                'sort first_release_date desc; '
                f'where first_release_date < {now} & cover != null & total_rating != null; '
                f'limit {limit};'
            ),
        )
        return self._parse_games(games, self._parse_game)
