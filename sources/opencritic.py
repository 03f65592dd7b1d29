"""
================================================================================
GameNexus - OpenCritic Adapter
================================================================================
OpenCritic critic-review aggregator, through RapidAPI.

API: https://rapidapi.com/opencritic-opencritic-default/api/opencritic-api
Format: REST + JSON, RapidAPI host/key headers

Search hits carry only an id, a name and a relevance distance. Release date,
platforms, cover and score need a second /game/{id} call, so only the best few
hits are enriched (the free tier allows very few calls per day).

Game details are fetched only by a known OpenCritic id, never by name. The
popular and recently-released lists come back whole and are cut locally.

Rate Limit: very low on the free tier, keep conservative
================================================================================
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
import asyncio
import logging

from .base import (
    BaseSearchAdapter, GameSourceInfo, RatingData, ReleaseKind,
    Screenshot, SourceRecord, format_image_url
)
from gamenexus_app.search.scorer import calculate_search_score

logger = logging.getLogger(__name__)


RAPIDAPI_HOST = "opencritic-api.p.rapidapi.com"
IMAGE_BASE_URL = "https://img.opencritic.com/"

# Max search hits enriched with full game details
ENRICH_LIMIT = 5

# Hits scoring below this are never enriched
MIN_ENRICH_SCORE = 50


class OpenCriticAdapter(BaseSearchAdapter):
    """OpenCritic search adapter."""

    name = "OpenCritic"
    base_url = f"https://{RAPIDAPI_HOST}"
    rate_limit = 30

    def __init__(self, api_key: str, **kwargs):
        self.api_key = api_key
        super().__init__(**kwargs)

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        headers['X-RapidAPI-Host'] = RAPIDAPI_HOST
        headers['X-RapidAPI-Key'] = self.api_key
        return headers

    async def _search(self, query: str) -> List[SourceRecord]:
        hits = await self._request(
            "GET",
            f"{self.base_url}/game/search",
            params={'criteria': query},
        )

        # Score locally and keep the best few, best first
        scored = [
            (calculate_search_score(query, hit.get('name')), hit)
            for hit in hits or []
            if isinstance(hit, dict) and hit.get('id') is not None
        ]
        scored = [(score, hit) for score, hit in scored if score >= MIN_ENRICH_SCORE]
        scored.sort(key=lambda pair: pair[0], reverse=True)
        top_hits = [hit for _, hit in scored[:ENRICH_LIMIT]]

        results = await asyncio.gather(*(self._enrich(hit) for hit in top_hits))

        self._log_search(query, len(results))
        return list(results)

    async def _enrich(self, hit: Dict[str, Any]) -> SourceRecord:
        """Fetch full details for a search hit, falling back to the bare hit."""
        try:
            game = await self._request("GET", f"{self.base_url}/game/{hit['id']}")
            if game:
                return self._parse_game(game)
        except Exception as e:
            logger.warning(f"{self.name}: Enrichment failed for {hit.get('id')}: {e}")

        return self.create_record(game_id=hit['id'], name=hit.get('name'))

    def _parse_game(self, game: Dict[str, Any]) -> SourceRecord:
        """Map a full OpenCritic game object to a SourceRecord."""
        score = game.get('topCriticScore')

        return self.create_record(
            game_id=game['id'],
            name=game.get('name'),
            cover_url=self._cover_url(game),
            release_date=self._format_date(game.get('firstReleaseDate')),
            rating=round(score) if score and score > 0 else None,
            platforms=[p.get('name') for p in game.get('Platforms') or []],
            release_kind=ReleaseKind.UNKNOWN,
        )

    @staticmethod
    def _cover_url(game: Dict[str, Any]) -> Optional[str]:
        # Priority: square > box > masthead
        images = game.get('images') or {}
        for kind in ('square', 'box', 'masthead'):
            path = (images.get(kind) or {}).get('og')
            if path:
                return format_image_url(OpenCriticAdapter._image_url(path))
        return None

    @staticmethod
    def _image_url(path: str) -> str:
        """Relative image paths live under the OpenCritic image host."""
        if path.startswith('http') or path.startswith('//'):
            return path
        return f"{IMAGE_BASE_URL}{path}"

    @staticmethod
    def _format_date(value: Optional[str]) -> Optional[str]:
        """"2020-09-17T00:00:00.000Z" -> "2020-09-17"."""
        if not value:
            return None
        try:
            return datetime.fromisoformat(value[:10]).date().isoformat()
        except ValueError:
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
        # Id lookups only; no name search against the free-tier quota
        game_id = self._own_id(source_ids)
        if game_id is None or not game_id.isdigit():
            self._log_details(game_id or name or "unknown", False)
            return None

        game = await self._request("GET", f"{self.base_url}/game/{game_id}")
        if not game:
            self._log_details(game_id, False)
            return None

        self._log_details(game_id, True)

        return GameSourceInfo(
            source_name=self.name,
            name=game.get('name'),
            description=game.get('description'),
            cover_url=self._cover_url(game),
            screenshots=self._screenshots(game),
            ratings=self._build_ratings(game, game_id),
            release_date=self._format_date(game.get('firstReleaseDate')),
            developer=self._developer(game),
        )

    def _build_ratings(self, game: Dict[str, Any], game_id: str) -> List[RatingData]:
        ratings: List[RatingData] = []
        url = game.get('url') or f"https://opencritic.com/game/{game_id}"

        for key, label, count_key, summary in (
            ('topCriticScore', "OpenCritic Top Critics", 'numTopCriticReviews',
             "Average score from top gaming publications."),
            ('medianScore', "OpenCritic Median", 'numReviews',
             "Median score from all critic reviews."),
            ('percentRecommended', "OpenCritic Recommended", 'numReviews',
             "Percentage of critics who recommend this game."),
        ):
            score = game.get(key)
            # OpenCritic reports -1 for "not enough reviews"
            if score and score > 0:
                self._add_rating(
                    ratings, score, label, url=url, summary=summary,
                    count=game.get(count_key) or 0,
                )
        return ratings

    @staticmethod
    def _screenshots(game: Dict[str, Any]) -> List[Screenshot]:
        shots = (game.get('images') or {}).get('screenshots') or []
        results = []
        for index, shot in enumerate(shots):
            path = shot.get('og') or shot.get('sm')
            if not path:
                continue
            results.append(Screenshot(
                id=str(shot.get('_id') or f"oc-screenshot-{index}"),
                url=format_image_url(OpenCriticAdapter._image_url(path)),
            ))
        return results

    @staticmethod
    def _developer(game: Dict[str, Any]) -> Optional[str]:
        for company in game.get('Companies') or []:
            if company.get('type') == 'DEVELOPER':
                return company.get('name')
        return None

    async def _get_popular_games(self, limit: int) -> List[SourceRecord]:
        games = await self._request("GET", f"{self.base_url}/game/popular")
        return self._parse_games(games, self._parse_game)[:limit]

    async def _get_new_games(self, limit: int) -> List[SourceRecord]:
        games = await self._request("GET", f"{self.base_url}/game/recently-released")
        return self._parse_games(games, self._parse_game)[:limit]
