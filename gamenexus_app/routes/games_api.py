"""
================================================================================
GameNexus - Game API Routes
================================================================================
Game pages and home-page listings.

ENDPOINTS:
  GET /api/games/details?ids=IGDB:113112,RAWG:274755&name=Hades&date=2020-09-17
      Unified game page (ids and/or name required)
  GET /api/games/popular?limit=N   - Popular games
  GET /api/games/new?limit=N       - Recently released games
================================================================================
"""

from typing import Dict, Optional, Tuple
import logging

from flask import Blueprint, current_app, jsonify, request

from sources import get_enabled_adapters
from sources.base import NEW_GAMES_LIMIT, POPULAR_GAMES_LIMIT
from ..config import SearchSettings
from ..log import log
from ..services import GameService
from .search_api import _error, _settings, run_async

logger = logging.getLogger(__name__)

games_bp = Blueprint('games_api', __name__)

# Upper bound for listing sizes
MAX_LISTING_LIMIT = 50


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _build_service(settings: SearchSettings) -> GameService:
    factory = current_app.config.get('GAME_SERVICE_FACTORY')
    if factory is not None:
        return factory(settings)
    return GameService(get_enabled_adapters(settings))


def _parse_ids(raw: Optional[str]) -> Dict[str, str]:
    """
    Parse "IGDB:113112,RAWG:274755" into a source -> id map.

    Raises:
        ValueError: On an entry without a source or an id
    """
    source_ids: Dict[str, str] = {}
    for entry in (raw or '').split(','):
        entry = entry.strip()
        if not entry:
            continue
        source, sep, game_id = entry.partition(':')
        if not sep or not source.strip() or not game_id.strip():
            raise ValueError(f"Bad source id '{entry}' (expected Source:id)")
        source_ids[source.strip()] = game_id.strip()
    return source_ids


def _parse_limit(default: int) -> Tuple[Optional[int], Optional[str]]:
    """(limit, None) clamped to 1..MAX_LISTING_LIMIT, or (None, error message)."""
    raw_limit = request.args.get('limit')
    if raw_limit is None or not raw_limit.strip():
        return default, None
    try:
        limit = int(raw_limit)
    except ValueError:
        return None, 'limit must be an integer'
    return max(1, min(limit, MAX_LISTING_LIMIT)), None


def _listing(kind: str, default_limit: int):
    limit, error = _parse_limit(default_limit)
    if error:
        return _error(error)

    settings = _settings()

    async def _fetch():
        service = _build_service(settings)
        try:
            if kind == 'popular':
                return await service.get_popular_games(limit)
            return await service.get_new_games(limit)
        finally:
            await service.close()

    try:
        games = run_async(_fetch())
    except Exception as e:
        logger.exception(f"{kind.capitalize()} games failed")
        return _error(f'{kind.capitalize()} games failed: {e}', 500)

    return jsonify({
        'count': len(games),
        'results': [record.to_dict() for record in games],
    })


# =============================================================================
# GAME ROUTES
# =============================================================================

@games_bp.route('/api/games/details', methods=['GET'])
def game_details():
    """
    Unified details for one game.

    Returns:
        {
            "name": "Hades",
            "mainCoverUrl": "...",
            "primarySource": "IGDB",
            "sources": {"IGDB": {...}, "RAWG": {...}},
            ...
        }
    """
    try:
        source_ids = _parse_ids(request.args.get('ids'))
    except ValueError as e:
        return _error(str(e))

    name = (request.args.get('name') or '').strip() or None
    release_date = (request.args.get('date') or '').strip() or None

    if not source_ids and not name:
        return _error('Provide source ids (ids) or a game name (name)')

    settings = _settings()

    async def _fetch():
        service = _build_service(settings)
        try:
            return await service.get_game(source_ids, name, release_date)
        finally:
            await service.close()

    try:
        game = run_async(_fetch())
    except Exception as e:
        logger.exception(f"Game details failed for {source_ids or name!r}")
        return _error(f'Game details failed: {e}', 500)

    if game is None:
        return _error('Game not found', 404)

    log(f"Game details '{game.name}' from {', '.join(game.sources)}")

    return jsonify(game.to_dict())


@games_bp.route('/api/games/popular', methods=['GET'])
def popular_games():
    """Popular games from the primary catalog."""
    return _listing('popular', POPULAR_GAMES_LIMIT)


@games_bp.route('/api/games/new', methods=['GET'])
def new_games():
    """Recently released games from the primary catalog."""
    return _listing('new', NEW_GAMES_LIMIT)
