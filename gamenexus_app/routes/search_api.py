"""
================================================================================
GameNexus - Search API Routes
================================================================================
Flask blueprint exposing the reconciliation engine as JSON.

ENDPOINTS:
  GET /api/search?q=<query>&sources=IGDB,RAWG&limit=N  - Unified game search
  GET /api/sources                                     - Configured sources

Routes are sync; the engine is async. Each request runs its own event loop
and builds its own adapters, so HTTP clients never outlive their loop.
================================================================================
"""

from typing import List, Optional
import asyncio
import logging

from flask import Blueprint, current_app, g, jsonify, request

from sources import get_enabled_adapters, get_source_priorities
from ..config import SearchSettings
from ..log import log
from ..search import SearchMemo, SmartSearch

logger = logging.getLogger(__name__)

search_bp = Blueprint('search_api', __name__)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def run_async(coro):
    """
    Run async coroutine in sync Flask context.

    Flask routes are sync, but the search engine is async.
    """
    return asyncio.run(coro)


def _error(message: str, status: int = 400):
    return jsonify({'error': message}), status


def _settings() -> SearchSettings:
    return current_app.config['SEARCH_SETTINGS']


def _build_engine(settings: SearchSettings) -> SmartSearch:
    factory = current_app.config.get('SEARCH_ENGINE_FACTORY')
    if factory is not None:
        return factory(settings)
    return SmartSearch(get_enabled_adapters(settings), settings)


def _get_memo() -> SearchMemo:
    """One memo per request, shared by every search the request performs."""
    memo = getattr(g, 'search_memo', None)
    if memo is None:
        memo = SearchMemo()
        g.search_memo = memo
    return memo


def _parse_sources(raw: Optional[str]) -> Optional[List[str]]:
    """None when absent (all sources); "" selects no source at all."""
    if raw is None:
        return None
    return [name.strip() for name in raw.split(',') if name.strip()]


# =============================================================================
# SEARCH ROUTES
# =============================================================================

@search_bp.route('/api/search', methods=['GET'])
def search_games():
    """
    Search every configured catalog and return unified games.

    Returns:
        {
            "query": "hades",
            "count": 1,
            "results": [{"name": "Hades", "sources": ["IGDB", "RAWG"], ...}]
        }
    """
    query = (request.args.get('q') or '').strip()
    if not query:
        return _error('Missing search query (q)')

    settings = _settings()

    raw_limit = request.args.get('limit')
    if raw_limit is None or not raw_limit.strip():
        limit = settings.max_results
    else:
        try:
            limit = int(raw_limit)
        except ValueError:
            return _error('limit must be an integer')
        limit = max(1, min(limit, settings.max_results))

    sources = _parse_sources(request.args.get('sources'))
    memo = _get_memo()

    async def _search():
        engine = _build_engine(settings)
        try:
            return await engine.search(query, sources=sources, limit=limit, memo=memo)
        finally:
            await engine.close()

    try:
        results = run_async(_search())
    except Exception as e:
        logger.exception(f"Search failed for '{query}'")
        return _error(f'Search failed: {e}', 500)

    log(f"Search '{query}': {len(results)} results")

    return jsonify({
        'query': query,
        'count': len(results),
        'results': [record.to_dict() for record in results],
    })


@search_bp.route('/api/sources', methods=['GET'])
def list_sources():
    """
    List the configured sources.

    Returns:
        {"sources": [{"name": "IGDB", "priority": 1}, ...], "count": 1}
    """
    priorities = get_source_priorities()
    engine = _build_engine(_settings())
    names = engine.adapter_names

    sources = [
        {'name': name, 'priority': priorities.get(name)}
        for name in names
    ]

    return jsonify({'sources': sources, 'count': len(sources)})
