"""
================================================================================
GameNexus - Smart Search Package
================================================================================
Reconciles game search results from several catalogs into one list.

Components:
  - normalizer.py - Canonical title keys ("Diablo IV" -> "diablo4")
  - scorer.py - Discrete relevance tiers for a query/title pair
  - compatibility.py - Release date and platform family checks, lookup by name
  - deduplicator.py - Groups and merges records for the same game
  - smart_search.py - Orchestrates parallel queries, filtering and ranking
  - cache.py - Per-request memo of in-flight and settled searches
================================================================================
"""

from .cache import SearchMemo
from .deduplicator import SearchDeduplicator, merge_records
from .normalizer import normalize_game_name
from .scorer import calculate_search_score
from .smart_search import SmartSearch

__all__ = [
    'SearchMemo',
    'SearchDeduplicator',
    'merge_records',
    'normalize_game_name',
    'calculate_search_score',
    'SmartSearch',
]
