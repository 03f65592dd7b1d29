"""
Per-request memo for search results.

Design:
  - Lives for one logical request only (the Flask layer keeps it on flask.g)
  - Keyed by the trimmed, case-folded query + sorted source selection
    (queries that reach the catalogs differently, like "Diablo IV" and
    "Diablo 4", get separate entries)
  - Concurrent callers share the in-flight asyncio.Task
  - Later callers get the settled result
  - No TTL, no eviction: the memo is dropped with the request

Usage:
    memo = SearchMemo()

    results = await memo.get_or_run(
        "Hades", ["IGDB", "RAWG"],
        lambda: engine.run_search("Hades", ["IGDB", "RAWG"]),
    )

    stats = memo.stats()
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple


MemoKey = Tuple[str, str]


class SearchMemo:
    """In-memory memo of search results, shared by callers within one request."""

    def __init__(self):
        self._tasks: Dict[MemoKey, asyncio.Task] = {}
        self._hits = 0
        self._misses = 0

    def _make_key(self, query: str, sources: Optional[List[str]] = None) -> MemoKey:
        """
        Generate memo key from query and source selection.

        Args:
            query: Search query string
            sources: Selected source names (None = all sources)

        Returns:
            (trimmed case-folded query, source selection) tuple
        """
        if sources is None:
            sources_str = '*'
        else:
            sources_str = ','.join(sorted(set(sources)))
        return query.strip().casefold(), sources_str

    def __contains__(self, key: MemoKey) -> bool:
        return key in self._tasks

    async def get_or_run(
        self,
        query: str,
        sources: Optional[List[str]],
        factory: Callable[[], Awaitable[Any]]
    ) -> Any:
        """
        Return the memoized result for (query, sources), running factory once.

        Args:
            query: Search query string
            sources: Selected source names (None = all sources)
            factory: Zero-argument callable returning the awaitable to run on a miss

        Returns:
            Result of the (shared) awaitable
        """
        key = self._make_key(query, sources)

        task = self._tasks.get(key)
        if task is None:
            self._misses += 1
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
        else:
            self._hits += 1

        try:
            return await asyncio.shield(task)
        except Exception:
            # A failed run is not memoized; the next caller retries
            if self._tasks.get(key) is task:
                del self._tasks[key]
            raise

    def clear(self):
        """Clear all entries and reset statistics."""
        self._tasks.clear()
        self._hits = 0
        self._misses = 0

    def stats(self) -> Dict[str, Any]:
        """
        Get memo statistics.

        Returns:
            Dict with:
                - size: Number of memoized queries
                - hits: Calls served from an existing entry
                - misses: Calls that started a search
                - hit_rate: Percentage of hits
        """
        total_requests = self._hits + self._misses
        hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0.0

        return {
            'size': len(self._tasks),
            'hits': self._hits,
            'misses': self._misses,
            'hit_rate': round(hit_rate, 2)
        }
