"""
================================================================================
GameNexus - Smart Search Coordinator
================================================================================
Orchestrates parallel catalog queries, relevance filtering and deduplication.

Flow:
  1. Query every selected adapter in parallel (one slow catalog does not
     serialize the others)
  2. Score each record against the query, drop the irrelevant ones
  3. Deduplicate records describing the same game
  4. Rank: multi-platform base games, then other base games, then add-ons
  5. Return at most `limit` unified results

A failing catalog contributes nothing; the search itself never fails because
one source did.
================================================================================
"""

import asyncio
import logging
import time
from dataclasses import replace
from typing import List, Optional, Protocol, Sequence

from sources.base import ReleaseKind, SourceRecord
from ..config import SearchSettings
from ..log import debug_log_event
from .cache import SearchMemo
from .deduplicator import SearchDeduplicator
from .scorer import calculate_search_score, is_relevant

logger = logging.getLogger(__name__)


# Base games on more distinct platforms than this rank first
MULTI_PLATFORM_THRESHOLD = 2


class SourceSearchAdapter(Protocol):
    """Anything with a stable name and a search() that never raises."""

    name: str

    async def search(self, query: str) -> List[SourceRecord]:
        ...


def release_kind_tier(record: SourceRecord) -> int:
    """
    Ranking tier for a merged record (lower sorts first).

    0 = base game on more than two platforms
    1 = base game on two or fewer platforms
    2 = anything else (DLC, expansions, bundles, unknown)
    """
    if record.release_kind != ReleaseKind.BASE_GAME:
        return 2
    if len(set(record.platforms)) > MULTI_PLATFORM_THRESHOLD:
        return 0
    return 1


class SmartSearch:
    """
    Smart search orchestrator with parallel queries and deduplication.
    """

    def __init__(
        self,
        adapters: Optional[Sequence[SourceSearchAdapter]] = None,
        settings: Optional[SearchSettings] = None
    ):
        """
        Args:
            adapters: Source adapters in priority order
            settings: Search tunables (defaults to SearchSettings())
        """
        self.settings = settings or SearchSettings()
        self.adapters: List[SourceSearchAdapter] = list(adapters or [])
        self.deduplicator = SearchDeduplicator(self.settings)

    def register_adapter(self, adapter: SourceSearchAdapter) -> None:
        """Add an adapter after the existing ones."""
        self.adapters.append(adapter)
        logger.info(f"Registered search adapter: {adapter.name}")

    @property
    def adapter_names(self) -> List[str]:
        return [adapter.name for adapter in self.adapters]

    def _select_adapters(self, sources: Optional[List[str]]) -> List[SourceSearchAdapter]:
        """None selects every adapter; otherwise keep registration order."""
        if sources is None:
            return list(self.adapters)
        wanted = set(sources)
        unknown = wanted - set(self.adapter_names)
        if unknown:
            logger.warning(f"Ignoring unknown sources: {', '.join(sorted(unknown))}")
        return [adapter for adapter in self.adapters if adapter.name in wanted]

    async def search(
        self,
        query: str,
        sources: Optional[List[str]] = None,
        limit: Optional[int] = None,
        memo: Optional[SearchMemo] = None
    ) -> List[SourceRecord]:
        """
        Search all selected catalogs and return unified, ranked results.

        Args:
            query: Free-text search query
            sources: Adapter names to query (None = all, [] = none)
            limit: Maximum results (None = settings.max_results)
            memo: Per-request memo; identical queries fan out once

        Returns:
            Unified SourceRecords, best first
        """
        if not query or not query.strip():
            return []

        query = query.strip()

        if limit is None:
            limit = self.settings.max_results

        if memo is not None:
            ranked = await memo.get_or_run(
                query, sources, lambda: self._run_search(query, sources)
            )
        else:
            ranked = await self._run_search(query, sources)

        return ranked[:max(limit, 0)]

    async def _run_search(self, query: str, sources: Optional[List[str]]) -> List[SourceRecord]:
        """Fan out, filter, aggregate and rank. Returns the full ranked list."""
        start_time = time.time()

        adapters = self._select_adapters(sources)
        if not adapters:
            logger.warning("No available sources for search")
            return []

        logger.info(f"Smart search for '{query}' across {len(adapters)} sources")

        # Step 1: Query sources in parallel
        raw_results = await self._parallel_search(query, adapters)

        # Step 2: Score and filter
        scored = self._score(query, raw_results)

        logger.info(
            f"Got {len(raw_results)} raw results, "
            f"{len(scored)} at or above relevance {self.settings.min_relevance}"
        )

        # Step 3: Deduplicate
        unified = self.deduplicator.aggregate(scored)

        # Step 4: Rank
        ranked = self._rank(unified)

        elapsed = time.time() - start_time
        logger.info(f"Smart search completed in {elapsed:.2f}s ({len(ranked)} unique games)")

        debug_log_event({
            'event': 'smart_search',
            'query': query,
            'sources': [adapter.name for adapter in adapters],
            'raw': len(raw_results),
            'relevant': len(scored),
            'unique': len(ranked),
            'elapsed_ms': round(elapsed * 1000),
        })

        return ranked

    async def _parallel_search(
        self,
        query: str,
        adapters: List[SourceSearchAdapter]
    ) -> List[SourceRecord]:
        """
        Query multiple adapters in parallel.

        Returns:
            Combined results from all adapters, in adapter order
        """
        tasks = [self._search_source(adapter, query) for adapter in adapters]

        results = await asyncio.gather(*tasks, return_exceptions=True)

        # Flatten and filter errors
        all_results: List[SourceRecord] = []
        for adapter, result in zip(adapters, results):
            if isinstance(result, BaseException):
                logger.error(f"Search failed for {adapter.name}: {result}")
                continue

            if result:
                all_results.extend(result)

        return all_results

    async def _search_source(self, adapter: SourceSearchAdapter, query: str) -> List[SourceRecord]:
        """Search a single adapter, containing any failure."""
        try:
            results = await adapter.search(query)
            return list(results or [])
        except Exception as e:
            logger.error(f"Source search failed for {adapter.name}: {e}")
            return []

    def _score(self, query: str, records: List[SourceRecord]) -> List[SourceRecord]:
        """Attach match scores, drop irrelevant records, best score first."""
        scored = []
        for record in records:
            score = calculate_search_score(query, record.name)
            if not is_relevant(score, self.settings.min_relevance):
                logger.debug(f"Dropping '{record.name}' ({record.sources[0]}): score {score}")
                continue
            scored.append(replace(record, match_score=score))

        scored.sort(key=lambda r: r.match_score, reverse=True)
        return scored

    def _rank(self, records: List[SourceRecord]) -> List[SourceRecord]:
        return sorted(records, key=lambda r: (release_kind_tier(r), -r.match_score))

    async def close(self):
        """Close adapter HTTP clients."""
        for adapter in self.adapters:
            close = getattr(adapter, 'close', None)
            if close is not None:
                await close()
