"""
================================================================================
GameNexus - Search Result Deduplicator
================================================================================
Groups records that describe the same game across catalogs and merges each
group into one unified record.

Problem:
  User searches "Hades" -> IGDB, RAWG and OpenCritic each return "Hades",
  spelled and dated slightly differently, with no shared identifier.

Solution:
  1. Single pass over the (relevance-ordered) records
  2. Each record joins the FIRST existing group it is compatible with:
       - no source overlap with the group
       - platform families intersect (or dates agree when platforms are missing)
       - normalized names equal (dates tolerant or missing), or one name
         contains the other and the release dates are identical
  3. Otherwise it starts a new group
  4. Merge fields deterministically (cover by source priority, longest name,
     first known date/rating, union of sources/platforms)

Grouping is order dependent on purpose: A~B and B~C does not pull C into A's
group unless C is compatible with the group as merged so far.

Example Output:
  SourceRecord(
    name="Hades",
    sources=["RAWG", "IGDB"],
    source_ids={"RAWG": "274755", "IGDB": "113112"},
    cover_url="https://images.igdb.com/...", cover_source="IGDB",
    ...
  )
================================================================================
"""

from dataclasses import replace
from typing import List, Optional
import logging

from sources.base import ReleaseKind, SourceRecord, unique
from ..config import CoverPriority, SearchSettings
from .compatibility import (
    dates_compatible,
    dates_exactly_equal,
    dates_known_and_compatible,
    platforms_compatible,
)
from .normalizer import normalize_game_name

logger = logging.getLogger(__name__)


def merge_release_kind(existing: ReleaseKind, incoming: ReleaseKind) -> ReleaseKind:
    """
    Resolve conflicting release kinds.

    A base-game default from one catalog must not overwrite a catalog that
    positively identified the title as an add-on.
    """
    if existing == ReleaseKind.UNKNOWN:
        return incoming
    if incoming == ReleaseKind.UNKNOWN:
        return existing
    if existing == ReleaseKind.BASE_GAME and incoming.is_specific:
        return incoming
    return existing


def merge_records(
    existing: SourceRecord,
    incoming: SourceRecord,
    cover_priority: Optional[CoverPriority] = None
) -> SourceRecord:
    """
    Merge two records describing the same game. Returns a new record.

    Strategy:
      - source_ids: union, existing wins on conflict
      - name: longer string wins (ties keep existing)
      - cover: existing without cover always takes incoming's; otherwise the
        better-ranked cover source wins
      - release_date / rating: first known value, existing first
      - sources / platforms: union
      - release_kind: see merge_release_kind()
      - match_score: highest
    """
    if cover_priority is None:
        cover_priority = CoverPriority()

    source_ids = dict(incoming.source_ids)
    source_ids.update(existing.source_ids)

    name = incoming.name if len(incoming.name) > len(existing.name) else existing.name

    cover_url, cover_source = existing.cover_url, existing.cover_source
    if not existing.cover_url:
        cover_url, cover_source = incoming.cover_url, incoming.cover_source
    elif incoming.cover_url and (
        cover_priority.rank(incoming.cover_source) < cover_priority.rank(existing.cover_source)
    ):
        cover_url, cover_source = incoming.cover_url, incoming.cover_source

    return replace(
        existing,
        source_ids=source_ids,
        name=name,
        cover_url=cover_url,
        cover_source=cover_source,
        release_date=existing.release_date or incoming.release_date,
        rating=existing.rating if existing.rating is not None else incoming.rating,
        sources=unique(existing.sources + incoming.sources),
        platforms=unique(existing.platforms + incoming.platforms),
        release_kind=merge_release_kind(existing.release_kind, incoming.release_kind),
        match_score=max(existing.match_score, incoming.match_score),
    )


class SearchDeduplicator:
    """
    Deduplicates search records into unified per-game records.

    Stateless between calls; one instance can serve many searches.
    """

    def __init__(self, settings: Optional[SearchSettings] = None):
        self.settings = settings or SearchSettings()

    def is_match(self, group: SourceRecord, incoming: SourceRecord) -> bool:
        """Decide whether incoming belongs to an existing merge group."""
        # A source's second hit never joins a group holding its first
        if set(group.sources) & set(incoming.sources):
            return False

        tolerance = self.settings.date_tolerance_days

        if not platforms_compatible(group, incoming, tolerance):
            return False

        group_key = normalize_game_name(group.name)
        incoming_key = normalize_game_name(incoming.name)

        # Titleless records are a weak signal: only a verified date can tie them
        if not group_key or not incoming_key:
            return (
                group_key == incoming_key
                and dates_known_and_compatible(group.release_date, incoming.release_date, tolerance)
            )

        if group_key == incoming_key:
            # A missing date on either side counts as compatible
            return dates_compatible(group.release_date, incoming.release_date, tolerance)

        if group_key in incoming_key or incoming_key in group_key:
            return dates_exactly_equal(group.release_date, incoming.release_date)

        return False

    def aggregate(self, records: List[SourceRecord]) -> List[SourceRecord]:
        """
        Group and merge records.

        Args:
            records: Records from all sources, in the order they should seed
                groups (best relevance first)

        Returns:
            One merged record per group, in group creation order
        """
        if not records:
            return []

        groups: List[SourceRecord] = []

        for record in records:
            for index, group in enumerate(groups):
                if self.is_match(group, record):
                    groups[index] = merge_records(group, record, self.settings.cover_priority)
                    logger.debug(
                        f"Merged '{record.name}' [{', '.join(record.sources)}] "
                        f"into '{group.name}' [{', '.join(group.sources)}]"
                    )
                    break
            else:
                # Groups hold copies; inputs are never mutated
                groups.append(replace(record, source_ids=dict(record.source_ids)))

        logger.info(f"Deduplicated {len(records)} records into {len(groups)} unique games")

        return groups
