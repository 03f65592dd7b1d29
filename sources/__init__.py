"""
================================================================================
GameNexus - Source Registry
================================================================================
Central registry of game catalog adapters.

Adding a new source:
  1. Create the adapter class extending BaseSearchAdapter
  2. Add a SourceEntry to ADAPTER_REGISTRY with a priority and a factory that
     returns None when the source's credentials are missing

Priority (lower = preferred) decides the fan-out order, which in turn decides
which record seeds a merge group when scores tie.
================================================================================
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
import logging

import httpx

from .base import BaseSearchAdapter, ReleaseKind, SourceRecord
from .igdb import IGDBAdapter
from .opencritic import OpenCriticAdapter
from .rawg import RAWGAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceEntry:
    name: str
    priority: int
    # (settings, transport) -> adapter, or None when not configured
    factory: Callable[..., Optional[BaseSearchAdapter]]


def _make_igdb(settings, transport=None) -> Optional[BaseSearchAdapter]:
    if not (settings.igdb_client_id and settings.igdb_access_token):
        return None
    return IGDBAdapter(
        settings.igdb_client_id,
        settings.igdb_access_token,
        timeout=settings.request_timeout,
        transport=transport,
    )


def _make_rawg(settings, transport=None) -> Optional[BaseSearchAdapter]:
    if not settings.rawg_api_key:
        return None
    return RAWGAdapter(settings.rawg_api_key, timeout=settings.request_timeout, transport=transport)


def _make_opencritic(settings, transport=None) -> Optional[BaseSearchAdapter]:
    if not settings.opencritic_api_key:
        return None
    return OpenCriticAdapter(settings.opencritic_api_key, timeout=settings.request_timeout, transport=transport)


ADAPTER_REGISTRY: List[SourceEntry] = [
    SourceEntry(IGDBAdapter.name, 1, _make_igdb),
    SourceEntry(RAWGAdapter.name, 2, _make_rawg),
    SourceEntry(OpenCriticAdapter.name, 3, _make_opencritic),
]


def get_adapter_names() -> List[str]:
    """All known source names, highest priority first."""
    return [entry.name for entry in sorted(ADAPTER_REGISTRY, key=lambda e: e.priority)]


def get_enabled_adapters(settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> List[BaseSearchAdapter]:
    """
    Instantiate every adapter whose credentials are configured.

    Args:
        settings: SearchSettings carrying credentials and timeouts
        transport: Optional httpx transport shared by all adapters (tests)

    Returns:
        Adapters ordered by priority (lowest number first)
    """
    adapters = []
    for entry in sorted(ADAPTER_REGISTRY, key=lambda e: e.priority):
        adapter = entry.factory(settings, transport)
        if adapter is None:
            logger.info(f"Source {entry.name} disabled (no credentials configured)")
            continue
        adapters.append(adapter)
    return adapters


def get_source_priorities() -> Dict[str, int]:
    return {entry.name: entry.priority for entry in ADAPTER_REGISTRY}


__all__ = [
    'ADAPTER_REGISTRY',
    'BaseSearchAdapter',
    'ReleaseKind',
    'SourceEntry',
    'SourceRecord',
    'get_adapter_names',
    'get_enabled_adapters',
    'get_source_priorities',
]
