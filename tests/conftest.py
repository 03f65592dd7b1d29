import os
import tempfile

# Keep log files out of the source tree during tests
os.environ.setdefault("GAMENEXUS_LOG_DIR", tempfile.mkdtemp(prefix="gamenexus-logs-"))

import pytest

from sources.base import ReleaseKind, SourceRecord


def make_record(name, source="IGDB", game_id=None, **kwargs):
    """Build a single-source record with sensible defaults."""
    kwargs.setdefault("release_kind", ReleaseKind.BASE_GAME)
    return SourceRecord(
        name=name,
        sources=[source],
        source_ids={source: str(game_id if game_id is not None else abs(hash((source, name))) % 100000)},
        **kwargs,
    )


class StaticAdapter:
    """Adapter returning canned records; counts calls."""

    def __init__(self, name, records):
        self.name = name
        self.records = records
        self.calls = []
        self.closed = False

    async def search(self, query):
        self.calls.append(query)
        return list(self.records)

    async def close(self):
        self.closed = True


class FailingAdapter:
    """Adapter that breaks its never-raise contract."""

    def __init__(self, name="Broken"):
        self.name = name
        self.calls = 0

    async def search(self, query):
        self.calls += 1
        raise RuntimeError("catalog exploded")


@pytest.fixture
def record_factory():
    return make_record


class DetailsAdapter:
    """Adapter returning canned game details and listings; records calls."""

    def __init__(self, name, details=None, popular=None, new=None):
        self.name = name
        self.details = details
        self.popular = popular or []
        self.new = new or []
        self.detail_calls = []
        self.listing_calls = []
        self.closed = False

    async def get_game_details(self, source_ids, name=None, release_date=None):
        self.detail_calls.append((dict(source_ids), name, release_date))
        return self.details

    async def get_popular_games(self, limit=12):
        self.listing_calls.append(("popular", limit))
        return list(self.popular)[:limit]

    async def get_new_games(self, limit=4):
        self.listing_calls.append(("new", limit))
        return list(self.new)[:limit]

    async def close(self):
        self.closed = True
