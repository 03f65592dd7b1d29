import asyncio

from gamenexus_app.services import GameService
from gamenexus_app.services.game_service import PLACEHOLDER_COVER_URL, UNKNOWN_GAME_NAME
from sources.base import GameSourceInfo, RatingData
from tests.conftest import DetailsAdapter, FailingAdapter, make_record


def _run(coro):
    return asyncio.run(coro)


def _info(source, **kwargs):
    return GameSourceInfo(source_name=source, **kwargs)


def test_igdb_is_primary_when_it_answers():
    rawg = DetailsAdapter("RAWG", _info(
        "RAWG", name="Hades", description="RAWG text", cover_url="https://rawg/cover.jpg",
        release_date="2020-09-17", developer="Supergiant Games",
    ))
    igdb = DetailsAdapter("IGDB", _info(
        "IGDB", name="Hades", cover_url="https://igdb/cover.jpg", release_date="2020-09-17",
        ratings=[RatingData(score=93, source_name="IGDB Aggregate")],
    ))
    service = GameService([rawg, igdb])

    game = _run(service.get_game({"IGDB": "113112", "RAWG": 274755}, "Hades", "2020-09-17"))

    assert game.primary_source == "IGDB"
    assert game.main_cover_url == "https://igdb/cover.jpg"
    # Gaps in the primary view are filled from the other catalogs
    assert game.main_description == "RAWG text"
    assert game.developer == "Supergiant Games"
    assert game.source_ids == {"IGDB": "113112", "RAWG": "274755"}
    assert list(game.sources) == ["RAWG", "IGDB"]
    assert rawg.detail_calls == [({"IGDB": "113112", "RAWG": 274755}, "Hades", "2020-09-17")]


def test_first_answer_is_primary_without_igdb():
    igdb = DetailsAdapter("IGDB", None)
    rawg = DetailsAdapter("RAWG", _info("RAWG", name="Hades"))
    opencritic = DetailsAdapter("OpenCritic", _info("OpenCritic", name="Hades", cover_url="https://oc/c.jpg"))
    service = GameService([igdb, rawg, opencritic])

    game = _run(service.get_game({"RAWG": "1", "OpenCritic": "2"}))

    assert game.primary_source == "RAWG"
    assert game.main_cover_url == "https://oc/c.jpg"
    assert list(game.sources) == ["RAWG", "OpenCritic"]


def test_fallback_name_and_cover():
    service = GameService([DetailsAdapter("RAWG", _info("RAWG"))])

    assert _run(service.get_game({"RAWG": "1"}, "Hades")).name == "Hades"

    game = _run(service.get_game({"RAWG": "1"}))
    assert game.name == UNKNOWN_GAME_NAME
    assert game.main_cover_url == PLACEHOLDER_COVER_URL


def test_no_details_anywhere():
    service = GameService([DetailsAdapter("IGDB"), DetailsAdapter("RAWG")])

    assert _run(service.get_game({"IGDB": "1"})) is None
    assert _run(GameService().get_game({"IGDB": "1"})) is None


def test_broken_adapter_does_not_fail_details():
    class BrokenDetails(FailingAdapter):
        async def get_game_details(self, source_ids, name=None, release_date=None):
            raise RuntimeError("catalog exploded")

    service = GameService([BrokenDetails("IGDB"), DetailsAdapter("RAWG", _info("RAWG", name="Hades"))])

    game = _run(service.get_game({"RAWG": "1"}))

    assert game.primary_source == "RAWG"


def test_details_to_dict():
    service = GameService([DetailsAdapter("IGDB", _info(
        "IGDB", name="Hades", cover_url="https://igdb/c.jpg",
        ratings=[RatingData(score=93, source_name="IGDB Aggregate", count=120)],
    ))])

    data = _run(service.get_game({"IGDB": 113112})).to_dict()

    assert data["sourceIds"] == {"IGDB": "113112"}
    assert data["mainCoverUrl"] == "https://igdb/c.jpg"
    assert data["primarySource"] == "IGDB"
    assert data["sources"]["IGDB"]["ratings"] == [{
        "score": 93, "sourceName": "IGDB Aggregate", "url": None, "summary": None, "count": 120,
    }]
    assert data["sources"]["IGDB"]["screenshots"] == []


def test_listings_prefer_igdb():
    rawg = DetailsAdapter("RAWG", popular=[make_record("Doom", "RAWG")])
    igdb = DetailsAdapter(
        "IGDB",
        popular=[make_record("Hades", "IGDB", game_id=i) for i in range(3)],
        new=[make_record("Hades II", "IGDB")],
    )
    service = GameService([rawg, igdb])

    assert len(_run(service.get_popular_games(2))) == 2
    assert [r.name for r in _run(service.get_new_games())] == ["Hades II"]
    assert igdb.listing_calls == [("popular", 2), ("new", 4)]
    assert rawg.listing_calls == []


def test_listings_fall_back_to_first_adapter():
    rawg = DetailsAdapter("RAWG", new=[make_record("Doom", "RAWG")])
    service = GameService([rawg, DetailsAdapter("OpenCritic")])

    assert [r.name for r in _run(service.get_new_games())] == ["Doom"]
    assert _run(service.get_popular_games()) == []
    assert rawg.listing_calls == [("new", 4), ("popular", 12)]

    assert _run(GameService().get_popular_games()) == []


def test_close_closes_adapters():
    adapter = DetailsAdapter("IGDB")
    _run(GameService([adapter]).close())
    assert adapter.closed
