from datetime import date, datetime

import pytest

from gamenexus_app.search.compatibility import (
    dates_compatible,
    dates_exactly_equal,
    dates_known_and_compatible,
    find_matching_game,
    matches_by_name_and_date,
    parse_date,
    platform_families,
    platform_family,
    platforms_compatible,
)
from tests.conftest import make_record


@pytest.mark.parametrize("value,expected", [
    ("2020-09-17", date(2020, 9, 17)),
    ("2020-09-17T00:00:00.000Z", date(2020, 9, 17)),
    ("Sep 17, 2020", date(2020, 9, 17)),
    ("September 17, 2020", date(2020, 9, 17)),
    (date(2020, 9, 17), date(2020, 9, 17)),
    (datetime(2020, 9, 17, 12, 30), date(2020, 9, 17)),
])
def test_parse_date_formats(value, expected):
    assert parse_date(value) == expected


@pytest.mark.parametrize("value", [None, "", "TBA", "Q4 2025", "2020-13-45"])
def test_parse_date_unknown(value):
    assert parse_date(value) is None


def test_dates_within_tolerance():
    assert dates_compatible("2020-09-17", "2020-09-27")
    assert dates_compatible("2020-01-01", "2020-02-01")       # exactly 31 days
    assert not dates_compatible("2020-01-01", "2020-02-02")   # 32 days
    assert not dates_compatible("2017-09-29", "2019-09-29")


def test_missing_date_is_compatible():
    assert dates_compatible(None, "2020-09-17")
    assert dates_compatible("garbage", "2020-09-17")
    assert not dates_known_and_compatible(None, "2020-09-17")


def test_custom_tolerance():
    assert not dates_compatible("2020-01-01", "2020-01-10", tolerance_days=3)


def test_dates_exactly_equal():
    assert dates_exactly_equal("2016-05-19", "May 19, 2016")
    assert not dates_exactly_equal("2016-05-19", "2016-05-20")
    assert not dates_exactly_equal(None, None)


@pytest.mark.parametrize("name,family", [
    ("PlayStation 4", "ps4"),
    ("PS4", "ps4"),
    ("PlayStation 5", "ps5"),
    ("PlayStation Vita", "ps-vita"),
    ("Xbox Series S/X", "xbox-series"),
    ("Xbox One", "xbox-one"),
    ("Xbox 360", "xbox-360"),
    ("Xbox", "xbox"),
    ("Nintendo Switch", "switch"),
    ("Nintendo 3DS", "3ds"),
    ("iOS", "ios"),
    ("Android", "android"),
    ("PC (Microsoft Windows)", "pc"),
    ("PC", "pc"),
    ("Steam", "pc"),
    ("macOS", "mac"),
    ("Linux", "linux"),
])
def test_platform_family_table(name, family):
    assert platform_family(name) == family


def test_unknown_platform_maps_to_itself():
    assert platform_family("Tesla Arcade") == "teslaarcade"


def test_blank_platforms_ignored():
    assert platform_family("  ") is None
    assert platform_families(["", None, "PC"]) == {"pc"}


def test_platforms_intersect():
    a = make_record("Hades", "IGDB", platforms=["PC (Microsoft Windows)", "Nintendo Switch"])
    b = make_record("Hades", "RAWG", platforms=["PC", "PlayStation 4"])
    assert platforms_compatible(a, b)


def test_platforms_disjoint():
    a = make_record("Cuphead", "IGDB", platforms=["PC", "Xbox One"])
    b = make_record("Cuphead", "RAWG", platforms=["Tesla"])
    assert not platforms_compatible(a, b)


def test_missing_platforms_fall_back_to_dates():
    a = make_record("Hades", "IGDB", platforms=["PC"], release_date="2020-09-17")
    near = make_record("Hades", "OpenCritic", release_date="2020-09-20")
    far = make_record("Hades", "OpenCritic", release_date="2018-12-06")
    undated = make_record("Hades", "OpenCritic")
    assert platforms_compatible(a, near)
    assert not platforms_compatible(a, far)
    assert platforms_compatible(a, undated)


def test_name_and_date_lookup_match():
    assert matches_by_name_and_date("Diablo IV", "2023-06-06", "Diablo 4", "2023-06-01")
    assert matches_by_name_and_date("Hades", None, "HADES", "2020-09-17")
    assert matches_by_name_and_date("Hades", "2020-09-17", "Hades", None)

    assert not matches_by_name_and_date("Hades", "2020-09-17", "Hades II", "2020-09-17")
    assert not matches_by_name_and_date("Doom", "1993-12-10", "Doom", "2016-05-13")
    assert not matches_by_name_and_date("", None, "!!!", None)


def test_find_matching_game_returns_first_match():
    games = [
        {"id": 1, "name": "Doom", "released": "2016-05-13"},
        {"id": 2, "name": "Doom II", "released": "1994-09-30"},
        {"id": 3, "name": "DOOM", "released": "1993-12-10"},
        {"id": 4, "name": "Doom", "released": "1993-12-10"},
    ]

    def get_name(game):
        return game["name"]

    def get_date(game):
        return game["released"]

    assert find_matching_game(games, "Doom", "1993-12-01", get_name, get_date)["id"] == 3
    assert find_matching_game(games, "Doom", None, get_name, get_date)["id"] == 1
    assert find_matching_game(games, "Quake", None, get_name, get_date) is None
    assert find_matching_game([], "Doom", None, get_name, get_date) is None
