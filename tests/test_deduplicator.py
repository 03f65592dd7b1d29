from gamenexus_app.config import CoverPriority, SearchSettings
from gamenexus_app.search.deduplicator import (
    SearchDeduplicator,
    merge_records,
    merge_release_kind,
)
from sources.base import ReleaseKind
from tests.conftest import make_record


def _aggregate(records, **settings):
    return SearchDeduplicator(SearchSettings(**settings)).aggregate(records)


def test_empty_input():
    assert _aggregate([]) == []


def test_single_record_unchanged():
    record = make_record("Hades", "IGDB", release_date="2020-09-17", platforms=["PC"])
    assert _aggregate([record]) == [record]


def test_hades_merges_across_sources():
    igdb = make_record("Hades", "IGDB", game_id=113112, release_date="2020-09-17",
                       platforms=["PC (Microsoft Windows)", "Nintendo Switch"])
    rawg = make_record("Hades", "RAWG", game_id=274755, release_date="2020-09-27",
                       platforms=["PC", "PlayStation 4"])

    results = _aggregate([igdb, rawg])

    assert len(results) == 1
    merged = results[0]
    assert merged.sources == ["IGDB", "RAWG"]
    assert merged.source_ids == {"IGDB": "113112", "RAWG": "274755"}
    assert merged.platforms == ["PC (Microsoft Windows)", "Nintendo Switch", "PC", "PlayStation 4"]
    assert merged.release_date == "2020-09-17"


def test_cuphead_different_platforms_and_dates_stay_apart():
    a = make_record("Cuphead", "IGDB", release_date="2017-09-29", platforms=["PC", "Xbox One"])
    b = make_record("Cuphead", "RAWG", release_date="2019-09-29", platforms=["Tesla"])

    assert len(_aggregate([a, b])) == 2


def test_same_source_never_merges_with_itself():
    a = make_record("Hades", "IGDB", game_id=1, release_date="2020-09-17")
    b = make_record("Hades", "IGDB", game_id=2, release_date="2020-09-17")

    results = _aggregate([a, b])

    assert [r.source_ids for r in results] == [{"IGDB": "1"}, {"IGDB": "2"}]


def test_fallout_dlc_merges_without_date_or_platforms():
    igdb = make_record("Fallout 4 - Far Harbor", "IGDB", release_date="2016-05-19",
                       platforms=["PC", "PlayStation 4", "Xbox One"], release_kind=ReleaseKind.DLC)
    opencritic = make_record("Fallout 4: Far Harbor", "OpenCritic", release_kind=ReleaseKind.UNKNOWN)

    results = _aggregate([igdb, opencritic])

    assert len(results) == 1
    merged = results[0]
    assert merged.sources == ["IGDB", "OpenCritic"]
    assert merged.release_date == "2016-05-19"
    assert merged.name == "Fallout 4 - Far Harbor"
    assert merged.release_kind == ReleaseKind.DLC


def test_dates_too_far_apart_with_equal_names():
    a = make_record("Doom", "IGDB", release_date="1993-12-10")
    b = make_record("Doom", "RAWG", release_date="2016-05-13")

    assert len(_aggregate([a, b])) == 2


def test_equal_names_match_when_a_date_is_missing():
    dated = make_record("Hades", "IGDB", release_date="2020-09-17", platforms=["PC"])
    undated = make_record("Hades", "RAWG", platforms=["PC"])
    unparseable = make_record("Hades", "OpenCritic", release_date="TBA", platforms=["PC"])

    results = _aggregate([dated, undated, unparseable])

    assert len(results) == 1
    assert results[0].sources == ["IGDB", "RAWG", "OpenCritic"]
    assert results[0].release_date == "2020-09-17"


def test_substring_names_need_exact_date():
    base = make_record("Hades", "IGDB", release_date="2020-09-17", platforms=["PC"])
    same_day = make_record("Hades Deluxe", "RAWG", release_date="2020-09-17", platforms=["PC"])
    next_day = make_record("Hades Deluxe", "RAWG", release_date="2020-09-18", platforms=["PC"])
    undated = make_record("Hades Deluxe", "RAWG", platforms=["PC"])

    assert len(_aggregate([base, same_day])) == 1
    assert len(_aggregate([base, next_day])) == 2
    assert len(_aggregate([base, undated])) == 2


def test_missing_date_still_requires_platform_overlap():
    # Known edge case: equal names and a missing date are not enough when
    # both records list platforms that share no family.
    a = make_record("Hades", "IGDB", release_date="2020-09-17", platforms=["PC"])
    b = make_record("Hades", "RAWG", platforms=["PlayStation 5"])

    assert len(_aggregate([a, b])) == 2


def test_empty_names_need_known_compatible_dates():
    a = make_record("", "IGDB", release_date="2020-01-01")
    b = make_record("!!!", "RAWG", release_date="2020-01-05")
    undated = make_record("", "RAWG")
    named = make_record("Hades", "RAWG", release_date="2020-01-01")

    assert len(_aggregate([a, b])) == 1
    assert len(_aggregate([a, undated])) == 2
    assert len(_aggregate([a, named])) == 2


def test_grouping_is_first_fit_in_insertion_order():
    early = make_record("Hades", "IGDB", release_date="2020-01-01", platforms=["PC"])
    late = make_record("Hades", "RAWG", release_date="2020-03-01", platforms=["PC"])
    floating = make_record("Hades", "OpenCritic")

    results = _aggregate([early, late, floating])

    assert [r.sources for r in results] == [["IGDB", "OpenCritic"], ["RAWG"]]


def test_custom_date_tolerance():
    a = make_record("Hades", "IGDB", release_date="2020-09-17")
    b = make_record("Hades", "RAWG", release_date="2020-09-27")

    assert len(_aggregate([a, b], date_tolerance_days=5)) == 2


def test_aggregate_does_not_mutate_inputs():
    a = make_record("Hades", "IGDB", release_date="2020-09-17", platforms=["PC"])
    b = make_record("Hades", "RAWG", release_date="2020-09-17", platforms=["PC", "PS4"])

    _aggregate([a, b])

    assert a.sources == ["IGDB"]
    assert a.platforms == ["PC"]
    assert a.source_ids == {"IGDB": a.source_ids["IGDB"]}


# =============================================================================
# merge_records
# =============================================================================

def _covered(name, source):
    return make_record(name, source, cover_url=f"https://img/{source}.jpg", cover_source=source)


def test_cover_priority_independent_of_order():
    igdb = _covered("Hades", "IGDB")
    rawg = _covered("Hades", "RAWG")

    assert merge_records(igdb, rawg).cover_source == "IGDB"
    assert merge_records(rawg, igdb).cover_source == "IGDB"
    assert merge_records(rawg, igdb).cover_url == "https://img/IGDB.jpg"


def test_opencritic_cover_beats_rawg():
    rawg = _covered("Hades", "RAWG")
    opencritic = _covered("Hades", "OpenCritic")

    assert merge_records(rawg, opencritic).cover_source == "OpenCritic"
    assert merge_records(opencritic, rawg).cover_source == "OpenCritic"


def test_missing_cover_takes_any_cover():
    bare = make_record("Hades", "IGDB")
    rawg = _covered("Hades", "RAWG")

    merged = merge_records(bare, rawg)

    assert merged.cover_url == "https://img/RAWG.jpg"
    assert merged.cover_source == "RAWG"


def test_injected_cover_priority():
    igdb = _covered("Hades", "IGDB")
    rawg = _covered("Hades", "RAWG")
    priority = CoverPriority(preferred=("RAWG",), deprioritized=("IGDB",))

    assert merge_records(igdb, rawg, priority).cover_source == "RAWG"


def test_unlisted_cover_source_ranks_between():
    priority = CoverPriority()
    assert priority.rank("IGDB") < priority.rank("OpenCritic") < priority.rank("Steam") < priority.rank("RAWG")
    assert priority.rank(None) == priority.rank("Steam")


def test_longer_name_wins_ties_keep_existing():
    a = make_record("Hades", "IGDB")
    b = make_record("HADES", "RAWG")
    c = make_record("Hades: Deluxe Edition", "RAWG")

    assert merge_records(a, b).name == "Hades"
    assert merge_records(a, c).name == "Hades: Deluxe Edition"


def test_first_known_date_and_rating():
    a = make_record("Hades", "IGDB", rating=0)
    b = make_record("Hades", "RAWG", release_date="2020-09-17", rating=93)

    merged = merge_records(a, b)

    assert merged.release_date == "2020-09-17"
    assert merged.rating == 0


def test_source_ids_existing_wins_on_conflict():
    a = make_record("Hades", "IGDB", game_id=1)
    b = make_record("Hades", "IGDB", game_id=2)

    assert merge_records(a, b).source_ids == {"IGDB": "1"}


def test_match_score_keeps_maximum():
    a = make_record("Hades", "IGDB", match_score=85)
    b = make_record("Hades", "RAWG", match_score=100)

    assert merge_records(a, b).match_score == 100


def test_merge_is_pure():
    a = make_record("Hades", "IGDB", platforms=["PC"])
    b = make_record("Hades", "RAWG", platforms=["PS4"])

    merged = merge_records(a, b)

    assert merged is not a
    assert a.sources == ["IGDB"]
    assert a.platforms == ["PC"]


def test_release_kind_resolution():
    assert merge_release_kind(ReleaseKind.UNKNOWN, ReleaseKind.DLC) == ReleaseKind.DLC
    assert merge_release_kind(ReleaseKind.BASE_GAME, ReleaseKind.UNKNOWN) == ReleaseKind.BASE_GAME
    assert merge_release_kind(ReleaseKind.BASE_GAME, ReleaseKind.EXPANSION) == ReleaseKind.EXPANSION
    assert merge_release_kind(ReleaseKind.BUNDLE, ReleaseKind.BASE_GAME) == ReleaseKind.BUNDLE
    assert merge_release_kind(ReleaseKind.DLC, ReleaseKind.BUNDLE) == ReleaseKind.DLC
