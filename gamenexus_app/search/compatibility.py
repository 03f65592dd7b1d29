"""
Release-date and platform compatibility checks.

Two catalog entries with the same title are only the same game if they could
plausibly describe the same release: dates within a month of each other, and
platform lists that share at least one platform family.
"""

import re
from datetime import date, datetime
from typing import Callable, Iterable, Optional, Sequence, Set, TypeVar, Union

from sources.base import SourceRecord
from ..config import DEFAULT_DATE_TOLERANCE_DAYS
from .normalizer import normalize_game_name


DateLike = Union[str, date, datetime, None]

T = TypeVar('T')

# Textual forms seen in catalog payloads besides ISO dates.
_DATE_FORMATS = (
    '%b %d, %Y',   # "Sep 17, 2020"
    '%B %d, %Y',   # "September 17, 2020"
)

# Ordered rules: first rule with a matching substring wins. Add new aliases
# here; matching code never needs to change.
PLATFORM_FAMILY_RULES = (
    (('xbox series',), 'xbox-series'),
    (('xbox one',), 'xbox-one'),
    (('xbox 360',), 'xbox-360'),
    (('xbox',), 'xbox'),
    (('playstation 5', 'ps5'), 'ps5'),
    (('playstation 4', 'ps4'), 'ps4'),
    (('playstation 3', 'ps3'), 'ps3'),
    (('playstation vita', 'ps vita', 'psvita'), 'ps-vita'),
    (('nintendo switch', 'switch'), 'switch'),
    (('3ds',), '3ds'),
    (('ios', 'iphone', 'ipad'), 'ios'),
    (('android',), 'android'),
    (('windows', 'steam', 'pc'), 'pc'),
    (('macos', 'mac os', 'macintosh', 'mac'), 'mac'),
    (('linux',), 'linux'),
)

_NON_ALNUM = re.compile(r'[^a-z0-9]')


# =============================================================================
# DATES
# =============================================================================

def parse_date(value: DateLike) -> Optional[date]:
    """
    Parse a catalog release date.

    Accepts date/datetime objects, ISO strings ("2020-09-17",
    "2020-09-17T00:00:00.000Z") and "Sep 17, 2020". Anything else is
    treated as unknown and returns None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None


def dates_compatible(a: DateLike, b: DateLike, tolerance_days: int = DEFAULT_DATE_TOLERANCE_DAYS) -> bool:
    """
    True if either date is unknown, or both are within tolerance_days.

    An unknown date is not evidence of a match on its own; callers combine
    this with name and platform checks.
    """
    date_a = parse_date(a)
    date_b = parse_date(b)
    if date_a is None or date_b is None:
        return True
    return abs((date_a - date_b).days) <= tolerance_days


def dates_known_and_compatible(a: DateLike, b: DateLike, tolerance_days: int = DEFAULT_DATE_TOLERANCE_DAYS) -> bool:
    """Like dates_compatible, but both dates must be known."""
    date_a = parse_date(a)
    date_b = parse_date(b)
    if date_a is None or date_b is None:
        return False
    return abs((date_a - date_b).days) <= tolerance_days


def dates_exactly_equal(a: DateLike, b: DateLike) -> bool:
    """True iff both dates are known and fall on the same calendar day."""
    date_a = parse_date(a)
    date_b = parse_date(b)
    return date_a is not None and date_a == date_b


# =============================================================================
# PLATFORMS
# =============================================================================

def platform_family(name: Optional[str]) -> Optional[str]:
    """
    Map a platform name to its canonical family.

    "PlayStation 4" and "PS4" -> "ps4"; "PC (Microsoft Windows)" -> "pc".
    Unknown platforms map to their own normalized name, blank names to None.
    """
    if not name or not name.strip():
        return None

    lowered = name.lower()
    for needles, family in PLATFORM_FAMILY_RULES:
        if any(needle in lowered for needle in needles):
            return family

    return _NON_ALNUM.sub('', lowered) or None


def platform_families(platforms: Optional[Iterable[str]]) -> Set[str]:
    families = set()
    for platform in platforms or []:
        family = platform_family(platform)
        if family:
            families.add(family)
    return families


def platforms_compatible(
    a: SourceRecord,
    b: SourceRecord,
    tolerance_days: int = DEFAULT_DATE_TOLERANCE_DAYS
) -> bool:
    """
    Check whether two records could be the same release platform-wise.

    If both records list platforms, their families must intersect. If either
    has no platform data, the release dates decide instead.
    """
    families_a = platform_families(a.platforms)
    families_b = platform_families(b.platforms)

    if families_a and families_b:
        return bool(families_a & families_b)

    return dates_compatible(a.release_date, b.release_date, tolerance_days)


# =============================================================================
# LOOKUP BY NAME
# =============================================================================

def matches_by_name_and_date(
    target_name: Optional[str],
    target_date: DateLike,
    game_name: Optional[str],
    game_date: DateLike,
    tolerance_days: int = DEFAULT_DATE_TOLERANCE_DAYS
) -> bool:
    """
    Check whether a catalog entry is the game we are looking up by name.

    Normalized names must be equal and non-empty. Dates only veto the match
    when both are known and further apart than tolerance_days.
    """
    target_key = normalize_game_name(target_name)
    if not target_key or target_key != normalize_game_name(game_name):
        return False
    return dates_compatible(target_date, game_date, tolerance_days)


def find_matching_game(
    games: Optional[Sequence[T]],
    name: Optional[str],
    release_date: DateLike,
    get_name: Callable[[T], Optional[str]],
    get_date: Callable[[T], DateLike],
    tolerance_days: int = DEFAULT_DATE_TOLERANCE_DAYS
) -> Optional[T]:
    """
    Return the first game whose name and date match, or None.

    Args:
        games: Raw catalog entries, best hit first
        name: Title being looked up
        release_date: Known release date of that title, if any
        get_name: Extracts an entry's title
        get_date: Extracts an entry's release date

    Example:
        find_matching_game(rawg_results, "Hades", "2020-09-17",
                           lambda g: g.get('name'), lambda g: g.get('released'))
    """
    for game in games or []:
        if matches_by_name_and_date(name, release_date, get_name(game), get_date(game), tolerance_days):
            return game
    return None
