"""
Game title normalization.

Canonical names are used only for comparison, never for display:
  "Street Fighter V"                  -> "streetfighter5"
  "Commander Lilith & the Fight ..."  -> "commanderlilithandthefight..."
"""

import re
from typing import Optional


# Longest numerals first so "XIII" is not eaten as "X" + "III".
ROMAN_TO_ARABIC = (
    ('xiii', '13'),
    ('xii', '12'),
    ('xi', '11'),
    ('viii', '8'),
    ('vii', '7'),
    ('vi', '6'),
    ('iv', '4'),
    ('ix', '9'),
    ('iii', '3'),
    ('ii', '2'),
    ('v', '5'),
    ('x', '10'),
    ('i', '1'),
)

# Token boundaries are any character outside ASCII a-z/0-9 (underscore
# included). re.ASCII keeps case folding away from look-alikes such as
# U+017F (long s) and U+212A (Kelvin sign).
_ROMAN_PATTERNS = [
    (re.compile(rf'(?<![a-z0-9]){numeral}(?![a-z0-9])', re.IGNORECASE | re.ASCII), arabic)
    for numeral, arabic in ROMAN_TO_ARABIC
]

_NON_ALNUM = re.compile(r'[^a-z0-9]')


def convert_roman_numerals(text: str) -> str:
    """
    Replace standalone Roman numerals I-XIII with Arabic digits.

    Only whole tokens are touched: "Street Fighter V" becomes
    "Street Fighter 5", while "Vice City" and "Civilization" are left alone.
    """
    result = text
    for pattern, arabic in _ROMAN_PATTERNS:
        result = pattern.sub(arabic, result)
    return result


def normalize_game_name(title: Optional[str]) -> str:
    """
    Normalize a game title for comparison.

    Steps:
      1. Lowercase
      2. Convert Roman numerals to Arabic (v -> 5, iv -> 4, ...)
      3. Replace "&" with "and"
      4. Drop everything that is not a-z or 0-9

    Lowercasing runs first because some characters lowercase into ASCII
    ("İ" -> "i" + U+0307), and numerals must be judged on the final letters.

    Empty or whitespace-only titles normalize to "". The function is
    idempotent: normalize_game_name(normalize_game_name(x)) == normalize_game_name(x).
    """
    if not title or not title.strip():
        return ""

    normalized = title.lower()
    normalized = convert_roman_numerals(normalized)
    normalized = normalized.replace('&', 'and')
    return _NON_ALNUM.sub('', normalized)
