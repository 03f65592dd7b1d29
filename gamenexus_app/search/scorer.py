"""
Relevance scoring for search results.

Scores are discrete tiers, not a fuzzy ratio, so results from different
catalogs can be compared and filtered with a single threshold.
"""

from .normalizer import normalize_game_name


SCORE_EXACT = 100
SCORE_CANDIDATE_PREFIX = 90
SCORE_QUERY_PREFIX = 85
SCORE_CANDIDATE_CONTAINS = 70
SCORE_QUERY_CONTAINS = 60
SCORE_NONE = 0

# Short candidates like "it" would otherwise match almost any query.
MIN_CONTAINED_LENGTH = 4


def calculate_search_score(query: str, candidate_name: str) -> int:
    """
    Score how well a candidate title matches a search query.

    Args:
        query: The user's search text
        candidate_name: A title returned by a catalog

    Returns:
        100 exact, 90 candidate starts with query, 85 query starts with
        candidate, 70 candidate contains query, 60 query contains a
        candidate of 4+ characters, otherwise 0. Empty titles score 0.

    Examples:
        calculate_search_score("Hades", "Hades") -> 100
        calculate_search_score("Street Fighter 5", "Street Fighter V: Champion Edition") -> 90
    """
    normalized_query = normalize_game_name(query)
    normalized_candidate = normalize_game_name(candidate_name)

    if not normalized_query or not normalized_candidate:
        return SCORE_NONE

    if normalized_candidate == normalized_query:
        return SCORE_EXACT

    if normalized_candidate.startswith(normalized_query):
        return SCORE_CANDIDATE_PREFIX

    if normalized_query.startswith(normalized_candidate):
        return SCORE_QUERY_PREFIX

    if normalized_query in normalized_candidate:
        return SCORE_CANDIDATE_CONTAINS

    if normalized_candidate in normalized_query and len(normalized_candidate) >= MIN_CONTAINED_LENGTH:
        return SCORE_QUERY_CONTAINS

    return SCORE_NONE


def is_relevant(score: int, threshold: int) -> bool:
    return score >= threshold
