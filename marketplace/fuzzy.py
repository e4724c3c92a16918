"""
Character-overlap similarity used by the location filter.
"""

from __future__ import annotations

from collections import Counter

LOCATION_MATCH_THRESHOLD = 70


def calculate_similarity(first: str, second: str) -> float:
    """
    Percentage (0-100) of shared characters between two strings.

    Counts the multiset intersection of the lowercased characters and
    divides by the length of the longer string, so "mumbai" and "mumbay"
    score 5/6 (about 83) while unrelated names score low. Order is ignored.
    """
    first = (first or "").lower()
    second = (second or "").lower()
    longest = max(len(first), len(second))
    if not longest or not first or not second:
        return 0.0
    common = sum((Counter(first) & Counter(second)).values())
    return 100 * common / longest


def location_matches(location: str, query: str) -> bool:
    location = (location or "").lower()
    query = query.lower()
    if query in location:
        return True
    return calculate_similarity(location, query) >= LOCATION_MATCH_THRESHOLD
