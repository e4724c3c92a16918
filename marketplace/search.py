"""
Guide search.

Candidates are loaded once (approved, active, capped at ``SEARCH_LIMIT``)
and narrowed in Python by name, location, language and availability date.
Every filter is optional and each one only removes guides.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional, Set

from marketplace.errors import BackendError, validation
from marketplace.fuzzy import location_matches
from marketplace.store import Store

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 100
RESULT_FIELDS = (
    "id",
    "name",
    "location",
    "languages",
    "profile_picture_url",
    "status",
    "is_deactivated",
    "trips_completed",
)


def parse_date(value: str) -> str:
    try:
        return date.fromisoformat(value.strip()).isoformat()
    except ValueError:
        raise validation("availability_date must be YYYY-MM-DD") from None


def available_guide_ids(store: Store, day: str) -> Optional[Set[str]]:
    """Guide ids with an open availability range covering ``day``.

    Returns None when availability cannot be read.
    """
    try:
        rows = store.select("guide_availability", {"is_available": True})
    except BackendError as exc:
        logger.warning(
            "Availability unavailable, skipping date filter (%s)", type(exc).__name__
        )
        return None
    return {
        row["guide_id"]
        for row in rows
        if row.get("start_date")
        and row.get("end_date")
        and row["start_date"] <= day <= row["end_date"]
    }


def search_guides(
    store: Store,
    name: Optional[str] = None,
    language: Optional[str] = None,
    location: Optional[str] = None,
    availability_date: Optional[str] = None,
) -> List[dict]:
    day = None
    if availability_date and availability_date.strip():
        day = parse_date(availability_date)

    guides = store.select(
        "guides",
        {"status": "approved", "is_deactivated": False},
        order_by="created_at",
        descending=True,
        limit=SEARCH_LIMIT,
    )

    if name and name.strip():
        needle = name.strip().lower()
        guides = [g for g in guides if needle in (g.get("name") or "").lower()]

    if location and location.strip():
        query = location.strip()
        guides = [g for g in guides if location_matches(g.get("location"), query)]

    if language and language.strip():
        wanted = language.strip().lower()
        guides = [
            g
            for g in guides
            if isinstance(g.get("languages"), list)
            and any((lang or "").lower() == wanted for lang in g["languages"])
        ]

    if day:
        allowed = available_guide_ids(store, day)
        if allowed is not None:
            guides = [g for g in guides if g["id"] in allowed]

    return [{field: g.get(field) for field in RESULT_FIELDS} for g in guides]
