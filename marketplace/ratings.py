"""
Ratings and reviews left by tourists on completed bookings.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from marketplace.bookings import (
    GUIDE_SUMMARY_FIELDS,
    TOURIST_SUMMARY_FIELDS,
    tourist_name,
)
from marketplace.dependencies import CurrentUser
from marketplace.errors import forbidden, not_found, validation
from marketplace.notifications import (
    RATING_RECEIVED,
    REVIEW_DELETED,
    REVIEW_POSTED,
    send_template,
)
from marketplace.security import short_id
from marketplace.store import Store, UniqueViolation

logger = logging.getLogger(__name__)

LIST_TYPES = ("my", "guide", "all")


def _guide_user_id(store: Store, guide_id: str) -> Optional[str]:
    guide = store.first("guides", {"id": guide_id})
    return guide.get("user_id") if guide else None


def rate_booking(
    store: Store,
    tourist_id: str,
    booking_id: str,
    rating: int,
    review_text: Optional[str] = None,
) -> Tuple[dict, bool]:
    """
    Create or replace the rating for one of the tourist's completed bookings.

    Returns the rating row and whether it was newly created. There is at
    most one rating per booking; rating the same booking again updates it.
    """
    if not 1 <= rating <= 5:
        raise validation("rating must be between 1 and 5")
    review_text = (review_text or "").strip() or None

    booking = store.first(
        "bookings",
        {"id": booking_id, "tourist_id": tourist_id, "status": "completed"},
    )
    if not booking:
        raise not_found("Booking not found or not completed")

    values = {"rating": rating, "review_text": review_text}
    if store.first("ratings_reviews", {"booking_id": booking_id}):
        updated = store.update("ratings_reviews", values, {"booking_id": booking_id})
        return updated[0], False

    try:
        created = store.insert(
            "ratings_reviews",
            {
                "booking_id": booking_id,
                "tourist_id": tourist_id,
                "guide_id": booking["guide_id"],
                **values,
            },
        )
    except UniqueViolation:
        # Lost a race with a concurrent first rating; apply ours on top.
        updated = store.update(
            "ratings_reviews", values, {"booking_id": booking_id}
        )
        return updated[0], False

    guide_user = _guide_user_id(store, booking["guide_id"])
    context = {"tourist_name": tourist_name(store, tourist_id), "rating": rating}
    related = {
        "related_booking_id": booking_id,
        "related_guide_id": booking["guide_id"],
        "related_user_id": tourist_id,
    }
    send_template(store, guide_user, RATING_RECEIVED.render(**context), **related)
    if review_text:
        send_template(store, guide_user, REVIEW_POSTED.render(**context), **related)
    return created, True


def delete_rating(store: Store, user: CurrentUser, rating_id: str) -> dict:
    if not rating_id:
        raise validation("rating_id is required")
    rating = store.first("ratings_reviews", {"id": rating_id})
    if not rating:
        raise not_found("Rating not found")
    if rating["tourist_id"] != user.id and not user.is_admin:
        raise forbidden("Unauthorized to delete this rating")

    store.delete("ratings_reviews", {"id": rating_id})
    logger.info("Rating %s deleted by %s", short_id(rating_id), short_id(user.id))

    send_template(
        store,
        _guide_user_id(store, rating["guide_id"]),
        REVIEW_DELETED,
        related_guide_id=rating["guide_id"],
        related_user_id=rating["tourist_id"],
    )
    return rating


def _enrich(
    store: Store, ratings: List[dict], *, with_guide: bool, with_tourist: bool
) -> List[dict]:
    guides = {}
    if with_guide:
        guide_ids = sorted({r["guide_id"] for r in ratings})
        guides = {
            row["id"]: {name: row.get(name) for name in GUIDE_SUMMARY_FIELDS}
            for row in store.select("guides", {"id": guide_ids})
        }
    tourists = {}
    if with_tourist:
        tourist_ids = sorted({r["tourist_id"] for r in ratings})
        tourists = {
            row["user_id"]: {name: row.get(name) for name in TOURIST_SUMMARY_FIELDS}
            for row in store.select("tourist_profiles", {"user_id": tourist_ids})
        }
    return [
        {
            **rating,
            "guide": guides.get(rating["guide_id"]),
            "tourist": tourists.get(rating["tourist_id"]),
        }
        for rating in ratings
    ]


def list_ratings(
    store: Store, user: CurrentUser, list_type: str = "my"
) -> List[dict]:
    """
    Ratings visible to ``user`` for the requested view.

    ``my`` is what a tourist wrote, ``guide`` is what was written about the
    caller's guide profile and ``all`` is the admin view. Callers without a
    users row are treated as guides.
    """
    if list_type not in LIST_TYPES:
        raise validation("type must be one of my, guide, all")
    role = user.role or "guide"

    if list_type == "all" or (list_type == "guide" and role == "admin"):
        if role != "admin":
            raise forbidden("Admin access required")
        filters = None
    elif role == "guide":
        guide = store.first("guides", {"user_id": user.id})
        if not guide:
            return []
        filters = {"guide_id": guide["id"]}
    elif list_type == "guide":
        raise forbidden("Only guides can view ratings about themselves")
    else:
        filters = {"tourist_id": user.id}

    ratings = store.select(
        "ratings_reviews", filters, order_by="created_at", descending=True
    )
    if not ratings:
        return []
    return _enrich(
        store,
        ratings,
        with_guide=list_type in ("my", "all"),
        with_tourist=list_type in ("guide", "all"),
    )
