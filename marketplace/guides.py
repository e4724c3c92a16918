"""
Guide profile reads, tourist favourites and admin moderation.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from marketplace.errors import conflict, not_found, validation
from marketplace.languages import collect_languages
from marketplace.notifications import (
    GUIDE_APPROVED,
    GUIDE_DEACTIVATED,
    GUIDE_REACTIVATED,
    GUIDE_REJECTED,
    GUIDE_SAVED,
    GUIDE_UNSAVED,
    send_template,
)
from marketplace.security import short_id, validate_uuid
from marketplace.store import Store, UniqueViolation

logger = logging.getLogger(__name__)

APPROVED_ACTIVE = {"status": "approved", "is_deactivated": False}
FEATURED_LIMIT = 4


def approved_guides(store: Store, limit: int = FEATURED_LIMIT) -> List[dict]:
    return store.select(
        "guides",
        APPROVED_ACTIVE,
        order_by="created_at",
        descending=True,
        limit=limit,
    )


def guide_itineraries(store: Store, guide_id: str) -> List[dict]:
    return store.select(
        "guide_itineraries",
        {"guide_id": guide_id},
        order_by="created_at",
        descending=True,
    )


def guide_availability(store: Store, guide_id: str) -> List[dict]:
    return store.select(
        "guide_availability", {"guide_id": guide_id}, order_by="start_date"
    )


def offered_languages(store: Store) -> List[str]:
    return collect_languages(store.select("guides", APPROVED_ACTIVE))


def save_guide(store: Store, tourist_id: str, guide_id: str) -> dict:
    if not validate_uuid(guide_id):
        raise validation("Invalid guide ID format")
    guide = store.first("guides", {"id": guide_id})
    if not guide:
        raise not_found("Guide not found")
    try:
        saved = store.insert(
            "saved_guides", {"tourist_id": tourist_id, "guide_id": guide_id}
        )
    except UniqueViolation:
        raise conflict("Guide is already saved") from None

    send_template(
        store,
        guide.get("user_id"),
        GUIDE_SAVED,
        related_guide_id=guide_id,
        related_user_id=tourist_id,
    )
    return saved


def unsave_guide(store: Store, tourist_id: str, guide_id: str) -> bool:
    if not guide_id:
        raise validation("guide_id is required")
    removed = store.delete(
        "saved_guides", {"tourist_id": tourist_id, "guide_id": guide_id}
    )
    if not removed:
        return False
    guide = store.first("guides", {"id": guide_id})
    if guide:
        send_template(
            store,
            guide.get("user_id"),
            GUIDE_UNSAVED,
            related_guide_id=guide_id,
            related_user_id=tourist_id,
        )
    return True


def saved_guides(store: Store, tourist_id: str) -> List[dict]:
    """Saved guides that are still bookable, most recently saved first."""
    records = store.select(
        "saved_guides",
        {"tourist_id": tourist_id},
        order_by="created_at",
        descending=True,
    )
    if not records:
        return []
    guide_ids = [record["guide_id"] for record in records]
    guides = {
        guide["id"]: guide
        for guide in store.select("guides", {"id": guide_ids, **APPROVED_ACTIVE})
    }
    return [guides[gid] for gid in guide_ids if gid in guides]


def _reason_suffix(reason: Optional[str]) -> str:
    return f": {reason}" if reason else ""


def update_guide_status(
    store: Store, guide_id: str, action: str, reason: Optional[str] = None
) -> dict:
    if action == "approve":
        values = {"status": "approved", "rejection_reason": None}
        template = GUIDE_APPROVED
    elif action == "reject":
        values = {"status": "rejected", "rejection_reason": reason}
        template = GUIDE_REJECTED.render(reason=_reason_suffix(reason))
    elif action == "deactivate":
        values = {"is_deactivated": True, "deactivation_reason": reason}
        template = GUIDE_DEACTIVATED.render(reason=_reason_suffix(reason))
    elif action == "reactivate":
        values = {"is_deactivated": False, "deactivation_reason": None}
        template = GUIDE_REACTIVATED
    else:
        raise validation(f"Unknown action {action}")

    updated = store.update("guides", values, {"id": guide_id})
    if not updated:
        raise not_found("Guide not found")
    guide = updated[0]
    logger.info("Guide %s: %s", short_id(guide_id), action)

    send_template(
        store,
        guide.get("user_id"),
        template,
        data={"action": action, "reason": reason},
        related_guide_id=guide_id,
    )
    return guide
