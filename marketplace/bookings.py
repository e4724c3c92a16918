"""
Booking lifecycle: creation, status changes with notification fan-out, and
the joined views each role reads.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from marketplace.dependencies import CurrentUser
from marketplace.errors import BackendError, conflict, forbidden, not_found
from marketplace.notifications import (
    BOOKING_CREATED,
    BOOKING_STATUS_NOTIFICATIONS,
    admin_user_ids,
    send_template,
)
from marketplace.schemas import CreateBookingRequest
from marketplace.security import short_id
from marketplace.store import Store

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ("pending", "accepted")
COMPLETED_STATUSES = ("completed", "past")
TERMINAL_STATUSES = ("completed", "past", "cancelled", "rejected")

GUIDE_SUMMARY_FIELDS = ("id", "name", "location", "phone_number")
TOURIST_SUMMARY_FIELDS = ("id", "user_id", "name", "email", "phone_number")

ADMIN_STATUS_FILTERS = {
    "active": ["accepted"],
    "past": list(COMPLETED_STATUSES),
}


def _pick(row: Optional[dict], fields: Iterable[str]) -> Optional[dict]:
    if row is None:
        return None
    return {name: row.get(name) for name in fields}


def _lookup(store: Store, table: str, filters: dict) -> Optional[dict]:
    """Read used only to decorate notifications; failures are logged."""
    try:
        return store.first(table, filters)
    except BackendError as exc:
        logger.warning("Lookup on %s failed (%s)", table, type(exc).__name__)
        return None


def tourist_name(store: Store, user_id: str) -> str:
    profile = _lookup(store, "tourist_profiles", {"user_id": user_id})
    return (profile or {}).get("name") or "A tourist"


def create_booking(
    store: Store, tourist_id: str, payload: CreateBookingRequest
) -> dict:
    guide = store.first("guides", {"id": payload.guide_id})
    if not guide:
        raise not_found("Guide not found")

    active = store.select(
        "bookings",
        {
            "tourist_id": tourist_id,
            "guide_id": payload.guide_id,
            "status": list(ACTIVE_STATUSES),
        },
        limit=1,
    )
    if active:
        raise conflict(
            "You already have an active booking with this guide. "
            "Complete or cancel your previous booking first."
        )

    booking_date = payload.booking_date.isoformat()
    booking = store.insert(
        "bookings",
        {
            "tourist_id": tourist_id,
            "guide_id": payload.guide_id,
            "itinerary_id": payload.itinerary_id,
            "booking_date": booking_date,
            "price": payload.price,
            "price_type": payload.price_type,
            "status": "pending",
        },
    )
    logger.info(
        "Booking %s created by %s", short_id(booking["id"]), short_id(tourist_id)
    )

    template = BOOKING_CREATED.render(
        tourist_name=tourist_name(store, tourist_id), booking_date=booking_date
    )
    send_template(
        store,
        guide.get("user_id"),
        template,
        related_user_id=tourist_id,
        related_guide_id=guide["id"],
        related_booking_id=booking["id"],
    )
    return booking


def update_booking_status(
    store: Store, user: CurrentUser, booking_id: str, status: str
) -> dict:
    booking = store.first("bookings", {"id": booking_id})
    if not booking:
        raise not_found("Booking not found")

    guide = store.first("guides", {"id": booking["guide_id"]})
    is_guide = guide is not None and guide.get("user_id") == user.id
    if not (user.is_admin or booking["tourist_id"] == user.id or is_guide):
        raise forbidden("You cannot change this booking")

    previous = booking.get("status")
    if previous in TERMINAL_STATUSES and previous != status:
        logger.warning(
            "Booking %s moved out of terminal status %s to %s",
            short_id(booking_id),
            previous,
            status,
        )

    updated = store.update("bookings", {"status": status}, {"id": booking_id})
    if not updated:
        raise not_found("Booking not found")
    booking = updated[0]

    if status in COMPLETED_STATUSES:
        if previous in COMPLETED_STATUSES:
            logger.warning(
                "Booking %s completed again, trip counted", short_id(booking_id)
            )
        _count_trip(store, booking["guide_id"])

    _notify_status_change(store, booking, guide, status)
    return booking


def _count_trip(store: Store, guide_id: str) -> None:
    try:
        total = store.increment("guides", guide_id, "trips_completed")
    except BackendError as exc:
        logger.error(
            "trips_completed not updated for guide %s (%s)",
            short_id(guide_id),
            type(exc).__name__,
        )
        return
    if total is None:
        logger.warning("Guide %s missing, trip not counted", short_id(guide_id))


def _notify_status_change(
    store: Store, booking: dict, guide: Optional[dict], status: str
) -> None:
    templates = BOOKING_STATUS_NOTIFICATIONS.get(status)
    if not templates:
        return

    context = {
        "booking_id": booking["id"],
        "booking_date": booking.get("booking_date"),
        "guide_name": (guide or {}).get("name") or "your guide",
        "tourist_name": tourist_name(store, booking["tourist_id"]),
    }
    recipients = {
        "tourist": [booking["tourist_id"]],
        "guide": [guide["user_id"]] if guide and guide.get("user_id") else [],
    }
    if "admin" in templates:
        try:
            recipients["admin"] = admin_user_ids(store)
        except BackendError as exc:
            logger.warning("Admin lookup failed (%s)", type(exc).__name__)

    related = {
        "related_booking_id": booking["id"],
        "related_guide_id": booking["guide_id"],
        "related_user_id": booking["tourist_id"],
    }
    for audience, template in templates.items():
        rendered = template.render(**context)
        for user_id in recipients.get(audience, []):
            send_template(store, user_id, rendered, **related)


def attach_details(
    store: Store, bookings: List[dict], *, include_tourist: bool = False
) -> List[dict]:
    """Attach ``guide`` and ``itinerary`` (and ``tourist``) to each booking."""
    if not bookings:
        return []

    guide_ids = sorted({b["guide_id"] for b in bookings if b.get("guide_id")})
    guides = {
        row["id"]: _pick(row, GUIDE_SUMMARY_FIELDS)
        for row in store.select("guides", {"id": guide_ids})
    }
    itinerary_ids = sorted(
        {b["itinerary_id"] for b in bookings if b.get("itinerary_id")}
    )
    itineraries = {}
    if itinerary_ids:
        itineraries = {
            row["id"]: row
            for row in store.select("guide_itineraries", {"id": itinerary_ids})
        }
    tourists = {}
    if include_tourist:
        tourist_ids = sorted({b["tourist_id"] for b in bookings})
        tourists = {
            row["user_id"]: _pick(row, TOURIST_SUMMARY_FIELDS)
            for row in store.select("tourist_profiles", {"user_id": tourist_ids})
        }

    enriched = []
    for booking in bookings:
        item = dict(booking)
        item["guide"] = guides.get(booking.get("guide_id"))
        item["itinerary"] = itineraries.get(booking.get("itinerary_id"))
        if include_tourist:
            item["tourist"] = tourists.get(booking["tourist_id"])
        enriched.append(item)
    return enriched


def tourist_bookings(store: Store, user_id: str) -> List[dict]:
    rows = store.select(
        "bookings", {"tourist_id": user_id}, order_by="created_at", descending=True
    )
    return attach_details(store, rows)


def admin_bookings(store: Store, status_filter: str = "all") -> List[dict]:
    statuses = ADMIN_STATUS_FILTERS.get(status_filter)
    filters = {"status": statuses} if statuses else None
    rows = store.select(
        "bookings", filters, order_by="created_at", descending=True
    )
    return attach_details(store, rows, include_tourist=True)


def guide_confirmed_bookings(store: Store, user_id: str) -> List[dict]:
    guide = store.first("guides", {"user_id": user_id})
    if not guide:
        raise not_found("Guide profile not found")
    rows = store.select(
        "bookings",
        {"guide_id": guide["id"], "status": "accepted"},
        order_by="booking_date",
    )
    return attach_details(store, rows, include_tourist=True)


def booking_rating(store: Store, booking_id: str) -> Optional[dict]:
    return store.first("ratings_reviews", {"booking_id": booking_id})


def _completed_breakdown(store: Store, guide_id: str) -> dict:
    return {
        status: store.count("bookings", {"guide_id": guide_id, "status": status})
        for status in COMPLETED_STATUSES
    }


def sync_trips_completed(store: Store, guide_id: Optional[str] = None) -> dict:
    """
    Recount completed and past bookings and overwrite ``trips_completed``.

    With ``guide_id`` only that guide is synced and its breakdown returned.
    Otherwise every guide is synced; a failure on one guide is counted and
    the rest continue.
    """
    if guide_id:
        if not store.first("guides", {"id": guide_id}):
            raise not_found("Guide not found")
        breakdown = _completed_breakdown(store, guide_id)
        total = sum(breakdown.values())
        store.update("guides", {"trips_completed": total}, {"id": guide_id})
        return {
            "message": "Guide trips_completed synced successfully",
            "guide_id": guide_id,
            "trips_completed": total,
            "breakdown": breakdown,
        }

    guides = store.select("guides", order_by="created_at", descending=True)
    success_count = 0
    error_count = 0
    for guide in guides:
        try:
            total = sum(_completed_breakdown(store, guide["id"]).values())
            store.update("guides", {"trips_completed": total}, {"id": guide["id"]})
        except BackendError as exc:
            logger.error(
                "Sync failed for guide %s (%s)",
                short_id(guide["id"]),
                type(exc).__name__,
            )
            error_count += 1
        else:
            success_count += 1
    logger.info(
        "trips_completed synced: %d ok, %d failed", success_count, error_count
    )
    return {
        "message": "Sync completed",
        "total_guides": len(guides),
        "success_count": success_count,
        "error_count": error_count,
    }
