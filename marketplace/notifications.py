"""
In-app notifications.

``send_notification`` is the single primitive every workflow uses. It is
best effort: a store failure is logged and reported as ``False``, never
raised, so the operation that triggered it still succeeds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from marketplace.errors import BackendError
from marketplace.security import short_id
from marketplace.store import Store, utc_now

logger = logging.getLogger(__name__)

TABLE = "notifications"


class NotificationType(str, Enum):
    # Guide lifecycle
    GUIDE_APPROVED = "guide_approved"
    GUIDE_REJECTED = "guide_rejected"
    GUIDE_DEACTIVATED = "guide_deactivated"
    GUIDE_REACTIVATED = "guide_reactivated"
    GUIDE_DELETED = "guide_deleted"
    GUIDE_SAVED = "guide_saved"
    GUIDE_UNSAVED = "guide_unsaved"

    # Bookings
    BOOKING_CREATED = "booking_created"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_REJECTED = "booking_rejected"
    BOOKING_COMPLETED = "booking_completed"
    BOOKING_CANCELLED = "booking_cancelled"
    TRIP_COMPLETED = "trip_completed"

    # Ratings and reviews
    RATING_RECEIVED = "rating_received"
    REVIEW_POSTED = "review_posted"
    REVIEW_DELETED = "review_deleted"

    MESSAGE = "message"
    ADMIN_ACTION = "admin_action"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Template:
    type: NotificationType
    title: str
    message: str

    def render(self, **context) -> "Template":
        return Template(
            self.type, self.title.format(**context), self.message.format(**context)
        )


def send_notification(
    store: Store,
    user_id: Optional[str],
    notification_type: str,
    title: str,
    message: str,
    *,
    data: Optional[dict] = None,
    related_user_id: Optional[str] = None,
    related_guide_id: Optional[str] = None,
    related_booking_id: Optional[str] = None,
) -> bool:
    if not user_id:
        return False
    kind = getattr(notification_type, "value", notification_type)
    try:
        store.insert(
            TABLE,
            {
                "user_id": user_id,
                "type": kind,
                "title": title,
                "message": message,
                "data": data,
                "related_user_id": related_user_id,
                "related_guide_id": related_guide_id,
                "related_booking_id": related_booking_id,
            },
        )
    except BackendError as exc:
        logger.warning(
            "Notification %s for user %s not delivered (%s)",
            kind,
            short_id(user_id),
            type(exc).__name__,
        )
        return False
    return True


def send_template(
    store: Store, user_id: Optional[str], template: Template, **related
) -> bool:
    return send_notification(
        store, user_id, template.type, template.title, template.message, **related
    )


def send_bulk_notification(
    store: Store, user_ids: Iterable[str], template: Template, **related
) -> bool:
    results = [
        send_template(store, user_id, template, **related) for user_id in user_ids
    ]
    return all(results)


def admin_user_ids(store: Store) -> list[str]:
    return [row["id"] for row in store.select("users", {"role": "admin"})]


def list_notifications(
    store: Store, user_id: str, limit: int = 20, offset: int = 0
) -> dict:
    rows = store.select(
        TABLE,
        {"user_id": user_id},
        order_by="created_at",
        descending=True,
        limit=limit,
        offset=offset,
    )
    return {
        "notifications": rows,
        "total": store.count(TABLE, {"user_id": user_id}),
        "unread_count": store.count(TABLE, {"user_id": user_id, "is_read": False}),
    }


def mark_read(
    store: Store, user_id: str, notification_id: Optional[str] = None
) -> list[dict]:
    """Mark one notification, or every unread one when no id is given."""
    filters = {"user_id": user_id}
    if notification_id:
        filters["id"] = notification_id
    else:
        filters["is_read"] = False
    return store.update(TABLE, {"is_read": True, "read_at": utc_now()}, filters)


def delete_notifications(
    store: Store,
    user_id: str,
    *,
    notification_id: Optional[str] = None,
    only_read: bool = False,
) -> list[dict]:
    filters = {"user_id": user_id}
    if notification_id:
        filters["id"] = notification_id
    elif only_read:
        filters["is_read"] = True
    return store.delete(TABLE, filters)


GUIDE_APPROVED = Template(
    NotificationType.GUIDE_APPROVED,
    "✅ Guide Application Approved",
    "Congratulations! Your guide application has been approved. "
    "You can now start accepting bookings.",
)
GUIDE_REJECTED = Template(
    NotificationType.GUIDE_REJECTED,
    "❌ Guide Application Rejected",
    "Your guide application has been rejected{reason}. "
    "You can reapply after addressing the feedback.",
)
GUIDE_DEACTIVATED = Template(
    NotificationType.GUIDE_DEACTIVATED,
    "⏸️ Account Deactivated",
    "Your guide account has been deactivated{reason}.",
)
GUIDE_REACTIVATED = Template(
    NotificationType.GUIDE_REACTIVATED,
    "✅ Account Reactivated",
    "Your guide account has been reactivated. You can now accept new bookings.",
)
GUIDE_SAVED = Template(
    NotificationType.GUIDE_SAVED,
    "⭐ Added to Favorites",
    "A tourist has saved your profile to their favorites!",
)
GUIDE_UNSAVED = Template(
    NotificationType.GUIDE_UNSAVED,
    "⭐ Removed from Favorites",
    "A tourist has removed your profile from their favorites.",
)
BOOKING_CREATED = Template(
    NotificationType.BOOKING_CREATED,
    "📅 New Booking Request",
    "{tourist_name} has requested to book a tour with you on {booking_date}. "
    "Please review and confirm the booking.",
)
RATING_RECEIVED = Template(
    NotificationType.RATING_RECEIVED,
    "⭐ {rating}-Star Rating",
    "{tourist_name} gave you a {rating}-star rating for your tour.",
)
REVIEW_POSTED = Template(
    NotificationType.REVIEW_POSTED,
    "📝 Review Received",
    "{tourist_name} left a review for your tour.",
)
REVIEW_DELETED = Template(
    NotificationType.REVIEW_DELETED,
    "🗑️ Review Deleted",
    "A review on your profile has been deleted.",
)

# Target booking status -> audience -> template. The source status is not
# consulted; any status may follow any other.
BOOKING_STATUS_NOTIFICATIONS: dict[str, dict[str, Template]] = {
    "accepted": {
        "tourist": Template(
            NotificationType.BOOKING_CONFIRMED,
            "✅ Booking Confirmed",
            "Your booking with {guide_name} has been confirmed. "
            "Tour date: {booking_date}.",
        ),
    },
    "rejected": {
        "tourist": Template(
            NotificationType.BOOKING_REJECTED,
            "❌ Booking Declined",
            "{guide_name} could not accept your booking for {booking_date}.",
        ),
    },
    "cancelled": {
        "tourist": Template(
            NotificationType.BOOKING_CANCELLED,
            "❌ Booking Cancelled",
            "Your booking with {guide_name} for {booking_date} has been cancelled.",
        ),
        "guide": Template(
            NotificationType.BOOKING_CANCELLED,
            "❌ Booking Cancelled",
            "The booking with {tourist_name} for {booking_date} has been cancelled.",
        ),
        "admin": Template(
            NotificationType.ADMIN_ACTION,
            "Booking Cancelled",
            "Booking {booking_id} between {tourist_name} and {guide_name} "
            "was cancelled.",
        ),
    },
    "completed": {
        "tourist": Template(
            NotificationType.BOOKING_COMPLETED,
            "🎉 Tour Completed",
            "Your tour with {guide_name} has been marked as completed. "
            "Please leave a review and rating.",
        ),
        "guide": Template(
            NotificationType.TRIP_COMPLETED,
            "🎉 Trip Completed",
            "Your tour with {tourist_name} on {booking_date} is complete. "
            "It now counts towards your trips.",
        ),
        "admin": Template(
            NotificationType.ADMIN_ACTION,
            "Booking Completed",
            "Booking {booking_id} between {tourist_name} and {guide_name} "
            "was completed.",
        ),
    },
}
