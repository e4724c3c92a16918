"""
Notification inbox routes.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from marketplace import notifications
from marketplace.dependencies import CurrentUser, get_current_user, get_store
from marketplace.errors import internal, not_found, validation
from marketplace.schemas import (
    CreateNotificationRequest,
    DeleteNotificationRequest,
    MarkNotificationReadRequest,
    NotificationListResponse,
)
from marketplace.store import Store

router = APIRouter(tags=["notifications"])


@router.post("/create-notification")
def create_notification(
    payload: CreateNotificationRequest,
    _: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    sent = notifications.send_notification(
        store,
        payload.user_id,
        payload.type,
        payload.title,
        payload.message,
        data=payload.data,
        related_user_id=payload.related_user_id,
        related_guide_id=payload.related_guide_id,
        related_booking_id=payload.related_booking_id,
    )
    if not sent:
        raise internal("Failed to create notification")
    return {"success": True, "message": "Notification created"}


@router.get("/get-notifications", response_model=NotificationListResponse)
def get_notifications(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    return notifications.list_notifications(store, user.id, limit, offset)


@router.put("/mark-notification-read")
def mark_notification_read(
    payload: MarkNotificationReadRequest,
    user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    if payload.mark_all:
        updated = notifications.mark_read(store, user.id)
        return {"success": True, "updated": len(updated)}
    if not payload.notification_id:
        raise validation("notification_id or mark_all is required")
    updated = notifications.mark_read(store, user.id, payload.notification_id)
    if not updated:
        raise not_found("Notification not found")
    return {"success": True, "notification": updated[0]}


@router.delete("/delete-notification")
def delete_notification(
    payload: DeleteNotificationRequest,
    user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    if payload.delete_all:
        removed = notifications.delete_notifications(store, user.id)
    elif payload.delete_read:
        removed = notifications.delete_notifications(store, user.id, only_read=True)
    elif payload.notification_id:
        removed = notifications.delete_notifications(
            store, user.id, notification_id=payload.notification_id
        )
        if not removed:
            raise not_found("Notification not found")
    else:
        raise validation("notification_id, delete_all or delete_read is required")
    return {"success": True, "deleted": len(removed)}
