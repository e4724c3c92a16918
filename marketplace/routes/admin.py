"""
Admin-only routes: guide moderation, tourist listing and maintenance.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends

from marketplace import accounts, bookings, guides
from marketplace.auth import AuthClient
from marketplace.dependencies import (
    CurrentUser,
    get_auth_client,
    get_storage_client,
    get_store,
    require_admin,
)
from marketplace.schemas import (
    AdminDeleteGuideRequest,
    AdminUpdateGuideStatusRequest,
    DeletionResponse,
    SyncTripsRequest,
)
from marketplace.storage import StorageClient
from marketplace.store import Store

router = APIRouter(tags=["admin"])


@router.post("/admin-delete-guide", response_model=DeletionResponse)
def admin_delete_guide(
    payload: AdminDeleteGuideRequest,
    _: CurrentUser = Depends(require_admin),
    store: Store = Depends(get_store),
    auth: AuthClient = Depends(get_auth_client),
    storage: StorageClient = Depends(get_storage_client),
):
    warnings = accounts.admin_delete_guide(
        store, auth, storage, payload.guide_id, payload.user_id
    )
    return DeletionResponse(
        success=True,
        message="Guide and associated data deleted successfully",
        warnings=warnings,
    )


@router.patch("/admin-update-guide-status")
def admin_update_guide_status(
    payload: AdminUpdateGuideStatusRequest,
    _: CurrentUser = Depends(require_admin),
    store: Store = Depends(get_store),
):
    guide = guides.update_guide_status(
        store, payload.guide_id, payload.action, payload.reason
    )
    return {"success": True, "guide": guide}


@router.get("/get-tourists")
def get_tourists(
    _: CurrentUser = Depends(require_admin),
    store: Store = Depends(get_store),
):
    tourists = store.select(
        "tourist_profiles", order_by="created_at", descending=True
    )
    return {"tourists": tourists, "count": len(tourists)}


@router.post("/sync-trips-completed")
def sync_trips_completed(
    payload: Optional[SyncTripsRequest] = Body(None),
    _: CurrentUser = Depends(require_admin),
    store: Store = Depends(get_store),
):
    guide_id = payload.guide_id if payload else None
    return bookings.sync_trips_completed(store, guide_id)
