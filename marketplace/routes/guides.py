"""
Guide discovery and favourites.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from marketplace import guides
from marketplace.dependencies import (
    CurrentUser,
    get_current_user,
    get_store,
    rate_limit,
)
from marketplace.languages import SORTED_LANGUAGES
from marketplace.schemas import SaveGuideRequest
from marketplace.search import search_guides
from marketplace.store import Store

router = APIRouter(tags=["guides"])


@router.get("/search-guides")
def search(
    name: Optional[str] = Query(None, max_length=100),
    language: Optional[str] = Query(None, max_length=50),
    location: Optional[str] = Query(None, max_length=100),
    availability_date: Optional[str] = Query(None, max_length=10),
    store: Store = Depends(get_store),
):
    results = search_guides(
        store,
        name=name,
        language=language,
        location=location,
        availability_date=availability_date,
    )
    return {"guides": results}


@router.get("/get-approved-guides")
def get_approved_guides(store: Store = Depends(get_store)):
    return {"guides": guides.approved_guides(store)}


@router.get("/get-guide-itinerary")
def get_guide_itinerary(
    guide_id: str = Query(..., min_length=1, max_length=64),
    store: Store = Depends(get_store),
):
    return {"itineraries": guides.guide_itineraries(store, guide_id)}


@router.get("/get-guide-availability")
def get_guide_availability(
    guide_id: str = Query(..., min_length=1, max_length=64),
    store: Store = Depends(get_store),
):
    return {"availability": guides.guide_availability(store, guide_id)}


@router.get("/get-languages")
def get_languages(
    catalog: bool = Query(False),
    store: Store = Depends(get_store),
):
    if catalog:
        return {"languages": SORTED_LANGUAGES}
    return {"languages": guides.offered_languages(store)}


@router.post(
    "/save-guide", dependencies=[Depends(rate_limit("save-guide", 50))]
)
def save_guide(
    payload: SaveGuideRequest,
    user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    guides.save_guide(store, user.id, payload.guide_id)
    return {"success": True, "message": "Guide saved successfully"}


@router.api_route("/unsave-guide", methods=["DELETE", "POST"])
def unsave_guide(
    guide_id: str = Query(..., max_length=64),
    user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    removed = guides.unsave_guide(store, user.id, guide_id)
    return {
        "success": True,
        "removed": removed,
        "message": "Guide removed from saved list",
    }


@router.get("/get-saved-guides")
def get_saved_guides(
    user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    rows = guides.saved_guides(store, user.id)
    return {"guides": rows, "count": len(rows)}
