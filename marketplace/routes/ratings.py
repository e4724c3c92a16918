"""
Rating and review routes.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query

from marketplace import ratings
from marketplace.dependencies import CurrentUser, get_current_user, get_store
from marketplace.schemas import (
    CreateRatingRequest,
    RatingListResponse,
    RatingResponse,
)
from marketplace.store import Store

router = APIRouter(tags=["ratings"])


@router.post("/create-rating-review", response_model=RatingResponse)
def create_rating_review(
    payload: CreateRatingRequest,
    user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    rating, created = ratings.rate_booking(
        store, user.id, payload.booking_id, payload.rating, payload.review_text
    )
    action = "created" if created else "updated"
    return RatingResponse(rating=rating, message=f"Rating {action} successfully")


@router.api_route("/delete-rating-review", methods=["DELETE", "POST"])
def delete_rating_review(
    rating_id: str = Query(..., max_length=64),
    user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    ratings.delete_rating(store, user, rating_id)
    return {"message": "Rating deleted successfully"}


@router.get("/get-ratings-reviews", response_model=RatingListResponse)
def get_ratings_reviews(
    list_type: Literal["my", "guide", "all"] = Query("my", alias="type"),
    user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    rows = ratings.list_ratings(store, user, list_type)
    return RatingListResponse(ratings=rows, count=len(rows))
