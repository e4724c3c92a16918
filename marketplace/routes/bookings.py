"""
Booking routes.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query

from marketplace import bookings
from marketplace.dependencies import (
    CurrentUser,
    get_current_user,
    get_store,
    rate_limit,
    require_admin,
)
from marketplace.errors import forbidden
from marketplace.schemas import (
    BookingListResponse,
    BookingRatingResponse,
    BookingResponse,
    CreateBookingRequest,
    UpdateBookingStatusRequest,
)
from marketplace.store import Store

router = APIRouter(tags=["bookings"])

BOOKING_ROLES = ("tourist", "admin")


@router.post(
    "/create-booking",
    response_model=BookingResponse,
    dependencies=[Depends(rate_limit("create-booking", 30))],
)
def create_booking(
    payload: CreateBookingRequest,
    user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    if user.role not in BOOKING_ROLES:
        raise forbidden("Only tourists can create bookings")
    booking = bookings.create_booking(store, user.id, payload)
    return BookingResponse(booking=booking, message="Booking created successfully")


@router.patch("/update-booking-status", response_model=BookingResponse)
def update_booking_status(
    payload: UpdateBookingStatusRequest,
    user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    booking = bookings.update_booking_status(
        store, user, payload.booking_id, payload.status
    )
    return BookingResponse(
        booking=booking, message=f"Booking {payload.status} successfully"
    )


@router.api_route(
    "/get-tourist-bookings",
    methods=["GET", "POST"],
    response_model=BookingListResponse,
)
def get_tourist_bookings(
    user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    rows = bookings.tourist_bookings(store, user.id)
    return BookingListResponse(bookings=rows, count=len(rows))


@router.get("/get-admin-bookings", response_model=BookingListResponse)
def get_admin_bookings(
    status: Literal["active", "past", "all"] = Query("all"),
    _: CurrentUser = Depends(require_admin),
    store: Store = Depends(get_store),
):
    rows = bookings.admin_bookings(store, status)
    return BookingListResponse(bookings=rows, count=len(rows))


@router.get("/get-guide-confirmed-bookings", response_model=BookingListResponse)
def get_guide_confirmed_bookings(
    user: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    rows = bookings.guide_confirmed_bookings(store, user.id)
    return BookingListResponse(bookings=rows, count=len(rows))


@router.get("/get-booking-rating", response_model=BookingRatingResponse)
def get_booking_rating(
    booking_id: str = Query(..., min_length=1, max_length=64),
    _: CurrentUser = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    rating = bookings.booking_rating(store, booking_id)
    return BookingRatingResponse(has_rating=rating is not None, rating=rating)
