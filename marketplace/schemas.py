"""
Pydantic schemas for the marketplace API.
"""

from __future__ import annotations

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from marketplace.notifications import NotificationType

BookingStatusUpdate = Literal["accepted", "rejected", "cancelled", "completed"]
GuideAction = Literal["approve", "reject", "deactivate", "reactivate"]


class CreateBookingRequest(BaseModel):
    guide_id: str = Field(..., min_length=1, max_length=64)
    itinerary_id: str = Field(..., min_length=1, max_length=64)
    booking_date: date
    price: float = Field(..., gt=0)
    price_type: Literal["per_day", "per_trip"]


class UpdateBookingStatusRequest(BaseModel):
    booking_id: str = Field(..., min_length=1, max_length=64)
    status: BookingStatusUpdate


class BookingResponse(BaseModel):
    booking: dict
    message: str


class BookingListResponse(BaseModel):
    bookings: List[dict]
    count: int


class BookingRatingResponse(BaseModel):
    has_rating: bool
    rating: Optional[dict] = None


class SaveGuideRequest(BaseModel):
    guide_id: str = Field(..., max_length=64)


class CreateRatingRequest(BaseModel):
    booking_id: str = Field(..., min_length=1, max_length=64)
    rating: int = Field(..., ge=1, le=5)
    review_text: Optional[str] = Field(default=None, max_length=2000)


class RatingResponse(BaseModel):
    rating: dict
    message: str


class RatingListResponse(BaseModel):
    ratings: List[dict]
    count: int


class CreateNotificationRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    type: NotificationType = NotificationType.CUSTOM
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=1000)
    data: Optional[dict] = None
    related_user_id: Optional[str] = None
    related_guide_id: Optional[str] = None
    related_booking_id: Optional[str] = None


class NotificationListResponse(BaseModel):
    notifications: List[dict]
    total: int
    unread_count: int


class MarkNotificationReadRequest(BaseModel):
    notification_id: Optional[str] = None
    mark_all: bool = False


class DeleteNotificationRequest(BaseModel):
    notification_id: Optional[str] = None
    delete_all: bool = False
    delete_read: bool = False


class DeleteAccountRequest(BaseModel):
    password: str = Field(..., min_length=1, max_length=256)


class AdminDeleteGuideRequest(BaseModel):
    guide_id: str = Field(..., min_length=1, max_length=64)
    user_id: Optional[str] = Field(default=None, max_length=64)


class AdminUpdateGuideStatusRequest(BaseModel):
    guide_id: str = Field(..., min_length=1, max_length=64)
    action: GuideAction
    reason: Optional[str] = Field(default=None, max_length=1000)


class SyncTripsRequest(BaseModel):
    guide_id: Optional[str] = None


class DeletionResponse(BaseModel):
    success: bool
    message: str
    warnings: List[str] = Field(default_factory=list)
