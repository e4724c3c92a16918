"""
Table definitions for the marketplace schema.

These mirror the tables in the managed Postgres database. The SQL store
creates them when missing (useful for SQLite in tests); the in-memory store
reads column defaults and unique constraints from the same metadata.
"""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=True)
    role = Column(String, nullable=False, index=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class GuideRow(Base):
    __tablename__ = "guides"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    location = Column(String, nullable=True)
    languages = Column(JSON, nullable=True)
    profile_picture_url = Column(String, nullable=True)
    document_url = Column(String, nullable=True)
    document_type = Column(String, nullable=True)
    status = Column(String, nullable=False, default="pending", index=True)
    rejection_reason = Column(Text, nullable=True)
    is_deactivated = Column(Boolean, nullable=False, default=False)
    deactivation_reason = Column(Text, nullable=True)
    is_resubmitted = Column(Boolean, nullable=False, default=False)
    trips_completed = Column(Integer, nullable=False, default=0)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class TouristProfileRow(Base):
    __tablename__ = "tourist_profiles"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    location = Column(String, nullable=True)
    profile_picture_url = Column(String, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class BookingRow(Base):
    __tablename__ = "bookings"

    id = Column(String, primary_key=True)
    tourist_id = Column(String, nullable=False, index=True)
    guide_id = Column(String, nullable=False, index=True)
    itinerary_id = Column(String, nullable=True)
    booking_date = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending", index=True)
    price = Column(Float, nullable=False)
    price_type = Column(String, nullable=False)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class GuideItineraryRow(Base):
    __tablename__ = "guide_itineraries"

    id = Column(String, primary_key=True)
    guide_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=True)
    number_of_days = Column(Integer, nullable=True)
    timings = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    places_to_visit = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)
    image_1_url = Column(String, nullable=True)
    image_2_url = Column(String, nullable=True)
    price = Column(Float, nullable=True)
    price_type = Column(String, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class GuideAvailabilityRow(Base):
    __tablename__ = "guide_availability"

    id = Column(String, primary_key=True)
    guide_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=True)
    start_date = Column(String, nullable=False)
    end_date = Column(String, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class RatingReviewRow(Base):
    __tablename__ = "ratings_reviews"

    id = Column(String, primary_key=True)
    booking_id = Column(String, nullable=False, unique=True)
    tourist_id = Column(String, nullable=False, index=True)
    guide_id = Column(String, nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    review_text = Column(Text, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class NotificationRow(Base):
    __tablename__ = "notifications"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    related_user_id = Column(String, nullable=True)
    related_guide_id = Column(String, nullable=True)
    related_booking_id = Column(String, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(String, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class SavedGuideRow(Base):
    __tablename__ = "saved_guides"
    __table_args__ = (UniqueConstraint("tourist_id", "guide_id"),)

    id = Column(String, primary_key=True)
    tourist_id = Column(String, nullable=False, index=True)
    guide_id = Column(String, nullable=False)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


TABLES = Base.metadata.tables


def column_defaults(table_name: str) -> Dict[str, Any]:
    """Scalar column defaults (e.g. ``status='pending'``) for a table."""
    defaults: Dict[str, Any] = {}
    for column in TABLES[table_name].columns:
        if column.default is not None and column.default.is_scalar:
            defaults[column.name] = column.default.arg
        elif column.nullable and not column.primary_key:
            defaults[column.name] = None
    return defaults


def unique_keys(table_name: str) -> List[Tuple[str, ...]]:
    """Column groups that must be unique, primary key included."""
    table = TABLES[table_name]
    keys: List[Tuple[str, ...]] = [
        tuple(column.name for column in table.primary_key.columns)
    ]
    candidates = [(column.name,) for column in table.columns if column.unique]
    candidates += [
        tuple(column.name for column in constraint.columns)
        for constraint in table.constraints
        if isinstance(constraint, UniqueConstraint)
    ]
    for key in candidates:
        if key not in keys:
            keys.append(key)
    return keys
