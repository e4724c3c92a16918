"""
Account removal.

Deleting an account touches several tables plus object storage and the
auth service. Only a few steps decide the outcome; the rest run as
cleanup whose failures are collected as warnings for the response.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from marketplace.auth import AuthClient
from marketplace.dependencies import CurrentUser
from marketplace.errors import BackendError, internal, not_found, unauthorized
from marketplace.security import short_id
from marketplace.storage import (
    GUIDE_FILE_COLUMNS,
    ITINERARY_FILE_COLUMNS,
    StorageClient,
    file_paths,
)
from marketplace.store import Store

logger = logging.getLogger(__name__)


@dataclass
class Cleanup:
    """Runs non-fatal steps and records the ones that failed."""

    subject: str
    warnings: List[str] = field(default_factory=list)

    def step(self, description: str, action: Callable[[], object]) -> None:
        try:
            action()
        except BackendError as exc:
            logger.warning(
                "%s: could not %s (%s)", self.subject, description, type(exc).__name__
            )
            self.warnings.append(f"Could not {description}")


def _storage_bucket(storage: StorageClient) -> str:
    return getattr(storage, "bucket", "") or ""


def _remove_guide_data(
    store: Store,
    storage: StorageClient,
    guide: dict,
    cleanup: Cleanup,
    *,
    include_bookings: bool,
) -> None:
    guide_id = guide["id"]
    bucket = _storage_bucket(storage)

    itineraries: List[dict] = []
    cleanup.step(
        "read itineraries",
        lambda: itineraries.extend(
            store.select("guide_itineraries", {"guide_id": guide_id})
        ),
    )
    paths = file_paths([guide], GUIDE_FILE_COLUMNS, bucket)
    paths += file_paths(itineraries, ITINERARY_FILE_COLUMNS, bucket)

    cleanup.step(
        "delete itineraries",
        lambda: store.delete("guide_itineraries", {"guide_id": guide_id}),
    )
    cleanup.step(
        "delete availability",
        lambda: store.delete("guide_availability", {"guide_id": guide_id}),
    )
    if include_bookings:
        cleanup.step(
            "delete bookings",
            lambda: store.delete("bookings", {"guide_id": guide_id}),
        )
        cleanup.step(
            "delete ratings",
            lambda: store.delete("ratings_reviews", {"guide_id": guide_id}),
        )
    if paths:
        cleanup.step("delete stored files", lambda: storage.delete_objects(paths))


def delete_account(
    store: Store,
    auth: AuthClient,
    storage: StorageClient,
    user: CurrentUser,
    password: str,
) -> List[str]:
    """
    Delete the caller's data and identity; returns cleanup warnings.

    The password is checked with the auth service first. Table and storage
    cleanup is best effort. The identity deletion at the end is the only
    step whose failure fails the request.
    """
    if not user.email or not auth.verify_password(user.email, password):
        raise unauthorized("Invalid password")

    record = store.first("users", {"id": user.id})
    if not record:
        raise not_found("User not found")

    cleanup = Cleanup(subject=f"account {short_id(user.id)}")
    role = record.get("role")
    if role == "tourist":
        for table, description in (
            ("saved_guides", "delete saved guides"),
            ("bookings", "delete bookings"),
            ("ratings_reviews", "delete ratings"),
        ):
            cleanup.step(
                description,
                lambda table=table: store.delete(table, {"tourist_id": user.id}),
            )
        cleanup.step(
            "delete tourist profile",
            lambda: store.delete("tourist_profiles", {"user_id": user.id}),
        )
    elif role == "guide":
        guides: List[dict] = []
        cleanup.step(
            "read guide profile",
            lambda: guides.extend(store.select("guides", {"user_id": user.id})),
        )
        for guide in guides:
            _remove_guide_data(store, storage, guide, cleanup, include_bookings=True)
            cleanup.step(
                "delete guide profile",
                lambda guide=guide: store.delete("guides", {"id": guide["id"]}),
            )

    cleanup.step("delete user record", lambda: store.delete("users", {"id": user.id}))

    try:
        auth.delete_user(user.id)
    except BackendError as exc:
        logger.error(
            "Identity deletion failed for %s (%s)",
            short_id(user.id),
            type(exc).__name__,
        )
        raise internal("Failed to delete account") from exc

    if cleanup.warnings:
        logger.warning(
            "Account %s deleted with %d warnings",
            short_id(user.id),
            len(cleanup.warnings),
        )
    else:
        logger.info("Account %s deleted", short_id(user.id))
    return cleanup.warnings


def admin_delete_guide(
    store: Store,
    auth: AuthClient,
    storage: StorageClient,
    guide_id: str,
    user_id: Optional[str] = None,
) -> List[str]:
    """Remove a guide on an admin's behalf; the guide row delete is fatal."""
    guide = store.first("guides", {"id": guide_id})
    if not guide:
        raise not_found("Guide not found")
    user_id = user_id or guide.get("user_id")

    cleanup = Cleanup(subject=f"guide {short_id(guide_id)}")
    _remove_guide_data(store, storage, guide, cleanup, include_bookings=False)

    store.delete("guides", {"id": guide_id})

    if user_id:
        cleanup.step(
            "delete user record", lambda: store.delete("users", {"id": user_id})
        )
        cleanup.step("delete auth identity", lambda: auth.delete_user(user_id))

    logger.info(
        "Guide %s deleted by admin (%d warnings)",
        short_id(guide_id),
        len(cleanup.warnings),
    )
    return cleanup.warnings
