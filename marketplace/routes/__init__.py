"""
HTTP routes for the marketplace API.
"""

from fastapi import APIRouter

from marketplace.routes import accounts, admin, bookings, guides, notifications, ratings

router = APIRouter()
router.include_router(bookings.router)
router.include_router(guides.router)
router.include_router(ratings.router)
router.include_router(notifications.router)
router.include_router(accounts.router)
router.include_router(admin.router)
