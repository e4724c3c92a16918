import unittest

from fastapi.testclient import TestClient

from marketplace.app import create_app
from marketplace.auth import InMemoryAuthClient
from marketplace.dependencies import (
    get_auth_client,
    get_rate_limiter,
    get_storage_client,
    get_store,
)
from marketplace.rate_limit import InMemoryRateLimiter
from marketplace.storage import InMemoryStorageClient
from marketplace.store import InMemoryStore

PASSWORD = "Secret123!"


class ApiTestCase(unittest.TestCase):
    """Runs the app against fresh in-memory collaborators for every test."""

    def setUp(self):
        self.store = InMemoryStore()
        self.auth = InMemoryAuthClient()
        self.storage = InMemoryStorageClient()
        self.limiter = InMemoryRateLimiter()

        self.app = create_app()
        self.app.dependency_overrides[get_store] = lambda: self.store
        self.app.dependency_overrides[get_auth_client] = lambda: self.auth
        self.app.dependency_overrides[get_storage_client] = lambda: self.storage
        self.app.dependency_overrides[get_rate_limiter] = lambda: self.limiter
        self.client = TestClient(self.app)

    def make_user(self, role, email=None, name=None):
        """Create an identity plus users row; returns (user_id, headers)."""
        email = email or f"{role}-{len(self.auth.users)}@example.com"
        user = self.auth.create_user(email, PASSWORD)
        self.store.insert("users", {"id": user.id, "email": email, "role": role})
        if role == "tourist":
            self.store.insert(
                "tourist_profiles",
                {"user_id": user.id, "name": name or "Asha", "email": email},
            )
        token = self.auth.issue_token(user.id)
        return user.id, {"Authorization": f"Bearer {token}"}

    def make_guide(self, user_id=None, **fields):
        if user_id is None:
            user_id, _ = self.make_user("guide")
        values = {
            "user_id": user_id,
            "name": "Ravi Kumar",
            "location": "Jaipur, Rajasthan",
            "languages": ["Hindi", "English"],
            "status": "approved",
        }
        values.update(fields)
        return self.store.insert("guides", values)

    def make_booking(self, tourist_id, guide, status="pending", **fields):
        values = {
            "tourist_id": tourist_id,
            "guide_id": guide["id"],
            "itinerary_id": None,
            "booking_date": "2026-11-20",
            "price": 2500.0,
            "price_type": "per_day",
            "status": status,
        }
        values.update(fields)
        return self.store.insert("bookings", values)

    def notifications_for(self, user_id):
        return self.store.select("notifications", {"user_id": user_id})
