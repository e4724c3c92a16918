import unittest

from marketplace.tests.helpers import ApiTestCase


class CreateBookingTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.tourist_id, self.headers = self.make_user("tourist", name="Meera")
        self.guide = self.make_guide()

    def _payload(self, **overrides):
        payload = {
            "guide_id": self.guide["id"],
            "itinerary_id": "itinerary-1",
            "booking_date": "2026-11-20",
            "price": 2500,
            "price_type": "per_day",
        }
        payload.update(overrides)
        return payload

    def test_create_booking_notifies_guide(self):
        response = self.client.post(
            "/api/create-booking", json=self._payload(), headers=self.headers
        )
        self.assertEqual(response.status_code, 200)
        booking = response.json()["booking"]
        self.assertEqual(booking["status"], "pending")
        self.assertEqual(booking["tourist_id"], self.tourist_id)
        self.assertEqual(booking["booking_date"], "2026-11-20")

        notes = self.notifications_for(self.guide["user_id"])
        self.assertEqual(len(notes), 1)
        self.assertEqual(notes[0]["type"], "booking_created")
        self.assertIn("Meera", notes[0]["message"])
        self.assertEqual(notes[0]["related_booking_id"], booking["id"])

    def test_second_active_booking_with_same_guide_conflicts(self):
        first = self.client.post(
            "/api/create-booking", json=self._payload(), headers=self.headers
        )
        self.assertEqual(first.status_code, 200)
        second = self.client.post(
            "/api/create-booking", json=self._payload(), headers=self.headers
        )
        self.assertEqual(second.status_code, 409)
        self.assertEqual(second.json()["code"], "CONFLICT")

    def test_completed_booking_does_not_block_new_one(self):
        self.make_booking(self.tourist_id, self.guide, status="completed")
        response = self.client.post(
            "/api/create-booking", json=self._payload(), headers=self.headers
        )
        self.assertEqual(response.status_code, 200)

    def test_unknown_guide_is_not_found(self):
        response = self.client.post(
            "/api/create-booking",
            json=self._payload(guide_id="missing-guide"),
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "NOT_FOUND")

    def test_guides_cannot_book(self):
        _, guide_headers = self.make_user("guide")
        response = self.client.post(
            "/api/create-booking", json=self._payload(), headers=guide_headers
        )
        self.assertEqual(response.status_code, 403)

    def test_non_positive_price_is_rejected(self):
        response = self.client.post(
            "/api/create-booking", json=self._payload(price=0), headers=self.headers
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "VALIDATION_ERROR")
        self.assertEqual(self.store.count("bookings"), 0)

    def test_create_booking_is_rate_limited(self):
        for _ in range(30):
            self.limiter.is_limited("create-booking:testclient", 30)
        response = self.client.post(
            "/api/create-booking", json=self._payload(), headers=self.headers
        )
        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.json()["code"], "RATE_LIMITED")


class UpdateBookingStatusTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.tourist_id, self.tourist_headers = self.make_user("tourist")
        self.guide_user_id, self.guide_headers = self.make_user("guide")
        self.guide = self.make_guide(self.guide_user_id, name="Ravi")
        self.admin_id, self.admin_headers = self.make_user("admin")

    def _update(self, booking, status, headers):
        return self.client.patch(
            "/api/update-booking-status",
            json={"booking_id": booking["id"], "status": status},
            headers=headers,
        )

    def _trips(self):
        return self.store.first("guides", {"id": self.guide["id"]})["trips_completed"]

    def test_every_completion_update_increments_trips(self):
        booking = self.make_booking(self.tourist_id, self.guide, status="accepted")
        response = self._update(booking, "completed", self.guide_headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["booking"]["status"], "completed")
        self.assertEqual(response.json()["message"], "Booking completed successfully")
        self.assertEqual(self._trips(), 1)

        response = self._update(booking, "completed", self.admin_headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._trips(), 2)

    def test_each_completed_booking_counts(self):
        for _ in range(3):
            booking = self.make_booking(self.tourist_id, self.guide, status="accepted")
            self._update(booking, "completed", self.guide_headers)
        self.assertEqual(self._trips(), 3)

    def test_completion_notifies_tourist_guide_and_admins(self):
        booking = self.make_booking(self.tourist_id, self.guide, status="accepted")
        self._update(booking, "completed", self.guide_headers)

        tourist_notes = self.notifications_for(self.tourist_id)
        guide_notes = self.notifications_for(self.guide_user_id)
        admin_notes = self.notifications_for(self.admin_id)
        self.assertEqual([n["type"] for n in tourist_notes], ["booking_completed"])
        self.assertEqual([n["type"] for n in guide_notes], ["trip_completed"])
        self.assertEqual([n["type"] for n in admin_notes], ["admin_action"])
        self.assertIn("Ravi", tourist_notes[0]["message"])

    def test_acceptance_only_notifies_tourist(self):
        booking = self.make_booking(self.tourist_id, self.guide)
        response = self._update(booking, "accepted", self.guide_headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            [n["type"] for n in self.notifications_for(self.tourist_id)],
            ["booking_confirmed"],
        )
        self.assertEqual(self.notifications_for(self.guide_user_id), [])
        self.assertEqual(self.notifications_for(self.admin_id), [])
        self.assertEqual(self._trips(), 0)

    def test_any_transition_is_allowed(self):
        booking = self.make_booking(self.tourist_id, self.guide, status="rejected")
        response = self._update(booking, "accepted", self.admin_headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["booking"]["status"], "accepted")

    def test_unrelated_user_is_forbidden(self):
        _, other_headers = self.make_user("tourist")
        booking = self.make_booking(self.tourist_id, self.guide)
        response = self._update(booking, "cancelled", other_headers)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["code"], "FORBIDDEN")
        self.assertEqual(
            self.store.first("bookings", {"id": booking["id"]})["status"], "pending"
        )

    def test_unknown_status_is_rejected(self):
        booking = self.make_booking(self.tourist_id, self.guide)
        response = self._update(booking, "past", self.admin_headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "VALIDATION_ERROR")

    def test_missing_booking_is_not_found(self):
        response = self._update({"id": "nope"}, "accepted", self.admin_headers)
        self.assertEqual(response.status_code, 404)

    def test_counter_failure_does_not_fail_update(self):
        booking = self.make_booking(self.tourist_id, self.guide, status="accepted")
        self.store.fail_on.add(("update", "guides"))
        response = self._update(booking, "completed", self.guide_headers)
        self.assertEqual(response.status_code, 200)
        self.store.fail_on.clear()
        self.assertEqual(self._trips(), 0)

    def test_notification_failure_does_not_fail_update(self):
        booking = self.make_booking(self.tourist_id, self.guide)
        self.store.fail_on.add(("insert", "notifications"))
        response = self._update(booking, "cancelled", self.tourist_headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["booking"]["status"], "cancelled")


class BookingViewTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.tourist_id, self.tourist_headers = self.make_user("tourist", name="Meera")
        self.guide_user_id, self.guide_headers = self.make_user("guide")
        self.guide = self.make_guide(self.guide_user_id)
        self.itinerary = self.store.insert(
            "guide_itineraries",
            {"guide_id": self.guide["id"], "description": "Old city walk"},
        )

    def test_tourist_bookings_are_newest_first_with_guide(self):
        older = self.make_booking(self.tourist_id, self.guide, status="completed")
        newer = self.make_booking(
            self.tourist_id, self.guide, itinerary_id=self.itinerary["id"]
        )
        response = self.client.get(
            "/api/get-tourist-bookings", headers=self.tourist_headers
        )
        self.assertEqual(response.status_code, 200)
        bookings = response.json()["bookings"]
        self.assertEqual([b["id"] for b in bookings], [newer["id"], older["id"]])
        self.assertEqual(bookings[0]["guide"]["name"], "Ravi Kumar")
        self.assertEqual(bookings[0]["itinerary"]["description"], "Old city walk")
        self.assertIsNone(bookings[1]["itinerary"])

    def test_tourist_bookings_accepts_post(self):
        response = self.client.post(
            "/api/get-tourist-bookings", headers=self.tourist_headers
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["count"], 0)

    def test_admin_bookings_filter_by_status(self):
        _, admin_headers = self.make_user("admin")
        self.make_booking(self.tourist_id, self.guide, status="accepted")
        self.make_booking(self.tourist_id, self.guide, status="completed")
        self.make_booking(self.tourist_id, self.guide, status="past")
        self.make_booking(self.tourist_id, self.guide, status="pending")

        def statuses(filter_value):
            response = self.client.get(
                "/api/get-admin-bookings",
                params={"status": filter_value},
                headers=admin_headers,
            )
            self.assertEqual(response.status_code, 200)
            return sorted(b["status"] for b in response.json()["bookings"])

        self.assertEqual(statuses("active"), ["accepted"])
        self.assertEqual(statuses("past"), ["completed", "past"])
        self.assertEqual(len(statuses("all")), 4)

        response = self.client.get(
            "/api/get-admin-bookings", headers=admin_headers
        )
        self.assertEqual(response.json()["bookings"][0]["tourist"]["name"], "Meera")

    def test_admin_bookings_require_admin(self):
        response = self.client.get(
            "/api/get-admin-bookings", headers=self.tourist_headers
        )
        self.assertEqual(response.status_code, 403)

    def test_guide_confirmed_bookings_sorted_by_date(self):
        late = self.make_booking(
            self.tourist_id, self.guide, status="accepted", booking_date="2026-12-24"
        )
        early = self.make_booking(
            self.tourist_id, self.guide, status="accepted", booking_date="2026-11-02"
        )
        self.make_booking(self.tourist_id, self.guide, status="pending")
        response = self.client.get(
            "/api/get-guide-confirmed-bookings", headers=self.guide_headers
        )
        self.assertEqual(response.status_code, 200)
        ids = [b["id"] for b in response.json()["bookings"]]
        self.assertEqual(ids, [early["id"], late["id"]])

    def test_guide_confirmed_bookings_without_profile(self):
        _, headers = self.make_user("guide")
        response = self.client.get(
            "/api/get-guide-confirmed-bookings", headers=headers
        )
        self.assertEqual(response.status_code, 404)

    def test_booking_rating_lookup(self):
        booking = self.make_booking(self.tourist_id, self.guide, status="completed")
        response = self.client.get(
            "/api/get-booking-rating",
            params={"booking_id": booking["id"]},
            headers=self.tourist_headers,
        )
        self.assertEqual(response.json(), {"has_rating": False, "rating": None})

        self.store.insert(
            "ratings_reviews",
            {
                "booking_id": booking["id"],
                "tourist_id": self.tourist_id,
                "guide_id": self.guide["id"],
                "rating": 4,
            },
        )
        response = self.client.get(
            "/api/get-booking-rating",
            params={"booking_id": booking["id"]},
            headers=self.tourist_headers,
        )
        self.assertTrue(response.json()["has_rating"])
        self.assertEqual(response.json()["rating"]["rating"], 4)


class SyncTripsCompletedTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        _, self.admin_headers = self.make_user("admin")
        self.tourist_id, self.tourist_headers = self.make_user("tourist")

    def test_sync_single_guide(self):
        guide = self.make_guide(trips_completed=7)
        self.make_booking(self.tourist_id, guide, status="completed")
        self.make_booking(self.tourist_id, guide, status="past")
        self.make_booking(self.tourist_id, guide, status="cancelled")

        response = self.client.post(
            "/api/sync-trips-completed",
            json={"guide_id": guide["id"]},
            headers=self.admin_headers,
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["trips_completed"], 2)
        self.assertEqual(payload["breakdown"], {"completed": 1, "past": 1})
        stored = self.store.first("guides", {"id": guide["id"]})
        self.assertEqual(stored["trips_completed"], 2)

    def test_sync_all_guides(self):
        first = self.make_guide(trips_completed=5)
        second = self.make_guide()
        self.make_booking(self.tourist_id, second, status="completed")

        response = self.client.post(
            "/api/sync-trips-completed", headers=self.admin_headers
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["total_guides"], 2)
        self.assertEqual(response.json()["success_count"], 2)
        self.assertEqual(
            self.store.first("guides", {"id": first["id"]})["trips_completed"], 0
        )
        self.assertEqual(
            self.store.first("guides", {"id": second["id"]})["trips_completed"], 1
        )

    def test_sync_requires_admin(self):
        response = self.client.post(
            "/api/sync-trips-completed", headers=self.tourist_headers
        )
        self.assertEqual(response.status_code, 403)


if __name__ == "__main__":
    unittest.main()
