import unittest

from marketplace.tests.helpers import ApiTestCase


class RatingReviewTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.tourist_id, self.tourist_headers = self.make_user("tourist", name="Meera")
        self.guide_user_id, self.guide_headers = self.make_user("guide")
        self.guide = self.make_guide(self.guide_user_id)
        self.booking = self.make_booking(
            self.tourist_id, self.guide, status="completed"
        )

    def _rate(self, rating, review_text=None, headers=None, booking_id=None):
        return self.client.post(
            "/api/create-rating-review",
            json={
                "booking_id": booking_id or self.booking["id"],
                "rating": rating,
                "review_text": review_text,
            },
            headers=headers or self.tourist_headers,
        )

    def test_create_rating_notifies_guide(self):
        response = self._rate(5, "Wonderful tour of the forts")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Rating created successfully")
        rating = response.json()["rating"]
        self.assertEqual(rating["guide_id"], self.guide["id"])
        self.assertEqual(rating["tourist_id"], self.tourist_id)

        types = sorted(n["type"] for n in self.notifications_for(self.guide_user_id))
        self.assertEqual(types, ["rating_received", "review_posted"])

    def test_rating_without_text_skips_review_notification(self):
        self._rate(3)
        types = [n["type"] for n in self.notifications_for(self.guide_user_id)]
        self.assertEqual(types, ["rating_received"])

    def test_rating_same_booking_twice_updates(self):
        first = self._rate(2, "Too rushed")
        second = self._rate(4)
        self.assertEqual(second.status_code, 200)
        self.assertEqual(second.json()["message"], "Rating updated successfully")
        self.assertEqual(second.json()["rating"]["id"], first.json()["rating"]["id"])

        rows = self.store.select("ratings_reviews", {"booking_id": self.booking["id"]})
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["rating"], 4)
        self.assertIsNone(rows[0]["review_text"])

    def test_out_of_range_rating_is_rejected_before_write(self):
        for value in (0, 6):
            response = self._rate(value)
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json()["code"], "VALIDATION_ERROR")
        self.assertEqual(self.store.count("ratings_reviews"), 0)

    def test_incomplete_booking_cannot_be_rated(self):
        pending = self.make_booking(self.tourist_id, self.guide)
        response = self._rate(5, booking_id=pending["id"])
        self.assertEqual(response.status_code, 404)

    def test_other_tourists_booking_cannot_be_rated(self):
        _, other_headers = self.make_user("tourist")
        response = self._rate(5, headers=other_headers)
        self.assertEqual(response.status_code, 404)


class DeleteRatingTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.tourist_id, self.tourist_headers = self.make_user("tourist")
        self.guide_user_id, _ = self.make_user("guide")
        self.guide = self.make_guide(self.guide_user_id)
        booking = self.make_booking(self.tourist_id, self.guide, status="completed")
        self.rating = self.store.insert(
            "ratings_reviews",
            {
                "booking_id": booking["id"],
                "tourist_id": self.tourist_id,
                "guide_id": self.guide["id"],
                "rating": 2,
            },
        )

    def _delete(self, headers, rating_id=None, method="DELETE"):
        return self.client.request(
            method,
            "/api/delete-rating-review",
            params={"rating_id": rating_id or self.rating["id"]},
            headers=headers,
        )

    def test_author_can_delete(self):
        response = self._delete(self.tourist_headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.store.count("ratings_reviews"), 0)
        types = [n["type"] for n in self.notifications_for(self.guide_user_id)]
        self.assertEqual(types, ["review_deleted"])

    def test_admin_can_delete_with_post(self):
        _, admin_headers = self.make_user("admin")
        response = self._delete(admin_headers, method="POST")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.store.count("ratings_reviews"), 0)

    def test_other_user_is_forbidden(self):
        _, other_headers = self.make_user("tourist")
        response = self._delete(other_headers)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["code"], "FORBIDDEN")
        self.assertEqual(self.store.count("ratings_reviews"), 1)

    def test_missing_rating_is_not_found(self):
        response = self._delete(self.tourist_headers, rating_id="missing")
        self.assertEqual(response.status_code, 404)


class ListRatingsTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.tourist_id, self.tourist_headers = self.make_user("tourist", name="Meera")
        self.guide_user_id, self.guide_headers = self.make_user("guide")
        self.guide = self.make_guide(self.guide_user_id)
        other_guide = self.make_guide()
        other_tourist, _ = self.make_user("tourist")
        for tourist, guide in (
            (self.tourist_id, self.guide),
            (self.tourist_id, other_guide),
            (other_tourist, self.guide),
        ):
            booking = self.make_booking(tourist, guide, status="completed")
            self.store.insert(
                "ratings_reviews",
                {
                    "booking_id": booking["id"],
                    "tourist_id": tourist,
                    "guide_id": guide["id"],
                    "rating": 5,
                },
            )

    def _list(self, list_type, headers):
        return self.client.get(
            "/api/get-ratings-reviews", params={"type": list_type}, headers=headers
        )

    def test_tourist_sees_own_ratings_with_guide(self):
        response = self._list("my", self.tourist_headers)
        self.assertEqual(response.status_code, 200)
        ratings = response.json()["ratings"]
        self.assertEqual(response.json()["count"], 2)
        self.assertTrue(all(r["tourist_id"] == self.tourist_id for r in ratings))
        self.assertIsNotNone(ratings[0]["guide"])
        self.assertIsNone(ratings[0]["tourist"])

    def test_guide_sees_ratings_about_them_with_tourist(self):
        response = self._list("guide", self.guide_headers)
        ratings = response.json()["ratings"]
        self.assertEqual(len(ratings), 2)
        self.assertTrue(all(r["guide_id"] == self.guide["id"] for r in ratings))
        names = {r["tourist"]["name"] for r in ratings}
        self.assertIn("Meera", names)

    def test_guide_without_profile_gets_empty_list(self):
        _, headers = self.make_user("guide")
        response = self._list("guide", headers)
        self.assertEqual(response.json(), {"ratings": [], "count": 0})

    def test_all_requires_admin(self):
        self.assertEqual(self._list("all", self.tourist_headers).status_code, 403)
        _, admin_headers = self.make_user("admin")
        response = self._list("all", admin_headers)
        self.assertEqual(response.json()["count"], 3)

    def test_unknown_type_is_rejected(self):
        response = self._list("everything", self.tourist_headers)
        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
