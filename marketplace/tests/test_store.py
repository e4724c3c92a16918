import threading
import unittest

from marketplace.store import InMemoryStore, StoreError, UniqueViolation


class InMemoryStoreTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryStore()

    def test_concurrent_increments_are_not_lost(self):
        guide = self.store.insert("guides", {"user_id": "u", "name": "Ravi"})

        def complete_trips():
            for _ in range(50):
                self.store.increment("guides", guide["id"], "trips_completed")

        threads = [threading.Thread(target=complete_trips) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        stored = self.store.first("guides", {"id": guide["id"]})
        self.assertEqual(stored["trips_completed"], 200)

    def test_unique_constraints(self):
        self.store.insert("ratings_reviews", {
            "booking_id": "b1", "tourist_id": "t", "guide_id": "g", "rating": 5,
        })
        with self.assertRaises(UniqueViolation):
            self.store.insert("ratings_reviews", {
                "booking_id": "b1", "tourist_id": "t", "guide_id": "g", "rating": 1,
            })

    def test_unknown_column_is_an_error(self):
        with self.assertRaises(StoreError):
            self.store.insert("guides", {"user_id": "u", "name": "x", "bogus": 1})

    def test_reset_behaves_like_fresh_store(self):
        self.store.insert("guides", {"user_id": "u", "name": "Ravi"})
        self.store.fail_on.add(("select", "bookings"))
        self.store.reset()

        self.assertIsNone(self.store._last_timestamp)
        self.assertEqual(self.store.count("guides"), 0)
        self.assertEqual(self.store.select("bookings"), [])

    def test_select_waits_for_writers(self):
        self.store.insert("guides", {"user_id": "u", "name": "Ravi"})
        results = []
        reader = threading.Thread(
            target=lambda: results.append(self.store.select("guides"))
        )
        with self.store._lock:
            reader.start()
            reader.join(timeout=0.2)
            self.assertTrue(reader.is_alive())
            self.assertEqual(results, [])
        reader.join()
        self.assertEqual(len(results[0]), 1)

    def test_failure_injection(self):
        self.store.fail_on.add(("select", "guides"))
        with self.assertRaises(StoreError):
            self.store.select("guides")


if __name__ == "__main__":
    unittest.main()
