# File: tests/unit/test_repositories.py
"""
Infrastructure Unit Tests

Tests for the Catalog, the snapshot stores and the catalog loader.
"""

import json
import os
import tempfile
import unittest
from decimal import Decimal
from unittest.mock import Mock

import redis

from ecocharge.domain.exceptions import StationNotFoundError, UserNotFoundError, SnapshotStoreError
from ecocharge.domain.models import StationStatus, UserRole
from ecocharge.infrastructure.factories import CatalogLoader, SnapshotStoreFactory
from ecocharge.infrastructure.repositories import (
    Catalog, InMemorySnapshotStore, SQLAlchemySnapshotStore, RedisSnapshotStore
)
from tests.sample_data import make_stations, make_user, make_booking, make_review, FEED


def user_with_history():
    return make_user(loyalty_points=16).with_booking(make_booking(points=0)).with_review(make_review())


class TestCatalog(unittest.TestCase):
    """Unit tests for Catalog"""

    def setUp(self):
        self.catalog = Catalog(stations=make_stations(), users=[make_user()])

    def test_station_lookup(self):
        self.assertEqual(len(self.catalog), 4)
        self.assertEqual(self.catalog.get_station("st-2").name, "PowerPoint Express")
        self.assertTrue(self.catalog.has_station("st-3"))
        with self.assertRaises(StationNotFoundError):
            self.catalog.get_station("missing")

    def test_replace_and_remove_station(self):
        station = self.catalog.get_station("st-1")
        self.catalog.replace_station(station.with_status(StationStatus.OFFLINE))
        self.assertEqual(self.catalog.get_station("st-1").status, StationStatus.OFFLINE)

        self.catalog.remove_station("st-1")
        self.assertFalse(self.catalog.has_station("st-1"))
        self.assertEqual([s.id for s in self.catalog.stations], ["st-2", "st-3", "st-4"])

    def test_duplicate_station(self):
        with self.assertRaises(ValueError):
            self.catalog.add_station(make_stations()[0])

    def test_user_lookup(self):
        self.assertEqual(self.catalog.find_user_by_email("ASHA@example.com").id, "u-1")
        self.assertIsNone(self.catalog.find_user_by_email("nobody@example.com"))
        with self.assertRaises(UserNotFoundError):
            self.catalog.get_user("u-9")

    def test_duplicate_email(self):
        with self.assertRaises(ValueError):
            self.catalog.add_user(make_user(user_id="u-2"))

    def test_replace_unknown_user(self):
        with self.assertRaises(UserNotFoundError):
            self.catalog.replace_user(make_user(user_id="u-2", email="b@example.com"))

    def test_merge_reviews_adds_only_new_records(self):
        self.catalog.add_review(make_review("r-1", rating=5))

        refreshed = self.catalog.merge_reviews([
            make_review("r-1", rating=5),
            make_review("r-2", rating=3),
            make_review("r-3", rating=4, station_id="st-gone"),
        ])

        self.assertEqual([s.id for s in refreshed], ["st-1"])
        self.assertEqual([r.id for r in self.catalog.reviews_for_station("st-1")], ["r-1", "r-2"])
        self.assertEqual(self.catalog.get_station("st-1").review_count, 2)
        self.assertEqual(self.catalog.get_station("st-1").rating, 4.0)
        self.assertEqual(self.catalog.merge_reviews([make_review("r-2", rating=3)]), [])


class SnapshotStoreContract:
    """Behaviour every snapshot store shares"""

    def create_store(self):
        raise NotImplementedError

    def test_save_and_load(self):
        store = self.create_store()
        user = user_with_history()

        store.save(user)
        loaded = store.load(user.id)

        self.assertEqual(loaded, user)
        self.assertEqual(loaded.bookings[0].total_cost, Decimal("8"))

    def test_save_replaces_previous_snapshot(self):
        store = self.create_store()
        user = make_user()
        store.save(user)
        store.save(user.with_booking(make_booking()))

        self.assertEqual(len(store.load(user.id).bookings), 1)

    def test_decimal_amounts_survive_exactly(self):
        store = self.create_store()
        user = make_user().with_booking(make_booking(total_cost="7.3333333333333333333333", points=14))

        store.save(user)
        booking = store.load(user.id).bookings[0]

        self.assertEqual(booking.total_cost, Decimal("7.3333333333333333333333"))
        self.assertEqual(booking.duration_hours, Decimal("2"))

    def test_missing_snapshot(self):
        self.assertIsNone(self.create_store().load("nobody"))

    def test_delete(self):
        store = self.create_store()
        store.save(make_user())

        self.assertTrue(store.delete("u-1"))
        self.assertIsNone(store.load("u-1"))
        self.assertFalse(store.delete("u-1"))


class TestInMemorySnapshotStore(SnapshotStoreContract, unittest.TestCase):

    def create_store(self):
        return InMemorySnapshotStore()

    def test_count_and_clear(self):
        store = self.create_store()
        store.save(make_user())
        self.assertEqual(store.count(), 1)
        store.clear()
        self.assertEqual(store.count(), 0)


class TestSQLAlchemySnapshotStore(SnapshotStoreContract, unittest.TestCase):

    def create_store(self):
        return SQLAlchemySnapshotStore("sqlite:///:memory:")


class FakeRedis:
    """Dict-backed stand-in for the redis client calls the store makes"""

    def __init__(self):
        self.data = {}

    def set(self, key, value):
        self.data[key] = value.encode("utf-8")
        return True

    def get(self, key):
        return self.data.get(key)

    def delete(self, key):
        return 1 if self.data.pop(key, None) is not None else 0


class TestRedisSnapshotStore(SnapshotStoreContract, unittest.TestCase):

    def create_store(self):
        return RedisSnapshotStore(client=FakeRedis())

    def test_keys_are_prefixed(self):
        client = FakeRedis()
        RedisSnapshotStore(client=client, key_prefix="test:").save(make_user())
        self.assertIn("test:u-1", client.data)

    def test_redis_errors_are_wrapped(self):
        client = Mock()
        client.set.side_effect = redis.ConnectionError("down")
        client.get.side_effect = redis.ConnectionError("down")
        store = RedisSnapshotStore(client=client)

        with self.assertRaises(SnapshotStoreError):
            store.save(make_user())
        with self.assertRaises(SnapshotStoreError):
            store.load("u-1")


class TestSnapshotStoreFactory(unittest.TestCase):

    def test_from_url(self):
        self.assertIsInstance(SnapshotStoreFactory.from_url("memory://"), InMemorySnapshotStore)
        self.assertIsInstance(SnapshotStoreFactory.from_url(None), InMemorySnapshotStore)
        self.assertIsInstance(SnapshotStoreFactory.from_url("sqlite:///:memory:"), SQLAlchemySnapshotStore)
        self.assertIsInstance(SnapshotStoreFactory.from_url("redis://localhost:6379/0"), RedisSnapshotStore)


class TestCatalogLoader(unittest.TestCase):
    """Unit tests for reading the camelCase feed"""

    def setUp(self):
        self.loader = CatalogLoader()

    def test_from_dict(self):
        catalog = self.loader.from_dict(FEED)

        station = catalog.get_station("st-1")
        self.assertEqual(station.operating_hours, "06:00 - 23:00")
        self.assertEqual(station.loyalty_points, 10)
        self.assertEqual(station.peak_hours.multiplier, Decimal("1.5"))
        self.assertFalse(station.connectors[1].available)
        self.assertEqual(catalog.get_station("st-2").status, StationStatus.MAINTENANCE)

        user = catalog.get_user("u-1")
        self.assertEqual(user.loyalty_points, 16)
        self.assertEqual(user.bookings[0].total_cost, Decimal("8"))
        self.assertEqual(user.bookings[0].vehicle.battery_size_kwh, Decimal("40"))
        self.assertEqual(catalog.get_user("admin-1").role, UserRole.ADMIN)

    def test_review_records_drive_station_aggregates(self):
        catalog = self.loader.from_dict(FEED)

        # st-1 has one review record in the feed; st-2 has none
        self.assertEqual(catalog.get_station("st-1").review_count, 1)
        self.assertEqual(catalog.get_station("st-1").rating, 4.0)
        self.assertEqual(catalog.get_station("st-2").review_count, 40)
        self.assertEqual(catalog.get_station("st-2").rating, 4.1)

    def test_bare_station_list(self):
        catalog = self.loader.from_dict(FEED["stations"])
        self.assertEqual(len(catalog), 2)
        self.assertEqual(catalog.users, [])

    def test_from_json_file(self):
        fd, path = tempfile.mkstemp(suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(FEED, fh)
            catalog = self.loader.from_json_file(path)
        finally:
            os.remove(path)

        self.assertEqual([s.id for s in catalog.stations], ["st-1", "st-2"])

    def test_snapshot_dicts_load_through_the_same_parser(self):
        user = user_with_history()
        self.assertEqual(self.loader.user_from_dict(user.to_dict()), user)


if __name__ == '__main__':
    unittest.main()
