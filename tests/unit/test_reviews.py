# File: tests/unit/test_reviews.py
"""
Review Unit Tests

Tests for rating aggregation and ReviewService.
"""

import unittest
from datetime import date

from ecocharge.application.review_service import ReviewService
from ecocharge.domain.exceptions import UnauthenticatedError, ReviewValidationError
from ecocharge.domain.reviews import aggregate
from ecocharge.infrastructure.repositories import Catalog
from tests.sample_data import make_stations, make_user, make_review


class TestAggregate(unittest.TestCase):
    """Unit tests for aggregate()"""

    def test_no_reviews(self):
        summary = aggregate([])

        self.assertEqual(summary.average, 0.0)
        self.assertEqual(summary.total, 0)
        self.assertEqual([b.star for b in summary.histogram], [5, 4, 3, 2, 1])
        for bucket in summary.histogram:
            self.assertEqual(bucket.count, 0)
            self.assertEqual(bucket.percentage, 0.0)

    def test_average_and_histogram(self):
        reviews = [make_review("r-1", 5), make_review("r-2", 5), make_review("r-3", 4)]
        summary = aggregate(reviews)

        self.assertAlmostEqual(summary.average, 4.666, places=2)
        self.assertEqual(summary.total, 3)
        self.assertEqual(summary.bucket(5).count, 2)
        self.assertAlmostEqual(summary.bucket(5).percentage, 66.67, places=1)
        self.assertEqual(summary.bucket(4).count, 1)
        self.assertEqual(summary.bucket(1).count, 0)

    def test_bucket_counts_sum_to_total(self):
        reviews = [make_review(f"r-{i}", rating) for i, rating in enumerate([1, 2, 2, 3, 5, 5, 5])]
        summary = aggregate(reviews)

        self.assertEqual(sum(b.count for b in summary.histogram), summary.total)
        self.assertAlmostEqual(sum(b.percentage for b in summary.histogram), 100.0)

    def test_unknown_bucket(self):
        with self.assertRaises(KeyError):
            aggregate([]).bucket(6)


class TestReviewService(unittest.TestCase):
    """Unit tests for ReviewService"""

    def setUp(self):
        self.service = ReviewService(clock=lambda: date(2030, 5, 2))
        self.station = make_stations()[0]
        self.user = make_user()

    def test_create_review(self):
        outcome = self.service.create_review(self.station, self.user, 4, "  Friendly staff  ")

        self.assertEqual(outcome.review.rating, 4)
        self.assertEqual(outcome.review.comment, "Friendly staff")
        self.assertEqual(outcome.review.station_id, "st-1")
        self.assertEqual(outcome.review.user_name, "Asha Rao")
        self.assertEqual(outcome.review.date, date(2030, 5, 2))
        self.assertEqual(outcome.user.reviews, (outcome.review,))
        self.assertEqual(self.user.reviews, ())

    def test_review_requires_user(self):
        with self.assertRaises(UnauthenticatedError):
            self.service.create_review(self.station, None, 5, "Great")

    def test_rating_out_of_range(self):
        for rating in (0, 6, 3.5):
            with self.assertRaises(ReviewValidationError) as ctx:
                self.service.create_review(self.station, self.user, rating, "Fine")
            self.assertIn("rating", ctx.exception.errors)

    def test_blank_comment(self):
        for comment in ("", "   ", None):
            with self.assertRaises(ReviewValidationError) as ctx:
                self.service.create_review(self.station, self.user, 5, comment)
            self.assertEqual(set(ctx.exception.errors), {"comment"})

    def test_summary_for_station(self):
        catalog = Catalog(stations=make_stations())
        catalog.add_review(make_review("r-1", 5))
        catalog.add_review(make_review("r-2", 3))

        data = self.service.summary_for(catalog, "st-1")

        self.assertEqual(data["summary"].total, 2)
        self.assertEqual(data["summary"].average, 4.0)
        self.assertEqual([r.id for r in data["reviews"]], ["r-2", "r-1"])


class TestCatalogRatings(unittest.TestCase):
    """Station aggregates stay consistent with the review records"""

    def test_seeded_aggregates_kept_without_records(self):
        catalog = Catalog(stations=make_stations())
        station = catalog.get_station("st-1")

        self.assertEqual(station.rating, 4.5)
        self.assertEqual(station.review_count, 120)

    def test_adding_a_review_refreshes_station(self):
        catalog = Catalog(stations=make_stations(), reviews=[make_review("r-1", 5)])
        self.assertEqual(catalog.get_station("st-1").review_count, 1)

        updated = catalog.add_review(make_review("r-2", 4))

        self.assertEqual(updated.review_count, 2)
        self.assertEqual(updated.rating, 4.5)
        self.assertEqual(catalog.get_station("st-1"), updated)
        self.assertEqual(len(catalog.reviews_for_station("st-1")), 2)

    def test_rating_is_rounded(self):
        catalog = Catalog(stations=make_stations())
        for i, rating in enumerate([5, 5, 4]):
            station = catalog.add_review(make_review(f"r-{i}", rating))
        self.assertEqual(station.rating, 4.67)


if __name__ == '__main__':
    unittest.main()
