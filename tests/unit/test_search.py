# File: tests/unit/test_search.py
"""
Station Finder Unit Tests

Tests for SearchQuery normalisation, StationFilter and the facet helpers.
"""

import unittest

from ecocharge.application.dtos import SearchQuery
from ecocharge.application.station_finder import search, StationFinder
from ecocharge.domain.search import PriceRange, StationCriteria, StationFilter
from ecocharge.infrastructure.repositories import Catalog
from tests.sample_data import make_stations


def ids(stations):
    return [s.id for s in stations]


class TestStationSearch(unittest.TestCase):
    """Unit tests for search()"""

    def setUp(self):
        self.stations = make_stations()

    def test_empty_query_returns_catalog_in_order(self):
        self.assertEqual(ids(search(self.stations)), ["st-1", "st-2", "st-3", "st-4"])
        self.assertEqual(ids(search(self.stations, SearchQuery())), ["st-1", "st-2", "st-3", "st-4"])
        self.assertEqual(ids(search(self.stations, {})), ["st-1", "st-2", "st-3", "st-4"])

    def test_free_text_matches_name_or_address_case_insensitively(self):
        self.assertEqual(ids(search(self.stations, {"free_text": "delhi"})), ["st-2"])
        self.assertEqual(ids(search(self.stations, {"freeText": "ECOVOLT"})), ["st-3"])
        self.assertEqual(ids(search(self.stations, {"free_text": "charge"})), ["st-1", "st-4"])

    def test_connector_filter_requires_available_connector(self):
        # st-2 lists CCS2 but it is unavailable
        self.assertEqual(ids(search(self.stations, {"connector_type": "CCS2"})), ["st-1", "st-4"])

    def test_price_bands(self):
        test_cases = [
            ("low", ["st-1"]),
            ("medium", ["st-2", "st-3"]),
            ("high", ["st-2", "st-4"]),
        ]
        for band, expected in test_cases:
            self.assertEqual(ids(search(self.stations, {"price_range": band})), expected,
                             msg=f"Failed for band={band}")

    def test_price_band_boundaries(self):
        from decimal import Decimal
        self.assertTrue(PriceRange.LOW.contains(Decimal("10")))
        self.assertFalse(PriceRange.MEDIUM.contains(Decimal("10")))
        self.assertTrue(PriceRange.MEDIUM.contains(Decimal("15")))
        self.assertFalse(PriceRange.HIGH.contains(Decimal("15")))
        self.assertTrue(PriceRange.HIGH.contains(Decimal("15.01")))

    def test_status_filter(self):
        self.assertEqual(ids(search(self.stations, {"status": "maintenance"})), ["st-3"])
        self.assertEqual(ids(search(self.stations, {"status": "online"})), ["st-1", "st-2"])

    def test_every_amenity_is_required(self):
        query = {"amenities": ["WiFi", "Cafe"]}
        self.assertEqual(ids(search(self.stations, query)), ["st-1", "st-4"])

    def test_filters_combine_as_conjunction(self):
        query = {"connector_type": "Type 2", "amenities": ["WiFi"]}
        self.assertEqual(ids(search(self.stations, query)), ["st-1", "st-3"])

        query["status"] = "online"
        self.assertEqual(ids(search(self.stations, query)), ["st-1"])

    def test_unreadable_values_mean_no_constraint(self):
        everything = ["st-1", "st-2", "st-3", "st-4"]
        for query in [{"price_range": "cheap"}, {"status": "broken"}, {"amenities": 42},
                      {"free_text": "   "}, {"connector_type": 7}]:
            self.assertEqual(ids(search(self.stations, query)), everything, msg=f"Failed for {query}")

    def test_no_match_gives_empty_list(self):
        self.assertEqual(search(self.stations, {"free_text": "Chennai"}), [])


class TestSearchQuery(unittest.TestCase):
    """Unit tests for SearchQuery"""

    def test_toggle_amenity(self):
        query = SearchQuery()
        query = query.toggle_amenity("WiFi").toggle_amenity("Cafe")
        self.assertEqual(query.amenities, ("WiFi", "Cafe"))

        query = query.toggle_amenity("WiFi")
        self.assertEqual(query.amenities, ("Cafe",))

    def test_duplicate_amenities_collapse(self):
        query = SearchQuery(amenities=["WiFi", "WiFi", " Cafe "])
        self.assertEqual(query.amenities, ("WiFi", "Cafe"))

    def test_to_criteria(self):
        criteria = SearchQuery(price_range="LOW", amenities=["WiFi"]).to_criteria()
        self.assertEqual(criteria.price_range, PriceRange.LOW)
        self.assertEqual(criteria.amenities, frozenset({"WiFi"}))
        self.assertFalse(criteria.is_empty)
        self.assertTrue(StationCriteria().is_empty)

    def test_filter_matches_single_station(self):
        station = make_stations()[0]
        self.assertTrue(StationFilter(StationCriteria(free_text="green")).matches(station))
        self.assertFalse(StationFilter(StationCriteria(connector_type="CHAdeMO")).matches(station))


class TestStationFinder(unittest.TestCase):
    """Unit tests for StationFinder facets"""

    def setUp(self):
        self.finder = StationFinder(Catalog(stations=make_stations()))

    def test_facets_in_first_seen_order(self):
        facets = self.finder.facets()
        self.assertEqual(facets["connector_types"], ["CCS2", "Type 2", "CHAdeMO"])
        self.assertEqual(facets["amenities"], ["WiFi", "Cafe", "Parking", "Restroom"])

    def test_search_uses_current_catalog(self):
        self.assertEqual(ids(self.finder.search({"connector_type": "CHAdeMO"})), ["st-2"])


if __name__ == '__main__':
    unittest.main()
