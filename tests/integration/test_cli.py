# File: tests/integration/test_cli.py
"""
Command-line Integration Tests
"""

import json
import os
import shutil
import tempfile
import unittest
from io import StringIO
from unittest.mock import patch

from ecocharge.main import main, build_parser
from tests.sample_data import FEED


class TestCommandLine(unittest.TestCase):
    """Integration tests for the ecocharge command"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.catalog_path = os.path.join(self.temp_dir, "catalog.json")
        with open(self.catalog_path, "w", encoding="utf-8") as fh:
            json.dump(FEED, fh)

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def run_cli(self, *argv):
        with patch("sys.stdout", new_callable=StringIO) as stdout, patch.dict(os.environ, {}, clear=False):
            os.environ.pop("ECOCHARGE_CATALOG_PATH", None)
            code = main(["--log-level", "WARNING", *argv])
        return code, stdout.getvalue()

    def test_slots(self):
        code, output = self.run_cli("slots")

        self.assertEqual(code, 0)
        slots = json.loads(output)["slots"]
        self.assertEqual(slots[0], "06:00")
        self.assertEqual(slots[-1], "22:30")

    def test_search(self):
        code, output = self.run_cli("--catalog", self.catalog_path, "search", "--amenity", "Cafe")

        self.assertEqual(code, 0)
        data = json.loads(output)
        self.assertEqual([s["id"] for s in data["stations"]], ["st-1"])
        self.assertEqual(data["facets"]["connector_types"], ["CCS2", "Type 2", "CHAdeMO"])

    def test_quote(self):
        code, output = self.run_cli(
            "--catalog", self.catalog_path, "quote", "st-1",
            "--connector", "CCS2", "--time", "19:00", "--duration", "2", "--battery", "40"
        )

        self.assertEqual(code, 0)
        data = json.loads(output)
        self.assertEqual(data["total"], 12.0)
        self.assertEqual(data["breakdown"]["loyalty_points_earned"], 24)
        self.assertEqual(data["currency"], "INR")

    def test_stats(self):
        code, output = self.run_cli("--catalog", self.catalog_path, "stats")

        self.assertEqual(code, 0)
        self.assertEqual(json.loads(output), {
            "total_stations": 2,
            "online_stations": 1,
            "total_users": 2,
            "total_bookings": 1,
            "total_revenue": 8.0
        })

    def test_unknown_station_exits_with_error(self):
        code, output = self.run_cli(
            "--catalog", self.catalog_path, "quote", "st-99", "--connector", "CCS2", "--battery", "40"
        )
        self.assertEqual(code, 1)
        self.assertEqual(output, "")

    def test_catalog_is_required(self):
        with self.assertRaises(SystemExit):
            with patch("sys.stderr", new_callable=StringIO):
                self.run_cli("stats")

    def test_parser_rejects_unknown_price_band(self):
        with self.assertRaises(SystemExit):
            with patch("sys.stderr", new_callable=StringIO):
                build_parser().parse_args(["search", "--price", "cheap"])


if __name__ == '__main__':
    unittest.main()
