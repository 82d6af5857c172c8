"""Tests for the location module."""

import json
import os
import shutil
import tempfile
import unittest
from unittest.mock import MagicMock, patch

import requests

import prayerbar.location as loc_mod
from prayerbar.errors import LocationUnavailable
from prayerbar.location import (
    Location,
    LocationSource,
    clear_manual_location,
    get_location,
    load_manual_location,
    place_name,
    save_manual_location,
)


class TestGetLocation(unittest.TestCase):
    @patch("prayerbar.location.requests.get")
    def test_returns_location_on_success(self, mock_get):
        mock_resp = MagicMock()
        mock_resp.json.return_value = {
            "status": "success",
            "city": "Jakarta",
            "country": "Indonesia",
            "lat": -6.2,
            "lon": 106.8,
            "timezone": "Asia/Jakarta",
        }
        mock_resp.raise_for_status = MagicMock()
        mock_get.return_value = mock_resp

        loc = get_location()
        self.assertEqual(loc.name, "Jakarta, Indonesia")
        self.assertAlmostEqual(loc.lat, -6.2)
        self.assertEqual(loc.timezone, "Asia/Jakarta")
        self.assertAlmostEqual(loc.coordinates.lon, 106.8)

    @patch("prayerbar.location.requests.get")
    def test_none_on_network_failure(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("Network error")
        self.assertIsNone(get_location())

    @patch("prayerbar.location.requests.get")
    def test_none_on_api_error_status(self, mock_get):
        mock_resp = MagicMock()
        mock_resp.json.return_value = {"status": "fail", "message": "reserved range"}
        mock_resp.raise_for_status = MagicMock()
        mock_get.return_value = mock_resp
        self.assertIsNone(get_location())

    @patch("prayerbar.location.requests.get")
    def test_none_without_coordinates(self, mock_get):
        mock_resp = MagicMock()
        mock_resp.json.return_value = {"status": "success", "city": "Nowhere"}
        mock_get.return_value = mock_resp
        self.assertIsNone(get_location())


class TestPlaceName(unittest.TestCase):
    def test_joins_city_and_country(self):
        self.assertEqual(place_name("Dallas", "United States"), "Dallas, United States")

    def test_skips_missing_parts(self):
        self.assertEqual(place_name(None, "Egypt"), "Egypt")

    def test_unknown_when_empty(self):
        self.assertEqual(place_name("", None), "Unknown")


class TestManualLocation(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.mkdtemp()
        self._orig_config_dir = loc_mod.CONFIG_DIR
        self._orig_config_file = loc_mod.CONFIG_FILE
        loc_mod.CONFIG_DIR = self._tmpdir
        loc_mod.CONFIG_FILE = os.path.join(self._tmpdir, "location.json")

    def tearDown(self):
        loc_mod.CONFIG_DIR = self._orig_config_dir
        loc_mod.CONFIG_FILE = self._orig_config_file
        shutil.rmtree(self._tmpdir, ignore_errors=True)

    def test_save_and_load_manual_location(self):
        save_manual_location(Location(-6.5567, 106.5614, "Ciseeng, Indonesia", "Asia/Jakarta"))
        loaded = load_manual_location()
        self.assertIsNotNone(loaded)
        self.assertEqual(loaded.name, "Ciseeng, Indonesia")
        self.assertAlmostEqual(loaded.lat, -6.5567)

    def test_load_returns_none_when_no_file(self):
        self.assertIsNone(load_manual_location())

    def test_clear_manual_location(self):
        save_manual_location(Location(0.0, 0.0))
        self.assertIsNotNone(load_manual_location())
        clear_manual_location()
        self.assertIsNone(load_manual_location())

    def test_load_returns_none_for_invalid_json(self):
        with open(loc_mod.CONFIG_FILE, "w") as f:
            f.write("not valid json")
        self.assertIsNone(load_manual_location())

    def test_load_returns_none_for_missing_keys(self):
        with open(loc_mod.CONFIG_FILE, "w") as f:
            json.dump({"name": "Test"}, f)
        self.assertIsNone(load_manual_location())


class TestLocationSource(unittest.TestCase):
    def test_require_without_location(self):
        source = LocationSource()
        with self.assertRaises(LocationUnavailable):
            source.require()
        self.assertEqual(source.name, "Locating...")

    def test_update_notifies_subscribers(self):
        source = LocationSource()
        seen = []
        source.subscribe(seen.append)
        loc = Location(21.42, 39.83, "Mecca, Saudi Arabia", "Asia/Riyadh")
        source.update(loc)
        self.assertEqual(seen, [loc])
        self.assertIs(source.require(), loc)

    def test_most_recent_wins(self):
        source = LocationSource(Location(1.0, 1.0))
        source.update(Location(2.0, 2.0))
        self.assertEqual(source.location.lat, 2.0)

    def test_failing_subscriber_does_not_block_others(self):
        source = LocationSource()
        seen = []
        source.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        source.subscribe(seen.append)
        source.update(Location(1.0, 1.0))
        self.assertEqual(len(seen), 1)

    @patch("prayerbar.location.get_location")
    @patch("prayerbar.location.load_manual_location")
    def test_refresh_prefers_manual_location(self, mock_manual, mock_ip):
        manual = Location(30.04, 31.24, "Cairo, Egypt", "Africa/Cairo")
        mock_manual.return_value = manual
        source = LocationSource()
        self.assertIs(source.refresh(), manual)
        mock_ip.assert_not_called()

    @patch("prayerbar.location.get_location", return_value=None)
    @patch("prayerbar.location.load_manual_location", return_value=None)
    def test_refresh_failure_keeps_previous(self, mock_manual, mock_ip):
        previous = Location(1.0, 1.0)
        source = LocationSource(previous)
        self.assertIsNone(source.refresh())
        self.assertIs(source.location, previous)


if __name__ == "__main__":
    unittest.main()
