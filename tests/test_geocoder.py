"""Tests for reverse geocoding, its cache and the enrichment pass."""

import threading
import unittest
from unittest.mock import MagicMock, call
import sys
from pathlib import Path

import requests

# Add src to path so we can import traffictrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from traffictrack.exceptions import GeocodeLookupError
from traffictrack.geocoder import (
    GeocodeCache,
    GeocodeEnricher,
    ReverseGeocoder,
    cache_key,
    default_cache,
    format_place,
)
from traffictrack.models import Position, Station


def mock_response(status=200, payload=None, json_error=None):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 400
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


def make_station(index, lat, lng):
    return Station(
        id=f"S{index}",
        station_code=f"S{index}",
        position=Position(lat=lat, lng=lng),
        name="Tokyo",
        area="Tokyo",
        display_name=f"Tokyo (S{index})",
        upbound_small=100 - index,
    )


class TestGeocodeCache(unittest.TestCase):
    """Test the shared place-name cache."""

    def test_cache_key_quantizes_to_three_decimals(self):
        self.assertEqual(cache_key(35.68041, 139.65049), "35.680,139.650")
        self.assertEqual(cache_key(35.6801, 139.6504), cache_key(35.6804, 139.6496))

    def test_get_set(self):
        cache = GeocodeCache()
        self.assertIsNone(cache.get("k"))
        cache.set("k", "Tokyo")
        self.assertEqual(cache.get("k"), "Tokyo")
        self.assertIn("k", cache)
        self.assertEqual(len(cache), 1)
        cache.clear()
        self.assertEqual(len(cache), 0)

    def test_get_or_compute_only_computes_on_miss(self):
        cache = GeocodeCache()
        compute = MagicMock(return_value="Osaka")

        self.assertEqual(cache.get_or_compute("k", compute), "Osaka")
        self.assertEqual(cache.get_or_compute("k", compute), "Osaka")
        compute.assert_called_once()

    def test_first_stored_value_wins(self):
        cache = GeocodeCache()

        def compute():
            # Another caller fills the key while this one is computing
            cache.set("k", "first")
            return "second"

        self.assertEqual(cache.get_or_compute("k", compute), "first")
        self.assertEqual(cache.get("k"), "first")

    def test_concurrent_access(self):
        cache = GeocodeCache()
        results = []

        def worker(i):
            for j in range(200):
                key = f"{j % 20}"
                results.append(cache.get_or_compute(key, lambda: f"place-{key}"))

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(cache), 20)
        self.assertEqual(len(results), 1600)
        for key in range(20):
            self.assertEqual(cache.get(str(key)), f"place-{key}")

    def test_default_cache_is_shared(self):
        self.assertIs(default_cache(), default_cache())


class TestReverseGeocoder(unittest.TestCase):
    """Test Nominatim lookups and their fallbacks."""

    def setUp(self):
        self.session = MagicMock()
        self.cache = GeocodeCache()
        self.geocoder = ReverseGeocoder(cache=self.cache, session=self.session)

    def test_resolves_city_and_state(self):
        self.session.get.return_value = mock_response(
            payload={"address": {"city": "Shinjuku", "state": "Tokyo"}}
        )

        self.assertEqual(self.geocoder.resolve(35.6938, 139.7034), "Shinjuku, Tokyo")

        kwargs = self.session.get.call_args.kwargs
        self.assertEqual(kwargs["headers"], {"User-Agent": "TrafficApp/1.0"})
        self.assertEqual(kwargs["params"]["format"], "json")
        self.assertEqual(kwargs["params"]["accept-language"], "en")
        self.assertEqual(kwargs["params"]["lat"], 35.6938)
        self.assertEqual(kwargs["params"]["lon"], 139.7034)

    def test_repeated_resolve_makes_one_lookup(self):
        self.session.get.return_value = mock_response(
            payload={"address": {"town": "Hakone", "state": "Kanagawa"}}
        )

        for lat, lng in [(35.2324, 139.1069), (35.2321, 139.1066), (35.2324, 139.1069)]:
            self.assertEqual(self.geocoder.resolve(lat, lng), "Hakone, Kanagawa")

        self.assertEqual(self.geocoder.calls, 1)
        self.assertEqual(self.session.get.call_count, 1)

    def test_transport_error_falls_back_and_is_cached(self):
        self.session.get.side_effect = requests.ConnectionError("down")

        self.assertEqual(self.geocoder.resolve(35.68, 139.65), "Tokyo")
        self.assertEqual(self.geocoder.resolve(35.68, 139.65), "Tokyo")

        self.assertEqual(self.geocoder.calls, 1)
        self.assertEqual(self.cache.get(cache_key(35.68, 139.65)), "Tokyo")

    def test_http_error_falls_back(self):
        self.session.get.return_value = mock_response(status=429)
        self.assertEqual(self.geocoder.resolve(34.69, 135.50), "Osaka")

    def test_malformed_json_falls_back(self):
        self.session.get.return_value = mock_response(json_error=ValueError("bad"))
        self.assertEqual(self.geocoder.resolve(43.06, 141.35), "Sapporo")

    def test_missing_address_falls_back(self):
        self.session.get.return_value = mock_response(payload={"error": "Unable to geocode"})
        self.assertEqual(self.geocoder.resolve(33.1, 139.8), "Station at 33.10°N, 139.80°E")

    def test_lookup_raises(self):
        self.session.get.return_value = mock_response(status=500)
        with self.assertRaises(GeocodeLookupError):
            self.geocoder.lookup(35.68, 139.65)

    def test_format_place(self):
        self.assertEqual(format_place({"village": "Shirakawa", "state": "Gifu"}), "Shirakawa, Gifu")
        self.assertEqual(format_place({"state": "Okinawa"}), "Okinawa")
        self.assertEqual(format_place({"city": "Kobe"}), "Kobe")
        self.assertIsNone(format_place({"country": "Japan"}))

    def test_empty_address_uses_region(self):
        self.session.get.return_value = mock_response(payload={"address": {"country": "Japan"}})
        self.assertEqual(self.geocoder.resolve(35.68, 139.65), "Tokyo")


class TestGeocodeEnricher(unittest.TestCase):
    """Test the post-ranking enrichment pass."""

    def setUp(self):
        self.session = MagicMock()
        self.session.get.return_value = mock_response(
            payload={"address": {"city": "Chiyoda", "state": "Tokyo"}}
        )
        self.geocoder = ReverseGeocoder(cache=GeocodeCache(), session=self.session)
        self.sleep = MagicMock()

    def test_enriches_top_twenty_sequentially(self):
        stations = [make_station(i, 35.6 + i * 0.01, 139.7) for i in range(25)]
        enricher = GeocodeEnricher(self.geocoder, sleep=self.sleep)

        enriched = enricher.enrich(stations)

        self.assertEqual(enriched, 20)
        self.assertEqual(self.session.get.call_count, 20)
        self.assertEqual(self.sleep.call_args_list, [call(0.1)] * 20)
        for station in stations[:20]:
            self.assertEqual(station.name, "Chiyoda, Tokyo")
            self.assertEqual(station.area, "Chiyoda, Tokyo")
            self.assertEqual(station.display_name, f"Chiyoda, Tokyo ({station.station_code})")
        for station in stations[20:]:
            self.assertEqual(station.name, "Tokyo")

    def test_cache_hits_do_not_sleep(self):
        stations = [make_station(i, 35.68, 139.65) for i in range(3)]
        enricher = GeocodeEnricher(self.geocoder, sleep=self.sleep)

        enricher.enrich(stations)

        self.assertEqual(self.session.get.call_count, 1)
        self.sleep.assert_called_once_with(0.1)

    def test_failures_do_not_stop_enrichment(self):
        self.session.get.side_effect = [
            requests.Timeout("slow"),
            mock_response(payload={"address": {"city": "Yokohama", "state": "Kanagawa"}}),
        ]
        stations = [make_station(0, 35.68, 139.65), make_station(1, 35.44, 139.64)]
        enricher = GeocodeEnricher(self.geocoder, sleep=self.sleep)

        self.assertEqual(enricher.enrich(stations), 2)
        self.assertEqual(stations[0].name, "Tokyo")
        self.assertEqual(stations[1].name, "Yokohama, Kanagawa")

    def test_unexpected_error_skips_station(self):
        geocoder = MagicMock()
        geocoder.calls = 0
        geocoder.resolve.side_effect = [RuntimeError("boom"), "Kobe, Hyogo"]
        stations = [make_station(0, 34.69, 135.19), make_station(1, 34.70, 135.20)]

        enriched = GeocodeEnricher(geocoder, sleep=self.sleep).enrich(stations)

        self.assertEqual(enriched, 1)
        self.assertEqual(stations[0].name, "Tokyo")
        self.assertEqual(stations[1].name, "Kobe, Hyogo")


if __name__ == "__main__":
    unittest.main()
