"""Reverse geocoding with a process-wide cache and request pacing."""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional

import requests

from .exceptions import GeocodeLookupError
from .models import Station
from .regions import classify_region

logger = logging.getLogger(__name__)

NOMINATIM_URL = "https://nominatim.openstreetmap.org/reverse"
DEFAULT_USER_AGENT = "TrafficApp/1.0"


def cache_key(lat: float, lng: float) -> str:
    """Quantize a coordinate to 3 decimals (about 100 m)."""
    return f"{lat:.3f},{lng:.3f}"


class GeocodeCache:
    """
    Thread-safe place-name cache keyed by quantized coordinates.

    Entries live for the lifetime of the object and are never evicted; the key
    space is bounded by the sensor coverage area.
    """

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def get_or_compute(self, key: str, compute: Callable[[], str]) -> str:
        """
        Return the cached value for key, computing and storing it on a miss.

        compute() runs outside the lock so slow lookups for different keys do
        not serialize. If two callers race on the same key both may compute,
        but the first stored value wins and is what both return.
        """
        with self._lock:
            if key in self._data:
                return self._data[key]

        value = compute()

        with self._lock:
            return self._data.setdefault(key, value)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


_DEFAULT_CACHE = GeocodeCache()


def default_cache() -> GeocodeCache:
    """Process-wide cache shared by every geocoder that is not given its own."""
    return _DEFAULT_CACHE


class ReverseGeocoder:
    """Resolves coordinates to "City, State" labels via Nominatim."""

    def __init__(
        self,
        cache: Optional[GeocodeCache] = None,
        session: Optional[requests.Session] = None,
        base_url: str = NOMINATIM_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 5.0,
        classifier: Callable[[float, float], str] = classify_region,
    ):
        self.cache = cache if cache is not None else default_cache()
        self.session = session or requests.Session()
        self.base_url = base_url
        self.user_agent = user_agent
        self.timeout = timeout
        self.classifier = classifier
        self.calls = 0  # external lookup attempts

    def resolve(self, lat: float, lng: float) -> str:
        """
        Get a place name for a coordinate. Never raises.

        Args:
            lat: Latitude in degrees.
            lng: Longitude in degrees.

        Returns:
            The geocoded label, or the offline region label when the lookup
            fails. Either result is cached, so a failed coordinate is not
            retried for the lifetime of the cache.
        """
        return self.cache.get_or_compute(
            cache_key(lat, lng), lambda: self._resolve_uncached(lat, lng)
        )

    def _resolve_uncached(self, lat: float, lng: float) -> str:
        try:
            place = self.lookup(lat, lng)
        except GeocodeLookupError as e:
            logger.warning(f"Geocoding failed for {lat}, {lng}: {e}")
            place = None

        if place:
            return place
        return self.classifier(lat, lng)

    def lookup(self, lat: float, lng: float) -> Optional[str]:
        """
        Perform one reverse-geocode request.

        Returns:
            "City, State", "State" or "City", or None when the response has no
            usable address parts.

        Raises:
            GeocodeLookupError: On transport errors, non-success status or a
                malformed body.
        """
        self.calls += 1
        params = {"lat": lat, "lon": lng, "format": "json", "accept-language": "en"}
        try:
            response = self.session.get(
                self.base_url,
                params=params,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise GeocodeLookupError(f"request failed: {e}") from e

        if not response.ok:
            raise GeocodeLookupError(f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise GeocodeLookupError(f"invalid JSON: {e}") from e

        address = data.get("address") if isinstance(data, dict) else None
        if not isinstance(address, dict):
            raise GeocodeLookupError("response has no address")

        return format_place(address)

    def close(self) -> None:
        self.session.close()


def format_place(address: dict) -> Optional[str]:
    """Compose a label from a Nominatim address breakdown."""
    city = address.get("city") or address.get("town") or address.get("village")
    state = address.get("state")

    if city and state:
        return f"{city}, {state}"
    if state:
        return state
    if city:
        return city
    return None


class GeocodeEnricher:
    """
    Relabels the busiest stations of a ranked list with geocoded place names.

    Lookups run one at a time with a fixed pause after each external call, to
    stay under the geocoding service's rate limit.
    """

    def __init__(
        self,
        geocoder: ReverseGeocoder,
        limit: int = 20,
        delay: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.geocoder = geocoder
        self.limit = limit
        self.delay = delay
        self._sleep = sleep

    def enrich(self, stations: List[Station]) -> int:
        """
        Relabel the first ``limit`` stations in place.

        Args:
            stations: Stations already sorted by rank.

        Returns:
            Number of stations relabeled.
        """
        enriched = 0
        for station in stations[: self.limit]:
            calls_before = self.geocoder.calls
            try:
                place = self.geocoder.resolve(station.position.lat, station.position.lng)
            except Exception as e:
                logger.warning(f"Failed to geocode station {station.id}: {e}")
                continue

            station.relabel(place)
            enriched += 1

            # Cache hits made no request, so they need no pause
            if self.geocoder.calls != calls_before and self.delay > 0:
                self._sleep(self.delay)

        logger.debug(f"Enriched {enriched} stations with geocoded names")
        return enriched
