"""Offline lat/lng to place-name mapping for Japanese traffic stations."""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class RegionRule:
    """Named inclusive bounding box. A bound of None is open on that side."""
    name: str
    min_lat: Optional[float] = None
    max_lat: Optional[float] = None
    min_lng: Optional[float] = None
    max_lng: Optional[float] = None

    def contains(self, lat: float, lng: float) -> bool:
        if self.min_lat is not None and lat < self.min_lat:
            return False
        if self.max_lat is not None and lat > self.max_lat:
            return False
        if self.min_lng is not None and lng < self.min_lng:
            return False
        if self.max_lng is not None and lng > self.max_lng:
            return False
        return True


# Evaluated top to bottom, first match wins. Cities must stay ahead of the
# regions that contain them (Tokyo lies inside the Kanto box).
REGION_RULES: Tuple[RegionRule, ...] = (
    # Major cities
    RegionRule("Tokyo", 35.5, 36.0, 139.5, 140.0),
    RegionRule("Osaka", 34.5, 35.5, 135.0, 136.0),
    RegionRule("Nagoya", 35.0, 36.0, 136.5, 137.5),
    RegionRule("Sapporo", 43.0, 44.0, 141.0, 142.0),
    RegionRule("Fukuoka", 33.5, 34.0, 130.0, 131.0),
    RegionRule("Sendai", 38.0, 38.5, 140.5, 141.0),
    RegionRule("Hiroshima", 34.0, 34.5, 132.0, 133.0),
    # Broader regions
    # Kanto's open bounds also take Tohoku and eastern Hokkaido
    RegionRule("Kanto Region", min_lat=35.0, min_lng=139.0),
    RegionRule("Kansai Region", 34.0, 35.5, 135.0, 137.0),
    RegionRule("Chubu Region", 35.0, 37.5, 136.0, 139.0),
    RegionRule("Hokkaido", min_lat=43.0),
    RegionRule("Kyushu", max_lat=34.0, max_lng=132.0),
    RegionRule("Chugoku Region", 33.0, 35.0, 132.0, 135.0),
    # Fully shadowed by Chugoku Region above
    RegionRule("Shikoku", 33.0, 35.0, 133.0, 135.0),
)


def format_coordinates(lat: float, lng: float) -> str:
    """Label for a station that falls outside every known region."""
    return f"Station at {lat:.2f}°N, {lng:.2f}°E"


def classify_region(lat: float, lng: float) -> str:
    """
    Map a coordinate to a human-readable place name without any network call.

    Args:
        lat: Latitude in degrees.
        lng: Longitude in degrees.

    Returns:
        Name of the first matching rule in REGION_RULES, or a formatted
        coordinate string when nothing matches.
    """
    for rule in REGION_RULES:
        if rule.contains(lat, lng):
            return rule.name
    return format_coordinates(lat, lng)
