"""TrafficTrack - Ranked 5-minute traffic snapshots from the JARTIC open traffic feed."""

__version__ = "0.1.0"

from .models import Position, Station, StationStats, TopRegion, Snapshot, TrafficAnalytics
from .exceptions import (
    TrafficTrackError,
    InvalidRecord,
    UpstreamFetchError,
    NoDataAvailable,
    GeocodeLookupError,
)
from .config import TrackerConfig
from .traffic_tracker import TrafficTracker
from .jartic_client import JarticClient
from .geocoder import GeocodeCache, GeocodeEnricher, ReverseGeocoder
from .regions import classify_region

__all__ = [
    "TrafficTracker",
    "TrackerConfig",
    "JarticClient",
    "GeocodeCache",
    "GeocodeEnricher",
    "ReverseGeocoder",
    "classify_region",
    "Position",
    "Station",
    "StationStats",
    "TopRegion",
    "Snapshot",
    "TrafficAnalytics",
    "TrafficTrackError",
    "InvalidRecord",
    "UpstreamFetchError",
    "NoDataAvailable",
    "GeocodeLookupError",
]
