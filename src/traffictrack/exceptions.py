"""Exceptions raised by the traffic snapshot pipeline."""

from typing import List, Optional


class TrafficTrackError(Exception):
    """Base exception for all traffictrack errors."""
    pass


class InvalidRecord(TrafficTrackError):
    """Raised when a raw feature has no usable coordinates."""
    pass


class UpstreamFetchError(TrafficTrackError):
    """Raised when a single time-bucket request to the feature service fails."""

    def __init__(self, time_code: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{time_code}: {message}")
        self.time_code = time_code
        self.status_code = status_code


class NoDataAvailable(TrafficTrackError):
    """Raised when no candidate time bucket yielded any features."""

    def __init__(self, attempted: Optional[List[str]] = None):
        self.attempted = list(attempted or [])
        super().__init__(
            f"No traffic data available for any recent time codes "
            f"({len(self.attempted)} attempted)"
        )


class GeocodeLookupError(TrafficTrackError):
    """Raised when the reverse-geocoding service cannot resolve a coordinate."""
    pass
