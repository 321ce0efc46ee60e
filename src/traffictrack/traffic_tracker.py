"""Main TrafficTracker class."""

import logging
from datetime import datetime
from typing import Callable, Optional

import pandas as pd

from .config import TrackerConfig
from .exceptions import NoDataAvailable
from .geocoder import GeocodeEnricher, ReverseGeocoder
from .jartic_client import JarticClient
from .models import Snapshot, TrafficAnalytics
from .normalizer import normalize_features
from .ranking import analyze, rank_stations, stations_to_frame, summarize
from .regions import classify_region

logger = logging.getLogger(__name__)


class TrafficTracker:
    """
    Builds ranked traffic snapshots from the JARTIC open traffic feed.

    This class provides methods to:
    - Fetch the most recent published 5-minute bucket
    - Normalize, rank and summarize the stations in it
    - Upgrade the busiest stations' place names via reverse geocoding
    """

    def __init__(
        self,
        client: Optional[JarticClient] = None,
        geocoder: Optional[ReverseGeocoder] = None,
        enrich: bool = True,
        enrich_limit: int = 20,
        enrich_delay: float = 0.1,
        classifier: Callable[[float, float], str] = classify_region,
    ):
        """
        Initialize the tracker.

        Args:
            client: Feed fetcher. A default JarticClient is created if omitted.
            geocoder: Reverse geocoder for the enrichment pass. Defaults to one
                backed by the process-wide cache.
            enrich: If False, skip reverse geocoding entirely.
            enrich_limit: How many of the busiest stations to geocode.
            enrich_delay: Pause in seconds after each geocoding request.
            classifier: Offline place-name lookup used during normalization.
        """
        self.client = client or JarticClient()
        self.classifier = classifier
        self.enrich = enrich
        self.geocoder = geocoder
        if self.enrich and self.geocoder is None:
            self.geocoder = ReverseGeocoder(classifier=classifier)
        self.enricher = (
            GeocodeEnricher(self.geocoder, limit=enrich_limit, delay=enrich_delay)
            if self.enrich
            else None
        )

    @classmethod
    def from_config(cls, config: TrackerConfig) -> "TrafficTracker":
        """Create a tracker wired from a TrackerConfig."""
        client = JarticClient(
            base_url=config.base_url,
            bbox=config.bbox,
            road_type=config.road_type,
            max_features=config.max_features,
            timeout=config.http_timeout,
            attempts=config.attempts,
        )
        geocoder = None
        if config.enrich:
            geocoder = ReverseGeocoder(
                base_url=config.geocoder_url,
                user_agent=config.user_agent,
                timeout=config.geocode_timeout,
            )
        return cls(
            client=client,
            geocoder=geocoder,
            enrich=config.enrich,
            enrich_limit=config.enrich_limit,
            enrich_delay=config.enrich_delay,
        )

    def build_snapshot(self, now: Optional[datetime] = None) -> Snapshot:
        """
        Run the full pipeline once.

        Args:
            now: Reference instant for the time-bucket walk.

        Returns:
            Snapshot of ranked stations and their statistics.

        Raises:
            NoDataAvailable: If no recent time bucket had any data.
        """
        data, time_code = self.client.fetch_with_retry(now=now)

        features = data.get("features") or []
        logger.info(f"Processing {len(features)} stations for time code {time_code}")
        stations = normalize_features(features, time_code, self.classifier)

        ranked = rank_stations(stations)

        if self.enricher is not None:
            logger.info(
                f"Adding detailed location info for top {self.enricher.limit} busiest stations"
            )
            self.enricher.enrich(ranked)

        return Snapshot(
            stations=tuple(ranked),
            stats=summarize(ranked),
            time_code=time_code,
        )

    def get_snapshot(self, now: Optional[datetime] = None) -> Snapshot:
        """
        Get the current traffic snapshot.

        Unlike build_snapshot(), this never raises NoDataAvailable; a failed
        build returns an empty snapshot with success=False.
        """
        try:
            return self.build_snapshot(now=now)
        except NoDataAvailable as e:
            logger.error(f"Error fetching traffic data: {e}")
            return Snapshot.failure("Failed to fetch traffic data")

    def get_analytics(self, snapshot: Snapshot) -> TrafficAnalytics:
        """Vehicle mix and flow breakdown for a snapshot."""
        return analyze(list(snapshot.stations))

    def get_frame(self, snapshot: Snapshot) -> pd.DataFrame:
        """One row per ranked station, for tabular analytics and export."""
        return stations_to_frame(snapshot.stations)

    def cleanup(self) -> None:
        """Release HTTP sessions. The geocode cache is kept for later builds."""
        self.client.close()
        if self.geocoder is not None:
            self.geocoder.close()
        logger.info("Cleaned up tracker resources")
