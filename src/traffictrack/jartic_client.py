"""JARTIC open traffic WFS fetcher."""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

import requests

from .exceptions import NoDataAvailable, UpstreamFetchError
from .time_codes import candidate_time_codes

logger = logging.getLogger(__name__)

JARTIC_WFS_URL = "https://api.jartic-open-traffic.org/geoserver"
LAYER_NAME = "t_travospublic_measure_5m"
ROAD_TYPE = 3  # general national roads
MAX_FEATURES = 1000
MAX_ATTEMPTS = 12  # one hour of 5-minute buckets

# lng_min,lat_min,lng_max,lat_max in EPSG:4326
BOUNDING_BOXES = {
    "NATIONWIDE": "129.0,31.0,146.0,46.0",
    "TOKYO_METROPOLITAN": "139.0,35.0,140.0,36.0",
    "TOKYO_CITY_CENTER": "139.5,35.5,139.9,35.8",
    "OSAKA": "135.3,34.5,135.7,34.8",
}
DEFAULT_BBOX = BOUNDING_BOXES["NATIONWIDE"]


class JarticClient:
    """Fetches 5-minute traffic counts from the JARTIC GeoServer."""

    def __init__(
        self,
        base_url: str = JARTIC_WFS_URL,
        bbox: str = DEFAULT_BBOX,
        road_type: int = ROAD_TYPE,
        max_features: int = MAX_FEATURES,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
        attempts: int = MAX_ATTEMPTS,
    ):
        """
        Initialize the client.

        Args:
            base_url: GeoServer endpoint.
            bbox: Bounding box filter, "lng_min,lat_min,lng_max,lat_max".
            road_type: Value of the road type predicate.
            max_features: Page size cap per request.
            timeout: Per-request timeout in seconds.
            session: Optional requests session (created if omitted).
            attempts: Number of time buckets to walk back through.
        """
        self.base_url = base_url
        self.bbox = bbox
        self.road_type = road_type
        self.max_features = max_features
        self.timeout = timeout
        self.attempts = attempts
        self.session = session or requests.Session()

    def build_params(self, time_code: str) -> Dict[str, str]:
        """Query parameters for one WFS GetFeature request."""
        cql_filter = (
            f"道路種別={self.road_type} AND 時間コード={time_code} "
            f"AND BBOX(ジオメトリ,{self.bbox},'EPSG:4326')"
        )
        return {
            "service": "WFS",
            "version": "2.0.0",
            "request": "GetFeature",
            "typeNames": LAYER_NAME,
            "srsName": "EPSG:4326",
            "outputFormat": "application/json",
            "exceptions": "application/json",
            "maxFeatures": str(self.max_features),
            "cql_filter": cql_filter,
        }

    def fetch_features(self, time_code: str) -> dict:
        """
        Fetch the feature collection for a single time bucket.

        Args:
            time_code: Bucket code (YYYYMMDDHHMM).

        Returns:
            Decoded GeoJSON feature collection.

        Raises:
            UpstreamFetchError: On transport failure, non-success status or an
                undecodable body.
        """
        logger.debug(f"Fetching time code {time_code}")
        try:
            response = self.session.get(
                self.base_url,
                params=self.build_params(time_code),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamFetchError(time_code, f"request failed: {e}") from e

        if not response.ok:
            raise UpstreamFetchError(
                time_code, f"HTTP {response.status_code}", status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamFetchError(time_code, f"invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise UpstreamFetchError(time_code, "response is not a feature collection")
        return data

    def fetch_with_retry(self, now: Optional[datetime] = None) -> Tuple[dict, str]:
        """
        Walk back through recent time buckets until one has data.

        Each bucket gets exactly one attempt. Failures and empty collections
        move on to the next, older bucket.

        Args:
            now: Reference instant for the bucket walk (defaults to the clock).

        Returns:
            (feature collection, time code it was fetched under).

        Raises:
            NoDataAvailable: If no bucket in the range returned any features.
        """
        attempted: List[str] = []

        for time_code in candidate_time_codes(self.attempts, now=now):
            attempted.append(time_code)
            try:
                data = self.fetch_features(time_code)
            except UpstreamFetchError as e:
                logger.warning(f"Fetch failed for time code {e}")
                continue

            features = data.get("features")
            if isinstance(features, list) and features:
                logger.info(f"Found {len(features)} stations for time code {time_code}")
                return data, time_code

            logger.debug(f"No data for time code {time_code}")

        raise NoDataAvailable(attempted)

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()

    def __enter__(self) -> "JarticClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
