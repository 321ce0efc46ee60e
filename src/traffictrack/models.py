"""Data models for the traffic snapshot pipeline."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from datetime import datetime, timezone

STATUS_OK = "OK"
POWER_ISSUE = "Power Issue"
MISSING_DATA = "Missing Data"
ACTIVE = "active"
INACTIVE = "inactive"


@dataclass(frozen=True)
class Position:
    """WGS84 position of a sensor station."""
    lat: float
    lng: float


@dataclass
class Station:
    """One traffic sensor station and its current 5-minute reading.

    The derived volumes and ``status`` are properties so they always agree
    with the four raw counts and the two status flags.
    """
    id: str
    station_code: str
    position: Position
    name: str
    area: str
    display_name: str
    upbound_small: int = 0
    upbound_large: int = 0
    downbound_small: int = 0
    downbound_large: int = 0
    power_status: str = STATUS_OK
    data_status: str = STATUS_OK
    last_update: str = ""
    rank: int = 0  # 1-based, assigned by rank_stations()
    is_top5: bool = False
    is_top20: bool = False

    @property
    def upbound(self) -> int:
        return self.upbound_small + self.upbound_large

    @property
    def downbound(self) -> int:
        return self.downbound_small + self.downbound_large

    @property
    def volume(self) -> int:
        return self.upbound + self.downbound

    @property
    def small_vehicles(self) -> int:
        return self.upbound_small + self.downbound_small

    @property
    def large_vehicles(self) -> int:
        return self.upbound_large + self.downbound_large

    @property
    def status(self) -> str:
        if self.power_status == STATUS_OK and self.data_status == STATUS_OK:
            return ACTIVE
        return INACTIVE

    def relabel(self, place_name: str) -> None:
        """Replace the place label, keeping the station code in the display name."""
        self.name = place_name
        self.area = place_name
        self.display_name = f"{place_name} ({self.station_code})"

    def to_dict(self) -> Dict:
        """Serialize to the camelCase record consumed by presentation layers."""
        lat, lng = self.position.lat, self.position.lng
        return {
            "id": self.id,
            "stationCode": self.station_code,
            "name": self.name,
            "displayName": self.display_name,
            "lat": lat,
            "lng": lng,
            "coordinates": f"{lat:.4f}, {lng:.4f}",
            "volume": self.volume,
            "upbound": self.upbound,
            "downbound": self.downbound,
            "upboundSmall": self.upbound_small,
            "upboundLarge": self.upbound_large,
            "downboundSmall": self.downbound_small,
            "downboundLarge": self.downbound_large,
            "smallVehicles": self.small_vehicles,
            "largeVehicles": self.large_vehicles,
            "powerStatus": self.power_status,
            "dataStatus": self.data_status,
            "status": self.status,
            "lastUpdate": self.last_update,
            "area": self.area,
            "rank": self.rank,
            "isTop5": self.is_top5,
            "isTop20": self.is_top20,
        }


@dataclass(frozen=True)
class TopRegion:
    """Area label and volume of one of the busiest stations."""
    region: str
    volume: int


@dataclass(frozen=True)
class StationStats:
    """Summary statistics over one snapshot."""
    total_stations: int = 0
    average_traffic: int = 0
    max_traffic: int = 0
    min_traffic: int = 0
    stations_over_100: int = 0
    stations_over_50: int = 0
    stations_over_20: int = 0
    stations_with_issues: int = 0
    power_issues: int = 0
    data_issues: int = 0
    top_regions: Tuple[TopRegion, ...] = ()

    def to_dict(self) -> Dict:
        return {
            "totalStations": self.total_stations,
            "averageTraffic": self.average_traffic,
            "maxTraffic": self.max_traffic,
            "minTraffic": self.min_traffic,
            "stationsOver100": self.stations_over_100,
            "stationsOver50": self.stations_over_50,
            "stationsOver20": self.stations_over_20,
            "stationsWithIssues": self.stations_with_issues,
            "powerIssues": self.power_issues,
            "dataIssues": self.data_issues,
            "topRegions": [
                {"region": r.region, "volume": r.volume} for r in self.top_regions
            ],
        }


@dataclass(frozen=True)
class TrafficAnalytics:
    """Fleet-wide vehicle mix and flow breakdown for analytics views."""
    total_vehicles: int
    small_vehicle_total: int
    large_vehicle_total: int
    small_vehicle_percent: int
    large_vehicle_percent: int
    active_stations: int
    peak_stations: int
    vehicle_mix: Dict[str, int]  # small_heavy / large_heavy / mixed -> count
    flow: Dict[str, int]  # upbound / downbound / balanced -> count


@dataclass(frozen=True)
class Snapshot:
    """
    Point-in-time result of one pipeline build.

    The snapshot's own fields and the stations tuple are frozen; the Station
    records inside are plain dataclasses, so consumers that need to modify
    them should work on copies.
    """
    stations: Tuple[Station, ...]
    stats: StationStats
    time_code: Optional[str]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    success: bool = True
    error: Optional[str] = None

    @classmethod
    def failure(cls, message: str) -> "Snapshot":
        """Well-formed empty snapshot reporting a failed build."""
        return cls(
            stations=(),
            stats=StationStats(),
            time_code=None,
            success=False,
            error=message,
        )

    def to_dict(self) -> Dict:
        payload = {
            "stations": [s.to_dict() for s in self.stations],
            "stats": self.stats.to_dict(),
            "timestamp": self.timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "timeCode": self.time_code,
            "success": self.success,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload

    def top(self, n: int) -> List[Station]:
        """Return the n busiest stations."""
        return list(self.stations[:n])
