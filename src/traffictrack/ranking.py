"""Ranking, summary statistics and analytics over normalized stations."""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List

import pandas as pd

from .models import ACTIVE, STATUS_OK, Station, StationStats, TopRegion, TrafficAnalytics

logger = logging.getLogger(__name__)

VOLUME_THRESHOLDS = (20, 50, 100)
TOP_REGION_COUNT = 10
PEAK_VOLUME = 100
SMALL_HEAVY_FACTOR = 3

STATION_COLUMNS = (
    "id", "stationCode", "name", "displayName", "lat", "lng", "coordinates",
    "volume", "upbound", "downbound", "upboundSmall", "upboundLarge",
    "downboundSmall", "downboundLarge", "smallVehicles", "largeVehicles",
    "powerStatus", "dataStatus", "status", "lastUpdate", "area", "rank",
    "isTop5", "isTop20",
)

SMALL_HEAVY = "small_heavy"
LARGE_HEAVY = "large_heavy"
MIXED = "mixed"
UPBOUND = "upbound"
DOWNBOUND = "downbound"
BALANCED = "balanced"


def _round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def rank_stations(stations: Iterable[Station]) -> List[Station]:
    """
    Sort stations by volume (busiest first) and assign ranks.

    The sort is stable, so equal volumes keep their input order. Ranks are
    1..N with no gaps.
    """
    ranked = sorted(stations, key=lambda s: s.volume, reverse=True)
    for index, station in enumerate(ranked):
        station.rank = index + 1
        station.is_top5 = station.rank <= 5
        station.is_top20 = station.rank <= 20
    logger.debug(f"Ranked {len(ranked)} stations")
    return ranked


def summarize(stations: List[Station]) -> StationStats:
    """
    Compute summary statistics for a ranked station list.

    Empty input yields all-zero stats.
    """
    if not stations:
        return StationStats()

    volumes = [s.volume for s in stations]
    over = {t: sum(1 for v in volumes if v > t) for t in VOLUME_THRESHOLDS}

    return StationStats(
        total_stations=len(stations),
        average_traffic=_round_half_up(sum(volumes) / len(volumes)),
        max_traffic=max(volumes),
        min_traffic=min(volumes),
        stations_over_100=over[100],
        stations_over_50=over[50],
        stations_over_20=over[20],
        stations_with_issues=sum(1 for s in stations if s.status != ACTIVE),
        power_issues=sum(1 for s in stations if s.power_status != STATUS_OK),
        data_issues=sum(1 for s in stations if s.data_status != STATUS_OK),
        top_regions=tuple(
            TopRegion(region=s.area, volume=s.volume) for s in stations[:TOP_REGION_COUNT]
        ),
    )


def vehicle_mix(station: Station) -> str:
    """
    Classify a station's vehicle mix.

    Small-heavy needs small > 3x large, while large-heavy only needs
    large > small. The thresholds are intentionally not symmetric.
    """
    if station.small_vehicles > station.large_vehicles * SMALL_HEAVY_FACTOR:
        return SMALL_HEAVY
    if station.large_vehicles > station.small_vehicles:
        return LARGE_HEAVY
    return MIXED


def flow_direction(station: Station) -> str:
    """Which direction carries more traffic."""
    if station.upbound > station.downbound:
        return UPBOUND
    if station.downbound > station.upbound:
        return DOWNBOUND
    return BALANCED


def analyze(stations: List[Station]) -> TrafficAnalytics:
    """Fleet-wide vehicle mix and direction breakdown."""
    total = sum(s.volume for s in stations)
    small = sum(s.small_vehicles for s in stations)
    large = sum(s.large_vehicles for s in stations)

    mix: Dict[str, int] = {SMALL_HEAVY: 0, LARGE_HEAVY: 0, MIXED: 0}
    flow: Dict[str, int] = {UPBOUND: 0, DOWNBOUND: 0, BALANCED: 0}
    for station in stations:
        mix[vehicle_mix(station)] += 1
        flow[flow_direction(station)] += 1

    return TrafficAnalytics(
        total_vehicles=total,
        small_vehicle_total=small,
        large_vehicle_total=large,
        small_vehicle_percent=_round_half_up(small / total * 100) if total else 0,
        large_vehicle_percent=_round_half_up(large / total * 100) if total else 0,
        active_stations=sum(1 for s in stations if s.status == ACTIVE),
        peak_stations=sum(1 for s in stations if s.volume > PEAK_VOLUME),
        vehicle_mix=mix,
        flow=flow,
    )


def stations_to_frame(stations: Iterable[Station]) -> pd.DataFrame:
    """One row per station, columns named as in Station.to_dict()."""
    records = [s.to_dict() for s in stations]
    if not records:
        return pd.DataFrame(columns=list(STATION_COLUMNS))
    return pd.DataFrame.from_records(records)
