"""Normalization of raw JARTIC features into Station records."""

import logging
import math
from typing import Any, Callable, Iterable, List, Optional

from .exceptions import InvalidRecord
from .models import (
    MISSING_DATA,
    POWER_ISSUE,
    STATUS_OK,
    Position,
    Station,
)
from .regions import classify_region

logger = logging.getLogger(__name__)

# Upstream property names
STATION_CODE = "常時観測点コード"
TIME_CODE = "時間コード"
UPBOUND_SMALL = "上り・小型交通量"
UPBOUND_LARGE = "上り・大型交通量"
DOWNBOUND_SMALL = "下り・小型交通量"
DOWNBOUND_LARGE = "下り・大型交通量"
UPBOUND_OUTAGE = "上り・停電"
DOWNBOUND_OUTAGE = "下り・停電"
UPBOUND_MISSING = "上り・欠測"
DOWNBOUND_MISSING = "下り・欠測"

NO_ISSUE = "0"


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a coordinate
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # ints too large for a float
        return False


def extract_position(feature: Any) -> Position:
    """
    Read the station position from a feature's geometry.

    LineString-like geometries use their first vertex; a bare [lng, lat] pair
    is accepted too.

    Raises:
        InvalidRecord: If the coordinates are missing or not finite numbers.
    """
    geometry = feature.get("geometry") if isinstance(feature, dict) else None
    coords = geometry.get("coordinates") if isinstance(geometry, dict) else None

    if not isinstance(coords, (list, tuple)) or not coords:
        raise InvalidRecord(f"missing coordinates: {coords!r}")

    vertex = coords[0] if isinstance(coords[0], (list, tuple)) else coords
    if len(vertex) < 2:
        raise InvalidRecord(f"incomplete vertex: {vertex!r}")

    lng, lat = vertex[0], vertex[1]
    if not (_is_number(lng) and _is_number(lat)):
        raise InvalidRecord(f"non-numeric coordinates: lng={lng!r}, lat={lat!r}")

    return Position(lat=float(lat), lng=float(lng))


def _count(props: dict, key: str) -> int:
    """Vehicle count for key, 0 when absent or unusable. Fractions are truncated."""
    value = props.get(key)
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return 0
    if not _is_number(value):
        return 0
    return int(value)


def _flag_ok(props: dict, key: str) -> bool:
    return props.get(key) == NO_ISSUE


def normalize_feature(
    feature: Any,
    index: int,
    time_code: str,
    classifier: Callable[[float, float], str] = classify_region,
) -> Optional[Station]:
    """
    Convert one raw feature into a Station.

    Args:
        feature: GeoJSON feature from the WFS response.
        index: Position in the response, used for synthetic ids.
        time_code: Bucket the feature was fetched under.
        classifier: Offline place-name lookup.

    Returns:
        Station, or None if the feature has no usable coordinates.
    """
    try:
        position = extract_position(feature)
    except InvalidRecord as e:
        logger.debug(f"Skipping station {index}: {e}")
        return None

    props = feature.get("properties")
    if not isinstance(props, dict):
        props = {}

    code = props.get(STATION_CODE)
    station_id = str(code) if code else f"station_{index}"
    station_code = str(code) if code else str(index)

    power_ok = _flag_ok(props, UPBOUND_OUTAGE) and _flag_ok(props, DOWNBOUND_OUTAGE)
    data_ok = _flag_ok(props, UPBOUND_MISSING) and _flag_ok(props, DOWNBOUND_MISSING)

    place = classifier(position.lat, position.lng)

    return Station(
        id=station_id,
        station_code=station_code,
        position=position,
        name=place,
        area=place,
        display_name=f"{place} ({station_code})",
        upbound_small=_count(props, UPBOUND_SMALL),
        upbound_large=_count(props, UPBOUND_LARGE),
        downbound_small=_count(props, DOWNBOUND_SMALL),
        downbound_large=_count(props, DOWNBOUND_LARGE),
        power_status=STATUS_OK if power_ok else POWER_ISSUE,
        data_status=STATUS_OK if data_ok else MISSING_DATA,
        last_update=time_code,
    )


def normalize_features(
    features: Iterable[Any],
    time_code: str,
    classifier: Callable[[float, float], str] = classify_region,
) -> List[Station]:
    """Normalize a feature list, dropping malformed records and keeping order."""
    stations: List[Station] = []
    total = 0
    for index, feature in enumerate(features):
        total += 1
        station = normalize_feature(feature, index, time_code, classifier)
        if station is not None:
            stations.append(station)

    dropped = total - len(stations)
    if dropped:
        logger.info(f"Discarded {dropped} of {total} features with invalid coordinates")
    logger.info(f"Processed {len(stations)} valid stations")
    return stations
