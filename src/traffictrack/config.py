"""Tracker configuration with environment overrides."""

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

from .geocoder import DEFAULT_USER_AGENT, NOMINATIM_URL
from .jartic_client import DEFAULT_BBOX, JARTIC_WFS_URL, MAX_ATTEMPTS, MAX_FEATURES, ROAD_TYPE

ENV_PREFIX = "TRAFFICTRACK_"


@dataclass
class TrackerConfig:
    """Settings for the feed fetcher, geocoder and enrichment pass."""
    base_url: str = JARTIC_WFS_URL
    bbox: str = DEFAULT_BBOX
    road_type: int = ROAD_TYPE
    max_features: int = MAX_FEATURES
    attempts: int = MAX_ATTEMPTS
    http_timeout: float = 30.0
    geocoder_url: str = NOMINATIM_URL
    user_agent: str = DEFAULT_USER_AGENT
    geocode_timeout: float = 5.0
    enrich: bool = True
    enrich_limit: int = 20
    enrich_delay: float = 0.1

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TrackerConfig":
        """
        Build a config from TRAFFICTRACK_* variables (e.g. TRAFFICTRACK_BBOX).

        Unset variables keep their defaults.

        Raises:
            ValueError: If a variable cannot be converted to the field's type.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            values[f.name] = _convert(f.name, raw, type(f.default))
        return cls(**values)


def _convert(name: str, raw: str, kind: type):
    if kind is bool:
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"Invalid boolean for {ENV_PREFIX}{name.upper()}: {raw!r}")
    try:
        return kind(raw)
    except ValueError as e:
        raise ValueError(f"Invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}") from e
