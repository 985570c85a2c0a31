"""Earthquake data models and parsing - Pure functions.

This module handles parsing USGS GeoJSON summary feeds into typed
Earthquake objects. All functions are pure with no side effects.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class Earthquake:
    """Immutable earthquake event record.

    Attributes:
        id: Unique USGS event ID (stable across refetches)
        magnitude: Event magnitude, may be negative for micro-events
        place: Location description, usually "<local>, <region>"
        title: Human-readable summary (e.g. "M 4.2 - 10km NE of X, CA")
        time_ms: Event time as Unix epoch milliseconds
        url: USGS event detail URL, passed through unchanged
        longitude: Epicenter longitude
        latitude: Epicenter latitude
        depth_km: Depth in kilometers, None when the feed omits it
    """
    id: str
    magnitude: float
    place: str
    title: str
    time_ms: int
    url: str
    longitude: float
    latitude: float
    depth_km: float | None = None

    @property
    def coordinates(self) -> tuple[float, float, float | None]:
        """Return (longitude, latitude, depth_km) in GeoJSON order."""
        return (self.longitude, self.latitude, self.depth_km)

    @property
    def time(self) -> datetime:
        """Event time as a UTC datetime."""
        return datetime.fromtimestamp(self.time_ms / 1000, tz=timezone.utc)

    @property
    def has_valid_magnitude(self) -> bool:
        """False for NaN or infinite magnitudes from malformed upstream data."""
        return math.isfinite(self.magnitude)


def parse_earthquake(feature: dict[str, Any]) -> Earthquake | None:
    """Parse a single GeoJSON feature into an Earthquake.

    Pure function: takes raw dict, returns typed Earthquake or None if the
    record is malformed (no id, no time, or no coordinates).

    A missing magnitude is read as 0.0, matching how the USGS feed treats
    events that have not been assigned one yet.

    Args:
        feature: GeoJSON feature dict from a USGS summary feed

    Returns:
        Earthquake object or None if parsing fails
    """
    try:
        event_id = feature.get("id")
        if not isinstance(event_id, str) or not event_id:
            return None

        props = feature.get("properties") or {}
        geometry = feature.get("geometry") or {}
        coords = geometry.get("coordinates") or []

        if len(coords) < 2:
            return None

        # USGS uses milliseconds since epoch
        time_ms = props.get("time")
        if time_ms is None:
            return None

        magnitude = props.get("mag")
        depth = coords[2] if len(coords) > 2 else None

        return Earthquake(
            id=event_id,
            magnitude=float(magnitude) if magnitude is not None else 0.0,
            place=props.get("place") or "",
            title=props.get("title") or "",
            time_ms=int(time_ms),
            url=props.get("url") or "",
            longitude=float(coords[0]),
            latitude=float(coords[1]),
            depth_km=float(depth) if depth is not None else None,
        )
    except (AttributeError, KeyError, TypeError, ValueError, OverflowError):
        return None


def parse_earthquakes(geojson: dict[str, Any]) -> list[Earthquake]:
    """Parse a USGS GeoJSON FeatureCollection into a list of Earthquakes.

    Pure function: skips malformed features and keeps the feed's order.

    Args:
        geojson: Full GeoJSON FeatureCollection from a USGS feed

    Returns:
        List of valid Earthquake objects in input order
    """
    features = geojson.get("features") or []
    earthquakes = []

    for feature in features:
        if not isinstance(feature, dict):
            continue
        earthquake = parse_earthquake(feature)
        if earthquake is not None:
            earthquakes.append(earthquake)

    return earthquakes
