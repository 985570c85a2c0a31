"""View filtering and sorting - Pure functions.

This module turns the raw earthquake list into the ordered list shown
to the user, based on the current filter parameters. All functions are
pure with no side effects.
"""

import math
from dataclasses import dataclass

from quakefeed.core.earthquake import Earthquake


# Feed windows offered by the USGS summary feeds
TIME_RANGES = ("hour", "day", "week", "month")

# Sort is always descending: newest first or strongest first
SORT_KEYS = ("time", "magnitude")

DEFAULT_TIME_RANGE = "day"
DEFAULT_SORT_KEY = "time"


class InvalidParameterError(ValueError):
    """Raised when a caller supplies an out-of-domain filter parameter."""


@dataclass(frozen=True)
class FilterParams:
    """User-controlled parameters for the earthquake view.

    Attributes:
        time_range: Feed window that was requested (hour/day/week/month)
        magnitude_floor: Minimum magnitude to show (inclusive)
        location_filter: Case-insensitive substring matched against
            place or title (empty = no filter)
        sort_key: "time" (newest first) or "magnitude" (strongest first)
    """
    time_range: str = DEFAULT_TIME_RANGE
    magnitude_floor: float = 0.0
    location_filter: str = ""
    sort_key: str = DEFAULT_SORT_KEY


def validate_time_range(time_range: str) -> str:
    """Return the time range unchanged or raise InvalidParameterError."""
    if time_range not in TIME_RANGES:
        raise InvalidParameterError(
            f"Unknown time range: {time_range!r} (expected one of {', '.join(TIME_RANGES)})"
        )
    return time_range


def validate_sort_key(sort_key: str) -> str:
    """Return the sort key unchanged or raise InvalidParameterError."""
    if sort_key not in SORT_KEYS:
        raise InvalidParameterError(
            f"Unknown sort key: {sort_key!r} (expected one of {', '.join(SORT_KEYS)})"
        )
    return sort_key


def validate_magnitude_floor(magnitude_floor: float) -> float:
    """Return the floor as a float or raise InvalidParameterError.

    The floor must be a finite, non-negative number.
    """
    if isinstance(magnitude_floor, bool) or not isinstance(magnitude_floor, (int, float)):
        raise InvalidParameterError(f"Magnitude floor must be a number, got {magnitude_floor!r}")

    if not math.isfinite(magnitude_floor) or magnitude_floor < 0:
        raise InvalidParameterError(
            f"Magnitude floor must be a finite number >= 0, got {magnitude_floor!r}"
        )

    return float(magnitude_floor)


def validate_location_filter(location_filter: str) -> str:
    """Return the location filter unchanged or raise InvalidParameterError."""
    if not isinstance(location_filter, str):
        raise InvalidParameterError(
            f"Location filter must be a string, got {type(location_filter).__name__}"
        )
    return location_filter


def validate_params(params: FilterParams) -> FilterParams:
    """Validate every field of a FilterParams.

    Returns:
        A FilterParams with the magnitude floor normalized to float

    Raises:
        InvalidParameterError: If any field is out of domain
    """
    return FilterParams(
        time_range=validate_time_range(params.time_range),
        magnitude_floor=validate_magnitude_floor(params.magnitude_floor),
        location_filter=validate_location_filter(params.location_filter),
        sort_key=validate_sort_key(params.sort_key),
    )


def matches_magnitude_floor(earthquake: Earthquake, magnitude_floor: float) -> bool:
    """Check if earthquake magnitude is at or above the floor.

    Pure function. The default floor of 0 still drops negative-magnitude
    micro-events and malformed (NaN) magnitudes.
    """
    return earthquake.magnitude >= magnitude_floor


def matches_location(earthquake: Earthquake, location_filter: str) -> bool:
    """Check if place or title contains the filter text, ignoring case.

    Pure function. An empty filter matches every earthquake.
    """
    if not location_filter:
        return True

    needle = location_filter.lower()
    return needle in earthquake.place.lower() or needle in earthquake.title.lower()


def _magnitude_sort_key(earthquake: Earthquake) -> float:
    # Non-finite magnitudes would break ordering; sink them to the end
    if not earthquake.has_valid_magnitude:
        return -math.inf
    return earthquake.magnitude


def sort_earthquakes(earthquakes: list[Earthquake], sort_key: str) -> list[Earthquake]:
    """Sort earthquakes descending by time or magnitude.

    Pure function. The sort is stable: earthquakes with equal keys keep
    their relative input order.

    Args:
        earthquakes: Earthquakes to sort
        sort_key: "time" or "magnitude"

    Returns:
        New sorted list
    """
    if sort_key == "magnitude":
        return sorted(earthquakes, key=_magnitude_sort_key, reverse=True)

    return sorted(earthquakes, key=lambda e: e.time_ms, reverse=True)


def compute_view(earthquakes: list[Earthquake], params: FilterParams) -> list[Earthquake]:
    """Compute the filtered, sorted list of earthquakes to display.

    Pure function: the input list is never mutated.

    Steps:
    1. Keep earthquakes at or above the magnitude floor
    2. Keep earthquakes whose place or title contains the location filter
    3. Stable sort, newest first or strongest first

    Args:
        earthquakes: Raw earthquakes for the active time range
        params: Current filter parameters

    Returns:
        New ordered list (possibly empty)
    """
    filtered = [
        e for e in earthquakes
        if matches_magnitude_floor(e, params.magnitude_floor)
        and matches_location(e, params.location_filter)
    ]

    return sort_earthquakes(filtered, params.sort_key)
