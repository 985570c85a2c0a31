"""Earthquake statistics - Pure functions.

This module aggregates the raw earthquake list for the active time range
into the summary shown on the statistics dashboard. All functions are
pure; the only input besides the earthquakes is the evaluation time used
for the "last hour" count.
"""

import math
import time
from dataclasses import dataclass, field

from quakefeed.core.earthquake import Earthquake


# Band labels, strongest first. Thresholds are lower bounds (inclusive).
MAGNITUDE_BANDS = ("6.0+", "4.5-5.9", "3.0-4.4", "0-2.9")
BAND_THRESHOLDS = (
    (6.0, "6.0+"),
    (4.5, "4.5-5.9"),
    (3.0, "3.0-4.4"),
)
LOWEST_BAND = "0-2.9"

UNKNOWN_REGION = "Unknown"

# Window for recent_count
RECENT_WINDOW_MS = 60 * 60 * 1000


@dataclass(frozen=True)
class StatsSummary:
    """Summary statistics for a set of earthquakes.

    Attributes:
        total: Number of earthquakes
        by_magnitude: Count per magnitude band (all bands present unless empty)
        average_magnitude: Mean magnitude, 0 when there is nothing to average
        strongest: Earthquake with the highest magnitude (first on ties)
        recent_count: Earthquakes within the last hour of evaluation time
        by_region: Count per region label, in first-seen order
    """
    total: int = 0
    by_magnitude: dict[str, int] = field(default_factory=dict)
    average_magnitude: float = 0.0
    strongest: Earthquake | None = None
    recent_count: int = 0
    by_region: dict[str, int] = field(default_factory=dict)


def current_time_ms() -> int:
    """Wall-clock now as Unix epoch milliseconds."""
    return int(time.time() * 1000)


def get_magnitude_band(magnitude: float) -> str | None:
    """Get the band label for a magnitude.

    Pure function. Returns None for non-finite magnitudes.

    Examples:
        6.0 -> "6.0+", 4.5 -> "4.5-5.9", 3.0 -> "3.0-4.4", -0.3 -> "0-2.9"
    """
    if not math.isfinite(magnitude):
        return None

    for threshold, label in BAND_THRESHOLDS:
        if magnitude >= threshold:
            return label

    return LOWEST_BAND


def extract_region(place: str | None) -> str:
    """Extract a coarse region label from a place description.

    Pure function, never raises.

    The region is the text after the last comma, trimmed. Without a comma
    the whole place is used. Empty results map to "Unknown".

    Examples:
        "10km NE of Tokyo, Japan" -> "Japan"
        "Ridgecrest" -> "Ridgecrest"
        "" -> "Unknown"
    """
    if not place:
        return UNKNOWN_REGION

    region = place.rsplit(",", 1)[-1].strip()
    return region or UNKNOWN_REGION


def compute_stats(
    earthquakes: list[Earthquake],
    now_ms: int | None = None,
) -> StatsSummary:
    """Compute summary statistics over all earthquakes.

    Pure function (given now_ms). Earthquakes with non-finite magnitudes
    count towards total, regions and recent_count but are left out of
    the magnitude bands, the average and the strongest comparison.

    Args:
        earthquakes: Raw earthquakes for the active time range
        now_ms: Evaluation time in epoch ms, defaults to wall-clock now

    Returns:
        StatsSummary for the earthquakes
    """
    if not earthquakes:
        return StatsSummary()

    if now_ms is None:
        now_ms = current_time_ms()
    recent_cutoff = now_ms - RECENT_WINDOW_MS

    by_magnitude = {band: 0 for band in MAGNITUDE_BANDS}
    by_region: dict[str, int] = {}
    magnitude_sum = 0.0
    magnitude_count = 0
    strongest: Earthquake | None = None
    recent_count = 0

    for earthquake in earthquakes:
        region = extract_region(earthquake.place)
        by_region[region] = by_region.get(region, 0) + 1

        if earthquake.time_ms > recent_cutoff:
            recent_count += 1

        band = get_magnitude_band(earthquake.magnitude)
        if band is None:
            continue

        by_magnitude[band] += 1
        magnitude_sum += earthquake.magnitude
        magnitude_count += 1

        # Strict comparison keeps the first of equal magnitudes
        if strongest is None or earthquake.magnitude > strongest.magnitude:
            strongest = earthquake

    average = magnitude_sum / magnitude_count if magnitude_count else 0.0

    return StatsSummary(
        total=len(earthquakes),
        by_magnitude=by_magnitude,
        average_magnitude=average,
        strongest=strongest,
        recent_count=recent_count,
        by_region=by_region,
    )


def top_regions(stats: StatsSummary, limit: int = 5) -> list[tuple[str, int]]:
    """Get the regions with the most earthquakes.

    Pure function. Ties keep first-seen order.

    Args:
        stats: Computed statistics
        limit: Maximum number of regions to return

    Returns:
        List of (region, count) tuples, highest count first
    """
    ranked = sorted(stats.by_region.items(), key=lambda item: item[1], reverse=True)
    return ranked[:limit]
