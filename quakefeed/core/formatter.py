"""Display formatting and export - Pure functions.

This module formats earthquake data for the display layer and for the
statistics export. All functions are pure with no side effects.
"""

import csv
import io
import math

from quakefeed.core.earthquake import Earthquake
from quakefeed.core.stats import MAGNITUDE_BANDS, StatsSummary, get_magnitude_band


TIME_RANGE_LABELS = {
    "hour": "Last Hour",
    "day": "Last 24 Hours",
    "week": "Last 7 Days",
    "month": "Last 30 Days",
}

BAND_COLORS = {
    "6.0+": "#ff0000",  # Major
    "4.5-5.9": "#ff6600",  # Moderate
    "3.0-4.4": "#ffcc00",  # Light
    "0-2.9": "#00cc00",  # Minor
}

# Used when a magnitude has no band (non-finite)
UNKNOWN_COLOR = "#999999"

MIN_MARKER_RADIUS = 5
MAX_MARKER_RADIUS = 20


def get_time_range_label(time_range: str) -> str:
    """Get the dashboard label for a time range, e.g. "Last 7 Days"."""
    return TIME_RANGE_LABELS.get(time_range, time_range)


def get_band_color(band: str) -> str:
    """Get the hex color for a magnitude band label.

    Pure function.
    """
    return BAND_COLORS.get(band, UNKNOWN_COLOR)


def get_magnitude_color(magnitude: float) -> str:
    """Get the hex color for an earthquake magnitude.

    Pure function. Uses the same thresholds as the statistics bands.
    """
    band = get_magnitude_band(magnitude)
    if band is None:
        return UNKNOWN_COLOR
    return get_band_color(band)


def get_marker_radius(magnitude: float) -> float:
    """Get the map marker radius for a magnitude.

    Pure function. Scales with magnitude, clamped to [5, 20].
    """
    if math.isnan(magnitude):
        return MIN_MARKER_RADIUS
    return max(MIN_MARKER_RADIUS, min(MAX_MARKER_RADIUS, magnitude * 3))


def format_relative_time(time_ms: int, now_ms: int) -> str:
    """Format how long ago an earthquake happened.

    Pure function.

    Args:
        time_ms: Earthquake time in epoch ms
        now_ms: Current time in epoch ms

    Returns:
        "2h 15m ago" or "15m ago"
    """
    diff_ms = max(0, now_ms - time_ms)
    hours = diff_ms // (60 * 60 * 1000)
    minutes = (diff_ms % (60 * 60 * 1000)) // (60 * 1000)

    if hours > 0:
        return f"{hours}h {minutes}m ago"
    return f"{minutes}m ago"


def format_earthquake_summary(earthquake: Earthquake) -> str:
    """Format a one-line summary of an earthquake.

    Pure function.

    Args:
        earthquake: Earthquake to summarize

    Returns:
        One-line summary string
    """
    time_str = earthquake.time.strftime("%Y-%m-%d %H:%M:%S UTC")
    if earthquake.depth_km is None:
        depth_str = "depth: unknown"
    else:
        depth_str = f"depth: {earthquake.depth_km:.1f}km"

    place = earthquake.place or "Unknown location"
    return f"M{earthquake.magnitude:.1f} - {place} at {time_str} ({depth_str})"


def format_count_summary(shown: int, total: int, location_filter: str = "") -> str:
    """Format the "Showing N of M earthquakes" line above the list.

    Pure function.
    """
    text = f"Showing {shown} of {total} earthquakes"
    if location_filter:
        text += f" • Filtered by: {location_filter}"
    return text


def format_stats_csv(stats: StatsSummary, by: str = "magnitude") -> str:
    """Export statistics as a two-column label,count table.

    Pure function.

    Args:
        stats: Computed statistics
        by: "magnitude" for band counts (fixed band order) or "region"
            for region counts (first-seen order)

    Returns:
        CSV text, one "label,count" row per line

    Raises:
        ValueError: If by is not "magnitude" or "region"
    """
    if by == "magnitude":
        rows = [
            (band, stats.by_magnitude[band])
            for band in MAGNITUDE_BANDS
            if band in stats.by_magnitude
        ]
    elif by == "region":
        rows = list(stats.by_region.items())
    else:
        raise ValueError(f"Unknown export grouping: {by!r}")

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue()


def get_export_filename(time_range: str, by: str = "magnitude") -> str:
    """Get the download filename for a statistics export."""
    if by == "magnitude":
        return f"earthquake_stats_{time_range}.csv"
    return f"earthquake_stats_{time_range}_{by}.csv"
