"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- Earthquake data parsing
- View filtering and sorting
- Statistics aggregation
- Display formatting and CSV export

All functions here are deterministic and have no I/O.
"""

from quakefeed.core.earthquake import Earthquake, parse_earthquakes
from quakefeed.core.filters import FilterParams, InvalidParameterError, compute_view
from quakefeed.core.stats import StatsSummary, compute_stats, extract_region, top_regions
from quakefeed.core.formatter import format_earthquake_summary, format_stats_csv

__all__ = [
    # Earthquake
    "Earthquake",
    "parse_earthquakes",
    # Filters
    "FilterParams",
    "InvalidParameterError",
    "compute_view",
    # Stats
    "StatsSummary",
    "compute_stats",
    "extract_region",
    "top_regions",
    # Formatter
    "format_earthquake_summary",
    "format_stats_csv",
]
