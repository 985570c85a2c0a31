"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field

from quakefeed.core.filters import DEFAULT_SORT_KEY, DEFAULT_TIME_RANGE


# USGS GeoJSON summary feeds, one file per time range
USGS_FEED_BASE = "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary"


@dataclass
class Config:
    """Application configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        feed_base_url: Base URL of the summary feeds
        feed_urls: Per-time-range URL overrides (e.g. {"hour": "https://..."})
        request_timeout_seconds: Timeout for feed requests
        default_time_range: Time range loaded when a session starts
        default_sort_key: Sort order used when a session starts
        top_regions_limit: Number of regions in the "Top Regions" list
    """
    feed_base_url: str = USGS_FEED_BASE
    feed_urls: dict[str, str] = field(default_factory=dict)
    request_timeout_seconds: int = 30
    default_time_range: str = DEFAULT_TIME_RANGE
    default_sort_key: str = DEFAULT_SORT_KEY
    top_regions_limit: int = 5

    def feed_url(self, time_range: str) -> str:
        """Resolve the feed URL for a time range.

        Explicit overrides win; otherwise the all-magnitudes summary feed
        under feed_base_url is used.
        """
        if time_range in self.feed_urls:
            return self.feed_urls[time_range]
        return f"{self.feed_base_url.rstrip('/')}/all_{time_range}.geojson"
