"""USGS Feed Client - Imperative Shell.

This module handles HTTP communication with the USGS GeoJSON summary
feeds. All I/O is contained here; parsing and aggregation are in the
core module.
"""

import asyncio
import logging
from typing import Any

import requests

from quakefeed.core.config import Config
from quakefeed.core.earthquake import Earthquake, parse_earthquakes
from quakefeed.core.filters import validate_time_range


logger = logging.getLogger(__name__)


class FeedFetchError(Exception):
    """Raised when a feed source cannot produce earthquake data.

    The message is shown to the user as-is.
    """


class USGSFeedClient:
    """Client for fetching USGS summary feeds.

    This is part of the imperative shell - it handles HTTP I/O.
    """

    def __init__(
        self,
        config: Config | None = None,
        timeout: int | None = None,
    ) -> None:
        """Initialize USGS feed client.

        Args:
            config: Configuration with feed endpoints (defaults used if None)
            timeout: Request timeout in seconds, overrides the config value
        """
        self.config = config or Config()
        self.timeout = timeout if timeout is not None else self.config.request_timeout_seconds

    def get_feed_url(self, time_range: str) -> str:
        """Get the feed URL for a time range.

        Raises:
            InvalidParameterError: If the time range is unknown
        """
        return self.config.feed_url(validate_time_range(time_range))

    def fetch_feed(self, time_range: str) -> dict[str, Any]:
        """Fetch the GeoJSON feed for a time range.

        This method performs HTTP I/O.

        Args:
            time_range: One of hour/day/week/month

        Returns:
            Raw GeoJSON FeatureCollection

        Raises:
            requests.RequestException: If the request fails
            requests.JSONDecodeError: If the response is not valid JSON
        """
        url = self.get_feed_url(time_range)

        logger.info("Fetching earthquake feed %s", url)

        response = requests.get(url, timeout=self.timeout)
        response.raise_for_status()

        data = response.json()
        if isinstance(data, dict):
            count = data.get("metadata", {}).get("count", 0)
            logger.info("Fetched %d earthquakes from USGS (%s)", count, time_range)

        return data


class USGSFeedSource:
    """Async feed source backed by the USGS summary feeds.

    Runs the blocking HTTP client in a worker thread so the session's
    event loop stays responsive, and turns transport errors into
    FeedFetchError.
    """

    def __init__(self, client: USGSFeedClient | None = None) -> None:
        self.client = client or USGSFeedClient()

    async def fetch(self, time_range: str) -> list[Earthquake]:
        """Fetch and parse earthquakes for a time range.

        Raises:
            InvalidParameterError: If the time range is unknown
            FeedFetchError: If the feed could not be fetched or decoded
        """
        validate_time_range(time_range)

        try:
            geojson = await asyncio.to_thread(self.client.fetch_feed, time_range)
        except requests.Timeout as e:
            logger.error("USGS feed request timed out: %s", e)
            raise FeedFetchError("Earthquake feed request timed out") from e
        except requests.HTTPError as e:
            logger.error("USGS feed returned an error: %s", e)
            status = e.response.status_code if e.response is not None else "unknown"
            raise FeedFetchError(f"Failed to fetch earthquake data (HTTP {status})") from e
        except requests.JSONDecodeError as e:
            logger.error("USGS feed returned invalid JSON: %s", e)
            raise FeedFetchError("Earthquake feed returned invalid data") from e
        except requests.RequestException as e:
            logger.error("USGS feed request failed: %s", e)
            raise FeedFetchError(f"Failed to fetch earthquake data: {e}") from e

        if not isinstance(geojson, dict):
            raise FeedFetchError("Earthquake feed returned invalid data")

        earthquakes = parse_earthquakes(geojson)

        skipped = len(geojson.get("features") or []) - len(earthquakes)
        if skipped > 0:
            logger.warning("Skipped %d malformed earthquake records", skipped)

        return earthquakes
