"""Tests for the USGS feed client and feed source.

Uses the `responses` library to mock HTTP requests.
"""

import asyncio

import pytest
import requests
import responses

from quakefeed.core.config import Config
from quakefeed.core.filters import InvalidParameterError
from quakefeed.shell.usgs_client import FeedFetchError, USGSFeedClient, USGSFeedSource


DAY_URL = "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary/all_day.geojson"

SAMPLE_GEOJSON = {
    "type": "FeatureCollection",
    "metadata": {"count": 2},
    "features": [
        {
            "type": "Feature",
            "id": "us7000abcd",
            "properties": {
                "mag": 6.1,
                "place": "120 km SSE of Hachijo-jima, Japan",
                "time": 1703001600000,
                "title": "M 6.1 - 120 km SSE of Hachijo-jima, Japan",
                "url": "https://earthquake.usgs.gov/earthquakes/eventpage/us7000abcd",
            },
            "geometry": {"type": "Point", "coordinates": [140.4, 32.1, 35.0]},
        },
        {
            "type": "Feature",
            "id": "ci40012345",
            "properties": {
                "mag": 1.2,
                "place": "8km N of Ridgecrest, CA",
                "time": 1703001000000,
                "title": "M 1.2 - 8km N of Ridgecrest, CA",
                "url": "https://earthquake.usgs.gov/earthquakes/eventpage/ci40012345",
            },
            "geometry": {"type": "Point", "coordinates": [-117.6, 35.7, 6.2]},
        },
    ],
}


class TestUSGSFeedClient:
    """Tests for USGSFeedClient."""

    def test_default_timeout_from_config(self):
        client = USGSFeedClient(Config(request_timeout_seconds=12))
        assert client.timeout == 12

    def test_explicit_timeout_overrides_config(self):
        client = USGSFeedClient(Config(request_timeout_seconds=12), timeout=3)
        assert client.timeout == 3

    def test_feed_url_per_range(self):
        client = USGSFeedClient()
        assert client.get_feed_url("day") == DAY_URL
        assert client.get_feed_url("hour").endswith("/all_hour.geojson")

    def test_feed_url_rejects_unknown_range(self):
        with pytest.raises(InvalidParameterError):
            USGSFeedClient().get_feed_url("year")

    @responses.activate
    def test_fetch_feed_returns_geojson(self):
        responses.add(responses.GET, DAY_URL, json=SAMPLE_GEOJSON, status=200)

        result = USGSFeedClient().fetch_feed("day")

        assert result == SAMPLE_GEOJSON
        assert len(responses.calls) == 1

    @responses.activate
    def test_fetch_feed_uses_override_url(self):
        url = "https://mirror.example.com/week.geojson"
        responses.add(responses.GET, url, json={"features": []}, status=200)

        client = USGSFeedClient(Config(feed_urls={"week": url}))
        client.fetch_feed("week")

        assert responses.calls[0].request.url == url

    @responses.activate
    def test_fetch_feed_raises_on_http_error(self):
        responses.add(responses.GET, DAY_URL, status=503)

        with pytest.raises(requests.HTTPError):
            USGSFeedClient().fetch_feed("day")


class TestUSGSFeedSource:
    """Tests for the async USGSFeedSource."""

    @responses.activate
    def test_fetch_parses_earthquakes(self):
        responses.add(responses.GET, DAY_URL, json=SAMPLE_GEOJSON, status=200)

        result = asyncio.run(USGSFeedSource().fetch("day"))

        assert [e.id for e in result] == ["us7000abcd", "ci40012345"]
        assert result[0].magnitude == 6.1
        assert result[0].place == "120 km SSE of Hachijo-jima, Japan"

    @responses.activate
    def test_fetch_skips_malformed_features(self):
        geojson = {
            "features": SAMPLE_GEOJSON["features"] + [{"id": "broken", "properties": {}}],
        }
        responses.add(responses.GET, DAY_URL, json=geojson, status=200)

        result = asyncio.run(USGSFeedSource().fetch("day"))

        assert len(result) == 2

    @responses.activate
    def test_http_error_becomes_feed_fetch_error(self):
        responses.add(responses.GET, DAY_URL, status=500)

        with pytest.raises(FeedFetchError, match="HTTP 500"):
            asyncio.run(USGSFeedSource().fetch("day"))

    @responses.activate
    def test_timeout_becomes_feed_fetch_error(self):
        responses.add(responses.GET, DAY_URL, body=requests.exceptions.ConnectTimeout())

        with pytest.raises(FeedFetchError, match="timed out"):
            asyncio.run(USGSFeedSource().fetch("day"))

    @responses.activate
    def test_connection_error_becomes_feed_fetch_error(self):
        responses.add(responses.GET, DAY_URL, body=requests.exceptions.ConnectionError("refused"))

        with pytest.raises(FeedFetchError, match="Failed to fetch earthquake data"):
            asyncio.run(USGSFeedSource().fetch("day"))

    @responses.activate
    def test_invalid_json_becomes_feed_fetch_error(self):
        responses.add(responses.GET, DAY_URL, body="<html>not json</html>", status=200)

        with pytest.raises(FeedFetchError, match="invalid data"):
            asyncio.run(USGSFeedSource().fetch("day"))

    @responses.activate
    def test_non_object_json_becomes_feed_fetch_error(self):
        responses.add(responses.GET, DAY_URL, json=[1, 2, 3], status=200)

        with pytest.raises(FeedFetchError, match="invalid data"):
            asyncio.run(USGSFeedSource().fetch("day"))

    def test_unknown_range_is_rejected_before_fetch(self):
        with pytest.raises(InvalidParameterError):
            asyncio.run(USGSFeedSource().fetch("year"))
