"""Tests for the Web API handler.

Requests are built with Flask's test request context; the feed source
is replaced with an AsyncMock so no HTTP calls are made.
"""

import json
from unittest.mock import AsyncMock, Mock

import pytest
from flask import Flask, request

from quakefeed.api_handler import get_earthquake_feed
from quakefeed.core.config import Config
from quakefeed.core.earthquake import Earthquake
from quakefeed.shell.usgs_client import FeedFetchError


NOW = 1_700_000_000_000


def make_earthquake(id, magnitude, place, time_ms):
    return Earthquake(
        id=id,
        magnitude=magnitude,
        place=place,
        title=f"M {magnitude} - {place}",
        time_ms=time_ms,
        url=f"https://earthquake.usgs.gov/earthquakes/eventpage/{id}",
        longitude=139.7,
        latitude=35.7,
        depth_km=10.0,
    )


@pytest.fixture
def app():
    return Flask(__name__)


@pytest.fixture
def earthquakes():
    return [
        make_earthquake("a", 6.2, "10km NE of Tokyo, Japan", NOW),
        make_earthquake("b", 3.1, "8km N of Ridgecrest, CA", NOW - 10),
        make_earthquake("c", 4.9, "50km S of Osaka, Japan", NOW - 5),
    ]


@pytest.fixture
def feed_source(earthquakes):
    source = Mock()
    source.fetch = AsyncMock(return_value=earthquakes)
    return source


def call(app, feed_source, query="", method="GET", headers=None, config=None):
    """Invoke the handler inside a request context."""
    with app.test_request_context(f"/?{query}", method=method, headers=headers or {}):
        return get_earthquake_feed(request, config=config, feed_source=feed_source)


class TestJsonResponse:
    """Tests for the default JSON payload."""

    def test_returns_view_and_stats(self, app, feed_source):
        response = call(app, feed_source)

        assert response.status_code == 200
        assert response.mimetype == "application/json"
        data = json.loads(response.get_data(as_text=True))

        assert data["time_range"] == "day"
        assert data["time_range_label"] == "Last 24 Hours"
        assert data["status"] == "ready"
        assert data["loading"] is False
        assert data["error"] is None
        assert [e["id"] for e in data["earthquakes"]] == ["a", "c", "b"]
        assert data["count"] == 3
        assert data["stats"]["total"] == 3
        assert data["stats"]["strongest"]["id"] == "a"
        assert data["stats"]["by_region"] == {"Japan": 2, "CA": 1}
        assert data["stats"]["top_regions"][0] == {"region": "Japan", "count": 2}
        assert data["summary"] == "Showing 3 of 3 earthquakes"

    def test_fetches_requested_range(self, app, feed_source):
        response = call(app, feed_source, "range=week")

        assert response.status_code == 200
        feed_source.fetch.assert_awaited_once_with("week")
        assert json.loads(response.get_data(as_text=True))["time_range"] == "week"

    def test_default_range_from_config(self, app, feed_source):
        call(app, feed_source, config=Config(default_time_range="hour"))
        feed_source.fetch.assert_awaited_once_with("hour")

    def test_filters_and_sort(self, app, feed_source):
        response = call(app, feed_source, "min_magnitude=4&sort=magnitude")
        data = json.loads(response.get_data(as_text=True))

        assert [e["magnitude"] for e in data["earthquakes"]] == [6.2, 4.9]
        assert data["stats"]["total"] == 3
        assert data["filters"] == {"min_magnitude": 4.0, "location": "", "sort": "magnitude"}

    def test_location_filter(self, app, feed_source):
        response = call(app, feed_source, "location=ridgecrest")
        data = json.loads(response.get_data(as_text=True))

        assert [e["id"] for e in data["earthquakes"]] == ["b"]
        assert data["summary"] == "Showing 1 of 3 earthquakes • Filtered by: ridgecrest"

    def test_non_finite_magnitude_hidden_and_not_strongest(self, app):
        source = Mock()
        source.fetch = AsyncMock(
            return_value=[make_earthquake("x", float("nan"), "Somewhere, Peru", NOW)]
        )

        response = call(app, source)

        assert response.status_code == 200
        data = json.loads(response.get_data(as_text=True))
        assert data["earthquakes"] == []
        assert data["stats"]["total"] == 1
        assert data["stats"]["strongest"] is None

    def test_default_floor_drops_negative_magnitudes(self, app, earthquakes):
        source = Mock()
        source.fetch = AsyncMock(
            return_value=earthquakes + [make_earthquake("micro", -0.4, "3km W of Cobb, CA", NOW)]
        )

        data = json.loads(call(app, source).get_data(as_text=True))

        assert "micro" not in [e["id"] for e in data["earthquakes"]]
        assert data["stats"]["total"] == 4

    def test_events_carry_display_fields(self, app, feed_source):
        data = json.loads(call(app, feed_source).get_data(as_text=True))
        strongest = data["earthquakes"][0]

        assert strongest["color"] == "#ff0000"
        assert strongest["marker_radius"] == pytest.approx(18.6)
        assert strongest["summary"].startswith("M6.2 - 10km NE of Tokyo, Japan at ")
        assert strongest["relative_time"].endswith("m ago")
        assert data["stats"]["strongest"]["color"] == "#ff0000"
        assert data["earthquakes"][2]["color"] == "#ffcc00"


class TestCsvExport:
    """Tests for format=csv."""

    def test_magnitude_export(self, app, feed_source):
        response = call(app, feed_source, "format=csv&range=week")

        assert response.status_code == 200
        assert response.mimetype == "text/csv"
        assert response.headers["Content-Disposition"] == (
            'attachment; filename="earthquake_stats_week.csv"'
        )
        assert response.get_data(as_text=True) == "6.0+,1\n4.5-5.9,1\n3.0-4.4,1\n0-2.9,0\n"

    def test_region_export(self, app, feed_source):
        response = call(app, feed_source, "format=csv&by=region")

        assert response.get_data(as_text=True) == "Japan,2\nCA,1\n"
        assert "earthquake_stats_day_region.csv" in response.headers["Content-Disposition"]

    def test_export_covers_all_events_regardless_of_filters(self, app, feed_source):
        response = call(app, feed_source, "format=csv&min_magnitude=6")
        assert response.get_data(as_text=True) == "6.0+,1\n4.5-5.9,1\n3.0-4.4,1\n0-2.9,0\n"


class TestErrors:
    """Tests for rejected requests and fetch failures."""

    @pytest.mark.parametrize(
        "query",
        [
            "range=year",
            "sort=depth",
            "min_magnitude=abc",
            "min_magnitude=-1",
            "min_magnitude=nan",
            "format=xml",
            "format=csv&by=depth",
        ],
    )
    def test_invalid_parameters_return_400(self, app, feed_source, query):
        response = call(app, feed_source, query)

        assert response.status_code == 400
        assert "error" in json.loads(response.get_data(as_text=True))
        feed_source.fetch.assert_not_called()

    def test_fetch_failure_returns_502(self, app):
        source = Mock()
        source.fetch = AsyncMock(side_effect=FeedFetchError("Earthquake feed request timed out"))

        response = call(app, source, "range=month")

        assert response.status_code == 502
        assert json.loads(response.get_data(as_text=True)) == {
            "error": "Earthquake feed request timed out",
            "time_range": "month",
        }


class TestCors:
    """Tests for CORS handling."""

    def test_preflight(self, app, feed_source):
        response = call(
            app,
            feed_source,
            method="OPTIONS",
            headers={"Origin": "http://localhost:5173"},
        )

        assert response.status_code == 204
        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
        assert "GET" in response.headers["Access-Control-Allow-Methods"]
        feed_source.fetch.assert_not_called()

    def test_unknown_origin_gets_default(self, app, feed_source):
        response = call(app, feed_source, headers={"Origin": "https://evil.example.com"})
        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"

    def test_error_responses_carry_cors_headers(self, app, feed_source):
        response = call(
            app,
            feed_source,
            "range=year",
            headers={"Origin": "http://localhost:3000"},
        )
        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"
