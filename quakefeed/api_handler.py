"""Web API Handler - Serves the earthquake feed to the display layer.

This module provides the HTTP endpoint the frontend reads: the current
statistics, the filtered view and the loading/error status, plus the
CSV statistics export. Part of the imperative shell - handles HTTP I/O.

Each request builds its own FeedSession, so no state is shared between
requests.
"""

import asyncio
import json
import logging
import math
from datetime import datetime, timezone
from typing import Any

from flask import Request, Response

from quakefeed.core.config import Config
from quakefeed.core.earthquake import Earthquake
from quakefeed.core.filters import InvalidParameterError
from quakefeed.core.formatter import (
    format_count_summary,
    format_earthquake_summary,
    format_relative_time,
    format_stats_csv,
    get_export_filename,
    get_magnitude_color,
    get_marker_radius,
    get_time_range_label,
)
from quakefeed.core.stats import StatsSummary, top_regions
from quakefeed.session import STATUS_FAILED, FeedSession, FeedSource, SessionSnapshot
from quakefeed.shell.usgs_client import USGSFeedClient, USGSFeedSource

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "csv")
EXPORT_GROUPINGS = ("magnitude", "region")

# CORS allowed origins
ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
]


def _cors_headers(origin: str | None) -> dict[str, str]:
    """Generate CORS headers for the response."""
    headers = {
        "Access-Control-Allow-Methods": "GET, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Max-Age": "3600",
    }
    if origin and origin in ALLOWED_ORIGINS:
        headers["Access-Control-Allow-Origin"] = origin
    else:
        headers["Access-Control-Allow-Origin"] = ALLOWED_ORIGINS[0]
    return headers


def _json_response(
    data: dict[str, Any],
    status: int = 200,
    origin: str | None = None,
) -> Response:
    """Create a JSON response with CORS headers."""
    response = Response(
        json.dumps(data, default=str),
        status=status,
        mimetype="application/json",
    )
    for key, value in _cors_headers(origin).items():
        response.headers[key] = value
    return response


def _csv_response(
    text: str,
    filename: str,
    origin: str | None = None,
) -> Response:
    """Create a CSV attachment response with CORS headers."""
    response = Response(text, status=200, mimetype="text/csv")
    response.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    for key, value in _cors_headers(origin).items():
        response.headers[key] = value
    return response


def _finite_or_none(value: float | None) -> float | None:
    """JSON has no NaN/Infinity; send null instead."""
    if value is None or not math.isfinite(value):
        return None
    return value


def _earthquake_to_dict(eq: Earthquake, now_ms: int) -> dict[str, Any]:
    """Convert Earthquake dataclass to JSON-serializable dict.

    Includes the display fields the list and map render directly.
    """
    return {
        "id": eq.id,
        "magnitude": _finite_or_none(eq.magnitude),
        "place": eq.place,
        "title": eq.title,
        "time": eq.time.isoformat(),
        "time_ms": eq.time_ms,
        "url": eq.url,
        "longitude": eq.longitude,
        "latitude": eq.latitude,
        "depth_km": eq.depth_km,
        "color": get_magnitude_color(eq.magnitude),
        "marker_radius": get_marker_radius(eq.magnitude),
        "relative_time": format_relative_time(eq.time_ms, now_ms),
        "summary": format_earthquake_summary(eq),
    }


def _stats_to_dict(
    stats: StatsSummary,
    now_ms: int,
    top_regions_limit: int = 5,
) -> dict[str, Any]:
    """Convert StatsSummary to JSON-serializable dict."""
    return {
        "total": stats.total,
        "by_magnitude": dict(stats.by_magnitude),
        "average_magnitude": stats.average_magnitude,
        "strongest": _earthquake_to_dict(stats.strongest, now_ms) if stats.strongest else None,
        "recent_count": stats.recent_count,
        "by_region": dict(stats.by_region),
        "top_regions": [
            {"region": region, "count": count}
            for region, count in top_regions(stats, top_regions_limit)
        ],
    }


def _snapshot_to_dict(snapshot: SessionSnapshot, config: Config) -> dict[str, Any]:
    """Convert a session snapshot to the JSON payload the frontend reads."""
    params = snapshot.params
    now_ms = snapshot.computed_at_ms
    return {
        "time_range": params.time_range,
        "time_range_label": get_time_range_label(params.time_range),
        "filters": {
            "min_magnitude": params.magnitude_floor,
            "location": params.location_filter,
            "sort": params.sort_key,
        },
        "status": snapshot.status,
        "loading": snapshot.loading,
        "error": snapshot.error,
        "stats": _stats_to_dict(snapshot.stats, now_ms, config.top_regions_limit),
        "earthquakes": [_earthquake_to_dict(eq, now_ms) for eq in snapshot.view],
        "count": len(snapshot.view),
        "summary": format_count_summary(
            len(snapshot.view),
            snapshot.stats.total,
            params.location_filter,
        ),
        "fetched_at": datetime.now(timezone.utc).isoformat(),
    }


def _parse_magnitude_floor(raw: str | None) -> float:
    """Parse the min_magnitude query parameter (missing = no filter)."""
    if raw is None or raw == "":
        return 0.0
    try:
        return float(raw)
    except ValueError as e:
        raise InvalidParameterError(f"min_magnitude must be a number, got {raw!r}") from e


def _build_session(
    request: Request,
    config: Config,
    feed_source: FeedSource,
) -> FeedSession:
    """Create a session configured from the request's query parameters.

    Raises:
        InvalidParameterError: If any query parameter is out of domain
    """
    session = FeedSession(
        feed_source,
        time_range=request.args.get("range", config.default_time_range),
        sort_key=request.args.get("sort", config.default_sort_key),
    )
    session.set_magnitude_floor(_parse_magnitude_floor(request.args.get("min_magnitude")))
    session.set_location_filter(request.args.get("location", ""))
    return session


async def _load(session: FeedSession) -> SessionSnapshot:
    """Fetch the session's feed and return the resulting snapshot."""
    await session.refresh()
    return session.snapshot()


def get_earthquake_feed(
    request: Request,
    config: Config | None = None,
    feed_source: FeedSource | None = None,
) -> Response:
    """API endpoint: Get statistics and the filtered earthquake list.

    Query params:
        range: hour/day/week/month (default from config)
        min_magnitude: Magnitude floor, inclusive (default 0)
        location: Case-insensitive place/title filter
        sort: time/magnitude (default from config)
        format: json (default) or csv for the statistics export
        by: magnitude (default) or region, for the csv export

    Returns:
        JSON snapshot, or CSV attachment when format=csv
    """
    origin = request.headers.get("Origin")

    # Handle CORS preflight
    if request.method == "OPTIONS":
        response = Response("", status=204)
        for key, value in _cors_headers(origin).items():
            response.headers[key] = value
        return response

    config = config or Config()
    source = feed_source or USGSFeedSource(USGSFeedClient(config))

    export_format = request.args.get("format", "json")
    grouping = request.args.get("by", "magnitude")

    try:
        if export_format not in EXPORT_FORMATS:
            raise InvalidParameterError(f"Unknown format: {export_format!r}")
        if grouping not in EXPORT_GROUPINGS:
            raise InvalidParameterError(f"Unknown export grouping: {grouping!r}")
        session = _build_session(request, config, source)
    except InvalidParameterError as e:
        logger.warning("Rejected feed request: %s", e)
        return _json_response({"error": str(e)}, status=400, origin=origin)

    snapshot = asyncio.run(_load(session))

    if snapshot.status == STATUS_FAILED:
        return _json_response(
            {
                "error": snapshot.error,
                "time_range": snapshot.params.time_range,
            },
            status=502,
            origin=origin,
        )

    if export_format == "csv":
        return _csv_response(
            format_stats_csv(snapshot.stats, by=grouping),
            get_export_filename(snapshot.params.time_range, by=grouping),
            origin=origin,
        )

    return _json_response(_snapshot_to_dict(snapshot, config), origin=origin)
