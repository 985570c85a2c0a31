"""Cloud Function Entry Point.

This module provides the entry point for Google Cloud Functions.
It's a thin wrapper that loads configuration and invokes the API handler.
"""

import logging
import os

import functions_framework
from flask import Request, Response

from quakefeed.api_handler import get_earthquake_feed
from quakefeed.core.config import Config
from quakefeed.shell.config_loader import load_config, load_config_from_env


# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _get_config() -> Config:
    """Load configuration from file or environment."""
    config_path = os.environ.get("CONFIG_PATH")

    if config_path:
        return load_config(config_path)
    elif os.environ.get("FEED_BASE_URL") or os.environ.get("DEFAULT_TIME_RANGE"):
        # Simple env-based config
        return load_config_from_env()
    else:
        # Try default config path
        return load_config()


@functions_framework.http
def earthquake_feed(request: Request) -> Response:
    """HTTP Cloud Function entry point.

    Serves the earthquake statistics and filtered list for one time range.

    Args:
        request: Flask request object

    Returns:
        Flask response (JSON, or CSV for the statistics export)
    """
    try:
        config = _get_config()
        return get_earthquake_feed(request, config)
    except Exception:
        logger.exception("Unexpected error in earthquake feed")
        return Response(
            '{"error": "Internal server error"}',
            status=500,
            mimetype="application/json",
        )
