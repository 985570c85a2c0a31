"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

The Config model is defined in quakefeed/core/config.py.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from quakefeed.core.config import USGS_FEED_BASE, Config
from quakefeed.core.filters import (
    DEFAULT_SORT_KEY,
    DEFAULT_TIME_RANGE,
    TIME_RANGES,
    validate_sort_key,
    validate_time_range,
)


logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = "config/config.yaml"


def _resolve_value(value: Any) -> Any:
    """Resolve a ${ENV_VAR} placeholder from the environment.

    Non-string values and plain strings are returned unchanged. An unset
    variable leaves the placeholder in place and logs a warning.
    """
    if not isinstance(value, str):
        return value

    if value.startswith("${") and value.endswith("}"):
        var_name = value[2:-1]
        env_value = os.environ.get(var_name)
        if env_value:
            return env_value
        logger.warning("Environment variable %s not set", var_name)

    return value


def _parse_feed_urls(data: dict[str, Any]) -> dict[str, str]:
    """Parse per-time-range feed URL overrides, skipping unknown ranges."""
    feed_urls: dict[str, str] = {}

    for time_range, url in data.items():
        if time_range not in TIME_RANGES:
            logger.warning("Ignoring feed URL for unknown time range: %s", time_range)
            continue
        feed_urls[time_range] = str(_resolve_value(url))

    return feed_urls


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Load configuration from a dictionary.

    This is a pure-ish function (only env var expansion has side effects).

    Args:
        data: Configuration dictionary

    Returns:
        Parsed Config object

    Raises:
        InvalidParameterError: If the default time range or sort key is unknown
    """
    feed = data.get("feed", {}) or {}

    return Config(
        feed_base_url=str(_resolve_value(feed.get("base_url", USGS_FEED_BASE))),
        feed_urls=_parse_feed_urls(feed.get("urls", {}) or {}),
        request_timeout_seconds=int(feed.get("timeout_seconds", 30)),
        default_time_range=validate_time_range(
            data.get("default_time_range", DEFAULT_TIME_RANGE)
        ),
        default_sort_key=validate_sort_key(data.get("default_sort_key", DEFAULT_SORT_KEY)),
        top_regions_limit=int(data.get("top_regions_limit", 5)),
    )


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed Config object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", DEFAULT_CONFIG_PATH)

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return Config()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using defaults")
        return Config()

    config = load_config_from_dict(data)

    logger.info(
        "Loaded config: default range %s, %d feed URL overrides",
        config.default_time_range,
        len(config.feed_urls),
    )

    return config


def load_config_from_env() -> Config:
    """Load configuration from environment variables.

    Useful for simple deployments without a YAML file.

    Environment variables:
        FEED_BASE_URL: Base URL of the summary feeds
        DEFAULT_TIME_RANGE: hour/day/week/month
        DEFAULT_SORT_KEY: time/magnitude
        REQUEST_TIMEOUT: Feed request timeout in seconds

    Returns:
        Config object from environment
    """
    return Config(
        feed_base_url=os.environ.get("FEED_BASE_URL", USGS_FEED_BASE),
        request_timeout_seconds=int(os.environ.get("REQUEST_TIMEOUT", "30")),
        default_time_range=validate_time_range(
            os.environ.get("DEFAULT_TIME_RANGE", DEFAULT_TIME_RANGE)
        ),
        default_sort_key=validate_sort_key(
            os.environ.get("DEFAULT_SORT_KEY", DEFAULT_SORT_KEY)
        ),
    )
