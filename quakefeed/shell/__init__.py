"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- USGS summary feed client (HTTP)
- Configuration loading (environment/files)

Keep this layer thin and simple. All business logic should be in core.
"""

from quakefeed.shell.usgs_client import FeedFetchError, USGSFeedClient, USGSFeedSource
from quakefeed.shell.config_loader import load_config, load_config_from_env

__all__ = [
    "FeedFetchError",
    "USGSFeedClient",
    "USGSFeedSource",
    "load_config",
    "load_config_from_env",
]
