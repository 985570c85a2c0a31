"""Earthquake feed statistics and filtering.

The functional core (quakefeed.core) derives statistics and the
filtered view from raw earthquake records; the imperative shell
(quakefeed.shell) fetches USGS feeds and loads configuration;
FeedSession (quakefeed.session) ties them together for a display layer.
"""

__version__ = "1.0.0"
