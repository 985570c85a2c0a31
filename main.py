"""Cloud Function Entry Point - Root Module.

This is the root-level entry point for Google Cloud Functions.
It imports from the quakefeed package.
"""

from quakefeed.main import earthquake_feed

__all__ = [
    "earthquake_feed",
]
