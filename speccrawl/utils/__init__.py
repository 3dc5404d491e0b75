"""Utility functions for fetching, logging and spec URL handling."""

from speccrawl.utils.fetch import fetch_json, fetch_url, fetch_with_httpx, fetch_with_playwright
from speccrawl.utils.logger import get_logger, log_event
from speccrawl.utils.specs import canonicalize_url, sanitize_shortname, split_series, version_key

__all__ = [
    "fetch_json",
    "fetch_url",
    "fetch_with_httpx",
    "fetch_with_playwright",
    "get_logger",
    "log_event",
    "canonicalize_url",
    "sanitize_shortname",
    "split_series",
    "version_key",
]
