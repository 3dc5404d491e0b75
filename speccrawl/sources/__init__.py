"""Spec sources: well-known URL shapes and how to derive shortnames from them."""

from speccrawl.sources.base import FallbackSource, SpecSource
from speccrawl.sources.github import GitHubPagesSource
from speccrawl.sources.vendor import KhronosSource, TC39Source
from speccrawl.sources.w3c import CSSDraftsSource, W3CTRSource
from speccrawl.sources.whatwg import WhatwgSource

# Checked in order, first match wins
SOURCES: list[SpecSource] = [
    W3CTRSource(),
    CSSDraftsSource(),
    WhatwgSource(),
    GitHubPagesSource(),
    TC39Source(),
    KhronosSource(),
]

FALLBACK_SOURCE = FallbackSource()


def get_source(url: str) -> SpecSource:
    """Return the source that handles a URL (the fallback source if none does)."""
    for source in SOURCES:
        if source.matches(url):
            return source
    return FALLBACK_SOURCE


__all__ = [
    "SpecSource",
    "FallbackSource",
    "W3CTRSource",
    "CSSDraftsSource",
    "WhatwgSource",
    "GitHubPagesSource",
    "TC39Source",
    "KhronosSource",
    "SOURCES",
    "get_source",
]
