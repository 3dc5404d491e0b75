"""Tests for the spec descriptor resolver."""

import asyncio

import pytest

from speccrawl.core.models import SpecDescriptor
from speccrawl.core.registry import LookupFailure, LookupResult, VersionHistory
from speccrawl.core.resolver import Resolver


class FakeRegistry:
    """Version history lookups answered from a dict; unknown specs are unreachable."""

    def __init__(self, histories: dict[str, VersionHistory] | None = None):
        self.histories = histories or {}
        self.calls: list[str] = []

    async def version_history(self, shortname: str) -> LookupResult[VersionHistory]:
        self.calls.append(shortname)
        if shortname in self.histories:
            return LookupResult.success(self.histories[shortname])
        return LookupResult.failed(LookupFailure.UNREACHABLE, "connection refused")


class FakeRepositories:
    """Repository lookups answered from a dict, or failing."""

    def __init__(self, mapping: dict[str, str] | None = None, failure: str | None = None):
        self.mapping = mapping or {}
        self.failure = failure

    async def lookup(self, urls: list[str]) -> LookupResult[dict[str, str]]:
        if self.failure == "raise":
            raise RuntimeError("index exploded")
        if self.failure:
            return LookupResult.failed(LookupFailure.UNREACHABLE, self.failure)
        return LookupResult.success({url: self.mapping[url] for url in urls if url in self.mapping})


GRID_HISTORY = VersionHistory(
    title="CSS Grid Layout Module Level 2",
    latest="https://www.w3.org/TR/css-grid-2/",
    ed_draft="https://drafts.csswg.org/css-grid-2/",
    dated_url="https://www.w3.org/TR/2020/CR-css-grid-2-20201218/",
    versions=["https://www.w3.org/TR/2020/CR-css-grid-2-20201218/"],
)


@pytest.fixture
def make_resolver(settings, known_specs):
    """Build a resolver around fake registries."""

    def _make(registry=None, repositories=None, equivalents=None):
        return Resolver(
            registry=registry or FakeRegistry({"css-grid-2": GRID_HISTORY}),
            repositories=repositories or FakeRepositories(),
            known_specs=known_specs,
            equivalents=equivalents or {},
            settings=settings,
        )

    return _make


def test_resolve_known_shortname(make_resolver):
    """Test that known shortnames resolve with registry data."""
    descriptors = asyncio.run(make_resolver().resolve(["css-grid-2"]))

    assert len(descriptors) == 1
    grid = descriptors[0]
    assert grid.url == "https://www.w3.org/TR/css-grid-2/"
    assert grid.shortname == "css-grid-2"
    assert grid.series_shortname == "css-grid"
    assert grid.series_version == "2"
    assert grid.title == "CSS Grid Layout Module Level 2"
    assert grid.latest == "https://www.w3.org/TR/css-grid-2/"
    assert grid.crawled_url == "https://drafts.csswg.org/css-grid-2/"
    assert grid.resolution_error is None
    assert grid.error is None
    assert grid.versions == sorted(
        {
            "https://www.w3.org/TR/css-grid-2/",
            "https://drafts.csswg.org/css-grid-2/",
            "https://www.w3.org/TR/2020/CR-css-grid-2-20201218/",
        }
    )


def test_resolve_series_shortname_picks_latest_level(make_resolver):
    """Test that a series shortname resolves to its most recent level."""
    descriptors = asyncio.run(make_resolver().resolve(["css-grid"]))

    assert descriptors[0].shortname == "css-grid-2"


def test_resolve_urls_derive_identity(make_resolver):
    """Test shortname and series derivation for URLs not in the known list."""
    registry = FakeRegistry()
    resolver = make_resolver(registry=registry)

    descriptors = asyncio.run(
        resolver.resolve(
            [
                "https://drafts.csswg.org/css-color-5/",
                "https://fetch.spec.whatwg.org/",
            ]
        )
    )

    color, fetch = descriptors
    assert color.shortname == "css-color-5"
    assert color.series_shortname == "css-color"
    assert color.series_version == "5"
    assert color.ed_draft == "https://drafts.csswg.org/css-color-5/"

    assert fetch.shortname == "fetch"
    assert fetch.series_version is None
    assert fetch.latest == "https://fetch.spec.whatwg.org/"
    assert fetch.resolution_error is None

    # Only W3C URL shapes go to the W3C registry
    assert registry.calls == ["css-color-5"]


def test_registry_failure_degrades(make_resolver):
    """Test that an unreachable registry leaves a best-effort descriptor."""
    resolver = make_resolver(registry=FakeRegistry())

    descriptors = asyncio.run(resolver.resolve(["https://www.w3.org/TR/css-grid-2/"]))

    grid = descriptors[0]
    assert grid.resolution_error == "unreachable: connection refused"
    assert grid.error is None
    assert grid.latest == "https://www.w3.org/TR/css-grid-2/"
    assert grid.crawled_url == "https://drafts.csswg.org/css-grid-2/"
    assert grid.title is None


def test_repository_enrichment(make_resolver):
    """Test that repositories are attached from the batched lookup."""
    repositories = FakeRepositories(
        {"https://www.w3.org/TR/css-grid-2/": "https://github.com/w3c/csswg-drafts"}
    )
    resolver = make_resolver(repositories=repositories)

    grid, dom = asyncio.run(resolver.resolve(["css-grid-2", "dom"]))

    assert grid.repository == "https://github.com/w3c/csswg-drafts"
    assert dom.repository is None


@pytest.mark.parametrize("failure", ["index unreachable", "raise"])
def test_repository_failure_is_ignored(make_resolver, failure):
    """Test that a failing repository lookup does not abort resolution."""
    resolver = make_resolver(repositories=FakeRepositories(failure=failure))

    descriptors = asyncio.run(resolver.resolve(["css-grid-2", "dom"]))

    assert [d.shortname for d in descriptors] == ["css-grid-2", "dom"]
    assert all(d.repository is None for d in descriptors)


def test_equivalents_extend_versions(make_resolver):
    """Test that known equivalent URLs join the versions set."""
    resolver = make_resolver(
        equivalents={"https://www.w3.org/TR/dom/": ["https://dom.spec.whatwg.org/"]},
    )

    descriptors = asyncio.run(resolver.resolve(["https://www.w3.org/TR/dom/"]))

    assert "https://dom.spec.whatwg.org/" in descriptors[0].versions


def test_structured_entries_and_local_files(make_resolver, tmp_path):
    """Test structured entries and local HTML paths."""
    spec_file = tmp_path / "local-spec.html"
    spec_file.write_text("<html></html>", encoding="utf-8")

    entry = SpecDescriptor(url="https://example.org/thing/", shortname="thing")
    descriptors = asyncio.run(make_resolver().resolve([entry, str(spec_file)]))

    thing, local = descriptors
    assert thing.shortname == "thing"
    assert entry.versions == []
    assert local.url == spec_file.resolve().as_uri()
    assert local.crawled_url == local.url


def test_invalid_entry_raises(make_resolver):
    """Test that entries that are neither URLs, shortnames nor files raise."""
    with pytest.raises(ValueError, match="not-a-spec"):
        asyncio.run(make_resolver().resolve(["not-a-spec"]))
