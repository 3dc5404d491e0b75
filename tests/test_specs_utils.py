"""Tests for spec URL and series helpers."""

import pytest

from speccrawl.utils.specs import canonicalize_url, sanitize_shortname, split_series, version_key


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("http://www.w3.org/TR/css-grid-2", "https://www.w3.org/TR/css-grid-2/"),
        ("https://www.w3.org/TR/css-grid-2/#grid-model", "https://www.w3.org/TR/css-grid-2/"),
        ("https://www.w3.org/TR/CSS21/box.html", "https://www.w3.org/TR/CSS21/"),
        ("https://html.spec.whatwg.org/multipage/forms.html", "https://html.spec.whatwg.org/"),
        ("https://w3c.github.io/accelerometer", "https://w3c.github.io/accelerometer/"),
        ("https://drafts.csswg.org/css-grid-2/Overview.html", "https://drafts.csswg.org/css-grid-2/"),
    ],
)
def test_canonicalize_url(url, expected):
    """Test that equivalent spellings of a spec URL canonicalize the same way."""
    assert canonicalize_url(url) == expected


def test_canonicalize_url_dated_to_latest():
    """Test mapping of dated TR URLs to the latest version."""
    dated = "https://www.w3.org/TR/2020/CR-css-grid-2-20201218/"

    assert canonicalize_url(dated) == dated
    assert canonicalize_url(dated, dated_to_latest=True) == "https://www.w3.org/TR/css-grid-2/"


def test_canonicalize_url_equivalents():
    """Test that equivalents replace the canonical URL."""
    equivalents = {"https://www.w3.org/TR/dom/": ["https://dom.spec.whatwg.org/"]}

    assert canonicalize_url("http://www.w3.org/TR/dom", equivalents=equivalents) == (
        "https://dom.spec.whatwg.org/"
    )
    assert canonicalize_url("https://www.w3.org/TR/css-grid-2/", equivalents=equivalents) == (
        "https://www.w3.org/TR/css-grid-2/"
    )


def test_sanitize_shortname():
    """Test that URL punctuation is removed."""
    assert sanitize_shortname("https://example.org/spec.html") == "httpsexampleorgspechtml"


def test_split_series():
    """Test splitting of shortnames into series and version."""
    assert split_series("css-grid-2") == ("css-grid", "2")
    assert split_series("css-color-4.1") == ("css-color", "4.1")
    assert split_series("mediaqueries-5") == ("mediaqueries", "5")
    assert split_series("html") == ("html", None)
    assert split_series("css-2023") == ("css", "2023")


def test_version_key_orders_numerically():
    """Test that versions compare numerically, missing ones lowest."""
    versions = ["10", "2", None, "2.1", "1"]

    assert sorted(versions, key=version_key) == [None, "1", "2", "2.1", "10"]
    assert version_key("draft") == (0,)
