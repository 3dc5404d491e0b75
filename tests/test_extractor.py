"""Tests for the default HTML extractor."""

from pathlib import Path

from speccrawl.core.extractor import _label_to_key, extract, extract_from_html, normalize

BASE_URL = "https://drafts.csswg.org/css-stuff-1/"


def test_label_to_key():
    """Test conversion of definition table labels."""
    assert _label_to_key("Name:") == "name"
    assert _label_to_key("Applies to:") == "appliesTo"
    assert _label_to_key("New value:") == "newValues"
    assert _label_to_key("  ") == ""


def test_normalize():
    """Test whitespace and minus sign normalization."""
    assert normalize("  <integer [−∞,∞]>\n   | auto ") == "<integer [-∞,∞]> | auto"


def test_extract_metadata(sample_spec_html):
    """Test title, date, links and references extraction."""
    result = extract_from_html(sample_spec_html, BASE_URL)

    assert result["title"] == "CSS Stuff Module Level 1"
    assert result["date"] == "2024-05-01"

    # Own anchors and non-HTTP links are left out, fragments dropped
    assert result["links"] == [
        "https://drafts.csswg.org/css-values-4/",
        "https://www.w3.org/TR/css-cascade-5/",
    ]

    assert result["references"]["normative"] == [
        {"name": "CSS-VALUES-4", "url": "https://drafts.csswg.org/css-values-4/"}
    ]
    assert result["references"]["informative"] == [
        {"name": "CSS-CASCADE-5", "url": "https://www.w3.org/TR/css-cascade-5/"}
    ]


def test_extract_idl_skips_examples(sample_spec_html):
    """Test that only normative IDL blocks are kept."""
    idl = extract_from_html(sample_spec_html, BASE_URL)["idl"]

    assert idl["parsed"] is None
    assert "interface Stuff" in idl["raw"]
    assert "Ignored" not in idl["raw"]
    assert idl["hasObsoleteConstructs"] is False


def test_extract_idl_absent():
    """Test that documents without IDL get no IDL extract."""
    result = extract_from_html("<html><body><p>No IDL</p></body></html>", BASE_URL)
    assert result["idl"] is None


def test_extract_css_properties(sample_spec_html):
    """Test property extraction from definition tables."""
    css = extract_from_html(sample_spec_html, BASE_URL)["css"]
    properties = {p["name"]: p for p in css["properties"]}

    overlay = properties["overlay"]
    assert overlay["href"] == BASE_URL + "#propdef-overlay"
    assert overlay["value"] == "none | auto"
    assert overlay["initial"] == "none"
    assert overlay["appliesTo"] == "all elements"
    assert overlay["values"] == [
        {
            "name": "auto",
            "type": "value",
            "href": BASE_URL + "#valdef-overlay-auto",
            "value": "auto",
        }
    ]

    # Partial definition without a dfn
    assert properties["text-transform"] == {"name": "text-transform", "newValues": "full-width"}


def test_extract_css_atrules_and_descriptors(sample_spec_html):
    """Test at-rules get their syntax and descriptors."""
    css = extract_from_html(sample_spec_html, BASE_URL)["css"]

    assert len(css["atrules"]) == 1
    rule = css["atrules"][0]
    assert rule["name"] == "@stuff"
    assert rule["value"] == "@stuff { <declaration-list> }"
    assert "type" not in rule
    assert rule["descriptors"] == [
        {
            "name": "size",
            "href": BASE_URL + "#descdef-stuff-size",
            "for": "@stuff",
            "value": "<length>",
        }
    ]


def test_extract_css_values_and_selectors(sample_spec_html):
    """Test functions, types and selectors, informative ones excluded."""
    css = extract_from_html(sample_spec_html, BASE_URL)["css"]

    values = {v["name"]: v for v in css["values"]}
    assert set(values) == {"<stuff-size>", "stuff()"}
    assert values["<stuff-size>"]["type"] == "type"
    assert values["<stuff-size>"]["value"] == "small | large"
    assert values["stuff()"]["type"] == "function"
    assert values["stuff()"]["value"] == "stuff( <stuff-size> )"

    assert css["selectors"] == [
        {"name": ":stuffed", "href": BASE_URL + "#selectordef-stuffed", "value": ":stuffed"}
    ]
    assert "warnings" not in css


def test_extract_reads_local_files(tmp_path: Path, sample_spec_html):
    """Test extraction of a local HTML file through its file URL."""
    spec_file = tmp_path / "stuff.html"
    spec_file.write_text(sample_spec_html, encoding="utf-8")

    result = extract({"url": spec_file.as_uri()})

    assert result["title"] == "CSS Stuff Module Level 1"
    assert [p["name"] for p in result["css"]["properties"]] == ["overlay", "text-transform"]
