"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from speccrawl.config.settings import Settings


@pytest.fixture
def test_data_dir(tmp_path: Path) -> Path:
    """Create a temporary data directory for tests."""
    data_dir = tmp_path / "test_data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


@pytest.fixture
def settings(test_data_dir: Path) -> Settings:
    """Settings that never wait between retries and write under tmp_path."""
    return Settings(
        w3c_api_url="https://api.test",
        repository_index_url="https://index.test/index.json",
        data_dir=test_data_dir / "runs",
        max_retries=1,
        retry_backoff=0.0,
        timeout_seconds=5,
    )


@pytest.fixture
def known_specs() -> list[dict]:
    """A small known specs list, shaped like specs.yaml entries."""
    return [
        {
            "url": "https://www.w3.org/TR/css-grid-1/",
            "shortname": "css-grid-1",
            "seriesShortname": "css-grid",
            "seriesVersion": "1",
        },
        {
            "url": "https://www.w3.org/TR/css-grid-2/",
            "shortname": "css-grid-2",
            "seriesShortname": "css-grid",
            "seriesVersion": "2",
            "edDraft": "https://drafts.csswg.org/css-grid-2/",
        },
        {
            "url": "https://dom.spec.whatwg.org/",
            "shortname": "dom",
            "seriesShortname": "dom",
        },
    ]


@pytest.fixture
def sample_spec_html() -> str:
    """A small spec document with the usual Bikeshed markup."""
    return """
    <!DOCTYPE html>
    <html>
    <head><title>CSS Stuff Module Level 1</title></head>
    <body>
        <div class="head">
            <h1>CSS Stuff Module Level 1</h1>
            <p><time class="dt-updated" datetime="2024-05-01">1 May 2024</time></p>
        </div>

        <p>Builds on <a href="https://drafts.csswg.org/css-values-4/#lengths">lengths</a>,
        see also <a href="#propdef-overlay">overlay</a> and
        <a href="mailto:www-style@w3.org">the mailing list</a>.</p>

        <table class="def propdef">
            <tr><th>Name:</th><td><dfn id="propdef-overlay" data-dfn-type="property">overlay</dfn></td></tr>
            <tr><th>Value:</th><td class="prod">none | auto</td></tr>
            <tr><th>Initial:</th><td>none</td></tr>
            <tr><th>Applies to:</th><td>all elements</td></tr>
        </table>
        <p><dfn data-dfn-type="value" data-dfn-for="overlay" id="valdef-overlay-auto">auto</dfn></p>

        <table class="def propdef partial">
            <tr><th>Name:</th><td><a>text-transform</a></td></tr>
            <tr><th>New values:</th><td>full-width</td></tr>
        </table>

        <p>The <dfn data-dfn-type="at-rule" id="at-ruledef-stuff">@stuff</dfn> rule.</p>
        <pre class="prod">@stuff = @stuff { &lt;declaration-list&gt; }</pre>

        <table class="def descdef">
            <tr><th>Name:</th><td><dfn id="descdef-stuff-size" data-dfn-type="descriptor" data-dfn-for="@stuff">size</dfn></td></tr>
            <tr><th>For:</th><td><a>@stuff</a></td></tr>
            <tr><th>Value:</th><td>&lt;length&gt;</td></tr>
        </table>

        <pre class="prod"><dfn data-dfn-type="type" id="typedef-stuff-size">&lt;stuff-size&gt;</dfn> = small | large</pre>
        <pre class="prod">&lt;<dfn data-dfn-type="function" id="funcdef-stuff">stuff()</dfn>&gt; = stuff( &lt;stuff-size&gt; )</pre>

        <p><dfn data-dfn-type="selector" data-export="" id="selectordef-stuffed">:stuffed</dfn></p>

        <div class="example">
            <p><dfn data-dfn-type="type" id="typedef-ignored">&lt;ignored&gt;</dfn></p>
            <pre class="idl">interface Ignored {};</pre>
        </div>

        <pre class="idl">[Exposed=Window]
interface Stuff {
  attribute DOMString size;
};</pre>

        <h3 id="normative">Normative References</h3>
        <dl>
            <dt id="biblio-css-values-4">[CSS-VALUES-4]</dt>
            <dd>Tab Atkins. <a href="https://drafts.csswg.org/css-values-4/"><cite>CSS Values</cite></a>.</dd>
        </dl>
        <h3 id="informative">Informative References</h3>
        <dl>
            <dt id="biblio-css-cascade-5">[CSS-CASCADE-5]</dt>
            <dd><a href="https://www.w3.org/TR/css-cascade-5/"><cite>CSS Cascade</cite></a></dd>
        </dl>
    </body>
    </html>
    """
