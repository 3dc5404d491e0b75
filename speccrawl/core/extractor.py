"""Default extractor: fetches a spec document and pulls facts out of its HTML.

The extractor runs inside a crawl process, so ``extract`` must stay a
module-level callable that only takes and returns plain dicts.
"""

import asyncio
import copy
import re
from pathlib import Path
from typing import Any
from urllib.parse import urldefrag, urljoin, urlparse
from urllib.request import url2pathname

from bs4 import BeautifulSoup, Tag

from speccrawl.config.settings import get_settings
from speccrawl.utils.fetch import fetch_url
from speccrawl.utils.specs import canonicalize_url

INFORMATIVE_CLASSES = {
    "informative",
    "note",
    "issue",
    "example",
    "ednote",
    "practice",
    "introductory",
    "non-normative",
}

# Annotations that live inside definitions but are not part of them
ASIDE_SELECTOR = "aside, .mdn-anno, .wpt-tests-block, sup"

# Splits a block of production rules before each "name =" that starts a rule
_SPLIT_RULES = re.compile(r"\s(?=(?:[^\]\s]+?|<.*?\[\s*<.*?>\s*\]>)\s*?=[^'])")
_PRODUCTION_RULE = re.compile(r"\s?=\s")
_COMMENT = re.compile(r"/\*.*?\*/", re.S)

_OBSOLETE_IDL = re.compile(
    r"^\s*\w+\s+implements\s+\w+\s*;|\[\s*TreatNullAs|\blegacycaller\b|\bserializer\b",
    re.M,
)

NORMATIVE_IDS = ("normative", "normative-references", "references-normative")
INFORMATIVE_IDS = ("informative", "informative-references", "references-informative")


def extract(descriptor: dict[str, Any]) -> dict[str, Any]:
    """
    Crawl one spec document.

    Args:
        descriptor: Spec descriptor as a camelCase dict

    Returns:
        Extract with title, date, links, references, idl and css
    """
    url = descriptor.get("crawledUrl") or descriptor["url"]
    settings = get_settings()

    if url.startswith("file:"):
        html = Path(url2pathname(urlparse(url).path)).read_text(encoding="utf-8")
    else:
        html = asyncio.run(
            fetch_url(url, timeout=settings.timeout_seconds, max_retries=settings.max_retries)
        )

    return extract_from_html(html, url)


def extract_from_html(html: str, base_url: str) -> dict[str, Any]:
    """
    Extract spec facts from an HTML document.

    Args:
        html: Document markup
        base_url: URL the document was fetched from

    Returns:
        Extract dict (keys match SpecDescriptor fields)
    """
    soup = BeautifulSoup(html, "lxml")
    return {
        "title": extract_title(soup),
        "date": extract_date(soup),
        "links": extract_links(soup, base_url),
        "references": extract_references(soup, base_url),
        "idl": extract_idl(soup),
        "css": extract_css(soup, base_url),
    }


def normalize(value: str) -> str:
    """Collapse whitespace and replace minus signs used in value syntaxes."""
    return re.sub(r"\s+", " ", value.strip()).replace("−", "-")


def _is_informative(el: Tag) -> bool:
    for node in [el, *el.parents]:
        if INFORMATIVE_CLASSES & set(node.get("class") or []):
            return True
    return False


def _clean_text(el: Tag) -> str:
    """Text of an element without annotations and footnote markers."""
    clone = copy.copy(el)
    for annotation in clone.select(ASIDE_SELECTOR):
        annotation.decompose()
    return clone.get_text()


def _href(el: Tag, base_url: str) -> str | None:
    if not el.get("id"):
        return None
    return urljoin(base_url, f"#{el['id']}")


def extract_title(soup: BeautifulSoup) -> str | None:
    if soup.title and soup.title.get_text().strip():
        return normalize(soup.title.get_text())
    heading = soup.find("h1")
    return normalize(heading.get_text()) if heading else None


def extract_date(soup: BeautifulSoup) -> str | None:
    time_el = soup.select_one("time.dt-updated[datetime], time[datetime]")
    return time_el["datetime"] if time_el else None


def extract_links(soup: BeautifulSoup, base_url: str) -> list[str]:
    """Absolute canonical URLs of documents the spec links to, excluding itself."""
    own = canonicalize_url(base_url)
    links = set()
    for anchor in soup.find_all("a", href=True):
        url, _ = urldefrag(urljoin(base_url, anchor["href"]))
        if urlparse(url).scheme not in ("http", "https"):
            continue
        url = canonicalize_url(url)
        if url != own:
            links.add(url)
    return sorted(links)


def _reference_list(soup: BeautifulSoup, ids: tuple[str, ...], base_url: str) -> list[dict]:
    for ref_id in ids:
        anchor = soup.find(id=ref_id)
        if anchor is None:
            continue

        if anchor.name == "section":
            dl = anchor.find("dl")
        else:
            dl = anchor.find_next_sibling("dl")
        if dl is None:
            continue

        references = []
        for dt in dl.find_all("dt"):
            entry = {"name": dt.get_text().strip().strip("[]")}
            dd = dt.find_next_sibling("dd")
            link = dd.find("a", href=True) if dd else None
            if link:
                entry["url"] = urljoin(base_url, link["href"])
            references.append(entry)
        return references

    return []


def extract_references(soup: BeautifulSoup, base_url: str) -> dict[str, list[dict]]:
    return {
        "normative": _reference_list(soup, NORMATIVE_IDS, base_url),
        "informative": _reference_list(soup, INFORMATIVE_IDS, base_url),
    }


def extract_idl(soup: BeautifulSoup) -> dict[str, Any] | None:
    """
    Raw WebIDL of the spec.

    Parsing the IDL is left to dedicated tooling: ``parsed`` is always None.
    Blocks in examples, informative sections and the IDL index are skipped.
    """
    blocks = []
    for pre in soup.select("pre.idl"):
        if "extract" in (pre.get("class") or []) or _is_informative(pre):
            continue
        if pre.find_parent(id=re.compile(r"^(actual-)?idl-index$")):
            continue
        blocks.append(_clean_text(pre).strip())

    if not blocks:
        return None

    raw = "\n\n".join(blocks)
    return {
        "parsed": None,
        "raw": raw,
        "hasObsoleteConstructs": bool(_OBSOLETE_IDL.search(raw)),
    }


def _label_to_key(label: str) -> str:
    """Turn a definition table label ("Applies to:") into a camelCase key."""
    words = label.strip().replace(":", "").split()
    if not words:
        return ""
    key = words[0].lower() + "".join(w[:1].upper() + w[1:] for w in words[1:])
    # Singular is used when there is only one new value
    return "newValues" if key == "newValue" else key


def _table_dfns(table: Tag, base_url: str) -> list[dict[str, Any]]:
    """Definitions of a propdef/descdef table, one per name in its Name row."""
    entries: list[dict[str, Any]] = []
    fields: dict[str, str] = {}

    for row in table.find_all("tr"):
        cells = row.find_all(["th", "td"], recursive=False)
        if len(cells) < 2:
            continue

        key = _label_to_key(cells[0].get_text())
        value_el = cells[-1]
        if key == "name":
            dfns = value_el.select("dfn[id]")
            if dfns:
                entries = [
                    {"name": normalize(dfn.get_text()), "href": _href(dfn, base_url)}
                    for dfn in dfns
                ]
            else:
                text = normalize(value_el.get_text())
                entries = [{"name": name.strip()} for name in text.split(",") if name.strip()]
        elif key:
            fields[key] = normalize(_clean_text(value_el))

    return [{**entry, **fields} for entry in entries]


def _merge_property(existing: dict, partial: dict) -> bool:
    """Append a partial definition's new values to a full one. False if unmergeable."""
    if not partial.get("newValues") or (existing.get("value") and partial.get("value")):
        return False
    if existing.get("value"):
        existing["value"] += f" | {partial['newValues']}"
    elif existing.get("newValues"):
        existing["newValues"] += f" | {partial['newValues']}"
    else:
        return False
    return True


def _dfn_names(dfn: Tag) -> list[str]:
    """
    Names of a dfn, preferring syntax-like linking texts.

    "identifiers|<identifier>" yields "<identifier>" and ":lang|:lang()"
    yields ":lang()".
    """
    if dfn.get("data-lt"):
        names = [normalize(name) for name in dfn["data-lt"].split("|")]
    else:
        names = [normalize(dfn.get_text())]

    def syntax_like(name: str) -> bool:
        return bool(re.match(r"^@|^<.*>$|^:", name) or name.endswith("()"))

    if not any(syntax_like(name) for name in names):
        return names

    has_function = any(name.endswith("()") for name in names)
    keep = []
    for name in names:
        if not syntax_like(name):
            continue
        # ":lang" is dropped when ":lang()" is also listed
        if name.startswith(":") and not name.endswith("()") and has_function:
            continue
        keep.append(name)
    return keep


def _typed_dfns(
    soup: BeautifulSoup,
    dfn_types: tuple[str, ...],
    base_url: str,
    scoped: bool,
) -> list[dict]:
    entries = []
    for dfn in soup.select("dfn[data-dfn-type]"):
        dfn_type = dfn["data-dfn-type"]
        dfn_for = dfn.get("data-dfn-for", "")
        if dfn_type not in dfn_types or bool(dfn_for) != scoped or _is_informative(dfn):
            continue
        if dfn_type == "selector" and not scoped and not dfn.has_attr("data-export"):
            continue

        for name in _dfn_names(dfn):
            entry: dict[str, Any] = {"name": name, "type": dfn_type}
            href = _href(dfn, base_url)
            if href:
                entry["href"] = href
            if dfn_type == "value":
                entry["value"] = name
            if dfn_for:
                entry["for"] = dfn_for
            entries.append(entry)
    return entries


def _production_rules(soup: BeautifulSoup) -> list[dict[str, str]]:
    """``name = value`` rules found in ``pre.prod`` blocks."""
    rules: dict[str, str] = {}
    for pre in soup.select("pre.prod"):
        if _is_informative(pre) or pre.find(["ins", "del"]):
            continue

        text = _COMMENT.sub("", _clean_text(pre))
        for chunk in _SPLIT_RULES.split(text):
            chunk = chunk.strip()
            if not _PRODUCTION_RULE.search(chunk):
                continue
            name, value = _PRODUCTION_RULE.split(chunk, maxsplit=1)
            name = re.sub(r"\[[^\]]+\]", "", normalize(name))
            value = normalize(value)
            if name in rules and rules[name] != value:
                rules[name] += f" | {value}"
            else:
                rules[name] = value

    return [{"name": name, "value": value} for name, value in rules.items()]


def _find(entries: list[dict], name: str) -> dict | None:
    for entry in entries:
        if entry["name"] == name:
            return entry
    for entry in entries:
        if f"<{entry['name']}>" == name:
            return entry
    return None


def _set_selector_value(selector: dict) -> None:
    if selector.get("value") or "(" in selector["name"]:
        return
    if re.match(r"^[:a-z]", selector["name"], re.I):
        selector["value"] = selector["name"]
    else:
        # Combinator tokens need quoting to form a valid syntax
        selector["value"] = " ".join(f"'{token}'" for token in selector["name"])


def _legacy_aliases(soup: BeautifulSoup, base_url: str) -> list[dict]:
    aliases = []
    for link in soup.select('a[href$="#legacy-name-alias"]'):
        container = link.parent
        dfn = container.select_one('dfn[data-dfn-type="property"]')
        target = container.select_one('a[data-link-type="property"]')
        if dfn and target:
            aliases.append(
                {
                    "name": normalize(dfn.get_text()),
                    "href": _href(dfn, base_url),
                    "legacyAliasOf": normalize(target.get_text()),
                }
            )
    return aliases


def extract_css(soup: BeautifulSoup, base_url: str) -> dict[str, Any]:
    """
    CSS definitions of the spec.

    Properties and descriptors come from definition tables, at-rules,
    selectors, functions and types from typed dfns. Production rules in
    ``pre.prod`` blocks provide the value syntax of typed dfns, and scoped
    value dfns are attached to the construct they are defined for.

    Returns:
        Dict with ``atrules``, ``properties``, ``selectors`` and ``values``
        lists, plus ``warnings`` when definitions could not be reconciled
    """
    warnings: list[dict] = []

    properties: list[dict] = []
    for table in soup.select("table.propdef"):
        if "attrdef" in (table.get("class") or []) or _is_informative(table):
            continue
        for dfn in _table_dfns(table, base_url):
            existing = _find(properties, dfn["name"])
            if existing is None:
                properties.append(dfn)
            elif not _merge_property(existing, dfn):
                warnings.append({"msg": "Unmergeable definition", **dfn})
    properties += _legacy_aliases(soup, base_url)

    atrules = _typed_dfns(soup, ("at-rule",), base_url, scoped=False)
    selectors = _typed_dfns(soup, ("selector",), base_url, scoped=False)
    values = _typed_dfns(soup, ("function", "type"), base_url, scoped=False)
    for entry in atrules + selectors:
        entry.pop("type", None)

    descriptors = []
    for table in soup.select("table.descdef"):
        if "attrdef" in (table.get("class") or []) or _is_informative(table):
            continue
        descriptors += _table_dfns(table, base_url)
    descriptors += _typed_dfns(soup, ("at-rule",), base_url, scoped=True)

    for descriptor in descriptors:
        rule = _find(atrules, descriptor.get("for", ""))
        if rule is None:
            rule = {"name": descriptor.get("for", ""), "descriptors": []}
            atrules.append(rule)
        rule.setdefault("descriptors", []).append(descriptor)
    for rule in atrules:
        rule.setdefault("descriptors", [])

    roots = properties + atrules + selectors + values + descriptors
    scoped_values = _typed_dfns(
        soup, ("value", "function", "type", "selector"), base_url, scoped=True
    )

    for rule in _production_rules(soup):
        target = _find(roots, rule["name"])
        if target is not None:
            target["value"] = rule["value"]
            continue

        matching = [v for v in scoped_values if v["name"] == rule["name"]]
        for value in matching:
            value["value"] = rule["value"]
        if matching:
            continue

        if re.match(r"^<.*>$", rule["name"]):
            is_function = "()" in rule["name"]
            values.append(
                {
                    "name": rule["name"][1:-1] if is_function else rule["name"],
                    "type": "function" if is_function else "type",
                    "value": rule["value"],
                }
            )
        else:
            warnings.append({"msg": "Missing definition", **rule})

    for value in scoped_values:
        # Attach to the first construct listed in data-dfn-for that we know
        refs = [ref.strip() for ref in value.pop("for").split(",")]
        for ref in refs:
            parent = _find(roots, ref) or _find(scoped_values, ref)
            if parent is not None and parent is not value:
                parent.setdefault("values", []).append(value)
                break
        else:
            warnings.append({"msg": "Dangling value", **value, "for": ", ".join(refs)})

    for selector in selectors:
        _set_selector_value(selector)
        for sub in selector.get("values", []):
            _set_selector_value(sub)

    css: dict[str, Any] = {
        "atrules": atrules,
        "properties": properties,
        "selectors": selectors,
        "values": values,
    }
    if warnings:
        css["warnings"] = warnings
    return css
