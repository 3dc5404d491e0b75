"""URL canonicalization and series/version helpers."""

import re

_SERIES_PATTERN = re.compile(r"^(?P<series>.+?)-(?P<version>\d+(?:\.\d+)*)$")
_DATED_TR_PATTERN = re.compile(r"w3\.org/TR/[0-9]{4}/[A-Z]+-(.*)-[0-9]{8}/?")


def canonicalize_url(
    url: str,
    dated_to_latest: bool = False,
    equivalents: dict[str, list[str]] | None = None,
) -> str:
    """
    Return a canonical version of a spec URL.

    The canonical URL designates the same document: scheme forced to https,
    fragment dropped, index pages and subpages mapped to the main document,
    trailing slash enforced on W3C and GitHub Pages paths.

    Args:
        url: URL to canonicalize
        dated_to_latest: Map dated W3C TR URLs to their latest version
        equivalents: Optional mapping from canonical URL to equivalent URLs;
            the first equivalent wins

    Returns:
        Canonical URL
    """
    canon = re.sub(r"^http:", "https:", url).split("#")[0]
    for page in ("index.html", "Overview.html", "cover.html"):
        canon = canon.replace(page, "")
    canon = re.sub(r"spec\.whatwg\.org/.*", "spec.whatwg.org/", canon)
    canon = re.sub(r"w3\.org/TR/((?:[^/]+/)+)[^/]+\.[^/]+$", r"w3.org/TR/\1", canon)
    canon = re.sub(r"w3\.org/TR/([^/]+)$", r"w3.org/TR/\1/", canon)
    canon = re.sub(r"w3c\.github\.io/([^/]+)$", r"w3c.github.io/\1/", canon)

    if dated_to_latest:
        canon = _DATED_TR_PATTERN.sub(r"w3.org/TR/\1/", canon)

    if equivalents and equivalents.get(canon):
        return equivalents[canon][0]
    return canon


def sanitize_shortname(value: str) -> str:
    """Turn an arbitrary URL or path into a shortname-like token."""
    return re.sub(r"[:/\\.]", "", value)


def split_series(shortname: str) -> tuple[str, str | None]:
    """
    Split a shortname into its series shortname and version.

    Examples:
        >>> split_series("css-grid-2")
        ('css-grid', '2')
        >>> split_series("html")
        ('html', None)
    """
    match = _SERIES_PATTERN.match(shortname)
    if not match:
        return shortname, None
    return match.group("series"), match.group("version")


def version_key(version: str | None) -> tuple[int, ...]:
    """
    Numeric sort key for a series version ("2" < "2.1" < "10").

    Missing or non-numeric versions sort lowest.
    """
    if not version:
        return (0,)
    try:
        return tuple(int(part) for part in str(version).split("."))
    except ValueError:
        return (0,)
