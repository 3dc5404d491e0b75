"""Consolidation of per-document CSS extracts into one merged dataset."""

import copy
import json
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from speccrawl.core.models import CSSExtract, SpecDescriptor
from speccrawl.utils.logger import get_logger
from speccrawl.utils.specs import split_series, version_key

logger = get_logger(__name__)

CATEGORIES = ("atrules", "functions", "properties", "selectors", "types")
VALUE_CATEGORIES = {"function": "functions", "type": "types"}

_DECLARATION_BLOCK = re.compile(r"\{\s*<declaration-(?:rule-)?list>\s*\}")
_ANGLE_WRAPPED = re.compile(r"^<([^>]+)>$")


@dataclass
class _Entry:
    """A grammar entry tagged with where it comes from."""

    category: str
    data: dict[str, Any]
    series: str
    version: tuple[int, ...]
    shortname: str
    scope: str | None = None
    descriptors: list["_Entry"] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.data["name"]

    @property
    def value(self) -> str | None:
        return self.data.get("value")

    def rank(self) -> tuple:
        """Sort key: most recent version wins, the rest only breaks ties."""
        return (
            self.version,
            self.series,
            self.shortname,
            self.data.get("href") or "",
            self.value or "",
            json.dumps(self.data, sort_keys=True),
        )


def consolidate(
    results: list[SpecDescriptor | dict[str, Any]],
) -> dict[str, list[dict[str, Any]]]:
    """
    Merge the CSS extracts of crawl results into one dataset.

    The merge never mutates its input, never raises on inconsistent
    definitions (they are logged), and does not depend on the order of
    ``results``.

    Args:
        results: Crawl results (descriptors or their camelCase dicts)

    Returns:
        Dict with ``atrules``, ``functions``, ``properties``, ``selectors``
        and ``types`` lists, each sorted by name then href
    """
    entries: list[_Entry] = []
    for result in results:
        entries.extend(_collect(result))

    groups: dict[tuple[str, str, str | None], list[_Entry]] = defaultdict(list)
    for entry in entries:
        groups[(entry.category, entry.name, entry.scope)].append(entry)

    merged: dict[str, list[_Entry]] = {category: [] for category in CATEGORIES}
    for key in sorted(groups, key=lambda k: (k[0], k[1], k[2] or "")):
        entry = _merge_group(groups[key])
        if entry is not None:
            merged[entry.category].append(entry)

    dataset = {}
    for category in CATEGORIES:
        _resolve_aliases(merged[category])
        records = _collapse_scopes(merged[category])
        records = [_normalize(record) for record in records]
        dataset[category] = sorted(records, key=_sort_key)

    logger.info(
        "Consolidated CSS: "
        + ", ".join(f"{len(dataset[category])} {category}" for category in CATEGORIES)
    )
    return dataset


def _spec_identity(
    result: SpecDescriptor | dict[str, Any],
) -> tuple[dict[str, Any], str, str, str | None]:
    if isinstance(result, SpecDescriptor):
        raw = result.to_json_dict()
    else:
        raw = result

    shortname = raw.get("shortname") or raw.get("url") or ""
    series = raw.get("seriesShortname") or (raw.get("series") or {}).get("shortname")
    version = raw.get("seriesVersion")
    if not series:
        series, derived = split_series(shortname)
        version = version or derived
    return raw, shortname, series, version


def _collect(result: SpecDescriptor | dict[str, Any]) -> list[_Entry]:
    """Entries of one result's CSS extract, nested functions and types flattened."""
    raw, shortname, series, version = _spec_identity(result)
    if not raw.get("css"):
        return []

    try:
        css = CSSExtract.model_validate(raw["css"])
    except ValidationError as e:
        logger.warning(f"Skipping malformed CSS extract of {shortname}: {e}")
        return []

    def make(category: str, data: dict[str, Any], scope: str | None = None) -> _Entry:
        return _Entry(category, data, series, version_key(version), shortname, scope)

    collected: list[_Entry] = []

    def flatten(container: dict[str, Any]) -> None:
        for nested in container.pop("values", None) or []:
            kind = nested.get("type")
            if kind == "function":
                collected.append(make("functions", nested, scope=container["name"]))
            elif kind == "type":
                collected.append(make("types", nested, scope=container["name"]))
            flatten(nested)

    for category in ("atrules", "properties", "selectors", "values"):
        for grammar_entry in getattr(css, category):
            data = grammar_entry.to_json_dict()
            if category == "values":
                target = VALUE_CATEGORIES.get(data.get("type"))
                if target is None:
                    logger.warning(
                        f"Skipping value {data['name']} of {shortname}: "
                        f"unexpected type {data.get('type')!r}"
                    )
                    continue
            else:
                target = category

            flatten(data)
            descriptors = []
            for descriptor in data.pop("descriptors", None) or []:
                flatten(descriptor)
                descriptors.append(make("descriptors", descriptor))
            if grammar_entry.descriptors is not None:
                data["descriptors"] = []

            # An entry scoped by its own "for" counts once per scope
            scopes = sorted(set(_as_list(data.pop("for", None)))) or [None]
            for scope in scopes:
                entry = make(target, copy.deepcopy(data), scope=scope)
                entry.descriptors = list(descriptors)
                collected.append(entry)

    return collected


def _merge_group(group: list[_Entry]) -> _Entry | None:
    """Pick the canonical definition of a (name, scope) group and merge the rest in."""
    candidates = [e for e in group if e.value]
    if not candidates:
        candidates = [e for e in group if not e.data.get("newValues")]
    if not candidates:
        first = group[0]
        logger.warning(
            f"Dropping {first.category} {first.name}: only extensions, no base definition"
        )
        return None

    best = max(candidates, key=_Entry.rank)
    if len({e.series for e in candidates if e.value}) > 1:
        logger.debug(
            f"{best.category} {best.name} defined in several series, "
            f"keeping the one from {best.shortname}"
        )

    data = copy.deepcopy(best.data)
    candidate_ids = {id(e) for e in candidates}
    fragments = sorted(
        {
            e.data["newValues"]
            for e in group
            if id(e) not in candidate_ids and e.data.get("newValues")
        }
    )
    if fragments:
        if data.get("value"):
            data["value"] = " | ".join([data["value"], *fragments])
        else:
            logger.warning(f"Ignoring extensions of {best.category} {best.name}: no base syntax")
    data.pop("newValues", None)

    merged = _Entry(best.category, data, best.series, best.version, best.shortname, best.scope)
    if any("descriptors" in e.data for e in group):
        data["descriptors"] = _merge_descriptors(group)
        data["value"] = _expand_declarations(data.get("value"), data["descriptors"])
        if data["value"] is None:
            del data["value"]
    return merged


def _merge_descriptors(group: list[_Entry]) -> list[dict[str, Any]]:
    descriptors = [d for entry in group for d in entry.descriptors]

    latest: dict[tuple[str, str], tuple[int, ...]] = {}
    for d in descriptors:
        key = (d.name, d.series)
        latest[key] = max(latest.get(key, d.version), d.version)

    kept: dict[tuple, dict[str, Any]] = {}
    for d in sorted(descriptors, key=_Entry.rank, reverse=True):
        if d.version != latest[(d.name, d.series)]:
            continue
        scope = d.data.get("for")
        key = (d.name, tuple(scope) if isinstance(scope, list) else scope, d.value)
        kept.setdefault(key, d.data)

    return sorted(
        kept.values(),
        key=lambda d: (
            d["name"],
            json.dumps(d.get("for")),
            d.get("value") or "",
            d.get("href") or "",
        ),
    )


def _expand_declarations(value: str | None, descriptors: list[dict[str, Any]]) -> str | None:
    """Replace a ``{ <declaration-list> }`` placeholder with the actual descriptors."""
    if not value or not _DECLARATION_BLOCK.search(value):
        return value

    parts = []
    for d in descriptors:
        if not d.get("value"):
            continue
        if d["name"].startswith("@"):
            parts.append(f"[ {d['value']} ]")
        else:
            parts.append(f"[ {d['name']}: [ {d['value']} ]; ]")
    if not parts:
        return value

    block = "{\n  " + " ||\n  ".join(parts) + "\n}"
    return _DECLARATION_BLOCK.sub(lambda _: block, value)


def _resolve_aliases(entries: list[_Entry]) -> None:
    targets: dict[str, list[_Entry]] = defaultdict(list)
    for entry in entries:
        if entry.scope is None and not entry.data.get("legacyAliasOf"):
            targets[entry.name].append(entry)

    for entry in entries:
        alias_of = entry.data.get("legacyAliasOf")
        if not alias_of or entry.value:
            continue

        found = sorted(
            (t for t in targets.get(alias_of, []) if t.value),
            key=lambda t: (t.data.get("href") or "", t.value),
        )
        if found:
            entry.data["value"] = found[0].value
        else:
            logger.warning(
                f"Legacy alias {entry.name} of {alias_of}: target not found, no syntax set"
            )


def _collapse_scopes(entries: list[_Entry]) -> list[dict[str, Any]]:
    """
    Turn scoped entries into records with a ``for`` list.

    Scoped entries that an unscoped entry of the same name already covers are
    dropped, copies of the same definition reached through several containers
    become one record, and any remaining entries that share name and syntax
    fold into the first one by href.
    """
    unscoped = [e for e in entries if e.scope is None]
    covered: dict[str, set[str | None]] = defaultdict(set)
    for e in unscoped:
        covered[e.name].add(e.value)

    scoped: dict[tuple, list[_Entry]] = defaultdict(list)
    for e in entries:
        if e.scope is None:
            continue
        if e.name in covered and (e.value is None or e.value in covered[e.name]):
            logger.debug(f"Dropping {e.category} {e.name} scoped to {e.scope}: defined unscoped")
            continue
        scoped[(e.name, e.data.get("href"), e.value)].append(e)

    records = [dict(e.data) for e in unscoped]
    for same in scoped.values():
        same.sort(key=lambda e: (e.scope, json.dumps(e.data, sort_keys=True)))
        record = dict(same[0].data)
        record["for"] = sorted({e.scope for e in same})
        records.append(record)

    by_syntax: dict[tuple, list[dict[str, Any]]] = defaultdict(list)
    for record in records:
        by_syntax[(record["name"], record.get("value"))].append(record)

    collapsed = []
    for same in by_syntax.values():
        same.sort(key=lambda r: (r.get("href") or "", json.dumps(r.get("for"))))
        first = same[0]
        if len(same) > 1:
            logger.debug(f"Folding {len(same)} definitions of {first['name']} with the same syntax")
            scopes = set()
            for record in same:
                scopes.update(_as_list(record.get("for")))
            if scopes:
                first = {**first, "for": sorted(scopes)}
        collapsed.append(first)
    return collapsed


def _as_list(value: str | list[str] | None) -> list[str]:
    if value is None:
        return []
    return [value] if isinstance(value, str) else list(value)


def _strip_angles(value: Any) -> Any:
    if isinstance(value, str):
        match = _ANGLE_WRAPPED.match(value)
        if match:
            return match.group(1)
    return value


def _normalize(record: dict[str, Any]) -> dict[str, Any]:
    """
    Output shape of a record.

    ``value`` becomes ``syntax`` (kept verbatim), the ``type`` of functions and
    types goes away, and strings wrapped in angle brackets lose them. List
    fields get the same treatment element by element; dict fields are left
    untouched.
    """
    normalized: dict[str, Any] = {}
    for key, value in record.items():
        if key == "value":
            # Grammar text stays verbatim, brackets included
            normalized["syntax"] = value
        elif key == "type" and value in ("function", "type"):
            continue
        elif isinstance(value, list):
            normalized[key] = [
                _normalize(item) if isinstance(item, dict) else _strip_angles(item)
                for item in value
            ]
        else:
            normalized[key] = _strip_angles(value)

    if isinstance(normalized.get("for"), list):
        normalized["for"] = sorted(set(normalized["for"]))
    return normalized


def _sort_key(record: dict[str, Any]) -> tuple:
    return (
        record["name"],
        record.get("href") or "",
        record.get("syntax") or "",
        json.dumps(record.get("for")),
    )
