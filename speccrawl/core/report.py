"""Crawl report construction, merging and persistence."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from speccrawl.core.models import CrawlReport, CrawlStats, SpecDescriptor
from speccrawl.utils.logger import get_logger

logger = get_logger(__name__)


class ReportError(Exception):
    """A report file cannot be read or written at all."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _by_url(results: list[SpecDescriptor]) -> list[SpecDescriptor]:
    return sorted(results, key=lambda spec: spec.url)


def compute_stats(results: list[SpecDescriptor]) -> CrawlStats:
    """Count crawled specs and specs with an error."""
    return CrawlStats(
        crawled=len(results),
        errors=sum(1 for spec in results if spec.error),
    )


def build_report(
    results: list[SpecDescriptor],
    options: dict[str, Any] | None = None,
    title: str = "Spec crawl",
    description: str | None = None,
) -> CrawlReport:
    """
    Build a crawl report from crawl results.

    Args:
        results: Crawled descriptors, in any order
        options: Options of the run
        title: Report title
        description: Optional description

    Returns:
        Report with results sorted by URL and stats computed
    """
    results = _by_url(results)
    return CrawlReport(
        title=title,
        description=description,
        date=_now(),
        options=options or {},
        stats=compute_stats(results),
        results=results,
    )


def load_report(path: Path) -> CrawlReport | None:
    """
    Load a crawl report from disk.

    Args:
        path: Report file

    Returns:
        The report, or None if the file does not exist or holds malformed content

    Raises:
        ReportError: If the file exists but cannot be read
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        raise ReportError(f"Cannot read report {path}: {e}") from e

    try:
        return CrawlReport.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as e:
        logger.warning(f"Ignoring malformed report {path}: {e}")
        return None


def save_report(path: Path, report: CrawlReport) -> None:
    """
    Write a crawl report as JSON.

    Raises:
        ReportError: If the file cannot be written
    """
    _write_json(Path(path), report.to_json_dict())


def append_results(path: Path, report: CrawlReport) -> CrawlReport:
    """
    Append a report's results to the report stored at ``path``.

    Results are concatenated to the stored ones, re-sorted by URL and stats
    are recomputed. Missing or malformed stored content counts as empty.

    Args:
        path: Report file (created if needed)
        report: New report whose results get appended

    Returns:
        The combined report that was written

    Raises:
        ReportError: If the report file cannot be read or written
    """
    previous = load_report(path)
    results = list(report.results)
    title = report.title
    description = report.description
    if previous is not None:
        results = previous.results + results
        description = description or previous.description

    combined = build_report(results, report.options, title=title, description=description)
    save_report(path, combined)
    logger.info(
        f"Report written to {path} "
        f"({combined.stats.crawled} specs, {combined.stats.errors} errors)"
    )
    return combined


def _matches(ref: SpecDescriptor, new: SpecDescriptor, match_title: bool) -> bool:
    if ref.url == new.url:
        return True
    if ref.shortname and ref.shortname == new.shortname:
        return True
    if ref.latest and ref.latest == new.latest:
        return True
    if set(ref.versions) & set(new.versions):
        return True
    return bool(match_title and ref.title and ref.title == new.title)


def merge_reports(
    new: CrawlReport,
    ref: CrawlReport,
    match_title: bool = False,
) -> CrawlReport:
    """
    Merge a new crawl report into a reference one.

    Reference results describing the same spec as a new result (same URL,
    shortname, latest version, any shared version URL, or title when
    ``match_title`` is set) are replaced by the new result.

    Args:
        new: Report with fresh results
        ref: Reference report
        match_title: Also match specs by title

    Returns:
        Merged report
    """
    kept = [
        spec
        for spec in ref.results
        if not any(_matches(spec, fresh, match_title) for fresh in new.results)
    ]
    return build_report(
        kept + list(new.results),
        new.options or ref.options,
        title=new.title or ref.title,
        description=new.description or ref.description,
    )


def save_dataset(path: Path, dataset: dict[str, list[dict[str, Any]]]) -> None:
    """
    Write a consolidated dataset as JSON.

    Raises:
        ReportError: If the file cannot be written
    """
    _write_json(Path(path), dataset)


def _write_json(path: Path, data: Any) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
    except OSError as e:
        raise ReportError(f"Cannot write {path}: {e}") from e
