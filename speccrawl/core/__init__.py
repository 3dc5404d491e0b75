"""Core pipeline components."""

from speccrawl.core.consolidator import consolidate
from speccrawl.core.crawler import Crawler
from speccrawl.core.report import (
    ReportError,
    append_results,
    build_report,
    load_report,
    merge_reports,
    save_dataset,
    save_report,
)
from speccrawl.core.resolver import Resolver

__all__ = [
    "Crawler",
    "Resolver",
    "consolidate",
    "ReportError",
    "append_results",
    "build_report",
    "load_report",
    "merge_reports",
    "save_dataset",
    "save_report",
]
