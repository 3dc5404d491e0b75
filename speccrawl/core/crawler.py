"""Crawl orchestrator: runs extractions over a spec list in isolated processes."""

import asyncio
import multiprocessing
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from tqdm import tqdm

from speccrawl.config.settings import Settings, get_settings
from speccrawl.core.extractor import extract
from speccrawl.core.models import CrawlOptions, CrawlReport, CrawlStats, SpecDescriptor
from speccrawl.core.report import build_report, load_report
from speccrawl.core.worker import CrawlUnit, Extractor, UnitOutcome, run_isolated
from speccrawl.utils.logger import get_logger, log_event

UNKNOWN_TITLE = "[Could not be determined, see error]"

# Fields an extract may set on a descriptor
EXTRACT_FIELDS = ("title", "date", "links", "references", "idl", "css")


class Crawler:
    """
    Crawl orchestrator that extracts facts from each spec of a list.

    Workflow:
    1. Pick the URL to crawl for each descriptor (editor's draft or latest)
    2. Run the extractor for each descriptor in its own process, at most
       ``max_concurrency`` at a time, admitting the next descriptor as soon as
       one finishes
    3. Kill extractions that exceed the deadline and record them as failed
    4. Collect exactly one record per descriptor and sort records by URL
    5. Compute run statistics

    One failing document only turns its own record into an error.
    """

    def __init__(
        self,
        extractor: Extractor = extract,
        options: CrawlOptions | None = None,
        output_dir: Path | None = None,
        settings: Settings | None = None,
    ):
        """
        Initialize crawler.

        Args:
            extractor: Module-level callable run in each extraction process
            options: Crawl options (defaults from settings)
            output_dir: Run directory for logs (defaults to dated dir in data/runs)
            settings: Settings instance
        """
        self.settings = settings or get_settings()
        self.extractor = extractor
        self.options = options or CrawlOptions(
            max_concurrency=self.settings.max_concurrency,
            timeout_seconds=self.settings.crawl_timeout_seconds,
            published_version=self.settings.published_version,
        )

        if output_dir:
            self.output_dir = Path(output_dir)
        else:
            date_stamp = datetime.now().strftime("%Y_%m_%d")
            self.output_dir = self.settings.data_dir / date_stamp

        self.logs_dir = self.output_dir / "logs"
        self.logs_dir.mkdir(parents=True, exist_ok=True)

        log_file = self.logs_dir / "crawler.jsonl"
        self.logger = get_logger("crawler", log_file, level=self.settings.log_level.upper())

        self.context = multiprocessing.get_context(self.settings.start_method)
        self.stats = CrawlStats()
        self._fallback = self._load_fallback()

    @property
    def width(self) -> int:
        """Number of extractions allowed in flight."""
        if self.options.debug:
            return 1
        return max(1, self.options.max_concurrency)

    async def crawl(self, descriptors: list[SpecDescriptor]) -> CrawlReport:
        """
        Crawl all descriptors.

        Args:
            descriptors: Resolved descriptors (not modified)

        Returns:
            Report with one record per crawled descriptor, sorted by URL
        """
        todo = self._select(descriptors)
        total = len(todo)
        self.logger.info(
            f"Starting crawl of {total} specs "
            f"({self.width} in parallel, {self.options.timeout_seconds}s timeout)"
        )

        semaphore = asyncio.Semaphore(self.width)
        finished: asyncio.Queue[SpecDescriptor] = asyncio.Queue()
        loop = asyncio.get_running_loop()
        counter_width = len(str(total))

        with ThreadPoolExecutor(max_workers=self.width, thread_name_prefix="crawl-unit") as pool:

            async def crawl_one(idx: int, descriptor: SpecDescriptor) -> None:
                async with semaphore:
                    counter = f"{idx + 1:>{counter_width}}/{total}"
                    self.logger.info(f"{counter} - {descriptor.url} - crawling")

                    unit = CrawlUnit(self._payload(descriptor))
                    outcome = await loop.run_in_executor(
                        pool,
                        run_isolated,
                        unit,
                        self.extractor,
                        self.options.timeout_seconds,
                        self.context,
                    )

                    record = self._apply(descriptor, outcome)
                    await finished.put(record)
                    self._log_outcome(counter, record, outcome)

            # Tasks start in input order and the semaphore admits waiters FIFO
            tasks = [
                asyncio.create_task(crawl_one(idx, descriptor))
                for idx, descriptor in enumerate(todo)
            ]
            for coro in tqdm(asyncio.as_completed(tasks), total=total, desc="Crawling specs"):
                await coro

        results = []
        while not finished.empty():
            results.append(finished.get_nowait())

        report = build_report(results, self.options.to_json_dict())
        self.stats = report.stats
        self.logger.info(
            f"Crawl complete: {self.stats.crawled} specs, {self.stats.errors} errors"
        )
        return report

    def _select(self, descriptors: list[SpecDescriptor]) -> list[SpecDescriptor]:
        if not self.options.published_version:
            return list(descriptors)

        published = [d for d in descriptors if d.latest]
        skipped = len(descriptors) - len(published)
        if skipped:
            self.logger.info(f"Skipping {skipped} specs without a published version")
        return published

    def _payload(self, descriptor: SpecDescriptor) -> dict[str, Any]:
        if self.options.published_version:
            url = descriptor.latest
        else:
            url = descriptor.crawled_url or descriptor.ed_draft or descriptor.url
        return descriptor.model_copy(update={"crawled_url": url}).to_json_dict()

    def _apply(self, descriptor: SpecDescriptor, outcome: UnitOutcome) -> SpecDescriptor:
        """Build the crawl record of a descriptor from its unit outcome."""
        payload = self._payload(descriptor)
        record = descriptor.model_copy(deep=True)
        record.crawled_url = payload["crawledUrl"]

        error = outcome.error
        if outcome.result is not None:
            try:
                extracted = SpecDescriptor.model_validate(
                    {
                        "url": descriptor.url,
                        **{k: outcome.result[k] for k in EXTRACT_FIELDS if k in outcome.result},
                    }
                )
            except ValidationError as e:
                error = f"Invalid extract: {e}"
            else:
                for field in EXTRACT_FIELDS:
                    value = getattr(extracted, field)
                    if value is not None:
                        setattr(record, field, value)
                error = outcome.result.get("error") or None

        if error:
            record.error = str(error)
            record.title = record.title or UNKNOWN_TITLE
            record = self._with_fallback(record)

        return record

    def _load_fallback(self) -> dict[str, SpecDescriptor]:
        if not self.options.fallback:
            return {}

        report = load_report(Path(self.options.fallback))
        if report is None:
            self.logger.warning(f"No usable fallback report at {self.options.fallback}")
            return {}
        return {spec.url: spec for spec in report.results}

    def _with_fallback(self, record: SpecDescriptor) -> SpecDescriptor:
        """Reuse the previous extract of an errored spec, keeping the error."""
        previous = self._fallback.get(record.url)
        if previous is None:
            return record

        update = {
            field: getattr(previous, field)
            for field in EXTRACT_FIELDS
            if getattr(previous, field) is not None
        }
        self.logger.info(f"Using fallback extract for {record.url}")
        return record.model_copy(update=update, deep=True)

    def _log_outcome(self, counter: str, record: SpecDescriptor, outcome: UnitOutcome) -> None:
        if outcome.timed_out:
            event, message = "unit_timeout", f"{counter} - {record.url} - timed out"
        elif record.error:
            event, message = "unit_error", f"{counter} - {record.url} - failed: {record.error}"
        else:
            event, message = "unit_done", f"{counter} - {record.url} - done"

        log_event(self.logger, event, message, url=record.url, error=record.error)
