"""Run only the resolve and crawl stages."""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from speccrawl.config.settings import get_settings, load_spec_config
from speccrawl.core.crawler import Crawler
from speccrawl.core.models import CrawlOptions
from speccrawl.core.report import append_results
from speccrawl.core.resolver import Resolver


async def main():
    """Resolve and crawl a list of specs."""
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Crawl specification documents")
    parser.add_argument(
        "--specs",
        nargs="+",
        help="URLs, shortnames or local HTML files to crawl (default: specs.yaml)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        help="Output directory (default: dated dir in data/runs)",
    )
    parser.add_argument(
        "--published-version",
        action="store_true",
        help="Crawl latest published versions instead of editor's drafts",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Crawl one spec at a time",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.crawl_timeout_seconds,
        help="Deadline for one spec, in seconds",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=settings.max_concurrency,
        help="Number of specs crawled in parallel",
    )
    parser.add_argument(
        "--fallback",
        type=Path,
        help="Previous crawl report to reuse extracts from when a spec fails",
    )

    args = parser.parse_args()
    specs = args.specs or [spec["url"] for spec in load_spec_config()["specs"]]

    print(f"Resolving {len(specs)} specs...")
    try:
        descriptors = await Resolver(settings=settings).resolve(specs)
    except ValueError as e:
        print(f"✗ {e}")
        sys.exit(1)

    print("Starting crawler...")
    options = CrawlOptions(
        max_concurrency=args.concurrency,
        timeout_seconds=args.timeout,
        published_version=args.published_version or settings.published_version,
        debug=args.debug,
        fallback=str(args.fallback) if args.fallback else None,
    )
    crawler = Crawler(options=options, output_dir=args.output_dir, settings=settings)
    report = await crawler.crawl(descriptors)

    report_path = crawler.output_dir / "crawl.json"
    report = append_results(report_path, report)

    print("\n✓ Crawling complete!")
    print(f"  Crawled: {report.stats.crawled}")
    print(f"  Errors: {report.stats.errors}")
    print(f"  Report: {report_path}")


if __name__ == "__main__":
    asyncio.run(main())
