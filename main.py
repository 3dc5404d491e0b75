"""Main pipeline script: Resolve, Crawl, and Consolidate spec data.

Just run: uv run python main.py
"""

import asyncio
import os
import sys
from contextlib import contextmanager

from speccrawl.config.settings import load_spec_config
from speccrawl.core.consolidator import consolidate
from speccrawl.core.crawler import Crawler
from speccrawl.core.report import append_results, save_dataset
from speccrawl.core.resolver import Resolver


@contextmanager
def suppress_stderr():
    """Temporarily suppress stderr to hide noisy browser warnings."""
    devnull = open(os.devnull, "w")
    old_stderr = sys.stderr
    sys.stderr = devnull
    try:
        yield
    finally:
        sys.stderr = old_stderr
        devnull.close()


async def main():
    """Resolve the known specs, crawl them, and merge their CSS definitions."""
    specs = [spec["url"] for spec in load_spec_config()["specs"]]

    print("=" * 80)
    print("speccrawl - Spec Crawl Pipeline")
    print("=" * 80)
    print("\nThis will:")
    print(f"  1. Resolve {len(specs)} specs against the W3C API")
    print("  2. Crawl each spec in its own process")
    print("  3. Merge CSS definitions into one dataset")
    print("=" * 80)

    # Step 1: Resolve
    print("\n[1/3] RESOLVING - Looking up spec versions...")
    print("-" * 80)
    descriptors = await Resolver().resolve(specs)
    degraded = sum(1 for d in descriptors if d.resolution_error)

    print("\n✓ Resolution complete!")
    print(f"  • Specs: {len(descriptors)}")
    print(f"  • Registry errors: {degraded}")

    # Step 2: Crawl
    print("\n[2/3] CRAWLING - Extracting spec data...")
    print("-" * 80)
    crawler = Crawler()
    with suppress_stderr():
        report = await crawler.crawl(descriptors)

    report_path = crawler.output_dir / "crawl.json"
    report = append_results(report_path, report)

    print("\n✓ Crawling complete!")
    print(f"  • Crawled: {report.stats.crawled}")
    print(f"  • Errors: {report.stats.errors}")

    # Step 3: Consolidate
    print("\n[3/3] CONSOLIDATING - Merging CSS definitions...")
    print("-" * 80)
    dataset = consolidate(report.results)
    dataset_path = crawler.output_dir / "css.json"
    save_dataset(dataset_path, dataset)

    print("\n✓ Consolidation complete!")
    for category, entries in dataset.items():
        print(f"  • {category}: {len(entries)}")

    # Final summary
    print("\n" + "=" * 80)
    print("PIPELINE COMPLETE!")
    print("=" * 80)
    print(f"\nOutput directory: {crawler.output_dir}")
    print(f"Crawl report: {report_path}")
    print(f"CSS dataset: {dataset_path}")


if __name__ == "__main__":
    asyncio.run(main())
