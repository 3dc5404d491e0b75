"""Merge the CSS definitions of a crawl report into one dataset.

Just run: uv run python scripts/consolidate.py
(Automatically finds the latest run if no report is given)
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from speccrawl.config.settings import get_settings
from speccrawl.core.consolidator import consolidate
from speccrawl.core.report import load_report, save_dataset


def find_latest_report() -> Path | None:
    """Find the crawl report of the most recent run directory."""
    data_dir = get_settings().data_dir

    if not data_dir.exists():
        return None

    # Run directories are named by date, so name order is run order
    run_dirs = sorted([d for d in data_dir.iterdir() if d.is_dir()], reverse=True)
    for run_dir in run_dirs:
        report_path = run_dir / "crawl.json"
        if report_path.exists():
            return report_path

    return None


def main():
    """Consolidate a crawl report."""
    parser = argparse.ArgumentParser(description="Merge CSS definitions of a crawl report")
    parser.add_argument(
        "--report",
        type=Path,
        help="Crawl report (default: crawl.json of the latest run)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Dataset file (default: css.json next to the report)",
    )

    args = parser.parse_args()

    report_path = args.report or find_latest_report()
    if report_path is None:
        print("✗ No crawl report found. Run scripts/crawl.py first.")
        sys.exit(1)

    report = load_report(report_path)
    if report is None:
        print(f"✗ No usable crawl report at {report_path}")
        sys.exit(1)

    print(f"Consolidating {len(report.results)} specs from {report_path}...")
    dataset = consolidate(report.results)

    output = args.output or report_path.parent / "css.json"
    save_dataset(output, dataset)

    print("\n✓ Consolidation complete!")
    for category, entries in dataset.items():
        print(f"  {category}: {len(entries)}")
    print(f"  Output: {output}")


if __name__ == "__main__":
    main()
