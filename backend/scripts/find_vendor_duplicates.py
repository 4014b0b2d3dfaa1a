"""
Vendor duplicate scan.

Scores every pair of canonical vendors and prints the best matches,
optionally writing a Markdown report for manual review.
Nothing is linked: merge from the report with the mark-duplicate endpoint.

Usage:
    python -m scripts.find_vendor_duplicates [--threshold 0.6] [--limit 50] [--report PATH]
"""
import argparse
import logging
import sqlite3
import sys
from datetime import datetime
from pathlib import Path

from api import dependencies
from api.config.constants import DEFAULT_LIMIT, DEFAULT_THRESHOLD
from api.schema import table_exists
from api.services.vendor_service import vendor_service
from matching import DuplicateFinder, ScanResult

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")


def _cell(value, width: int = 35) -> str:
    text = (value or "").replace("|", "/")
    return text[:width] + ("..." if len(text) > width else "")


def generate_report(result: ScanResult, threshold: float, output_path: Path | None = None) -> str:
    """Markdown report of a scan, best pairs first."""
    lines = []
    lines.append("# Vendor Duplicate Scan Report")
    lines.append(f"\n**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    lines.append("")

    lines.append("## Summary")
    lines.append("")
    lines.append("| Canonical Vendors | Comparisons | Pairs >= Threshold | Pairs Listed | Threshold |")
    lines.append("|-------------------|-------------|--------------------|--------------|-----------|")
    lines.append(
        f"| {result.total_vendors:,} | {result.comparisons:,} | "
        f"{result.matches_above_threshold:,} | {len(result.pairs):,} | {threshold:.2f} |"
    )
    lines.append("")

    if result.pairs:
        lines.append("## Potential Duplicates")
        lines.append("")
        lines.append("| Similarity | Vendor A | Vendor B | Reasons |")
        lines.append("|------------|----------|----------|---------|")
        for pair in result.pairs:
            lines.append(
                f"| {pair.similarity:.1%} | {_cell(pair.vendor_a.company_name)} | "
                f"{_cell(pair.vendor_b.company_name)} | {'; '.join(pair.match_reasons)} |"
            )
        lines.append("")

        lines.append("## Vendor IDs")
        lines.append("")
        for pair in result.pairs:
            lines.append(f"- `{pair.vendor_a.id}` / `{pair.vendor_b.id}` ({pair.similarity:.3f})")
        lines.append("")
    else:
        lines.append("No pairs at or above the threshold.")
        lines.append("")

    report = "\n".join(lines)

    if output_path:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(report)
        logger.info(f"Report saved to: {output_path}")

    return report


def run_scan(conn: sqlite3.Connection, threshold: float, limit: int) -> ScanResult:
    vendors = vendor_service.load_canonical_vendors(conn)
    logger.info(f"Loaded {len(vendors):,} canonical vendors")
    return DuplicateFinder().scan(vendors, threshold=threshold, limit=limit)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Find likely duplicate vendors")
    parser.add_argument(
        "--threshold",
        type=float,
        default=DEFAULT_THRESHOLD,
        help=f"Minimum similarity, 0-1 (default: {DEFAULT_THRESHOLD})",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_LIMIT,
        help=f"Maximum pairs listed (default: {DEFAULT_LIMIT})",
    )
    parser.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Write a Markdown report to this path",
    )
    args = parser.parse_args(argv)

    if not dependencies.verify_database_exists():
        logger.error(f"Database not found: {dependencies.DB_PATH}")
        return 1

    with dependencies.get_db() as conn:
        if not table_exists(conn, "vendors"):
            logger.error("Table 'vendors' does not exist; start the API or load vendors first")
            return 1
        try:
            result = run_scan(conn, args.threshold, args.limit)
        except ValueError as e:
            logger.error(str(e))
            return 2

    print("=" * 60)
    print("Vendor duplicate scan")
    print("=" * 60)
    print(f"  Canonical vendors:    {result.total_vendors:>8,}")
    print(f"  Comparisons:          {result.comparisons:>8,}")
    print(f"  Pairs >= {args.threshold:.2f}:        {result.matches_above_threshold:>8,}")
    print(f"  Pairs listed:         {len(result.pairs):>8,}")
    print()
    for pair in result.pairs[:20]:
        print(f"  {pair.similarity:.3f}  {_cell(pair.vendor_a.company_name, 30):<33} {_cell(pair.vendor_b.company_name, 30)}")

    if args.report:
        generate_report(result, args.threshold, args.report)

    return 0


if __name__ == "__main__":
    sys.exit(main())
