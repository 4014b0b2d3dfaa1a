"""
Duplicate analysis worker.

Runs tracked duplicate analyses outside the API process:
- --analysis-id ID   run an existing pending analysis inline
- --start            create a new analysis and run it inline
- --fail-stale-minutes N
                     fail pending/processing analyses older than N minutes,
                     e.g. after the API process died mid-run

Usage:
    python -m scripts.run_duplicate_analysis --start [--threshold 0.6] [--limit 50]
    python -m scripts.run_duplicate_analysis --analysis-id <uuid>
    python -m scripts.run_duplicate_analysis --fail-stale-minutes 60
"""
import argparse
import logging
import sys

from api import dependencies
from api.config.constants import DEFAULT_LIMIT, DEFAULT_THRESHOLD, AnalysisStatus
from api.middleware.error_handler import DomainError
from api.schema import ensure_schema
from api.services.analysis_job import run_duplicate_analysis
from api.services.duplicate_service import duplicate_service

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

CLI_REQUESTER = "cli"


def _report(analysis_id: str) -> int:
    with dependencies.get_db() as conn:
        analysis = duplicate_service.get_analysis(conn, analysis_id)

    status = analysis["status"]
    if status == AnalysisStatus.COMPLETED.value:
        logger.info(
            f"Analysis {analysis_id} completed: {analysis['duplicates_found']} pairs "
            f"from {analysis['total_vendors']} vendors ({analysis['comparisons_made']:,} comparisons)"
        )
        for pair in analysis["results"] or []:
            print(
                f"  {pair['similarity']:.3f}  {pair['vendor_a']['company_name']}  <->  "
                f"{pair['vendor_b']['company_name']}  [{'; '.join(pair['match_reasons'])}]"
            )
        return 0

    logger.error(f"Analysis {analysis_id} is {status}: {analysis['error_message'] or 'no error recorded'}")
    return 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run or recover duplicate vendor analyses")
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--analysis-id", help="Run this pending analysis")
    mode.add_argument("--start", action="store_true", help="Create a new analysis and run it")
    mode.add_argument(
        "--fail-stale-minutes",
        type=int,
        metavar="N",
        help="Fail pending/processing analyses created more than N minutes ago",
    )
    parser.add_argument("--threshold", type=float, default=DEFAULT_THRESHOLD)
    parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT)
    args = parser.parse_args(argv)

    with dependencies.get_db() as conn:
        ensure_schema(conn)

        if args.fail_stale_minutes is not None:
            failed = duplicate_service.fail_stale_analyses(conn, args.fail_stale_minutes)
            logger.info(f"Marked {len(failed)} stale analyses as failed")
            for analysis_id in failed:
                print(f"  {analysis_id}")
            return 0

        analysis_id = args.analysis_id
        if args.start:
            try:
                # The job runs below, in this process
                analysis = duplicate_service.start_analysis(
                    conn,
                    requested_by=CLI_REQUESTER,
                    threshold=args.threshold,
                    limit=args.limit,
                    schedule=lambda _id: None,
                )
            except DomainError as e:
                logger.error(f"{e.error_code}: {e.message} {e.details or ''}")
                return 2
            analysis_id = analysis["id"]
            logger.info(f"Created analysis {analysis_id}")

    status = run_duplicate_analysis(analysis_id)
    if status is None:
        logger.warning(f"Analysis {analysis_id} was not pending; nothing to run")

    try:
        return _report(analysis_id)
    except DomainError as e:
        logger.error(e.message)
        return 2


if __name__ == "__main__":
    sys.exit(main())
