"""
Duplicate detection service.

Two ways to look for duplicate vendors:
- find_duplicates: synchronous, bounded scan for on-demand review
- start_analysis: creates a tracked analysis and schedules the
  background job (analysis_job) over the full canonical vendor set

At most one analysis may be pending or processing. Admission checks for
an in-flight row inside an IMMEDIATE transaction, and a unique partial
index on the table rejects a second in-flight row even if another
process slips past the check.
"""
from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable

import structlog

from matching import DuplicateFinder

from ..config.constants import (
    ANALYSIS_MAX_THRESHOLD,
    ANALYSIS_MIN_THRESHOLD,
    AnalysisStatus,
    DEFAULT_LIMIT,
    DEFAULT_THRESHOLD,
    IN_FLIGHT_STATUSES,
    MAX_LIMIT,
    MIN_LIMIT,
    SCAN_MAX_THRESHOLD,
    SCAN_MIN_THRESHOLD,
)
from ..dependencies import immediate_transaction
from ..middleware.error_handler import ConflictError, InvalidParameterError, NotFoundError
from .analysis_job import dispatch_in_thread, mark_failed
from .base_service import BaseService
from .vendor_service import vendor_service

logger = structlog.get_logger("vendordedup.services.duplicates")

ANALYSIS_COLUMNS = """
    id, requested_by, status, threshold, result_limit, results,
    total_vendors, comparisons_made, duplicates_found, error_message,
    started_at, completed_at, created_at
"""


def _check_threshold(threshold: float, minimum: float, maximum: float) -> float:
    if threshold is None or not minimum <= threshold <= maximum:
        raise InvalidParameterError(
            f"The similarity threshold must be between {minimum} and {maximum}.",
            details={"threshold": threshold},
        )
    return float(threshold)


def _check_limit(limit: int, maximum: int | None) -> int:
    if limit is None or limit < MIN_LIMIT or (maximum is not None and limit > maximum):
        bound = f"between {MIN_LIMIT} and {maximum}" if maximum else f"at least {MIN_LIMIT}"
        raise InvalidParameterError(
            f"The result limit must be {bound}.",
            details={"limit": limit},
        )
    return int(limit)


class DuplicateService(BaseService):
    """Business logic for duplicate scans and analyses."""

    def __init__(self, finder: DuplicateFinder | None = None):
        self.finder = finder or DuplicateFinder()

    # --- Synchronous scan ---

    def find_duplicates(
        self,
        conn: sqlite3.Connection,
        *,
        threshold: float = DEFAULT_THRESHOLD,
        limit: int = DEFAULT_LIMIT,
        vendor_ids: list[str] | None = None,
    ) -> dict:
        """
        Score canonical vendors pairwise and return the best matches.

        Args:
            threshold: Minimum similarity, 0.0-1.0
            limit: Maximum pairs returned
            vendor_ids: Optional working set to restrict the scan to

        Returns:
            {"data": [pair, ...], "meta": {...}}
        """
        threshold = _check_threshold(threshold, SCAN_MIN_THRESHOLD, SCAN_MAX_THRESHOLD)
        limit = _check_limit(limit, maximum=None)

        vendors = vendor_service.load_canonical_vendors(conn, vendor_ids)
        result = self.finder.scan(vendors, threshold=threshold, limit=limit)

        logger.info(
            "duplicate_scan_completed",
            total_vendors=result.total_vendors,
            comparisons=result.comparisons,
            returned=len(result.pairs),
        )
        return {
            "data": [pair.to_dict() for pair in result.pairs],
            "meta": {
                "total_vendors": result.total_vendors,
                "comparisons_made": result.comparisons,
                "potential_duplicates_count": len(result.pairs),
                "threshold": threshold,
                "limit": limit,
            },
        }

    # --- Background analyses ---

    def start_analysis(
        self,
        conn: sqlite3.Connection,
        *,
        requested_by: str,
        threshold: float = DEFAULT_THRESHOLD,
        limit: int = DEFAULT_LIMIT,
        schedule: Callable[[str], object] | None = None,
    ) -> dict:
        """
        Create a pending analysis and schedule its job.

        Raises:
            InvalidParameterError: threshold outside 0.1-1.0 or limit outside 1-500
            ConflictError: another analysis is pending or processing
        """
        threshold = _check_threshold(threshold, ANALYSIS_MIN_THRESHOLD, ANALYSIS_MAX_THRESHOLD)
        limit = _check_limit(limit, maximum=MAX_LIMIT)
        schedule = schedule or dispatch_in_thread

        analysis_id = str(uuid.uuid4())
        try:
            with immediate_transaction(conn):
                in_flight = self._find_in_flight(conn)
                if in_flight is not None:
                    raise self._conflict(in_flight)
                self._execute_write(
                    conn,
                    """
                    INSERT INTO vendor_duplicate_analyses
                        (id, requested_by, status, threshold, result_limit, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        analysis_id,
                        requested_by,
                        AnalysisStatus.PENDING.value,
                        threshold,
                        limit,
                        datetime.now(timezone.utc).isoformat(),
                    ),
                )
        except sqlite3.IntegrityError:
            # Lost the race against another process; the unique index caught it
            in_flight = self._find_in_flight(conn)
            if in_flight is None:
                raise
            raise self._conflict(in_flight)

        logger.info(
            "duplicate_analysis_requested",
            analysis_id=analysis_id,
            requested_by=requested_by,
            threshold=threshold,
            limit=limit,
        )

        try:
            schedule(analysis_id)
        except Exception as exc:
            logger.error("duplicate_analysis_schedule_failed", analysis_id=analysis_id, error=str(exc))
            mark_failed(conn, analysis_id, f"Could not schedule analysis: {exc}")
            raise

        return self.get_analysis(conn, analysis_id)

    def get_analysis(self, conn: sqlite3.Connection, analysis_id: str) -> dict:
        row = self._execute_one(
            conn,
            f"SELECT {ANALYSIS_COLUMNS} FROM vendor_duplicate_analyses WHERE id = ?",
            (analysis_id,),
        )
        if row is None:
            raise NotFoundError(
                f"Analysis {analysis_id} not found",
                details={"analysis_id": analysis_id},
            )
        return self.map_analysis_row(row)

    def get_latest_analysis(self, conn: sqlite3.Connection) -> dict:
        row = self._execute_one(
            conn,
            f"""
            SELECT {ANALYSIS_COLUMNS} FROM vendor_duplicate_analyses
            ORDER BY created_at DESC, rowid DESC
            LIMIT 1
            """,
        )
        if row is None:
            raise NotFoundError("No analysis found.")
        return self.map_analysis_row(row)

    def list_analyses(self, conn: sqlite3.Connection, limit: int = 20) -> list[dict]:
        """Most recent analyses first, without their result payloads."""
        rows = self._execute_many(
            conn,
            f"""
            SELECT {ANALYSIS_COLUMNS} FROM vendor_duplicate_analyses
            ORDER BY created_at DESC, rowid DESC
            LIMIT ?
            """,
            (max(1, min(limit, 100)),),
        )
        return [self.map_analysis_row(row, include_results=False) for row in rows]

    def fail_stale_analyses(self, conn: sqlite3.Connection, older_than_minutes: int) -> list[str]:
        """
        Fail pending/processing analyses with no progress since the cutoff.

        A processing analysis counts from when its job started, a pending
        one from when it was requested.

        For analyses whose worker died (process restart, lost thread) and
        that would otherwise block new analyses forever.

        Returns:
            Ids of the analyses moved to failed
        """
        cutoff = datetime.now(timezone.utc) - timedelta(minutes=older_than_minutes)
        rows = self._execute_many(
            conn,
            f"""
            SELECT id FROM vendor_duplicate_analyses
            WHERE status IN ({",".join("?" * len(IN_FLIGHT_STATUSES))})
              AND COALESCE(started_at, created_at) < ?
            """,
            (*IN_FLIGHT_STATUSES, cutoff.isoformat()),
        )

        failed = []
        message = f"Marked as failed: no progress for more than {older_than_minutes} minutes."
        for row in rows:
            if mark_failed(conn, row["id"], message):
                failed.append(row["id"])

        if failed:
            logger.warning("stale_analyses_failed", analysis_ids=failed, older_than_minutes=older_than_minutes)
        return failed

    def _find_in_flight(self, conn: sqlite3.Connection) -> sqlite3.Row | None:
        return self._execute_one(
            conn,
            f"""
            SELECT id, status FROM vendor_duplicate_analyses
            WHERE status IN ({",".join("?" * len(IN_FLIGHT_STATUSES))})
            ORDER BY created_at
            LIMIT 1
            """,
            IN_FLIGHT_STATUSES,
        )

    @staticmethod
    def _conflict(in_flight: sqlite3.Row) -> ConflictError:
        logger.info("duplicate_analysis_rejected", in_flight_analysis_id=in_flight["id"])
        return ConflictError(
            "An analysis is already in progress.",
            details={"analysis_id": in_flight["id"], "status": in_flight["status"]},
        )

    @staticmethod
    def map_analysis_row(row: sqlite3.Row, include_results: bool = True) -> dict:
        """Map an analysis row to API response dict."""
        data = dict(row)
        data["limit"] = data.pop("result_limit")
        results = data.pop("results")
        if include_results:
            data["results"] = json.loads(results) if results else None
        return data


# Singleton instance for router use
duplicate_service = DuplicateService()
