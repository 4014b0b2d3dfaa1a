"""
Duplicate analysis job: background scan over all canonical vendors.

State machine (persisted in vendor_duplicate_analyses.status):

    pending -> processing -> completed
                          -> failed

Every transition is a conditional UPDATE on the expected current state,
so a terminal analysis is never modified and an analysis is never run
twice. Errors during the run are recorded on the analysis instead of
being raised; the requester only ever sees them through the record.
There is no retry and no timeout: a new analysis must be requested.
"""
from __future__ import annotations

import json
import sqlite3
import threading
import time
from datetime import datetime, timezone
from typing import Callable

import structlog

from matching import DuplicateFinder, ScanResult

from ..config.constants import AnalysisStatus
from ..dependencies import get_db
from ..middleware.error_handler import ExecutionError
from .vendor_service import vendor_service

logger = structlog.get_logger("vendordedup.jobs.duplicate_analysis")

MAX_ERROR_MESSAGE_LENGTH = 2000


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def mark_processing(conn: sqlite3.Connection, analysis_id: str) -> bool:
    """pending -> processing. False if the analysis was not pending."""
    cursor = conn.execute(
        """
        UPDATE vendor_duplicate_analyses
        SET status = ?, started_at = ?
        WHERE id = ? AND status = ?
        """,
        (AnalysisStatus.PROCESSING.value, _now(), analysis_id, AnalysisStatus.PENDING.value),
    )
    conn.commit()
    return cursor.rowcount == 1


def mark_completed(conn: sqlite3.Connection, analysis_id: str, result: ScanResult) -> bool:
    """processing -> completed, storing results and counters."""
    payload = json.dumps([pair.to_dict() for pair in result.pairs])
    cursor = conn.execute(
        """
        UPDATE vendor_duplicate_analyses
        SET status = ?, results = ?, total_vendors = ?, comparisons_made = ?,
            duplicates_found = ?, completed_at = ?
        WHERE id = ? AND status = ?
        """,
        (
            AnalysisStatus.COMPLETED.value,
            payload,
            result.total_vendors,
            result.comparisons,
            len(result.pairs),
            _now(),
            analysis_id,
            AnalysisStatus.PROCESSING.value,
        ),
    )
    conn.commit()
    return cursor.rowcount == 1


def mark_failed(conn: sqlite3.Connection, analysis_id: str, error_message: str) -> bool:
    """pending|processing -> failed, recording the error."""
    cursor = conn.execute(
        """
        UPDATE vendor_duplicate_analyses
        SET status = ?, error_message = ?, completed_at = ?
        WHERE id = ? AND status IN (?, ?)
        """,
        (
            AnalysisStatus.FAILED.value,
            error_message[:MAX_ERROR_MESSAGE_LENGTH],
            _now(),
            analysis_id,
            AnalysisStatus.PENDING.value,
            AnalysisStatus.PROCESSING.value,
        ),
    )
    conn.commit()
    return cursor.rowcount == 1


def describe_error(exc: BaseException) -> str:
    """Human-readable error text for the analysis record."""
    if isinstance(exc, ExecutionError):
        return exc.message
    if isinstance(exc, MemoryError):
        return "Ran out of memory while comparing vendors."
    text = str(exc).strip()
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


class DuplicateAnalysisJob:
    """Runs one analysis record from pending to a terminal state."""

    def __init__(
        self,
        analysis_id: str,
        finder: DuplicateFinder | None = None,
        connect: Callable = get_db,
    ):
        self.analysis_id = analysis_id
        self.finder = finder or DuplicateFinder()
        self.connect = connect
        self.log = logger.bind(analysis_id=analysis_id)

    def run(self) -> AnalysisStatus | None:
        """
        Execute the analysis.

        Returns:
            The terminal status reached, or None when the analysis was not
            pending (unknown id, already running, or already finished) or
            its failure could not be written.
        """
        try:
            with self.connect() as conn:
                return self._run(conn)
        except sqlite3.Error as exc:
            # No usable connection: the record cannot be updated either
            self.log.error("duplicate_analysis_db_unavailable", error=str(exc))
            return None

    def _run(self, conn: sqlite3.Connection) -> AnalysisStatus | None:
        if not mark_processing(conn, self.analysis_id):
            self.log.warning("duplicate_analysis_not_pending")
            return None

        self.log.info("duplicate_analysis_started")
        start_time = time.perf_counter()

        try:
            threshold, limit = self._load_parameters(conn)
            vendors = self._load_vendors(conn)
            result = self.finder.scan(vendors, threshold=threshold, limit=limit)
            completed = mark_completed(conn, self.analysis_id, result)
        except Exception as exc:
            message = describe_error(exc)
            self.log.error("duplicate_analysis_failed", error=message, exc_info=True)
            if self._record_failure(conn, message):
                return AnalysisStatus.FAILED
            return None

        if not completed:
            # Moved out of processing meanwhile (stale-analysis cleanup)
            self.log.warning("duplicate_analysis_completion_discarded")
            return None

        self.log.info(
            "duplicate_analysis_completed",
            total_vendors=result.total_vendors,
            comparisons_made=result.comparisons,
            duplicates_found=len(result.pairs),
            matches_above_threshold=result.matches_above_threshold,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 1),
        )
        return AnalysisStatus.COMPLETED

    def _load_parameters(self, conn: sqlite3.Connection) -> tuple[float, int]:
        row = conn.execute(
            "SELECT threshold, result_limit FROM vendor_duplicate_analyses WHERE id = ?",
            (self.analysis_id,),
        ).fetchone()
        if row is None:
            raise ExecutionError(f"Analysis {self.analysis_id} disappeared while running.")
        return float(row["threshold"]), int(row["result_limit"])

    def _load_vendors(self, conn: sqlite3.Connection):
        try:
            return vendor_service.load_canonical_vendors(conn)
        except sqlite3.Error as exc:
            raise ExecutionError(f"Failed to load vendors: {exc}") from exc

    def _record_failure(self, conn: sqlite3.Connection, message: str) -> bool:
        """
        Move the analysis to failed, on a fresh connection if the job's own
        connection cannot write any more.

        Returns:
            False when the analysis could not be moved (no longer
            processing, or the database is unreachable)
        """
        try:
            conn.rollback()
            return mark_failed(conn, self.analysis_id, message)
        except sqlite3.Error as exc:
            self.log.warning("duplicate_analysis_failure_retry", error=str(exc))

        try:
            with self.connect() as retry_conn:
                return mark_failed(retry_conn, self.analysis_id, message)
        except sqlite3.Error as exc:
            self.log.error("duplicate_analysis_failure_not_recorded", error=str(exc))
            return False


def run_duplicate_analysis(analysis_id: str) -> AnalysisStatus | None:
    """Entry point for schedulers (BackgroundTasks, threads, worker CLI)."""
    return DuplicateAnalysisJob(analysis_id).run()


def dispatch_in_thread(analysis_id: str) -> threading.Thread:
    """Default scheduler: run the job on a daemon thread."""
    thread = threading.Thread(
        target=run_duplicate_analysis,
        args=(analysis_id,),
        name=f"duplicate-analysis-{analysis_id[:8]}",
        daemon=True,
    )
    thread.start()
    return thread
