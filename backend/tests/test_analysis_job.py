"""
Tests for duplicate analyses: admission, the job state machine and recovery.
"""
import sqlite3
import time
from contextlib import contextmanager
from datetime import datetime, timezone

import pytest

from api import dependencies
from api.config.constants import AnalysisStatus
from api.middleware.error_handler import ConflictError, InvalidParameterError, NotFoundError
from api.services.analysis_job import (
    DuplicateAnalysisJob,
    mark_completed,
    mark_failed,
    mark_processing,
)
from api.services.duplicate_service import duplicate_service
from matching import ScanResult


class FailingFinder:
    def scan(self, vendors, threshold, limit):
        raise RuntimeError("boom")


class FailingWrites:
    """Connection wrapper whose UPDATEs containing one of the fragments raise."""

    def __init__(self, conn, *fragments):
        self._conn = conn
        self._fragments = fragments

    def execute(self, sql, params=()):
        if any(fragment in sql for fragment in self._fragments):
            raise sqlite3.OperationalError("database is locked")
        return self._conn.execute(sql, params)

    def __getattr__(self, name):
        return getattr(self._conn, name)


def connect_failing_once(*fragments):
    """Connection factory: the first connection fails those writes, later ones are real."""
    calls = []

    @contextmanager
    def _connect():
        calls.append(1)
        with dependencies.get_db() as conn:
            yield FailingWrites(conn, *fragments) if len(calls) == 1 else conn

    return _connect


@pytest.fixture
def scheduled():
    """Analysis ids handed to the scheduler; nothing runs until the test says so."""
    return []


@pytest.fixture
def start(conn, scheduled):
    def _start(**kwargs):
        kwargs.setdefault("requested_by", "reviewer@example.com")
        return duplicate_service.start_analysis(conn, schedule=scheduled.append, **kwargs)
    return _start


@pytest.fixture
def abc_vendors(make_vendor):
    return [
        make_vendor("ABC Plumbing LLC", phone="(555) 123-4567"),
        make_vendor("ABC Plumbing", phone="555-123-4567"),
        make_vendor("Zeta Roofing", phone="555-999-0000"),
    ]


def status_of(conn, analysis_id):
    return conn.execute(
        "SELECT status FROM vendor_duplicate_analyses WHERE id = ?", (analysis_id,)
    ).fetchone()[0]


class TestStartAnalysis:
    """Admission of new analyses."""

    def test_creates_pending_analysis_and_schedules_it(self, start, scheduled):
        analysis = start(threshold=0.7, limit=10)

        assert analysis["status"] == "pending"
        assert analysis["threshold"] == 0.7
        assert analysis["limit"] == 10
        assert analysis["requested_by"] == "reviewer@example.com"
        assert analysis["results"] is None
        assert scheduled == [analysis["id"]]

    def test_second_request_conflicts_while_pending(self, start):
        first = start()

        with pytest.raises(ConflictError) as exc_info:
            start()

        assert exc_info.value.status_code == 409
        assert exc_info.value.details == {"analysis_id": first["id"], "status": "pending"}

    def test_conflicts_while_processing(self, conn, start):
        first = start()
        mark_processing(conn, first["id"])

        with pytest.raises(ConflictError):
            start()

    def test_only_one_in_flight_row(self, conn, start):
        start()
        with pytest.raises(ConflictError):
            start()

        count = conn.execute(
            "SELECT COUNT(*) FROM vendor_duplicate_analyses WHERE status IN ('pending', 'processing')"
        ).fetchone()[0]
        assert count == 1

    def test_unique_index_blocks_second_in_flight_row(self, conn, start):
        """Even a write that skips the admission check is rejected."""
        start()
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute(
                "INSERT INTO vendor_duplicate_analyses (id, requested_by, status, created_at) "
                "VALUES ('x', 'someone', 'processing', '2030-01-01T00:00:00+00:00')"
            )
        conn.rollback()

    def test_new_analysis_allowed_after_terminal(self, conn, start):
        first = start()
        mark_failed(conn, first["id"], "stopped")

        second = start()

        assert second["id"] != first["id"]

    @pytest.mark.parametrize("threshold", [0.0, 0.09, 1.1])
    def test_threshold_out_of_range(self, start, scheduled, threshold):
        with pytest.raises(InvalidParameterError):
            start(threshold=threshold)
        assert scheduled == []

    @pytest.mark.parametrize("limit", [0, 501])
    def test_limit_out_of_range(self, start, limit):
        with pytest.raises(InvalidParameterError):
            start(limit=limit)

    def test_scheduling_failure_fails_the_analysis(self, conn):
        def broken_scheduler(analysis_id):
            raise RuntimeError("queue down")

        with pytest.raises(RuntimeError):
            duplicate_service.start_analysis(conn, requested_by="x", schedule=broken_scheduler)

        latest = duplicate_service.get_latest_analysis(conn)
        assert latest["status"] == "failed"
        assert "queue down" in latest["error_message"]

    def test_default_scheduler_runs_job_on_thread(self, conn, abc_vendors):
        analysis = duplicate_service.start_analysis(conn, requested_by="x", threshold=0.7)

        deadline = time.monotonic() + 10
        while status_of(conn, analysis["id"]) in ("pending", "processing"):
            assert time.monotonic() < deadline
            time.sleep(0.05)

        stored = duplicate_service.get_analysis(conn, analysis["id"])
        assert stored["status"] == "completed"
        assert stored["duplicates_found"] == 1


class TestAnalysisJob:
    """pending -> processing -> completed | failed."""

    def test_completes_with_results(self, conn, start, abc_vendors):
        analysis = start(threshold=0.7, limit=10)

        status = DuplicateAnalysisJob(analysis["id"]).run()

        assert status == AnalysisStatus.COMPLETED
        stored = duplicate_service.get_analysis(conn, analysis["id"])
        assert stored["status"] == "completed"
        assert stored["total_vendors"] == 3
        assert stored["comparisons_made"] == 3
        assert stored["duplicates_found"] == 1
        assert stored["started_at"] is not None
        assert stored["completed_at"] is not None
        assert stored["error_message"] is None

        pair = stored["results"][0]
        assert pair["similarity"] == 0.75
        assert {pair["vendor_a"]["id"], pair["vendor_b"]["id"]} == set(abc_vendors[:2])
        assert "Same phone number" in pair["match_reasons"]

    def test_only_canonical_vendors_scanned(self, conn, start, make_vendor, abc_vendors):
        make_vendor("ABC Plumbing Inc", canonical_vendor_id=abc_vendors[0], phone="5551234567")
        analysis = start(threshold=0.7, limit=10)

        DuplicateAnalysisJob(analysis["id"]).run()

        stored = duplicate_service.get_analysis(conn, analysis["id"])
        assert stored["total_vendors"] == 3
        assert stored["duplicates_found"] == 1

    def test_no_vendors_completes_empty(self, conn, start):
        analysis = start()

        assert DuplicateAnalysisJob(analysis["id"]).run() == AnalysisStatus.COMPLETED

        stored = duplicate_service.get_analysis(conn, analysis["id"])
        assert stored["results"] == []
        assert stored["total_vendors"] == 0
        assert stored["comparisons_made"] == 0

    def test_error_recorded_not_raised(self, conn, start, abc_vendors):
        analysis = start()

        status = DuplicateAnalysisJob(analysis["id"], finder=FailingFinder()).run()

        assert status == AnalysisStatus.FAILED
        stored = duplicate_service.get_analysis(conn, analysis["id"])
        assert stored["status"] == "failed"
        assert stored["error_message"] == "RuntimeError: boom"
        assert stored["completed_at"] is not None
        assert stored["results"] is None

    def test_completion_write_error_fails_the_analysis(self, conn, start, abc_vendors):
        analysis = start(threshold=0.7)
        job = DuplicateAnalysisJob(analysis["id"], connect=connect_failing_once("results = ?"))

        assert job.run() == AnalysisStatus.FAILED

        stored = duplicate_service.get_analysis(conn, analysis["id"])
        assert stored["status"] == "failed"
        assert stored["error_message"] == "OperationalError: database is locked"
        assert stored["completed_at"] is not None
        assert stored["results"] is None

    def test_failure_recorded_on_fresh_connection(self, conn, start, abc_vendors):
        analysis = start(threshold=0.7)
        job = DuplicateAnalysisJob(
            analysis["id"],
            connect=connect_failing_once("results = ?", "error_message = ?"),
        )

        assert job.run() == AnalysisStatus.FAILED
        assert status_of(conn, analysis["id"]) == "failed"

        # The single in-flight slot is free again
        assert start()["status"] == "pending"

    def test_terminal_analysis_not_rerun(self, conn, start):
        analysis = start()
        DuplicateAnalysisJob(analysis["id"]).run()
        completed_at = duplicate_service.get_analysis(conn, analysis["id"])["completed_at"]

        assert DuplicateAnalysisJob(analysis["id"]).run() is None
        assert duplicate_service.get_analysis(conn, analysis["id"])["completed_at"] == completed_at

    def test_failed_analysis_not_rerun(self, conn, start):
        analysis = start()
        DuplicateAnalysisJob(analysis["id"], finder=FailingFinder()).run()

        assert DuplicateAnalysisJob(analysis["id"]).run() is None
        assert status_of(conn, analysis["id"]) == "failed"

    def test_unknown_analysis(self, db_path):
        assert DuplicateAnalysisJob("missing").run() is None


class TestTransitions:
    """Conditional status updates."""

    def test_completed_requires_processing(self, conn, start):
        analysis = start()
        empty = ScanResult(pairs=[], total_vendors=0, comparisons=0, matches_above_threshold=0)

        assert mark_completed(conn, analysis["id"], empty) is False
        assert status_of(conn, analysis["id"]) == "pending"

        assert mark_processing(conn, analysis["id"]) is True
        assert mark_processing(conn, analysis["id"]) is False
        assert mark_completed(conn, analysis["id"], empty) is True

    def test_terminal_states_are_final(self, conn, start):
        analysis = start()
        mark_processing(conn, analysis["id"])
        mark_failed(conn, analysis["id"], "first")

        assert mark_failed(conn, analysis["id"], "second") is False
        assert duplicate_service.get_analysis(conn, analysis["id"])["error_message"] == "first"


class TestAnalysisQueries:
    """get, latest, list and stale recovery."""

    def test_get_unknown(self, conn):
        with pytest.raises(NotFoundError):
            duplicate_service.get_analysis(conn, "missing")

    def test_latest_when_none(self, conn):
        with pytest.raises(NotFoundError):
            duplicate_service.get_latest_analysis(conn)

    def test_latest_and_list_newest_first(self, conn, start):
        first = start()
        mark_failed(conn, first["id"], "stopped")
        second = start()

        assert duplicate_service.get_latest_analysis(conn)["id"] == second["id"]

        listed = duplicate_service.list_analyses(conn, limit=10)
        assert [a["id"] for a in listed] == [second["id"], first["id"]]
        assert "results" not in listed[0]

    def test_fail_stale_analyses(self, conn):
        conn.execute(
            "INSERT INTO vendor_duplicate_analyses (id, requested_by, status, created_at) "
            "VALUES ('old', 'someone', 'processing', '2000-01-01T00:00:00+00:00')"
        )
        conn.commit()

        assert duplicate_service.fail_stale_analyses(conn, older_than_minutes=60) == ["old"]

        stored = duplicate_service.get_analysis(conn, "old")
        assert stored["status"] == "failed"
        assert "60 minutes" in stored["error_message"]

    def test_recently_started_analysis_not_failed(self, conn):
        conn.execute(
            "INSERT INTO vendor_duplicate_analyses (id, requested_by, status, created_at, started_at) "
            "VALUES ('busy', 'someone', 'processing', '2000-01-01T00:00:00+00:00', ?)",
            (datetime.now(timezone.utc).isoformat(),),
        )
        conn.commit()

        assert duplicate_service.fail_stale_analyses(conn, older_than_minutes=60) == []
        assert status_of(conn, "busy") == "processing"

    def test_fresh_analyses_not_failed(self, conn, start):
        analysis = start()

        assert duplicate_service.fail_stale_analyses(conn, older_than_minutes=60) == []
        assert status_of(conn, analysis["id"]) == "pending"


class TestSynchronousScan:
    """find_duplicates service call."""

    def test_returns_pairs_and_meta(self, conn, abc_vendors):
        result = duplicate_service.find_duplicates(conn, threshold=0.7, limit=10)

        assert len(result["data"]) == 1
        assert result["meta"] == {
            "total_vendors": 3,
            "comparisons_made": 3,
            "potential_duplicates_count": 1,
            "threshold": 0.7,
            "limit": 10,
        }

    def test_working_set(self, conn, abc_vendors):
        result = duplicate_service.find_duplicates(
            conn, threshold=0.0, limit=10, vendor_ids=[abc_vendors[0], abc_vendors[2]]
        )
        assert result["meta"]["total_vendors"] == 2
        assert result["meta"]["comparisons_made"] == 1

    def test_bad_threshold(self, conn):
        with pytest.raises(InvalidParameterError):
            duplicate_service.find_duplicates(conn, threshold=1.5, limit=10)
