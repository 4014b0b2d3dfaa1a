"""
Pytest fixtures for the vendor deduplication tests.

Every test gets its own SQLite file; the connection factory in
api.dependencies is pointed at it so API requests, services and the
analysis job all see the same data.
"""
import uuid

import pytest
from fastapi.testclient import TestClient

from api import dependencies
from api.main import app
from api.schema import ensure_schema


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Fresh database with the schema applied."""
    path = tmp_path / "vendors.db"
    monkeypatch.setattr(dependencies, "DB_PATH", path)
    with dependencies.get_db() as conn:
        ensure_schema(conn)
    return path


@pytest.fixture
def conn(db_path):
    """Connection to the test database."""
    with dependencies.get_db() as connection:
        yield connection


@pytest.fixture
def make_vendor(conn):
    """Insert a vendor row and return its id."""

    def _make(company_name="Acme Services", canonical_vendor_id=None, **fields):
        vendor_id = fields.pop("id", None) or str(uuid.uuid4())
        columns = {
            "id": vendor_id,
            "company_name": company_name,
            "canonical_vendor_id": canonical_vendor_id,
            **fields,
        }
        conn.execute(
            f"INSERT INTO vendors ({', '.join(columns)}) VALUES ({', '.join('?' * len(columns))})",
            list(columns.values()),
        )
        conn.commit()
        return vendor_id

    return _make


@pytest.fixture
def client(db_path):
    """Create a test client for the FastAPI app."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def base_url():
    """Base URL for API v1 endpoints."""
    return "/api/v1"
