"""
Pagination for vendor listings.

Produces the {data, pagination} envelope of GET /vendors. The count runs
on the same filtered QueryBuilder as the page query, so duplicate counts
and the canonical-only filter agree between the two.
"""
from __future__ import annotations

import math
import sqlite3
from dataclasses import dataclass, field
from typing import Callable

from .query_builder import QueryBuilder

MAX_PER_PAGE = 200


@dataclass
class PaginatedResult:
    """One page of mapped rows plus the numbers needed to page through the rest."""
    data: list[dict] = field(default_factory=list)
    page: int = 1
    per_page: int = 50
    total: int = 0

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.per_page)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def pagination(self) -> dict:
        return {
            "page": self.page,
            "per_page": self.per_page,
            "total": self.total,
            "total_pages": self.total_pages,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
        }


def paginate_query(
    conn: sqlite3.Connection,
    qb: QueryBuilder,
    columns: str,
    page: int,
    per_page: int,
    row_mapper: Callable[[sqlite3.Row], dict] | None = None,
) -> PaginatedResult:
    """
    Execute count + page query and return a PaginatedResult.

    Args:
        conn: SQLite connection
        qb: QueryBuilder with filters and sort applied (pagination is added here)
        columns: SELECT columns string
        page: Page number (1-indexed); a page past the end comes back empty
        per_page: Results per page, capped at MAX_PER_PAGE
        row_mapper: Optional Row -> dict transform, dict(row) by default
    """
    page = max(1, page)
    per_page = max(1, min(per_page, MAX_PER_PAGE))
    result = PaginatedResult(page=page, per_page=per_page)

    cursor = conn.cursor()
    count_sql, count_params = qb.build_count()
    cursor.execute(count_sql, count_params)
    result.total = cursor.fetchone()[0]

    if (page - 1) * per_page >= result.total:
        return result

    qb.paginate(page, per_page)
    data_sql, data_params = qb.build_select(columns)
    cursor.execute(data_sql, data_params)

    mapper = row_mapper or dict
    result.data = [mapper(row) for row in cursor.fetchall()]
    return result
