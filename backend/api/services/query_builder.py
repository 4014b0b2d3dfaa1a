"""
QueryBuilder: fluent SQL query construction with parameterized queries.

All user inputs go through ? parameterized placeholders to prevent SQL injection.
"""
from __future__ import annotations

from typing import Any


class QueryBuilder:
    """Fluent SQL query builder with safe parameterization."""

    def __init__(self, base_table: str):
        """
        Args:
            base_table: Table name with optional alias, e.g. "vendors v"
        """
        self.base_table = base_table
        self._conditions: list[str] = []
        self._params: list[Any] = []
        self._order_by: str | None = None
        self._limit: int | None = None
        self._offset: int | None = None

    # --- Domain-specific filters ---

    def filter_canonical(
        self,
        include_duplicates: bool = False,
        column: str = "canonical_vendor_id",
    ) -> QueryBuilder:
        """Restrict to canonical vendors unless duplicates are requested."""
        if not include_duplicates:
            self._conditions.append(f"{column} IS NULL")
        return self

    def filter_ids(self, ids: list[str] | None, column: str = "id") -> QueryBuilder:
        """Restrict to an explicit id list. An empty list matches nothing."""
        if ids is None:
            return self
        if not ids:
            self._conditions.append("0 = 1")
            return self
        placeholders = ",".join("?" * len(ids))
        self._conditions.append(f"{column} IN ({placeholders})")
        self._params.extend(ids)
        return self

    def filter_search(
        self,
        search: str | None,
        columns: list[str],
    ) -> QueryBuilder:
        """Add LIKE search across multiple columns (OR). Returns self."""
        if search and columns:
            pattern = f"%{search}%"
            like_clauses = [f"{col} LIKE ?" for col in columns]
            self._conditions.append(f"({' OR '.join(like_clauses)})")
            self._params.extend([pattern] * len(columns))
        return self

    def filter_boolean(self, value: bool | None, column: str) -> QueryBuilder:
        """Filter by boolean column (0/1 in SQLite)."""
        if value is not None:
            self._conditions.append(f"{column} = ?")
            self._params.append(1 if value else 0)
        return self

    # --- Sorting ---

    def sort(
        self,
        field: str | None,
        order: str = "desc",
        whitelist: dict[str, str] | None = None,
        default: str | None = None,
    ) -> QueryBuilder:
        """
        Set ORDER BY with SQL injection protection via whitelist.

        Args:
            field: User-provided sort field name
            order: 'asc' or 'desc'
            whitelist: Maps safe field names to actual SQL column expressions
                       e.g. {"name": "v.company_name"}
            default: Default ORDER BY if field is None or not in whitelist
        """
        safe_order = "ASC" if order and order.lower() == "asc" else "DESC"

        if field and whitelist and field in whitelist:
            # Secondary key keeps pages stable when names repeat
            self._order_by = f"{whitelist[field]} {safe_order}, {self._id_column()} {safe_order}"
        elif default:
            self._order_by = default
        return self

    def order_by(self, clause: str) -> QueryBuilder:
        """Set ORDER BY directly (use only with trusted input)."""
        self._order_by = clause
        return self

    # --- Pagination ---

    def paginate(self, page: int, per_page: int) -> QueryBuilder:
        """Set LIMIT/OFFSET for pagination."""
        page = max(1, page)
        per_page = max(1, min(per_page, 500))
        self._limit = per_page
        self._offset = (page - 1) * per_page
        return self

    # --- Build methods ---

    def _id_column(self) -> str:
        parts = self.base_table.split()
        return f"{parts[-1]}.id" if len(parts) > 1 else "id"

    def _build_where(self) -> str:
        """Build WHERE clause."""
        if not self._conditions:
            return ""
        return "WHERE " + " AND ".join(self._conditions)

    def _build_tail(self) -> str:
        """Build ORDER BY + LIMIT + OFFSET."""
        parts = []
        if self._order_by:
            parts.append(f"ORDER BY {self._order_by}")
        if self._limit is not None:
            parts.append(f"LIMIT {self._limit}")
        if self._offset is not None:
            parts.append(f"OFFSET {self._offset}")
        return " ".join(parts)

    def build_count(self) -> tuple[str, list[Any]]:
        """Build a COUNT(*) query."""
        parts = [
            "SELECT COUNT(*)",
            f"FROM {self.base_table}",
            self._build_where(),
        ]
        sql = " ".join(p for p in parts if p)
        return sql, list(self._params)

    def build_select(self, columns: str) -> tuple[str, list[Any]]:
        """Build a full SELECT query."""
        parts = [
            f"SELECT {columns}",
            f"FROM {self.base_table}",
            self._build_where(),
            self._build_tail(),
        ]
        sql = " ".join(p for p in parts if p)
        return sql, list(self._params)
