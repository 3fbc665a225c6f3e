"""
Query Builder

Translates a DatabaseQuery into parameterized SQL.
All values are passed as asyncpg positional parameters ($1, $2, ...) and
every identifier is validated and double-quoted, so nothing from a request
is ever interpolated into the statement text.

Supports:
- SELECT with projection, AND-ed predicates, ORDER BY, LIMIT / OFFSET
- SELECT COUNT(*) for count and head-only requests
- Single and multi-row INSERT ... RETURNING *
- UPDATE ... SET ... WHERE ... RETURNING *
- DELETE ... WHERE ... RETURNING *
- Stored procedure calls (SELECT * FROM fn(p_name => $1, ...))
"""

import logging
from typing import Any, Optional

from .descriptor import DatabaseQuery, Operation
from .filters import QueryBuildError, build_predicate, quote_identifier

logger = logging.getLogger(__name__)


class QueryBuilder:
    """Builds parameterized SQL from a query descriptor."""

    def _build_columns(self, columns: str) -> str:
        """Resolve a projection ('*' or 'a, b, c') into quoted columns."""
        if columns is None or columns.strip() in ("", "*"):
            return "*"
        parts = [part.strip() for part in columns.split(",")]
        if any(not part for part in parts):
            raise QueryBuildError(f"Invalid column list '{columns}'")
        return ", ".join(quote_identifier(part) for part in parts)

    def _build_where(self, query: DatabaseQuery, params: list) -> str:
        """Build the WHERE clause from all predicates (AND-ed)."""
        conditions = [build_predicate(p, params) for p in query.predicates]
        return f"WHERE {' AND '.join(conditions)}" if conditions else ""

    def _build_order(self, query: DatabaseQuery) -> str:
        if query.ordering is None:
            return ""
        direction = "ASC" if query.ordering.ascending else "DESC"
        return f"ORDER BY {quote_identifier(query.ordering.column)} {direction}"

    def _build_pagination(self, query: DatabaseQuery, params: list) -> str:
        parts = []
        if query.limit_count is not None:
            params.append(query.limit_count)
            parts.append(f"LIMIT ${len(params)}")
        if query.offset_count is not None:
            params.append(query.offset_count)
            parts.append(f"OFFSET ${len(params)}")
        return " ".join(parts)

    def build_select(self, query: DatabaseQuery) -> tuple[str, list]:
        table = quote_identifier(query.table)
        params: list = []

        if query.wants_count:
            select_clause = "COUNT(*) AS count"
        else:
            select_clause = self._build_columns(query.columns)

        where_clause = self._build_where(query, params)

        # Count queries ignore ordering and pagination
        if query.wants_count:
            order_clause = ""
            page_clause = ""
        else:
            order_clause = self._build_order(query)
            page_clause = self._build_pagination(query, params)

        sql = f"SELECT {select_clause} FROM {table} {where_clause} {order_clause} {page_clause}"
        return " ".join(sql.split()), params

    def build_insert(self, query: DatabaseQuery) -> tuple[str, list]:
        table = quote_identifier(query.table)
        records = query.payload if isinstance(query.payload, list) else [query.payload]

        if not records:
            raise QueryBuildError("INSERT requires at least one record")
        for record in records:
            if not isinstance(record, dict) or not record:
                raise QueryBuildError("INSERT records must be non-empty objects")

        columns = list(records[0].keys())
        column_set = set(columns)
        for index, record in enumerate(records[1:], start=1):
            if set(record.keys()) != column_set:
                raise QueryBuildError(
                    f"INSERT record {index} has different columns than the first record"
                )

        params: list = []
        value_groups = []
        for record in records:
            placeholders = []
            for col in columns:
                params.append(record[col])
                placeholders.append(f"${len(params)}")
            value_groups.append(f"({', '.join(placeholders)})")

        column_list = ", ".join(quote_identifier(col) for col in columns)
        sql = f"INSERT INTO {table} ({column_list}) VALUES {', '.join(value_groups)} RETURNING *"
        return sql, params

    def build_update(self, query: DatabaseQuery) -> tuple[str, list]:
        table = quote_identifier(query.table)
        if not isinstance(query.payload, dict) or not query.payload:
            raise QueryBuildError("UPDATE requires a non-empty object payload")
        if not query.predicates:
            raise QueryBuildError("UPDATE requires at least one filter")

        params: list = []
        assignments = []
        for col, value in query.payload.items():
            params.append(value)
            assignments.append(f"{quote_identifier(col)} = ${len(params)}")

        where_clause = self._build_where(query, params)
        sql = f"UPDATE {table} SET {', '.join(assignments)} {where_clause} RETURNING *"
        return " ".join(sql.split()), params

    def build_delete(self, query: DatabaseQuery) -> tuple[str, list]:
        table = quote_identifier(query.table)
        if not query.predicates:
            raise QueryBuildError("DELETE requires at least one filter")

        params: list = []
        where_clause = self._build_where(query, params)
        sql = f"DELETE FROM {table} {where_clause} RETURNING *"
        return " ".join(sql.split()), params

    def build(self, query: DatabaseQuery) -> tuple[str, list]:
        """
        Build the SQL statement for any operation.
        Returns (sql, params).
        """
        if query.operation is Operation.SELECT:
            return self.build_select(query)
        if query.operation is Operation.INSERT:
            return self.build_insert(query)
        if query.operation is Operation.UPDATE:
            return self.build_update(query)
        if query.operation is Operation.DELETE:
            return self.build_delete(query)
        raise QueryBuildError(f"Invalid operation '{query.operation}'")

    def build_rpc(self, function_name: str, params: Optional[dict[str, Any]] = None) -> tuple[str, list]:
        """
        Build a stored procedure call using named argument notation
        (fn(p_user_id => $1, ...)), so omitted arguments fall back to
        their SQL defaults.
        """
        values: list = []
        arguments = []
        for name, value in (params or {}).items():
            values.append(value)
            arguments.append(f"{quote_identifier(name)} => ${len(values)}")
        return f"SELECT * FROM {quote_identifier(function_name)}({', '.join(arguments)})", values
