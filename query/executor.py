"""
Query Executor

Builds SQL from a DatabaseQuery, runs it on the connection pool and
normalizes the outcome into a QueryResult. Execution faults never escape
this boundary: callers always receive a {data, error} shaped result.
"""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, replace
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

import asyncpg

from utils.error_messages import enhance_error_message

from .builder import QueryBuilder
from .descriptor import DatabaseQuery
from .filters import Predicate, QueryBuildError

logger = logging.getLogger(__name__)

# Error codes carried on failed results (used by routes to pick a status)
VALIDATION_ERROR = "VALIDATION_ERROR"
CONSTRAINT_VIOLATION = "CONSTRAINT_VIOLATION"
QUERY_TIMEOUT = "QUERY_TIMEOUT"
QUERY_ERROR = "QUERY_ERROR"

_COLUMN_TYPES_SQL = """
    SELECT column_name, data_type
    FROM information_schema.columns
    WHERE table_schema = 'public' AND table_name = $1
"""

_DATE_TYPES = {"date"}
_TIMESTAMP_TYPES = {"timestamp with time zone", "timestamp without time zone"}

# Tables whose column types are kept; least recently used are dropped first
COLUMN_TYPE_CACHE_SIZE = 128


def _serialize(obj: Any) -> Any:
    """JSON serialization helper for non-native types."""
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, (list, tuple)):
        return [_serialize(v) for v in obj]
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, Decimal):
        return float(obj)
    return str(obj)


def _row_to_dict(record) -> dict:
    return {k: _serialize(v) for k, v in dict(record).items()}


@dataclass
class QueryResult:
    """Outcome of one query: rows on success, an error message on failure."""
    data: Any = None
    error: Optional[str] = None
    count: Optional[int] = None
    code: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        response = {"data": self.data, "error": self.error}
        if self.count is not None:
            response["count"] = self.count
        return response


class QueryExecutor:
    """Runs query descriptors against a DatabaseConnection."""

    def __init__(self, db, builder: Optional[QueryBuilder] = None, timeout: Optional[float] = None):
        self.db = db
        self.builder = builder or QueryBuilder()
        self.timeout = timeout
        self._column_types: OrderedDict[str, dict[str, str]] = OrderedDict()

    async def _get_column_types(self, table: str) -> dict[str, str]:
        """
        Column name -> information_schema data_type for a public table.
        Empty lookups (unknown table, schema not applied yet) are not cached.
        """
        if table in self._column_types:
            self._column_types.move_to_end(table)
            return self._column_types[table]

        rows = await self.db.fetch(_COLUMN_TYPES_SQL, table, timeout=self.timeout)
        types = {r["column_name"]: r["data_type"] for r in rows}
        if types:
            self._column_types[table] = types
            while len(self._column_types) > COLUMN_TYPE_CACHE_SIZE:
                self._column_types.popitem(last=False)
        return types

    @staticmethod
    def _coerce_value(value: Any, data_type: Optional[str]) -> Any:
        """Convert ISO strings to date/datetime objects for asyncpg."""
        if isinstance(value, list):
            return [QueryExecutor._coerce_value(v, data_type) for v in value]
        if not isinstance(value, str) or data_type is None:
            return value
        if data_type in _DATE_TYPES:
            return date.fromisoformat(value[:10])
        if data_type in _TIMESTAMP_TYPES:
            # JS toISOString() form
            if value.endswith(("Z", "z")):
                value = value[:-1] + "+00:00"
            return datetime.fromisoformat(value)
        return value

    async def _coerce(self, query: DatabaseQuery) -> DatabaseQuery:
        """
        JSON bodies carry dates as strings; asyncpg needs real date objects.
        Column types are looked up once per table and cached.
        """
        records = query.payload if isinstance(query.payload, list) else [query.payload]
        has_strings = any(
            isinstance(p.value, (str, list)) for p in query.predicates
        ) or any(
            isinstance(v, str) for r in records if isinstance(r, dict) for v in r.values()
        )
        if not has_strings:
            return query

        types = await self._get_column_types(query.table)
        if not any(t in _DATE_TYPES or t in _TIMESTAMP_TYPES for t in types.values()):
            return query

        try:
            predicates = tuple(
                p if p.operator in ("like", "ilike", "is")
                else Predicate(p.column, p.operator, self._coerce_value(p.value, types.get(p.column)))
                for p in query.predicates
            )
            payload = query.payload
            if isinstance(payload, dict):
                payload = {k: self._coerce_value(v, types.get(k)) for k, v in payload.items()}
            elif isinstance(payload, list):
                payload = [
                    {k: self._coerce_value(v, types.get(k)) for k, v in r.items()} if isinstance(r, dict) else r
                    for r in payload
                ]
        except ValueError as e:
            raise QueryBuildError(f"Invalid date value: {e}") from e

        return replace(query, predicates=predicates, payload=payload)

    async def execute(self, query: DatabaseQuery) -> QueryResult:
        try:
            query = await self._coerce(query)
            sql, params = self.builder.build(query)
            logger.debug(f"Executing query: {sql} with {len(params)} params")

            if query.wants_count:
                row = await self.db.fetchrow(sql, *params, timeout=self.timeout)
                count = int(row["count"]) if row is not None else 0
                if query.head_only:
                    return QueryResult(data=None, count=count)

                rows_sql, rows_params = self.builder.build(replace(query, count_mode=None))
                rows = await self.db.fetch(rows_sql, *rows_params, timeout=self.timeout)
                return QueryResult(data=[_row_to_dict(r) for r in rows], count=count)

            rows = await self.db.fetch(sql, *params, timeout=self.timeout)
            data = [_row_to_dict(r) for r in rows]
            if query.single_row:
                return QueryResult(data=data[0] if data else None)
            return QueryResult(data=data)

        except QueryBuildError as e:
            logger.warning(f"Rejected query on '{query.table}': {e}")
            return QueryResult(error=str(e), code=VALIDATION_ERROR)
        except (asyncpg.IntegrityConstraintViolationError, asyncpg.DataError) as e:
            logger.error(f"Database constraint error on '{query.table}': {e}")
            if isinstance(e, asyncpg.DataError):
                # Cached types may be stale
                self._column_types.pop(query.table, None)
            return QueryResult(error=enhance_error_message(e), code=CONSTRAINT_VIOLATION)
        except asyncio.TimeoutError:
            logger.error(f"Query on '{query.table}' timed out after {self.timeout}s")
            return QueryResult(error=f"Query timed out after {self.timeout} seconds", code=QUERY_TIMEOUT)
        except Exception as e:
            logger.error(f"Database query error on '{query.table}': {e}")
            return QueryResult(error=enhance_error_message(e), code=QUERY_ERROR)

    async def rpc(self, function_name: str, params: Optional[dict[str, Any]] = None) -> QueryResult:
        """Invoke a stored procedure and return its rows."""
        try:
            sql, values = self.builder.build_rpc(function_name, params)
            logger.debug(f"Executing RPC: {sql} with {len(values)} params")
            rows = await self.db.fetch(sql, *values, timeout=self.timeout)
            return QueryResult(data=[_row_to_dict(r) for r in rows])
        except QueryBuildError as e:
            return QueryResult(error=str(e), code=VALIDATION_ERROR)
        except (asyncpg.IntegrityConstraintViolationError, asyncpg.DataError) as e:
            logger.error(f"RPC {function_name} constraint error: {e}")
            return QueryResult(error=enhance_error_message(e), code=CONSTRAINT_VIOLATION)
        except asyncio.TimeoutError:
            logger.error(f"RPC {function_name} timed out after {self.timeout}s")
            return QueryResult(error=f"Query timed out after {self.timeout} seconds", code=QUERY_TIMEOUT)
        except Exception as e:
            logger.error(f"RPC {function_name} error: {e}")
            return QueryResult(error=enhance_error_message(e), code=QUERY_ERROR)
