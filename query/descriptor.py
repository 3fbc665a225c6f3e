"""
Query descriptor

An immutable description of one database operation. Every chained call
(eq, order, range, ...) returns a new DatabaseQuery, so a partially built
query can be shared between requests without one caller's filters leaking
into another's.

    query = (
        client.from_("journal_entries")
        .select("id, title, date")
        .ilike("title", "%loch%")
        .order("date", ascending=False)
        .range(0, 9)
    )
    result = await query.execute()
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional, TYPE_CHECKING

from .filters import Predicate, QueryBuildError

if TYPE_CHECKING:
    from .executor import QueryExecutor, QueryResult


class Operation(str, Enum):
    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class Ordering:
    column: str
    ascending: bool = True


@dataclass(frozen=True)
class DatabaseQuery:
    """Accumulated description of one database operation before execution."""

    table: str
    operation: Operation = Operation.SELECT
    columns: str = "*"
    predicates: tuple[Predicate, ...] = ()
    ordering: Optional[Ordering] = None
    limit_count: Optional[int] = None
    offset_count: Optional[int] = None
    payload: Any = None
    count_mode: Optional[str] = None
    head_only: bool = False
    single_row: bool = False
    executor: Optional["QueryExecutor"] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if not isinstance(self.operation, Operation):
            try:
                object.__setattr__(self, "operation", Operation(str(self.operation).upper()))
            except ValueError:
                raise QueryBuildError(f"Invalid operation '{self.operation}'") from None

        if self.operation in (Operation.INSERT, Operation.UPDATE):
            if self.payload is None:
                raise QueryBuildError(f"{self.operation.value} requires a payload")
        elif self.payload is not None:
            raise QueryBuildError(f"{self.operation.value} does not accept a payload")

        if not isinstance(self.columns, str):
            raise QueryBuildError("Columns must be a comma-separated string")
        # count and head are SELECT-only
        if self.operation is not Operation.SELECT and (self.count_mode is not None or self.head_only):
            raise QueryBuildError(f"count and head only apply to SELECT, not {self.operation.value}")

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def filter(self, column: str, operator: str, value: Any = None) -> "DatabaseQuery":
        """Add a predicate. Repeated filters on one column accumulate."""
        return replace(self, predicates=self.predicates + (Predicate(column, operator, value),))

    def eq(self, column: str, value: Any) -> "DatabaseQuery":
        return self.filter(column, "eq", value)

    def neq(self, column: str, value: Any) -> "DatabaseQuery":
        return self.filter(column, "neq", value)

    def gt(self, column: str, value: Any) -> "DatabaseQuery":
        return self.filter(column, "gt", value)

    def gte(self, column: str, value: Any) -> "DatabaseQuery":
        return self.filter(column, "gte", value)

    def lt(self, column: str, value: Any) -> "DatabaseQuery":
        return self.filter(column, "lt", value)

    def lte(self, column: str, value: Any) -> "DatabaseQuery":
        return self.filter(column, "lte", value)

    def like(self, column: str, pattern: str) -> "DatabaseQuery":
        return self.filter(column, "like", pattern)

    def ilike(self, column: str, pattern: str) -> "DatabaseQuery":
        return self.filter(column, "ilike", pattern)

    def in_(self, column: str, values: list) -> "DatabaseQuery":
        return self.filter(column, "in", values)

    def is_(self, column: str, value: Optional[bool]) -> "DatabaseQuery":
        return self.filter(column, "is", value)

    # ------------------------------------------------------------------
    # Shaping
    # ------------------------------------------------------------------

    def order(self, column: str, ascending: bool = True) -> "DatabaseQuery":
        """Set the ORDER BY column, replacing any previous ordering."""
        return replace(self, ordering=Ordering(column, ascending))

    def limit(self, count: int) -> "DatabaseQuery":
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise QueryBuildError("Limit must be a non-negative integer")
        return replace(self, limit_count=count)

    def range(self, start: int, end: int) -> "DatabaseQuery":
        """
        Restrict to the inclusive zero-based row window [start, end].
        Overwrites any previous limit.
        """
        for bound in (start, end):
            if isinstance(bound, bool) or not isinstance(bound, int) or bound < 0:
                raise QueryBuildError("Range bounds must be non-negative integers")
        if end < start:
            raise QueryBuildError(f"Range end ({end}) is before range start ({start})")
        return replace(self, offset_count=start, limit_count=end - start + 1)

    def select(
        self,
        columns: str = "*",
        count: Optional[str] = None,
        head: bool = False,
    ) -> "DatabaseQuery":
        """Override the projection and optionally request a count or head-only result."""
        if count is not None and count not in ("exact", "estimated", "planned"):
            raise QueryBuildError(f"Unknown count mode '{count}'")
        return replace(
            self,
            columns=columns,
            count_mode=count if count is not None else self.count_mode,
            head_only=head or self.head_only,
        )

    def single(self) -> "DatabaseQuery":
        """Return only the first row (or None) instead of a list."""
        return replace(self, single_row=True)

    @property
    def wants_count(self) -> bool:
        return self.count_mode is not None or self.head_only

    async def execute(self) -> "QueryResult":
        if self.executor is None:
            raise RuntimeError("Query is not bound to an executor")
        return await self.executor.execute(self)
