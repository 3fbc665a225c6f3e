"""
Table client facade

Entry point shaped like a backend-as-a-service client:

    client = DatabaseClient(db)
    result = await client.from_("journal_comments").select("*").eq("journal_entry_id", entry_id).execute()
    result = await client.rpc("increment_adventure_stat", {"p_stat_type": "photos_taken"})
"""

from typing import Any, Optional

from .descriptor import DatabaseQuery, Operation
from .executor import QueryExecutor, QueryResult


class TableClient:
    """Creates query descriptors scoped to one table."""

    def __init__(self, table: str, executor: QueryExecutor):
        self.table = table
        self.executor = executor

    def select(self, columns: str = "*", count: Optional[str] = None, head: bool = False) -> DatabaseQuery:
        query = DatabaseQuery(self.table, Operation.SELECT, columns=columns, executor=self.executor)
        if count is not None or head:
            query = query.select(columns, count=count, head=head)
        return query

    def insert(self, data: Any) -> DatabaseQuery:
        return DatabaseQuery(self.table, Operation.INSERT, payload=data, executor=self.executor)

    def update(self, data: dict) -> DatabaseQuery:
        return DatabaseQuery(self.table, Operation.UPDATE, payload=data, executor=self.executor)

    def delete(self) -> DatabaseQuery:
        return DatabaseQuery(self.table, Operation.DELETE, executor=self.executor)


class DatabaseClient:
    """Query-builder client over a DatabaseConnection."""

    def __init__(self, db, timeout: Optional[float] = None):
        self.db = db
        self.executor = QueryExecutor(db, timeout=timeout)

    def from_(self, table: str) -> TableClient:
        return TableClient(table, self.executor)

    async def execute(self, query: DatabaseQuery) -> QueryResult:
        return await self.executor.execute(query)

    async def rpc(self, function_name: str, params: Optional[dict[str, Any]] = None) -> QueryResult:
        return await self.executor.rpc(function_name, params)
