"""
Query builder for the journal database

A chainable, immutable query descriptor that compiles to parameterized
PostgreSQL and runs on the asyncpg pool.
"""

from .filters import Predicate, QueryBuildError, VALID_OPERATORS
from .descriptor import DatabaseQuery, Operation, Ordering
from .builder import QueryBuilder
from .executor import QueryExecutor, QueryResult
from .client import DatabaseClient, TableClient
from .validators import validate_query_request, validate_rpc_request

__all__ = [
    'Predicate',
    'QueryBuildError',
    'VALID_OPERATORS',
    'DatabaseQuery',
    'Operation',
    'Ordering',
    'QueryBuilder',
    'QueryExecutor',
    'QueryResult',
    'DatabaseClient',
    'TableClient',
    'validate_query_request',
    'validate_rpc_request',
]
