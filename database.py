"""
PostgreSQL access for the journal server

One asyncpg pool per process. json/jsonb columns come back as Python
objects, and every call can carry its own timeout (the query executor
passes DATABASE_COMMAND_TIMEOUT).
"""

import asyncpg
import json
import logging
from typing import Optional, List, Dict, Any
from contextlib import asynccontextmanager

from config import DatabaseConfig

logger = logging.getLogger(__name__)

# DATABASE_SSL_MODE -> asyncpg ssl argument
_SSL_SETTINGS = {'require': True, 'disable': False}


async def _init_connection(conn: asyncpg.Connection):
    """Decode json/jsonb columns to Python objects and accept dicts as parameters"""
    for type_name in ('json', 'jsonb'):
        await conn.set_type_codec(
            type_name,
            encoder=json.dumps,
            decoder=json.loads,
            schema='pg_catalog',
        )


class DatabaseConnection:
    """Pool owner used by the query executor, the migration helper and /api/health"""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self):
        if self.pool is not None:
            logger.warning("Connection pool already initialized")
            return

        try:
            self.pool = await asyncpg.create_pool(
                host=self.config.host,
                port=self.config.port,
                database=self.config.database,
                user=self.config.user,
                password=self.config.password,
                min_size=self.config.min_pool_size,
                max_size=self.config.max_pool_size,
                command_timeout=self.config.command_timeout,
                ssl=_SSL_SETTINGS.get(self.config.ssl_mode, 'prefer'),
                init=_init_connection,
            )
            logger.info(
                f"✅ Connected to PostgreSQL at {self.config.host}:{self.config.port}/{self.config.database}"
            )
        except Exception as e:
            logger.error(f"❌ Failed to connect to journal database: {e}")
            raise

    async def disconnect(self):
        if self.pool is not None:
            await self.pool.close()
            self.pool = None
            logger.info("Database connection pool closed")

    @asynccontextmanager
    async def acquire(self):
        """
        Borrow a pooled connection. A connection whose operation failed is
        reset before it goes back to the pool.

            async with db.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(schema_sql)
        """
        if self.pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")

        async with self.pool.acquire() as connection:
            try:
                yield connection
            except Exception as e:
                logger.error(f"Error during database operation: {e}")
                try:
                    await connection.reset()
                except Exception as reset_error:
                    logger.error(f"Failed to reset connection: {reset_error}")
                raise

    async def execute(self, query: str, *args, timeout: Optional[float] = None) -> str:
        """Run a statement and return its status tag, e.g. "INSERT 0 1" """
        async with self.acquire() as conn:
            return await conn.execute(query, *args, timeout=timeout)

    async def fetch(self, query: str, *args, timeout: Optional[float] = None) -> List[asyncpg.Record]:
        async with self.acquire() as conn:
            return await conn.fetch(query, *args, timeout=timeout)

    async def fetchrow(self, query: str, *args, timeout: Optional[float] = None) -> Optional[asyncpg.Record]:
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args, timeout=timeout)

    async def fetchval(self, query: str, *args, column: int = 0, timeout: Optional[float] = None) -> Any:
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args, column=column, timeout=timeout)

    async def check_connection(self) -> bool:
        """SELECT 1 round trip; False on any failure (health and status routes)"""
        try:
            return await self.fetchval("SELECT 1") == 1
        except Exception as e:
            logger.error(f"Connection check failed: {e}")
            return False

    async def get_pool_stats(self) -> Dict[str, Any]:
        """Pool sizes reported by GET /api/database/status"""
        if self.pool is None:
            return {'status': 'disconnected', 'size': 0, 'freesize': 0}

        return {
            'status': 'connected',
            'size': self.pool.get_size(),
            'freesize': self.pool.get_idle_size(),
            'min_size': self.config.min_pool_size,
            'max_size': self.config.max_pool_size,
        }

    async def get_all_tables(self) -> List[str]:
        rows = await self.fetch("""
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = 'public' AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """)
        return [row['table_name'] for row in rows]


class DatabaseMigration:
    """Applies schema.sql for utils/init_db.py"""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    async def apply_schema(self, schema_file: str):
        """Run the whole schema file in one transaction"""
        logger.info(f"Applying schema from {schema_file}...")

        with open(schema_file, 'r', encoding='utf-8') as f:
            schema_sql = f.read()

        try:
            async with self.db.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(schema_sql)
            logger.info("✅ Journal schema applied")
        except Exception as e:
            logger.error(f"❌ Failed to apply schema: {e}")
            raise

    async def check_schema_exists(self) -> bool:
        return 'journal_entries' in await self.db.get_all_tables()
