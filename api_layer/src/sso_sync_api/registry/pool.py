"""
Registry Database Connection Pool

Manages the asyncpg connection pool for the central registry database
(tenants, canonical users, sync log). Creates the registry schema on
initialization.

Schema Evolution:
-----------------
schema.sql only uses CREATE ... IF NOT EXISTS, so it is safe to re-run.
When adding/removing tables:
1. Update schema.sql
2. Update RegistryDBPool.EXPECTED_TABLES
Column changes on existing deployments need a manual ALTER.
"""

from pathlib import Path
from string import Template
from typing import Optional

import asyncpg
from loguru import logger


class RegistryDBPool:
    """Central registry database connection pool manager."""

    EXPECTED_TABLES = {
        "tenants",
        "users",
        "sync_log",
    }

    def __init__(
        self,
        connection_string: str,
        schema: str = "sso_sync",
        min_size: int = 1,
        max_size: int = 10,
    ):
        """
        Initialize registry DB pool.

        Args:
            connection_string: PostgreSQL connection string for the registry database
            schema: Schema holding the registry tables
            min_size: Minimum pooled connections
            max_size: Maximum pooled connections
        """
        self.connection_string = connection_string
        self.schema = schema
        self.min_size = min_size
        self.max_size = max_size
        self.pool: Optional[asyncpg.Pool] = None
        self._pool_initialized = False

    async def initialize(self) -> None:
        """Create the pool, validate it and run migrations."""
        if self._pool_initialized and self.pool is not None:
            logger.debug("Registry DB pool already initialized")
            return

        try:
            logger.info("Initializing registry database pool", schema=self.schema)

            self.pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=60,
                timeout=15,
            )

            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                if result != 1:
                    raise RuntimeError("Pool validation query failed")

            logger.info("Registry DB pool validated")

            await self._run_migrations()

            self._pool_initialized = True
            logger.success("Registry database initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize registry DB pool: {e}")
            if self.pool:
                await self.pool.close()
                self.pool = None
            raise

    async def _existing_tables(self, conn) -> set:
        rows = await conn.fetch(
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = $1
            """,
            self.schema,
        )
        return {row["table_name"] for row in rows}

    async def _run_migrations(self) -> None:
        """Create the registry schema and tables when any expected table is missing."""
        async with self.pool.acquire() as conn:
            existing_tables = await self._existing_tables(conn)

            if self.EXPECTED_TABLES <= existing_tables:
                logger.info("Registry schema up to date", table_count=len(existing_tables))
                return

            missing_tables = self.EXPECTED_TABLES - existing_tables
            logger.info("Registry tables missing - running schema.sql", missing_tables=sorted(missing_tables))

            schema_path = Path(__file__).parent / "schema.sql"
            if not schema_path.exists():
                raise FileNotFoundError(f"schema.sql not found at {schema_path}")

            schema_sql = Template(schema_path.read_text()).substitute(schema=self.schema)
            await conn.execute(schema_sql)

            existing_tables = await self._existing_tables(conn)
            missing_tables = self.EXPECTED_TABLES - existing_tables
            if missing_tables:
                raise RuntimeError(f"Migration incomplete: missing tables {sorted(missing_tables)}")

            logger.success("Registry migrations completed", table_count=len(existing_tables))

    async def close(self) -> None:
        """Close the connection pool gracefully."""
        if self.pool:
            logger.info("Closing registry database pool")
            await self.pool.close()
            self.pool = None
            self._pool_initialized = False

    def acquire(self):
        """
        Acquire a database connection from the pool.

        Usage:
            async with pool.acquire() as conn:
                row = await conn.fetchrow("SELECT ...")
        """
        if not self.pool:
            raise RuntimeError("Registry DB pool not initialized - call initialize() first")
        return self.pool.acquire()

    async def health_check(self) -> bool:
        """
        Check if the registry database answers.

        Returns:
            True if connection is healthy, False otherwise
        """
        if not self.pool:
            return False
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval("SELECT 1") == 1
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Registry DB health check failed: {e}")
            return False
