"""
Base Repository

Common single-table operations for the registry repositories. Concrete
repositories inherit from this class, add domain-specific queries and
convert rows into registry models.
"""

import re
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

_IDENTIFIER_RE = re.compile(r"^[a-z_][a-z0-9_]*$")


def check_identifier(name: str) -> str:
    """Reject anything that is not a plain lowercase SQL identifier."""
    if not _IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


class BaseRepository:
    """
    Base repository with generic CRUD over one registry table.

    ``pool`` is anything exposing ``acquire()`` as an async context manager
    (RegistryDBPool or a raw asyncpg pool).
    """

    def __init__(self, pool, table_name: str, entity_id_column: str = "id", schema: str = "sso_sync"):
        """
        Initialize base repository.

        Args:
            pool: Connection pool
            table_name: Table name (without schema prefix)
            entity_id_column: Primary key column
            schema: Registry schema name
        """
        self.pool = pool
        self.table = check_identifier(table_name)
        self.entity_id_col = check_identifier(entity_id_column)
        self.schema = check_identifier(schema)

    @property
    def qualified_table(self) -> str:
        return f"{self.schema}.{self.table}"

    async def get(self, entity_id: Any) -> Optional[Dict[str, Any]]:
        """
        Get one row by primary key.

        Returns:
            Dict of row data or None if not found
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT * FROM {self.qualified_table} WHERE {self.entity_id_col} = $1",
                entity_id,
            )
            return dict(row) if row else None

    async def list_all(self, order_by: str = "created_at") -> List[Dict[str, Any]]:
        """Get every row of the table ordered by ``order_by``."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(f"SELECT * FROM {self.qualified_table} ORDER BY {check_identifier(order_by)}")
            return [dict(row) for row in rows]

    async def insert(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert one row.

        Args:
            fields: Column values, keys must be plain identifiers

        Returns:
            The inserted row
        """
        columns = [check_identifier(column) for column in fields]
        placeholders = ", ".join(f"${index}" for index in range(1, len(columns) + 1))
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO {self.qualified_table} ({", ".join(columns)})
                VALUES ({placeholders})
                RETURNING *
                """,
                *fields.values(),
            )
            return dict(row)

    async def update(self, entity_id: Any, fields: Dict[str, Any], touch: bool = True) -> Optional[Dict[str, Any]]:
        """
        Update columns of one row.

        Args:
            entity_id: Primary key value
            fields: Column values to set
            touch: Also set ``updated_at = NOW()``

        Returns:
            The updated row or None if no row has this key
        """
        assignments = [f"{check_identifier(column)} = ${index}" for index, column in enumerate(fields, start=2)]
        if touch:
            assignments.append("updated_at = NOW()")
        if not assignments:
            return await self.get(entity_id)

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE {self.qualified_table}
                SET {", ".join(assignments)}
                WHERE {self.entity_id_col} = $1
                RETURNING *
                """,
                entity_id,
                *fields.values(),
            )
            return dict(row) if row else None
