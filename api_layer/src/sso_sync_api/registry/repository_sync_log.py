"""
Sync Log Repository

Repository for sync log entries (append/update only).
"""

import json
from typing import Any
from typing import Dict
from typing import Optional
from typing import Set
from typing import Tuple
from uuid import UUID
from uuid import uuid4

from sso_sync_api.enums import SyncLogStatus
from sso_sync_api.enums import SyncType
from sso_sync_api.registry.repository_base import check_identifier


class SyncLogRepository:
    """Sync log repository (no deletes)."""

    def __init__(self, pool, schema: str = "sso_sync"):
        self.pool = pool
        self.schema = check_identifier(schema)

    @property
    def qualified_table(self) -> str:
        return f"{self.schema}.sync_log"

    async def create(
        self,
        user_id: str,
        tenant_id: str,
        target_site: Optional[str] = None,
        sync_type: SyncType = SyncType.SINGLE,
        status: SyncLogStatus = SyncLogStatus.IN_PROGRESS,
    ) -> UUID:
        """Create a sync log entry for one (user, tenant) attempt."""
        entry_id = uuid4()

        async with self.pool.acquire() as conn:
            await conn.execute(
                f"""
                INSERT INTO {self.qualified_table}
                    (id, user_id, tenant_id, target_site, status, sync_type, created_at)
                VALUES ($1, $2, $3, $4, $5, $6, NOW())
                """,
                entry_id,
                user_id,
                tenant_id,
                target_site,
                status.value,
                sync_type.value,
            )

        return entry_id

    async def complete(self, entry_id: UUID, synced_snapshot: Optional[Dict[str, Any]] = None) -> None:
        """Mark a sync log entry as success with the fields that were sent."""
        async with self.pool.acquire() as conn:
            await conn.execute(
                f"""
                UPDATE {self.qualified_table}
                SET status = $2,
                    completed_at = NOW(),
                    synced_snapshot = $3::jsonb
                WHERE id = $1
                """,
                entry_id,
                SyncLogStatus.SUCCESS.value,
                json.dumps(synced_snapshot or {}, default=str),
            )

    async def fail(self, entry_id: UUID, error_message: str) -> None:
        """Mark a sync log entry as failed."""
        async with self.pool.acquire() as conn:
            await conn.execute(
                f"""
                UPDATE {self.qualified_table}
                SET status = $2,
                    completed_at = NOW(),
                    error_message = $3
                WHERE id = $1
                """,
                entry_id,
                SyncLogStatus.FAILED.value,
                error_message,
            )

    async def list_success_pairs(self) -> Set[Tuple[str, str]]:
        """All (user_id, tenant_id) pairs with at least one successful sync."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT DISTINCT user_id, tenant_id
                FROM {self.qualified_table}
                WHERE status = $1
                """,
                SyncLogStatus.SUCCESS.value,
            )
            return {(row["user_id"], row["tenant_id"]) for row in rows}
