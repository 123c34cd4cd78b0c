"""
Status Tracker

Helper for recording one (user, tenant) sync attempt in the sync log.
"""

from typing import Any
from typing import Dict
from typing import Optional
from uuid import UUID

import asyncpg
from loguru import logger

from sso_sync_api.enums import SyncType
from sso_sync_api.registry.repository_sync_log import SyncLogRepository


class SyncLogTracker:
    """
    Wraps sync log repository calls for one attempt.

    The sync log is observability only: a registry failure while writing it
    is logged and never fails the sync itself.
    """

    def __init__(
        self,
        repo: SyncLogRepository,
        user_id: str,
        tenant_id: str,
        target_site: Optional[str] = None,
        sync_type: SyncType = SyncType.SINGLE,
    ):
        self.repo = repo
        self.user_id = user_id
        self.tenant_id = tenant_id
        self.target_site = target_site
        self.sync_type = sync_type
        self.entry_id: Optional[UUID] = None

    async def start(self) -> None:
        """Record the attempt as in_progress."""
        try:
            self.entry_id = await self.repo.create(
                self.user_id,
                self.tenant_id,
                target_site=self.target_site,
                sync_type=self.sync_type,
            )
        except (asyncpg.PostgresError, OSError) as e:
            logger.warning(
                "Could not create sync log entry",
                user_id=self.user_id,
                tenant_id=self.tenant_id,
                error=str(e),
            )

    async def complete(self, synced_snapshot: Optional[Dict[str, Any]] = None) -> None:
        """Mark the attempt as success."""
        if self.entry_id is None:
            return
        try:
            await self.repo.complete(self.entry_id, synced_snapshot)
        except (asyncpg.PostgresError, OSError) as e:
            logger.warning("Could not complete sync log entry", entry_id=str(self.entry_id), error=str(e))

    async def fail(self, error: str) -> None:
        """Mark the attempt as failed."""
        if self.entry_id is None:
            return
        try:
            await self.repo.fail(self.entry_id, error)
        except (asyncpg.PostgresError, OSError) as e:
            logger.warning("Could not fail sync log entry", entry_id=str(self.entry_id), error=str(e))
