"""
Tenant Repository

Repository for connected tenant sites.
"""

from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from uuid import uuid4

from sso_sync_api.registry.models import Tenant
from sso_sync_api.registry.repository_base import BaseRepository


class TenantRepository(BaseRepository):
    """Tenant repository with domain-specific queries."""

    def __init__(self, pool, schema: str = "sso_sync"):
        super().__init__(pool, "tenants", "id", schema)

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        """Get a tenant by id, active or not."""
        row = await self.get(tenant_id)
        return Tenant.from_record(row) if row else None

    async def get_active(self, tenant_id: str) -> Optional[Tenant]:
        """Get a tenant by id, None when it is missing or inactive."""
        tenant = await self.get_tenant(tenant_id)
        if tenant is None or not tenant.active:
            return None
        return tenant

    async def list_tenants(self) -> List[Tenant]:
        """Get every tenant ordered by creation time."""
        return [Tenant.from_record(row) for row in await self.list_all()]

    async def list_active(self) -> List[Tenant]:
        """Get every active tenant ordered by creation time."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT * FROM {self.qualified_table} WHERE active = true ORDER BY created_at",
            )
            return [Tenant.from_record(dict(row)) for row in rows]

    async def get_by_name(self, name: str) -> Optional[Tenant]:
        """Get a tenant by its machine name."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT * FROM {self.qualified_table} WHERE name = $1",
                name,
            )
            return Tenant.from_record(dict(row)) if row else None

    async def create_tenant(
        self,
        name: str,
        display_name: Optional[str] = None,
        category: Optional[str] = None,
        endpoint: Optional[str] = None,
        public_key: Optional[str] = None,
        elevated_key: Optional[str] = None,
        active: bool = True,
        sync_table: Optional[str] = None,
        tenant_id: Optional[str] = None,
    ) -> Tenant:
        """
        Register a new tenant.

        Args:
            name: Machine name (unique)
            display_name: Human readable name
            category: Free-text category hint used by site-type classification
            endpoint: Base URL of the tenant store
            public_key: Key subject to tenant-side policies
            elevated_key: Key bypassing tenant-side policies
            active: Whether the tenant takes part in sync and reads
            sync_table: Table every sync writes to, resolved per site type when omitted
            tenant_id: Explicit id, generated when omitted

        Returns:
            The created tenant
        """
        row = await self.insert(
            {
                "id": tenant_id or str(uuid4()),
                "name": name,
                "display_name": display_name or name,
                "category": category,
                "endpoint": endpoint,
                "public_key": public_key,
                "elevated_key": elevated_key,
                "active": active,
                "sync_table": sync_table,
            }
        )
        return Tenant.from_record(row)

    async def update_tenant(self, tenant_id: str, fields: Dict[str, Any]) -> Optional[Tenant]:
        """Update configuration columns (credentials, flags, names)."""
        row = await self.update(tenant_id, fields)
        return Tenant.from_record(row) if row else None

    async def update_total_users(self, tenant_id: str, total_users: int) -> None:
        """Store the recounted number of users of a tenant."""
        await self.update(tenant_id, {"total_users": total_users})
