"""
Tenant User Admin

Edits user rows directly in a tenant store: patch, delete and recount.
"""

from typing import Any
from typing import Dict
from typing import Optional
from typing import Set

from loguru import logger

from sso_sync_api.enums import SiteType
from sso_sync_api.registry.models import Tenant
from sso_sync_api.registry.models import normalize_email
from sso_sync_api.registry.repository_tenant import TenantRepository
from sso_sync_api.sync.errors import NotFoundError
from sso_sync_api.sync.errors import NoValidColumnsError
from sso_sync_api.sync.errors import RemoteReadFailedError
from sso_sync_api.sync.errors import RemoteWriteFailedError
from sso_sync_api.sync.field_mapper import build_patch
from sso_sync_api.sync.field_mapper import normalize_row
from sso_sync_api.sync.site_types import candidate_tables_for
from sso_sync_api.sync.site_types import classify_site_type
from sso_sync_api.sync.site_types import default_table_for
from sso_sync_api.sync.tenant_access import load_active_tenant
from sso_sync_api.sync.tenant_access import require_configured
from sso_sync_api.sync.user_reader import SOURCE_TABLE_KEY
from sso_sync_api.tenant_store.client import TenantStoreClient
from sso_sync_api.tenant_store.errors import ColumnNotFoundError
from sso_sync_api.tenant_store.errors import RemoteStoreError
from sso_sync_api.tenant_store.errors import TableNotFoundError
from sso_sync_api.tenant_store.errors import TenantStoreError

# PostgreSQL "invalid input syntax", e.g. a non-uuid value compared to a uuid id column
INVALID_INPUT_CODE = "22P02"


class TenantUserAdmin:
    """Patch, delete and count user rows of one tenant."""

    def __init__(self, tenant_repo: TenantRepository, store_factory, row_limit: int = 1000):
        self.tenant_repo = tenant_repo
        self.store_factory = store_factory
        self.row_limit = row_limit

    async def _open(self, tenant_id: str):
        tenant = await load_active_tenant(self.tenant_repo, tenant_id)
        require_configured(tenant)
        site_type = classify_site_type(tenant.name, tenant.category)
        return tenant, site_type, self.store_factory.for_tenant(tenant)

    async def update_user(
        self,
        tenant_id: str,
        user_id: str,
        patch: Dict[str, Any],
        source_table: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Patch one user row.

        The row is located by id, then by the patch email. Only patch keys
        that map onto a column of the existing row are written.

        Args:
            tenant_id: Tenant id
            user_id: Row id in the tenant table
            patch: Canonical field names to new values
            source_table: Table holding the row, defaults to the site-type default table

        Returns:
            Dict with the normalized updated user, the table and the written columns

        Raises:
            NotFoundError: Tenant or row missing
            NoValidColumnsError: No patch key maps onto a column
            RemoteWriteFailedError: The tenant rejected the update
        """
        tenant, site_type, store = await self._open(tenant_id)
        table = source_table or default_table_for(site_type)

        existing, matched_by = await self._locate(store, table, user_id, patch.get("email"))
        if existing is None:
            raise NotFoundError("User not found in the specified table", table=table, user_id=user_id)

        columns = list(existing.keys())
        payload = build_patch(patch, columns, site_type)
        if not payload:
            raise NoValidColumnsError(
                "No valid columns to update",
                table=table,
                available_columns=columns,
                requested_fields=sorted(patch.keys()),
            )

        try:
            updated = []
            if matched_by == "id":
                updated = await store.update_rows(table, {"id": user_id}, payload)
            if not updated and existing.get("email"):
                updated = await store.update_rows(table, {"email": existing["email"]}, payload)
        except TenantStoreError as e:
            raise RemoteWriteFailedError(
                f"Failed to update user: {e.message}",
                table=table,
                tenant_error=e.message,
                tenant_error_code=e.code,
            ) from e

        if not updated:
            raise RemoteWriteFailedError("Failed to update user: no row was changed", table=table)

        logger.info("Tenant user updated", tenant=tenant.name, table=table, fields=sorted(payload))
        await self._recount_best_effort(tenant, store, site_type)

        return {
            "success": True,
            "table": table,
            "updated_fields": sorted(payload),
            "user": normalize_row({**updated[0], SOURCE_TABLE_KEY: table}, site_type),
        }

    async def delete_user(
        self,
        tenant_id: str,
        user_id: str,
        source_table: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Delete one user row and, with an elevated key, its identity-provider user.

        The identity step is best effort, its failure comes back as ``warning``.

        Raises:
            NotFoundError: Tenant or row missing
            RemoteWriteFailedError: The tenant rejected the delete
        """
        tenant, site_type, store = await self._open(tenant_id)
        table = source_table or default_table_for(site_type)

        existing, _ = await self._locate(store, table, user_id, None)
        if existing is None:
            raise NotFoundError("User not found in the specified table", table=table, user_id=user_id)

        try:
            await store.delete_rows(table, {"id": user_id})
        except TenantStoreError as e:
            raise RemoteWriteFailedError(
                f"Failed to delete user: {e.message}",
                table=table,
                tenant_error=e.message,
                tenant_error_code=e.code,
            ) from e

        email = normalize_email(existing.get("email"))
        warning = None
        if tenant.credentials.has_elevated and email:
            try:
                identity = await store.find_identity_by_email(email)
                if identity:
                    await store.delete_identity(str(identity["id"]))
            except TenantStoreError as e:
                warning = f"Identity provider user not deleted: {e.message}"
                logger.warning("Identity delete failed", tenant=tenant.name, error=e.message)

        logger.info("Tenant user deleted", tenant=tenant.name, table=table)
        await self._recount_best_effort(tenant, store, site_type)

        return {
            "success": True,
            "message": f"User deleted from {tenant.display_name or tenant.name} ({table})",
            "table": table,
            "deleted_user": {"id": user_id, "email": email or None},
            "warning": warning,
        }

    async def recount_users(self, tenant_id: str) -> Dict[str, Any]:
        """
        Count unique users across the candidate tables and store the count.

        Users are keyed by email, else by id. Missing tables are skipped.
        """
        tenant, site_type, store = await self._open(tenant_id)
        total, tables_counted = await self._count(store, site_type)
        await self.tenant_repo.update_total_users(tenant.id, total)

        logger.info("Tenant users recounted", tenant=tenant.name, total_users=total)
        return {"tenant_id": tenant.id, "total_users": total, "tables_counted": tables_counted}

    async def _count(self, store: TenantStoreClient, site_type: SiteType):
        seen: Set[str] = set()
        tables_counted = []
        for table in candidate_tables_for(site_type):
            try:
                rows = await store.query_rows(table, limit=self.row_limit)
            except TableNotFoundError:
                continue
            except TenantStoreError as e:
                raise RemoteReadFailedError(f"Could not count users in {table}: {e.message}", table=table) from e

            tables_counted.append(table)
            for row in rows:
                email = normalize_email(row.get("email"))
                if email:
                    seen.add(f"email:{email}")
                elif row.get("id") is not None:
                    seen.add(f"id:{row['id']}")
        return len(seen), tables_counted

    async def _recount_best_effort(self, tenant: Tenant, store: TenantStoreClient, site_type: SiteType) -> None:
        try:
            total, _ = await self._count(store, site_type)
            await self.tenant_repo.update_total_users(tenant.id, total)
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("User recount skipped", tenant=tenant.name, error=str(e))

    async def _locate(
        self,
        store: TenantStoreClient,
        table: str,
        user_id: str,
        email: Optional[str],
    ):
        """
        Find a row by id, then by email.

        Returns:
            (row or None, "id" | "email" | None)

        Raises:
            NotFoundError: The table does not exist
            RemoteReadFailedError: Any other tenant-side read error
        """
        try:
            rows = await self._query_by(store, table, "id", user_id)
            if rows:
                return rows[0], "id"
            if email:
                rows = await self._query_by(store, table, "email", normalize_email(email))
                if rows:
                    return rows[0], "email"
        except TableNotFoundError as e:
            raise NotFoundError(f"Table {table} does not exist in tenant", table=table) from e
        except TenantStoreError as e:
            raise RemoteReadFailedError(f"Could not read {table}: {e.message}", table=table) from e
        return None, None

    async def _query_by(self, store: TenantStoreClient, table: str, column: str, value: str):
        try:
            return await store.query_rows(table, filters={column: value}, limit=1)
        except ColumnNotFoundError:
            return []
        except RemoteStoreError as e:
            if isinstance(e, TableNotFoundError) or e.code != INVALID_INPUT_CODE:
                raise
            return []
