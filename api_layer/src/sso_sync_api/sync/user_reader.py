"""
Aggregated User Reader

Reads users back from a tenant whose schema is unknown: every candidate
table of the tenant's site type is read, rows are tagged with their source
table, de-duplicated by email and normalized into the canonical shape.
"""

from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from loguru import logger

from sso_sync_api.registry.models import normalize_email
from sso_sync_api.registry.repository_tenant import TenantRepository
from sso_sync_api.sync.errors import NotFoundError
from sso_sync_api.sync.errors import RemoteReadFailedError
from sso_sync_api.sync.field_mapper import normalize_row
from sso_sync_api.sync.models import TenantUsersResult
from sso_sync_api.sync.schema_inspector import inspect_table
from sso_sync_api.sync.site_types import candidate_tables_for
from sso_sync_api.sync.site_types import classify_site_type
from sso_sync_api.sync.site_types import default_table_for
from sso_sync_api.sync.tenant_access import load_active_tenant
from sso_sync_api.sync.tenant_access import require_configured
from sso_sync_api.sync.tenant_access import site_summary
from sso_sync_api.tenant_store.client import TenantStoreClient
from sso_sync_api.tenant_store.errors import ColumnNotFoundError
from sso_sync_api.tenant_store.errors import TableNotFoundError
from sso_sync_api.tenant_store.errors import TenantStoreError

SOURCE_TABLE_KEY = "_source_table"


async def read_table(store: TenantStoreClient, table: str, limit: int) -> List[Dict[str, Any]]:
    """
    Bounded read of one table, newest first.

    Tables without a ``created_at`` column are re-read unordered.
    """
    try:
        return await store.query_rows(table, limit=limit, order_by="created_at")
    except ColumnNotFoundError:
        return await store.query_rows(table, limit=limit)


def dedupe_rows(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    De-duplicate tagged rows by normalized email.

    On a collision the row from the longer source-table name wins, ties keep
    the first row seen. Rows without an email are all kept. Survivors keep
    the position of the first row seen for their email.
    """
    survivors: List[Dict[str, Any]] = []
    position_by_email: Dict[str, int] = {}

    for row in rows:
        email = normalize_email(row.get("email"))
        if not email:
            survivors.append(row)
            continue

        position = position_by_email.get(email)
        if position is None:
            position_by_email[email] = len(survivors)
            survivors.append(row)
            continue

        current = survivors[position]
        if len(row.get(SOURCE_TABLE_KEY) or "") > len(current.get(SOURCE_TABLE_KEY) or ""):
            survivors[position] = row

    return survivors


class UserReader:
    """Lists the users of one tenant across its candidate tables."""

    def __init__(self, tenant_repo: TenantRepository, store_factory, row_limit: int = 1000):
        self.tenant_repo = tenant_repo
        self.store_factory = store_factory
        self.row_limit = row_limit

    async def list_tenant_users(self, tenant_id: str) -> TenantUsersResult:
        """
        Aggregate the users of a tenant.

        Parameters
        ----------
        tenant_id : str
            Tenant id

        Returns
        -------
        TenantUsersResult
            Normalized users plus provenance. Tables that exist but hold no
            rows appear in ``tables_present`` only.

        Raises
        ------
        NotFoundError
            Tenant missing/inactive, or no candidate table exists
        MisconfiguredError
            Tenant has no endpoint or credentials
        RemoteReadFailedError
            No table answered and at least one read failed for another reason
        """
        tenant = await load_active_tenant(self.tenant_repo, tenant_id)
        require_configured(tenant)

        site_type = classify_site_type(tenant.name, tenant.category)
        store = self.store_factory.for_tenant(tenant)
        tables = candidate_tables_for(site_type)

        rows: List[Dict[str, Any]] = []
        tables_present: List[str] = []
        errors: List[str] = []

        for table in tables:
            try:
                table_rows = await read_table(store, table, self.row_limit)
            except TableNotFoundError:
                continue
            except TenantStoreError as e:
                logger.warning("Candidate table read failed", tenant=tenant.name, table=table, error=e.message)
                errors.append(f"{table}: {e.message}")
                continue

            tables_present.append(table)
            rows.extend({**row, SOURCE_TABLE_KEY: table} for row in table_rows)

        if not tables_present:
            if errors:
                raise RemoteReadFailedError(
                    f"Could not read users from {tenant.name}",
                    tables_queried=tables,
                    errors=errors,
                )
            raise NotFoundError(
                "No user table found in tenant",
                details=f"Checked tables: {', '.join(tables)}",
                checked_tables=tables,
                tables_found=[],
            )

        users = [normalize_row(row, site_type) for row in dedupe_rows(rows)]
        tables_found = list(dict.fromkeys(user["source_table"] for user in users if user["source_table"]))

        logger.info(
            "Tenant users listed",
            tenant=tenant.name,
            site_type=site_type.value,
            count=len(users),
            tables_found=tables_found,
            error_count=len(errors),
        )
        return TenantUsersResult(
            site=site_summary(tenant, site_type),
            users=users,
            count=len(users),
            tables_queried=tables,
            tables_present=tables_present,
            tables_found=tables_found,
            errors=errors,
        )

    async def describe_table(self, tenant_id: str, table: Optional[str] = None) -> Dict[str, Any]:
        """
        Sample one table of a tenant, the site-type default table when ``table`` is omitted.

        Returns:
            Site summary plus the sampled TableSchema fields
        """
        tenant = await load_active_tenant(self.tenant_repo, tenant_id)
        require_configured(tenant)

        site_type = classify_site_type(tenant.name, tenant.category)
        store = self.store_factory.for_tenant(tenant)
        schema = await inspect_table(store, tenant, table or default_table_for(site_type), site_type)
        return {"site": site_summary(tenant, site_type), **schema.model_dump(mode="json")}
