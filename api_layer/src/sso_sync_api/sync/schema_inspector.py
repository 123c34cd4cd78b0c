"""
Schema Inspector

Discovers the usable columns of a tenant table by sampling one row and
falls back to static defaults when the table is empty, missing or errors.
Never raises for tenant-side errors.
"""

from typing import Optional

from loguru import logger

from sso_sync_api.enums import ErrorKind
from sso_sync_api.enums import SiteType
from sso_sync_api.registry.models import Tenant
from sso_sync_api.sync.models import TableSchema
from sso_sync_api.sync.site_types import classify_site_type
from sso_sync_api.sync.site_types import default_columns_for
from sso_sync_api.sync.site_types import roles_for
from sso_sync_api.sync.site_types import write_target_tables
from sso_sync_api.tenant_store.client import TenantStoreClient
from sso_sync_api.tenant_store.errors import TableNotFoundError
from sso_sync_api.tenant_store.errors import TenantStoreError


def _defaulted_schema(
    table_name: str,
    site_type: SiteType,
    exists: bool,
    error: Optional[str] = None,
) -> TableSchema:
    return TableSchema(
        table_name=table_name,
        columns=default_columns_for(site_type, table_name),
        roles=roles_for(site_type),
        site_type=site_type,
        has_data=False,
        exists=exists,
        error=error,
    )


async def inspect_table(
    store: TenantStoreClient,
    tenant: Tenant,
    table_name: str,
    site_type: Optional[SiteType] = None,
) -> TableSchema:
    """
    Sample one tenant table.

    Parameters
    ----------
    store : TenantStoreClient
        Client bound to the tenant's best credential
    tenant : Tenant
        Tenant owning the table
    table_name : str
        Table to sample
    site_type : SiteType, optional
        Precomputed classification, derived from the tenant when omitted

    Returns
    -------
    TableSchema
        Live columns when a row came back, static defaults otherwise
    """
    site_type = site_type or classify_site_type(tenant.name, tenant.category)

    try:
        rows = await store.query_rows(table_name, limit=1)
    except TableNotFoundError as e:
        logger.debug(
            "Schema defaulted, table missing",
            tenant=tenant.name,
            table=table_name,
            error_kind=ErrorKind.SCHEMA_DEFAULTED.value,
        )
        return _defaulted_schema(table_name, site_type, exists=False, error=e.message)
    except TenantStoreError as e:
        logger.warning(
            "Schema defaulted after tenant error",
            tenant=tenant.name,
            table=table_name,
            error=e.message,
            error_kind=ErrorKind.SCHEMA_DEFAULTED.value,
        )
        return _defaulted_schema(table_name, site_type, exists=True, error=e.message)

    if not rows:
        logger.debug(
            "Schema defaulted, table empty",
            tenant=tenant.name,
            table=table_name,
            error_kind=ErrorKind.SCHEMA_DEFAULTED.value,
        )
        return _defaulted_schema(table_name, site_type, exists=True)

    columns = list(dict.fromkeys(rows[0].keys()))
    if not columns:
        return _defaulted_schema(table_name, site_type, exists=True)

    return TableSchema(
        table_name=table_name,
        columns=columns,
        roles=roles_for(site_type),
        site_type=site_type,
        has_data=True,
        exists=True,
    )


async def resolve_target(
    store: TenantStoreClient,
    tenant: Tenant,
    site_type: SiteType,
    override: Optional[str] = None,
) -> TableSchema:
    """
    Pick the table a user row is written to.

    An explicit override is sampled and used as-is. Otherwise the site-type
    default table and then the remaining candidate tables are sampled in
    order and the first existing one wins. When none exists the default
    table's schema is returned so the write surfaces the tenant's error.
    """
    if override:
        return await inspect_table(store, tenant, override, site_type)

    first_schema: Optional[TableSchema] = None
    for table_name in write_target_tables(site_type):
        schema = await inspect_table(store, tenant, table_name, site_type)
        if first_schema is None:
            first_schema = schema
        if schema.exists:
            return schema

    logger.warning("No candidate write table exists", tenant=tenant.name, site_type=site_type.value)
    return first_schema
