"""Shared tenant lookups for the sync engine, the user reader and the tenant user admin."""

from typing import Any
from typing import Dict

from sso_sync_api.enums import SiteType
from sso_sync_api.registry.models import Tenant
from sso_sync_api.registry.repository_tenant import TenantRepository
from sso_sync_api.sync.errors import MisconfiguredError
from sso_sync_api.sync.errors import NotFoundError


async def load_active_tenant(tenant_repo: TenantRepository, tenant_id: str) -> Tenant:
    """
    Load a tenant that takes part in sync and reads.

    Raises:
        NotFoundError: Tenant missing or inactive
    """
    tenant = await tenant_repo.get_active(tenant_id)
    if tenant is None:
        raise NotFoundError(f"Tenant not found or inactive: {tenant_id}", tenant_id=tenant_id)
    return tenant


def require_configured(tenant: Tenant) -> None:
    """
    Check the tenant has an endpoint and at least one key, before any remote call.

    Raises:
        MisconfiguredError: Endpoint or both keys missing
    """
    if not tenant.endpoint:
        raise MisconfiguredError(f"Tenant '{tenant.name}' has no endpoint configured", tenant_id=tenant.id)
    if not tenant.credentials.best_key:
        raise MisconfiguredError(f"Tenant '{tenant.name}' has no credentials configured", tenant_id=tenant.id)


def site_summary(tenant: Tenant, site_type: SiteType) -> Dict[str, Any]:
    """Tenant description returned alongside reads."""
    return {
        "id": tenant.id,
        "name": tenant.name,
        "display_name": tenant.display_name,
        "category": tenant.category,
        "type": site_type.value,
    }
