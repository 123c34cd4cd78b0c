"""FastAPI dependencies for accessing app state."""

from fastapi import Depends
from fastapi import Request

from sso_sync_api.registry.pool import RegistryDBPool
from sso_sync_api.registry.repository_sync_log import SyncLogRepository
from sso_sync_api.registry.repository_tenant import TenantRepository
from sso_sync_api.registry.repository_user import UserRepository
from sso_sync_api.settings import Settings
from sso_sync_api.sync.engine import SyncEngine
from sso_sync_api.sync.tenant_users import TenantUserAdmin
from sso_sync_api.sync.user_reader import UserReader
from sso_sync_api.tenant_store.factory import TenantStoreFactory


def get_settings(request: Request) -> Settings:
    """
    Get application settings from request state.

    Parameters
    ----------
    request : Request
        FastAPI request object

    Returns
    -------
    Settings
        Application settings instance
    """
    return request.app.state.settings


def get_registry_pool(request: Request) -> RegistryDBPool:
    """Get the registry database pool created by create_app."""
    return request.app.state.registry_pool


def get_store_factory(request: Request) -> TenantStoreFactory:
    """
    Get the tenant store factory from request state.

    The factory owns the process-wide HTTP client used for every tenant call.
    """
    return request.app.state.store_factory


def get_tenant_repository(
    pool: RegistryDBPool = Depends(get_registry_pool),
    settings: Settings = Depends(get_settings),
) -> TenantRepository:
    return TenantRepository(pool, settings.registry_db_schema)


def get_user_repository(
    pool: RegistryDBPool = Depends(get_registry_pool),
    settings: Settings = Depends(get_settings),
) -> UserRepository:
    return UserRepository(pool, settings.registry_db_schema)


def get_sync_log_repository(
    pool: RegistryDBPool = Depends(get_registry_pool),
    settings: Settings = Depends(get_settings),
) -> SyncLogRepository:
    return SyncLogRepository(pool, settings.registry_db_schema)


def get_sync_engine(
    tenant_repo: TenantRepository = Depends(get_tenant_repository),
    user_repo: UserRepository = Depends(get_user_repository),
    sync_log_repo: SyncLogRepository = Depends(get_sync_log_repository),
    store_factory: TenantStoreFactory = Depends(get_store_factory),
    settings: Settings = Depends(get_settings),
) -> SyncEngine:
    """Build the sync engine for one request."""
    return SyncEngine(
        tenant_repo=tenant_repo,
        user_repo=user_repo,
        sync_log_repo=sync_log_repo,
        store_factory=store_factory,
        max_concurrency=settings.sync_max_concurrency,
    )


def get_user_reader(
    tenant_repo: TenantRepository = Depends(get_tenant_repository),
    store_factory: TenantStoreFactory = Depends(get_store_factory),
    settings: Settings = Depends(get_settings),
) -> UserReader:
    """Build the aggregated user reader for one request."""
    return UserReader(tenant_repo, store_factory, row_limit=settings.read_row_limit)


def get_tenant_user_admin(
    tenant_repo: TenantRepository = Depends(get_tenant_repository),
    store_factory: TenantStoreFactory = Depends(get_store_factory),
    settings: Settings = Depends(get_settings),
) -> TenantUserAdmin:
    """Build the tenant user admin for one request."""
    return TenantUserAdmin(tenant_repo, store_factory, row_limit=settings.read_row_limit)
