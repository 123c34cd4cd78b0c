"""Unit tests for dependencies.py."""

from unittest.mock import MagicMock

from sso_sync_api.dependencies import get_registry_pool
from sso_sync_api.dependencies import get_settings
from sso_sync_api.dependencies import get_store_factory
from sso_sync_api.dependencies import get_sync_engine
from sso_sync_api.dependencies import get_sync_log_repository
from sso_sync_api.dependencies import get_tenant_repository
from sso_sync_api.dependencies import get_tenant_user_admin
from sso_sync_api.dependencies import get_user_reader
from sso_sync_api.dependencies import get_user_repository
from sso_sync_api.registry.repository_sync_log import SyncLogRepository
from sso_sync_api.registry.repository_tenant import TenantRepository
from sso_sync_api.registry.repository_user import UserRepository
from sso_sync_api.sync.engine import SyncEngine
from sso_sync_api.sync.tenant_users import TenantUserAdmin
from sso_sync_api.sync.user_reader import UserReader


def make_request(**state):
    request = MagicMock()
    for key, value in state.items():
        setattr(request.app.state, key, value)
    return request


class TestStateGetters:
    """Tests for the app state getters."""

    def test_get_settings(self, mock_settings):
        request = make_request(settings=mock_settings)

        assert get_settings(request) is mock_settings

    def test_get_registry_pool(self, mock_registry_pool):
        request = make_request(registry_pool=mock_registry_pool)

        assert get_registry_pool(request) is mock_registry_pool

    def test_get_store_factory(self, fake_store_factory):
        request = make_request(store_factory=fake_store_factory)

        assert get_store_factory(request) is fake_store_factory


class TestRepositoryDependencies:
    """Tests that repositories are bound to the configured schema."""

    def test_repositories_use_settings_schema(self, mock_settings, mock_registry_pool):
        tenant_repo = get_tenant_repository(pool=mock_registry_pool, settings=mock_settings)
        user_repo = get_user_repository(pool=mock_registry_pool, settings=mock_settings)
        sync_log_repo = get_sync_log_repository(pool=mock_registry_pool, settings=mock_settings)

        assert isinstance(tenant_repo, TenantRepository)
        assert isinstance(user_repo, UserRepository)
        assert isinstance(sync_log_repo, SyncLogRepository)
        assert tenant_repo.qualified_table == f"{mock_settings.registry_db_schema}.tenants"
        assert user_repo.qualified_table == f"{mock_settings.registry_db_schema}.users"
        assert sync_log_repo.qualified_table == f"{mock_settings.registry_db_schema}.sync_log"
        assert tenant_repo.pool is mock_registry_pool


class TestServiceDependencies:
    """Tests for the engine, reader and admin builders."""

    def test_get_sync_engine(
        self, mock_settings, fake_tenant_repo, fake_user_repo, fake_sync_log_repo, fake_store_factory
    ):
        engine = get_sync_engine(
            tenant_repo=fake_tenant_repo,
            user_repo=fake_user_repo,
            sync_log_repo=fake_sync_log_repo,
            store_factory=fake_store_factory,
            settings=mock_settings,
        )

        assert isinstance(engine, SyncEngine)
        assert engine.max_concurrency == mock_settings.sync_max_concurrency == 3

    def test_get_user_reader(self, mock_settings, fake_tenant_repo, fake_store_factory):
        reader = get_user_reader(tenant_repo=fake_tenant_repo, store_factory=fake_store_factory, settings=mock_settings)

        assert isinstance(reader, UserReader)
        assert reader.row_limit == mock_settings.read_row_limit

    def test_get_tenant_user_admin(self, mock_settings, fake_tenant_repo, fake_store_factory):
        admin = get_tenant_user_admin(
            tenant_repo=fake_tenant_repo, store_factory=fake_store_factory, settings=mock_settings
        )

        assert isinstance(admin, TenantUserAdmin)
        assert admin.row_limit == mock_settings.read_row_limit
