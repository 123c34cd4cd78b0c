"""Tests for the schema inspector and write-target resolution."""

import pytest

from sso_sync_api.enums import SiteType
from sso_sync_api.sync.schema_inspector import inspect_table
from sso_sync_api.sync.schema_inspector import resolve_target
from sso_sync_api.sync.site_types import DEFAULT_COLUMNS
from sso_sync_api.sync.site_types import USER_PROFILES_COLUMNS
from sso_sync_api.tenant_store.errors import RemoteStoreError
from sso_sync_api.tenant_store.errors import RemoteTimeoutError
from tests.fixtures.registry_fixtures import make_tenant
from tests.fixtures.store_fixtures import FakeTenantStore

SALES_TENANT = make_tenant("t-sales", "sales-prod", elevated_key="key")


class TestInspectTable:
    """Tests for inspect_table."""

    @pytest.mark.asyncio
    async def test_columns_from_live_row(self):
        store = FakeTenantStore(tables={"users": [{"id": "1", "email": "a@b.c", "nickname": "A"}]})

        schema = await inspect_table(store, SALES_TENANT, "users")

        assert schema.columns == ["id", "email", "nickname"]
        assert schema.has_data is True
        assert schema.exists is True
        assert schema.site_type == SiteType.SALES
        assert [role.value for role in schema.roles] == ["owner", "manager", "salesman"]

    @pytest.mark.asyncio
    async def test_empty_table_uses_defaults(self):
        store = FakeTenantStore(tables={"users": []})

        schema = await inspect_table(store, SALES_TENANT, "users")

        assert schema.columns == DEFAULT_COLUMNS[(SiteType.SALES, "users")]
        assert schema.has_data is False
        assert schema.exists is True
        assert schema.error is None

    @pytest.mark.asyncio
    async def test_missing_table_uses_defaults(self):
        schema = await inspect_table(FakeTenantStore(), SALES_TENANT, "sales_team")

        assert schema.columns == USER_PROFILES_COLUMNS
        assert schema.exists is False
        assert "does not exist" in schema.error

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            RemoteStoreError("permission denied for table users", status_code=403, code="42501"),
            RemoteTimeoutError("Request timed out", code="timeout"),
        ],
        ids=["remote_error", "timeout"],
    )
    async def test_other_errors_never_raise(self, error):
        store = FakeTenantStore(tables={"users": []})
        store.failures["users"] = error

        schema = await inspect_table(store, SALES_TENANT, "users")

        assert schema.columns
        assert schema.exists is True
        assert schema.error == error.message

    @pytest.mark.asyncio
    async def test_column_set_never_empty(self):
        store = FakeTenantStore(tables={"users": [{}]})

        schema = await inspect_table(store, SALES_TENANT, "users")

        assert schema.columns == DEFAULT_COLUMNS[(SiteType.SALES, "users")]


class TestResolveTarget:
    """Tests for resolve_target."""

    @pytest.mark.asyncio
    async def test_default_table_preferred(self):
        store = FakeTenantStore(tables={"users": [{"id": "1"}], "sales_managers": [{"id": "2"}]})

        schema = await resolve_target(store, SALES_TENANT, SiteType.SALES)

        assert schema.table_name == "users"

    @pytest.mark.asyncio
    async def test_first_existing_candidate_when_default_missing(self):
        store = FakeTenantStore(tables={"sales_team": [], "sales_users": [{"id": "1"}]})

        schema = await resolve_target(store, SALES_TENANT, SiteType.SALES)

        assert schema.table_name == "sales_team"
        assert schema.has_data is False

    @pytest.mark.asyncio
    async def test_no_table_returns_default_schema(self):
        schema = await resolve_target(FakeTenantStore(), SALES_TENANT, SiteType.SALES)

        assert schema.table_name == "users"
        assert schema.exists is False

    @pytest.mark.asyncio
    async def test_override_sampled_as_is(self):
        store = FakeTenantStore(tables={"users": [{"id": "1"}]})

        schema = await resolve_target(store, SALES_TENANT, SiteType.SALES, override="custom_people")

        assert schema.table_name == "custom_people"
        assert schema.exists is False
        assert store.calls == [("query_rows", "custom_people")]
