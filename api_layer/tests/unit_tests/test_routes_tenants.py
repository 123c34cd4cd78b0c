"""Tests for tenant API routes."""

from fastapi import status

from sso_sync_api.tenant_store.errors import RemoteStoreError
from tests.consts import API_BASE
from tests.fixtures.store_fixtures import FakeTenantStore


class TestTenantRegistry:
    """Tests for tenant registry CRU routes."""

    def test_list_tenants_hides_keys(self, client):
        response = client.get(f"{API_BASE}/tenants")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["count"] == 5
        assert "sales-elevated-key" not in response.text
        assert "hr-public-key" not in response.text
        sales = next(tenant for tenant in data["tenants"] if tenant["id"] == "t-sales")
        assert sales["has_elevated_key"] is True
        assert sales["has_public_key"] is False
        assert "credentials" not in sales

    def test_get_tenant(self, client):
        response = client.get(f"{API_BASE}/tenants/t-hr")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["name"] == "hrms-main"
        assert response.json()["has_public_key"] is True

    def test_get_unknown_tenant(self, client):
        response = client.get(f"{API_BASE}/tenants/t-nope")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_create_tenant(self, client, fake_tenant_repo):
        response = client.post(
            f"{API_BASE}/tenants",
            json={
                "name": "city-garage",
                "endpoint": "https://garage.example.test",
                "public_key": "garage-public-key",
            },
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["name"] == "city-garage"
        assert data["has_public_key"] is True
        assert "garage-public-key" not in response.text
        assert data["id"] in fake_tenant_repo.tenants

    def test_create_duplicate_tenant(self, client):
        response = client.post(f"{API_BASE}/tenants", json={"name": "sales-prod"})

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_create_tenant_bad_endpoint(self, client):
        response = client.post(f"{API_BASE}/tenants", json={"name": "x", "endpoint": "ftp://x"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    def test_update_tenant(self, client, fake_tenant_repo):
        response = client.patch(f"{API_BASE}/tenants/t-bare", json={"endpoint": "https://bare.example.test"})

        assert response.status_code == status.HTTP_200_OK
        assert fake_tenant_repo.tenants["t-bare"].endpoint == "https://bare.example.test"

    def test_update_tenant_credentials(self, client, fake_tenant_repo):
        response = client.patch(f"{API_BASE}/tenants/t-hr", json={"elevated_key": "new-elevated"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["has_elevated_key"] is True
        assert fake_tenant_repo.tenants["t-hr"].credentials.elevated_key == "new-elevated"

    def test_pin_tenant_sync_table(self, client, fake_tenant_repo):
        response = client.patch(f"{API_BASE}/tenants/t-sales", json={"sync_table": "sales_team"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["sync_table"] == "sales_team"
        assert fake_tenant_repo.tenants["t-sales"].sync_table == "sales_team"

    def test_update_tenant_empty_body(self, client):
        response = client.patch(f"{API_BASE}/tenants/t-hr", json={})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_update_unknown_tenant(self, client):
        response = client.patch(f"{API_BASE}/tenants/t-nope", json={"active": False})

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestTenantUsers:
    """Tests for tenant user routes."""

    def test_list_users(self, client):
        response = client.get(f"{API_BASE}/tenants/t-cms/users")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["count"] == 1
        assert data["users"][0]["email"] == "editor@example.com"
        assert data["tables_found"] == ["hr_users"]
        assert data["site"]["type"] == "cms"

    def test_list_users_no_table(self, client, fake_store_factory):
        fake_store_factory.stores["t-sales"] = FakeTenantStore(elevated=True)

        response = client.get(f"{API_BASE}/tenants/t-sales/users")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        data = response.json()
        assert data["error_kind"] == "not_found"
        assert data["tables_found"] == []

    def test_list_users_read_failure(self, client, sales_store):
        sales_store.failures["users"] = RemoteStoreError("JWT expired", status_code=401)

        response = client.get(f"{API_BASE}/tenants/t-sales/users")

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.json()["error_kind"] == "remote_read_failed"

    def test_list_users_misconfigured(self, client):
        response = client.get(f"{API_BASE}/tenants/t-bare/users")

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_table_schema(self, client):
        response = client.get(f"{API_BASE}/tenants/t-hr/table-schema")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["table_name"] == "employees"
        assert "employee_status" in data["columns"]
        assert data["site"]["type"] == "hrms"

    def test_table_schema_missing_table(self, client):
        response = client.get(f"{API_BASE}/tenants/t-hr/table-schema", params={"table": "staff"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["exists"] is False

    def test_patch_user(self, client, cms_store):
        response = client.patch(
            f"{API_BASE}/tenants/t-cms/users/hr-1",
            json={"department": "People", "nickname": "ignored"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["department"] == "People"
        assert "nickname" not in cms_store.tables["hr_users"][0]

    def test_patch_user_null_clears_column(self, client, cms_store):
        """Test an explicit null is written while omitted fields stay untouched."""
        response = client.patch(f"{API_BASE}/tenants/t-cms/users/hr-1", json={"phone": None})

        assert response.status_code == status.HTTP_200_OK
        [row] = cms_store.tables["hr_users"]
        assert row["phone"] is None
        assert row["department"] == "Content"
        assert response.json()["updated_fields"] == ["phone", "updated_at"]

    def test_patch_user_no_valid_columns(self, client):
        response = client.patch(f"{API_BASE}/tenants/t-cms/users/hr-1", json={"team": "North"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        data = response.json()
        assert data["error_kind"] == "no_valid_columns"
        assert "available_columns" in data

    def test_delete_user(self, client, cms_store):
        response = client.delete(f"{API_BASE}/tenants/t-cms/users/hr-1")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["deleted_user"]["email"] == "editor@example.com"
        assert cms_store.tables["hr_users"] == []

    def test_delete_user_missing_table(self, client):
        response = client.delete(f"{API_BASE}/tenants/t-cms/users/hr-1", params={"source_table": "authors"})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_recount(self, client, fake_tenant_repo):
        response = client.post(f"{API_BASE}/tenants/t-hr/user-count")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["total_users"] == 1
        assert fake_tenant_repo.tenants["t-hr"].total_users == 1
