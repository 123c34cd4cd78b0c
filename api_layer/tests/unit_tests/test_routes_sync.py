"""Tests for sync API routes."""

from fastapi import status

from sso_sync_api.tenant_store.errors import RemoteStoreError
from tests.consts import API_BASE


class TestSyncUserToTenant:
    """Tests for POST /sync/user-to-tenant."""

    def test_success(self, client):
        response = client.post(f"{API_BASE}/sync/user-to-tenant", json={"user_id": "u-admin", "tenant_id": "t-sales"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["success"] is True
        assert data["status"] == "success"
        assert data["action"] == "created"
        assert data["site_type"] == "sales"
        assert data["table"] == "users"

    def test_explicit_table(self, client, sales_store):
        sales_store.tables["sales_team"] = []

        response = client.post(
            f"{API_BASE}/sync/user-to-tenant",
            json={"user_id": "u-manager", "tenant_id": "t-sales", "table": "sales_team"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["table"] == "sales_team"

    def test_misconfigured_tenant(self, client):
        response = client.post(f"{API_BASE}/sync/user-to-tenant", json={"user_id": "u-admin", "tenant_id": "t-bare"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_kind"] == "misconfigured"

    def test_unknown_tenant(self, client):
        response = client.post(f"{API_BASE}/sync/user-to-tenant", json={"user_id": "u-admin", "tenant_id": "t-nope"})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error_kind"] == "not_found"

    def test_remote_write_failure(self, client, sales_store):
        sales_store.upsert_error = RemoteStoreError("permission denied for table users", status_code=403, code="42501")

        response = client.post(f"{API_BASE}/sync/user-to-tenant", json={"user_id": "u-admin", "tenant_id": "t-sales"})

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        data = response.json()
        assert data["error_kind"] == "remote_write_failed"
        assert "permission denied for table users" in data["error"]

    def test_partial_is_ok(self, client, sales_store):
        sales_store.identity_error = RemoteStoreError("identity down", status_code=503)

        response = client.post(f"{API_BASE}/sync/user-to-tenant", json={"user_id": "u-admin", "tenant_id": "t-sales"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "partial"
        assert data["error_kind"] == "partial_warning"
        assert "identity down" in data["warning"]

    def test_blank_ids_rejected(self, client):
        response = client.post(f"{API_BASE}/sync/user-to-tenant", json={"user_id": "  ", "tenant_id": "t-sales"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT


class TestSyncFanOut:
    """Tests for the fan-out sync routes."""

    def test_user_to_tenants(self, client):
        response = client.post(
            f"{API_BASE}/sync/user-to-tenants",
            json={"user_id": "u-manager", "tenant_ids": ["t-sales", "t-cms", "t-bare"]},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 3
        assert data["success_count"] == 2
        assert data["failed_count"] == 1
        assert len(data["results"]) == 3

    def test_user_to_tenants_unknown_user(self, client):
        response = client.post(
            f"{API_BASE}/sync/user-to-tenants",
            json={"user_id": "u-ghost", "tenant_ids": ["t-sales"]},
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"error": "User not found: u-ghost", "error_kind": "not_found", "user_id": "u-ghost"}

    def test_user_to_tenants_requires_tenants(self, client):
        response = client.post(f"{API_BASE}/sync/user-to-tenants", json={"user_id": "u-admin", "tenant_ids": []})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    def test_user_to_all_tenants(self, client):
        response = client.post(f"{API_BASE}/sync/users/u-manager/all-tenants")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["total"] == 4

    def test_all_users(self, client, fake_sync_log_repo):
        fake_sync_log_repo.success_pairs = {("u-manager", "t-hr")}

        response = client.post(f"{API_BASE}/sync/all-users")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 8
        assert data["skipped_count"] == 1
        assert data["failed_count"] == 2
