"""
Tenant Store Factory

Owns the single ``httpx.AsyncClient`` shared by every tenant store client in
the process. Created in the app startup hook and closed on shutdown.
"""

from typing import Optional

import httpx
from loguru import logger

from sso_sync_api.registry.models import Tenant
from sso_sync_api.tenant_store.client import TenantStoreClient


class TenantStoreFactory:
    """Builds per-tenant store clients over one shared HTTP client."""

    def __init__(
        self,
        timeout_seconds: float = 10.0,
        identity_page_size: int = 1000,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the factory.

        Args:
            timeout_seconds: Timeout applied to every tenant call
            identity_page_size: Page size for identity scans
            transport: Optional transport override (tests use httpx.MockTransport)
        """
        self.timeout_seconds = timeout_seconds
        self.identity_page_size = identity_page_size
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        """Create the shared HTTP client."""
        if self._http is not None:
            return
        self._http = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_seconds),
            transport=self._transport,
        )
        logger.info("Tenant store HTTP client created", timeout_seconds=self.timeout_seconds)

    async def close(self) -> None:
        """Close the shared HTTP client."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None
            logger.info("Tenant store HTTP client closed")

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            raise RuntimeError("TenantStoreFactory not started - call start() first")
        return self._http

    def for_tenant(self, tenant: Tenant) -> TenantStoreClient:
        """
        Build a client for ``tenant`` using its best credential.

        The elevated key is preferred over the public key.

        Raises:
            ValueError: Tenant has no endpoint or no key
        """
        if not tenant.is_configured:
            raise ValueError(f"Tenant '{tenant.name}' has no endpoint or credentials configured")
        return TenantStoreClient(
            http=self.http,
            tenant_name=tenant.name,
            endpoint=tenant.endpoint,
            api_key=tenant.credentials.best_key,
            elevated=tenant.credentials.has_elevated,
            identity_page_size=self.identity_page_size,
        )
