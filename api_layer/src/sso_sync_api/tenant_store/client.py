"""
Tenant Store Client

Thin async client over one tenant's hosted database:

- row API (PostgREST-compatible) at ``{endpoint}/rest/v1/<table>``
- identity admin API at ``{endpoint}/auth/v1/admin/users`` (elevated key only)

Every call goes through the shared ``httpx.AsyncClient`` owned by
TenantStoreFactory, so instances are cheap and hold no connection state.
"""

import time
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

import httpx
from loguru import logger

from sso_sync_api.tenant_store.errors import COLUMN_NOT_FOUND_CODES
from sso_sync_api.tenant_store.errors import TABLE_NOT_FOUND_CODES
from sso_sync_api.tenant_store.errors import ColumnNotFoundError
from sso_sync_api.tenant_store.errors import RemoteStoreError
from sso_sync_api.tenant_store.errors import RemoteTimeoutError
from sso_sync_api.tenant_store.errors import TableNotFoundError
from sso_sync_api.tenant_store.errors import is_table_missing_message

REST_PATH = "/rest/v1"
IDENTITY_PATH = "/auth/v1/admin/users"

# Hard stop for identity scans, a server ignoring per_page would otherwise loop forever
IDENTITY_SCAN_MAX_PAGES = 50


def render_filter_value(value: Any) -> str:
    """Render a filter value as a PostgREST operator expression."""
    if isinstance(value, (list, tuple, set)):
        return "in.(" + ",".join(str(item) for item in value) + ")"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    if value is None:
        return "is.null"
    return f"eq.{value}"


class TenantStoreClient:
    """Row and identity operations against a single tenant store."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        tenant_name: str,
        endpoint: str,
        api_key: str,
        elevated: bool = False,
        identity_page_size: int = 1000,
    ):
        """
        Initialize a tenant store client.

        Args:
            http: Shared async HTTP client (owns pooling and timeouts)
            tenant_name: Tenant machine name, used for logging only
            endpoint: Base URL of the tenant store
            api_key: Key sent as ``apikey`` and bearer token
            elevated: Whether ``api_key`` is the elevated key
            identity_page_size: Page size for identity scans
        """
        self.http = http
        self.tenant_name = tenant_name
        self.endpoint = endpoint.rstrip("/")
        self._api_key = api_key
        self.elevated = elevated
        self.identity_page_size = identity_page_size

    def __repr__(self) -> str:
        return f"TenantStoreClient(tenant={self.tenant_name!r}, endpoint={self.endpoint!r}, elevated={self.elevated})"

    # ════════════════════════════════════════════════════════════════════════
    # Row API
    # ════════════════════════════════════════════════════════════════════════

    async def query_rows(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        order_by: Optional[str] = None,
        descending: bool = True,
        columns: str = "*",
    ) -> List[Dict[str, Any]]:
        """
        Read rows from a table.

        Args:
            table: Table name
            filters: Column equality filters (lists become ``in`` filters)
            limit: Maximum number of rows
            order_by: Column to order by
            descending: Order direction when ``order_by`` is set
            columns: PostgREST select expression

        Returns:
            List of row dicts (possibly empty)

        Raises:
            TableNotFoundError: Table does not exist
            ColumnNotFoundError: A filter or order column does not exist
            RemoteStoreError: Any other tenant-side error
        """
        params: Dict[str, Any] = {"select": columns}
        for column, value in (filters or {}).items():
            params[column] = render_filter_value(value)
        if order_by:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
        if limit is not None:
            params["limit"] = limit

        response = await self._request("GET", self._table_url(table), table=table, params=params)
        return response.json() or []

    async def upsert_row(self, table: str, row: Dict[str, Any], on_conflict: str) -> Dict[str, Any]:
        """
        Insert a row or merge it into the row with the same conflict key.

        Args:
            table: Table name
            row: Row payload
            on_conflict: Unique column resolving the conflict (``id`` or ``email``)

        Returns:
            The stored row as returned by the tenant store
        """
        response = await self._request(
            "POST",
            self._table_url(table),
            table=table,
            params={"on_conflict": on_conflict},
            json=row,
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
        )
        rows = response.json() or []
        return rows[0] if rows else dict(row)

    async def update_rows(self, table: str, filters: Dict[str, Any], patch: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Patch every row matching ``filters`` and return the updated rows."""
        params = {column: render_filter_value(value) for column, value in filters.items()}
        response = await self._request(
            "PATCH",
            self._table_url(table),
            table=table,
            params=params,
            json=patch,
            headers={"Prefer": "return=representation"},
        )
        return response.json() or []

    async def delete_rows(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Delete every row matching ``filters`` and return the deleted rows."""
        if not filters:
            raise ValueError("delete_rows requires at least one filter")
        params = {column: render_filter_value(value) for column, value in filters.items()}
        response = await self._request(
            "DELETE",
            self._table_url(table),
            table=table,
            params=params,
            headers={"Prefer": "return=representation"},
        )
        return response.json() or []

    # ════════════════════════════════════════════════════════════════════════
    # Identity admin API
    # ════════════════════════════════════════════════════════════════════════

    async def find_identity_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """
        Find an identity-provider user by email.

        Scans the admin user listing page by page, comparing emails
        case-insensitively.

        Returns:
            Identity dict or None when no identity has this email
        """
        self._require_elevated("find_identity_by_email")
        wanted = email.strip().lower()

        for page in range(1, IDENTITY_SCAN_MAX_PAGES + 1):
            response = await self._request(
                "GET",
                self._identity_url(),
                params={"page": page, "per_page": self.identity_page_size},
            )
            body = response.json() or {}
            users = body.get("users", []) if isinstance(body, dict) else body
            for identity in users:
                if (identity.get("email") or "").strip().lower() == wanted:
                    return identity
            if len(users) < self.identity_page_size:
                return None

        logger.warning(
            "Identity scan stopped at page limit",
            tenant=self.tenant_name,
            max_pages=IDENTITY_SCAN_MAX_PAGES,
        )
        return None

    async def create_identity(
        self,
        identity_id: str,
        email: str,
        secret: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Create a confirmed identity-provider user with a caller-chosen id."""
        self._require_elevated("create_identity")
        response = await self._request(
            "POST",
            self._identity_url(),
            json={
                "id": identity_id,
                "email": email,
                "password": secret,
                "email_confirm": True,
                "user_metadata": metadata or {},
            },
        )
        return response.json() or {"id": identity_id, "email": email}

    async def update_identity(self, identity_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        """Update secret and/or metadata of an existing identity."""
        self._require_elevated("update_identity")
        response = await self._request("PUT", self._identity_url(identity_id), json=patch)
        return response.json() or {"id": identity_id}

    async def delete_identity(self, identity_id: str) -> None:
        """Delete an identity-provider user."""
        self._require_elevated("delete_identity")
        await self._request("DELETE", self._identity_url(identity_id))

    # ════════════════════════════════════════════════════════════════════════
    # Transport helpers
    # ════════════════════════════════════════════════════════════════════════

    def _table_url(self, table: str) -> str:
        return f"{self.endpoint}{REST_PATH}/{table}"

    def _identity_url(self, identity_id: Optional[str] = None) -> str:
        if identity_id:
            return f"{self.endpoint}{IDENTITY_PATH}/{identity_id}"
        return f"{self.endpoint}{IDENTITY_PATH}"

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    def _require_elevated(self, operation: str) -> None:
        if not self.elevated:
            raise RemoteStoreError(
                f"{operation} requires the tenant's elevated key",
                code="elevated_key_required",
            )

    async def _request(
        self,
        method: str,
        url: str,
        table: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        **kwargs,
    ) -> httpx.Response:
        """Send a request and translate transport and HTTP failures into store errors."""
        start_time = time.time()
        try:
            response = await self.http.request(method, url, headers=self._headers(headers), **kwargs)
        except httpx.TimeoutException as e:
            logger.warning(
                "Tenant store call timed out",
                tenant=self.tenant_name,
                table=table,
                http_method=method,
            )
            raise RemoteTimeoutError(
                f"Request to tenant '{self.tenant_name}' timed out: {type(e).__name__}",
                code="timeout",
                table=table,
            ) from e
        except httpx.HTTPError as e:
            logger.warning(
                "Tenant store unreachable",
                tenant=self.tenant_name,
                table=table,
                http_method=method,
                error=str(e),
            )
            raise RemoteStoreError(
                f"Could not reach tenant '{self.tenant_name}': {e}",
                code="network_error",
                table=table,
            ) from e

        logger.debug(
            "Tenant store call",
            tenant=self.tenant_name,
            table=table,
            http_method=method,
            status_code=response.status_code,
            response_time_ms=round((time.time() - start_time) * 1000, 2),
        )

        if response.is_error:
            raise error_from_response(response, table)
        return response


def error_from_response(response: httpx.Response, table: Optional[str] = None) -> RemoteStoreError:
    """
    Map an error response onto the store error hierarchy.

    PostgREST bodies look like ``{"code", "message", "details", "hint"}``,
    identity API bodies like ``{"code", "error_code", "msg"}``.
    """
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    raw_code = body.get("code") if isinstance(body.get("code"), str) else body.get("error_code")
    code = str(raw_code) if raw_code is not None else None
    message = (
        body.get("message")
        or body.get("msg")
        or body.get("error_description")
        or body.get("error")
        or response.text
        or f"HTTP {response.status_code}"
    )
    message = str(message)

    error_class = RemoteStoreError
    if table is not None:
        if code in COLUMN_NOT_FOUND_CODES:
            error_class = ColumnNotFoundError
        elif code in TABLE_NOT_FOUND_CODES:
            error_class = TableNotFoundError
        elif is_table_missing_message(message):
            error_class = ColumnNotFoundError if "column" in message.lower() else TableNotFoundError

    return error_class(message, status_code=response.status_code, code=code, table=table)
