"""
Sync Engine

Writes canonical users into tenant stores.

One (user, tenant) sync runs these steps in order:

1. load user and tenant, check the tenant is configured (no remote call before this)
2. classify the tenant's site type
3. open a sync log entry
4. ensure an identity-provider user (elevated key + credential secret only)
5. resolve the target table and sample its columns
6. build the row, read-before-write to tell created from updated
7. upsert on the row key and close the sync log entry

Fan-outs run pairs concurrently under a semaphore, one pair's failure
never affects another's outcome.
"""

import asyncio
from typing import Any
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional
from typing import Set
from typing import Tuple
from uuid import NAMESPACE_URL
from uuid import uuid5

from loguru import logger

from sso_sync_api.enums import ErrorKind
from sso_sync_api.enums import OutcomeStatus
from sso_sync_api.enums import SiteType
from sso_sync_api.enums import SyncAction
from sso_sync_api.enums import SyncType
from sso_sync_api.registry.models import CanonicalUser
from sso_sync_api.registry.models import Tenant
from sso_sync_api.registry.repository_sync_log import SyncLogRepository
from sso_sync_api.registry.repository_tenant import TenantRepository
from sso_sync_api.registry.repository_user import UserRepository
from sso_sync_api.sync.errors import NotFoundError
from sso_sync_api.sync.errors import RemoteWriteFailedError
from sso_sync_api.sync.errors import SyncError
from sso_sync_api.sync.field_mapper import build_row
from sso_sync_api.sync.models import BatchSyncResult
from sso_sync_api.sync.models import SyncOutcome
from sso_sync_api.sync.models import TableSchema
from sso_sync_api.sync.schema_inspector import resolve_target
from sso_sync_api.sync.site_types import classify_site_type
from sso_sync_api.sync.status_tracker import SyncLogTracker
from sso_sync_api.sync.tenant_access import load_active_tenant
from sso_sync_api.sync.tenant_access import require_configured
from sso_sync_api.tenant_store.client import TenantStoreClient
from sso_sync_api.tenant_store.errors import TenantStoreError

# Namespace of the surrogate identity ids, uuid5(namespace, "<tenant_id>:<email>")
IDENTITY_NAMESPACE = uuid5(NAMESPACE_URL, "sso-sync/identity")


def surrogate_identity_id(tenant_id: str, email: str) -> str:
    """Stable identity id for a (tenant, email) pair, identical on every retry."""
    return str(uuid5(IDENTITY_NAMESPACE, f"{tenant_id}:{email}"))


def failed_outcome(
    error: SyncError,
    user_id: Optional[str],
    tenant_id: Optional[str],
    site: Optional[str] = None,
    site_type: Optional[SiteType] = None,
) -> SyncOutcome:
    """Outcome value for a typed failure."""
    return SyncOutcome(
        success=False,
        status=OutcomeStatus.FAILED,
        user_id=user_id,
        tenant_id=tenant_id,
        site=site,
        site_type=site_type,
        table=error.details.get("table"),
        error=error.message,
        error_kind=error.kind,
    )


class SyncEngine:
    """Single-tenant sync and multi-tenant fan-out."""

    def __init__(
        self,
        tenant_repo: TenantRepository,
        user_repo: UserRepository,
        sync_log_repo: SyncLogRepository,
        store_factory,
        max_concurrency: int = 5,
    ):
        """
        Initialize the sync engine.

        Args:
            tenant_repo: Tenant registry repository
            user_repo: Canonical user repository
            sync_log_repo: Sync log repository
            store_factory: Object with ``for_tenant(tenant) -> TenantStoreClient``
            max_concurrency: Maximum number of pairs synced in parallel
        """
        self.tenant_repo = tenant_repo
        self.user_repo = user_repo
        self.sync_log_repo = sync_log_repo
        self.store_factory = store_factory
        self.max_concurrency = max(1, max_concurrency)

    # ════════════════════════════════════════════════════════════════════════
    # Public operations
    # ════════════════════════════════════════════════════════════════════════

    async def sync_user_to_tenant(
        self,
        user_id: str,
        tenant_id: str,
        table: Optional[str] = None,
    ) -> SyncOutcome:
        """
        Sync one user to one tenant.

        Typed failures (NotFound, Misconfigured, RemoteWriteFailed) are
        returned as failed outcomes, identity-provider failures as a
        partial outcome with a warning.

        Args:
            user_id: Canonical user id
            tenant_id: Tenant id
            table: Explicit target table, wins over the tenant's sync_table

        Returns:
            SyncOutcome for the pair
        """
        try:
            user = await self._load_user(user_id)
        except SyncError as e:
            return failed_outcome(e, user_id=user_id, tenant_id=tenant_id)
        return await self._sync_to_tenant_id(user, tenant_id, table, SyncType.SINGLE)

    async def sync_user_to_tenants(self, user_id: str, tenant_ids: Iterable[str]) -> BatchSyncResult:
        """
        Sync one user to several tenants concurrently.

        Raises:
            NotFoundError: The user does not exist
        """
        user = await self._load_user(user_id)
        unique_tenant_ids = list(dict.fromkeys(tenant_ids))
        semaphore = asyncio.Semaphore(self.max_concurrency)

        logger.info("Starting multi-tenant sync", user_id=user.id, tenant_count=len(unique_tenant_ids))
        outcomes = await asyncio.gather(
            *(self._guarded(semaphore, user, SyncType.MULTI, tenant_id=tenant_id) for tenant_id in unique_tenant_ids)
        )
        return self._summarize(outcomes, user_id=user.id)

    async def sync_user_to_all_tenants(self, user_id: str) -> BatchSyncResult:
        """
        Sync one user to every active tenant.

        Raises:
            NotFoundError: The user does not exist
        """
        user = await self._load_user(user_id)
        tenants = await self.tenant_repo.list_active()
        semaphore = asyncio.Semaphore(self.max_concurrency)

        logger.info("Starting sync to all tenants", user_id=user.id, tenant_count=len(tenants))
        outcomes = await asyncio.gather(
            *(self._guarded(semaphore, user, SyncType.MULTI, tenant=tenant) for tenant in tenants)
        )
        return self._summarize(outcomes, user_id=user.id)

    async def sync_all_users_to_all_tenants(self) -> BatchSyncResult:
        """
        Sync every canonical user to every active tenant.

        Pairs that already have a successful sync log entry are reported as
        skipped without any remote call. Stale rows are not detected.
        """
        users = await self.user_repo.list_users()
        tenants = await self.tenant_repo.list_active()
        already_synced: Set[Tuple[str, str]] = await self.sync_log_repo.list_success_pairs()
        semaphore = asyncio.Semaphore(self.max_concurrency)

        logger.info(
            "Starting bulk sync",
            user_count=len(users),
            tenant_count=len(tenants),
            already_synced=len(already_synced),
        )

        jobs = []
        for user in users:
            for tenant in tenants:
                if (user.id, tenant.id) in already_synced:
                    jobs.append(self._skipped(user, tenant))
                else:
                    jobs.append(self._guarded(semaphore, user, SyncType.BULK, tenant=tenant))

        outcomes = await asyncio.gather(*jobs)
        return self._summarize(outcomes)

    # ════════════════════════════════════════════════════════════════════════
    # Per-pair flow
    # ════════════════════════════════════════════════════════════════════════

    async def _load_user(self, user_id: str) -> CanonicalUser:
        user = await self.user_repo.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}", user_id=user_id)
        return user

    async def _sync_to_tenant_id(
        self,
        user: CanonicalUser,
        tenant_id: str,
        table: Optional[str],
        sync_type: SyncType,
    ) -> SyncOutcome:
        try:
            tenant = await load_active_tenant(self.tenant_repo, tenant_id)
        except SyncError as e:
            return failed_outcome(e, user_id=user.id, tenant_id=tenant_id)
        return await self._sync_pair(user, tenant, table, sync_type)

    async def _sync_pair(
        self,
        user: CanonicalUser,
        tenant: Tenant,
        table: Optional[str],
        sync_type: SyncType,
    ) -> SyncOutcome:
        site_type = classify_site_type(tenant.name, tenant.category)
        try:
            return await self._write_user(user, tenant, site_type, table, sync_type)
        except SyncError as e:
            logger.warning(
                "User sync failed",
                user_id=user.id,
                tenant=tenant.name,
                error_kind=e.kind.value,
                error=e.message,
            )
            return failed_outcome(e, user_id=user.id, tenant_id=tenant.id, site=tenant.name, site_type=site_type)

    async def _write_user(
        self,
        user: CanonicalUser,
        tenant: Tenant,
        site_type: SiteType,
        table_override: Optional[str],
        sync_type: SyncType,
    ) -> SyncOutcome:
        require_configured(tenant)
        store: TenantStoreClient = self.store_factory.for_tenant(tenant)

        tracker = SyncLogTracker(self.sync_log_repo, user.id, tenant.id, tenant.name, sync_type)
        await tracker.start()

        try:
            identity_id, warning = await self._ensure_identity(store, user, tenant)

            schema = await resolve_target(store, tenant, site_type, table_override or tenant.sync_table)
            table = schema.table_name
            row = build_row(user, schema, site_type)

            existing = await self._find_existing(store, tenant, schema, user.email, identity_id or user.id)
            action = SyncAction.UPDATED if existing else SyncAction.CREATED

            # An existing row keeps its id, whichever key earlier syncs used
            if existing and existing.get("id") is not None:
                conflict_key = existing["id"]
            else:
                conflict_key = identity_id or user.id

            if schema.has_column("id"):
                row["id"] = conflict_key
                on_conflict = "id"
            else:
                row["email"] = user.email
                on_conflict = "email"

            try:
                await store.upsert_row(table, row, on_conflict)
            except TenantStoreError as e:
                raise RemoteWriteFailedError(
                    f"Failed to write user to {tenant.name}.{table}: {e.message}",
                    table=table,
                    tenant_error=e.message,
                    tenant_error_code=e.code,
                ) from e
        except Exception as e:
            await tracker.fail(str(e))
            raise

        await tracker.complete(row)

        status = OutcomeStatus.PARTIAL if warning else OutcomeStatus.SUCCESS
        logger.success(
            "User synced to tenant",
            user_id=user.id,
            tenant=tenant.name,
            site_type=site_type.value,
            table=table,
            action=action.value,
            status=status.value,
        )
        return SyncOutcome(
            success=True,
            status=status,
            user_id=user.id,
            tenant_id=tenant.id,
            site=tenant.name,
            site_type=site_type,
            table=table,
            action=action,
            message=f"User {action.value} in {tenant.display_name or tenant.name} ({table})",
            warning=warning,
            error_kind=ErrorKind.PARTIAL_WARNING if warning else None,
            conflict_key=str(conflict_key),
        )

    async def _ensure_identity(
        self,
        store: TenantStoreClient,
        user: CanonicalUser,
        tenant: Tenant,
    ) -> Tuple[Optional[str], Optional[str]]:
        """
        Create or update the identity-provider user for ``user``.

        Only runs with an elevated key and a credential secret. Failures do
        not abort the sync, they come back as a warning.

        Returns:
            (identity id when known, warning text when the step failed)
        """
        if not tenant.credentials.has_elevated or not user.credential_secret:
            return None, None

        metadata = {"full_name": user.full_name, "role": user.role}
        identity_id: Optional[str] = None
        try:
            identity = await store.find_identity_by_email(user.email)
            if identity:
                identity_id = str(identity["id"])
                await store.update_identity(
                    identity_id,
                    {"password": user.credential_secret, "user_metadata": metadata},
                )
                logger.info("Identity updated", tenant=tenant.name, user_id=user.id)
            else:
                new_id = surrogate_identity_id(tenant.id, user.email)
                await store.create_identity(new_id, user.email, user.credential_secret, metadata)
                identity_id = new_id
                logger.info("Identity created", tenant=tenant.name, user_id=user.id)
        except TenantStoreError as e:
            logger.warning(
                "Identity provider step failed, continuing with profile sync",
                tenant=tenant.name,
                user_id=user.id,
                error=e.message,
                error_kind=ErrorKind.PARTIAL_WARNING.value,
            )
            return identity_id, f"Identity provider sync failed: {e.message}"

        return identity_id, None

    async def _find_existing(
        self,
        store: TenantStoreClient,
        tenant: Tenant,
        schema: TableSchema,
        email: str,
        new_key: str,
    ) -> Optional[Dict[str, Any]]:
        """
        Read-before-write: find the user's row by email, then by the key a new row would get.

        A lookup error counts as "no row", the upsert surfaces real failures.
        """
        lookups: List[Dict[str, Any]] = []
        if schema.has_column("email"):
            lookups.append({"email": email})
        if schema.has_column("id"):
            lookups.append({"id": new_key})

        for lookup in lookups:
            try:
                rows = await store.query_rows(schema.table_name, filters=lookup, limit=1)
            except TenantStoreError as e:
                logger.debug(
                    "Existing row lookup failed", tenant=tenant.name, table=schema.table_name, error=e.message
                )
                continue
            if rows:
                return rows[0]
        return None

    # ════════════════════════════════════════════════════════════════════════
    # Fan-out helpers
    # ════════════════════════════════════════════════════════════════════════

    async def _guarded(
        self,
        semaphore: asyncio.Semaphore,
        user: CanonicalUser,
        sync_type: SyncType,
        tenant_id: Optional[str] = None,
        tenant: Optional[Tenant] = None,
    ) -> SyncOutcome:
        """Run one pair under the semaphore, turning any exception into a failed outcome."""
        target_id = tenant.id if tenant is not None else tenant_id
        async with semaphore:
            try:
                if tenant is not None:
                    return await self._sync_pair(user, tenant, None, sync_type)
                return await self._sync_to_tenant_id(user, tenant_id, None, sync_type)
            except Exception as e:  # pylint: disable=broad-except
                logger.exception("Unexpected error during tenant sync", user_id=user.id, tenant_id=target_id)
                return SyncOutcome(
                    success=False,
                    status=OutcomeStatus.FAILED,
                    user_id=user.id,
                    tenant_id=target_id,
                    site=tenant.name if tenant is not None else None,
                    error=f"{type(e).__name__}: {e}",
                    error_kind=ErrorKind.INTERNAL,
                )

    async def _skipped(self, user: CanonicalUser, tenant: Tenant) -> SyncOutcome:
        return SyncOutcome(
            success=True,
            status=OutcomeStatus.SKIPPED,
            user_id=user.id,
            tenant_id=tenant.id,
            site=tenant.name,
            site_type=classify_site_type(tenant.name, tenant.category),
            action=SyncAction.SKIPPED,
            message="Already synced",
        )

    def _summarize(self, outcomes: List[SyncOutcome], user_id: Optional[str] = None) -> BatchSyncResult:
        result = BatchSyncResult.from_outcomes(list(outcomes))
        logger.info(
            "Sync fan-out finished",
            user_id=user_id,
            total=result.total,
            success_count=result.success_count,
            partial_count=result.partial_count,
            failed_count=result.failed_count,
            skipped_count=result.skipped_count,
        )
        return result
