"""
Sync API Routes

Endpoints pushing canonical users into tenant stores.
"""

from fastapi import APIRouter
from fastapi import Depends
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger

from sso_sync_api.dependencies import get_sync_engine
from sso_sync_api.errors import status_for_kind
from sso_sync_api.schemas.schemas import SyncUserToTenantRequest
from sso_sync_api.schemas.schemas import SyncUserToTenantsRequest
from sso_sync_api.sync.engine import SyncEngine
from sso_sync_api.sync.models import BatchSyncResult
from sso_sync_api.sync.models import SyncOutcome

ROUTER_SYNC = APIRouter(tags=["Sync"], prefix="/sync")


@ROUTER_SYNC.post(
    "/user-to-tenant",
    response_model=SyncOutcome,
    summary="Sync one user to one tenant",
    responses={
        status.HTTP_200_OK: {"description": "User written to the tenant, possibly with a warning"},
        status.HTTP_400_BAD_REQUEST: {"description": "Tenant has no endpoint or credentials"},
        status.HTTP_404_NOT_FOUND: {"description": "User or tenant not found"},
        status.HTTP_502_BAD_GATEWAY: {"description": "Tenant store rejected the write"},
    },
)
async def sync_user_to_tenant(
    body: SyncUserToTenantRequest,
    engine: SyncEngine = Depends(get_sync_engine),
):
    """
    Sync one canonical user to one tenant.

    A failed outcome is returned with the HTTP status of its error kind,
    a partial outcome (identity step failed, row written) with 200.
    """
    outcome = await engine.sync_user_to_tenant(body.user_id, body.tenant_id, table=body.table)

    http_status = status.HTTP_200_OK if outcome.success else status_for_kind(outcome.error_kind)
    return JSONResponse(status_code=http_status, content=outcome.model_dump(mode="json"))


@ROUTER_SYNC.post(
    "/user-to-tenants",
    response_model=BatchSyncResult,
    summary="Sync one user to several tenants",
    responses={
        status.HTTP_200_OK: {"description": "Per-tenant outcomes, failures included"},
        status.HTTP_404_NOT_FOUND: {"description": "User not found"},
    },
)
async def sync_user_to_tenants(
    body: SyncUserToTenantsRequest,
    engine: SyncEngine = Depends(get_sync_engine),
):
    """Sync one user to the listed tenants concurrently."""
    result = await engine.sync_user_to_tenants(body.user_id, body.tenant_ids)
    return JSONResponse(status_code=status.HTTP_200_OK, content=result.model_dump(mode="json"))


@ROUTER_SYNC.post(
    "/users/{user_id}/all-tenants",
    response_model=BatchSyncResult,
    summary="Sync one user to every active tenant",
    responses={
        status.HTTP_200_OK: {"description": "Per-tenant outcomes, failures included"},
        status.HTTP_404_NOT_FOUND: {"description": "User not found"},
    },
)
async def sync_user_to_all_tenants(
    user_id: str,
    engine: SyncEngine = Depends(get_sync_engine),
):
    result = await engine.sync_user_to_all_tenants(user_id)
    return JSONResponse(status_code=status.HTTP_200_OK, content=result.model_dump(mode="json"))


@ROUTER_SYNC.post(
    "/all-users",
    response_model=BatchSyncResult,
    summary="Sync every user to every active tenant",
    description="Pairs with a successful sync log entry are reported as skipped",
)
async def sync_all_users_to_all_tenants(engine: SyncEngine = Depends(get_sync_engine)):
    """Bulk sync of the whole registry."""
    logger.info("Bulk sync requested")
    result = await engine.sync_all_users_to_all_tenants()
    return JSONResponse(status_code=status.HTTP_200_OK, content=result.model_dump(mode="json"))
