"""
Tenant API Routes

Tenant registry management plus direct reads and edits of tenant user tables.
"""

from typing import Optional

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import Query
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger

from sso_sync_api.dependencies import get_tenant_repository
from sso_sync_api.dependencies import get_tenant_user_admin
from sso_sync_api.dependencies import get_user_reader
from sso_sync_api.registry.repository_tenant import TenantRepository
from sso_sync_api.schemas.schemas import CreateTenantRequest
from sso_sync_api.schemas.schemas import TenantUserPatch
from sso_sync_api.schemas.schemas import UpdateTenantRequest
from sso_sync_api.sync.models import TenantUsersResult
from sso_sync_api.sync.tenant_users import TenantUserAdmin
from sso_sync_api.sync.user_reader import UserReader

ROUTER_TENANTS = APIRouter(tags=["Tenants"], prefix="/tenants")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


@ROUTER_TENANTS.get(
    "",
    summary="List tenants",
    description="Every registered tenant, keys replaced by presence flags",
)
async def list_tenants(tenant_repo: TenantRepository = Depends(get_tenant_repository)):
    tenants = await tenant_repo.list_tenants()
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"tenants": [tenant.public_view() for tenant in tenants], "count": len(tenants)},
    )


@ROUTER_TENANTS.get(
    "/{tenant_id}",
    summary="Get a tenant",
    responses={status.HTTP_404_NOT_FOUND: {"description": "Tenant not found"}},
)
async def get_tenant(tenant_id: str, tenant_repo: TenantRepository = Depends(get_tenant_repository)):
    tenant = await tenant_repo.get_tenant(tenant_id)
    if tenant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Tenant not found: {tenant_id}")
    return JSONResponse(status_code=status.HTTP_200_OK, content=tenant.public_view())


@ROUTER_TENANTS.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Register a tenant",
    responses={
        status.HTTP_201_CREATED: {"description": "Tenant registered"},
        status.HTTP_409_CONFLICT: {"description": "A tenant with this name already exists"},
    },
)
async def create_tenant(
    body: CreateTenantRequest,
    tenant_repo: TenantRepository = Depends(get_tenant_repository),
):
    """Register a tenant site. Credentials never appear in the response."""
    if await tenant_repo.get_by_name(body.name) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Tenant already exists: {body.name}",
        )

    tenant = await tenant_repo.create_tenant(**body.model_dump())
    logger.info("Tenant registered", tenant=tenant.name, tenant_id=tenant.id, category=tenant.category)
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=tenant.public_view())


@ROUTER_TENANTS.patch(
    "/{tenant_id}",
    summary="Update tenant configuration",
    responses={
        status.HTTP_400_BAD_REQUEST: {"description": "Nothing to update"},
        status.HTTP_404_NOT_FOUND: {"description": "Tenant not found"},
    },
)
async def update_tenant(
    tenant_id: str,
    body: UpdateTenantRequest,
    tenant_repo: TenantRepository = Depends(get_tenant_repository),
):
    fields = body.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    tenant = await tenant_repo.update_tenant(tenant_id, fields)
    if tenant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Tenant not found: {tenant_id}")

    logger.info("Tenant updated", tenant=tenant.name, fields=sorted(fields))
    return JSONResponse(status_code=status.HTTP_200_OK, content=tenant.public_view())


# ---------------------------------------------------------------------------
# Tenant users
# ---------------------------------------------------------------------------


@ROUTER_TENANTS.get(
    "/{tenant_id}/users",
    response_model=TenantUsersResult,
    summary="List the users stored in a tenant",
    description="Reads every candidate user table of the tenant and merges rows by email",
    responses={
        status.HTTP_400_BAD_REQUEST: {"description": "Tenant has no endpoint or credentials"},
        status.HTTP_404_NOT_FOUND: {"description": "Tenant not found or no user table exists"},
        status.HTTP_502_BAD_GATEWAY: {"description": "Tenant store could not be read"},
    },
)
async def list_tenant_users(tenant_id: str, reader: UserReader = Depends(get_user_reader)):
    result = await reader.list_tenant_users(tenant_id)
    return JSONResponse(status_code=status.HTTP_200_OK, content=result.model_dump(mode="json"))


@ROUTER_TENANTS.get(
    "/{tenant_id}/table-schema",
    summary="Sample the columns of a tenant table",
    description="Defaults to the site-type default table. Missing or empty tables fall back to known columns",
)
async def get_table_schema(
    tenant_id: str,
    table: Optional[str] = Query(default=None, description="Table to sample"),
    reader: UserReader = Depends(get_user_reader),
):
    result = await reader.describe_table(tenant_id, table)
    return JSONResponse(status_code=status.HTTP_200_OK, content=result)


@ROUTER_TENANTS.patch(
    "/{tenant_id}/users/{user_id}",
    summary="Update a user row in a tenant",
    responses={
        status.HTTP_400_BAD_REQUEST: {"description": "No field maps onto a column of the row"},
        status.HTTP_404_NOT_FOUND: {"description": "Tenant, table or row not found"},
        status.HTTP_502_BAD_GATEWAY: {"description": "Tenant store rejected the update"},
    },
)
async def update_tenant_user(
    tenant_id: str,
    user_id: str,
    body: TenantUserPatch,
    admin: TenantUserAdmin = Depends(get_tenant_user_admin),
):
    """Patch the fields sent in the body, unknown columns are dropped and an explicit null clears a column."""
    patch = body.model_dump(exclude_unset=True, exclude={"source_table"})
    result = await admin.update_user(tenant_id, user_id, patch, source_table=body.source_table)
    return JSONResponse(status_code=status.HTTP_200_OK, content=result)


@ROUTER_TENANTS.delete(
    "/{tenant_id}/users/{user_id}",
    summary="Delete a user row from a tenant",
    description="With an elevated key the identity-provider user is removed as well",
    responses={
        status.HTTP_404_NOT_FOUND: {"description": "Tenant, table or row not found"},
        status.HTTP_502_BAD_GATEWAY: {"description": "Tenant store rejected the delete"},
    },
)
async def delete_tenant_user(
    tenant_id: str,
    user_id: str,
    source_table: Optional[str] = Query(default=None, description="Table holding the row"),
    admin: TenantUserAdmin = Depends(get_tenant_user_admin),
):
    result = await admin.delete_user(tenant_id, user_id, source_table=source_table)
    return JSONResponse(status_code=status.HTTP_200_OK, content=result)


@ROUTER_TENANTS.post(
    "/{tenant_id}/user-count",
    summary="Recount the users of a tenant",
    description="Counts unique users across candidate tables and stores the total in the registry",
)
async def recount_tenant_users(tenant_id: str, admin: TenantUserAdmin = Depends(get_tenant_user_admin)):
    result = await admin.recount_users(tenant_id)
    return JSONResponse(status_code=status.HTTP_200_OK, content=result)
