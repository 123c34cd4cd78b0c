"""
User API Routes

Canonical users of the central registry.
"""

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger

from sso_sync_api.dependencies import get_user_repository
from sso_sync_api.registry.repository_user import UserRepository
from sso_sync_api.schemas.schemas import CreateUserRequest

ROUTER_USERS = APIRouter(tags=["Users"], prefix="/users")


@ROUTER_USERS.get("", summary="List canonical users")
async def list_users(user_repo: UserRepository = Depends(get_user_repository)):
    users = await user_repo.list_users()
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"users": [user.public_view() for user in users], "count": len(users)},
    )


@ROUTER_USERS.get(
    "/{user_id}",
    summary="Get a canonical user",
    responses={status.HTTP_404_NOT_FOUND: {"description": "User not found"}},
)
async def get_user(user_id: str, user_repo: UserRepository = Depends(get_user_repository)):
    user = await user_repo.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User not found: {user_id}")
    return JSONResponse(status_code=status.HTTP_200_OK, content=user.public_view())


@ROUTER_USERS.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create a canonical user",
    responses={
        status.HTTP_201_CREATED: {"description": "User created"},
        status.HTTP_409_CONFLICT: {"description": "A user with this email already exists"},
    },
)
async def create_user(body: CreateUserRequest, user_repo: UserRepository = Depends(get_user_repository)):
    """
    Create a canonical user.

    The email is normalized before the uniqueness check. The credential
    secret is stored for identity-provider sync and never returned.
    """
    if await user_repo.get_by_email(body.email) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"User already exists: {body.email}")

    fields = body.model_dump()
    fields["role"] = body.role.value
    user = await user_repo.create_user(**fields)

    logger.info("User created", user_id=user.id, role=user.role)
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=user.public_view())
