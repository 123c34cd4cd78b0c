"""
User Repository

Repository for canonical users of the central registry.
"""

from typing import List
from typing import Optional
from uuid import uuid4

from sso_sync_api.registry.models import CanonicalUser
from sso_sync_api.registry.models import normalize_email
from sso_sync_api.registry.repository_base import BaseRepository


class UserRepository(BaseRepository):
    """Canonical user repository."""

    def __init__(self, pool, schema: str = "sso_sync"):
        super().__init__(pool, "users", "id", schema)

    async def get_user(self, user_id: str) -> Optional[CanonicalUser]:
        """Get a user by id."""
        row = await self.get(user_id)
        return CanonicalUser(**row) if row else None

    async def get_by_email(self, email: str) -> Optional[CanonicalUser]:
        """Get a user by normalized email."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT * FROM {self.qualified_table} WHERE email = $1",
                normalize_email(email),
            )
            return CanonicalUser(**dict(row)) if row else None

    async def list_users(self) -> List[CanonicalUser]:
        """Get every user ordered by creation time."""
        return [CanonicalUser(**row) for row in await self.list_all()]

    async def create_user(
        self,
        email: str,
        full_name: Optional[str] = None,
        role: str = "user",
        team: Optional[str] = None,
        department: Optional[str] = None,
        phone: Optional[str] = None,
        avatar_url: Optional[str] = None,
        credential_secret: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> CanonicalUser:
        """Create a canonical user, email is normalized before storage."""
        row = await self.insert(
            {
                "id": user_id or str(uuid4()),
                "email": normalize_email(email),
                "full_name": full_name,
                "role": role,
                "team": team,
                "department": department,
                "phone": phone,
                "avatar_url": avatar_url,
                "credential_secret": credential_secret,
            }
        )
        return CanonicalUser(**row)
