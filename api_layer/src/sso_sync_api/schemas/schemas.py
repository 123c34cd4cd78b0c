####################################
# --- Request/response schemas --- #
####################################

from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator

from sso_sync_api.enums import CanonicalRole
from sso_sync_api.registry.models import normalize_email


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


# sync
class SyncUserToTenantRequest(BaseModel):
    """Request body for syncing one user to one tenant."""

    user_id: str = Field(..., description="Canonical user id")
    tenant_id: str = Field(..., description="Tenant id")
    table: Optional[str] = Field(default=None, description="Explicit target table, skips target resolution")

    @field_validator("user_id", "tenant_id")
    @classmethod
    def validate_ids(cls, v):
        """Reject blank ids."""
        return _strip_required(v)


class SyncUserToTenantsRequest(BaseModel):
    """Request body for syncing one user to several tenants."""

    user_id: str
    tenant_ids: List[str] = Field(..., min_length=1)

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v):
        """Reject a blank user id."""
        return _strip_required(v)

    @field_validator("tenant_ids")
    @classmethod
    def validate_tenant_ids(cls, v):
        """Reject blank tenant ids."""
        return [_strip_required(tenant_id) for tenant_id in v]


# tenant users (cRUD)
class TenantUserPatch(BaseModel):
    """Partial update of a user row in a tenant table. Only the fields sent are mapped."""

    model_config = ConfigDict(extra="ignore")

    full_name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    team: Optional[str] = None
    department: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    source_table: Optional[str] = Field(default=None, description="Table holding the row")


# tenants (CRU)
class CreateTenantRequest(BaseModel):
    """Request body for registering a tenant."""

    name: str
    display_name: Optional[str] = None
    category: Optional[str] = None
    endpoint: Optional[str] = None
    public_key: Optional[str] = None
    elevated_key: Optional[str] = None
    active: bool = True
    sync_table: Optional[str] = Field(default=None, description="Pin the table every sync writes to")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """Reject a blank machine name."""
        return _strip_required(v)

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v):
        """Require an http(s) URL."""
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("endpoint must start with http:// or https://")
        return v


class UpdateTenantRequest(BaseModel):
    """Partial update of tenant configuration (credentials, flags, names)."""

    display_name: Optional[str] = None
    category: Optional[str] = None
    endpoint: Optional[str] = None
    public_key: Optional[str] = None
    elevated_key: Optional[str] = None
    active: Optional[bool] = None
    sync_table: Optional[str] = None

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v):
        """Require an http(s) URL."""
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("endpoint must start with http:// or https://")
        return v


# users (CR)
class CreateUserRequest(BaseModel):
    """Request body for creating a canonical user."""

    email: str
    full_name: Optional[str] = None
    role: CanonicalRole = CanonicalRole.USER
    team: Optional[str] = None
    department: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    credential_secret: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        """Normalize and minimally check the email."""
        v = normalize_email(v)
        if "@" not in v:
            raise ValueError("email must contain '@'")
        return v
