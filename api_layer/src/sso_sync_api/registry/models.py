"""
Registry Models

Central registry records: connected tenants, canonical users and sync log entries.
"""

from datetime import datetime
from typing import Any
from typing import Dict
from typing import Optional
from uuid import UUID

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator

from sso_sync_api.enums import SyncLogStatus
from sso_sync_api.enums import SyncType


def normalize_email(email: Optional[str]) -> str:
    """Lowercase and trim an email before any comparison or lookup."""
    return str(email or "").strip().lower()


class TenantCredentials(BaseModel):
    """Keys for one tenant store."""

    public_key: Optional[str] = None
    elevated_key: Optional[str] = None  # Bypasses tenant-side row policies, required for identity ops

    @property
    def has_elevated(self) -> bool:
        return bool(self.elevated_key)

    @property
    def best_key(self) -> Optional[str]:
        return self.elevated_key or self.public_key


class Tenant(BaseModel):
    """Connected tenant site."""

    id: str
    name: str
    display_name: Optional[str] = None
    category: Optional[str] = None
    endpoint: Optional[str] = None
    credentials: TenantCredentials = Field(default_factory=TenantCredentials)
    sync_table: Optional[str] = None  # Pinned write target, skips target resolution
    active: bool = True
    total_users: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_configured(self) -> bool:
        """Endpoint and at least one key are present."""
        return bool(self.endpoint) and bool(self.credentials.best_key)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Tenant":
        """Build a tenant from a flat registry row."""
        data = dict(record)
        data["credentials"] = TenantCredentials(
            public_key=data.pop("public_key", None),
            elevated_key=data.pop("elevated_key", None),
        )
        return cls(**data)

    def public_view(self) -> Dict[str, Any]:
        """API representation, keys replaced by presence flags."""
        data = self.model_dump(mode="json", exclude={"credentials"})
        data["has_public_key"] = bool(self.credentials.public_key)
        data["has_elevated_key"] = self.credentials.has_elevated
        return data


class CanonicalUser(BaseModel):
    """Source-of-truth user record of the central registry."""

    id: str
    email: str
    full_name: Optional[str] = None
    role: str = "user"
    team: Optional[str] = None
    department: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    credential_secret: Optional[str] = None  # Plaintext login secret, never logged or written to tenant rows
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)

    def public_view(self) -> Dict[str, Any]:
        """API representation without the credential secret."""
        data = self.model_dump(mode="json", exclude={"credential_secret"})
        data["has_credential_secret"] = bool(self.credential_secret)
        return data


class SyncLogEntry(BaseModel):
    """One (user, tenant) sync attempt."""

    id: UUID
    user_id: str
    tenant_id: str
    target_site: Optional[str] = None
    status: SyncLogStatus
    sync_type: SyncType = SyncType.SINGLE
    error_message: Optional[str] = None
    synced_snapshot: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
