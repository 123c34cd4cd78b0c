"""
Sync Result Models

Ephemeral values produced by the sync engine, the schema inspector and the
user reader. Never persisted, returned to API callers as JSON.
"""

from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import Field

from sso_sync_api.enums import ErrorKind
from sso_sync_api.enums import OutcomeStatus
from sso_sync_api.enums import SiteType
from sso_sync_api.enums import SyncAction


class RoleOption(BaseModel):
    """One entry of a site type's role vocabulary."""

    value: str
    label: str


class TableSchema(BaseModel):
    """Sampled columns of one tenant table."""

    table_name: str
    columns: List[str]  # Unique, never empty
    roles: List[RoleOption] = Field(default_factory=list)
    site_type: SiteType = SiteType.GENERIC
    has_data: bool = False  # Columns came from a live row
    exists: bool = True  # False only when the tenant reported the table missing
    error: Optional[str] = None

    def has_column(self, column: str) -> bool:
        return column in self.columns


class SyncOutcome(BaseModel):
    """Result of syncing one user to one tenant."""

    success: bool
    status: OutcomeStatus
    user_id: Optional[str] = None
    tenant_id: Optional[str] = None
    site: Optional[str] = None
    site_type: Optional[SiteType] = None
    table: Optional[str] = None
    action: SyncAction = SyncAction.NONE
    message: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    warning: Optional[str] = None
    conflict_key: Optional[str] = None


class BatchSyncResult(BaseModel):
    """Aggregated outcomes of a fan-out."""

    total: int = 0
    success_count: int = 0  # success + partial
    partial_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0
    results: List[SyncOutcome] = Field(default_factory=list)

    @classmethod
    def from_outcomes(cls, outcomes: List[SyncOutcome]) -> "BatchSyncResult":
        statuses = [outcome.status for outcome in outcomes]
        return cls(
            total=len(outcomes),
            success_count=sum(1 for s in statuses if s in (OutcomeStatus.SUCCESS, OutcomeStatus.PARTIAL)),
            partial_count=statuses.count(OutcomeStatus.PARTIAL),
            failed_count=statuses.count(OutcomeStatus.FAILED),
            skipped_count=statuses.count(OutcomeStatus.SKIPPED),
            results=outcomes,
        )


class TenantUsersResult(BaseModel):
    """Users aggregated from every candidate table of one tenant."""

    site: Dict[str, Any]
    users: List[Dict[str, Any]] = Field(default_factory=list)
    count: int = 0
    tables_queried: List[str] = Field(default_factory=list)
    tables_present: List[str] = Field(default_factory=list)  # Tables that answered
    tables_found: List[str] = Field(default_factory=list)  # Tables contributing surviving users
    errors: List[str] = Field(default_factory=list)
