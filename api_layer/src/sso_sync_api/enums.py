"""
Sync Enums

All enum types used by the tenant sync engine, the user reader and the API.
Values are persisted (sync log) or returned to API callers, keep them stable.
"""

from enum import Enum

# ════════════════════════════════════════════════════════════════════════════
# Tenant Classification Enums
# ════════════════════════════════════════════════════════════════════════════


class SiteType(str, Enum):
    """Closed classification of a connected tenant site."""

    HRMS = "hrms"
    SALES = "sales"
    CMS = "cms"
    GARAGE = "garage"
    GENERIC = "generic"


class CanonicalRole(str, Enum):
    """Roles of the central user registry."""

    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"


# ════════════════════════════════════════════════════════════════════════════
# Sync Log Enums
# ════════════════════════════════════════════════════════════════════════════


class SyncLogStatus(str, Enum):
    """Status of one (user, tenant) sync attempt in the sync log."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"


class SyncType(str, Enum):
    """How a sync attempt was triggered."""

    SINGLE = "single"  # One user to one tenant
    MULTI = "multi"  # One user fanned out to several tenants
    BULK = "bulk"  # All users to all tenants


# ════════════════════════════════════════════════════════════════════════════
# Outcome Enums
# ════════════════════════════════════════════════════════════════════════════


class OutcomeStatus(str, Enum):
    """Overall status of a sync outcome."""

    SUCCESS = "success"
    PARTIAL = "partial"  # Profile written, identity step failed
    FAILED = "failed"
    SKIPPED = "skipped"  # Already synced, nothing done


class SyncAction(str, Enum):
    """What happened to the tenant row."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    NONE = "none"


class ErrorKind(str, Enum):
    """Error taxonomy surfaced to API callers."""

    NOT_FOUND = "not_found"
    MISCONFIGURED = "misconfigured"
    REMOTE_READ_FAILED = "remote_read_failed"
    REMOTE_WRITE_FAILED = "remote_write_failed"
    NO_VALID_COLUMNS = "no_valid_columns"
    PARTIAL_WARNING = "partial_warning"
    SCHEMA_DEFAULTED = "schema_defaulted"  # Informational only
    INTERNAL = "internal"
