"""
Field Mapper / Role Normalizer

Translates canonical users into tenant rows (write direction) and tenant
rows back into the canonical shape (read direction). Both directions are
driven by the synonym tables below and never raise: a missing column only
means fewer fields are set, an unknown role passes through unchanged.
"""

from datetime import datetime
from datetime import timezone
from typing import Any
from typing import Dict
from typing import Iterable
from typing import Optional
from typing import Tuple

from sso_sync_api.enums import SiteType
from sso_sync_api.registry.models import CanonicalUser
from sso_sync_api.registry.models import normalize_email
from sso_sync_api.sync.models import TableSchema

# Canonical field -> tenant column candidates, preferred first
WRITE_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "full_name": ("full_name", "name", "display_name", "employee_name"),
    "email": ("email",),
    "role": ("role", "user_role", "position"),
    "department": ("department", "dept", "department_name"),
    "team": ("team", "team_name"),
    "phone": ("phone", "phone_number", "mobile"),
    "avatar_url": ("avatar_url", "avatar", "profile_picture"),
}

# Read direction adds identity and timestamp fields
READ_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "id": ("id", "user_id", "clerk_user_id", "employee_id"),
    "clerk_user_id": ("clerk_user_id",),
    **WRITE_SYNONYMS,
    "created_at": ("created_at", "created_date"),
    "updated_at": ("updated_at", "modified_at", "created_at"),
}

UPDATED_AT_COLUMNS = ("updated_at", "modified_at")

# ════════════════════════════════════════════════════════════════════════════
# Role translation
# ════════════════════════════════════════════════════════════════════════════

SALES_WRITE_ROLES = {"admin": "owner", "owner": "owner", "manager": "manager"}
CMS_ROLES = {"admin": "admin", "administrator": "admin", "hr": "hr", "manager": "hr", "user": "hr"}

SALES_READ_ROLES = {
    "owner": "owner",
    "admin": "owner",
    "manager": "manager",
    "sales_manager": "manager",
    "salesman": "salesman",
    "sales_rep": "salesman",
    "user": "salesman",
}
GENERIC_READ_ROLES = {
    "admin": "admin",
    "administrator": "admin",
    "owner": "admin",
    "manager": "manager",
    "supervisor": "manager",
    "lead": "manager",
    "user": "user",
    "employee": "user",
    "staff": "user",
    "member": "user",
}


def _role_key(role: Optional[str]) -> str:
    return str(role or "").strip().lower()


def to_tenant_role(role: Optional[str], site_type: SiteType) -> Optional[str]:
    """
    Translate a canonical role into the tenant's role vocabulary.

    sales: admin/owner -> owner, manager -> manager, anything else -> salesman.
    cms: admin/administrator -> admin, hr/manager/user -> hr, else unchanged.
    Other site types pass the role through.
    """
    key = _role_key(role)
    if site_type == SiteType.SALES:
        return SALES_WRITE_ROLES.get(key, "salesman")
    if site_type == SiteType.CMS:
        return CMS_ROLES.get(key, role)
    return role


def normalize_role(raw: Optional[str], site_type: SiteType) -> Optional[str]:
    """
    Normalize a role read from a tenant row.

    Sales values outside the sales table fall through to the generic table,
    unrecognized values are returned unchanged.
    """
    if raw is None:
        return None
    key = _role_key(raw)
    if site_type == SiteType.SALES and key in SALES_READ_ROLES:
        return SALES_READ_ROLES[key]
    if site_type == SiteType.CMS:
        return CMS_ROLES.get(key, raw)
    return GENERIC_READ_ROLES.get(key, raw)


# ════════════════════════════════════════════════════════════════════════════
# Write direction
# ════════════════════════════════════════════════════════════════════════════


def first_column(columns: Iterable[str], candidates: Iterable[str]) -> Optional[str]:
    """First candidate present in ``columns``."""
    available = set(columns)
    for candidate in candidates:
        if candidate in available:
            return candidate
    return None


def _utc_now_iso(now: Optional[datetime]) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def _stamp_updated_at(row: Dict[str, Any], columns: Iterable[str], now: Optional[datetime]) -> None:
    column = first_column(columns, UPDATED_AT_COLUMNS)
    if column:
        row[column] = _utc_now_iso(now)


def build_row(
    user: CanonicalUser,
    schema: TableSchema,
    site_type: SiteType,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Build the tenant row for a canonical user.

    A field is included only when one of its candidate columns exists and
    the user has a value for it. The credential secret is never included.
    The row key (``id``) is set by the caller.

    Args:
        user: Canonical user
        schema: Sampled target table schema
        site_type: Tenant site type (drives role translation)
        now: Timestamp for the updated-at column, defaults to current UTC time

    Returns:
        Row payload keyed by tenant column names
    """
    row: Dict[str, Any] = {}
    for field, candidates in WRITE_SYNONYMS.items():
        column = first_column(schema.columns, candidates)
        if column is None:
            continue
        value = getattr(user, field, None)
        if field == "email":
            value = normalize_email(value)
        elif field == "role":
            value = to_tenant_role(value, site_type)
        if value is None or value == "":
            continue
        row[column] = value

    if schema.has_column("clerk_user_id"):
        row["clerk_user_id"] = user.id
    if schema.has_column("is_active"):
        row["is_active"] = True
    if schema.has_column("employee_status"):
        row["employee_status"] = "Active"

    _stamp_updated_at(row, schema.columns, now)
    return row


def build_patch(
    patch: Dict[str, Any],
    columns: Iterable[str],
    site_type: SiteType,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Map a partial canonical update onto tenant columns.

    Only keys present in ``patch`` are mapped, explicit ``None`` clears the
    column. Returns an empty dict when nothing maps, the updated-at stamp
    is only added to a non-empty payload.
    """
    columns = list(columns)
    payload: Dict[str, Any] = {}
    for field, candidates in WRITE_SYNONYMS.items():
        if field not in patch:
            continue
        column = first_column(columns, candidates)
        if column is None:
            continue
        value = patch[field]
        if field == "email" and value is not None:
            value = normalize_email(value)
        elif field == "role" and value is not None:
            value = to_tenant_role(value, site_type)
        payload[column] = value

    if payload:
        _stamp_updated_at(payload, columns, now)
    return payload


# ════════════════════════════════════════════════════════════════════════════
# Read direction
# ════════════════════════════════════════════════════════════════════════════


def first_value(row: Dict[str, Any], candidates: Iterable[str]) -> Any:
    """First truthy value among the candidate keys."""
    for candidate in candidates:
        value = row.get(candidate)
        if value not in (None, ""):
            return value
    return None


def normalize_row(row: Dict[str, Any], site_type: SiteType) -> Dict[str, Any]:
    """Convert a tenant row (tagged with ``_source_table``) into the canonical user shape."""
    normalized = {field: first_value(row, candidates) for field, candidates in READ_SYNONYMS.items()}
    normalized["id"] = str(normalized["id"]) if normalized["id"] is not None else ""
    normalized["email"] = normalize_email(normalized["email"])
    normalized["role"] = normalize_role(normalized["role"], site_type)
    normalized["source_table"] = row.get("_source_table")
    return normalized
