"""
Site Types

Classification of tenants into site types and the static per-site-type
tables driving table selection, column defaults and role vocabularies.
"""

from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple

from sso_sync_api.enums import SiteType
from sso_sync_api.sync.models import RoleOption

# First match wins
SITE_TYPE_CUES: List[Tuple[SiteType, Tuple[str, ...]]] = [
    (SiteType.HRMS, ("hrms", "hr")),
    (SiteType.SALES, ("sales",)),
    (SiteType.CMS, ("cms",)),
    (SiteType.GARAGE, ("garage",)),
]

DEFAULT_WRITE_TABLE: Dict[SiteType, str] = {
    SiteType.SALES: "users",
    SiteType.HRMS: "employees",
    SiteType.CMS: "hr_users",
}
FALLBACK_WRITE_TABLE = "user_profiles"

# Most specific first
CANDIDATE_TABLES: Dict[SiteType, List[str]] = {
    SiteType.SALES: ["sales_managers", "managers", "sales_team", "sales_users", "users", "user_profiles"],
    SiteType.HRMS: ["employees", "user_profiles", "staff", "hr_users", "users"],
    SiteType.CMS: ["hr_users", "editors", "authors", "cms_users", "users", "user_profiles"],
    SiteType.GARAGE: ["mechanics", "staff", "garage_users", "users", "user_profiles"],
    SiteType.GENERIC: ["user_profiles", "users", "employees", "staff", "managers"],
}

ROLE_VOCABULARY: Dict[SiteType, List[Tuple[str, str]]] = {
    SiteType.SALES: [("owner", "Owner"), ("manager", "Manager"), ("salesman", "Salesman")],
    SiteType.HRMS: [("admin", "Admin"), ("manager", "Manager"), ("user", "User"), ("employee", "Employee")],
    SiteType.CMS: [("admin", "Admin"), ("hr", "HR"), ("editor", "Editor"), ("author", "Author"), ("user", "User")],
    SiteType.GARAGE: [("admin", "Admin"), ("manager", "Manager"), ("mechanic", "Mechanic"), ("staff", "Staff")],
}
DEFAULT_ROLE_VOCABULARY: List[Tuple[str, str]] = [("admin", "Admin"), ("manager", "Manager"), ("user", "User")]

# Keyed by (site type, table name)
DEFAULT_COLUMNS: Dict[Tuple[SiteType, str], List[str]] = {
    (SiteType.SALES, "users"): [
        "id",
        "email",
        "full_name",
        "role",
        "phone",
        "department",
        "is_active",
        "created_at",
        "updated_at",
    ],
    (SiteType.HRMS, "employees"): [
        "id",
        "email",
        "full_name",
        "role",
        "department",
        "employee_status",
        "created_at",
        "updated_at",
    ],
    (SiteType.CMS, "hr_users"): [
        "id",
        "email",
        "full_name",
        "role",
        "department",
        "phone",
        "created_at",
        "updated_at",
    ],
}
USER_PROFILES_COLUMNS: List[str] = [
    "id",
    "clerk_user_id",
    "email",
    "full_name",
    "avatar_url",
    "role",
    "team",
    "department",
    "phone",
    "created_at",
    "updated_at",
]


def classify_site_type(name: Optional[str], category: Optional[str]) -> SiteType:
    """
    Classify a tenant from its name and category.

    Case-insensitive and whitespace-trimmed, first match wins:

    1. category equals a site type value
    2. name contains a cue (hrms/hr, sales, cms, garage, in that order)
    3. category contains a cue, same order
    4. generic

    Note that "hr" is a plain substring cue, so any name containing it
    (e.g. "chrome-shop") classifies as hrms.
    """
    name_value = (name or "").strip().lower()
    category_value = (category or "").strip().lower()

    for site_type in SiteType:
        if category_value == site_type.value:
            return site_type

    for text in (name_value, category_value):
        if not text:
            continue
        for site_type, cues in SITE_TYPE_CUES:
            if any(cue in text for cue in cues):
                return site_type

    return SiteType.GENERIC


def default_table_for(site_type: SiteType) -> str:
    """Table written to when the caller gives no override."""
    return DEFAULT_WRITE_TABLE.get(site_type, FALLBACK_WRITE_TABLE)


def candidate_tables_for(site_type: SiteType) -> List[str]:
    """Ordered candidate tables read by the user reader."""
    return list(CANDIDATE_TABLES.get(site_type, CANDIDATE_TABLES[SiteType.GENERIC]))


def write_target_tables(site_type: SiteType) -> List[str]:
    """Ordered tables sampled to pick a write target: default first, then the remaining candidates."""
    default_table = default_table_for(site_type)
    return [default_table] + [table for table in candidate_tables_for(site_type) if table != default_table]


def roles_for(site_type: SiteType) -> List[RoleOption]:
    """Role vocabulary of a site type."""
    pairs = ROLE_VOCABULARY.get(site_type, DEFAULT_ROLE_VOCABULARY)
    return [RoleOption(value=value, label=label) for value, label in pairs]


def default_columns_for(site_type: SiteType, table_name: str) -> List[str]:
    """Static column set for a table, falling back to the user_profiles shape."""
    return list(DEFAULT_COLUMNS.get((site_type, table_name), USER_PROFILES_COLUMNS))
