"""
Tenant Store Errors

Typed errors raised by TenantStoreClient. Callers decide which of them are
fatal: the schema inspector and the user reader treat TableNotFoundError as
"candidate not applicable", the sync engine surfaces everything else.
"""

from typing import Optional

# PostgREST / PostgreSQL codes meaning "relation does not exist"
TABLE_NOT_FOUND_CODES = {"PGRST205", "42P01", "PGRST106"}

# PostgREST / PostgreSQL codes meaning "column does not exist"
COLUMN_NOT_FOUND_CODES = {"PGRST204", "42703"}


class TenantStoreError(Exception):
    """Base error for every failed call to a tenant store."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        table: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.table = table

    def __str__(self) -> str:
        return self.message


class RemoteStoreError(TenantStoreError):
    """The tenant store answered with an error other than a missing table or column."""


class TableNotFoundError(RemoteStoreError):
    """The requested table does not exist in the tenant store."""


class ColumnNotFoundError(RemoteStoreError):
    """A filter, order or payload column does not exist in the table."""


class RemoteTimeoutError(RemoteStoreError):
    """The tenant store did not answer within the configured timeout."""


def is_table_missing_message(message: str) -> bool:
    """Match "does not exist" style messages returned without a usable code."""
    lowered = (message or "").lower()
    return "does not exist" in lowered or "could not find the table" in lowered
