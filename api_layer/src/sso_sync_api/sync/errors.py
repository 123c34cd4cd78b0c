"""
Sync Errors

Domain exceptions of the sync engine, the user reader and the tenant user
admin. Each carries an ErrorKind and the HTTP status the API maps it to.
"""

from typing import Any
from typing import Dict

from fastapi import status

from sso_sync_api.enums import ErrorKind


class SyncError(Exception):
    """Base class for typed sync failures."""

    kind: ErrorKind = ErrorKind.INTERNAL
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """JSON body returned to API callers."""
        return {"error": self.message, "error_kind": self.kind.value, **self.details}


class NotFoundError(SyncError):
    """User, tenant or tenant row missing (or tenant inactive)."""

    kind = ErrorKind.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND


class MisconfiguredError(SyncError):
    """Tenant lacks the endpoint or credentials the operation needs."""

    kind = ErrorKind.MISCONFIGURED
    status_code = status.HTTP_400_BAD_REQUEST


class NoValidColumnsError(SyncError):
    """A patch maps onto no column of the target table."""

    kind = ErrorKind.NO_VALID_COLUMNS
    status_code = status.HTTP_400_BAD_REQUEST


class RemoteReadFailedError(SyncError):
    """The tenant store failed a read with something other than "does not exist"."""

    kind = ErrorKind.REMOTE_READ_FAILED
    status_code = status.HTTP_502_BAD_GATEWAY


class RemoteWriteFailedError(SyncError):
    """The tenant store rejected a write. ``details`` carries its raw error text."""

    kind = ErrorKind.REMOTE_WRITE_FAILED
    status_code = status.HTTP_502_BAD_GATEWAY
