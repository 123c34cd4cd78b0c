"""Monitoring package for logging and request context."""

from sso_sync_api.monitoring.request_context import RequestContextMiddleware

__all__ = [
    "RequestContextMiddleware",
]
