"""Request context middleware: request id and sync target bound to every log line."""
import asyncio
import json
import time
import uuid
from typing import Any
from typing import Callable
from typing import Dict
from typing import Optional

from fastapi import Request
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from sso_sync_api.monitoring.logger import REDACTED_FIELDS

MAX_BODY_LOG_SIZE = 10000

# Body keys naming the user and tenants a request acts on
TARGET_KEYS = ("user_id", "tenant_id", "tenant_ids", "email", "name")

WRITE_METHODS = ("POST", "PUT", "PATCH", "DELETE")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind the request id and sync target to the logger for the whole request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Any:
        """
        Capture request context and add to logging.

        The request id and the redacted JSON body are kept on ``request.state``
        so the error handlers can attach them to their responses and log records.
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        request.state.request_body = None
        if request.method in WRITE_METHODS:
            request.state.request_body = await self._read_body(request)

        sync_target = extract_sync_target(request.state.request_body)

        with logger.contextualize(
            request_id=request_id,
            client_ip=client_ip(request),
            request_path=f"{request.method} {request.url.path}",
            **sync_target,
        ):
            start_time = time.perf_counter()
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000

            logger.info(
                "HTTP request handled",
                http_method=request.method,
                url_path=str(request.url.path),
                status_code=response.status_code,
                response_time_ms=round(duration_ms, 2),
            )

            response.headers["X-Request-ID"] = request_id
            return response

    async def _read_body(self, request: Request) -> Optional[Any]:
        """JSON body with credentials redacted, or a short description when it cannot be logged."""
        try:
            body = await asyncio.wait_for(request.body(), timeout=2.0)
        except asyncio.TimeoutError:
            return {"_error": "Request body read timeout (>2s)"}

        if not body:
            return None
        if "application/json" not in request.headers.get("Content-Type", "").lower():
            return {"_size": len(body)}
        if len(body) > MAX_BODY_LOG_SIZE:
            return {"_truncated": True, "_size": len(body)}

        try:
            parsed = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return {"_error": "Request body is not valid JSON"}

        if isinstance(parsed, dict):
            return {key: ("***" if key.lower() in REDACTED_FIELDS else value) for key, value in parsed.items()}
        return parsed


def client_ip(request: Request) -> str:
    """Real client address, honouring X-Forwarded-For."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def extract_sync_target(body: Optional[Any]) -> Dict[str, Any]:
    """Ids a request body targets, prefixed so they never clash with call-site log fields."""
    if not isinstance(body, dict):
        return {}
    return {f"target_{key}": body[key] for key in TARGET_KEYS if body.get(key) is not None}

