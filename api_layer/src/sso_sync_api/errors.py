"""Error handling for the FastAPI application and the sync domain exceptions."""

import pydantic
from fastapi import Request
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger

from sso_sync_api.enums import ErrorKind
from sso_sync_api.monitoring.logger import log_response_info
from sso_sync_api.sync.errors import SyncError

__all__ = [
    "ERROR_KIND_STATUS",
    "handle_broad_exceptions",
    "handle_pydantic_validation_errors",
    "handle_sync_errors",
    "status_for_kind",
]

# HTTP status returned for a failed outcome or an escaped SyncError of each kind
ERROR_KIND_STATUS = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.MISCONFIGURED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NO_VALID_COLUMNS: status.HTTP_400_BAD_REQUEST,
    ErrorKind.REMOTE_READ_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.REMOTE_WRITE_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for_kind(kind: ErrorKind) -> int:
    """HTTP status for an error kind, informational kinds map to 200."""
    return ERROR_KIND_STATUS.get(kind, status.HTTP_200_OK)


# fastapi docs on middlewares: https://fastapi.tiangolo.com/tutorial/middleware/
async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception as err:  # pylint: disable=broad-except
        error_response = {
            "detail": "Internal server error",
            "error_kind": ErrorKind.INTERNAL.value,
            "error_type": type(err).__name__,
            "request_id": getattr(request.state, "request_id", None),
        }

        logger.opt(exception=err).error(
            "Unhandled exception",
            error_message=str(err),
            http_status=500,
            http_method=request.method,
            url_path=str(request.url.path),
            error_type=type(err).__name__,
            request_body=getattr(request.state, "request_body", None),
        )

        response = JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response,
        )
        log_response_info(response)
        return response


# fastapi docs on error handlers: https://fastapi.tiangolo.com/tutorial/handling-errors/
async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    """Handle Pydantic validation errors."""
    errors = exc.errors()
    error_response = {
        "detail": [
            {
                "msg": error["msg"],
                "input": error["input"],
            }
            for error in errors
        ]
    }

    logger.warning(
        f"Validation error: {len(errors)} validation errors",
        http_status=422,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type="ValidationError",
        request_body=getattr(request.state, "request_body", None),
    )

    response = JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
        content=error_response,
    )
    log_response_info(response)

    return response


async def handle_sync_errors(request: Request, exc: SyncError) -> JSONResponse:
    """
    Convert an escaped SyncError into a JSON response.

    Maps error kinds to HTTP status codes:
    - not_found -> 404 Not Found
    - misconfigured, no_valid_columns -> 400 Bad Request
    - remote_read_failed, remote_write_failed -> 502 Bad Gateway (tenant store error)

    Parameters
    ----------
    request : Request
        FastAPI request object
    exc : SyncError
        Domain exception

    Returns
    -------
    JSONResponse
        Body with ``error``, ``error_kind`` and the exception details
    """
    http_status = exc.status_code
    log = logger.error if http_status >= 500 else logger.warning
    log(
        "Sync error",
        error_message=exc.message,
        http_status=http_status,
        http_method=request.method,
        url_path=str(request.url.path),
        error_kind=exc.kind.value,
    )

    response = JSONResponse(status_code=http_status, content=exc.to_dict())
    log_response_info(response)
    return response
