import json
import logging
import sys
import traceback

import loguru
from fastapi import Request
from fastapi import Response
from loguru import logger

# Fields never rendered into log records, whatever the caller passed
REDACTED_FIELDS = {"public_key", "elevated_key", "credential_secret", "password", "apikey", "authorization"}


# Logger configuration runs at import time (sso_sync_api/__init__.py) and again in create_app
def configure_logger(log_level: str = "INFO", environment: str | None = None):
    """
    Configure the loguru logger with a single stdout sink.

    Args:
        log_level: Minimum level rendered on stdout
        environment: Deployment environment name bound to every record
    """
    # Suppress verbose HTTP client logging, tenant calls are logged by the store client
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger.remove()  # remove the default logger

    logger.configure(extra={"environment": environment} if environment else {})

    logger.add(
        sink=sys.stdout,
        level=log_level.upper(),
        diagnose=False,
        format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <bold><white>{message}</white></bold> | <dim>{extra}</dim> {stacktrace}",
        filter=process_log_record,
    )


def process_log_record(record: "loguru.Record") -> "loguru.Record":
    r"""
    Inject transformed metadata into each log record before they are passed to the formatter.

    1. Redact credential-like keys from the "extra" field.
    2. Serialize the "extra" field to JSON so that it renders on a single line.
    3. For error logs, add a traceback with \r instead of \n so that log shippers do not
       split the traceback into multiple log events.
    """
    extra = record["extra"]

    # serialize "extra" field to JSON, once: every sink's filter sees the same record
    if extra and isinstance(extra, dict):
        safe_extra = {key: ("***" if key.lower() in REDACTED_FIELDS else value) for key, value in extra.items()}
        record["extra"] = json.dumps(safe_extra, default=str)

    # add stacktrace to log record
    record["stacktrace"] = ""
    if record["exception"]:
        err = record["exception"]
        stacktrace = get_formatted_stacktrace(err, replace_newline_character_with_carriage_return=True)
        record["stacktrace"] = stacktrace

    return record


def get_formatted_stacktrace(loguru_record_exception, replace_newline_character_with_carriage_return: bool) -> str:
    """Get the formatted stacktrace for the current exception."""
    exc_type, exc_value, exc_traceback = loguru_record_exception
    stacktrace_: list[str] = traceback.format_exception(exc_type, exc_value, exc_traceback)
    stacktrace: str = "".join(stacktrace_)
    if replace_newline_character_with_carriage_return:
        stacktrace = stacktrace.replace("\n", "\r")
    return stacktrace


def log_request_info(request: Request):
    """Log the request info."""
    request_info = {
        "method": request.method,
        "path": request.url.path,
        "query_params": dict(request.query_params.items()),
        "path_params": dict(request.path_params.items()),
        "base_url": str(request.base_url),
        "client": str(request.client),
    }
    logger.debug("Request received", http_request=request_info)


def log_response_info(response: Response):
    """Log the response info."""
    response_info = {
        "status_code": response.status_code,
        "headers": dict(response.headers.items()),
    }
    logger.debug("Response sent", http_response=response_info)
