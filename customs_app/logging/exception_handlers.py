# customs_app/logging/exception_handlers.py
"""Exception handlers returning JSON errors and recording 4xx/5xx responses in the log table."""

import json
import logging
import traceback
from datetime import datetime
from typing import Any

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from customs_app.core.config import APPLICATION_ID
from customs_app.core.database import SessionLocal
from customs_app.core.dependencies import default_username
from customs_app.logging.middleware import default_hostname, request_username
from customs_app.logging.models import Log
from customs_app.query.exceptions import DataAccessError, RuleQueryError

logger = logging.getLogger(__name__)

USERNAME = default_username()
HOSTNAME = default_hostname()


def safe_json_dumps(obj: Any) -> str:
    return json.dumps(obj, indent=2, default=str)


def _log_to_db(request: Request, status_code: int, response_body: Any) -> None:
    """Record an error response. Failures to write are logged, never raised."""
    try:
        with SessionLocal() as session:
            session.add(
                Log(
                    timestamp=datetime.now(),
                    method=request.method,
                    path=str(request.url.path),
                    status_code=status_code,
                    client_ip=request.client.host if request.client else None,
                    request_headers=json.dumps(dict(request.headers)),
                    request_body=None,
                    response_body=safe_json_dumps(response_body),
                    processing_time=None,
                    user_agent=request.headers.get("user-agent"),
                    username=request_username(request, USERNAME),
                    hostname=HOSTNAME,
                    application_id=APPLICATION_ID,
                )
            )
            session.commit()
    except SQLAlchemyError:
        logger.exception("Error logging %s response for %s", status_code, request.url.path)


async def general_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions and log them to database"""
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    _log_to_db(
        request,
        500,
        {"error": str(exc), "type": type(exc).__name__, "traceback": traceback.format_exc()},
    )
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


async def response_validation_exception_handler(request: Request, exc: ResponseValidationError):
    _log_to_db(request, 500, exc.errors())
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error: Response validation failed."},
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""

    # Convert errors to a safe format for JSON response
    def convert_error(error):
        if isinstance(error, dict):
            return {k: convert_error(v) for k, v in error.items()}
        elif isinstance(error, list):
            return [convert_error(item) for item in error]
        else:
            return str(error)

    safe_errors = convert_error(exc.errors())
    _log_to_db(request, 422, safe_errors)
    return JSONResponse(status_code=422, content={"detail": safe_errors})


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions and log 4xx/5xx errors"""
    if exc.status_code >= 400:
        _log_to_db(request, exc.status_code, {"detail": exc.detail})

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def rule_query_exception_handler(request: Request, exc: RuleQueryError):
    """Invalid rule trees, fields, operators and sections are client errors."""
    payload = exc.to_dict()
    _log_to_db(request, exc.status_code, payload)
    return JSONResponse(status_code=exc.status_code, content=payload)


async def data_access_exception_handler(request: Request, exc: DataAccessError):
    """Database failures while querying; the cause stays in the log table only."""
    cause = exc.__cause__
    _log_to_db(
        request,
        500,
        {
            "error": exc.message,
            "cause": str(cause) if cause else None,
            "traceback": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        },
    )
    return JSONResponse(status_code=500, content={"detail": exc.message})
