# customs_app/logging/middleware.py
"""Request logging middleware writing every API call to the log table."""

import json
import logging
import platform
import socket
import time
from datetime import datetime
from typing import Callable

from fastapi import Request, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.background import BackgroundTask
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from customs_app.core.config import APPLICATION_ID
from customs_app.core.database import SessionLocal
from customs_app.core.dependencies import default_username
from customs_app.logging.models import Log

logger = logging.getLogger(__name__)

EXCLUDED_PATHS = ("/api/logs", "/api/docs", "/api/redoc", "/api/openapi.json")
BINARY_CONTENT_TYPES = ("spreadsheetml", "octet-stream", "text/csv")


def default_hostname() -> str:
    try:
        return socket.gethostname() or platform.node() or "unknown_host"
    except OSError:
        return "unknown_host"


def request_username(request: Request, fallback: str) -> str:
    return (request.headers.get("x-user") or "").strip() or fallback


def describe_response_body(body: bytes, headers) -> str:
    """Body text for the log; export files are replaced by a short placeholder."""
    content_type = headers.get("content-type", "")
    disposition = headers.get("content-disposition", "")
    if "attachment" in disposition or any(kind in content_type for kind in BINARY_CONTENT_TYPES):
        return f"[Export file: {len(body)} bytes, {content_type or 'unknown type'}]"
    if not body:
        return "[Response body not available]"
    return body.decode("utf-8", errors="ignore")


class LoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.username = default_username()
        self.hostname = default_hostname()
        self.application_id = APPLICATION_ID
        logger.info(
            "Logging middleware initialized with username: %s on host: %s, App ID: %s",
            self.username, self.hostname, self.application_id,
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if any(request.url.path.startswith(path) for path in EXCLUDED_PATHS):
            return await call_next(request)

        start_time = time.time()

        body_bytes = await request.body()
        request_body = body_bytes.decode("utf-8", errors="ignore")

        async def receive() -> dict:
            return {"type": "http.request", "body": body_bytes}

        request = Request(request.scope, receive=receive)

        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000
        status_code = response.status_code
        response_body = b""

        if hasattr(response, "body_iterator"):
            original_iterator = response.body_iterator
            chunks = []

            async def buffer_iterator():
                nonlocal response_body
                async for chunk in original_iterator:
                    chunks.append(chunk)
                    yield chunk
                response_body = b"".join(chunks)

            response.body_iterator = buffer_iterator()
        elif getattr(response, "body", None) is not None:
            response_body = response.body

        username = request_username(request, self.username)

        def log_to_db():
            log = Log(
                timestamp=datetime.now(),
                method=request.method,
                path=str(request.url.path),
                status_code=status_code,
                client_ip=request.client.host if request.client else None,
                request_headers=json.dumps(dict(request.headers)),
                request_body=request_body,
                response_body=describe_response_body(response_body, response.headers),
                processing_time=duration_ms,
                user_agent=request.headers.get("user-agent"),
                username=username,
                hostname=self.hostname,
                application_id=self.application_id,
            )
            try:
                with SessionLocal() as session:
                    session.add(log)
                    session.commit()
            except SQLAlchemyError:
                logger.exception("Failed to write request log for %s %s", request.method, request.url.path)

        response.background = getattr(response, "background", None) or BackgroundTask(log_to_db)
        return response
