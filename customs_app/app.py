"""FastAPI application factory for the customs rule-set query service."""

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.middleware.cors import CORSMiddleware

from customs_app.core.database import init_db
from customs_app.core.router import register_routes
from customs_app.logging.exception_handlers import (
    data_access_exception_handler,
    general_exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
    response_validation_exception_handler,
    rule_query_exception_handler,
)
from customs_app.logging.middleware import LoggingMiddleware
from customs_app.query.exceptions import DataAccessError, RuleQueryError


def create_app() -> FastAPI:

    app = FastAPI(
        title="Customs Rule-Set Query Service",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    init_db()

    # Add request logger middleware
    app.add_middleware(LoggingMiddleware)

    # Response validation errors are not seen by the middleware
    app.add_exception_handler(ResponseValidationError, response_validation_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(RuleQueryError, rule_query_exception_handler)
    app.add_exception_handler(DataAccessError, data_access_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, replace with specific origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Total-Count"],
    )

    register_routes(app)

    return app
