# customs_app/core/router.py
"""Registers the API routers on the FastAPI application."""

from fastapi import FastAPI

from customs_app.logging.router import router as log_router
from customs_app.rulesets.router import router as rule_set_router


def register_routes(app: FastAPI) -> None:
    """
    Registers all the routes for the FastAPI application.

    Args:
        app (FastAPI): The FastAPI application instance.
    """
    app.include_router(rule_set_router, prefix="/api")
    app.include_router(log_router, prefix="/api")
