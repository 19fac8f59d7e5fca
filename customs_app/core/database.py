# customs_app/core/database.py
"""Database configuration with separate application and customs warehouse databases."""

import logging
import os

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

load_dotenv()

logger = logging.getLogger(__name__)


def _connect_args(url: str) -> dict:
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


# ===== APPLICATION DATABASE =====
# Stores rule sets, query execution logs and request logs.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./customs_app.db")

engine = create_engine(DATABASE_URL, connect_args=_connect_args(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# ===== CUSTOMS WAREHOUSE DATABASE =====
# Read-only BC20 declaration tables loaded by the ingestion process.
CUSTOMS_DATABASE_URL = os.getenv("CUSTOMS_DATABASE_URL", "sqlite:///./customs_warehouse.db")

customs_engine = create_engine(CUSTOMS_DATABASE_URL, connect_args=_connect_args(CUSTOMS_DATABASE_URL))
CustomsSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=customs_engine)
CustomsBase = declarative_base()


# ===== SESSION GENERATORS =====


def get_db():
    """Get application database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_customs_db():
    """Get customs warehouse database session."""
    db = CustomsSessionLocal()
    try:
        yield db
    finally:
        db.close()


# ===== TABLE CREATION =====


def create_all_tables():
    """Create tables in both databases."""
    # Import models to ensure they're registered with Base classes
    from customs_app.rulesets.models import RuleSet, QueryExecutionLog  # noqa: F401
    from customs_app.logging.models import Log  # noqa: F401
    from customs_app.customs.models import Header  # noqa: F401

    logger.info("Creating application database tables")
    Base.metadata.create_all(bind=engine)

    logger.info("Creating customs warehouse tables")
    CustomsBase.metadata.create_all(bind=customs_engine)


def init_db():
    """Initialize both databases at application startup."""
    create_all_tables()
    logger.info("Database initialization complete")


if __name__ == "__main__":
    # Allow running this file directly to initialize databases
    logging.basicConfig(level=logging.INFO)
    init_db()
