# customs_app/core/dependencies.py
"""Shared dependencies: database sessions and the calling user."""

import getpass
import os
from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from customs_app.core.database import get_db, get_customs_db

# Core database dependencies
SessionDep = Annotated[Session, Depends(get_db)]
CustomsSessionDep = Annotated[Session, Depends(get_customs_db)]


def default_username() -> str:
    try:
        return os.environ.get("USER") or os.environ.get("USERNAME") or getpass.getuser() or "unknown_user"
    except Exception:
        return "unknown_user"


@dataclass(frozen=True)
class CurrentUser:
    """Identity of the caller as forwarded by the fronting proxy."""

    username: str
    is_admin: bool = False


def get_current_user(
    x_user: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> CurrentUser:
    """Resolve the caller from X-User / X-User-Role headers."""
    username = (x_user or "").strip() or default_username()
    is_admin = (x_user_role or "").strip().lower() == "admin"
    return CurrentUser(username=username, is_admin=is_admin)


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
