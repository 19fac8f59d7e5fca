# customs_app/logging/dao.py
"""Data Access Objects for the request log."""

from typing import List

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.orm import Session

from customs_app.core.base_dao import BaseDAO
from customs_app.logging.models import Log
from customs_app.logging.schemas import LogFilters


class LogDAO(BaseDAO[Log]):
    """DAO for Log operations."""

    def __init__(self, db_session: Session):
        super().__init__(Log, db_session)

    @staticmethod
    def _conditions(filters: LogFilters) -> list:
        conditions = [Log.timestamp >= filters.since()]
        if filters.status_min is not None:
            conditions.append(Log.status_code >= filters.status_min)
        if filters.status_max is not None:
            conditions.append(Log.status_code <= filters.status_max)
        if filters.search:
            pattern = f"%{filters.search}%"
            searchable = (Log.path, Log.method, Log.client_ip, Log.username, Log.hostname)
            conditions.append(
                or_(
                    *(column.ilike(pattern) for column in searchable),
                    cast(Log.status_code, String).ilike(pattern),
                    Log.application_id.ilike(pattern),
                )
            )
        return conditions

    def find(self, filters: LogFilters, limit: int, offset: int) -> List[Log]:
        """Logs inside the time window, newest first."""
        query = (
            select(Log)
            .where(*self._conditions(filters))
            .order_by(Log.timestamp.desc(), Log.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(self.db.execute(query).scalars().all())

    def count_matching(self, filters: LogFilters) -> int:
        query = select(func.count(Log.id)).where(*self._conditions(filters))
        return self.db.execute(query).scalar() or 0
