# customs_app/logging/service.py
"""Service for reading the request log."""

from typing import List, Optional, Tuple

from customs_app.logging.dao import LogDAO
from customs_app.logging.schemas import LogFilters, LogRead


class LogService:
    def __init__(self, log_dao: LogDAO):
        self.log_dao = log_dao

    def search(self, filters: LogFilters, limit: int = 50, offset: int = 0) -> Tuple[List[LogRead], int]:
        """One page of matching logs plus the total number of matches."""
        logs = self.log_dao.find(filters, limit, offset)
        return [LogRead.model_validate(log) for log in logs], self.log_dao.count_matching(filters)

    def get_by_id(self, log_id: int) -> Optional[LogRead]:
        log = self.log_dao.get_by_id(log_id)
        return LogRead.model_validate(log) if log else None
