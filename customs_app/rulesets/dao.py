# customs_app/rulesets/dao.py
"""Data Access Objects for rule sets and their execution logs."""

from typing import List, Tuple

from sqlalchemy import desc, func, or_, select
from sqlalchemy.orm import Session

from customs_app.core.base_dao import BaseDAO
from customs_app.rulesets.models import QueryExecutionLog, RuleSet


class RuleSetDAO(BaseDAO[RuleSet]):
    """DAO for RuleSet operations."""

    def __init__(self, db_session: Session):
        super().__init__(RuleSet, db_session)

    def get_visible(self, owner: str) -> List[RuleSet]:
        """Rule sets owned by the user plus all public ones, newest first."""
        query = (
            select(RuleSet)
            .where(or_(RuleSet.owner == owner, RuleSet.is_public.is_(True)))
            .order_by(desc(RuleSet.created_at), desc(RuleSet.id))
        )
        return list(self.db.execute(query).scalars().all())

    def get_page(self, offset: int, limit: int) -> Tuple[List[RuleSet], int]:
        """Every rule set, newest first, with the total count."""
        total = self.db.execute(select(func.count(RuleSet.id))).scalar() or 0
        query = select(RuleSet).order_by(desc(RuleSet.created_at), desc(RuleSet.id)).offset(offset).limit(limit)
        return list(self.db.execute(query).scalars().all()), total


class QueryExecutionLogDAO:
    """DAO for query execution log operations."""

    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, execution_log: QueryExecutionLog) -> QueryExecutionLog:
        """Create a new execution log entry."""
        self.db.add(execution_log)
        self.db.commit()
        self.db.refresh(execution_log)
        return execution_log
