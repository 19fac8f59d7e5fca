# customs_app/rulesets/models.py
"""Saved rule sets and query execution history (application database)."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from customs_app.core.database import Base


class RuleSet(Base):
    """A named rule tree saved by a user for reuse."""

    __tablename__ = "rule_sets"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    rules = Column(JSON, nullable=False)
    owner = Column(String, nullable=False, index=True)
    is_public = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    execution_logs = relationship("QueryExecutionLog", back_populates="rule_set")


class QueryExecutionLog(Base):
    """Log of rule query executions and exports with performance metrics."""

    __tablename__ = "query_execution_logs"

    id = Column(Integer, primary_key=True, index=True)
    rule_set_id = Column(Integer, ForeignKey("rule_sets.id", ondelete="SET NULL"), nullable=True)
    kind = Column(String(20), nullable=False)  # 'query' or 'export'
    executed_by = Column(String, nullable=True)
    execution_time_ms = Column(Float, nullable=True)
    row_count = Column(Integer, nullable=True)
    success = Column(Boolean, nullable=False)
    error_message = Column(String, nullable=True)
    executed_at = Column(DateTime, default=datetime.now)

    rule_set = relationship("RuleSet", back_populates="execution_logs")
