# customs_app/rulesets/service.py
"""Service layer for saved rule sets and for running rule queries."""

import logging
import math
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from customs_app.core.config import RULESET_ADMIN_PER_PAGE, SUGGESTION_LIMIT
from customs_app.core.dependencies import CurrentUser
from customs_app.customs.schemas import HeaderDetail
from customs_app.exports.sections import Section, parse_sections
from customs_app.exports.writer import CustomsExporter, ExportResult
from customs_app.query.builder import PredicateCompiler
from customs_app.query.engine import QueryExecutor
from customs_app.query.exceptions import DataAccessError, RecordNotFoundError, RuleQueryError
from customs_app.query.fields import FIELD_REGISTRY
from customs_app.query.lookups import OPTION_LISTS, ValueLookup
from customs_app.query.rules import parse_rule_tree
from customs_app.rulesets.dao import QueryExecutionLogDAO, RuleSetDAO
from customs_app.rulesets.models import QueryExecutionLog, RuleSet
from customs_app.rulesets.schemas import (
    ExportRequest,
    QueryExecuteRequest,
    RuleSetAdminPage,
    RuleSetCreate,
    RuleSetRead,
    RuleSetUpdate,
)

logger = logging.getLogger(__name__)


class RuleSetService:
    """Service for managing saved rule sets and their visibility."""

    def __init__(self, rule_set_dao: RuleSetDAO, compiler: Optional[PredicateCompiler] = None):
        self.rule_set_dao = rule_set_dao
        self.compiler = compiler or PredicateCompiler()

    async def get_visible(self, user: CurrentUser) -> List[RuleSetRead]:
        """Own rule sets plus public ones."""
        rule_sets = self.rule_set_dao.get_visible(user.username)
        return [self._to_read(rule_set, user) for rule_set in rule_sets]

    async def get_by_id(self, rule_set_id: int, user: CurrentUser) -> RuleSetRead:
        rule_set = await self._get_visible_or_raise(rule_set_id, user)
        return self._to_read(rule_set, user)

    async def create(self, rule_set_data: RuleSetCreate, user: CurrentUser) -> RuleSetRead:
        """Create a rule set owned by the caller. Empty rule trees may be saved."""
        rules = self._validate_rules(rule_set_data.rules)
        rule_set = self.rule_set_dao.create(
            name=rule_set_data.name,
            description=rule_set_data.description,
            rules=rules,
            is_public=rule_set_data.is_public,
            owner=user.username,
        )
        logger.info("Rule set %s created by %s", rule_set.id, user.username)
        return self._to_read(rule_set, user)

    async def update(self, rule_set_id: int, rule_set_data: RuleSetUpdate, user: CurrentUser) -> RuleSetRead:
        """Partial update, owner only."""
        rule_set = await self._get_owned_or_raise(rule_set_id, user)
        # description may be cleared; other fields keep their value when sent as null
        changes = {
            key: value
            for key, value in rule_set_data.model_dump(exclude_unset=True).items()
            if value is not None or key == "description"
        }
        if "rules" in changes:
            changes["rules"] = self._validate_rules(changes["rules"])

        rule_set = self.rule_set_dao.update(rule_set, **changes)
        return self._to_read(rule_set, user)

    async def delete(self, rule_set_id: int, user: CurrentUser) -> bool:
        await self._get_owned_or_raise(rule_set_id, user)
        deleted = self.rule_set_dao.delete(rule_set_id)
        if deleted:
            logger.info("Rule set %s deleted by %s", rule_set_id, user.username)
        return deleted

    async def get_admin_page(
        self, user: CurrentUser, page: int = 1, per_page: int = RULESET_ADMIN_PER_PAGE
    ) -> RuleSetAdminPage:
        """Every rule set with its owner; administrators only."""
        if not user.is_admin:
            raise HTTPException(status_code=403, detail="Administrator access required")
        page = max(1, page)
        per_page = max(1, per_page)
        rule_sets, total = self.rule_set_dao.get_page((page - 1) * per_page, per_page)
        return RuleSetAdminPage(
            data=[self._to_read(rule_set, user) for rule_set in rule_sets],
            current_page=page,
            last_page=max(1, math.ceil(total / per_page)),
            per_page=per_page,
            total=total,
        )

    async def get_rules_for_execution(self, rule_set_id: int, user: CurrentUser) -> Dict[str, Any]:
        rule_set = await self._get_visible_or_raise(rule_set_id, user)
        return rule_set.rules

    # ===== HELPERS =====

    def _validate_rules(self, rules: Dict[str, Any]) -> Dict[str, Any]:
        """Parse and resolve every field; returns the normalised tree for storage."""
        try:
            tree = parse_rule_tree(rules)
            self.compiler.validate(tree)
        except RuleQueryError as e:
            logger.warning("Rejected rule set rules: %s", e.message)
            raise
        return tree.to_dict()

    async def _get_or_404(self, rule_set_id: int) -> RuleSet:
        rule_set = self.rule_set_dao.get_by_id(rule_set_id)
        if not rule_set:
            raise HTTPException(status_code=404, detail="Rule set not found")
        return rule_set

    async def _get_visible_or_raise(self, rule_set_id: int, user: CurrentUser) -> RuleSet:
        rule_set = await self._get_or_404(rule_set_id)
        if not (rule_set.is_public or user.is_admin or rule_set.owner == user.username):
            raise HTTPException(status_code=403, detail="You do not have access to this rule set")
        return rule_set

    async def _get_owned_or_raise(self, rule_set_id: int, user: CurrentUser) -> RuleSet:
        rule_set = await self._get_or_404(rule_set_id)
        if rule_set.owner != user.username:
            raise HTTPException(status_code=403, detail="Only the owner can modify this rule set")
        return rule_set

    @staticmethod
    def _to_read(rule_set: RuleSet, user: CurrentUser) -> RuleSetRead:
        read = RuleSetRead.model_validate(rule_set)
        read.is_owner = rule_set.owner == user.username
        return read


class QueryService:
    """Runs rule queries and exports and records each run in the execution log."""

    def __init__(
        self,
        executor: QueryExecutor,
        execution_log_dao: QueryExecutionLogDAO,
        exporter: Optional[CustomsExporter] = None,
        lookup: Optional[ValueLookup] = None,
    ):
        self.executor = executor
        self.execution_log_dao = execution_log_dao
        self.exporter = exporter or CustomsExporter(executor)
        self.lookup = lookup or ValueLookup(executor.session)

    def get_available_fields(self) -> List[Dict[str, Any]]:
        return FIELD_REGISTRY.available_fields()

    async def get_suggestions(self, field_name: str, term: str, limit: int = SUGGESTION_LIMIT) -> List[str]:
        """Distinct values of a text field that match what the user has typed so far."""
        return self.lookup.suggest(field_name, term, limit)

    async def get_options(self, name: str) -> List[Dict[str, str]]:
        if name not in OPTION_LISTS:
            raise HTTPException(status_code=404, detail=f"Unknown option list '{name}'")
        return self.lookup.options(name)

    async def execute(
        self,
        request: QueryExecuteRequest,
        user: CurrentUser,
        rule_set_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Execute one page of a rule query."""
        start_time = time.time()
        try:
            sections = parse_sections(request.sections) if request.sections else None
            result = self.executor.execute(
                request.rules,
                page=request.page,
                per_page=request.per_page,
                sort_by=request.sort_by,
                sort_direction=request.sort_direction,
                sections=sections,
            )
        except (RuleQueryError, DataAccessError) as e:
            self._record_failure("query", e, start_time, user, rule_set_id)
            raise

        self._log_execution(
            rule_set_id, "query", user.username,
            (time.time() - start_time) * 1000, result.total, True,
        )
        return result.to_dict()

    async def detail(self, idheader: int) -> HeaderDetail:
        try:
            header = self.executor.detail(idheader)
        except RecordNotFoundError:
            raise HTTPException(status_code=404, detail="Record not found")
        return HeaderDetail.model_validate(header)

    async def export(self, request: ExportRequest, user: CurrentUser, complete: bool = False) -> ExportResult:
        """Build an export file for every matching declaration."""
        start_time = time.time()
        try:
            sections = list(Section) if complete else parse_sections(request.sections)
            if request.format == "csv":
                result = self.exporter.export_csv(
                    request.rules, sections, request.sort_by, request.sort_direction, request.filename
                )
            else:
                result = self.exporter.export_xlsx(
                    request.rules, sections, request.layout,
                    request.sort_by, request.sort_direction, request.filename,
                )
        except (RuleQueryError, DataAccessError) as e:
            self._record_failure("export", e, start_time, user)
            raise

        self._log_execution(
            None, "export", user.username,
            (time.time() - start_time) * 1000, result.row_count, True,
        )
        return result

    def _record_failure(
        self, kind: str, error: Exception, start_time: float, user: CurrentUser, rule_set_id: Optional[int] = None
    ) -> None:
        message = getattr(error, "message", str(error))
        if isinstance(error, RuleQueryError):
            logger.warning("Rejected %s for %s: %s", kind, user.username, message)
        self._log_execution(
            rule_set_id, kind, user.username, (time.time() - start_time) * 1000, 0, False, message
        )

    def _log_execution(
        self,
        rule_set_id: Optional[int],
        kind: str,
        executed_by: str,
        execution_time_ms: float,
        row_count: int,
        success: bool,
        error_message: Optional[str] = None,
    ) -> None:
        """Log query execution."""
        execution_log = QueryExecutionLog(
            rule_set_id=rule_set_id,
            kind=kind,
            executed_by=executed_by,
            execution_time_ms=execution_time_ms,
            row_count=row_count,
            success=success,
            error_message=error_message,
            executed_at=datetime.now(),
        )
        self.execution_log_dao.create(execution_log)
