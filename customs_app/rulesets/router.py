"""API router for saved rule sets, rule queries and exports."""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response

from customs_app.core.config import RULESET_ADMIN_PER_PAGE, SUGGESTION_LIMIT, SUGGESTION_MAX_LIMIT
from customs_app.core.dependencies import CurrentUserDep, CustomsSessionDep, SessionDep
from customs_app.customs.schemas import HeaderDetail
from customs_app.exports.writer import CustomsExporter
from customs_app.query.engine import QueryExecutor
from customs_app.rulesets.dao import QueryExecutionLogDAO, RuleSetDAO
from customs_app.rulesets.schemas import (
    ExportRequest,
    QueryExecuteRequest,
    RuleSetAdminPage,
    RuleSetCreate,
    RuleSetCreateResponse,
    RuleSetMessage,
    RuleSetRead,
    RuleSetUpdate,
    SavedRuleSetExecuteRequest,
)
from customs_app.rulesets.service import QueryService, RuleSetService

router = APIRouter(prefix="/rulesets", tags=["rulesets"])


# Dependency functions
def get_rule_set_dao(db: SessionDep) -> RuleSetDAO:
    return RuleSetDAO(db)


def get_execution_log_dao(db: SessionDep) -> QueryExecutionLogDAO:
    return QueryExecutionLogDAO(db)


def get_query_executor(customs_db: CustomsSessionDep) -> QueryExecutor:
    return QueryExecutor(customs_db)


def get_rule_set_service(rule_set_dao: RuleSetDAO = Depends(get_rule_set_dao)) -> RuleSetService:
    return RuleSetService(rule_set_dao)


def get_query_service(
    executor: QueryExecutor = Depends(get_query_executor),
    execution_log_dao: QueryExecutionLogDAO = Depends(get_execution_log_dao),
) -> QueryService:
    return QueryService(executor, execution_log_dao, CustomsExporter(executor))


def content_disposition(filename: str) -> str:
    """Attachment header value. Names that need percent-encoding also get an RFC 5987 filename*."""
    quoted = quote(filename)
    if quoted == filename:
        return f'attachment; filename="{filename}"'
    fallback = "".join(char if " " <= char < "\x7f" and char not in '"\\' else "_" for char in filename)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quoted}"


def _file_response(content: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": content_disposition(filename)},
    )


# ===== QUERY ENDPOINTS =====


@router.get("/queries/fields", response_model=List[Dict[str, Any]])
def get_available_fields(service: QueryService = Depends(get_query_service)) -> List[Dict[str, Any]]:
    """Fields the rule builder can filter on, with their allowed operators."""
    return service.get_available_fields()


@router.post("/queries/execute", response_model=Dict[str, Any])
async def execute_query(
    request: QueryExecuteRequest,
    user: CurrentUserDep,
    service: QueryService = Depends(get_query_service),
) -> Dict[str, Any]:
    """Execute an ad-hoc rule tree and return one page of declarations."""
    return await service.execute(request, user)


@router.get("/queries/suggestions/{field_name}", response_model=List[str])
async def get_value_suggestions(
    field_name: str,
    q: str = Query(..., min_length=1, max_length=255),
    limit: int = Query(SUGGESTION_LIMIT, ge=1, le=SUGGESTION_MAX_LIMIT),
    service: QueryService = Depends(get_query_service),
) -> List[str]:
    """Autocomplete values for a text field."""
    return await service.get_suggestions(field_name, q, limit)


@router.get("/queries/options/{name}", response_model=List[Dict[str, str]])
async def get_option_list(name: str, service: QueryService = Depends(get_query_service)) -> List[Dict[str, str]]:
    """Dropdown options: document-codes, process-codes, customs-routes or response-statuses."""
    return await service.get_options(name)


@router.get("/queries/{idheader}", response_model=HeaderDetail)
async def get_declaration_detail(
    idheader: int, service: QueryService = Depends(get_query_service)
) -> HeaderDetail:
    """Full declaration with every child table."""
    return await service.detail(idheader)


@router.post("/export/excel")
async def export_query(
    request: ExportRequest,
    user: CurrentUserDep,
    service: QueryService = Depends(get_query_service),
) -> Response:
    """Export every matching declaration as xlsx (sheets or flat) or CSV."""
    result = await service.export(request, user)
    return _file_response(result.content, result.media_type, result.filename)


@router.post("/export/complete")
async def export_complete(
    request: ExportRequest,
    user: CurrentUserDep,
    service: QueryService = Depends(get_query_service),
) -> Response:
    """Export with every section regardless of the requested ones."""
    result = await service.export(request, user, complete=True)
    return _file_response(result.content, result.media_type, result.filename)


# ===== RULE SET ENDPOINTS =====


@router.get("/admin/all", response_model=RuleSetAdminPage)
async def get_all_rule_sets(
    user: CurrentUserDep,
    page: int = Query(1, ge=1),
    per_page: int = Query(RULESET_ADMIN_PER_PAGE, ge=1, le=100),
    service: RuleSetService = Depends(get_rule_set_service),
) -> RuleSetAdminPage:
    """Every rule set with its owner (administrators only)."""
    return await service.get_admin_page(user, page, per_page)


@router.get("/", response_model=List[RuleSetRead])
async def get_rule_sets(
    user: CurrentUserDep, service: RuleSetService = Depends(get_rule_set_service)
) -> List[RuleSetRead]:
    """Rule sets owned by the caller plus public ones."""
    return await service.get_visible(user)


@router.post("/", response_model=RuleSetCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_rule_set(
    rule_set_data: RuleSetCreate,
    user: CurrentUserDep,
    service: RuleSetService = Depends(get_rule_set_service),
) -> RuleSetCreateResponse:
    """Save a new rule set."""
    rule_set = await service.create(rule_set_data, user)
    return RuleSetCreateResponse(message="Rule set created successfully", rule_set=rule_set)


@router.get("/{rule_set_id}", response_model=RuleSetRead)
async def get_rule_set(
    rule_set_id: int, user: CurrentUserDep, service: RuleSetService = Depends(get_rule_set_service)
) -> RuleSetRead:
    return await service.get_by_id(rule_set_id, user)


@router.put("/{rule_set_id}", response_model=RuleSetRead)
async def update_rule_set(
    rule_set_id: int,
    rule_set_data: RuleSetUpdate,
    user: CurrentUserDep,
    service: RuleSetService = Depends(get_rule_set_service),
) -> RuleSetRead:
    """Update a rule set (owner only)."""
    return await service.update(rule_set_id, rule_set_data, user)


@router.delete("/{rule_set_id}", response_model=RuleSetMessage)
async def delete_rule_set(
    rule_set_id: int, user: CurrentUserDep, service: RuleSetService = Depends(get_rule_set_service)
) -> RuleSetMessage:
    """Delete a rule set (owner only)."""
    await service.delete(rule_set_id, user)
    return RuleSetMessage(message="Rule set deleted successfully")


@router.post("/{rule_set_id}/execute", response_model=Dict[str, Any])
async def execute_rule_set(
    rule_set_id: int,
    user: CurrentUserDep,
    options: Optional[SavedRuleSetExecuteRequest] = None,
    rule_set_service: RuleSetService = Depends(get_rule_set_service),
    query_service: QueryService = Depends(get_query_service),
) -> Dict[str, Any]:
    """Run a saved rule set with the given paging options."""
    options = options or SavedRuleSetExecuteRequest()
    rules = await rule_set_service.get_rules_for_execution(rule_set_id, user)
    request = QueryExecuteRequest(rules=rules, **options.model_dump())
    return await query_service.execute(request, user, rule_set_id=rule_set_id)
