"""API router for reading the request log."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from customs_app.core.dependencies import SessionDep
from customs_app.logging.dao import LogDAO
from customs_app.logging.schemas import LogFilters, LogRead
from customs_app.logging.service import LogService

router = APIRouter(prefix="/logs", tags=["logs"])


def get_log_service(session: SessionDep) -> LogService:
    return LogService(LogDAO(session))


def get_log_filters(
    hours: int = Query(24, ge=1, le=168, description="Time window in hours"),
    status_min: Optional[int] = Query(None, ge=100, le=599),
    status_max: Optional[int] = Query(None, ge=100, le=599),
    search: Optional[str] = Query(None, description="Matches path, method, user, host or status"),
) -> LogFilters:
    if status_min is not None and status_max is not None and status_min > status_max:
        raise HTTPException(status_code=400, detail="status_min cannot be greater than status_max")
    return LogFilters(hours=hours, status_min=status_min, status_max=status_max, search=search or None)


@router.get("/", response_model=List[LogRead])
def get_logs(
    response: Response,
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    filters: LogFilters = Depends(get_log_filters),
    log_service: LogService = Depends(get_log_service),
) -> List[LogRead]:
    """Recent request logs, newest first. The total match count is in X-Total-Count."""
    logs, total = log_service.search(filters, limit, offset)
    response.headers.update(
        {"X-Total-Count": str(total), "X-Page-Size": str(limit), "X-Page-Offset": str(offset)}
    )
    return logs


@router.get("/{log_id}", response_model=LogRead)
def get_log(log_id: int, log_service: LogService = Depends(get_log_service)) -> LogRead:
    log = log_service.get_by_id(log_id)
    if not log:
        raise HTTPException(status_code=404, detail="Log not found")
    return log
