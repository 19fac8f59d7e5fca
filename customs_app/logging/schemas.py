"""Pydantic schemas for the request log API."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class LogFilters:
    """Time window, status range and free-text search applied to the request log."""

    hours: int = 24
    status_min: Optional[int] = None
    status_max: Optional[int] = None
    search: Optional[str] = None

    def since(self) -> datetime:
        return datetime.now() - timedelta(hours=self.hours)


class LogRead(BaseModel):
    id: int
    timestamp: datetime
    method: str
    path: str
    status_code: int
    client_ip: Optional[str] = None
    request_headers: Optional[str] = None
    request_body: Optional[str] = None
    response_body: Optional[str] = None
    processing_time: Optional[float] = None  # in milliseconds
    user_agent: Optional[str] = None
    username: Optional[str] = None
    hostname: Optional[str] = None
    application_id: Optional[str] = Field(default=None, title="Application ID")

    model_config = ConfigDict(from_attributes=True)
