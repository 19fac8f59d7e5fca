"""Pydantic schemas for saved rule sets."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator


def _validate_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    if not v.strip():
        raise ValueError("Rule set name cannot be empty")
    if len(v.strip()) > 255:
        raise ValueError("Rule set name cannot exceed 255 characters")
    return v.strip()


def _validate_description(v: Optional[str]) -> Optional[str]:
    if v is not None and len(v) > 1000:
        raise ValueError("Description cannot exceed 1000 characters")
    return v


class RuleSetBase(BaseModel):
    """Base schema for rule sets."""

    name: str
    description: Optional[str] = None
    rules: Dict[str, Any]
    is_public: bool = False

    model_config = ConfigDict(from_attributes=True)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _validate_name(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v):
        return _validate_description(v)


class RuleSetCreate(RuleSetBase):
    model_config = ConfigDict(extra="forbid")


class RuleSetUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    name: Optional[str] = None
    description: Optional[str] = None
    rules: Optional[Dict[str, Any]] = None
    is_public: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _validate_name(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v):
        return _validate_description(v)


class RuleSetRead(RuleSetBase):
    id: int
    owner: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_owner: bool = False


class RuleSetCreateResponse(BaseModel):
    message: str
    rule_set: RuleSetRead


class RuleSetMessage(BaseModel):
    message: str


class RuleSetAdminPage(BaseModel):
    """Paginated listing of every rule set for administrators."""

    data: List[RuleSetRead]
    current_page: int
    last_page: int
    per_page: int
    total: int


class SavedRuleSetExecuteRequest(BaseModel):
    """Paging options when running a saved rule set."""

    page: int = 1
    per_page: Optional[int] = None
    sort_by: Optional[str] = None
    sort_direction: Optional[str] = None
    sections: Optional[Union[str, List[str]]] = None


class QueryExecuteRequest(BaseModel):
    """Ad-hoc rule query. Without sections the compact summary rows are returned."""

    rules: Dict[str, Any]
    page: int = 1
    per_page: Optional[int] = None
    sort_by: Optional[str] = None
    sort_direction: Optional[str] = None
    sections: Optional[Union[str, List[str]]] = None


class ExportRequest(BaseModel):
    """Export of every declaration matching the rule tree."""

    rules: Dict[str, Any]
    sort_by: Optional[str] = None
    sort_direction: Optional[str] = None
    sections: Optional[Union[str, List[str]]] = None
    layout: Literal["sheets", "flat"] = "sheets"
    format: Literal["xlsx", "csv"] = "xlsx"
    filename: Optional[str] = None

    @field_validator("filename")
    @classmethod
    def validate_filename(cls, v):
        if v is None:
            return v
        v = v.strip()
        if any(char in v for char in '/\\'):
            raise ValueError("Filename cannot contain path separators")
        if '"' in v or any(ord(char) < 32 or ord(char) == 127 for char in v):
            raise ValueError("Filename cannot contain quotes or control characters")
        return v or None
