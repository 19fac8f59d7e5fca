"""Errors raised while validating and executing rule queries."""

from typing import Any, Dict, Optional


class RuleQueryError(Exception):
    """Base class for client-side rule query problems."""

    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None, operator: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.operator = operator

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"detail": self.message, "error": type(self).__name__}
        if self.field is not None:
            payload["field"] = self.field
        if self.operator is not None:
            payload["operator"] = self.operator
        return payload


class UnknownFieldError(RuleQueryError):
    def __init__(self, field: str):
        super().__init__(f"Unknown field '{field}'", field=field)


class InvalidOperatorError(RuleQueryError):
    def __init__(self, field: str, operator: str, value_type: Optional[str] = None):
        message = f"Operator '{operator}' is not allowed for field '{field}'"
        if value_type:
            message += f" ({value_type})"
        super().__init__(message, field=field, operator=operator)


class MalformedRuleTreeError(RuleQueryError):
    def __init__(self, message: str, path: Optional[str] = None, field: Optional[str] = None):
        if path:
            message = f"{message} at {path}"
        super().__init__(message, field=field)
        self.path = path


class InvalidSectionError(RuleQueryError):
    def __init__(self, section: str):
        super().__init__(f"Unknown export section '{section}'")
        self.section = section


class SuggestionNotSupportedError(RuleQueryError):
    def __init__(self, field: str):
        super().__init__(f"Field '{field}' has no value suggestions", field=field)


class EmptyQueryRejected(RuleQueryError):
    """Raised when a rule tree without any condition is executed."""

    status_code = 400

    def __init__(self):
        super().__init__("Query must contain at least one condition")


class DataAccessError(Exception):
    """The customs store failed while executing a query."""

    def __init__(self, message: str = "Query execution failed"):
        super().__init__(message)
        self.message = message


class RecordNotFoundError(Exception):
    def __init__(self, idheader: int):
        super().__init__(f"Record {idheader} not found")
        self.idheader = idheader
