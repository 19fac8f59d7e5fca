"""Value suggestions and option lists that feed the rule builder inputs."""

import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from customs_app.core.config import SUGGESTION_LIMIT
from customs_app.customs.models import Entity, Header
from customs_app.customs.references import ROUTE_CODES
from customs_app.query.builder import LIKE_ESCAPE, RELATION_MODELS, _escape_like
from customs_app.query.exceptions import DataAccessError, SuggestionNotSupportedError
from customs_app.query.fields import FIELD_REGISTRY, FieldDescriptor, FieldRegistry, Relation, ValueType

logger = logging.getLogger(__name__)

# free-text columns match anywhere, codes and numbers match from the start
CONTAINS_PREFIXES = ("nama", "alamat", "uraian", "keterangan")

OPTION_LISTS = ("document-codes", "process-codes", "customs-routes", "response-statuses")


def suggestion_query(descriptor: FieldDescriptor, term: str, limit: int = SUGGESTION_LIMIT) -> Select:
    """Distinct non-null values of a text field that match the typed term, case-insensitively."""
    if descriptor.relation == Relation.CALCULATED or descriptor.value_type != ValueType.STRING:
        raise SuggestionNotSupportedError(descriptor.name)

    model = Header if descriptor.relation == Relation.HEADER else RELATION_MODELS[descriptor.relation]
    column = getattr(model, descriptor.column)
    escaped = _escape_like(term.strip().upper())
    pattern = f"%{escaped}%" if descriptor.column.startswith(CONTAINS_PREFIXES) else f"{escaped}%"

    statement = select(column).distinct().where(
        column.is_not(None),
        func.upper(column).like(pattern, escape=LIKE_ESCAPE),
    )
    if descriptor.entity_role is not None:
        statement = statement.where(Entity.kodeentitas == descriptor.entity_role)
    return statement.order_by(column).limit(limit)


def _option(code: str, name: Optional[str] = None) -> Dict[str, str]:
    return {"value": code, "label": f"{code} - {name}" if name else code}


class ValueLookup:
    """Reads distinct values from the customs warehouse for autocomplete and dropdowns."""

    def __init__(self, session: Session, registry: FieldRegistry = FIELD_REGISTRY):
        self.session = session
        self.registry = registry

    def suggest(self, field_name: str, term: str, limit: int = SUGGESTION_LIMIT) -> List[str]:
        descriptor = self.registry.resolve(field_name)
        if not term.strip():
            return []
        statement = suggestion_query(descriptor, term, limit)
        return self._run(lambda: [value for value in self.session.execute(statement).scalars() if value != ""])

    def options(self, name: str) -> List[Dict[str, str]]:
        if name == "customs-routes":
            return [_option(code, label) for code, label in ROUTE_CODES.items()]
        if name == "document-codes":
            return self._run(lambda: self._code_options(Header.kodedokumen))
        if name == "process-codes":
            return self._run(lambda: self._code_options(Header.kodeproses, Header.namaproses))
        if name == "response-statuses":
            return self._run(lambda: self._code_options(Header.namarespon))
        raise KeyError(name)

    def _code_options(self, code_column, name_column=None) -> List[Dict[str, str]]:
        columns = [code_column] if name_column is None else [code_column, name_column]
        statement = (
            select(*columns)
            .distinct()
            .where(code_column.is_not(None), code_column != "")
            .order_by(*columns)
        )
        return [_option(*row) for row in self.session.execute(statement).all()]

    def _run(self, operation: Callable[[], Any]) -> Any:
        try:
            return operation()
        except SQLAlchemyError as exc:
            logger.exception("Customs lookup failed: %s", exc)
            raise DataAccessError() from exc
