"""
Predicate compiler for customs rule trees.

Turns a parsed rule tree into a single SQLAlchemy boolean expression against
bc20_header. Header columns are compared directly; every other relation is
expressed as a correlated EXISTS so that a header never appears more than once
in the filtered result. Compilation is pure: no SQL is issued here.
"""

import math
from datetime import date, datetime
from typing import Any, List

from sqlalchemy import and_, case, func, not_, or_, select, true
from sqlalchemy.sql.elements import ColumnElement

from customs_app.customs.models import (
    Carrier,
    Container,
    Document,
    Duty,
    Entity,
    Goods,
    Header,
    HeaderData,
    Packaging,
)
from customs_app.customs.references import TEUS_BY_SIZE
from customs_app.query.exceptions import MalformedRuleTreeError
from customs_app.query.fields import (
    FIELD_REGISTRY,
    NO_VALUE_OPERATORS,
    FieldDescriptor,
    FieldRegistry,
    Relation,
    ValueType,
)
from customs_app.query.rules import Combinator, Condition, Group, RuleNode

RELATION_MODELS = {
    Relation.DATA: HeaderData,
    Relation.ENTITY: Entity,
    Relation.CARRIER: Carrier,
    Relation.GOODS: Goods,
    Relation.PACKAGING: Packaging,
    Relation.CONTAINER: Container,
    Relation.DOCUMENT: Document,
    Relation.DUTY: Duty,
}

LIKE_ESCAPE = "\\"


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def teus_expression():
    """Correlated TEUS total of the containers of the outer header."""
    return (
        select(
            func.coalesce(
                func.sum(case(TEUS_BY_SIZE, value=Container.kodeukurankontainer, else_=0.0)),
                0.0,
            )
        )
        .where(Container.idheader == Header.idheader)
        .scalar_subquery()
    )


def calculated_expression(name: str) -> ColumnElement:
    """SQL expression for a calculated field, correlated to the outer header."""
    if name == "items_count":
        return (
            select(func.count(Goods.idbarang))
            .where(Goods.idheader == Header.idheader)
            .scalar_subquery()
        )
    if name == "total_paid":
        return (
            select(func.coalesce(func.sum(Duty.dibayar), 0.0))
            .where(Duty.idheader == Header.idheader)
            .scalar_subquery()
        )
    if name == "gross_weight_per_teus":
        teus = teus_expression()
        bruto = func.coalesce(
            select(HeaderData.bruto).where(HeaderData.idheader == Header.idheader).scalar_subquery(),
            0.0,
        )
        return case((teus > 0, bruto / teus), else_=0.0)
    raise ValueError(f"No expression for calculated field '{name}'")


class PredicateCompiler:
    """Compile rule trees into WHERE clauses over Header."""

    def __init__(self, registry: FieldRegistry = FIELD_REGISTRY):
        self.registry = registry

    def compile(self, node: RuleNode) -> ColumnElement:
        """Compile a rule node. Raises on the first invalid condition."""
        if isinstance(node, Group):
            return self._compile_group(node)
        if isinstance(node, Condition):
            return self._compile_condition(node)
        raise MalformedRuleTreeError(f"Unexpected rule node {type(node).__name__}")

    def validate(self, node: RuleNode) -> None:
        """Check every condition in the tree without building a query."""
        self.compile(node)

    # ===== NODES =====

    def _compile_group(self, group: Group) -> ColumnElement:
        if not group.rules:
            return true()
        clauses = [self.compile(child) for child in group.rules]
        if len(clauses) == 1:
            return clauses[0]
        if group.combinator == Combinator.OR:
            return or_(*clauses)
        return and_(*clauses)

    def _compile_condition(self, condition: Condition) -> ColumnElement:
        descriptor = self.registry.resolve(condition.field)
        operator = self.registry.normalize_operator(descriptor, condition.operator)
        value = self._coerce_value(descriptor, operator, condition.value)

        if descriptor.relation == Relation.HEADER:
            column = getattr(Header, descriptor.column)
            return self._leaf(column, descriptor, operator, value)

        if descriptor.relation == Relation.CALCULATED:
            return self._leaf(calculated_expression(descriptor.column), descriptor, operator, value)

        model = RELATION_MODELS[descriptor.relation]
        criteria = [model.idheader == Header.idheader]
        if descriptor.entity_role is not None:
            criteria.append(Entity.kodeentitas == descriptor.entity_role)
        criteria.append(self._leaf(getattr(model, descriptor.column), descriptor, operator, value))
        return select(model.idheader).where(and_(*criteria)).exists()

    # ===== LEAF PREDICATES =====

    def _leaf(self, column, descriptor: FieldDescriptor, operator: str, value: Any) -> ColumnElement:
        if operator == "null":
            return column.is_(None)
        if operator == "notNull":
            return column.isnot(None)
        if operator == "isEmpty":
            return or_(column.is_(None), column == "")
        if operator == "isNotEmpty":
            return and_(column.isnot(None), column != "")

        if descriptor.value_type == ValueType.STRING:
            return self._string_leaf(column, operator, value)

        if operator == "=":
            return column == value
        if operator == "!=":
            return column != value
        if operator == "<":
            return column < value
        if operator == "<=":
            return column <= value
        if operator == ">":
            return column > value
        if operator == ">=":
            return column >= value
        if operator == "between":
            return column.between(value[0], value[1])
        if operator == "notBetween":
            return not_(column.between(value[0], value[1]))
        if operator == "in":
            return column.in_(value)
        if operator == "notIn":
            return column.not_in(value)
        raise MalformedRuleTreeError(f"Unsupported operator '{operator}'", field=descriptor.name)

    def _string_leaf(self, column, operator: str, value: Any) -> ColumnElement:
        upper = func.upper(column)
        if operator == "=":
            return upper == value
        if operator == "!=":
            return upper != value
        if operator == "in":
            return upper.in_(value)
        if operator == "notIn":
            return upper.not_in(value)

        escaped = _escape_like(value)
        if operator == "contains":
            return upper.like(f"%{escaped}%", escape=LIKE_ESCAPE)
        if operator == "doesNotContain":
            return upper.not_like(f"%{escaped}%", escape=LIKE_ESCAPE)
        if operator == "beginsWith":
            return upper.like(f"{escaped}%", escape=LIKE_ESCAPE)
        if operator == "doesNotBeginWith":
            return upper.not_like(f"{escaped}%", escape=LIKE_ESCAPE)
        if operator == "endsWith":
            return upper.like(f"%{escaped}", escape=LIKE_ESCAPE)
        if operator == "doesNotEndWith":
            return upper.not_like(f"%{escaped}", escape=LIKE_ESCAPE)
        raise MalformedRuleTreeError(f"Unsupported operator '{operator}'")

    # ===== VALUES =====

    def _coerce_value(self, descriptor: FieldDescriptor, operator: str, value: Any) -> Any:
        if operator in NO_VALUE_OPERATORS:
            return None

        if operator in ("between", "notBetween"):
            items = self._split(value)
            if len(items) != 2:
                raise MalformedRuleTreeError(
                    f"Operator '{operator}' needs exactly two values", field=descriptor.name
                )
            low, high = (self._coerce_scalar(descriptor, item) for item in items)
            return (low, high)

        if operator in ("in", "notIn"):
            items = self._split(value)
            if not items:
                raise MalformedRuleTreeError(
                    f"Operator '{operator}' needs at least one value", field=descriptor.name
                )
            return [self._coerce_scalar(descriptor, item) for item in items]

        if isinstance(value, (list, tuple)):
            raise MalformedRuleTreeError(
                f"Operator '{operator}' takes a single value", field=descriptor.name
            )
        return self._coerce_scalar(descriptor, value)

    @staticmethod
    def _split(value: Any) -> List[Any]:
        if isinstance(value, (list, tuple)):
            items = list(value)
        elif isinstance(value, str):
            items = value.split(",")
        elif value is None:
            items = []
        else:
            items = [value]
        return [item.strip() if isinstance(item, str) else item for item in items if item not in (None, "")]

    def _coerce_scalar(self, descriptor: FieldDescriptor, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            raise MalformedRuleTreeError("Value is required", field=descriptor.name)

        if descriptor.value_type == ValueType.NUMBER:
            if isinstance(value, bool):
                raise MalformedRuleTreeError(f"'{value}' is not a number", field=descriptor.name)
            try:
                number = float(value.strip() if isinstance(value, str) else value)
            except (TypeError, ValueError, OverflowError):
                raise MalformedRuleTreeError(f"'{value}' is not a number", field=descriptor.name) from None
            if not math.isfinite(number):
                raise MalformedRuleTreeError(f"'{value}' is not a finite number", field=descriptor.name)
            return number

        if descriptor.value_type == ValueType.DATE:
            if isinstance(value, datetime):
                return value.date()
            if isinstance(value, date):
                return value
            try:
                return date.fromisoformat(str(value).strip()[:10])
            except ValueError:
                raise MalformedRuleTreeError(f"'{value}' is not a date (YYYY-MM-DD)", field=descriptor.name) from None

        if isinstance(value, (dict, list, tuple)):
            raise MalformedRuleTreeError("Value must be a scalar", field=descriptor.name)
        return str(value).strip().upper()
