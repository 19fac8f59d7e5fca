"""
Rule tree types for the customs query builder.

A rule tree is what the UI query builder sends: a group with a combinator and
an ordered list of children, where each child is either a condition
(field, operator, value) or another group. Trees are parsed once into frozen
dataclasses so the compiler can dispatch on the node type.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple, Union

from customs_app.query.exceptions import MalformedRuleTreeError

MAX_DEPTH = 20


class Combinator(str, Enum):
    """How the children of a group are combined."""

    AND = "and"
    OR = "or"


@dataclass(frozen=True)
class Condition:
    """A single field/operator/value test."""

    field: str
    operator: str
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        value = list(self.value) if isinstance(self.value, tuple) else self.value
        return {"field": self.field, "operator": self.operator, "value": value}


@dataclass(frozen=True)
class Group:
    """A combinator applied to an ordered sequence of nodes."""

    combinator: Combinator = Combinator.AND
    rules: Tuple["RuleNode", ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "combinator": self.combinator.value,
            "rules": [rule.to_dict() for rule in self.rules],
        }


RuleNode = Union[Condition, Group]


def parse_rule_tree(payload: Any) -> Group:
    """Parse the JSON form of a rule tree, raising MalformedRuleTreeError on bad input."""
    if isinstance(payload, (Condition, Group)):
        return payload if isinstance(payload, Group) else Group(rules=(payload,))
    return _parse_group(payload, "rules", 0)


def _parse_group(payload: Any, path: str, depth: int) -> Group:
    if depth > MAX_DEPTH:
        raise MalformedRuleTreeError(f"Rule tree is nested deeper than {MAX_DEPTH} levels", path)
    if not isinstance(payload, dict):
        raise MalformedRuleTreeError("Rule group must be an object", path)
    if payload.get("not"):
        raise MalformedRuleTreeError("Negated groups are not supported", path)

    raw_combinator = payload.get("combinator", "and")
    if not isinstance(raw_combinator, str):
        raise MalformedRuleTreeError("Combinator must be 'and' or 'or'", f"{path}.combinator")
    try:
        combinator = Combinator(raw_combinator.strip().lower())
    except ValueError:
        raise MalformedRuleTreeError(
            f"Combinator must be 'and' or 'or', got '{raw_combinator}'", f"{path}.combinator"
        ) from None

    children = payload.get("rules")
    if children is None:
        raise MalformedRuleTreeError("Rule group is missing 'rules'", path)
    if not isinstance(children, list):
        raise MalformedRuleTreeError("'rules' must be a list", f"{path}.rules")

    nodes = []
    for index, child in enumerate(children):
        child_path = f"{path}[{index}]" if path == "rules" else f"{path}.rules[{index}]"
        if isinstance(child, dict) and "rules" in child:
            nodes.append(_parse_group(child, child_path, depth + 1))
        else:
            nodes.append(_parse_condition(child, child_path))
    return Group(combinator=combinator, rules=tuple(nodes))


def _parse_condition(payload: Any, path: str) -> Condition:
    if not isinstance(payload, dict):
        raise MalformedRuleTreeError("Rule must be an object", path)

    field_name = payload.get("field")
    if not isinstance(field_name, str) or not field_name.strip():
        raise MalformedRuleTreeError("Rule is missing 'field'", f"{path}.field")

    operator = payload.get("operator")
    if not isinstance(operator, str) or not operator.strip():
        raise MalformedRuleTreeError("Rule is missing 'operator'", f"{path}.operator", field=field_name)

    value = payload.get("value")
    if isinstance(value, dict):
        raise MalformedRuleTreeError("Rule value must be a scalar or a list", f"{path}.value", field=field_name)
    if isinstance(value, list):
        value = tuple(value)

    return Condition(field=field_name.strip(), operator=operator.strip(), value=value)


def iter_conditions(node: RuleNode):
    """Yield every Condition in the tree, depth first."""
    if isinstance(node, Condition):
        yield node
        return
    for child in node.rules:
        yield from iter_conditions(child)


def is_empty(node: RuleNode) -> bool:
    """True when the tree holds no condition at any depth."""
    return next(iter_conditions(node), None) is None
