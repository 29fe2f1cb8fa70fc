"""
Predicate evaluation for compiled authorization rules.

Evaluation is a pure function of (rule, claims, candidate data, context
values) and is safe to call concurrently against the same RuleSet.

Candidate data is a plain dict as the execution layer fetched it. Related
nodes are read from `<rel>Connection.edges` ({node, properties} items)
when present, otherwise from `<rel>` (a node or a list of nodes). Union
members carry `__typename`.

Usage:
    from nodegraph.auth.evaluator import authorize, evaluate

    if not evaluate(rule, claims, {"userId": "u1"}):
        ...
    authorize(rules, "User", Operation.READ, request, candidate)  # raises AuthorizationDenied
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

from ..core.errors import AuthorizationDenied
from ..runtime.context import RequestContext
from .rules import (
    And,
    AuthorizationRule,
    ClaimRef,
    Comparison,
    ContextRef,
    Not,
    Operation,
    Or,
    PredicateExpr,
    Quantifier,
    RelationshipMatch,
    RuleKind,
    RuleSet,
    Scoped,
    TruePredicate,
    When,
)

logger = logging.getLogger(__name__)


_MISSING = object()


class ErrorEntry(BaseModel):
    """A GraphQL error object."""
    message: str
    extensions: dict[str, Any] = Field(default_factory=dict)
    path: Optional[list[str]] = None


def denied_error(error: Optional[AuthorizationDenied] = None) -> ErrorEntry:
    """Translate a denial into a GraphQL error entry."""
    error = error or AuthorizationDenied()
    return ErrorEntry(message=str(error), extensions={"code": AuthorizationDenied.code})


# =============================================================================
# Evaluation
# =============================================================================


class _Scope:
    """Values visible while evaluating one predicate node."""

    __slots__ = ("node", "claims", "context")

    def __init__(self, node: Any, claims: Optional[dict], context: dict):
        self.node = node
        self.claims = claims
        self.context = context

    def with_node(self, node: Any) -> "_Scope":
        return _Scope(node, self.claims, self.context)


def evaluate(
    rule: AuthorizationRule | PredicateExpr,
    claims: Optional[dict[str, Any]],
    candidate: Optional[dict[str, Any]],
    context: Optional[dict[str, Any]] = None,
) -> bool:
    """
    Whether a rule (or a bare predicate) holds for a candidate.

    A rule requiring authentication fails when claims is None. A comparison
    against a claim or context value that is missing is false.
    """
    if isinstance(rule, AuthorizationRule):
        if rule.require_authentication and claims is None:
            return False
        predicate = rule.where
    else:
        predicate = rule
    scope = _Scope(candidate or {}, claims, context or {})
    return _evaluate(predicate, scope)


def _evaluate(predicate: PredicateExpr, scope: _Scope) -> bool:
    if isinstance(predicate, TruePredicate):
        return True
    if isinstance(predicate, And):
        return all(_evaluate(p, scope) for p in predicate.operands)
    if isinstance(predicate, Or):
        return any(_evaluate(p, scope) for p in predicate.operands)
    if isinstance(predicate, Not):
        return not _evaluate(predicate.operand, scope)
    if isinstance(predicate, Scoped):
        return _evaluate_scoped(predicate, scope)
    if isinstance(predicate, Comparison):
        return _compare(predicate, scope)
    if isinstance(predicate, RelationshipMatch):
        return _match_relationship(predicate, scope)
    raise TypeError(f"Unknown predicate: {predicate!r}")


def _evaluate_scoped(predicate: Scoped, scope: _Scope) -> bool:
    if predicate.scope == "jwt":
        if scope.claims is None:
            return False
        return _evaluate(predicate.predicate, scope.with_node(scope.claims))
    if predicate.scope == "edge":
        _, properties = scope.node
        return _evaluate(predicate.predicate, scope.with_node(properties or {}))
    if isinstance(scope.node, tuple):
        node, _ = scope.node
        return _evaluate(predicate.predicate, scope.with_node(node))
    return _evaluate(predicate.predicate, scope)


def _lookup(data: Any, path: Iterable[str]) -> Any:
    current = data
    for part in path:
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _resolve(value: Any, scope: _Scope) -> Any:
    if isinstance(value, ClaimRef):
        if scope.claims is None:
            return _MISSING
        return _lookup(scope.claims, value.path)
    if isinstance(value, ContextRef):
        return _lookup(scope.context, value.path)
    if isinstance(value, list):
        resolved = [_resolve(v, scope) for v in value]
        return _MISSING if any(v is _MISSING for v in resolved) else resolved
    return value


def _compare(comparison: Comparison, scope: _Scope) -> bool:
    actual = _lookup(scope.node, comparison.lookup_path)
    expected = _resolve(comparison.value, scope)
    if actual is _MISSING or expected is _MISSING:
        return False

    operator = comparison.operator
    if operator == "EQ":
        return actual == expected
    if operator == "IN":
        return isinstance(expected, list) and actual in expected
    if operator == "INCLUDES":
        return isinstance(actual, list) and expected in actual

    if actual is None or expected is None:
        return False
    try:
        if operator == "GT":
            return actual > expected
        if operator == "GTE":
            return actual >= expected
        if operator == "LT":
            return actual < expected
        if operator == "LTE":
            return actual <= expected
    except TypeError:
        return False

    if not isinstance(actual, str) or not isinstance(expected, str):
        return False
    if operator == "CONTAINS":
        return expected in actual
    if operator == "STARTS_WITH":
        return actual.startswith(expected)
    if operator == "ENDS_WITH":
        return actual.endswith(expected)
    if operator == "MATCHES":
        try:
            return re.fullmatch(expected, actual) is not None
        except re.error:
            logger.warning(f"Invalid _MATCHES pattern {expected!r}")
            return False
    raise ValueError(f"Unknown comparison operator: {operator}")


def related_items(node: Any, field_name: str) -> Optional[list[tuple[dict, dict]]]:
    """(node, properties) pairs related through a field, None when not fetched."""
    if not isinstance(node, dict):
        return None
    connection = node.get(f"{field_name}Connection")
    if isinstance(connection, dict) and "edges" in connection:
        return [
            (edge.get("node") or {}, edge.get("properties") or {})
            for edge in connection["edges"] or ()
        ]
    if field_name not in node:
        return None
    value = node[field_name]
    if value is None:
        return []
    if isinstance(value, list):
        return [(item, {}) for item in value]
    return [(value, {})]


def _match_relationship(match: RelationshipMatch, scope: _Scope) -> bool:
    node = scope.node[0] if isinstance(scope.node, tuple) else scope.node
    items = related_items(node, match.field)
    if items is None:
        return False

    matched = sum(1 for item in items if _evaluate(match.predicate, scope.with_node(item)))
    if match.quantifier is Quantifier.SOME:
        return matched > 0
    if match.quantifier is Quantifier.ALL:
        return matched == len(items)
    if match.quantifier is Quantifier.NONE:
        return matched == 0
    return matched == 1


# =============================================================================
# Enforcement helpers
# =============================================================================


def authorize(
    rules: RuleSet,
    entity: str,
    operation: Operation,
    request: RequestContext,
    candidate: Optional[dict[str, Any]],
    when: Optional[When] = None,
):
    """
    Check every applicable validate rule; all of them must hold.

    Raises:
        AuthorizationDenied: If any applicable rule fails
    """
    for rule in rules.rules_for(entity, operation, RuleKind.VALIDATE, when):
        if not evaluate(rule, request.claims, candidate, request.values):
            logger.debug(f"Rule {rule.label} denied {operation.value} on {entity}")
            raise AuthorizationDenied(entity=entity, operation=operation.value)


def filter_nodes(
    rules: RuleSet,
    entity: str,
    operation: Operation,
    request: RequestContext,
    nodes: Iterable[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Keep the nodes every applicable filter rule accepts."""
    applicable = rules.rules_for(entity, operation, RuleKind.FILTER)
    return [
        node for node in nodes
        if all(evaluate(rule, request.claims, node, request.values) for rule in applicable)
    ]
