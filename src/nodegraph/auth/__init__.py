"""
Auth module - authorization rule compilation and evaluation.
"""

from __future__ import annotations

from .rules import (
    AuthorizationRule,
    ClaimRef,
    ContextRef,
    Operation,
    PredicateExpr,
    Quantifier,
    RuleCompiler,
    RuleKind,
    RuleSet,
    When,
    compile_rules,
)
from .evaluator import ErrorEntry, authorize, denied_error, evaluate, filter_nodes
from .nested import MutationEvent, MutationResponse, NestedCreateAuthorizer, authorize_create

__all__ = [
    # Rules
    "AuthorizationRule",
    "ClaimRef",
    "ContextRef",
    "Operation",
    "PredicateExpr",
    "Quantifier",
    "RuleCompiler",
    "RuleKind",
    "RuleSet",
    "When",
    "compile_rules",
    # Evaluation
    "ErrorEntry",
    "authorize",
    "denied_error",
    "evaluate",
    "filter_nodes",
    # Nested writes
    "MutationEvent",
    "MutationResponse",
    "NestedCreateAuthorizer",
    "authorize_create",
]
