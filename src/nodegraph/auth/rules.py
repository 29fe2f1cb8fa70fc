"""
Authorization rule compiler.

Turns @authorization directive data into AuthorizationRule objects whose
`where` clause is a PredicateExpr tree. Predicates are checked against the
entity graph at build time: unknown fields, relationship traversals into
unknown targets and claim references the @jwt type does not declare are
build errors, collected and raised together.

The compiler only classifies which operations and phases a rule applies
to. Whether a rule is enforced before a write, after it, or as a read
post-filter is up to the execution layer (see nodegraph.auth.evaluator).

Directive shape:

    type Post @authorization(
        validate: [{ operations: [CREATE], where: { node: { author: { id: "$jwt.sub" } } } }]
        filter: [{ where: { node: { published: true } } }]
    ) { ... }

Usage:
    from nodegraph.auth.rules import Operation, compile_rules

    rules = compile_rules(graph)
    for rule in rules.rules_for("Post", Operation.CREATE):
        ...
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from ..core.defs import Entity, EntityGraph, Field, PropertiesType, ScalarKind, TargetKind
from ..core.errors import BuildError, SchemaValidationError

logger = logging.getLogger(__name__)


# =============================================================================
# Operations and phases
# =============================================================================


class Operation(str, Enum):
    READ = "READ"
    AGGREGATE = "AGGREGATE"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CREATE_RELATIONSHIP = "CREATE_RELATIONSHIP"
    DELETE_RELATIONSHIP = "DELETE_RELATIONSHIP"
    SUBSCRIBE = "SUBSCRIBE"


class When(str, Enum):
    BEFORE = "BEFORE"
    AFTER = "AFTER"


class RuleKind(str, Enum):
    VALIDATE = "validate"  # deny the operation when the predicate fails
    FILTER = "filter"      # hide candidates the predicate rejects


VALIDATE_OPERATIONS = frozenset(op for op in Operation if op is not Operation.SUBSCRIBE)
FILTER_OPERATIONS = frozenset({
    Operation.READ,
    Operation.AGGREGATE,
    Operation.UPDATE,
    Operation.DELETE,
    Operation.CREATE_RELATIONSHIP,
    Operation.DELETE_RELATIONSHIP,
    Operation.SUBSCRIBE,
})
DEFAULT_WHEN = (When.BEFORE, When.AFTER)


# =============================================================================
# Predicate expressions
# =============================================================================


class Quantifier(str, Enum):
    ALL = "ALL"
    NONE = "NONE"
    SINGLE = "SINGLE"
    SOME = "SOME"


@dataclass(frozen=True)
class ClaimRef:
    """A `$jwt.<path>` value, path already remapped through @jwtClaim."""
    path: tuple[str, ...]


@dataclass(frozen=True)
class ContextRef:
    """A `$context.<path>` value read from request context values."""
    path: tuple[str, ...]


@dataclass(frozen=True)
class TruePredicate:
    pass


@dataclass(frozen=True)
class And:
    operands: tuple["PredicateExpr", ...]


@dataclass(frozen=True)
class Or:
    operands: tuple["PredicateExpr", ...]


@dataclass(frozen=True)
class Not:
    operand: "PredicateExpr"


@dataclass(frozen=True)
class Comparison:
    """
    Compare the value at `path` of the current scope with `value`.

    value is a literal, a ClaimRef, a ContextRef, or a list of those.
    """
    field: str
    operator: str
    value: Any
    path: tuple[str, ...] = ()

    @property
    def lookup_path(self) -> tuple[str, ...]:
        return self.path or (self.field,)


@dataclass(frozen=True)
class Scoped:
    """
    Evaluate a predicate against a different value.

    scope is "node" (the candidate or related node), "edge" (relationship
    properties) or "jwt" (the claims).
    """
    scope: str
    predicate: "PredicateExpr"


@dataclass(frozen=True)
class RelationshipMatch:
    """
    Quantified match over related items.

    Each related item is a (node, properties) pair; `predicate` is made of
    Scoped("node", ...) and Scoped("edge", ...) parts.
    """
    field: str
    quantifier: Quantifier
    predicate: "PredicateExpr"
    connection: bool = False


PredicateExpr = Union[TruePredicate, And, Or, Not, Comparison, Scoped, RelationshipMatch]


# =============================================================================
# Rules
# =============================================================================


@dataclass(frozen=True)
class AuthorizationRule:
    """A compiled rule, attached to every entity it applies to."""
    entity: str
    kind: RuleKind
    operations: frozenset[Operation]
    where: PredicateExpr
    when: tuple[When, ...] = DEFAULT_WHEN
    require_authentication: bool = True
    declared_on: Optional[str] = None  # interface the rule was inherited from
    index: int = 0

    def applies_to(self, operation: Operation, when: Optional[When] = None) -> bool:
        if operation not in self.operations:
            return False
        return when is None or when in self.when

    @property
    def label(self) -> str:
        source = self.declared_on or self.entity
        return f"{source}.{self.kind.value}[{self.index}]"


@dataclass(frozen=True)
class RuleSet:
    """Compiled rules per entity, own rules first, then inherited ones."""
    rules: dict[str, tuple[AuthorizationRule, ...]] = field(default_factory=dict)

    def __len__(self) -> int:
        return sum(len(rules) for rules in self.rules.values())

    def for_entity(self, entity: str) -> tuple[AuthorizationRule, ...]:
        return self.rules.get(entity, ())

    def rules_for(
        self,
        entity: str,
        operation: Operation,
        kind: RuleKind = RuleKind.VALIDATE,
        when: Optional[When] = None,
    ) -> list[AuthorizationRule]:
        """Rules of one kind applicable to an operation; all of them must hold."""
        return [
            rule for rule in self.for_entity(entity)
            if rule.kind is kind and rule.applies_to(operation, when)
        ]


# =============================================================================
# Compiler
# =============================================================================


COMPARISON_OPERATORS = (
    "EQ", "IN", "GT", "GTE", "LT", "LTE",
    "CONTAINS", "STARTS_WITH", "ENDS_WITH", "INCLUDES", "MATCHES",
)
STRING_OPERATORS = frozenset({"CONTAINS", "STARTS_WITH", "ENDS_WITH", "MATCHES"})
ORDERING_OPERATORS = frozenset({"GT", "GTE", "LT", "LTE"})

CLAIM_PREFIX = "$jwt."
CONTEXT_PREFIX = "$context."

_UNESCAPED_DOT = re.compile(r"(?<!\\)\.")

# Entity-like owner of a predicate scope.
_Owner = Union[Entity, PropertiesType]


def split_path(path: str) -> tuple[str, ...]:
    """Split a dotted claim path; `\\.` keeps a literal dot inside a segment."""
    return tuple(part.replace("\\.", ".") for part in _UNESCAPED_DOT.split(path))


class RuleCompiler:
    """
    Compiles the @authorization data of every entity and interface.

    Usage:
        compiler = RuleCompiler(graph)
        rules = compiler.compile()
    """

    def __init__(self, graph: EntityGraph):
        self.graph = graph
        self.errors: list[BuildError] = []

    def compile(self, errors: Optional[list[BuildError]] = None) -> RuleSet:
        """
        Compile all rules.

        Args:
            errors: Shared error list. When given, invalid rules are appended
                to it instead of raising.

        Raises:
            SchemaValidationError: with every invalid rule found, when no
                shared error list is given
        """
        self.errors = []
        own: dict[str, list[AuthorizationRule]] = {}
        for entity in self.graph.entities.values():
            own[entity.name] = self._compile_entity(entity)

        rules: dict[str, tuple[AuthorizationRule, ...]] = {}
        for entity in self.graph.entities.values():
            combined = list(own[entity.name])
            for ancestor in self.graph.ancestors(entity.name):
                for rule in own.get(ancestor, ()):
                    combined.append(AuthorizationRule(
                        entity=entity.name,
                        kind=rule.kind,
                        operations=rule.operations,
                        where=rule.where,
                        when=rule.when,
                        require_authentication=rule.require_authentication,
                        declared_on=ancestor,
                        index=rule.index,
                    ))
            if combined:
                rules[entity.name] = tuple(combined)

        if errors is not None:
            errors.extend(self.errors)
        elif self.errors:
            raise SchemaValidationError(self.errors)

        result = RuleSet(rules=rules)
        logger.debug(f"Compiled {len(result)} authorization rules for {len(rules)} entities")
        return result

    def _add_error(
        self,
        message: str,
        entity: Optional[str] = None,
        field: Optional[str] = None,
    ):
        """Add a rule compilation error."""
        self.errors.append(BuildError(entity=entity, field=field, message=message))

    # =========================================================================
    # Rules
    # =========================================================================

    def _compile_entity(self, entity: Entity) -> list[AuthorizationRule]:
        data = entity.authorization
        if not data:
            return []

        unknown = set(data) - {"validate", "filter"}
        for key in sorted(unknown):
            self._add_error(f"Unknown @authorization argument '{key}'", entity=entity.name)

        rules = []
        for kind in (RuleKind.VALIDATE, RuleKind.FILTER):
            raw_rules = data.get(kind.value) or []
            if isinstance(raw_rules, dict):
                raw_rules = [raw_rules]
            for index, raw in enumerate(raw_rules):
                rule = self._compile_rule(entity, kind, index, raw)
                if rule is not None:
                    rules.append(rule)
        return rules

    def _compile_rule(
        self,
        entity: Entity,
        kind: RuleKind,
        index: int,
        raw: Any,
    ) -> Optional[AuthorizationRule]:
        label = f"{kind.value}[{index}]"
        if not isinstance(raw, dict):
            self._add_error(f"Rule {label} must be an object", entity=entity.name)
            return None

        allowed = {"operations", "where", "requireAuthentication"}
        if kind is RuleKind.VALIDATE:
            allowed.add("when")
        for key in sorted(set(raw) - allowed):
            self._add_error(f"Rule {label} has unknown argument '{key}'", entity=entity.name)

        default_operations = VALIDATE_OPERATIONS if kind is RuleKind.VALIDATE else FILTER_OPERATIONS
        operations = self._enum_list(entity, label, "operations", raw.get("operations"), Operation)
        if kind is RuleKind.FILTER:
            invalid = [op for op in operations if op not in FILTER_OPERATIONS]
            for op in invalid:
                self._add_error(f"Rule {label} cannot filter {op.value}", entity=entity.name)
        when = self._enum_list(entity, label, "when", raw.get("when"), When)

        where = TruePredicate()
        if raw.get("where") is not None:
            where = self._rule_where(entity, label, raw["where"])

        return AuthorizationRule(
            entity=entity.name,
            kind=kind,
            operations=frozenset(operations) if operations else default_operations,
            where=where,
            when=tuple(when) if when else DEFAULT_WHEN,
            require_authentication=bool(raw.get("requireAuthentication", True)),
            index=index,
        )

    def _enum_list(self, entity: Entity, label: str, name: str, raw: Any, enum: type[Enum]) -> list:
        if raw is None:
            return []
        if isinstance(raw, str):
            raw = [raw]
        values = []
        for value in raw:
            try:
                values.append(enum(value))
            except ValueError:
                self._add_error(f"Rule {label} has invalid {name} value '{value}'", entity=entity.name)
        return values

    # =========================================================================
    # Predicates
    # =========================================================================

    def _rule_where(self, entity: Entity, label: str, raw: Any) -> PredicateExpr:
        """Top level where: node, jwt and the logical operators."""
        if not isinstance(raw, dict):
            self._add_error(f"Rule {label} where must be an object", entity=entity.name)
            return TruePredicate()

        operands: list[PredicateExpr] = []
        for key, value in raw.items():
            if key in ("AND", "OR"):
                parts = tuple(self._rule_where(entity, label, v) for v in self._as_list(value))
                operands.append(And(parts) if key == "AND" else Or(parts))
            elif key == "NOT":
                operands.append(Not(self._rule_where(entity, label, value)))
            elif key == "node":
                operands.append(Scoped("node", self._node_where(entity, entity, value)))
            elif key == "jwt":
                operands.append(Scoped("jwt", self._claims_where(entity, value)))
            else:
                self._add_error(
                    f"Rule {label} where has unknown key '{key}', expected node, jwt, AND, OR or NOT",
                    entity=entity.name,
                )
        return self._conjunction(operands)

    def _node_where(self, entity: Entity, owner: _Owner, raw: Any) -> PredicateExpr:
        """Predicate over the fields of an entity, interface or properties type."""
        if not isinstance(raw, dict):
            self._add_error(f"Predicate on '{owner.name}' must be an object", entity=entity.name)
            return TruePredicate()

        operands: list[PredicateExpr] = []
        for key, value in raw.items():
            if key in ("AND", "OR"):
                parts = tuple(self._node_where(entity, owner, v) for v in self._as_list(value))
                operands.append(And(parts) if key == "AND" else Or(parts))
                continue
            if key == "NOT":
                operands.append(Not(self._node_where(entity, owner, value)))
                continue

            relationship = self._relationship_key(owner, key)
            if relationship is not None:
                f, quantifier, connection = relationship
                operands.append(self._relationship_match(entity, owner, f, quantifier, connection, value))
                continue

            comparison = self._comparison(entity, owner, key, value)
            if comparison is not None:
                operands.append(comparison)
        return self._conjunction(operands)

    def _claims_where(self, entity: Entity, raw: Any) -> PredicateExpr:
        """Predicate over the claims, field names remapped through @jwtClaim."""
        if not isinstance(raw, dict):
            self._add_error("jwt predicate must be an object", entity=entity.name)
            return TruePredicate()

        claims = self.graph.claims
        operands: list[PredicateExpr] = []
        for key, value in raw.items():
            if key in ("AND", "OR"):
                parts = tuple(self._claims_where(entity, v) for v in self._as_list(value))
                operands.append(And(parts) if key == "AND" else Or(parts))
                continue
            if key == "NOT":
                operands.append(Not(self._claims_where(entity, value)))
                continue

            name, operator = self._split_operator(key, claims)
            if claims is not None and claims.get_field(name) is None:
                self._add_error(f"Claim '{name}' is not declared on @jwt type '{claims.name}'", entity=entity.name)
                continue
            path = split_path(self.graph.claim_paths.get(name, name))
            operands.append(Comparison(
                field=name,
                operator=operator,
                value=self._value(entity, value),
                path=path,
            ))
        return self._conjunction(operands)

    def _relationship_key(self, owner: _Owner, key: str) -> Optional[tuple[Field, Quantifier, bool]]:
        """Recognize rel, rel_<Q>, relConnection and relConnection_<Q> keys."""
        if not isinstance(owner, Entity):
            return None
        base, quantifier = key, None
        for q in Quantifier:
            if key.endswith(f"_{q.value}"):
                base, quantifier = key[: -len(q.value) - 1], q
                break
        connection = False
        f = owner.get_field(base)
        if (f is None or not f.is_relationship) and base.endswith("Connection"):
            f = owner.get_field(base[: -len("Connection")])
            connection = True
        if f is None or not f.is_relationship:
            return None
        return f, quantifier or Quantifier.SOME, connection

    def _relationship_match(
        self,
        entity: Entity,
        owner: Entity,
        f: Field,
        quantifier: Quantifier,
        connection: bool,
        raw: Any,
    ) -> PredicateExpr:
        # `rel: null` means there is no related node
        if raw is None:
            return RelationshipMatch(f.name, Quantifier.NONE, TruePredicate(), connection)

        edge = self.graph.edge(owner.name, f.name)
        if edge is None:
            self._add_error(f"Relationship '{owner.name}.{f.name}' is not resolved", entity=entity.name)
            return TruePredicate()

        if connection:
            predicate = self._connection_where(entity, owner, f, raw)
        else:
            predicate = Scoped("node", self._target_where(entity, f.type_name, raw))
        return RelationshipMatch(f.name, quantifier, predicate, connection)

    def _connection_where(self, entity: Entity, owner: Entity, f: Field, raw: Any) -> PredicateExpr:
        if not isinstance(raw, dict):
            self._add_error(f"Predicate on '{owner.name}.{f.name}Connection' must be an object", entity=entity.name)
            return TruePredicate()

        operands: list[PredicateExpr] = []
        for key, value in raw.items():
            if key in ("AND", "OR"):
                parts = tuple(self._connection_where(entity, owner, f, v) for v in self._as_list(value))
                operands.append(And(parts) if key == "AND" else Or(parts))
            elif key == "NOT":
                operands.append(Not(self._connection_where(entity, owner, f, value)))
            elif key == "node":
                operands.append(Scoped("node", self._target_where(entity, f.type_name, value)))
            elif key == "edge":
                operands.append(Scoped("edge", self._edge_where(entity, owner, f, value)))
            else:
                self._add_error(
                    f"Unknown key '{key}' in '{owner.name}.{f.name}Connection' predicate",
                    entity=entity.name,
                )
        return self._conjunction(operands)

    def _target_where(self, entity: Entity, target: str, raw: Any) -> PredicateExpr:
        kind = self.graph.target_kind(target)
        if kind is TargetKind.UNION:
            return self._union_where(entity, target, raw)
        return self._node_where(entity, self.graph.entities[target], raw)

    def _union_where(self, entity: Entity, union: str, raw: Any) -> PredicateExpr:
        """Union predicates are keyed by member; a node matches through its own member."""
        if not isinstance(raw, dict):
            self._add_error(f"Predicate on union '{union}' must be an object", entity=entity.name)
            return TruePredicate()
        members = self.graph.unions[union]
        operands: list[PredicateExpr] = []
        for member, value in raw.items():
            if member not in members:
                self._add_error(f"'{member}' is not a member of union '{union}'", entity=entity.name)
                continue
            operands.append(And((
                Comparison("__typename", "EQ", member),
                self._node_where(entity, self.graph.entities[member], value),
            )))
        if not operands:
            return TruePredicate()
        return Or(tuple(operands))

    def _edge_where(self, entity: Entity, owner: Entity, f: Field, raw: Any) -> PredicateExpr:
        edge = self.graph.edge(owner.name, f.name)
        prop_types = edge.binding.types if edge else ()
        if not prop_types:
            self._add_error(f"Relationship '{owner.name}.{f.name}' has no properties", entity=entity.name)
            return TruePredicate()
        if len(prop_types) == 1:
            properties = self.graph.properties.get(prop_types[0])
            # unknown properties types are reported by the registry
            if properties is None:
                return TruePredicate()
            return self._node_where(entity, properties, raw)

        # Diverging properties: the predicate is keyed by implementer
        if not isinstance(raw, dict):
            self._add_error(f"Edge predicate on '{owner.name}.{f.name}' must be an object", entity=entity.name)
            return TruePredicate()
        operands: list[PredicateExpr] = []
        for implementer, value in raw.items():
            prop_type = edge.binding.prop_type_of(implementer)
            if prop_type is None:
                self._add_error(
                    f"'{implementer}' does not implement '{owner.name}.{f.name}' with properties",
                    entity=entity.name,
                )
                continue
            if prop_type in self.graph.properties:
                operands.append(self._node_where(entity, self.graph.properties[prop_type], value))
        return self._conjunction(operands)

    def _comparison(self, entity: Entity, owner: _Owner, key: str, raw: Any) -> Optional[Comparison]:
        name, operator = self._split_operator(key, owner)
        f = owner.get_field(name)
        if f is None:
            self._add_error(f"Unknown field '{name}' on '{owner.name}' in authorization rule", entity=entity.name)
            return None
        if f.is_relationship:
            self._add_error(f"'{owner.name}.{name}' is a relationship, not a scalar field", entity=entity.name)
            return None

        kind = f.kind
        if operator in STRING_OPERATORS and not (kind and kind.is_string_like) and not f.is_list:
            self._add_error(f"_{operator} requires a String or ID field, '{name}' is {f.type_name}", entity=entity.name)
            return None
        if operator in ORDERING_OPERATORS and not (
            kind and (kind.is_numeric or kind.is_temporal or kind is ScalarKind.STRING)
        ):
            self._add_error(f"_{operator} cannot be used on '{name}' of type {f.type_name}", entity=entity.name)
            return None
        if operator == "INCLUDES" and not f.is_list:
            self._add_error(f"_INCLUDES requires a list field, '{name}' is not a list", entity=entity.name)
            return None

        value = self._value(entity, raw)
        if operator == "IN" and not isinstance(value, (list, ClaimRef, ContextRef)):
            self._add_error(f"_IN on '{name}' requires a list value", entity=entity.name)
            return None
        return Comparison(field=name, operator=operator, value=value)

    def _split_operator(self, key: str, owner: Optional[_Owner]) -> tuple[str, str]:
        """name_OP -> (name, OP); a key naming a field as-is is an equality."""
        if owner is not None and owner.get_field(key) is not None:
            return key, "EQ"
        for operator in COMPARISON_OPERATORS:
            suffix = f"_{operator}"
            if key.endswith(suffix) and len(key) > len(suffix):
                return key[: -len(suffix)], operator
        return key, "EQ"

    def _value(self, entity: Entity, raw: Any) -> Any:
        if isinstance(raw, list):
            return [self._value(entity, v) for v in raw]
        if not isinstance(raw, str):
            return raw
        if raw.startswith(CLAIM_PREFIX):
            name = raw[len(CLAIM_PREFIX):]
            head = split_path(name)[0]
            claims = self.graph.claims
            if claims is not None and claims.get_field(head) is None:
                self._add_error(f"Claim '{head}' is not declared on @jwt type '{claims.name}'", entity=entity.name)
            mapped = self.graph.claim_paths.get(head)
            if mapped is not None:
                return ClaimRef(split_path(mapped) + split_path(name)[1:])
            return ClaimRef(split_path(name))
        if raw.startswith(CONTEXT_PREFIX):
            return ContextRef(split_path(raw[len(CONTEXT_PREFIX):]))
        return raw

    @staticmethod
    def _as_list(value: Any) -> list:
        if value is None:
            return []
        return value if isinstance(value, list) else [value]

    @staticmethod
    def _conjunction(operands: list[PredicateExpr]) -> PredicateExpr:
        if not operands:
            return TruePredicate()
        if len(operands) == 1:
            return operands[0]
        return And(tuple(operands))


def compile_rules(graph: EntityGraph) -> RuleSet:
    """
    Convenience function to compile every @authorization rule of a graph.

    Raises:
        SchemaValidationError: If any rule references unknown fields or claims
    """
    return RuleCompiler(graph).compile()
