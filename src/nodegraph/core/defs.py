"""
Type definitions for the entity graph and the derived type system.

Two layers live here:
- the entity graph (Entity, Field, RelationshipEdge, PropertiesBinding)
  produced by the type model builder and the relationship resolver
- the derived types (DerivedType, DerivedField) produced by the augmenter
  and consumed by the SDL printer

Usage:
    from nodegraph.core.defs import Entity, Field, ScalarKind

    field = Field(name="title", type_name="String", kind=ScalarKind.STRING)
    movie = Entity(name="Movie", fields=(field,))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


# =============================================================================
# Scalar classification
# =============================================================================


class ScalarKind(str, Enum):
    """Classification of a scalar field, drives every derived field."""
    ID = "ID"
    STRING = "String"
    INT = "Int"
    BIG_INT = "BigInt"
    FLOAT = "Float"
    DATE_TIME = "DateTime"
    DATE = "Date"
    TIME = "Time"
    LOCAL_TIME = "LocalTime"
    LOCAL_DATE_TIME = "LocalDateTime"
    DURATION = "Duration"
    BOOLEAN = "Boolean"
    ENUM = "Enum"
    CUSTOM = "Custom"

    @classmethod
    def for_type(cls, type_name: str, enums: set[str] | None = None) -> Optional["ScalarKind"]:
        """Classify a named type, None if it is not a scalar or enum."""
        if type_name in BUILTIN_SCALARS:
            return cls(type_name)
        if enums and type_name in enums:
            return cls.ENUM
        return None

    @property
    def is_identifier(self) -> bool:
        return self is ScalarKind.ID

    @property
    def is_string_like(self) -> bool:
        return self in (ScalarKind.ID, ScalarKind.STRING)

    @property
    def is_integer_like(self) -> bool:
        return self in (ScalarKind.INT, ScalarKind.BIG_INT)

    @property
    def is_float_like(self) -> bool:
        return self is ScalarKind.FLOAT

    @property
    def is_numeric(self) -> bool:
        return self.is_integer_like or self.is_float_like

    @property
    def is_temporal(self) -> bool:
        return self in TEMPORAL_KINDS


TEMPORAL_KINDS = frozenset({
    ScalarKind.DATE_TIME,
    ScalarKind.DATE,
    ScalarKind.TIME,
    ScalarKind.LOCAL_TIME,
    ScalarKind.LOCAL_DATE_TIME,
    ScalarKind.DURATION,
})

# Scalars understood natively. Everything except the GraphQL built-ins
# is declared in the printed SDL when referenced.
BUILTIN_SCALARS = (
    "ID", "String", "Int", "BigInt", "Float", "Boolean",
    "DateTime", "Date", "Time", "LocalTime", "LocalDateTime", "Duration",
)
GRAPHQL_SCALARS = frozenset({"ID", "String", "Int", "Float", "Boolean"})


# =============================================================================
# Entity graph
# =============================================================================


class FieldRole(str, Enum):
    """Exactly one role per field, resolved once by the type model builder."""
    SCALAR = "scalar"
    RELATIONSHIP_REF = "relationship"
    COMPUTED_BY_CALLBACK = "computed"
    GENERATED_ID = "generated_id"
    UNIQUE_CONSTRAINT = "unique"


class Direction(str, Enum):
    OUT = "OUT"
    IN = "IN"
    UNDIRECTED = "UNDIRECTED"


class Cardinality(str, Enum):
    ONE = "one"
    MANY = "many"


class TargetKind(str, Enum):
    ENTITY = "entity"
    INTERFACE = "interface"
    UNION = "union"


class MutationOperation(str, Enum):
    """Write operations a computed or timestamp field can be bound to."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"


@dataclass(frozen=True)
class RelationshipDecl:
    """Raw relationship directive data as written on a field."""
    type: Optional[str] = None
    direction: Optional[Direction] = None
    properties: Optional[str] = None
    declared_only: bool = False


@dataclass(frozen=True)
class CallbackBinding:
    """A field populated by an external callback on the listed operations."""
    callback: str
    operations: tuple[MutationOperation, ...] = (MutationOperation.CREATE, MutationOperation.UPDATE)


@dataclass(frozen=True)
class Field:
    """A field of an entity, interface or relationship properties type."""
    name: str
    type_name: str
    role: FieldRole = FieldRole.SCALAR
    kind: Optional[ScalarKind] = None
    is_list: bool = False
    is_required: bool = False
    is_item_required: bool = False
    relationship: Optional[RelationshipDecl] = None
    callback: Optional[CallbackBinding] = None
    timestamp_operations: tuple[MutationOperation, ...] = ()
    default_value: Optional[str] = None  # printed GraphQL literal
    description: Optional[str] = None
    deprecation_reason: Optional[str] = None
    private: bool = False
    unique: bool = False
    directives: tuple[str, ...] = ()  # printed pass-through user directives

    @property
    def is_relationship(self) -> bool:
        return self.role is FieldRole.RELATIONSHIP_REF

    @property
    def type_ref(self) -> str:
        """GraphQL type reference as declared, e.g. [String!]!"""
        ref = self.type_name
        if self.is_list:
            ref = f"[{ref}!]" if self.is_item_required else f"[{ref}]"
        return f"{ref}!" if self.is_required else ref

    @property
    def is_sortable(self) -> bool:
        """Any non-list scalar field, custom scalars included."""
        return not self.is_relationship and not self.is_list

    def is_settable_on(self, operation: MutationOperation) -> bool:
        """Whether users may provide a value for this field on a write."""
        if self.private or self.role is FieldRole.GENERATED_ID:
            return False
        if self.callback and operation in self.callback.operations:
            return False
        if operation in self.timestamp_operations:
            return False
        return True


@dataclass(frozen=True)
class Entity:
    """
    A node-like type: concrete entity or interface.

    Fields are kept in declaration order. Interfaces that implement other
    interfaces carry the inherited fields they do not redeclare once the
    relationship resolver has run.
    """
    name: str
    fields: tuple[Field, ...] = ()
    interfaces: tuple[str, ...] = ()
    is_interface: bool = False
    is_union_member: bool = False
    description: Optional[str] = None
    authorization: Optional[dict[str, Any]] = None
    directives: tuple[str, ...] = ()

    def get_field(self, name: str) -> Optional[Field]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def scalar_fields(self) -> tuple[Field, ...]:
        return tuple(f for f in self.fields if not f.is_relationship and not f.private)

    @property
    def relationship_fields(self) -> tuple[Field, ...]:
        return tuple(f for f in self.fields if f.is_relationship)

    @property
    def unique_fields(self) -> tuple[Field, ...]:
        return tuple(
            f for f in self.fields
            if f.unique or f.role in (FieldRole.UNIQUE_CONSTRAINT, FieldRole.GENERATED_ID)
        )


@dataclass(frozen=True)
class PropertiesType:
    """A relationship properties bag (type marked @relationshipProperties)."""
    name: str
    fields: tuple[Field, ...] = ()
    description: Optional[str] = None

    def get_field(self, name: str) -> Optional[Field]:
        for f in self.fields:
            if f.name == name:
                return f
        return None


@dataclass(frozen=True)
class EnumDef:
    """A user enum, printed back unchanged apart from ordering."""
    name: str
    values: tuple["EnumValueDef", ...]
    description: Optional[str] = None
    directives: tuple[str, ...] = ()


# =============================================================================
# Properties binding
# =============================================================================


@dataclass(frozen=True)
class NoProperties:
    """The relationship carries no properties."""

    @property
    def types(self) -> tuple[str, ...]:
        return ()


@dataclass(frozen=True)
class Shared:
    """Every implementation of the relationship uses the same properties type."""
    prop_type: str

    @property
    def types(self) -> tuple[str, ...]:
        return (self.prop_type,)


@dataclass(frozen=True)
class PerImplementation:
    """
    Implementations of a declared relationship use diverging properties types.

    implementations holds (implementer, properties type) pairs in declaration
    order; implementers declaring no properties are absent.
    """
    implementations: tuple[tuple[str, str], ...]

    def __post_init__(self):
        if len(self.types) < 2:
            raise ValueError(
                "PerImplementation needs at least two distinct properties types, "
                f"got {list(self.types)}"
            )

    @property
    def types(self) -> tuple[str, ...]:
        seen: list[str] = []
        for _, prop_type in self.implementations:
            if prop_type not in seen:
                seen.append(prop_type)
        return tuple(seen)

    @property
    def implementers(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.implementations)

    def implementers_of(self, prop_type: str) -> tuple[str, ...]:
        return tuple(name for name, p in self.implementations if p == prop_type)

    def prop_type_of(self, implementer: str) -> Optional[str]:
        return dict(self.implementations).get(implementer)


PropertiesBinding = Union[NoProperties, Shared, PerImplementation]


def binding_for(implementations: list[tuple[str, Optional[str]]]) -> PropertiesBinding:
    """
    Unify properties types observed across implementations.

    0 distinct types -> NoProperties, 1 -> Shared, 2+ -> PerImplementation.
    """
    used = [(name, prop) for name, prop in implementations if prop]
    distinct = {prop for _, prop in used}
    if not distinct:
        return NoProperties()
    if len(distinct) == 1:
        return Shared(used[0][1])
    return PerImplementation(tuple(used))


@dataclass(frozen=True)
class RelationshipEdge:
    """Resolved, directed description of a relationship field."""
    source: str
    field_name: str
    target: str
    target_kind: TargetKind
    native_type: Optional[str]
    direction: Optional[Direction]
    cardinality: Cardinality
    binding: PropertiesBinding
    is_required: bool = False
    declared_on: Optional[str] = None  # root interface owning the derived names

    @property
    def is_many(self) -> bool:
        return self.cardinality is Cardinality.MANY

    @property
    def naming_owner(self) -> str:
        return self.declared_on or self.source


# =============================================================================
# Entity graph container
# =============================================================================


@dataclass(frozen=True)
class EntityGraph:
    """
    The resolved entity graph.

    Entities (interfaces included) keep declaration order. Edges are keyed
    by (owner, field name) and filled by the relationship resolver.
    """
    entities: dict[str, Entity] = field(default_factory=dict)
    unions: dict[str, tuple[str, ...]] = field(default_factory=dict)
    enums: dict[str, EnumDef] = field(default_factory=dict)
    scalars: dict[str, Optional[str]] = field(default_factory=dict)
    properties: dict[str, PropertiesType] = field(default_factory=dict)
    claims: Optional[Entity] = None
    claim_paths: dict[str, str] = field(default_factory=dict)
    directive_definitions: tuple[str, ...] = ()
    edges: dict[tuple[str, str], RelationshipEdge] = field(default_factory=dict)

    def get_entity(self, name: str) -> Optional[Entity]:
        return self.entities.get(name)

    def concrete_entities(self) -> list[Entity]:
        return [e for e in self.entities.values() if not e.is_interface]

    def interfaces(self) -> list[Entity]:
        return [e for e in self.entities.values() if e.is_interface]

    def implementers(self, interface: str) -> list[Entity]:
        """Concrete entities implementing the interface directly or transitively."""
        return [
            e for e in self.concrete_entities()
            if interface in self.ancestors(e.name)
        ]

    def ancestors(self, name: str) -> list[str]:
        """All interfaces a type implements, transitively, nearest first."""
        result: list[str] = []
        pending = list(self.entities[name].interfaces) if name in self.entities else []
        while pending:
            current = pending.pop(0)
            if current in result:
                continue
            result.append(current)
            parent = self.entities.get(current)
            if parent:
                pending.extend(parent.interfaces)
        return result

    def target_kind(self, type_name: str) -> Optional[TargetKind]:
        entity = self.entities.get(type_name)
        if entity:
            return TargetKind.INTERFACE if entity.is_interface else TargetKind.ENTITY
        if type_name in self.unions:
            return TargetKind.UNION
        return None

    def is_compatible_target(self, candidate: str, declared: str) -> bool:
        """Whether a concrete target may stand in for a declared target type."""
        if candidate == declared:
            return True
        if declared in self.unions:
            return candidate in self.unions[declared]
        return declared in self.ancestors(candidate)

    def edge(self, owner: str, field_name: str) -> Optional[RelationshipEdge]:
        return self.edges.get((owner, field_name))

    def edges_of(self, owner: str) -> list[RelationshipEdge]:
        entity = self.entities.get(owner)
        if not entity:
            return []
        return [
            self.edges[(owner, f.name)]
            for f in entity.relationship_fields
            if (owner, f.name) in self.edges
        ]


# =============================================================================
# Derived type system
# =============================================================================


class DerivedTypeKind(str, Enum):
    """Tag of every generated type."""
    OBJECT = "Object"
    INTERFACE = "Interface"
    IMPLEMENTATION = "Implementation"
    WHERE = "Where"
    SORT = "Sort"
    OPTIONS = "Options"
    CREATE_INPUT = "CreateInput"
    UPDATE_INPUT = "UpdateInput"
    DELETE_INPUT = "DeleteInput"
    CONNECT_INPUT = "ConnectInput"
    DISCONNECT_INPUT = "DisconnectInput"
    CONNECT_WHERE = "ConnectWhere"
    AGGREGATE_SELECTION = "AggregateSelection"
    EDGE = "Edge"
    CONNECTION = "Connection"
    MUTATION_RESPONSE = "MutationResponse"
    CONNECT_FIELD_INPUT = "ConnectFieldInput"
    CREATE_FIELD_INPUT = "CreateFieldInput"
    DELETE_FIELD_INPUT = "DeleteFieldInput"
    DISCONNECT_FIELD_INPUT = "DisconnectFieldInput"
    UPDATE_FIELD_INPUT = "UpdateFieldInput"
    UPDATE_CONNECTION_INPUT = "UpdateConnectionInput"
    FIELD_INPUT = "FieldInput"
    RELATIONSHIP = "Relationship"
    CONNECTION_WHERE = "ConnectionWhere"
    CONNECTION_SORT = "ConnectionSort"
    AGGREGATE_INPUT = "AggregateInput"
    NODE_AGGREGATION_WHERE_INPUT = "NodeAggregationWhereInput"
    AGGREGATION_WHERE_INPUT = "AggregationWhereInput"
    AGGREGATION_SELECTION = "AggregationSelection"
    NODE_AGGREGATE_SELECTION = "NodeAggregateSelection"
    EDGE_AGGREGATE_SELECTION = "EdgeAggregateSelection"
    RELATIONSHIP_PROPERTIES = "RelationshipProperties"
    EDGE_CREATE_INPUT = "EdgeCreateInput"
    EDGE_UPDATE_INPUT = "EdgeUpdateInput"
    EDGE_WHERE = "EdgeWhere"
    EDGE_SORT = "EdgeSort"
    EDGE_AGGREGATION_WHERE_INPUT = "EdgeAggregationWhereInput"
    SCALAR_AGGREGATE_SELECTION = "ScalarAggregateSelection"
    EVENT = "Event"
    EVENT_PAYLOAD = "EventPayload"
    SUBSCRIPTION_WHERE = "SubscriptionWhere"
    SHARED = "Shared"
    ROOT = "Root"
    SCALAR = "Scalar"
    PASSTHROUGH = "Passthrough"


class TypeShape(str, Enum):
    """SDL keyword of a derived type."""
    OBJECT = "type"
    INPUT = "input"
    INTERFACE = "interface"
    ENUM = "enum"
    UNION = "union"
    SCALAR = "scalar"


@dataclass(frozen=True)
class DerivedArgument:
    name: str
    type_ref: str
    default: Optional[str] = None
    description: Optional[str] = None
    deprecation_reason: Optional[str] = None


@dataclass(frozen=True)
class DerivedField:
    """A field of a generated object/input type."""
    name: str
    type_ref: str
    args: tuple[DerivedArgument, ...] = ()
    description: Optional[str] = None
    deprecation_reason: Optional[str] = None
    default: Optional[str] = None
    directives: tuple[str, ...] = ()


@dataclass(frozen=True)
class EnumValueDef:
    name: str
    description: Optional[str] = None
    deprecation_reason: Optional[str] = None


@dataclass(frozen=True)
class DerivedType:
    """A generated type keyed by its deterministic name."""
    name: str
    kind: DerivedTypeKind
    shape: TypeShape
    fields: tuple[DerivedField, ...] = ()
    description: Optional[str] = None
    interfaces: tuple[str, ...] = ()
    members: tuple[str, ...] = ()
    values: tuple[EnumValueDef, ...] = ()
    directives: tuple[str, ...] = ()
    owner: Optional[str] = None

    def get_field(self, name: str) -> Optional[DerivedField]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]
