"""
Schema augmenter - derives the full type system from the resolved entity graph.

For every entity, interface, union and relationship the augmenter emits the
object, input and enum types of the generated API, plus the root Query,
Mutation and (optionally) Subscription types. It is a pure function of the
entity graph and the build features: entities and fields are visited in
declaration order and nothing is sorted until the printer runs.

Usage:
    from nodegraph.core.augmenter import SchemaAugmenter

    augmenter = SchemaAugmenter(graph, features)
    types = augmenter.augment()  # dict name -> DerivedType

    types["MovieWhere"].field_names
"""

from __future__ import annotations

import logging
from typing import Optional

from .defs import (
    BUILTIN_SCALARS,
    GRAPHQL_SCALARS,
    DerivedArgument,
    DerivedField,
    DerivedType,
    DerivedTypeKind,
    Entity,
    EntityGraph,
    EnumValueDef,
    Field,
    MutationOperation,
    PerImplementation,
    PropertiesBinding,
    PropertiesType,
    RelationshipEdge,
    Shared,
    TargetKind,
    TypeShape,
)
from .errors import BuildError, SchemaValidationError
from .features import Features
from .scalars import (
    AGGREGATION_COMPARATORS,
    DIRECTED_REASON,
    EQ,
    ID_AGGREGATION_REASON,
    IMPLICIT_COUNT,
    IMPLICIT_EQUAL,
    IMPLICIT_SET,
    OPTIONS_REASON,
    OVERWRITE_REASON,
    SCALAR_DESCRIPTIONS,
    SET,
    TYPENAME_IN,
    AggregateShape,
    LegacyAlias,
    Operator,
    aggregate_selection,
    aggregation_filters,
    update_operators,
    where_operators,
)
from .utils import lower_first, plural_field, plural_type, upper_first

logger = logging.getLogger(__name__)


QUANTIFIERS = (
    ("ALL", "all"),
    ("NONE", "none"),
    ("SINGLE", "one"),
    ("SOME", "some"),
)

EMPTY_INPUT_FIELD = "_emptyInput"


class SchemaAugmenter:
    """
    Derives every generated type from the entity graph.

    Relationship-centric types come in two flavours:
    - owner types, named <Owner><Field>..., describe writes and filters from
      the point of view of one owner (entity or interface)
    - shared types, named after the outermost interface declaring the field,
      describe the relationship itself (connection, edge, connection where
      and sort) so every implementer exposes the same field signature
    """

    def __init__(self, graph: EntityGraph, features: Optional[Features] = None):
        self.graph = graph
        self.features = features or Features()
        self.exclude = self.features.exclude_deprecated_fields
        self.types: dict[str, DerivedType] = {}
        self.errors: list[BuildError] = []

    def augment(self) -> dict[str, DerivedType]:
        """
        Generate all types.

        Raises:
            SchemaValidationError: If generated names collide or nothing is queryable
        """
        self.types = {}
        self.errors = []

        if not self.graph.entities:
            self._add_error("At least one entity is required to build a schema")
            raise SchemaValidationError(self.errors)

        self._add_shared_types()
        self._add_passthrough_types()

        for props in self.graph.properties.values():
            self._add_properties_types(props)

        for entity in self.graph.entities.values():
            if entity.is_interface:
                self._add_interface(entity)
            else:
                self._add_entity(entity)
            for edge in self.graph.edges_of(entity.name):
                self._add_relationship_types(entity, edge)

        for union_name in self.graph.unions:
            self._add_union(union_name)

        self._add_query()
        self._add_mutation()
        if self.features.subscriptions:
            self._add_subscription()

        if self.errors:
            raise SchemaValidationError(self.errors)

        logger.debug(f"Generated {len(self.types)} types")
        return self.types

    def _add_error(
        self,
        message: str,
        entity: Optional[str] = None,
        field: Optional[str] = None,
    ):
        """Add an augmentation error."""
        self.errors.append(BuildError(entity=entity, field=field, message=message))

    # =========================================================================
    # Type registration helpers
    # =========================================================================

    def _add(
        self,
        name: str,
        kind: DerivedTypeKind,
        shape: TypeShape,
        fields: Optional[list[DerivedField]] = None,
        owner: Optional[str] = None,
        **kwargs,
    ) -> DerivedType:
        existing = self.types.get(name)
        if existing is not None:
            self._add_error(
                f"Generated type name '{name}' ({kind.value}) collides with an "
                f"existing {existing.kind.value} type",
                entity=owner,
            )
            return existing
        derived = DerivedType(name=name, kind=kind, shape=shape, fields=tuple(fields or ()), owner=owner, **kwargs)
        self.types[name] = derived
        return derived

    def _input(self, name: str, kind: DerivedTypeKind, fields: list[DerivedField], **kwargs) -> DerivedType:
        return self._add(name, kind, TypeShape.INPUT, fields, **kwargs)

    def _object(self, name: str, kind: DerivedTypeKind, fields: list[DerivedField], **kwargs) -> DerivedType:
        return self._add(name, kind, TypeShape.OBJECT, fields, **kwargs)

    def _legacy(self, alias: LegacyAlias, name: str, type_ref: str) -> list[DerivedField]:
        """The legacy form of a field, unless its family is excluded."""
        if self.exclude.excludes(alias.flag):
            return []
        return [DerivedField(name, type_ref, deprecation_reason=alias.reason)]

    @staticmethod
    def _logical(name: str) -> list[DerivedField]:
        return [
            DerivedField("AND", f"[{name}!]"),
            DerivedField("NOT", name),
            DerivedField("OR", f"[{name}!]"),
        ]

    # =========================================================================
    # Shared and pass-through types
    # =========================================================================

    def _add_shared_types(self):
        self._object("PageInfo", DerivedTypeKind.SHARED, [
            DerivedField("endCursor", "String"),
            DerivedField("hasNextPage", "Boolean!"),
            DerivedField("hasPreviousPage", "Boolean!"),
            DerivedField("startCursor", "String"),
        ], description="Pagination information (Relay)")

        self._object("CreateInfo", DerivedTypeKind.SHARED, [
            DerivedField("nodesCreated", "Int!"),
            DerivedField("relationshipsCreated", "Int!"),
        ], description="Information about the number of nodes and relationships created during a create mutation")

        self._object("DeleteInfo", DerivedTypeKind.SHARED, [
            DerivedField("nodesDeleted", "Int!"),
            DerivedField("relationshipsDeleted", "Int!"),
        ], description="Information about the number of nodes and relationships deleted during a delete mutation")

        self._object("UpdateInfo", DerivedTypeKind.SHARED, [
            DerivedField("nodesCreated", "Int!"),
            DerivedField("nodesDeleted", "Int!"),
            DerivedField("relationshipsCreated", "Int!"),
            DerivedField("relationshipsDeleted", "Int!"),
        ], description=(
            "Information about the number of nodes and relationships created "
            "and deleted during an update mutation"
        ))

        self._add("SortDirection", DerivedTypeKind.SHARED, TypeShape.ENUM, values=(
            EnumValueDef("ASC", description="Sort by field values in ascending order."),
            EnumValueDef("DESC", description="Sort by field values in descending order."),
        ), description="An enum for sorting in either ascending or descending order.")

        self._input("QueryOptions", DerivedTypeKind.SHARED, [
            DerivedField("limit", "Int"),
            DerivedField("offset", "Int"),
        ])

        if self.features.subscriptions:
            self._add("EventType", DerivedTypeKind.SHARED, TypeShape.ENUM, values=(
                EnumValueDef("CREATE"),
                EnumValueDef("CREATE_RELATIONSHIP"),
                EnumValueDef("DELETE"),
                EnumValueDef("DELETE_RELATIONSHIP"),
                EnumValueDef("UPDATE"),
            ))

        for scalar in BUILTIN_SCALARS:
            if scalar in GRAPHQL_SCALARS:
                continue
            self._add(
                scalar,
                DerivedTypeKind.SCALAR,
                TypeShape.SCALAR,
                description=SCALAR_DESCRIPTIONS.get(scalar),
            )

    def _add_passthrough_types(self):
        for name, description in self.graph.scalars.items():
            self._add(name, DerivedTypeKind.PASSTHROUGH, TypeShape.SCALAR, description=description)
        for enum in self.graph.enums.values():
            self._add(
                enum.name,
                DerivedTypeKind.PASSTHROUGH,
                TypeShape.ENUM,
                values=tuple(enum.values),
                description=enum.description,
                directives=enum.directives,
            )

    def _ensure_aggregate_shape(self, shape: AggregateShape):
        if shape.type_name in self.types:
            return
        self._object(
            shape.type_name,
            DerivedTypeKind.SCALAR_AGGREGATE_SELECTION,
            [DerivedField(name, type_ref) for name, type_ref in shape.fields],
        )

    # =========================================================================
    # Per-field contributions
    # =========================================================================

    @staticmethod
    def _operand_type(f: Field, op: Operator) -> str:
        if op.shape == "int":
            return "Int"
        if op.shape == "item":
            return f.type_name
        if op.shape == "list":
            return f"[{f.type_name}!]" if f.is_required else f"[{f.type_name}]"
        if f.is_list:
            return f"[{f.type_name}!]" if f.is_item_required else f"[{f.type_name}]"
        return f.type_name

    def _where_fields(self, f: Field) -> list[DerivedField]:
        fields: list[DerivedField] = []
        for op in where_operators(f.kind, f.is_list):
            type_ref = self._operand_type(f, op)
            if op is EQ:
                fields.extend(self._legacy(IMPLICIT_EQUAL, f.name, type_ref))
            fields.append(DerivedField(
                f"{f.name}{op.suffix}",
                type_ref,
                deprecation_reason=f.deprecation_reason,
            ))
        return fields

    def _update_fields(self, f: Field) -> list[DerivedField]:
        fields: list[DerivedField] = []
        for op in update_operators(f.kind, f.is_list):
            type_ref = self._operand_type(f, op)
            if op is SET:
                fields.extend(self._legacy(IMPLICIT_SET, f.name, type_ref))
            fields.append(DerivedField(
                f"{f.name}{op.suffix}",
                type_ref,
                deprecation_reason=f.deprecation_reason,
            ))
        return fields

    def _create_field(self, f: Field) -> DerivedField:
        return DerivedField(
            f.name,
            f.type_ref,
            default=f.default_value,
            deprecation_reason=f.deprecation_reason,
        )

    def _aggregate_selection_field(self, f: Field) -> Optional[DerivedField]:
        shape = aggregate_selection(f.kind, f.is_list)
        if shape is None:
            return None
        if shape.deprecation_reason and self.exclude.id_aggregations:
            return None
        self._ensure_aggregate_shape(shape)
        return DerivedField(
            f.name,
            f"{shape.type_name}!",
            deprecation_reason=shape.deprecation_reason or f.deprecation_reason,
        )

    def _aggregation_filter_fields(self, f: Field) -> list[DerivedField]:
        filters = aggregation_filters(f.kind, f.is_list)
        if f.kind is not None and f.kind.is_identifier:
            if self.exclude.id_aggregations:
                return []
            reason: Optional[str] = ID_AGGREGATION_REASON
        else:
            reason = f.deprecation_reason
        return [
            DerivedField(f"{f.name}_{operation}_{comparator}", type_ref, deprecation_reason=reason)
            for operation, type_ref in filters
            for comparator in AGGREGATION_COMPARATORS
        ]

    def _sort_fields(self, fields: tuple[Field, ...]) -> list[DerivedField]:
        return [
            DerivedField(f.name, "SortDirection", deprecation_reason=f.deprecation_reason)
            for f in fields
            if f.is_sortable
        ]

    # =========================================================================
    # Queries about other types
    # =========================================================================

    def _has_relationships(self, name: str) -> bool:
        entity = self.graph.get_entity(name)
        return entity is not None and bool(entity.relationship_fields)

    def _has_sort(self, name: str) -> bool:
        entity = self.graph.get_entity(name)
        if entity is None:
            return False
        return any(f.is_sortable for f in entity.scalar_fields)

    def _aggregable_fields(self, fields: tuple[Field, ...]) -> list[Field]:
        result = []
        for f in fields:
            if f.is_relationship or f.private or f.kind is None:
                continue
            if aggregate_selection(f.kind, f.is_list) is None:
                continue
            if f.kind.is_identifier and self.exclude.id_aggregations:
                continue
            result.append(f)
        return result

    @staticmethod
    def _props_fields(props: PropertiesType) -> tuple[Field, ...]:
        return tuple(f for f in props.fields if not f.private)

    def _props_update_fields(self, props: PropertiesType) -> list[Field]:
        return [f for f in self._props_fields(props) if f.is_settable_on(MutationOperation.UPDATE)]

    def _props_create_required(self, prop_type: str) -> bool:
        props = self.graph.properties.get(prop_type)
        if props is None:
            return False
        return any(
            f.is_required and f.default_value is None
            for f in self._props_fields(props)
            if f.is_settable_on(MutationOperation.CREATE)
        )

    def _implementation_names(self, interface: str) -> list[str]:
        return [e.name for e in self.graph.implementers(interface)]

    def _shared_edge(self, edge: RelationshipEdge) -> RelationshipEdge:
        """The edge of the outermost declaring interface, or the edge itself."""
        if edge.declared_on and edge.declared_on != edge.source:
            root = self.graph.edge(edge.declared_on, edge.field_name)
            if root is not None:
                return root
        return edge

    def _shared_binding(self, edge: RelationshipEdge) -> PropertiesBinding:
        """The binding describing the relationship generically."""
        return self._shared_edge(edge).binding

    @staticmethod
    def _owner_prefix(owner: Entity, edge: RelationshipEdge) -> str:
        return f"{owner.name}{upper_first(edge.field_name)}"

    @staticmethod
    def _shared_prefix(edge: RelationshipEdge) -> str:
        return f"{edge.naming_owner}{upper_first(edge.field_name)}"

    # =========================================================================
    # Relationship properties
    # =========================================================================

    def _add_properties_types(self, props: PropertiesType):
        fields = self._props_fields(props)
        users = [
            f"{e.source}.{e.field_name}"
            for e in self.graph.edges.values()
            if props.name in e.binding.types and self.graph.entities[e.source].is_interface is False
        ]
        description = props.description
        if users:
            listing = "\n".join(f"* {user}" for user in users)
            description = f"The edge properties for the following fields:\n{listing}"

        self._object(props.name, DerivedTypeKind.RELATIONSHIP_PROPERTIES, [
            DerivedField(
                f.name,
                f.type_ref,
                description=f.description,
                deprecation_reason=f.deprecation_reason,
                directives=f.directives,
            )
            for f in fields
        ], description=description, owner=props.name)

        create_fields = [self._create_field(f) for f in fields if f.is_settable_on(MutationOperation.CREATE)]
        self._input(
            f"{props.name}CreateInput",
            DerivedTypeKind.CREATE_INPUT,
            create_fields or [DerivedField(EMPTY_INPUT_FIELD, "Boolean")],
            owner=props.name,
        )

        update_fields = [u for f in self._props_update_fields(props) for u in self._update_fields(f)]
        if update_fields:
            self._input(f"{props.name}UpdateInput", DerivedTypeKind.UPDATE_INPUT, update_fields, owner=props.name)

        where_fields = self._logical(f"{props.name}Where")
        for f in fields:
            where_fields.extend(self._where_fields(f))
        self._input(f"{props.name}Where", DerivedTypeKind.WHERE, where_fields, owner=props.name)

        sort_fields = self._sort_fields(fields)
        if sort_fields:
            self._input(f"{props.name}Sort", DerivedTypeKind.SORT, sort_fields, owner=props.name)

        aggregation_fields = [a for f in self._aggregable_fields(fields) for a in self._aggregation_filter_fields(f)]
        if aggregation_fields:
            name = f"{props.name}AggregationWhereInput"
            self._input(
                name,
                DerivedTypeKind.AGGREGATION_WHERE_INPUT,
                self._logical(name) + aggregation_fields,
                owner=props.name,
            )

    def _edge_input(self, binding: PropertiesBinding, prefix: str, suffix: str) -> Optional[str]:
        """
        Name of an edge input for a binding, None if there is none.

        suffix is one of CreateInput, UpdateInput, Where, Sort,
        AggregationWhereInput. Shared bindings use the properties input
        directly, per-implementation bindings use the keyed wrapper.
        """
        if isinstance(binding, Shared):
            name = f"{binding.prop_type}{suffix}"
            return name if name in self.types else None
        if isinstance(binding, PerImplementation):
            wrapper_suffix = {
                "CreateInput": "EdgeCreateInput",
                "UpdateInput": "EdgeUpdateInput",
                "Where": "EdgeWhere",
                "Sort": "EdgeSort",
                "AggregationWhereInput": "EdgeAggregationWhereInput",
            }[suffix]
            name = f"{prefix}{wrapper_suffix}"
            return name if name in self.types else None
        return None

    def _wrapped_props_input(self, prop_type: str, suffix: str) -> str:
        if suffix == "CreateInput" and self._props_create_required(prop_type):
            return f"{prop_type}{suffix}!"
        return f"{prop_type}{suffix}"

    def _add_properties_wrappers(self, prefix: str, binding: PerImplementation):
        """Keyed wrapper inputs and the properties union of a diverging relationship."""
        if f"{prefix}RelationshipProperties" in self.types:
            return

        cases = "\n".join(
            f"* {prop_type}: {', '.join(binding.implementers_of(prop_type))}"
            for prop_type in binding.types
        )
        self._add(
            f"{prefix}RelationshipProperties",
            DerivedTypeKind.RELATIONSHIP_PROPERTIES,
            TypeShape.UNION,
            members=binding.types,
            description=f"Relationship properties by implementing type:\n{cases}",
            owner=prefix,
        )

        wrappers = (
            ("CreateInput", "EdgeCreateInput", DerivedTypeKind.EDGE_CREATE_INPUT),
            ("UpdateInput", "EdgeUpdateInput", DerivedTypeKind.EDGE_UPDATE_INPUT),
            ("Where", "EdgeWhere", DerivedTypeKind.EDGE_WHERE),
            ("Sort", "EdgeSort", DerivedTypeKind.EDGE_SORT),
            ("AggregationWhereInput", "EdgeAggregationWhereInput", DerivedTypeKind.EDGE_AGGREGATION_WHERE_INPUT),
        )
        for suffix, wrapper_suffix, kind in wrappers:
            fields = [
                DerivedField(
                    implementer,
                    self._wrapped_props_input(prop_type, suffix),
                    description=f"Relationship properties when source node is of type:\n* {implementer}",
                )
                for implementer, prop_type in binding.implementations
                if f"{prop_type}{suffix}" in self.types
            ]
            if fields:
                self._input(f"{prefix}{wrapper_suffix}", kind, fields, owner=prefix)

    # =========================================================================
    # Entities
    # =========================================================================

    def _add_entity(self, entity: Entity):
        name = entity.name
        self._object(
            name,
            DerivedTypeKind.OBJECT,
            self._object_fields(entity),
            interfaces=tuple(self.graph.ancestors(name)),
            description=entity.description,
            directives=entity.directives,
            owner=name,
        )
        self._add_aggregate_selection(entity)
        self._add_where(entity)
        self._add_sort_and_options(entity)
        self._add_connection(entity)
        self._input(f"{name}ConnectWhere", DerivedTypeKind.CONNECT_WHERE, [
            DerivedField("node", f"{name}Where!"),
        ], owner=name)

        create_fields = [
            self._create_field(f) for f in entity.scalar_fields
            if f.is_settable_on(MutationOperation.CREATE)
        ]
        for f in entity.relationship_fields:
            edge = self.graph.edge(name, f.name)
            if edge is None:
                continue
            prefix = self._owner_prefix(entity, edge)
            type_ref = f"{prefix}CreateInput" if edge.target_kind is TargetKind.UNION else f"{prefix}FieldInput"
            create_fields.append(DerivedField(f.name, type_ref, deprecation_reason=f.deprecation_reason))
        self._input(
            f"{name}CreateInput",
            DerivedTypeKind.CREATE_INPUT,
            create_fields or [DerivedField(EMPTY_INPUT_FIELD, "Boolean")],
            owner=name,
        )

        self._add_update_input(entity)
        self._add_relationship_keyed_inputs(entity)

        plural = plural_type(name)
        self._object(f"Create{plural}MutationResponse", DerivedTypeKind.MUTATION_RESPONSE, [
            DerivedField("info", "CreateInfo!"),
            DerivedField(plural_field(name), f"[{name}!]!"),
        ], owner=name)
        self._object(f"Update{plural}MutationResponse", DerivedTypeKind.MUTATION_RESPONSE, [
            DerivedField("info", "UpdateInfo!"),
            DerivedField(plural_field(name), f"[{name}!]!"),
        ], owner=name)

        if self.features.subscriptions:
            self._add_subscription_types(entity)

    def _object_fields(self, entity: Entity) -> list[DerivedField]:
        fields: list[DerivedField] = []
        for f in entity.fields:
            if f.private:
                continue
            if not f.is_relationship:
                fields.append(DerivedField(
                    f.name,
                    f.type_ref,
                    description=f.description,
                    deprecation_reason=f.deprecation_reason,
                    directives=f.directives,
                ))
                continue
            edge = self.graph.edge(entity.name, f.name)
            if edge is not None:
                fields.extend(self._relationship_object_fields(entity, f, edge))
        return fields

    def _relationship_object_fields(
        self,
        owner: Entity,
        f: Field,
        edge: RelationshipEdge,
    ) -> list[DerivedField]:
        target = edge.target
        is_union = edge.target_kind is TargetKind.UNION
        shared = self._shared_prefix(edge)
        # Arguments must match the interface field exactly, so an implementer
        # narrowing the target still takes the declared target's inputs.
        root = self._shared_edge(edge)
        arg_target = root.target
        arg_is_union = root.target_kind is TargetKind.UNION
        directed = []
        if not owner.is_interface and not self.exclude.directed_argument:
            directed = [DerivedArgument("directed", "Boolean", default="true", deprecation_reason=DIRECTED_REASON)]

        args = list(directed)
        if edge.is_many:
            args.append(DerivedArgument("limit", "Int"))
            args.append(DerivedArgument("offset", "Int"))
            if not self.exclude.options_argument:
                options = "QueryOptions" if arg_is_union else f"{arg_target}Options"
                args.append(DerivedArgument("options", options, deprecation_reason=OPTIONS_REASON))
            if not arg_is_union and self._has_sort(arg_target):
                args.append(DerivedArgument("sort", f"[{arg_target}Sort!]"))
        args.append(DerivedArgument("where", f"{arg_target}Where"))

        if edge.is_many:
            return_type = f"[{target}!]!"
        else:
            return_type = f"{target}!" if f.is_required else target

        fields = [DerivedField(
            f.name,
            return_type,
            args=tuple(args),
            description=f.description,
            deprecation_reason=f.deprecation_reason,
            directives=f.directives,
        )]

        if not owner.is_interface and not is_union:
            fields.append(DerivedField(
                f"{f.name}Aggregate",
                f"{owner.name}{target}{upper_first(f.name)}AggregationSelection",
                args=tuple(directed + [DerivedArgument("where", f"{target}Where")]),
                deprecation_reason=f.deprecation_reason,
            ))

        connection_args = [DerivedArgument("after", "String")]
        connection_args += directed
        connection_args.append(DerivedArgument("first", "Int"))
        if self._connection_sort_exists(edge):
            connection_args.append(DerivedArgument("sort", f"[{shared}ConnectionSort!]"))
        connection_args.append(DerivedArgument("where", f"{shared}ConnectionWhere"))
        fields.append(DerivedField(
            f"{f.name}Connection",
            f"{shared}Connection!",
            args=tuple(connection_args),
            deprecation_reason=f.deprecation_reason,
        ))
        return fields

    def _add_aggregate_selection(self, entity: Entity):
        fields = [DerivedField("count", "Int!")]
        for f in entity.scalar_fields:
            selection = self._aggregate_selection_field(f)
            if selection is not None:
                fields.append(selection)
        self._object(f"{entity.name}AggregateSelection", DerivedTypeKind.AGGREGATE_SELECTION, fields, owner=entity.name)

    def _add_where(self, entity: Entity):
        name = entity.name
        fields = self._logical(f"{name}Where")
        for f in entity.scalar_fields:
            fields.extend(self._where_fields(f))

        if entity.is_interface:
            implementations = self._implementation_names(name)
            if implementations:
                type_ref = f"[{name}Implementation!]"
                fields.append(DerivedField(TYPENAME_IN.canonical, type_ref))
                fields.extend(self._legacy(TYPENAME_IN, TYPENAME_IN.legacy, type_ref))

        for f in entity.relationship_fields:
            edge = self.graph.edge(name, f.name)
            if edge is not None:
                fields.extend(self._relationship_where_fields(entity, f, edge))

        self._input(f"{name}Where", DerivedTypeKind.WHERE, fields, owner=name)

    def _relationship_where_fields(
        self,
        owner: Entity,
        f: Field,
        edge: RelationshipEdge,
    ) -> list[DerivedField]:
        target_where = f"{edge.target}Where"
        shared = self._shared_prefix(edge)
        connection_where = f"{shared}ConnectionWhere"
        reason = f.deprecation_reason
        fields: list[DerivedField] = []

        if edge.is_many:
            owners = plural_type(owner.name)
            targets = plural_type(edge.target)
            connections = plural_type(f"{shared}Connection")
            for suffix, word in QUANTIFIERS:
                fields.append(DerivedField(
                    f"{f.name}_{suffix}",
                    target_where,
                    description=f"Return {owners} where {word} of the related {targets} match this filter",
                    deprecation_reason=reason,
                ))
            for suffix, word in QUANTIFIERS:
                fields.append(DerivedField(
                    f"{f.name}Connection_{suffix}",
                    connection_where,
                    description=f"Return {owners} where {word} of the related {connections} match this filter",
                    deprecation_reason=reason,
                ))
        else:
            fields.append(DerivedField(f.name, target_where, deprecation_reason=reason))
            fields.append(DerivedField(f"{f.name}Connection", connection_where, deprecation_reason=reason))

        if edge.target_kind is not TargetKind.UNION:
            fields.append(DerivedField(
                f"{f.name}Aggregate",
                f"{self._owner_prefix(owner, edge)}AggregateInput",
                deprecation_reason=reason,
            ))
        return fields

    def _add_sort_and_options(self, entity: Entity):
        name = entity.name
        plural = plural_type(name)
        sort_fields = self._sort_fields(entity.scalar_fields)
        options = [DerivedField("limit", "Int"), DerivedField("offset", "Int")]
        if sort_fields:
            self._input(
                f"{name}Sort",
                DerivedTypeKind.SORT,
                sort_fields,
                description=(
                    f"Fields to sort {plural} by. The order in which sorts are applied is not "
                    f"guaranteed when specifying many fields in one {name}Sort object."
                ),
                owner=name,
            )
            options.append(DerivedField(
                "sort",
                f"[{name}Sort!]",
                description=(
                    f"Specify one or more {name}Sort objects to sort {plural} by. The sorts will "
                    "be applied in the order in which they are arranged in the array."
                ),
            ))
        self._input(f"{name}Options", DerivedTypeKind.OPTIONS, options, owner=name)

    def _add_connection(self, entity: Entity):
        name = entity.name
        self._object(f"{name}Edge", DerivedTypeKind.EDGE, [
            DerivedField("cursor", "String!"),
            DerivedField("node", f"{name}!"),
        ], owner=name)
        self._object(f"{plural_type(name)}Connection", DerivedTypeKind.CONNECTION, [
            DerivedField("edges", f"[{name}Edge!]!"),
            DerivedField("pageInfo", "PageInfo!"),
            DerivedField("totalCount", "Int!"),
        ], owner=name)

    def _add_update_input(self, entity: Entity):
        name = entity.name
        fields: list[DerivedField] = []
        for f in entity.scalar_fields:
            if f.is_settable_on(MutationOperation.UPDATE):
                fields.extend(self._update_fields(f))
        for f in entity.relationship_fields:
            edge = self.graph.edge(name, f.name)
            if edge is None:
                continue
            prefix = self._owner_prefix(entity, edge)
            if edge.target_kind is TargetKind.UNION:
                type_ref = f"{prefix}UpdateInput"
            elif edge.is_many:
                type_ref = f"[{prefix}UpdateFieldInput!]"
            else:
                type_ref = f"{prefix}UpdateFieldInput"
            fields.append(DerivedField(f.name, type_ref, deprecation_reason=f.deprecation_reason))
        self._input(
            f"{name}UpdateInput",
            DerivedTypeKind.UPDATE_INPUT,
            fields or [DerivedField(EMPTY_INPUT_FIELD, "Boolean")],
            owner=name,
        )

    def _add_relationship_keyed_inputs(self, entity: Entity):
        """<Entity>ConnectInput, DisconnectInput and DeleteInput keyed by relationship."""
        name = entity.name
        connect: list[DerivedField] = []
        disconnect: list[DerivedField] = []
        delete: list[DerivedField] = []
        for f in entity.relationship_fields:
            edge = self.graph.edge(name, f.name)
            if edge is None:
                continue
            owner_prefix = self._owner_prefix(entity, edge)
            shared = self._shared_prefix(edge)
            reason = f.deprecation_reason
            if edge.target_kind is TargetKind.UNION:
                connect.append(DerivedField(f.name, f"{owner_prefix}ConnectInput", deprecation_reason=reason))
                disconnect.append(DerivedField(f.name, f"{owner_prefix}DisconnectInput", deprecation_reason=reason))
                delete.append(DerivedField(f.name, f"{owner_prefix}DeleteInput", deprecation_reason=reason))
                continue
            wrap = (lambda t: f"[{t}!]") if edge.is_many else (lambda t: t)
            connect.append(DerivedField(f.name, wrap(f"{owner_prefix}ConnectFieldInput"), deprecation_reason=reason))
            disconnect.append(DerivedField(f.name, wrap(f"{shared}DisconnectFieldInput"), deprecation_reason=reason))
            delete.append(DerivedField(f.name, wrap(f"{shared}DeleteFieldInput"), deprecation_reason=reason))

        if connect:
            self._input(f"{name}ConnectInput", DerivedTypeKind.CONNECT_INPUT, connect, owner=name)
            self._input(f"{name}DisconnectInput", DerivedTypeKind.DISCONNECT_INPUT, disconnect, owner=name)
            self._input(f"{name}DeleteInput", DerivedTypeKind.DELETE_INPUT, delete, owner=name)

    # =========================================================================
    # Interfaces
    # =========================================================================

    def _add_interface(self, interface: Entity):
        name = interface.name
        self._add(
            name,
            DerivedTypeKind.INTERFACE,
            TypeShape.INTERFACE,
            self._object_fields(interface),
            interfaces=tuple(self.graph.ancestors(name)),
            description=interface.description,
            directives=interface.directives,
            owner=name,
        )

        implementations = self._implementation_names(name)
        if implementations:
            self._add(
                f"{name}Implementation",
                DerivedTypeKind.IMPLEMENTATION,
                TypeShape.ENUM,
                values=tuple(EnumValueDef(i) for i in implementations),
                owner=name,
            )

        self._add_aggregate_selection(interface)
        self._add_where(interface)
        self._add_sort_and_options(interface)
        self._add_connection(interface)
        self._input(f"{name}ConnectWhere", DerivedTypeKind.CONNECT_WHERE, [
            DerivedField("node", f"{name}Where!"),
        ], owner=name)
        self._input(
            f"{name}CreateInput",
            DerivedTypeKind.CREATE_INPUT,
            [DerivedField(i, f"{i}CreateInput") for i in implementations]
            or [DerivedField(EMPTY_INPUT_FIELD, "Boolean")],
            owner=name,
        )
        self._add_update_input(interface)
        self._add_relationship_keyed_inputs(interface)

    # =========================================================================
    # Unions
    # =========================================================================

    def _add_union(self, name: str):
        members = self.graph.unions[name]
        self._add(name, DerivedTypeKind.PASSTHROUGH, TypeShape.UNION, members=members, owner=name)
        self._input(
            f"{name}Where",
            DerivedTypeKind.WHERE,
            [DerivedField(member, f"{member}Where") for member in members],
            owner=name,
        )

    # =========================================================================
    # Relationships
    # =========================================================================

    def _add_relationship_types(self, owner: Entity, edge: RelationshipEdge):
        shared_binding = self._shared_binding(edge)
        shared = self._shared_prefix(edge)
        if isinstance(shared_binding, PerImplementation):
            self._add_properties_wrappers(shared, shared_binding)

        if edge.target_kind is TargetKind.UNION:
            self._add_union_relationship_types(owner, edge)
        else:
            self._add_owner_relationship_types(owner, edge)
            self._add_aggregation_types(owner, edge)
        self._add_shared_relationship_types(edge)

    def _add_shared_relationship_types(self, edge: RelationshipEdge):
        """Connection, relationship, connection where/sort, delete and disconnect inputs."""
        edge = self._shared_edge(edge)
        shared = self._shared_prefix(edge)
        if f"{shared}Connection" in self.types:
            return
        binding = edge.binding
        target = edge.target

        relationship_fields = [
            DerivedField("cursor", "String!"),
            DerivedField("node", f"{target}!"),
        ]
        if isinstance(binding, Shared):
            relationship_fields.append(DerivedField("properties", f"{binding.prop_type}!"))
        elif isinstance(binding, PerImplementation):
            relationship_fields.append(DerivedField("properties", f"{shared}RelationshipProperties!"))
        self._object(f"{shared}Relationship", DerivedTypeKind.RELATIONSHIP, relationship_fields, owner=shared)

        self._object(f"{shared}Connection", DerivedTypeKind.CONNECTION, [
            DerivedField("edges", f"[{shared}Relationship!]!"),
            DerivedField("pageInfo", "PageInfo!"),
            DerivedField("totalCount", "Int!"),
        ], owner=shared)

        edge_where = self._edge_input(binding, shared, "Where")
        edge_sort = self._edge_input(binding, shared, "Sort")

        if edge.target_kind is TargetKind.UNION:
            members = self.graph.unions[target]
            for member in members:
                self._add_connection_where(f"{shared}{member}", edge_where, f"{member}Where")
                self._add_delete_disconnect(f"{shared}{member}", member)
            self._input(f"{shared}ConnectionWhere", DerivedTypeKind.CONNECTION_WHERE, [
                DerivedField(member, f"{shared}{member}ConnectionWhere") for member in members
            ], owner=shared)
            if edge_sort:
                self._input(f"{shared}ConnectionSort", DerivedTypeKind.CONNECTION_SORT, [
                    DerivedField("edge", edge_sort),
                ], owner=shared)
            return

        self._add_connection_where(shared, edge_where, f"{target}Where")
        sort_fields = []
        if edge_sort:
            sort_fields.append(DerivedField("edge", edge_sort))
        if self._has_sort(target):
            sort_fields.append(DerivedField("node", f"{target}Sort"))
        if sort_fields:
            self._input(f"{shared}ConnectionSort", DerivedTypeKind.CONNECTION_SORT, sort_fields, owner=shared)
        self._add_delete_disconnect(shared, target)

    def _connection_sort_exists(self, edge: RelationshipEdge) -> bool:
        edge = self._shared_edge(edge)
        binding = edge.binding
        props_sort = any(f"{t}Sort" in self.types for t in binding.types)
        if edge.target_kind is TargetKind.UNION:
            return props_sort
        return props_sort or self._has_sort(edge.target)

    def _add_connection_where(self, prefix: str, edge_where: Optional[str], node_where: str):
        name = f"{prefix}ConnectionWhere"
        fields = self._logical(name)
        if edge_where:
            fields.append(DerivedField("edge", edge_where))
        fields.append(DerivedField("node", node_where))
        self._input(name, DerivedTypeKind.CONNECTION_WHERE, fields, owner=prefix)

    def _add_delete_disconnect(self, prefix: str, target: str):
        delete = []
        disconnect = []
        if self._has_relationships(target):
            delete.append(DerivedField("delete", f"{target}DeleteInput"))
            disconnect.append(DerivedField("disconnect", f"{target}DisconnectInput"))
        where = DerivedField("where", f"{prefix}ConnectionWhere")
        self._input(f"{prefix}DeleteFieldInput", DerivedTypeKind.DELETE_FIELD_INPUT, delete + [where], owner=prefix)
        self._input(
            f"{prefix}DisconnectFieldInput",
            DerivedTypeKind.DISCONNECT_FIELD_INPUT,
            disconnect + [where],
            owner=prefix,
        )

    def _edge_create_field(self, edge: RelationshipEdge, prefix: str) -> list[DerivedField]:
        create = self._edge_input(edge.binding, prefix, "CreateInput")
        if create is None:
            return []
        required = any(self._props_create_required(t) for t in edge.binding.types)
        return [DerivedField("edge", f"{create}!" if required else create)]

    def _add_owner_relationship_types(self, owner: Entity, edge: RelationshipEdge):
        """Write inputs seen from one owner of an entity or interface target."""
        prefix = self._owner_prefix(owner, edge)
        shared = self._shared_prefix(edge)
        target = edge.target
        target_is_interface = edge.target_kind is TargetKind.INTERFACE
        many = (lambda t: f"[{t}!]") if edge.is_many else (lambda t: t)

        connect_fields: list[DerivedField] = []
        if self._has_relationships(target):
            connect_type = f"{target}ConnectInput" if target_is_interface else f"[{target}ConnectInput!]"
            connect_fields.append(DerivedField("connect", connect_type))
        connect_fields.extend(self._edge_create_field(edge, shared))
        if not target_is_interface and not self.exclude.overwrite:
            connect_fields.append(DerivedField(
                "overwrite",
                "Boolean!",
                default="true",
                description="Whether or not to overwrite any matching relationship with the new properties.",
                deprecation_reason=OVERWRITE_REASON,
            ))
        connect_fields.append(DerivedField("where", f"{target}ConnectWhere"))
        self._input(f"{prefix}ConnectFieldInput", DerivedTypeKind.CONNECT_FIELD_INPUT, connect_fields, owner=owner.name)

        self._input(
            f"{prefix}CreateFieldInput",
            DerivedTypeKind.CREATE_FIELD_INPUT,
            self._edge_create_field(edge, shared) + [DerivedField("node", f"{target}CreateInput!")],
            owner=owner.name,
        )

        self._input(f"{prefix}FieldInput", DerivedTypeKind.FIELD_INPUT, [
            DerivedField("connect", many(f"{prefix}ConnectFieldInput")),
            DerivedField("create", many(f"{prefix}CreateFieldInput")),
        ], owner=owner.name)

        update_connection: list[DerivedField] = []
        edge_update = self._edge_input(edge.binding, shared, "UpdateInput")
        if edge_update:
            update_connection.append(DerivedField("edge", edge_update))
        update_connection.append(DerivedField("node", f"{target}UpdateInput"))
        self._input(
            f"{prefix}UpdateConnectionInput",
            DerivedTypeKind.UPDATE_CONNECTION_INPUT,
            update_connection,
            owner=owner.name,
        )

        self._input(f"{prefix}UpdateFieldInput", DerivedTypeKind.UPDATE_FIELD_INPUT, [
            DerivedField("connect", many(f"{prefix}ConnectFieldInput")),
            DerivedField("create", many(f"{prefix}CreateFieldInput")),
            DerivedField("delete", many(f"{shared}DeleteFieldInput")),
            DerivedField("disconnect", many(f"{shared}DisconnectFieldInput")),
            DerivedField("update", f"{prefix}UpdateConnectionInput"),
            DerivedField("where", f"{shared}ConnectionWhere"),
        ], owner=owner.name)

    def _add_union_relationship_types(self, owner: Entity, edge: RelationshipEdge):
        """Per member write inputs and the member keyed containers of a union target."""
        prefix = self._owner_prefix(owner, edge)
        shared = self._shared_prefix(edge)
        members = self.graph.unions[edge.target]
        many = (lambda t: f"[{t}!]") if edge.is_many else (lambda t: t)
        edge_update = self._edge_input(edge.binding, shared, "UpdateInput")

        for member in members:
            member_prefix = f"{prefix}{member}"
            shared_member = f"{shared}{member}"
            connect_fields: list[DerivedField] = []
            if self._has_relationships(member):
                connect_fields.append(DerivedField("connect", f"[{member}ConnectInput!]"))
            connect_fields.extend(self._edge_create_field(edge, shared))
            connect_fields.append(DerivedField("where", f"{member}ConnectWhere"))
            self._input(
                f"{member_prefix}ConnectFieldInput",
                DerivedTypeKind.CONNECT_FIELD_INPUT,
                connect_fields,
                owner=owner.name,
            )
            self._input(
                f"{member_prefix}CreateFieldInput",
                DerivedTypeKind.CREATE_FIELD_INPUT,
                self._edge_create_field(edge, shared) + [DerivedField("node", f"{member}CreateInput!")],
                owner=owner.name,
            )
            self._input(f"{member_prefix}FieldInput", DerivedTypeKind.FIELD_INPUT, [
                DerivedField("connect", many(f"{member_prefix}ConnectFieldInput")),
                DerivedField("create", many(f"{member_prefix}CreateFieldInput")),
            ], owner=owner.name)

            update_connection = []
            if edge_update:
                update_connection.append(DerivedField("edge", edge_update))
            update_connection.append(DerivedField("node", f"{member}UpdateInput"))
            self._input(
                f"{member_prefix}UpdateConnectionInput",
                DerivedTypeKind.UPDATE_CONNECTION_INPUT,
                update_connection,
                owner=owner.name,
            )
            self._input(f"{member_prefix}UpdateFieldInput", DerivedTypeKind.UPDATE_FIELD_INPUT, [
                DerivedField("connect", many(f"{member_prefix}ConnectFieldInput")),
                DerivedField("create", many(f"{member_prefix}CreateFieldInput")),
                DerivedField("delete", many(f"{shared_member}DeleteFieldInput")),
                DerivedField("disconnect", many(f"{shared_member}DisconnectFieldInput")),
                DerivedField("update", f"{member_prefix}UpdateConnectionInput"),
                DerivedField("where", f"{shared_member}ConnectionWhere"),
            ], owner=owner.name)

        keyed = (
            ("ConnectInput", DerivedTypeKind.CONNECT_INPUT, lambda m: many(f"{prefix}{m}ConnectFieldInput")),
            ("CreateInput", DerivedTypeKind.CREATE_INPUT, lambda m: f"{prefix}{m}FieldInput"),
            ("DeleteInput", DerivedTypeKind.DELETE_INPUT, lambda m: many(f"{shared}{m}DeleteFieldInput")),
            ("DisconnectInput", DerivedTypeKind.DISCONNECT_INPUT, lambda m: many(f"{shared}{m}DisconnectFieldInput")),
            ("UpdateInput", DerivedTypeKind.UPDATE_INPUT, lambda m: many(f"{prefix}{m}UpdateFieldInput")),
        )
        for suffix, kind, member_type in keyed:
            self._input(
                f"{prefix}{suffix}",
                kind,
                [DerivedField(member, member_type(member)) for member in members],
                owner=owner.name,
            )

    # =========================================================================
    # Relationship aggregations
    # =========================================================================

    def _add_aggregation_types(self, owner: Entity, edge: RelationshipEdge):
        prefix = self._owner_prefix(owner, edge)
        shared = self._shared_prefix(edge)
        target_entity = self.graph.get_entity(edge.target)
        target_fields = self._aggregable_fields(target_entity.scalar_fields) if target_entity else []

        input_name = f"{prefix}AggregateInput"
        fields = self._logical(input_name)
        fields.extend(self._legacy(IMPLICIT_COUNT, IMPLICIT_COUNT.legacy, "Int"))
        for comparator in ("EQ", "GT", "GTE", "LT", "LTE"):
            fields.append(DerivedField(f"count_{comparator}", "Int"))
        edge_filter = self._edge_input(edge.binding, shared, "AggregationWhereInput")
        if edge_filter:
            fields.append(DerivedField("edge", edge_filter))
        if target_fields:
            node_name = f"{prefix}NodeAggregationWhereInput"
            node_fields = self._logical(node_name)
            for f in target_fields:
                node_fields.extend(self._aggregation_filter_fields(f))
            self._input(node_name, DerivedTypeKind.NODE_AGGREGATION_WHERE_INPUT, node_fields, owner=owner.name)
            fields.append(DerivedField("node", node_name))
        self._input(input_name, DerivedTypeKind.AGGREGATE_INPUT, fields, owner=owner.name)

        if owner.is_interface:
            return

        selection_prefix = f"{owner.name}{edge.target}{upper_first(edge.field_name)}"
        selection = [DerivedField("count", "Int!")]
        if isinstance(edge.binding, Shared):
            props = self.graph.properties.get(edge.binding.prop_type)
            props_fields = self._aggregable_fields(self._props_fields(props)) if props else []
            if props_fields:
                edge_selection = f"{selection_prefix}EdgeAggregateSelection"
                self._object(edge_selection, DerivedTypeKind.EDGE_AGGREGATE_SELECTION, [
                    self._aggregate_selection_field(f) for f in props_fields
                ], owner=owner.name)
                selection.append(DerivedField("edge", edge_selection))
        if target_fields:
            node_selection = f"{selection_prefix}NodeAggregateSelection"
            self._object(node_selection, DerivedTypeKind.NODE_AGGREGATE_SELECTION, [
                self._aggregate_selection_field(f) for f in target_fields
            ], owner=owner.name)
            selection.append(DerivedField("node", node_selection))
        self._object(
            f"{selection_prefix}AggregationSelection",
            DerivedTypeKind.AGGREGATION_SELECTION,
            selection,
            owner=owner.name,
        )

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def _add_subscription_types(self, entity: Entity):
        name = entity.name
        payload_fields = [
            DerivedField(f.name, f.type_ref, deprecation_reason=f.deprecation_reason)
            for f in entity.scalar_fields
        ]
        payload = f"{name}EventPayload"
        if payload_fields:
            self._object(payload, DerivedTypeKind.EVENT_PAYLOAD, payload_fields, owner=name)

        base = [DerivedField("event", "EventType!"), DerivedField("timestamp", "Float!")]
        created = list(base)
        updated = list(base)
        deleted = list(base)
        if payload_fields:
            created.append(DerivedField(f"created{name}", f"{payload}!"))
            updated.append(DerivedField(f"updated{name}", f"{payload}!"))
            updated.append(DerivedField("previousState", f"{payload}!"))
            deleted.append(DerivedField(f"deleted{name}", f"{payload}!"))
        self._object(f"{name}CreatedEvent", DerivedTypeKind.EVENT, created, owner=name)
        self._object(f"{name}UpdatedEvent", DerivedTypeKind.EVENT, updated, owner=name)
        self._object(f"{name}DeletedEvent", DerivedTypeKind.EVENT, deleted, owner=name)

        where_name = f"{name}SubscriptionWhere"
        where_fields = self._logical(where_name)
        for f in entity.scalar_fields:
            where_fields.extend(self._where_fields(f))
        self._input(where_name, DerivedTypeKind.SUBSCRIPTION_WHERE, where_fields, owner=name)

    # =========================================================================
    # Root types
    # =========================================================================

    def _list_query_args(self, name: str, options: str, with_sort: bool) -> tuple[DerivedArgument, ...]:
        args = [DerivedArgument("limit", "Int"), DerivedArgument("offset", "Int")]
        if not self.exclude.options_argument:
            args.append(DerivedArgument("options", options, deprecation_reason=OPTIONS_REASON))
        if with_sort:
            args.append(DerivedArgument("sort", f"[{name}Sort!]"))
        args.append(DerivedArgument("where", f"{name}Where"))
        return tuple(args)

    def _add_query(self):
        fields: list[DerivedField] = []
        for entity in self.graph.entities.values():
            name = entity.name
            root = plural_field(name)
            has_sort = self._has_sort(name)
            fields.append(DerivedField(
                root,
                f"[{name}!]!",
                args=self._list_query_args(name, f"{name}Options", has_sort),
            ))
            fields.append(DerivedField(
                f"{root}Aggregate",
                f"{name}AggregateSelection!",
                args=(DerivedArgument("where", f"{name}Where"),),
            ))
            connection_args = [DerivedArgument("after", "String"), DerivedArgument("first", "Int")]
            if has_sort:
                connection_args.append(DerivedArgument("sort", f"[{name}Sort!]"))
            connection_args.append(DerivedArgument("where", f"{name}Where"))
            fields.append(DerivedField(
                f"{root}Connection",
                f"{plural_type(name)}Connection!",
                args=tuple(connection_args),
            ))

        for union_name in self.graph.unions:
            fields.append(DerivedField(
                plural_field(union_name),
                f"[{union_name}!]!",
                args=self._list_query_args(union_name, "QueryOptions", with_sort=False),
            ))

        self._object("Query", DerivedTypeKind.ROOT, fields)

    def _add_mutation(self):
        fields: list[DerivedField] = []
        for entity in self.graph.concrete_entities():
            name = entity.name
            plural = plural_type(name)
            fields.append(DerivedField(
                f"create{plural}",
                f"Create{plural}MutationResponse!",
                args=(DerivedArgument("input", f"[{name}CreateInput!]!"),),
            ))
            delete_args = []
            if entity.relationship_fields:
                delete_args.append(DerivedArgument("delete", f"{name}DeleteInput"))
            delete_args.append(DerivedArgument("where", f"{name}Where"))
            fields.append(DerivedField(f"delete{plural}", "DeleteInfo!", args=tuple(delete_args)))
            fields.append(DerivedField(
                f"update{plural}",
                f"Update{plural}MutationResponse!",
                args=(
                    DerivedArgument("update", f"{name}UpdateInput"),
                    DerivedArgument("where", f"{name}Where"),
                ),
            ))
        if fields:
            self._object("Mutation", DerivedTypeKind.ROOT, fields)

    def _add_subscription(self):
        fields: list[DerivedField] = []
        for entity in self.graph.concrete_entities():
            name = entity.name
            root = lower_first(name)
            where = (DerivedArgument("where", f"{name}SubscriptionWhere"),)
            fields.append(DerivedField(f"{root}Created", f"{name}CreatedEvent!", args=where))
            fields.append(DerivedField(f"{root}Deleted", f"{name}DeletedEvent!", args=where))
            fields.append(DerivedField(f"{root}Updated", f"{name}UpdatedEvent!", args=where))
        if fields:
            self._object("Subscription", DerivedTypeKind.ROOT, fields)
