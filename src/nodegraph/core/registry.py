"""
Type registry - builds the entity graph from annotated type definitions.

Parses SDL with graphql-core, classifies every field once and records the
directive data the later stages need. All problems found in the type
definitions are collected and raised together as a SchemaValidationError.

Usage:
    from nodegraph.core.registry import TypeRegistry

    registry = TypeRegistry(callbacks=["slug"])
    registry.register('''
        type Movie @node {
            id: ID! @id
            title: String!
            actors: [Actor!]! @relationship(type: "ACTED_IN", direction: IN)
        }
        type Actor @node { name: String! }
    ''')

    graph = registry.build()  # EntityGraph without resolved edges
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

from graphql import GraphQLError, parse
from graphql.language import (
    DirectiveDefinitionNode,
    DirectiveNode,
    DocumentNode,
    EnumTypeDefinitionNode,
    FieldDefinitionNode,
    InterfaceTypeDefinitionNode,
    InterfaceTypeExtensionNode,
    ListTypeNode,
    NonNullTypeNode,
    ObjectTypeDefinitionNode,
    ObjectTypeExtensionNode,
    ScalarTypeDefinitionNode,
    TypeNode,
    UnionTypeDefinitionNode,
    print_ast,
)
from graphql.utilities import value_from_ast_untyped

from .defs import (
    BUILTIN_SCALARS,
    CallbackBinding,
    Direction,
    Entity,
    EntityGraph,
    EnumDef,
    EnumValueDef,
    Field,
    FieldRole,
    MutationOperation,
    PropertiesType,
    RelationshipDecl,
    ScalarKind,
)
from .errors import BuildError, SchemaValidationError

logger = logging.getLogger(__name__)


# Directives interpreted by the builder, never printed back.
LIBRARY_DIRECTIVES = frozenset({
    "node",
    "relationship",
    "relationshipProperties",
    "declareRelationship",
    "unique",
    "id",
    "populatedBy",
    "jwt",
    "jwtClaim",
    "authorization",
    "default",
    "timestamp",
    "private",
    "deprecated",
})

ROOT_TYPE_NAMES = frozenset({"Query", "Mutation", "Subscription"})

DEFAULT_DEPRECATION_REASON = "No longer supported"


@dataclass
class _TypeCollection:
    """Definitions gathered from all registered documents, by kind."""
    objects: dict[str, ObjectTypeDefinitionNode] = field(default_factory=dict)
    interfaces: dict[str, InterfaceTypeDefinitionNode] = field(default_factory=dict)
    unions: dict[str, UnionTypeDefinitionNode] = field(default_factory=dict)
    enums: dict[str, EnumTypeDefinitionNode] = field(default_factory=dict)
    scalars: dict[str, ScalarTypeDefinitionNode] = field(default_factory=dict)
    directives: dict[str, DirectiveDefinitionNode] = field(default_factory=dict)
    extra_fields: dict[str, list[FieldDefinitionNode]] = field(default_factory=dict)
    extra_directives: dict[str, list[DirectiveNode]] = field(default_factory=dict)
    extra_interfaces: dict[str, list[str]] = field(default_factory=dict)
    order: list[str] = field(default_factory=list)

    def names(self) -> set[str]:
        return set(self.order)


class TypeRegistry:
    """
    Collects type definitions and builds the entity graph.

    Validates:
    - Every field type is known
    - Relationship directives are complete and point at entities
    - Properties types exist and carry no relationships
    - Uniqueness, generated-id and callback markers are used on valid fields
    - Implementers declare the fields of their interfaces
    """

    def __init__(self, callbacks: Optional[Iterable[str]] = None):
        self.callbacks: set[str] = set(callbacks or [])
        self.documents: list[DocumentNode] = []
        self.errors: list[BuildError] = []
        self._syntax_errors: list[BuildError] = []

    def register(self, type_defs: Union[str, DocumentNode]) -> "TypeRegistry":
        """Register SDL text or an already parsed document."""
        if isinstance(type_defs, DocumentNode):
            self.documents.append(type_defs)
            return self
        try:
            self.documents.append(parse(type_defs))
        except GraphQLError as e:
            self._syntax_errors.append(BuildError(None, None, f"Syntax error: {e.message}"))
        return self

    # =========================================================================
    # Build
    # =========================================================================

    def build(self, errors: Optional[list[BuildError]] = None) -> EntityGraph:
        """
        Build the entity graph.

        Args:
            errors: Shared error list. When given, violations are appended to
                it and the partially built graph is returned for later stages.

        Raises:
            SchemaValidationError: with every violation found, when no shared
                error list is given
        """
        self.errors = list(self._syntax_errors)
        types = self._collect()
        logger.debug(
            f"Collected {len(types.objects)} object types, "
            f"{len(types.interfaces)} interfaces, {len(types.unions)} unions"
        )

        property_names = {
            name for name, node in types.objects.items()
            if self._has_directive(node, "relationshipProperties")
        }
        claim_names = [
            name for name, node in types.objects.items()
            if self._has_directive(node, "jwt")
        ]
        if len(claim_names) > 1:
            self._add_error(f"Only one @jwt type is allowed, found {', '.join(claim_names)}")

        enums = self._build_enums(types)
        scalars = {
            name: node.description.value if node.description else None
            for name, node in types.scalars.items()
        }
        unions = {
            name: tuple(t.name.value for t in node.types or ())
            for name, node in types.unions.items()
        }

        entity_names = [
            name for name in types.order
            if (name in types.objects and name not in property_names and name not in claim_names)
            or name in types.interfaces
        ]
        interface_names = set(types.interfaces)
        union_members = {member for members in unions.values() for member in members}

        context = _FieldContext(
            entity_names=set(entity_names),
            interface_names=interface_names,
            union_names=set(unions),
            property_names=property_names,
            enum_names=set(enums),
            scalar_names=set(scalars),
            directive_names=set(types.directives),
            object_names=set(types.objects),
        )

        entities: dict[str, Entity] = {}
        for name in entity_names:
            is_interface = name in interface_names
            node = types.interfaces[name] if is_interface else types.objects[name]
            entities[name] = self._build_entity(
                name, node, types, context,
                is_interface=is_interface,
                is_union_member=name in union_members,
            )

        properties: dict[str, PropertiesType] = {}
        for name in sorted(property_names, key=types.order.index):
            node = types.objects[name]
            fields = tuple(
                self._build_field(name, f, context, owner_kind="properties")
                for f in self._fields_of(name, node, types)
            )
            properties[name] = PropertiesType(
                name=name,
                fields=fields,
                description=node.description.value if node.description else None,
            )

        claims: Optional[Entity] = None
        claim_paths: dict[str, str] = {}
        if claim_names:
            name = claim_names[0]
            node = types.objects[name]
            fields = tuple(
                self._build_field(name, f, context, owner_kind="claims")
                for f in self._fields_of(name, node, types)
            )
            claims = Entity(name=name, fields=fields)
            for f in self._fields_of(name, node, types):
                claim = self._get_directive(f, "jwtClaim")
                if claim:
                    path = self._directive_args(claim).get("path")
                    if path:
                        claim_paths[f.name.value] = path

        self._validate_unions(unions, entities)
        self._validate_interfaces(entities)

        if errors is not None:
            errors.extend(self.errors)
        elif self.errors:
            raise SchemaValidationError(self.errors)

        directive_definitions = tuple(
            print_ast(node) for name, node in types.directives.items()
            if name not in LIBRARY_DIRECTIVES
        )

        logger.info(
            f"Built type model: {len(entities)} entities, {len(properties)} "
            f"relationship properties types, {len(unions)} unions"
        )
        return EntityGraph(
            entities=entities,
            unions=unions,
            enums=enums,
            scalars=scalars,
            properties=properties,
            claims=claims,
            claim_paths=claim_paths,
            directive_definitions=directive_definitions,
        )

    def _add_error(
        self,
        message: str,
        entity: Optional[str] = None,
        field: Optional[str] = None,
    ):
        """Add a build error."""
        self.errors.append(BuildError(entity=entity, field=field, message=message))

    # =========================================================================
    # Collection
    # =========================================================================

    def _collect(self) -> _TypeCollection:
        types = _TypeCollection()
        for document in self.documents:
            for node in document.definitions:
                if isinstance(node, (ObjectTypeExtensionNode, InterfaceTypeExtensionNode)):
                    name = node.name.value
                    types.extra_fields.setdefault(name, []).extend(node.fields or ())
                    types.extra_directives.setdefault(name, []).extend(node.directives or ())
                    types.extra_interfaces.setdefault(name, []).extend(
                        i.name.value for i in node.interfaces or ()
                    )
                    continue

                name_node = getattr(node, "name", None)
                if name_node is None:
                    self._add_error(f"Unsupported definition: {node.kind}")
                    continue
                name = name_node.value

                if isinstance(node, DirectiveDefinitionNode):
                    types.directives[name] = node
                    continue

                if name in ROOT_TYPE_NAMES:
                    logger.warning(f"Ignoring user-defined root type '{name}'")
                    continue

                if name in types.order:
                    self._add_error(f"Type '{name}' is defined more than once", entity=name)
                    continue

                if isinstance(node, ObjectTypeDefinitionNode):
                    types.objects[name] = node
                elif isinstance(node, InterfaceTypeDefinitionNode):
                    types.interfaces[name] = node
                elif isinstance(node, UnionTypeDefinitionNode):
                    types.unions[name] = node
                elif isinstance(node, EnumTypeDefinitionNode):
                    types.enums[name] = node
                elif isinstance(node, ScalarTypeDefinitionNode):
                    if name in BUILTIN_SCALARS:
                        continue
                    types.scalars[name] = node
                else:
                    self._add_error(f"Unsupported definition: {node.kind}", entity=name)
                    continue
                types.order.append(name)

        for name in types.extra_fields:
            if name not in types.objects and name not in types.interfaces:
                self._add_error(f"Cannot extend unknown type '{name}'", entity=name)
        return types

    def _fields_of(self, name: str, node: Any, types: _TypeCollection) -> list[FieldDefinitionNode]:
        return list(node.fields or ()) + types.extra_fields.get(name, [])

    def _build_enums(self, types: _TypeCollection) -> dict[str, EnumDef]:
        enums: dict[str, EnumDef] = {}
        for name, node in types.enums.items():
            values = tuple(
                EnumValueDef(
                    name=v.name.value,
                    description=v.description.value if v.description else None,
                    deprecation_reason=self._deprecation_reason(v),
                )
                for v in node.values or ()
            )
            enums[name] = EnumDef(
                name=name,
                values=values,
                description=node.description.value if node.description else None,
                directives=self._passthrough_directives(name, None, node.directives, set(types.directives)),
            )
        return enums

    # =========================================================================
    # Entities
    # =========================================================================

    def _build_entity(
        self,
        name: str,
        node: Any,
        types: _TypeCollection,
        context: "_FieldContext",
        is_interface: bool,
        is_union_member: bool,
    ) -> Entity:
        directives = list(node.directives or ()) + types.extra_directives.get(name, [])
        interfaces = [i.name.value for i in node.interfaces or ()]
        interfaces += [i for i in types.extra_interfaces.get(name, []) if i not in interfaces]

        for interface in interfaces:
            if interface not in context.interface_names:
                self._add_error(f"Implements unknown interface '{interface}'", entity=name)

        if self._has_directive(node, "relationshipProperties") and is_interface:
            self._add_error("@relationshipProperties cannot be used on interfaces", entity=name)

        authorization = None
        for directive in directives:
            if directive.name.value == "authorization":
                authorization = self._directive_args(directive)

        node_fields = self._fields_of(name, node, types)
        if not node_fields:
            self._add_error("Entity must define at least one field", entity=name)

        fields = tuple(
            self._build_field(name, f, context, owner_kind="interface" if is_interface else "entity")
            for f in node_fields
        )

        return Entity(
            name=name,
            fields=fields,
            interfaces=tuple(i for i in interfaces if i in context.interface_names),
            is_interface=is_interface,
            is_union_member=is_union_member,
            description=node.description.value if node.description else None,
            authorization=authorization,
            directives=self._passthrough_directives(name, None, directives, context.directive_names),
        )

    def _build_field(
        self,
        owner: str,
        node: FieldDefinitionNode,
        context: "_FieldContext",
        owner_kind: str,
    ) -> Field:
        """Classify a single field definition and record its directives."""
        name = node.name.value
        unwrapped = self._unwrap(owner, name, node.type)
        type_name, is_list, is_required, is_item_required = unwrapped
        directives = {d.name.value: d for d in node.directives or ()}

        relationship = self._relationship_decl(owner, name, type_name, directives, context, owner_kind)

        kind: Optional[ScalarKind] = None
        if relationship is None:
            kind = ScalarKind.for_type(type_name, context.enum_names)
            if kind is None and type_name in context.scalar_names:
                kind = ScalarKind.CUSTOM
            if kind is None:
                if type_name in context.entity_names or type_name in context.union_names:
                    self._add_error(
                        f"Field of type '{type_name}' must use @relationship",
                        entity=owner,
                        field=name,
                    )
                elif type_name in context.object_names:
                    self._add_error(f"Type '{type_name}' is not an entity", entity=owner, field=name)
                else:
                    self._add_error(f"Unknown type '{type_name}'", entity=owner, field=name)

        callback = self._callback_binding(owner, name, directives)
        timestamp_operations = self._timestamp_operations(owner, name, kind, directives)

        has_id = "id" in directives
        has_unique = "unique" in directives
        if has_unique and is_list:
            self._add_error("@unique cannot be used on list fields", entity=owner, field=name)
        if has_id and (type_name != "ID" or is_list):
            self._add_error("@id can only be used on fields of type ID", entity=owner, field=name)
        if relationship and (has_id or has_unique or callback or timestamp_operations):
            self._add_error(
                "Relationship fields cannot use @id, @unique, @populatedBy or @timestamp",
                entity=owner,
                field=name,
            )
        if callback and (has_id or has_unique):
            self._add_error(
                "@populatedBy cannot be combined with @id or @unique",
                entity=owner,
                field=name,
            )
        if callback and timestamp_operations:
            self._add_error(
                "@populatedBy cannot be combined with @timestamp",
                entity=owner,
                field=name,
            )
        if owner_kind == "interface" and (has_id or has_unique):
            self._add_error(
                "@id and @unique must be declared on implementing types",
                entity=owner,
                field=name,
            )

        if relationship:
            role = FieldRole.RELATIONSHIP_REF
        elif has_id:
            role = FieldRole.GENERATED_ID
        elif callback:
            role = FieldRole.COMPUTED_BY_CALLBACK
        elif has_unique:
            role = FieldRole.UNIQUE_CONSTRAINT
        else:
            role = FieldRole.SCALAR

        default_value = None
        if "default" in directives:
            default_node = self._argument_node(directives["default"], "value")
            if relationship:
                self._add_error("@default cannot be used on relationship fields", entity=owner, field=name)
            elif default_node is None:
                self._add_error("@default requires a value", entity=owner, field=name)
            else:
                default_value = print_ast(default_node)

        if "authorization" in directives:
            self._add_error(
                "@authorization is only supported on types and interfaces",
                entity=owner,
                field=name,
            )

        return Field(
            name=name,
            type_name=type_name,
            role=role,
            kind=kind,
            is_list=is_list,
            is_required=is_required,
            is_item_required=is_item_required,
            relationship=relationship,
            callback=callback,
            timestamp_operations=timestamp_operations,
            default_value=default_value,
            description=node.description.value if node.description else None,
            deprecation_reason=self._deprecation_reason(node),
            private="private" in directives,
            unique=has_unique or has_id,
            directives=self._passthrough_directives(
                owner, name, node.directives, context.directive_names
            ),
        )

    def _relationship_decl(
        self,
        owner: str,
        name: str,
        type_name: str,
        directives: dict[str, DirectiveNode],
        context: "_FieldContext",
        owner_kind: str,
    ) -> Optional[RelationshipDecl]:
        relationship = directives.get("relationship")
        declared = directives.get("declareRelationship")
        if relationship is None and declared is None:
            return None

        if owner_kind in ("properties", "claims"):
            self._add_error(
                "Relationship fields are not allowed here",
                entity=owner,
                field=name,
            )
            return None

        if relationship is not None and declared is not None:
            self._add_error(
                "@relationship and @declareRelationship cannot be combined",
                entity=owner,
                field=name,
            )
            return None

        is_target = (
            type_name in context.entity_names or type_name in context.union_names
        )
        if not is_target:
            self._add_error(
                f"Relationship target '{type_name}' must be an entity, interface or union",
                entity=owner,
                field=name,
            )
            return None

        if declared is not None:
            if owner_kind != "interface":
                self._add_error(
                    "@declareRelationship can only be used on interfaces",
                    entity=owner,
                    field=name,
                )
                return None
            return RelationshipDecl(declared_only=True)

        args = self._directive_args(relationship)
        rel_type = args.get("type")
        raw_direction = args.get("direction")
        properties = args.get("properties")

        if not rel_type:
            self._add_error("@relationship requires a 'type'", entity=owner, field=name)
        if not raw_direction:
            self._add_error("@relationship requires a 'direction'", entity=owner, field=name)
        direction: Optional[Direction] = None
        if raw_direction:
            try:
                direction = Direction(raw_direction)
            except ValueError:
                self._add_error(
                    f"Invalid direction '{raw_direction}', must be one of IN, OUT, UNDIRECTED",
                    entity=owner,
                    field=name,
                )
        if properties and properties not in context.property_names:
            self._add_error(
                f"Properties type '{properties}' must be an object type with @relationshipProperties",
                entity=owner,
                field=name,
            )

        return RelationshipDecl(type=rel_type, direction=direction, properties=properties)

    def _callback_binding(
        self,
        owner: str,
        name: str,
        directives: dict[str, DirectiveNode],
    ) -> Optional[CallbackBinding]:
        directive = directives.get("populatedBy")
        if directive is None:
            return None
        args = self._directive_args(directive)
        callback = args.get("callback")
        if not callback:
            self._add_error("@populatedBy requires a 'callback'", entity=owner, field=name)
            return None
        if callback not in self.callbacks:
            self._add_error(
                f"Callback '{callback}' is not registered in features.populatedBy.callbacks",
                entity=owner,
                field=name,
            )
        operations = self._mutation_operations(owner, name, args.get("operations"))
        return CallbackBinding(callback=callback, operations=operations)

    def _timestamp_operations(
        self,
        owner: str,
        name: str,
        kind: Optional[ScalarKind],
        directives: dict[str, DirectiveNode],
    ) -> tuple[MutationOperation, ...]:
        directive = directives.get("timestamp")
        if directive is None:
            return ()
        if kind is None or not kind.is_temporal or kind is ScalarKind.DURATION:
            self._add_error("@timestamp requires a date or time field", entity=owner, field=name)
            return ()
        return self._mutation_operations(owner, name, self._directive_args(directive).get("operations"))

    def _mutation_operations(
        self,
        owner: str,
        name: str,
        raw: Optional[list[str]],
    ) -> tuple[MutationOperation, ...]:
        if raw is None:
            return (MutationOperation.CREATE, MutationOperation.UPDATE)
        if isinstance(raw, str):
            raw = [raw]
        operations = []
        for value in raw:
            try:
                operations.append(MutationOperation(value))
            except ValueError:
                self._add_error(
                    f"Invalid operation '{value}', must be CREATE or UPDATE",
                    entity=owner,
                    field=name,
                )
        return tuple(operations)

    # =========================================================================
    # Cross-type validation
    # =========================================================================

    def _validate_unions(self, unions: dict[str, tuple[str, ...]], entities: dict[str, Entity]):
        for name, members in unions.items():
            if not members:
                self._add_error("Union must have at least one member", entity=name)
            for member in members:
                entity = entities.get(member)
                if entity is None or entity.is_interface:
                    self._add_error(f"Union member '{member}' must be an entity", entity=name)

    def _validate_interfaces(self, entities: dict[str, Entity]):
        """Every implementer must declare the scalar fields of its interfaces."""
        for entity in entities.values():
            seen: set[str] = set()
            pending = list(entity.interfaces)
            while pending:
                interface_name = pending.pop(0)
                if interface_name in seen:
                    continue
                seen.add(interface_name)
                interface = entities.get(interface_name)
                if interface is None:
                    continue
                pending.extend(interface.interfaces)
                if entity.is_interface:
                    continue
                for interface_field in interface.fields:
                    if interface_field.is_relationship:
                        continue
                    own = entity.get_field(interface_field.name)
                    if own is None:
                        self._add_error(
                            f"Field '{interface_field.name}' of interface '{interface_name}' is missing",
                            entity=entity.name,
                        )
                    elif own.type_name != interface_field.type_name or own.is_list != interface_field.is_list:
                        self._add_error(
                            f"Field '{interface_field.name}' must be of type "
                            f"'{interface_field.type_ref}' to implement '{interface_name}'",
                            entity=entity.name,
                            field=interface_field.name,
                        )

    # =========================================================================
    # AST helpers
    # =========================================================================

    def _unwrap(self, owner: str, name: str, type_node: TypeNode) -> tuple[str, bool, bool, bool]:
        """Return (type name, is list, is required, is item required)."""
        is_required = isinstance(type_node, NonNullTypeNode)
        if is_required:
            type_node = type_node.type
        if isinstance(type_node, ListTypeNode):
            inner = type_node.type
            is_item_required = isinstance(inner, NonNullTypeNode)
            if is_item_required:
                inner = inner.type
            if isinstance(inner, ListTypeNode):
                self._add_error("Nested lists are not supported", entity=owner, field=name)
                while not hasattr(inner, "name"):
                    inner = inner.type
            return inner.name.value, True, is_required, is_item_required
        return type_node.name.value, False, is_required, False

    @staticmethod
    def _has_directive(node: Any, name: str) -> bool:
        return any(d.name.value == name for d in node.directives or ())

    @staticmethod
    def _get_directive(node: Any, name: str) -> Optional[DirectiveNode]:
        for directive in node.directives or ():
            if directive.name.value == name:
                return directive
        return None

    @staticmethod
    def _argument_node(directive: DirectiveNode, name: str):
        for argument in directive.arguments or ():
            if argument.name.value == name:
                return argument.value
        return None

    @staticmethod
    def _directive_args(directive: DirectiveNode) -> dict[str, Any]:
        return {
            argument.name.value: value_from_ast_untyped(argument.value)
            for argument in directive.arguments or ()
        }

    def _deprecation_reason(self, node: Any) -> Optional[str]:
        directive = self._get_directive(node, "deprecated")
        if directive is None:
            return None
        return self._directive_args(directive).get("reason") or DEFAULT_DEPRECATION_REASON

    def _passthrough_directives(
        self,
        owner: str,
        field_name: Optional[str],
        directives: Any,
        defined: set[str],
    ) -> tuple[str, ...]:
        """User directives with a definition are printed back unchanged."""
        printed = []
        for directive in directives or ():
            name = directive.name.value
            if name in LIBRARY_DIRECTIVES:
                continue
            if name not in defined:
                self._add_error(f"Unknown directive '@{name}'", entity=owner, field=field_name)
                continue
            printed.append(print_ast(directive))
        return tuple(printed)


@dataclass
class _FieldContext:
    """Type names known to the build, used while classifying fields."""
    entity_names: set[str]
    interface_names: set[str]
    union_names: set[str]
    property_names: set[str]
    enum_names: set[str]
    scalar_names: set[str]
    directive_names: set[str]
    object_names: set[str]


def build_type_model(
    type_defs: Union[str, Iterable[str]],
    callbacks: Optional[Iterable[str]] = None,
) -> EntityGraph:
    """
    Convenience function to build the entity graph from SDL.

    Raises:
        SchemaValidationError: If the type definitions are invalid

    Returns:
        EntityGraph without resolved relationship edges
    """
    registry = TypeRegistry(callbacks=callbacks)
    documents = [type_defs] if isinstance(type_defs, str) else list(type_defs)
    for document in documents:
        registry.register(document)
    return registry.build()
