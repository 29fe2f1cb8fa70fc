"""
Relationship resolver - turns relationship fields into directed edges.

Consumes the entity graph from the type registry and produces one
RelationshipEdge per relationship field, on concrete entities and on
interfaces alike.

Interface relationships (declared with @declareRelationship, or with a
concrete @relationship on the interface itself) are validated against every
concrete implementer: all must declare the field, agree on the native
relationship type and direction, and point at a compatible target. The
properties types the implementers use are unified into a PropertiesBinding.

Usage:
    from nodegraph.core.registry import build_type_model
    from nodegraph.core.relationships import resolve_relationships

    graph = resolve_relationships(build_type_model(type_defs))
    edge = graph.edge("Movie", "actors")
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from .defs import (
    Cardinality,
    Entity,
    EntityGraph,
    Field,
    NoProperties,
    PropertiesBinding,
    RelationshipEdge,
    Shared,
    binding_for,
)
from .errors import BuildError, RelationshipResolutionError

logger = logging.getLogger(__name__)


class RelationshipResolver:
    """
    Resolves every relationship field of the entity graph.

    Concrete owners get an edge describing their own binding. Interface
    owners get an edge whose binding unifies the properties types of all
    transitive implementers of the outermost declaring interface.
    """

    def __init__(self, graph: EntityGraph):
        self.graph = graph
        self.errors: list[BuildError] = []
        self._conflict: Optional[tuple[str, list[str]]] = None

    @property
    def conflict(self) -> Optional[tuple[str, list[str]]]:
        """The first interface field whose implementers disagree, with those implementers."""
        return self._conflict

    def resolve(self, errors: Optional[list[BuildError]] = None) -> EntityGraph:
        """
        Resolve the graph.

        Args:
            errors: Shared error list. When given, violations are appended to
                it and the edges that could be resolved are returned.

        Raises:
            RelationshipResolutionError: with every violation found, when no
                shared error list is given
        """
        self.errors = []
        self._conflict = None
        graph = replace(self.graph, entities=self._inherit_interface_fields())
        self.graph = graph

        edges: dict[tuple[str, str], RelationshipEdge] = {}
        for entity in graph.entities.values():
            for f in entity.relationship_fields:
                if entity.is_interface:
                    edge = self._resolve_interface_field(entity, f)
                else:
                    edge = self._resolve_entity_field(entity, f)
                if edge is not None:
                    edges[(entity.name, f.name)] = edge

        if errors is not None:
            errors.extend(self.errors)
        elif self.errors:
            interface_field, implementers = self._conflict or (None, [])
            raise RelationshipResolutionError(
                self.errors,
                interface_field=interface_field,
                implementers=implementers,
            )

        logger.debug(f"Resolved {len(edges)} relationship edges")
        return replace(graph, edges=edges)

    def _add_error(
        self,
        message: str,
        entity: Optional[str] = None,
        field: Optional[str] = None,
    ):
        """Add a resolution error, once."""
        error = BuildError(entity=entity, field=field, message=message)
        if error not in self.errors:
            self.errors.append(error)

    # =========================================================================
    # Interface inheritance
    # =========================================================================

    def _inherit_interface_fields(self) -> dict[str, Entity]:
        """
        Copy ancestor interface fields onto interfaces that do not redeclare them.

        Concrete entities must redeclare interface fields themselves, the
        registry and this resolver report the ones they miss.
        """
        entities = dict(self.graph.entities)
        for name, entity in self.graph.entities.items():
            if not entity.is_interface or not entity.interfaces:
                continue
            fields = list(entity.fields)
            names = {f.name for f in fields}
            for ancestor_name in self.graph.ancestors(name):
                ancestor = self.graph.entities.get(ancestor_name)
                if ancestor is None:
                    continue
                for f in ancestor.fields:
                    if f.name not in names:
                        fields.append(f)
                        names.add(f.name)
            if len(fields) != len(entity.fields):
                logger.debug(f"Interface '{name}' inherits {len(fields) - len(entity.fields)} field(s)")
                entities[name] = replace(entity, fields=tuple(fields))
        return entities

    def _declaring_interfaces(self, owner: str, field_name: str) -> list[str]:
        """Ancestor interfaces declaring a relationship field, nearest first."""
        result = []
        for ancestor_name in self.graph.ancestors(owner):
            ancestor = self.graph.entities.get(ancestor_name)
            if ancestor is None:
                continue
            own = ancestor.get_field(field_name)
            if own is not None and own.is_relationship:
                result.append(ancestor_name)
        return result

    def _root_declaration(self, owner: str, field_name: str) -> Optional[str]:
        """The outermost interface declaring the field, None if owner is not covered."""
        declaring = self._declaring_interfaces(owner, field_name)
        if not declaring:
            return None
        return declaring[-1]

    # =========================================================================
    # Concrete entities
    # =========================================================================

    def _resolve_entity_field(self, entity: Entity, f: Field) -> Optional[RelationshipEdge]:
        decl = f.relationship
        target_kind = self.graph.target_kind(f.type_name)
        if decl is None or target_kind is None:
            return None

        root = self._root_declaration(entity.name, f.name)
        binding: PropertiesBinding = Shared(decl.properties) if decl.properties else NoProperties()

        return RelationshipEdge(
            source=entity.name,
            field_name=f.name,
            target=f.type_name,
            target_kind=target_kind,
            native_type=decl.type,
            direction=decl.direction,
            cardinality=Cardinality.MANY if f.is_list else Cardinality.ONE,
            binding=binding,
            is_required=f.is_required,
            declared_on=root,
        )

    # =========================================================================
    # Interfaces
    # =========================================================================

    def _resolve_interface_field(self, interface: Entity, f: Field) -> Optional[RelationshipEdge]:
        decl = f.relationship
        target_kind = self.graph.target_kind(f.type_name)
        if decl is None or target_kind is None:
            return None

        root = self._root_declaration(interface.name, f.name) or interface.name
        field_label = f"{interface.name}.{f.name}"

        # Each declaring interface validates its own implementers against its
        # own declaration, so the innermost declaration is the binding one.
        implementations = self._validate_implementers(interface, f, field_label)

        native_type, direction = self._agreed_binding(interface, f, field_label, implementations)

        binding = self._unify_properties(root, f.name)

        return RelationshipEdge(
            source=interface.name,
            field_name=f.name,
            target=f.type_name,
            target_kind=target_kind,
            native_type=native_type,
            direction=direction,
            cardinality=Cardinality.MANY if f.is_list else Cardinality.ONE,
            binding=binding,
            is_required=f.is_required,
            declared_on=root,
        )

    def _validate_implementers(
        self,
        interface: Entity,
        f: Field,
        field_label: str,
    ) -> list[tuple[Entity, Field]]:
        implementations = []
        for implementer in self.graph.implementers(interface.name):
            own = implementer.get_field(f.name)
            if own is None:
                self._add_error(
                    f"Missing relationship field '{f.name}' declared by interface '{interface.name}'",
                    entity=implementer.name,
                )
                self._record_conflict(field_label, [implementer.name])
                continue
            if not own.is_relationship or own.relationship is None:
                self._add_error(
                    f"Field '{f.name}' must be a relationship to implement '{field_label}'",
                    entity=implementer.name,
                    field=f.name,
                )
                self._record_conflict(field_label, [implementer.name])
                continue
            if own.is_list != f.is_list:
                self._add_error(
                    f"Cardinality of '{f.name}' does not match '{field_label}'",
                    entity=implementer.name,
                    field=f.name,
                )
                self._record_conflict(field_label, [implementer.name])
            if not self.graph.is_compatible_target(own.type_name, f.type_name):
                self._add_error(
                    f"Target '{own.type_name}' is not compatible with '{f.type_name}' "
                    f"declared by '{field_label}'",
                    entity=implementer.name,
                    field=f.name,
                )
                self._record_conflict(field_label, [implementer.name])
            implementations.append((implementer, own))
        return implementations

    def _agreed_binding(
        self,
        interface: Entity,
        f: Field,
        field_label: str,
        implementations: list[tuple[Entity, Field]],
    ):
        """All declarations of the relationship must name the same type and direction."""
        declarations: list[tuple[str, Optional[str], Optional[str]]] = []
        if f.relationship is not None and not f.relationship.declared_only:
            declarations.append((interface.name, f.relationship.type, f.relationship.direction))
        for implementer, own in implementations:
            declarations.append((implementer.name, own.relationship.type, own.relationship.direction))

        if not declarations:
            return None, None

        types = {native for _, native, _ in declarations}
        if len(types) > 1:
            listing = ", ".join(f"{name} ({native})" for name, native, _ in declarations)
            self._add_error(
                f"Implementations of '{field_label}' disagree on relationship type: {listing}",
                entity=interface.name,
                field=f.name,
            )
            self._record_conflict(field_label, [name for name, _, _ in declarations])

        directions = {direction for _, _, direction in declarations}
        if len(directions) > 1:
            listing = ", ".join(
                f"{name} ({direction.value if direction else None})"
                for name, _, direction in declarations
            )
            self._add_error(
                f"Implementations of '{field_label}' disagree on direction: {listing}",
                entity=interface.name,
                field=f.name,
            )
            self._record_conflict(field_label, [name for name, _, _ in declarations])

        _, native_type, direction = declarations[0]
        return native_type, direction

    def _unify_properties(self, root: str, field_name: str) -> PropertiesBinding:
        """Bind properties over every concrete implementer of the root interface."""
        observed: list[tuple[str, Optional[str]]] = []
        for implementer in self.graph.implementers(root):
            own = implementer.get_field(field_name)
            if own is not None and own.relationship is not None:
                observed.append((implementer.name, own.relationship.properties))
        return binding_for(observed)

    def _record_conflict(self, field_label: str, implementers: list[str]):
        if self._conflict is None:
            self._conflict = (field_label, implementers)


def resolve_relationships(graph: EntityGraph) -> EntityGraph:
    """
    Convenience function to resolve relationship edges.

    Raises:
        RelationshipResolutionError: If relationship declarations conflict

    Returns:
        EntityGraph with edges filled in
    """
    return RelationshipResolver(graph).resolve()
