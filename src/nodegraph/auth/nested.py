"""
Nested create authorization.

Walks the input of a `create<Plural>` mutation (nested `create` and
`connect` operations, relationship `edge` properties), builds the candidate
subgraph in memory and checks it against the compiled rules before anything
is persisted by the execution layer:

- CREATE validate rules (AFTER) on every created node
- CREATE_RELATIONSHIP validate rules on both ends of every new relationship
- READ validate rules on every node the mutation selection returns

Created nodes are linked through every field that shares the native
relationship type in the matching direction, so a rule traversing
`post.author` on a created post and one traversing `user.posts` on the
created user see the same relationship. Connected nodes are represented by
the equality constraints of their connect `where.node`.

Usage:
    from nodegraph.auth.nested import authorize_create

    response = authorize_create(
        snapshot, "Post",
        [{"content": "hi", "creator": {"create": {"node": {"userId": "u2"}}}}],
        RequestContext(claims={"id": "u1"}),
        selection={"creator": {}},
    )
    response.errors  # [ErrorEntry(message="Forbidden", ...)]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from graphql import parse_value
from graphql.utilities import value_from_ast_untyped
from pydantic import BaseModel, Field

from ..core.defs import Direction, Entity, EntityGraph, PerImplementation, RelationshipEdge, TargetKind
from ..core.errors import AuthorizationDenied
from ..core.features import Features
from ..core.utils import plural_field, plural_type
from ..runtime.context import RequestContext
from .evaluator import ErrorEntry, authorize, denied_error
from .rules import Operation, RuleSet, When

logger = logging.getLogger(__name__)


OPPOSITE_DIRECTION = {
    Direction.OUT: Direction.IN,
    Direction.IN: Direction.OUT,
    Direction.UNDIRECTED: Direction.UNDIRECTED,
}

_EQUALITY_SUFFIX = "_EQ"


class MutationEvent(BaseModel):
    """Change event published for subscriptions."""
    event: str
    typename: str
    properties: dict[str, Any] = Field(default_factory=dict)
    relationship_field: Optional[str] = None
    related_typename: Optional[str] = None


class MutationResponse(BaseModel):
    """GraphQL-style response of an authorized mutation."""
    data: Optional[dict[str, Any]] = None
    errors: list[ErrorEntry] = Field(default_factory=list)
    events: list[MutationEvent] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


# =============================================================================
# Candidate subgraph
# =============================================================================


@dataclass
class _CandidateNode:
    entity: Entity
    data: dict[str, Any]
    created: bool = True


@dataclass
class _CandidateRelationship:
    source: _CandidateNode
    field_name: str
    target: _CandidateNode
    native_type: Optional[str]
    properties: dict[str, Any]


@dataclass
class _Subgraph:
    nodes: list[_CandidateNode] = field(default_factory=list)
    relationships: list[_CandidateRelationship] = field(default_factory=list)
    roots: list[_CandidateNode] = field(default_factory=list)


class NestedCreateAuthorizer:
    """
    Authorizes one create mutation against the compiled rules.

    The outcome depends only on the rules, the input and the request;
    features only decide whether change events are reported.
    """

    def __init__(self, graph: EntityGraph, rules: RuleSet, features: Optional[Features] = None):
        self.graph = graph
        self.rules = rules
        self.features = features or Features()

    def authorize(
        self,
        entity_name: str,
        inputs: list[dict[str, Any]],
        request: RequestContext,
        selection: Optional[dict[str, Any]] = None,
    ) -> MutationResponse:
        entity = self.graph.get_entity(entity_name)
        if entity is None or entity.is_interface:
            raise ValueError(f"'{entity_name}' is not a concrete entity")

        subgraph = _Subgraph()
        for item in inputs:
            subgraph.roots.append(self._create_node(subgraph, entity, item or {}))

        try:
            self._check(subgraph, request, selection)
        except AuthorizationDenied as e:
            logger.info(f"Denied create{plural_type(entity_name)}: {e.operation} on {e.entity}")
            return MutationResponse(data=None, errors=[denied_error(e)])

        created = [n for n in subgraph.nodes if n.created]
        data = {
            f"create{plural_type(entity_name)}": {
                "info": {
                    "nodesCreated": len(created),
                    "relationshipsCreated": len(subgraph.relationships),
                },
                plural_field(entity_name): [self._scalar_data(n) for n in subgraph.roots],
            }
        }
        events = self._events(subgraph) if self.features.subscriptions else []
        return MutationResponse(data=data, events=events)

    # =========================================================================
    # Building
    # =========================================================================

    def _create_node(self, subgraph: _Subgraph, entity: Entity, values: dict[str, Any]) -> _CandidateNode:
        data: dict[str, Any] = {"__typename": entity.name}
        for f in entity.scalar_fields:
            if f.name in values:
                data[f.name] = values[f.name]
            elif f.default_value is not None:
                data[f.name] = _literal(f.default_value)
        node = _CandidateNode(entity=entity, data=data)
        self._init_relationship_slots(node)
        subgraph.nodes.append(node)

        for f in entity.relationship_fields:
            if values.get(f.name) is None:
                continue
            edge = self.graph.edge(entity.name, f.name)
            if edge is None:
                continue
            if edge.target_kind is TargetKind.UNION:
                for member, field_input in values[f.name].items():
                    target = self.graph.get_entity(member)
                    if target is not None:
                        self._apply_field_input(subgraph, node, edge, target, field_input)
            else:
                self._apply_field_input(subgraph, node, edge, None, values[f.name])
        return node

    def _apply_field_input(
        self,
        subgraph: _Subgraph,
        node: _CandidateNode,
        edge: RelationshipEdge,
        member: Optional[Entity],
        field_input: dict[str, Any],
    ):
        for create in _as_list(field_input.get("create")):
            target = member or self._created_target(edge, create.get("node") or {})
            if target is None:
                continue
            node_values = create.get("node") or {}
            if target.name != edge.target and edge.target_kind is TargetKind.INTERFACE:
                node_values = node_values.get(target.name) or {}
            child = self._create_node(subgraph, target, node_values)
            self._link(subgraph, node, edge, child, self._edge_properties(edge, node, create.get("edge")))

        for connect in _as_list(field_input.get("connect")):
            target = member or self.graph.get_entity(edge.target)
            if target is None:
                continue
            where = (connect.get("where") or {}).get("node") or {}
            data = {"__typename": target.name}
            data.update(_equality_values(target, where))
            existing = _CandidateNode(entity=target, data=data, created=False)
            self._init_relationship_slots(existing)
            subgraph.nodes.append(existing)
            self._link(subgraph, node, edge, existing, self._edge_properties(edge, node, connect.get("edge")))

    def _created_target(self, edge: RelationshipEdge, node_values: dict[str, Any]) -> Optional[Entity]:
        """Concrete type of a created node; interface targets are keyed by implementer."""
        target = self.graph.get_entity(edge.target)
        if target is None or not target.is_interface:
            return target
        for implementer in self.graph.implementers(target.name):
            if implementer.name in node_values:
                return implementer
        return None

    def _edge_properties(
        self,
        edge: RelationshipEdge,
        source: _CandidateNode,
        raw: Optional[dict[str, Any]],
    ) -> dict[str, Any]:
        if not raw:
            return {}
        if isinstance(edge.binding, PerImplementation):
            return dict(raw.get(source.entity.name) or {})
        return dict(raw)

    def _init_relationship_slots(self, node: _CandidateNode):
        for f in node.entity.relationship_fields:
            node.data[f.name] = [] if f.is_list else None
            node.data[f"{f.name}Connection"] = {"edges": []}

    def _link(
        self,
        subgraph: _Subgraph,
        source: _CandidateNode,
        edge: RelationshipEdge,
        target: _CandidateNode,
        properties: dict[str, Any],
    ):
        subgraph.relationships.append(_CandidateRelationship(
            source=source,
            field_name=edge.field_name,
            target=target,
            native_type=edge.native_type,
            properties=properties,
        ))
        _attach(source, edge.field_name, target, properties)

        # Make the relationship visible from the other end as well
        if edge.direction is None:
            return
        reverse_direction = OPPOSITE_DIRECTION[edge.direction]
        for f in target.entity.relationship_fields:
            reverse = self.graph.edge(target.entity.name, f.name)
            if reverse is None or reverse is edge:
                continue
            if reverse.native_type != edge.native_type or reverse.direction is not reverse_direction:
                continue
            if not self.graph.is_compatible_target(source.entity.name, reverse.target):
                continue
            _attach(target, f.name, source, properties)

    # =========================================================================
    # Checks
    # =========================================================================

    def _check(self, subgraph: _Subgraph, request: RequestContext, selection: Optional[dict[str, Any]]):
        for node in subgraph.nodes:
            if node.created:
                authorize(self.rules, node.entity.name, Operation.CREATE, request, node.data, When.AFTER)

        for relationship in subgraph.relationships:
            for end in (relationship.source, relationship.target):
                authorize(
                    self.rules,
                    end.entity.name,
                    Operation.CREATE_RELATIONSHIP,
                    request,
                    end.data,
                    When.AFTER,
                )

        if selection is None:
            return
        for root in subgraph.roots:
            self._check_read(root, selection, request, seen=set())

    def _check_read(
        self,
        node: _CandidateNode,
        selection: dict[str, Any],
        request: RequestContext,
        seen: set[int],
    ):
        if id(node) in seen:
            return
        seen.add(id(node))
        authorize(self.rules, node.entity.name, Operation.READ, request, node.data, When.AFTER)

        for field_name, nested in selection.items():
            f = node.entity.get_field(field_name)
            if f is None or not f.is_relationship:
                continue
            related = node.data.get(field_name)
            for child in _as_list(related):
                child_node = self._node_for(child)
                if child_node is not None:
                    self._check_read(child_node, nested or {}, request, seen)

    def _node_for(self, data: dict[str, Any]) -> Optional[_CandidateNode]:
        typename = data.get("__typename")
        entity = self.graph.get_entity(typename) if typename else None
        if entity is None:
            return None
        return _CandidateNode(entity=entity, data=data)

    # =========================================================================
    # Response
    # =========================================================================

    @staticmethod
    def _scalar_data(node: _CandidateNode) -> dict[str, Any]:
        return {f.name: node.data[f.name] for f in node.entity.scalar_fields if f.name in node.data}

    def _events(self, subgraph: _Subgraph) -> list[MutationEvent]:
        events = [
            MutationEvent(event="CREATE", typename=n.entity.name, properties=self._scalar_data(n))
            for n in subgraph.nodes
            if n.created
        ]
        events.extend(
            MutationEvent(
                event="CREATE_RELATIONSHIP",
                typename=r.source.entity.name,
                properties=r.properties,
                relationship_field=r.field_name,
                related_typename=r.target.entity.name,
            )
            for r in subgraph.relationships
        )
        return events


def _attach(node: _CandidateNode, field_name: str, other: _CandidateNode, properties: dict[str, Any]):
    current = node.data.get(field_name)
    if isinstance(current, list):
        current.append(other.data)
    else:
        node.data[field_name] = other.data
    node.data[f"{field_name}Connection"]["edges"].append({"node": other.data, "properties": properties})


def _as_list(value: Any) -> list:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _equality_values(entity: Entity, where: dict[str, Any]) -> dict[str, Any]:
    values = {}
    for key, value in where.items():
        name = key[: -len(_EQUALITY_SUFFIX)] if key.endswith(_EQUALITY_SUFFIX) else key
        f = entity.get_field(name)
        if f is not None and not f.is_relationship:
            values[name] = value
    return values


def _literal(printed: str) -> Any:
    """Python value of a printed @default literal."""
    return value_from_ast_untyped(parse_value(printed))


def authorize_create(
    snapshot: Any,
    entity: str,
    inputs: list[dict[str, Any]],
    request: RequestContext,
    selection: Optional[dict[str, Any]] = None,
) -> MutationResponse:
    """
    Convenience function to authorize a create mutation against a SchemaSnapshot.

    selection lists the relationship fields the mutation returns, nested
    the same way as the GraphQL selection (e.g. {"creator": {"posts": {}}}).
    None means only `info` is selected and no READ rule applies.
    """
    authorizer = NestedCreateAuthorizer(snapshot.graph, snapshot.rules, snapshot.features)
    return authorizer.authorize(entity, inputs, request, selection)
