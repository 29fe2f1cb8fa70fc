"""Tests for relationship resolution and properties unification."""

from __future__ import annotations

import pytest

from conftest import ACTED_IN_SDL, NARROWED_SDL, STARRED_IN_SDL, production_sdl
from nodegraph.core.defs import (
    Cardinality,
    Direction,
    NoProperties,
    PerImplementation,
    Shared,
    TargetKind,
    binding_for,
)
from nodegraph.core.errors import RelationshipResolutionError, SchemaValidationError
from nodegraph.core.registry import build_type_model
from nodegraph.core.relationships import resolve_relationships


# ── Helpers ─────────────────────────────────────────────

def _resolve(*documents: str):
    return resolve_relationships(build_type_model(list(documents)))


TWO_LEVEL_SDL = """
interface Production {
    title: String!
    actors: [Actor!]! @declareRelationship
}

interface Film implements Production {
    title: String!
}

type Movie implements Film @node {
    title: String!
    actors: [Actor!]! @relationship(type: "ACTED_IN", direction: IN, properties: "ActedIn")
}

type Actor @node {
    name: String!
}
"""


# ── Tests: binding ─────────────────────────────────────

class TestBindingFor:
    """0 distinct properties types -> none, 1 -> shared, 2+ -> per implementation."""

    def test_no_properties(self):
        assert binding_for([]) == NoProperties()
        assert binding_for([("Movie", None), ("Series", None)]) == NoProperties()

    def test_single_type_collapses_to_shared(self):
        assert binding_for([("Movie", "ActedIn"), ("Series", "ActedIn")]) == Shared("ActedIn")

    def test_missing_properties_do_not_diverge(self):
        assert binding_for([("Movie", None), ("Series", "ActedIn")]) == Shared("ActedIn")

    def test_diverging_types(self):
        binding = binding_for([("Movie", "ActedIn"), ("Series", "StarredIn"), ("Short", "ActedIn")])

        assert isinstance(binding, PerImplementation)
        assert binding.types == ("ActedIn", "StarredIn")
        assert binding.implementers_of("ActedIn") == ("Movie", "Short")
        assert binding.prop_type_of("Series") == "StarredIn"

    def test_per_implementation_needs_two_types(self):
        with pytest.raises(ValueError):
            PerImplementation((("Movie", "ActedIn"), ("Series", "ActedIn")))


# ── Tests: edges ───────────────────────────────────────

class TestConcreteEdges:

    def test_edge_shape(self):
        graph = _resolve("""
            type Movie @node {
                title: String
                director: Person @relationship(type: "DIRECTED", direction: IN)
                actors: [Person!]! @relationship(type: "ACTED_IN", direction: IN)
            }
            type Person @node { name: String }
        """)

        director = graph.edge("Movie", "director")
        assert director.target == "Person"
        assert director.target_kind is TargetKind.ENTITY
        assert director.native_type == "DIRECTED"
        assert director.direction is Direction.IN
        assert director.cardinality is Cardinality.ONE
        assert director.binding == NoProperties()
        assert director.declared_on is None
        assert graph.edge("Movie", "actors").is_many

    def test_self_referential_relationships(self):
        graph = _resolve("""
            type User @node {
                name: String
                friends: [User!]! @relationship(type: "FRIENDS_WITH", direction: UNDIRECTED)
            }
        """)
        edge = graph.edge("User", "friends")
        assert edge.source == edge.target == "User"
        assert edge.direction is Direction.UNDIRECTED

    def test_union_target(self):
        graph = _resolve("""
            union Search = Movie | Genre
            type Movie @node {
                title: String
                search: [Search!]! @relationship(type: "SEARCH", direction: OUT)
            }
            type Genre @node { name: String }
        """)
        assert graph.edge("Movie", "search").target_kind is TargetKind.UNION

    def test_edges_of_keeps_field_order(self):
        graph = _resolve("""
            type Movie @node {
                b: [Person!]! @relationship(type: "B", direction: IN)
                a: [Person!]! @relationship(type: "A", direction: IN)
            }
            type Person @node { name: String }
        """)
        assert [e.field_name for e in graph.edges_of("Movie")] == ["b", "a"]


class TestInterfaceEdges:
    """Declared relationships are bound by every concrete implementer."""

    def test_diverging_properties(self):
        graph = _resolve(production_sdl("ActedIn", "StarredIn"), ACTED_IN_SDL, STARRED_IN_SDL)

        interface_edge = graph.edge("Production", "actors")
        assert interface_edge.binding == PerImplementation((("Movie", "ActedIn"), ("Series", "StarredIn")))
        assert interface_edge.native_type == "ACTED_IN"
        assert interface_edge.direction is Direction.IN

        # Each implementer keeps its own binding and names shared types after the interface
        movie_edge = graph.edge("Movie", "actors")
        assert movie_edge.binding == Shared("ActedIn")
        assert movie_edge.declared_on == "Production"
        assert movie_edge.naming_owner == "Production"

    def test_shared_properties(self):
        graph = _resolve(production_sdl("ActedIn", "ActedIn"), ACTED_IN_SDL)
        assert graph.edge("Production", "actors").binding == Shared("ActedIn")

    def test_disagreeing_relationship_type(self):
        sdl = production_sdl("ActedIn", "ActedIn").replace(
            'episodes: Int\n        actors: [Actor!]! @relationship(type: "ACTED_IN"',
            'episodes: Int\n        actors: [Actor!]! @relationship(type: "PLAYED_IN"',
        )
        assert "PLAYED_IN" in sdl

        with pytest.raises(RelationshipResolutionError) as excinfo:
            _resolve(sdl, ACTED_IN_SDL)

        assert excinfo.value.interface_field == "Production.actors"
        assert excinfo.value.implementers == ["Movie", "Series"]
        assert "disagree on relationship type" in str(excinfo.value)

    def test_missing_implementation(self):
        with pytest.raises(RelationshipResolutionError) as excinfo:
            _resolve("""
                interface Production {
                    title: String!
                    actors: [Actor!]! @declareRelationship
                }
                type Movie implements Production @node {
                    title: String!
                    actors: [Actor!]! @relationship(type: "ACTED_IN", direction: IN)
                }
                type Series implements Production @node {
                    title: String!
                }
                type Actor @node { name: String! }
            """)

        assert "Missing relationship field 'actors'" in str(excinfo.value)
        assert excinfo.value.implementers == ["Series"]

    def test_incompatible_target(self):
        with pytest.raises(RelationshipResolutionError) as excinfo:
            _resolve("""
                interface Production {
                    title: String!
                    actors: [Actor!]! @declareRelationship
                }
                type Movie implements Production @node {
                    title: String!
                    actors: [Genre!]! @relationship(type: "ACTED_IN", direction: IN)
                }
                type Actor @node { name: String! }
                type Genre @node { name: String! }
            """)
        assert "Target 'Genre' is not compatible with 'Actor'" in str(excinfo.value)

    def test_narrowed_target_is_accepted(self):
        graph = _resolve(NARROWED_SDL, ACTED_IN_SDL)

        series_edge = graph.edge("Series", "actors")
        assert series_edge.target == "Actor"
        assert series_edge.target_kind is TargetKind.ENTITY
        assert series_edge.declared_on == "Production"

        interface_edge = graph.edge("Production", "actors")
        assert interface_edge.target == "Person"
        assert interface_edge.target_kind is TargetKind.INTERFACE
        assert interface_edge.binding == Shared("ActedIn")
        assert graph.edge("Series", "lead").target == "Actor"

    def test_resolution_error_is_a_validation_error(self):
        assert issubclass(RelationshipResolutionError, SchemaValidationError)


class TestInterfaceChains:
    """A relationship declared two interfaces up is resolved from the leaf."""

    def test_intermediate_interface_inherits_field(self):
        graph = _resolve(TWO_LEVEL_SDL, ACTED_IN_SDL)

        film = graph.get_entity("Film")
        assert film.get_field("actors").is_relationship
        assert graph.ancestors("Movie") == ["Film", "Production"]

    def test_all_levels_share_the_root_declaration(self):
        graph = _resolve(TWO_LEVEL_SDL, ACTED_IN_SDL)

        for owner in ("Production", "Film", "Movie"):
            edge = graph.edge(owner, "actors")
            assert edge.declared_on == "Production"
            assert edge.native_type == "ACTED_IN"
            assert edge.binding == Shared("ActedIn")

    def test_leaf_must_bind_grandparent_declaration(self):
        sdl = TWO_LEVEL_SDL.replace(
            '    actors: [Actor!]! @relationship(type: "ACTED_IN", direction: IN, properties: "ActedIn")\n',
            "",
        )
        with pytest.raises(RelationshipResolutionError) as excinfo:
            _resolve(sdl, ACTED_IN_SDL)
        assert "Missing relationship field 'actors'" in str(excinfo.value)
