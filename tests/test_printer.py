"""Tests for SDL printing, snapshot versioning and hot swapping."""

from __future__ import annotations

from dataclasses import FrozenInstanceError

import pytest
from graphql import build_schema, validate_schema

from conftest import ACTED_IN_SDL, MOVIE_SDL, NARROWED_SDL, STARRED_IN_SDL, production_sdl
from nodegraph.core.features import Features
from nodegraph.core.printer import named_type, print_schema, reachable_types
from nodegraph.core.schema import SchemaHolder, build_schema_snapshot


# ── Helpers ─────────────────────────────────────────────

RELATIONSHIPS_SDL = """
type Movie @node {
    title: String!
    director: Person @relationship(type: "DIRECTED", direction: IN)
    actors: [Actor!]! @relationship(type: "ACTED_IN", direction: IN, properties: "ActedIn")
}

type Actor @node {
    name: String!
    movies: [Movie!]! @relationship(type: "ACTED_IN", direction: OUT, properties: "ActedIn")
}

type Person @node {
    name: String!
}

type ActedIn @relationshipProperties {
    screenTime: Int!
    role: String
}
"""

UNION_SDL = """
union Search = Movie | Genre

type Movie @node {
    title: String!
    search: [Search!]! @relationship(type: "SEARCH", direction: OUT)
}

type Genre @node {
    name: String!
}
"""

DEPRECATED_SDL = """
type Movie @node {
    title: String
    oldTitle: String @deprecated
    legacyTitle: String @deprecated(reason: "Use title")
}
"""

VALID_SCHEMAS = {
    "scalars": ([MOVIE_SDL], None),
    "relationships": ([RELATIONSHIPS_SDL], None),
    "union": ([UNION_SDL], None),
    "diverging": ([production_sdl("ActedIn", "StarredIn"), ACTED_IN_SDL, STARRED_IN_SDL], None),
    "shared": ([production_sdl("ActedIn", "ActedIn"), ACTED_IN_SDL], None),
    "subscriptions": ([RELATIONSHIPS_SDL], Features(subscriptions=True)),
    "deprecated": ([DEPRECATED_SDL], None),
    "narrowed": ([NARROWED_SDL, ACTED_IN_SDL], None),
    "narrowed_subscriptions": ([NARROWED_SDL, ACTED_IN_SDL], Features(subscriptions=True)),
}


def _block(sdl: str, header: str) -> str:
    start = sdl.index(header)
    return sdl[start:sdl.index("\n}", start) + 2]


# ── Tests: helpers ─────────────────────────────────────

class TestNamedType:

    @pytest.mark.parametrize("type_ref, expected", [
        ("Movie", "Movie"),
        ("Movie!", "Movie"),
        ("[Movie!]!", "Movie"),
        ("[[Int]]", "Int"),
    ])
    def test_strips_wrappers(self, type_ref, expected):
        assert named_type(type_ref) == expected


# ── Tests: output ──────────────────────────────────────

class TestDeterminism:

    def test_same_input_same_sdl_and_version(self):
        first = build_schema_snapshot(RELATIONSHIPS_SDL)
        second = build_schema_snapshot(RELATIONSHIPS_SDL)

        assert first.sdl == second.sdl
        assert first.version == second.version
        assert len(first.version) == 16

    def test_document_order_does_not_change_output(self):
        movie = "type Movie @node { title: String }"
        genre = "type Genre @node { name: String }"

        assert build_schema_snapshot([movie, genre]).sdl == build_schema_snapshot([genre, movie]).sdl

    def test_features_change_version(self):
        plain = build_schema_snapshot(MOVIE_SDL)
        with_events = build_schema_snapshot(MOVIE_SDL, Features(subscriptions=True))
        assert plain.version != with_events.version

    def test_types_and_fields_are_sorted(self, movie_snapshot):
        sdl = movie_snapshot.sdl
        movie = _block(sdl, "type Movie {")

        assert sdl.index("type CreateInfo") < sdl.index("type Movie {") < sdl.index("type PageInfo")
        assert movie.index("id: ID") < movie.index("imdbRating") < movie.index("isbn") < movie.index("title")


class TestPruning:

    def test_unused_scalars_are_pruned(self, movie_snapshot):
        assert "scalar BigInt" not in movie_snapshot.sdl
        assert "scalar DateTime" not in movie_snapshot.sdl
        assert "BigInt" in movie_snapshot.types

    def test_used_scalar_is_printed_with_description(self):
        sdl = build_schema_snapshot("type Account @node { balance: BigInt }").sdl

        assert '"""\nA BigInt value up to 64 bits in size' in sdl
        assert "scalar BigInt" in sdl

    def test_printed_types_are_the_reachable_ones(self, movie_snapshot):
        types = dict(movie_snapshot.types)
        sdl = print_schema(types, movie_snapshot.graph.directive_definitions)

        assert sdl == movie_snapshot.sdl
        for name in set(types) - reachable_types(types):
            assert f" {name} {{" not in sdl
            assert f"scalar {name}\n" not in sdl

    def test_unreachable_generated_types_are_dropped(self, movie_snapshot):
        reachable = reachable_types(dict(movie_snapshot.types))

        assert "SortDirection" in reachable
        assert "QueryOptions" not in reachable
        assert "input QueryOptions" not in movie_snapshot.sdl

    def test_user_enums_are_kept(self):
        sdl = build_schema_snapshot("""
            enum Unused { A B }
            type Movie @node { title: String }
        """).sdl
        assert "enum Unused {\n  A\n  B\n}" in sdl


class TestFormatting:

    def test_schema_block(self, movie_snapshot):
        assert movie_snapshot.sdl.startswith("schema {\n  query: Query\n  mutation: Mutation\n}\n")

    def test_schema_block_with_subscription(self, subscriptions):
        sdl = build_schema_snapshot(MOVIE_SDL, subscriptions).sdl
        assert "  subscription: Subscription\n}" in sdl

    def test_single_line_description(self, movie_snapshot):
        assert '"""Pagination information (Relay)"""\ntype PageInfo {' in movie_snapshot.sdl

    def test_block_description(self, movie_snapshot):
        assert (
            '"""\n'
            "Information about the number of nodes and relationships created and deleted during an update mutation\n"
            '"""\n'
            "type UpdateInfo {"
        ) in movie_snapshot.sdl

    def test_deprecations(self):
        movie = _block(build_schema_snapshot(DEPRECATED_SDL).sdl, "type Movie {")

        assert "  oldTitle: String @deprecated\n" in movie
        assert '  legacyTitle: String @deprecated(reason: "Use title")\n' in movie
        assert "  title: String\n" in movie

    def test_input_defaults(self):
        sdl = build_schema_snapshot(RELATIONSHIPS_SDL).sdl
        connect = _block(sdl, "input MovieActorsConnectFieldInput {")
        assert "  overwrite: Boolean! = true @deprecated(reason:" in connect

    def test_union_members_sorted(self):
        sdl = build_schema_snapshot(UNION_SDL).sdl
        assert "union Search = Genre | Movie" in sdl

    def test_ends_with_newline(self, movie_snapshot):
        assert movie_snapshot.sdl.endswith("}\n")


# ── Tests: validity ────────────────────────────────────

class TestGraphQLValidity:
    """Every printed schema is accepted by graphql-core."""

    @pytest.mark.parametrize("name", sorted(VALID_SCHEMAS))
    def test_builds_and_validates(self, name):
        documents, features = VALID_SCHEMAS[name]
        snapshot = build_schema_snapshot(documents, features)

        schema = build_schema(snapshot.sdl)

        assert validate_schema(schema) == []
        assert schema.query_type.name == "Query"

    def test_subscription_root(self, subscriptions):
        schema = build_schema(build_schema_snapshot(RELATIONSHIPS_SDL, subscriptions).sdl)

        assert schema.subscription_type is not None
        assert "movieCreated" in schema.subscription_type.fields

    def test_interface_implementers(self, diverging_snapshot):
        schema = build_schema(diverging_snapshot.sdl)

        production = schema.get_type("Production")
        assert sorted(t.name for t in schema.get_possible_types(production)) == ["Movie", "Series"]

    def test_narrowed_target_keeps_interface_arguments(self):
        schema = build_schema(build_schema_snapshot([NARROWED_SDL, ACTED_IN_SDL]).sdl)
        production = schema.get_type("Production")
        series = schema.get_type("Series")

        for name in ("actors", "lead"):
            declared = production.fields[name]
            narrowed = series.fields[name]
            for arg_name, arg in declared.args.items():
                assert str(narrowed.args[arg_name].type) == str(arg.type)

        assert str(series.fields["actors"].type) == "[Actor!]!"
        assert str(series.fields["actors"].args["where"].type) == "PersonWhere"
        assert str(series.fields["actors"].args["options"].type) == "PersonOptions"
        assert str(series.fields["actors"].args["sort"].type) == "[PersonSort!]"
        assert str(series.fields["actorsAggregate"].args["where"].type) == "ActorWhere"


# ── Tests: hot swap ────────────────────────────────────

class TestSchemaHolder:

    def test_swap_returns_previous(self, movie_snapshot):
        holder = SchemaHolder(movie_snapshot)
        updated = build_schema_snapshot(RELATIONSHIPS_SDL)

        previous = holder.swap(updated)

        assert previous is movie_snapshot
        assert holder.snapshot is updated

    def test_snapshot_types_are_read_only(self, movie_snapshot):
        with pytest.raises(TypeError):
            movie_snapshot.types["Extra"] = movie_snapshot.types["Movie"]

    def test_generated_types_are_immutable(self, movie_snapshot):
        query = movie_snapshot.types["Query"]
        movies = query.get_field("movies")

        assert isinstance(query.fields, tuple)
        assert isinstance(movies.args, tuple)
        assert isinstance(movie_snapshot.types["SortDirection"].values, tuple)
        with pytest.raises(FrozenInstanceError):
            query.description = "changed"
        with pytest.raises(FrozenInstanceError):
            movies.type_ref = "[Movie]"
        with pytest.raises(FrozenInstanceError):
            movies.args[0].type_ref = "String"
