"""Shared type definitions and fixtures."""

from __future__ import annotations

import pytest

from nodegraph.core.features import Features
from nodegraph.core.schema import SchemaSnapshot, build_schema_snapshot


MOVIE_SDL = """
type Movie @node {
    id: ID
    isbn: String!
    title: String
    imdbRating: Float
    someInt: Int
}
"""

ACTED_IN_SDL = """
type ActedIn @relationshipProperties {
    screenTime: Int!
}
"""

STARRED_IN_SDL = """
type StarredIn @relationshipProperties {
    episodeNr: Int!
}
"""


def production_sdl(movie_props: str, series_props: str) -> str:
    """Interface Production declaring `actors`, bound by Movie and Series."""
    return f"""
    interface Production {{
        title: String!
        actors: [Actor!]! @declareRelationship
    }}

    type Movie implements Production @node {{
        title: String!
        runtime: Int
        actors: [Actor!]! @relationship(type: "ACTED_IN", direction: IN, properties: "{movie_props}")
    }}

    type Series implements Production @node {{
        title: String!
        episodes: Int
        actors: [Actor!]! @relationship(type: "ACTED_IN", direction: IN, properties: "{series_props}")
    }}

    type Actor @node {{
        name: String!
    }}
    """


NARROWED_SDL = """
interface Person {
    name: String!
}

type Actor implements Person @node {
    name: String!
}

type Director implements Person @node {
    name: String!
}

interface Production {
    title: String!
    actors: [Person!]! @declareRelationship
    lead: Person @declareRelationship
}

type Movie implements Production @node {
    title: String!
    actors: [Person!]! @relationship(type: "ACTED_IN", direction: IN, properties: "ActedIn")
    lead: Person @relationship(type: "LEADS", direction: IN)
}

type Series implements Production @node {
    title: String!
    actors: [Actor!]! @relationship(type: "ACTED_IN", direction: IN, properties: "ActedIn")
    lead: Actor @relationship(type: "LEADS", direction: IN)
}
"""


USER_POST_SDL = """
type JWT @jwt {
    id: String
    roles: [String!] @jwtClaim(path: "app_metadata.roles")
}

type User @node @authorization(validate: [{ where: { node: { userId: "$jwt.id" } }, operations: [READ] }]) {
    userId: String!
    name: String
    posts: [Post!]! @relationship(type: "HAS_POST", direction: OUT)
}

type Post @node {
    content: String!
    creator: User! @relationship(type: "HAS_POST", direction: IN)
}
"""


@pytest.fixture
def movie_snapshot() -> SchemaSnapshot:
    return build_schema_snapshot(MOVIE_SDL)


@pytest.fixture
def diverging_snapshot() -> SchemaSnapshot:
    """Production.actors with ActedIn on Movie and StarredIn on Series."""
    return build_schema_snapshot([production_sdl("ActedIn", "StarredIn"), ACTED_IN_SDL, STARRED_IN_SDL])


@pytest.fixture
def shared_snapshot() -> SchemaSnapshot:
    """Production.actors with ActedIn on both implementers."""
    return build_schema_snapshot([production_sdl("ActedIn", "ActedIn"), ACTED_IN_SDL])


@pytest.fixture
def subscriptions() -> Features:
    return Features(subscriptions=True)
