"""Tests for the type registry: field classification and aggregated build errors."""

from __future__ import annotations

import pytest

from nodegraph.core.defs import Direction, FieldRole, MutationOperation, ScalarKind
from nodegraph.core.errors import RelationshipResolutionError, SchemaValidationError
from nodegraph.core.registry import TypeRegistry, build_type_model
from nodegraph.core.schema import build_schema_snapshot


# ── Helpers ─────────────────────────────────────────────

LIBRARY_SDL = """
enum Genre { DRAMA COMEDY }

scalar Upload

type Book @node {
    id: ID! @id
    isbn: String! @unique
    slug: String! @populatedBy(callback: "slug", operations: [CREATE])
    createdAt: DateTime! @timestamp(operations: [CREATE])
    pages: Int
    price: Float
    copies: BigInt
    published: Date
    genre: Genre
    tags: [String!]
    cover: Upload
    internalNotes: String @private
    rating: Float @default(value: 2.5)
    author: Author! @relationship(type: "WROTE", direction: IN)
}

type Author @node {
    name: String!
    books: [Book!]! @relationship(type: "WROTE", direction: OUT)
}
"""


def _build(sdl: str, callbacks=("slug",)):
    return build_type_model(sdl, callbacks=callbacks)


def _messages(excinfo) -> list[str]:
    return excinfo.value.error_messages()


# ── Tests: classification ──────────────────────────────

class TestFieldClassification:
    """Every field gets exactly one role and a cached scalar kind."""

    def test_roles(self):
        book = _build(LIBRARY_SDL).get_entity("Book")

        assert book.get_field("id").role is FieldRole.GENERATED_ID
        assert book.get_field("isbn").role is FieldRole.UNIQUE_CONSTRAINT
        assert book.get_field("slug").role is FieldRole.COMPUTED_BY_CALLBACK
        assert book.get_field("pages").role is FieldRole.SCALAR
        assert book.get_field("author").role is FieldRole.RELATIONSHIP_REF

    def test_scalar_kinds(self):
        book = _build(LIBRARY_SDL).get_entity("Book")

        assert book.get_field("id").kind is ScalarKind.ID
        assert book.get_field("pages").kind is ScalarKind.INT
        assert book.get_field("price").kind is ScalarKind.FLOAT
        assert book.get_field("copies").kind is ScalarKind.BIG_INT
        assert book.get_field("published").kind is ScalarKind.DATE
        assert book.get_field("genre").kind is ScalarKind.ENUM
        assert book.get_field("cover").kind is ScalarKind.CUSTOM
        assert book.get_field("author").kind is None

    def test_sortable_fields(self):
        book = _build(LIBRARY_SDL).get_entity("Book")

        assert book.get_field("cover").is_sortable
        assert book.get_field("genre").is_sortable
        assert book.get_field("published").is_sortable
        assert not book.get_field("tags").is_sortable
        assert not book.get_field("author").is_sortable

    def test_list_and_required_flags(self):
        book = _build(LIBRARY_SDL).get_entity("Book")
        tags = book.get_field("tags")

        assert tags.is_list
        assert tags.is_item_required
        assert not tags.is_required
        assert tags.type_ref == "[String!]"
        assert book.get_field("isbn").type_ref == "String!"

    def test_callback_operations(self):
        slug = _build(LIBRARY_SDL).get_entity("Book").get_field("slug")

        assert slug.callback.callback == "slug"
        assert slug.callback.operations == (MutationOperation.CREATE,)
        assert not slug.is_settable_on(MutationOperation.CREATE)
        assert slug.is_settable_on(MutationOperation.UPDATE)

    def test_timestamp_and_private_fields_are_not_settable(self):
        book = _build(LIBRARY_SDL).get_entity("Book")

        assert not book.get_field("createdAt").is_settable_on(MutationOperation.CREATE)
        assert book.get_field("createdAt").is_settable_on(MutationOperation.UPDATE)
        assert not book.get_field("internalNotes").is_settable_on(MutationOperation.UPDATE)
        assert "internalNotes" not in [f.name for f in book.scalar_fields]

    def test_default_value_is_kept_as_literal(self):
        book = _build(LIBRARY_SDL).get_entity("Book")
        assert book.get_field("rating").default_value == "2.5"

    def test_relationship_declaration(self):
        author = _build(LIBRARY_SDL).get_entity("Book").get_field("author")

        assert author.relationship.type == "WROTE"
        assert author.relationship.direction is Direction.IN
        assert author.relationship.properties is None

    def test_unique_fields(self):
        book = _build(LIBRARY_SDL).get_entity("Book")
        assert [f.name for f in book.unique_fields] == ["id", "isbn"]


class TestGraphShape:
    """Entities, enums, scalars and claims collected from the documents."""

    def test_declaration_order_is_kept(self):
        graph = _build(LIBRARY_SDL)
        assert list(graph.entities) == ["Book", "Author"]
        assert [f.name for f in graph.get_entity("Author").fields] == ["name", "books"]

    def test_enums_and_scalars(self):
        graph = _build(LIBRARY_SDL)
        assert [v.name for v in graph.enums["Genre"].values] == ["DRAMA", "COMEDY"]
        assert "Upload" in graph.scalars

    def test_properties_and_claims_are_not_entities(self):
        graph = _build("""
            type JWT @jwt { sub: String roles: [String!] @jwtClaim(path: "app.roles") }
            type Likes @relationshipProperties { at: DateTime }
            type User @node {
                name: String
                likes: [User!]! @relationship(type: "LIKES", direction: OUT, properties: "Likes")
            }
        """)

        assert list(graph.entities) == ["User"]
        assert "Likes" in graph.properties
        assert graph.claims.name == "JWT"
        assert graph.claim_paths == {"roles": "app.roles"}

    def test_type_extensions_are_merged(self):
        graph = _build("""
            type Movie @node { title: String }
            extend type Movie { year: Int }
        """)
        assert [f.name for f in graph.get_entity("Movie").fields] == ["title", "year"]

    def test_multiple_documents(self):
        registry = TypeRegistry()
        registry.register("type Movie @node { title: String }")
        registry.register("type Actor @node { name: String }")
        assert list(registry.build().entities) == ["Movie", "Actor"]

    def test_user_root_types_are_ignored(self):
        graph = _build("""
            type Query { hello: String }
            type Movie @node { title: String }
        """)
        assert list(graph.entities) == ["Movie"]

    def test_union_members_are_flagged(self):
        graph = _build("""
            union Search = Movie | Genre
            type Movie @node { title: String }
            type Genre @node { name: String }
        """)
        assert graph.unions == {"Search": ("Movie", "Genre")}
        assert graph.get_entity("Genre").is_union_member

    def test_passthrough_directive_definitions(self):
        graph = _build("""
            directive @cached(ttl: Int) on FIELD_DEFINITION
            type Movie @node { title: String @cached(ttl: 5) }
        """)
        assert graph.directive_definitions == ("directive @cached(ttl: Int) on FIELD_DEFINITION",)
        assert graph.get_entity("Movie").get_field("title").directives == ("@cached(ttl: 5)",)


# ── Tests: errors ──────────────────────────────────────

class TestValidationErrors:
    """All violations are reported together."""

    def test_errors_are_aggregated(self):
        with pytest.raises(SchemaValidationError) as excinfo:
            _build("""
                type Movie @node {
                    tags: [String!] @unique
                    actors: [Actor!]! @relationship(type: "ACTED_IN")
                    year: Year
                }
                type Actor @node { name: String }
            """)

        messages = _messages(excinfo)
        assert len(messages) == 3
        assert any("Movie.tags" in m and "@unique" in m for m in messages)
        assert any("Movie.actors" in m and "direction" in m for m in messages)
        assert any("Unknown type 'Year'" in m for m in messages)

    def test_invalid_direction(self):
        with pytest.raises(SchemaValidationError) as excinfo:
            _build("""
                type Movie @node { actors: [Actor!]! @relationship(type: "ACTED_IN", direction: SIDEWAYS) }
                type Actor @node { name: String }
            """)
        assert "Invalid direction 'SIDEWAYS'" in str(excinfo.value)

    def test_object_field_without_relationship(self):
        with pytest.raises(SchemaValidationError) as excinfo:
            _build("""
                type Movie @node { actors: [Actor!]! }
                type Actor @node { name: String }
            """)
        assert "must use @relationship" in str(excinfo.value)

    def test_unregistered_callback(self):
        with pytest.raises(SchemaValidationError) as excinfo:
            _build('type Movie @node { slug: String @populatedBy(callback: "slug") }', callbacks=())
        assert "Callback 'slug' is not registered" in str(excinfo.value)

    def test_id_on_non_id_field(self):
        with pytest.raises(SchemaValidationError) as excinfo:
            _build("type Movie @node { code: String @id }")
        assert "@id can only be used on fields of type ID" in str(excinfo.value)

    def test_unknown_properties_type(self):
        with pytest.raises(SchemaValidationError) as excinfo:
            _build("""
                type Movie @node {
                    actors: [Actor!]! @relationship(type: "ACTED_IN", direction: IN, properties: "ActedIn")
                }
                type Actor @node { name: String }
            """)
        assert "Properties type 'ActedIn'" in str(excinfo.value)

    def test_declare_relationship_outside_interface(self):
        with pytest.raises(SchemaValidationError) as excinfo:
            _build("""
                type Movie @node { actors: [Actor!]! @declareRelationship }
                type Actor @node { name: String }
            """)
        assert "@declareRelationship can only be used on interfaces" in str(excinfo.value)

    def test_missing_interface_field(self):
        with pytest.raises(SchemaValidationError) as excinfo:
            _build("""
                interface Production { title: String! }
                type Movie implements Production @node { runtime: Int }
            """)
        assert "Field 'title' of interface 'Production' is missing" in str(excinfo.value)

    def test_unknown_directive(self):
        with pytest.raises(SchemaValidationError) as excinfo:
            _build("type Movie @node { title: String @cached }")
        assert "Unknown directive '@cached'" in str(excinfo.value)

    def test_syntax_error_is_reported(self):
        with pytest.raises(SchemaValidationError) as excinfo:
            _build("type Movie @node { title: ")
        assert "Syntax error" in str(excinfo.value)

    def test_duplicate_type(self):
        with pytest.raises(SchemaValidationError) as excinfo:
            _build("""
                type Movie @node { title: String }
                type Movie @node { year: Int }
            """)
        assert "defined more than once" in str(excinfo.value)


# ── Tests: errors across build stages ──────────────────

PRODUCTION_SDL = """
interface Production {
    title: String!
    actors: [Actor!]! @declareRelationship
}

type Movie implements Production @node @authorization(validate: [{ where: { node: { missing: "x" } } }]) {
    title: String!
    actors: [Actor!]! @relationship(type: "ACTED_IN", direction: IN)
}

type Series implements Production @node {
    title: String!
    actors: [Actor!]! @relationship(type: "%s", direction: IN)
    tags: [String!] @unique
}

type Actor @node { name: String! }
"""


class TestErrorsAcrossStages:
    """A failed build reports the type model, relationship and rule errors together."""

    def test_conflict_unique_list_and_rule_field_reported_together(self):
        with pytest.raises(RelationshipResolutionError) as excinfo:
            build_schema_snapshot(PRODUCTION_SDL % "STARRED_IN")

        messages = _messages(excinfo)
        assert len(messages) == 3
        assert any("Series.tags" in m and "@unique" in m for m in messages)
        assert any("disagree on relationship type" in m and "Series (STARRED_IN)" in m for m in messages)
        assert any("Unknown field 'missing' on 'Movie'" in m for m in messages)
        assert excinfo.value.interface_field == "Production.actors"
        assert excinfo.value.implementers == ["Movie", "Series"]

    def test_registry_and_rule_errors_without_conflict(self):
        with pytest.raises(SchemaValidationError) as excinfo:
            build_schema_snapshot(PRODUCTION_SDL % "ACTED_IN")

        assert not isinstance(excinfo.value, RelationshipResolutionError)
        messages = _messages(excinfo)
        assert len(messages) == 2
        assert any("Series.tags" in m for m in messages)
        assert any("Unknown field 'missing' on 'Movie'" in m for m in messages)

    def test_unresolved_target_does_not_stop_rule_compilation(self):
        with pytest.raises(SchemaValidationError) as excinfo:
            build_schema_snapshot("""
                type Movie @node @authorization(validate: [{ where: { node: { missing: "x" } } }]) {
                    title: String!
                    studio: Studio! @relationship(type: "MADE_BY", direction: OUT)
                }
            """)

        messages = _messages(excinfo)
        assert any("Unknown type 'Studio'" in m for m in messages)
        assert any("Unknown field 'missing' on 'Movie'" in m for m in messages)

    def test_standalone_stages_still_raise(self):
        registry = TypeRegistry()
        registry.register("type Movie @node { tags: [String!] @unique }")
        errors = []
        graph = registry.build(errors=errors)

        assert graph.get_entity("Movie") is not None
        assert len(errors) == 1
        with pytest.raises(SchemaValidationError):
            registry.build()
