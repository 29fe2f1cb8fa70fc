"""Tests for authorization: rule compilation, evaluation and nested create checks."""

from __future__ import annotations

import pytest

from conftest import USER_POST_SDL
from nodegraph.auth.evaluator import authorize, denied_error, evaluate, filter_nodes
from nodegraph.auth.nested import authorize_create
from nodegraph.auth.rules import (
    AuthorizationRule,
    ClaimRef,
    Comparison,
    ContextRef,
    Operation,
    RuleKind,
    TruePredicate,
    When,
    split_path,
)
from nodegraph.core.errors import AuthorizationDenied, SchemaValidationError
from nodegraph.core.features import Features
from nodegraph.core.schema import build_schema_snapshot
from nodegraph.runtime.context import RequestContext


# ── Helpers ─────────────────────────────────────────────

AUTH_SDL = """
type JWT @jwt {
    id: String
    roles: [String!] @jwtClaim(path: "app_metadata.roles")
}

type User @node @authorization(
    validate: [{ operations: [READ], where: { node: { userId: "$jwt.id" } } }]
    filter: [{ where: { node: { posts_NONE: { content: "spam" } } } }]
) {
    userId: String!
    name: String
    posts: [Post!]! @relationship(type: "HAS_POST", direction: OUT)
}

type Post @node @authorization(
    validate: [
        { operations: [UPDATE, DELETE], where: { node: { creator: { userId: "$jwt.id" } } } }
        { operations: [DELETE], where: { jwt: { roles_INCLUDES: "admin" } } }
    ]
) {
    content: String!
    creator: User! @relationship(type: "HAS_POST", direction: IN)
}
"""

INTERFACE_RULES_SDL = """
type JWT @jwt {
    id: String
    roles: [String!]
}

interface Owned @authorization(validate: [{ where: { node: { ownerId: "$jwt.id" } } }]) {
    ownerId: String!
}

type Document implements Owned @node @authorization(
    validate: [{ operations: [READ], where: { jwt: { roles_INCLUDES: "reader" } } }]
) {
    ownerId: String!
    title: String
}
"""


def _rule(where=None, require_authentication=True) -> AuthorizationRule:
    return AuthorizationRule(
        entity="Movie",
        kind=RuleKind.VALIDATE,
        operations=frozenset({Operation.READ}),
        where=where or TruePredicate(),
        require_authentication=require_authentication,
    )


def _only(snapshot, entity, operation):
    rules = snapshot.rules.rules_for(entity, operation)
    assert len(rules) == 1
    return rules[0]


@pytest.fixture
def auth_snapshot():
    return build_schema_snapshot(AUTH_SDL)


# ── Tests: evaluation ──────────────────────────────────

class TestEvaluate:

    @pytest.mark.parametrize("operator, value, expected", [
        ("EQ", 20, True),
        ("GT", 18, True),
        ("GTE", 20, True),
        ("LT", 20, False),
        ("LTE", 20, True),
        ("IN", [18, 20], True),
        ("IN", [1, 2], False),
    ])
    def test_numeric_comparisons(self, operator, value, expected):
        assert evaluate(Comparison("age", operator, value), None, {"age": 20}) is expected

    @pytest.mark.parametrize("operator, value, expected", [
        ("CONTAINS", "atri", True),
        ("STARTS_WITH", "Ma", True),
        ("ENDS_WITH", "rix", True),
        ("MATCHES", "M.*x", True),
        ("MATCHES", "atri", False),
        ("MATCHES", "[", False),
    ])
    def test_string_comparisons(self, operator, value, expected):
        assert evaluate(Comparison("title", operator, value), None, {"title": "Matrix"}) is expected

    def test_includes(self):
        assert evaluate(Comparison("tags", "INCLUDES", "a"), None, {"tags": ["a", "b"]})
        assert not evaluate(Comparison("tags", "INCLUDES", "c"), None, {"tags": ["a", "b"]})

    def test_missing_values_are_false(self):
        assert not evaluate(Comparison("age", "GT", 1), None, {})
        assert not evaluate(Comparison("age", "GT", 1), None, {"age": None})
        assert not evaluate(Comparison("age", "GT", "x"), None, {"age": 1})

    def test_claim_references(self):
        compare = Comparison("userId", "EQ", ClaimRef(("id",)))

        assert evaluate(compare, {"id": "u1"}, {"userId": "u1"})
        assert not evaluate(compare, {"id": "u2"}, {"userId": "u1"})
        assert not evaluate(compare, {}, {"userId": "u1"})
        assert not evaluate(compare, None, {"userId": "u1"})

    def test_context_references(self):
        compare = Comparison("tenant", "EQ", ContextRef(("tenant", "id")))

        assert evaluate(compare, None, {"tenant": "t1"}, {"tenant": {"id": "t1"}})
        assert not evaluate(compare, None, {"tenant": "t1"}, {})

    def test_rule_requires_authentication(self):
        assert not evaluate(_rule(), None, {})
        assert evaluate(_rule(), {}, {})
        assert evaluate(_rule(require_authentication=False), None, {})


class TestSplitPath:

    def test_dotted(self):
        assert split_path("app_metadata.roles") == ("app_metadata", "roles")

    def test_escaped_dot(self):
        assert split_path("https://example\\.com/roles") == ("https://example.com/roles",)


# ── Tests: compiled rules ──────────────────────────────

class TestCompiledRules:

    def test_rules_by_kind_and_operation(self, auth_snapshot):
        rules = auth_snapshot.rules

        assert len(rules) == 4
        assert len(rules.rules_for("Post", Operation.DELETE)) == 2
        assert len(rules.rules_for("Post", Operation.UPDATE)) == 1
        assert rules.rules_for("Post", Operation.CREATE) == []
        assert len(rules.rules_for("User", Operation.READ, RuleKind.FILTER)) == 1

    def test_default_operations_and_phases(self, auth_snapshot):
        rule = _only(auth_snapshot, "User", Operation.READ)

        assert rule.when == (When.BEFORE, When.AFTER)
        assert rule.applies_to(Operation.READ, When.AFTER)
        assert not rule.applies_to(Operation.UPDATE)
        assert rule.label == "User.validate[0]"

    def test_node_rule(self, auth_snapshot):
        rule = _only(auth_snapshot, "User", Operation.READ)

        assert evaluate(rule, {"id": "u1"}, {"userId": "u1"})
        assert not evaluate(rule, {"id": "u1"}, {"userId": "u2"})

    def test_claim_remapped_through_jwt_claim(self, auth_snapshot):
        admin_rule = [
            r for r in auth_snapshot.rules.rules_for("Post", Operation.DELETE)
            if r.index == 1
        ][0]

        assert evaluate(admin_rule, {"app_metadata": {"roles": ["admin"]}}, {})
        assert not evaluate(admin_rule, {"roles": ["admin"]}, {})
        assert not evaluate(admin_rule, {"app_metadata": {"roles": ["user"]}}, {})

    def test_single_relationship(self, auth_snapshot):
        rule = _only(auth_snapshot, "Post", Operation.UPDATE)

        assert evaluate(rule, {"id": "u1"}, {"creator": {"userId": "u1"}})
        assert not evaluate(rule, {"id": "u1"}, {"creator": {"userId": "u2"}})
        assert not evaluate(rule, {"id": "u1"}, {"content": "not fetched"})

    def test_quantified_relationship(self, auth_snapshot):
        rule = auth_snapshot.rules.rules_for("User", Operation.READ, RuleKind.FILTER)[0]
        claims = {"id": "u1"}

        assert evaluate(rule, claims, {"posts": [{"content": "hi"}]})
        assert evaluate(rule, claims, {"posts": []})
        assert not evaluate(rule, claims, {"posts": [{"content": "hi"}, {"content": "spam"}]})
        assert not evaluate(rule, claims, {
            "postsConnection": {"edges": [{"node": {"content": "spam"}, "properties": {}}]},
        })

    def test_interface_rules_are_conjunctive(self):
        snapshot = build_schema_snapshot(INTERFACE_RULES_SDL)
        rules = snapshot.rules.rules_for("Document", Operation.READ)

        assert [r.declared_on for r in rules] == [None, "Owned"]
        assert rules[1].label == "Owned.validate[0]"
        assert len(snapshot.rules.rules_for("Document", Operation.UPDATE)) == 1

        reader = RequestContext(claims={"id": "u1", "roles": ["reader"]})
        authorize(snapshot.rules, "Document", Operation.READ, reader, {"ownerId": "u1"})
        with pytest.raises(AuthorizationDenied):
            authorize(snapshot.rules, "Document", Operation.READ, reader, {"ownerId": "u2"})
        with pytest.raises(AuthorizationDenied):
            authorize(
                snapshot.rules, "Document", Operation.READ,
                RequestContext(claims={"id": "u1", "roles": []}), {"ownerId": "u1"},
            )


class TestRuleCompileErrors:

    @pytest.mark.parametrize("rule, message", [
        ('{ where: { node: { missing: "x" } } }', "Unknown field 'missing' on 'User'"),
        ('{ where: { jwt: { tenant: "x" } } }', "Claim 'tenant' is not declared"),
        ('{ where: { node: { name: "$jwt.tenant" } } }', "Claim 'tenant' is not declared"),
        ('{ where: { node: { name_IN: "x" } } }', "_IN on 'name' requires a list value"),
        ('{ where: { node: { name_INCLUDES: "x" } } }', "_INCLUDES requires a list field"),
        ('{ where: { user: { name: "x" } } }', "unknown key 'user'"),
        ('{ operations: [FLY] }', "invalid operations value 'FLY'"),
    ])
    def test_invalid_rule(self, rule, message):
        sdl = f"""
            type JWT @jwt {{ id: String }}
            type User @node @authorization(validate: [{rule}]) {{ name: String }}
        """
        with pytest.raises(SchemaValidationError) as exc_info:
            build_schema_snapshot(sdl)

        assert any(message in m for m in exc_info.value.error_messages())

    def test_filter_cannot_apply_to_create(self):
        sdl = 'type User @node @authorization(filter: [{ operations: [CREATE] }]) { name: String }'
        with pytest.raises(SchemaValidationError) as exc_info:
            build_schema_snapshot(sdl)

        assert "cannot filter CREATE" in exc_info.value.error_messages()[0]


# ── Tests: enforcement ─────────────────────────────────

class TestEnforcement:

    def test_authorize_raises_denied(self, auth_snapshot):
        request = RequestContext(claims={"id": "u2"})

        with pytest.raises(AuthorizationDenied) as exc_info:
            authorize(auth_snapshot.rules, "Post", Operation.UPDATE, request, {"creator": {"userId": "u1"}})

        assert exc_info.value.entity == "Post"
        assert exc_info.value.operation == "UPDATE"

    def test_all_applicable_rules_must_hold(self, auth_snapshot):
        owner = RequestContext(claims={"id": "u1"})
        admin_owner = RequestContext(claims={"id": "u1", "app_metadata": {"roles": ["admin"]}})
        candidate = {"creator": {"userId": "u1"}}

        with pytest.raises(AuthorizationDenied):
            authorize(auth_snapshot.rules, "Post", Operation.DELETE, owner, candidate)
        authorize(auth_snapshot.rules, "Post", Operation.DELETE, admin_owner, candidate)

    def test_denied_error_entry(self):
        entry = denied_error()

        assert entry.message == "Forbidden"
        assert entry.extensions == {"code": "FORBIDDEN"}

    def test_filter_nodes(self, auth_snapshot):
        nodes = [
            {"userId": "a", "posts": [{"content": "spam"}]},
            {"userId": "b", "posts": [{"content": "hello"}]},
        ]

        kept = filter_nodes(auth_snapshot.rules, "User", Operation.READ, RequestContext(claims={}), nodes)
        hidden = filter_nodes(auth_snapshot.rules, "User", Operation.READ, RequestContext(), nodes)

        assert [n["userId"] for n in kept] == ["b"]
        assert hidden == []


class TestRequestContext:

    def test_anonymous(self):
        request = RequestContext.anonymous(tenant="t1")

        assert request.claims is None
        assert not request.is_authenticated
        assert request.values == {"tenant": "t1"}

    def test_authenticated(self):
        assert RequestContext(claims={}).is_authenticated


# ── Tests: nested create ───────────────────────────────

class TestNestedCreate:
    """Scenario: creating a post together with a user the caller cannot read."""

    CREATE_INPUT = [{"content": "c", "creator": {"create": {"node": {"userId": "other"}}}}]

    @pytest.mark.parametrize("features", [Features(), Features(subscriptions=True)])
    def test_unreadable_nested_node_is_forbidden(self, features):
        snapshot = build_schema_snapshot(USER_POST_SDL, features)

        response = authorize_create(
            snapshot, "Post", self.CREATE_INPUT, RequestContext(claims={"id": "u1"}),
            selection={"creator": {}},
        )

        assert response.data is None
        assert "Forbidden" in response.errors[0].message
        assert response.errors[0].extensions == {"code": "FORBIDDEN"}
        assert response.events == []

    def test_read_not_checked_without_selection(self):
        snapshot = build_schema_snapshot(USER_POST_SDL)

        response = authorize_create(snapshot, "Post", self.CREATE_INPUT, RequestContext(claims={"id": "u1"}))

        assert response.ok
        assert response.data["createPosts"]["info"] == {"nodesCreated": 2, "relationshipsCreated": 1}

    def test_readable_nested_node(self):
        snapshot = build_schema_snapshot(USER_POST_SDL)
        inputs = [{"content": "c", "creator": {"create": {"node": {"userId": "u1"}}}}]

        response = authorize_create(
            snapshot, "Post", inputs, RequestContext(claims={"id": "u1"}), selection={"creator": {}},
        )

        assert response.ok
        assert response.data["createPosts"]["posts"] == [{"content": "c"}]
        assert response.events == []

    def test_events_only_with_subscriptions(self):
        snapshot = build_schema_snapshot(USER_POST_SDL, Features(subscriptions=True))
        inputs = [{"content": "c", "creator": {"create": {"node": {"userId": "u1"}}}}]

        response = authorize_create(snapshot, "Post", inputs, RequestContext(claims={"id": "u1"}))

        assert [(e.event, e.typename) for e in response.events] == [
            ("CREATE", "Post"),
            ("CREATE", "User"),
            ("CREATE_RELATIONSHIP", "Post"),
        ]
        assert response.events[2].relationship_field == "creator"
        assert response.events[2].related_typename == "User"

    def test_relationship_visible_from_both_ends(self):
        snapshot = build_schema_snapshot(USER_POST_SDL)
        inputs = [{"userId": "u1", "posts": {"create": [{"node": {"content": "c"}}]}}]

        response = authorize_create(
            snapshot, "User", inputs, RequestContext(claims={"id": "u1"}),
            selection={"posts": {"creator": {}}},
        )

        assert response.ok
        assert response.data["createUsers"]["info"]["nodesCreated"] == 2

    def test_connected_node_uses_where_values(self):
        snapshot = build_schema_snapshot(USER_POST_SDL)
        request = RequestContext(claims={"id": "u1"})

        def connect(user_id):
            inputs = [{"content": "c", "creator": {"connect": {"where": {"node": {"userId_EQ": user_id}}}}}]
            return authorize_create(snapshot, "Post", inputs, request, selection={"creator": {}})

        allowed = connect("u1")
        assert allowed.ok
        assert allowed.data["createPosts"]["info"] == {"nodesCreated": 1, "relationshipsCreated": 1}
        assert not connect("u2").ok

    def test_rejects_interfaces(self):
        snapshot = build_schema_snapshot(INTERFACE_RULES_SDL)

        with pytest.raises(ValueError):
            authorize_create(snapshot, "Owned", [{}], RequestContext(claims={}))
