"""
nodegraph - schema augmentation and authorization for graph data APIs.

Compiles GraphQL type definitions annotated with directives into:
- a complete query/mutation (and optionally subscription) API, printed as
  deterministic SDL
- per-entity authorization rules evaluated against request claims

Usage:
    from nodegraph import Features, build_schema_snapshot

    snapshot = build_schema_snapshot('''
        type Movie @node {
            title: String!
            actors: [Actor!]! @relationship(type: "ACTED_IN", direction: IN)
        }
        type Actor @node { name: String! }
    ''', Features(subscriptions=True))

    print(snapshot.sdl)
"""

from __future__ import annotations

from .core import (
    AuthorizationDenied,
    BuildError,
    CallbackInvocationError,
    ConfigError,
    EntityGraph,
    ExcludeDeprecatedFields,
    Features,
    NodeGraphError,
    RelationshipResolutionError,
    SchemaHolder,
    SchemaSnapshot,
    SchemaValidationError,
    build_schema_snapshot,
    build_type_model,
    resolve_relationships,
)
from .auth import (
    MutationResponse,
    Operation,
    authorize,
    authorize_create,
    compile_rules,
    evaluate,
    filter_nodes,
)
from .runtime import RequestContext

__version__ = "0.1.0"

__all__ = [
    # Build
    "build_schema_snapshot",
    "build_type_model",
    "resolve_relationships",
    "compile_rules",
    "EntityGraph",
    "Features",
    "ExcludeDeprecatedFields",
    "SchemaHolder",
    "SchemaSnapshot",
    # Authorization
    "Operation",
    "RequestContext",
    "MutationResponse",
    "authorize",
    "authorize_create",
    "evaluate",
    "filter_nodes",
    # Errors
    "NodeGraphError",
    "BuildError",
    "SchemaValidationError",
    "RelationshipResolutionError",
    "AuthorizationDenied",
    "CallbackInvocationError",
    "ConfigError",
]
