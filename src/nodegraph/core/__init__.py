"""
Core module - type model, relationship resolution and schema generation.
"""

from __future__ import annotations

from .defs import (
    Cardinality,
    DerivedArgument,
    DerivedField,
    DerivedType,
    DerivedTypeKind,
    Direction,
    Entity,
    EntityGraph,
    Field,
    FieldRole,
    NoProperties,
    PerImplementation,
    PropertiesBinding,
    PropertiesType,
    RelationshipEdge,
    ScalarKind,
    Shared,
    TargetKind,
)
from .errors import (
    AuthorizationDenied,
    BuildError,
    CallbackInvocationError,
    ConfigError,
    NodeGraphError,
    RelationshipResolutionError,
    SchemaValidationError,
)
from .features import ExcludeDeprecatedFields, Features, PopulatedByFeature
from .utils import lower_first, plural_field, plural_type, pluralize, upper_first
from .registry import TypeRegistry, build_type_model
from .relationships import RelationshipResolver, resolve_relationships
from .augmenter import SchemaAugmenter
from .printer import SDLPrinter, print_schema
from .schema import SchemaHolder, SchemaSnapshot, build_schema_snapshot

__all__ = [
    # Definitions
    "Cardinality",
    "DerivedArgument",
    "DerivedField",
    "DerivedType",
    "DerivedTypeKind",
    "Direction",
    "Entity",
    "EntityGraph",
    "Field",
    "FieldRole",
    "NoProperties",
    "PerImplementation",
    "PropertiesBinding",
    "PropertiesType",
    "RelationshipEdge",
    "ScalarKind",
    "Shared",
    "TargetKind",
    # Errors
    "AuthorizationDenied",
    "BuildError",
    "CallbackInvocationError",
    "ConfigError",
    "NodeGraphError",
    "RelationshipResolutionError",
    "SchemaValidationError",
    # Features
    "ExcludeDeprecatedFields",
    "Features",
    "PopulatedByFeature",
    # Naming
    "lower_first",
    "plural_field",
    "plural_type",
    "pluralize",
    "upper_first",
    # Build pipeline
    "TypeRegistry",
    "build_type_model",
    "RelationshipResolver",
    "resolve_relationships",
    "SchemaAugmenter",
    "SDLPrinter",
    "print_schema",
    "SchemaHolder",
    "SchemaSnapshot",
    "build_schema_snapshot",
]
