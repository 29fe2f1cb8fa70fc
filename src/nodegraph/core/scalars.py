"""
Per scalar kind operator tables.

Everything the augmenter derives from a scalar field is looked up here:
filter operators, update operators, aggregate selections and aggregation
filters. Legacy field forms are described once, as LegacyAlias entries,
and applied uniformly by the augmenter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .defs import ScalarKind


# =============================================================================
# Legacy aliases
# =============================================================================


@dataclass(frozen=True)
class LegacyAlias:
    """A deprecated legacy field form and the canonical form replacing it."""
    legacy: str       # suffix or name of the legacy form, "" is the bare field
    canonical: str    # suffix or name of the canonical form
    semantics: str
    reason: str
    flag: str         # ExcludeDeprecatedFields attribute dropping the legacy form


IMPLICIT_EQUAL = LegacyAlias(
    legacy="",
    canonical="_EQ",
    semantics="equality filter",
    reason="Please use the explicit _EQ version",
    flag="implicit_equal_filters",
)
IMPLICIT_SET = LegacyAlias(
    legacy="",
    canonical="_SET",
    semantics="assignment",
    reason="Please use the explicit _SET field",
    flag="implicit_set",
)
TYPENAME_IN = LegacyAlias(
    legacy="typename_IN",
    canonical="typename",
    semantics="implementation filter",
    reason="The typename_IN filter is deprecated, please use the typename filter instead",
    flag="typename_in",
)
IMPLICIT_COUNT = LegacyAlias(
    legacy="count",
    canonical="count_EQ",
    semantics="count equality filter",
    reason="Please use the explicit _EQ version",
    flag="implicit_equal_filters",
)

LEGACY_ALIASES = (IMPLICIT_EQUAL, IMPLICIT_SET, TYPENAME_IN, IMPLICIT_COUNT)

# Deprecations that are not aliases of a canonical field.
ID_AGGREGATION_REASON = "aggregation of ID fields are deprecated and will be removed"
OPTIONS_REASON = (
    "Query options argument is deprecated, please use pagination arguments "
    "like limit, offset and sort instead."
)
DIRECTED_REASON = (
    "The directed argument is deprecated, and the direction of the field "
    "will be configured in the GraphQL server"
)
OVERWRITE_REASON = "The overwrite argument is deprecated and will be removed"


# =============================================================================
# Filter and update operators
# =============================================================================


@dataclass(frozen=True)
class Operator:
    """
    A suffix operator.

    shape tells how the operand type relates to the field type:
    - "field": same as the field, made nullable
    - "list": list of the field type (`_IN`)
    - "item": the element type of a list field
    - "int": always Int (`_POP`)
    """
    suffix: str
    shape: str = "field"


EQ = Operator("_EQ")
IN = Operator("_IN", "list")
ORDERING = (Operator("_GT"), Operator("_GTE"), Operator("_LT"), Operator("_LTE"))
STRING_MATCHING = (Operator("_CONTAINS"), Operator("_STARTS_WITH"), Operator("_ENDS_WITH"))
INCLUDES = Operator("_INCLUDES", "item")

SET = Operator("_SET")
INTEGER_MATH = (Operator("_INCREMENT"), Operator("_DECREMENT"))
FLOAT_MATH = (Operator("_ADD"), Operator("_SUBTRACT"), Operator("_MULTIPLY"), Operator("_DIVIDE"))
LIST_UPDATES = (Operator("_POP", "int"), Operator("_PUSH"))


def where_operators(kind: ScalarKind, is_list: bool = False) -> tuple[Operator, ...]:
    """Canonical filter operators for a field, in declaration order."""
    if is_list:
        return (EQ, INCLUDES)
    if kind.is_string_like:
        return (EQ, IN) + STRING_MATCHING
    if kind.is_numeric or kind.is_temporal:
        return (EQ, IN) + ORDERING
    if kind is ScalarKind.BOOLEAN:
        return (EQ,)
    return (EQ, IN)


def update_operators(kind: ScalarKind, is_list: bool = False) -> tuple[Operator, ...]:
    """Canonical update operators for a field, in declaration order."""
    if is_list:
        return (SET,) + LIST_UPDATES
    if kind.is_integer_like:
        return (SET,) + INTEGER_MATH
    if kind.is_float_like:
        return (SET,) + FLOAT_MATH
    return (SET,)


# =============================================================================
# Aggregations
# =============================================================================


@dataclass(frozen=True)
class AggregateShape:
    """Shared aggregate selection type of a scalar kind."""
    type_name: str
    fields: tuple[tuple[str, str], ...]
    deprecation_reason: Optional[str] = None


def aggregate_selection(kind: ScalarKind, is_list: bool = False) -> Optional[AggregateShape]:
    """Aggregate selection for a field, None if the kind is not aggregable."""
    if is_list:
        return None
    name = kind.value
    if kind is ScalarKind.ID:
        return AggregateShape(
            "IDAggregateSelection",
            (("longest", "ID"), ("shortest", "ID")),
            deprecation_reason=ID_AGGREGATION_REASON,
        )
    if kind is ScalarKind.STRING:
        return AggregateShape("StringAggregateSelection", (("longest", "String"), ("shortest", "String")))
    if kind is ScalarKind.INT:
        return AggregateShape(
            "IntAggregateSelection",
            (("average", "Float"), ("max", "Int"), ("min", "Int"), ("sum", "Int")),
        )
    if kind in (ScalarKind.FLOAT, ScalarKind.BIG_INT):
        return AggregateShape(
            f"{name}AggregateSelection",
            (("average", name), ("max", name), ("min", name), ("sum", name)),
        )
    if kind.is_temporal:
        return AggregateShape(f"{name}AggregateSelection", (("max", name), ("min", name)))
    return None


AGGREGATION_COMPARATORS = ("EQUAL", "GT", "GTE", "LT", "LTE")


def aggregation_filters(kind: ScalarKind, is_list: bool = False) -> tuple[tuple[str, str], ...]:
    """
    Aggregation filter operations for a field as (operation, operand type).

    Each operation expands into one input field per comparator, e.g.
    title_AVERAGE_LENGTH_EQUAL.
    """
    if is_list:
        return ()
    name = kind.value
    if kind is ScalarKind.STRING:
        return (("AVERAGE_LENGTH", "Float"), ("LONGEST_LENGTH", "Int"), ("SHORTEST_LENGTH", "Int"))
    if kind is ScalarKind.ID:
        return (("MAX", "ID"), ("MIN", "ID"))
    if kind is ScalarKind.INT:
        return (("AVERAGE", "Float"), ("MAX", "Int"), ("MIN", "Int"), ("SUM", "Int"))
    if kind in (ScalarKind.FLOAT, ScalarKind.BIG_INT):
        return (("AVERAGE", name), ("MAX", name), ("MIN", name), ("SUM", name))
    if kind is ScalarKind.DURATION:
        return (("AVERAGE", name), ("MAX", name), ("MIN", name))
    if kind.is_temporal:
        return (("MAX", name), ("MIN", name))
    return ()


# =============================================================================
# Scalar declarations
# =============================================================================


SCALAR_DESCRIPTIONS = {
    "BigInt": (
        "A BigInt value up to 64 bits in size, which can be a number or a string "
        "if used inline, or a string only if used as a variable. Always returned as a string."
    ),
    "DateTime": "A date and time, represented as an ISO-8601 string",
    "Date": "A date, represented as a 'yyyy-mm-dd' string",
    "Time": "A time, represented as an RFC3339 time string",
    "LocalTime": "A local time, represented as a time string without timezone information",
    "LocalDateTime": "A local datetime, represented as 'YYYY-MM-DDTHH:MM:SS'",
    "Duration": "A duration, represented as an ISO 8601 duration string",
}
