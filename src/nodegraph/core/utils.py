"""
Utility functions for nodegraph naming.

Includes:
- Case conversion (camelCase <-> PascalCase)
- Simple English pluralization for root fields and connection types
"""

from __future__ import annotations

import re


# =============================================================================
# Case conversion utilities
# =============================================================================

_LEADING_UPPER_PATTERN = re.compile(r'^[A-Z]+(?=[A-Z][a-z]|$)|^[A-Z]')


def upper_first(name: str) -> str:
    """
    Capitalize the first character.

    Examples:
        actors -> Actors
        likesConnection -> LikesConnection
    """
    return name[:1].upper() + name[1:]


def lower_first(name: str) -> str:
    """
    Lower the leading capital run of a type name.

    Examples:
        Movie -> movie
        HTTPRequest -> httpRequest
        URL -> url
    """
    return _LEADING_UPPER_PATTERN.sub(lambda m: m.group(0).lower(), name, count=1)


# =============================================================================
# Pluralization
# =============================================================================

_VOWELS = frozenset("aeiou")
_SIBILANT_ENDINGS = ("x", "z", "ch", "sh")


def pluralize(name: str) -> str:
    """
    Pluralize a type name with fixed English rules.

    Irregular plurals are not special-cased, so the result is predictable
    from the name alone.

    Examples:
        Movie -> Movies
        Category -> Categories
        Day -> Days
        Series -> Series
        Box -> Boxes
        Person -> Persons
    """
    if not name:
        return name
    lower = name.lower()
    if lower.endswith("s"):
        return name
    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in _VOWELS:
        return name[:-1] + "ies"
    if lower.endswith(_SIBILANT_ENDINGS):
        return name + "es"
    return name + "s"


def plural_field(type_name: str) -> str:
    """
    Root field name for a type.

    Examples:
        Movie -> movies
        Series -> series
    """
    return lower_first(pluralize(type_name))


def plural_type(type_name: str) -> str:
    """
    Plural PascalCase form used inside derived type names.

    Examples:
        Movie -> Movies (MoviesConnection, CreateMoviesMutationResponse)
    """
    return upper_first(pluralize(type_name))
