"""
SDL printer for the derived type system.

Output is deterministic: types, fields, arguments, enum values, union members
and implemented interfaces are sorted by name, so the same entity graph and
features always print byte-identical SDL. Generated types unreachable from
the root operation types are pruned; user enums and scalars are kept.

Usage:
    from nodegraph.core.printer import print_schema

    sdl = print_schema(types, directive_definitions=graph.directive_definitions)
"""

from __future__ import annotations

import json
import logging
import re
from typing import Iterable, Optional

from .defs import (
    DerivedArgument,
    DerivedField,
    DerivedType,
    DerivedTypeKind,
    EnumValueDef,
    TypeShape,
)

logger = logging.getLogger(__name__)


ROOT_OPERATIONS = (("query", "Query"), ("mutation", "Mutation"), ("subscription", "Subscription"))
DEFAULT_DEPRECATION_REASON = "No longer supported"
SINGLE_LINE_DESCRIPTION_LIMIT = 70
INDENT = "  "

_NAMED_TYPE_PATTERN = re.compile(r"[_A-Za-z][_0-9A-Za-z]*")


def named_type(type_ref: str) -> str:
    """Strip list and non-null wrappers: [Movie!]! -> Movie"""
    match = _NAMED_TYPE_PATTERN.search(type_ref)
    return match.group(0) if match else type_ref


# =============================================================================
# Reachability
# =============================================================================


def reachable_types(types: dict[str, DerivedType]) -> set[str]:
    """
    Names of types reachable from the root operation types.

    Objects implementing a reachable interface count as reachable, as do
    pass-through user enums and scalars.
    """
    implementers: dict[str, list[str]] = {}
    for t in types.values():
        for interface in t.interfaces:
            implementers.setdefault(interface, []).append(t.name)

    pending = [name for _, name in ROOT_OPERATIONS if name in types]
    pending += [
        t.name for t in types.values()
        if t.kind is DerivedTypeKind.PASSTHROUGH and t.shape in (TypeShape.ENUM, TypeShape.SCALAR)
    ]
    seen: set[str] = set()
    while pending:
        name = pending.pop()
        if name in seen or name not in types:
            continue
        seen.add(name)
        t = types[name]
        for f in t.fields:
            pending.append(named_type(f.type_ref))
            pending.extend(named_type(a.type_ref) for a in f.args)
        pending.extend(t.interfaces)
        pending.extend(t.members)
        pending.extend(implementers.get(name, ()))
    return seen


# =============================================================================
# Printing
# =============================================================================


class SDLPrinter:
    """
    Prints derived types as SDL.

    Descriptions up to 70 characters without line breaks print on one
    line, longer ones as an indented block string.
    """

    def __init__(
        self,
        types: dict[str, DerivedType],
        directive_definitions: Iterable[str] = (),
    ):
        self.types = types
        self.directive_definitions = tuple(directive_definitions)

    def print(self) -> str:
        names = sorted(reachable_types(self.types))
        pruned = len(self.types) - len(names)
        if pruned:
            logger.debug(f"Pruned {pruned} unreachable type(s)")

        blocks = [self._print_schema_definition()]
        blocks.extend(d.strip() for d in sorted(self.directive_definitions))
        blocks.extend(self._print_type(self.types[name]) for name in names)
        return "\n\n".join(b for b in blocks if b) + "\n"

    def _print_schema_definition(self) -> str:
        lines = [
            f"{INDENT}{operation}: {name}"
            for operation, name in ROOT_OPERATIONS
            if name in self.types
        ]
        if not lines:
            return ""
        return "schema {\n" + "\n".join(lines) + "\n}"

    def _print_type(self, t: DerivedType) -> str:
        header = self._print_description(t.description, "")
        directives = "".join(f" {d}" for d in t.directives)

        if t.shape is TypeShape.SCALAR:
            return f"{header}scalar {t.name}{directives}"

        if t.shape is TypeShape.UNION:
            members = " | ".join(sorted(t.members))
            return f"{header}union {t.name}{directives} = {members}"

        if t.shape is TypeShape.ENUM:
            values = "\n".join(self._print_enum_value(v) for v in sorted(t.values, key=lambda v: v.name))
            return f"{header}enum {t.name}{directives} {{\n{values}\n}}"

        implements = ""
        if t.interfaces:
            implements = " implements " + " & ".join(sorted(t.interfaces))
        fields = "\n".join(
            self._print_field(f, t.shape is TypeShape.INPUT)
            for f in sorted(t.fields, key=lambda f: f.name)
        )
        return f"{header}{t.shape.value} {t.name}{implements}{directives} {{\n{fields}\n}}"

    def _print_enum_value(self, value: EnumValueDef) -> str:
        description = self._print_description(value.description, INDENT)
        return f"{description}{INDENT}{value.name}{self._print_deprecated(value.deprecation_reason)}"

    def _print_field(self, f: DerivedField, is_input: bool) -> str:
        description = self._print_description(f.description, INDENT)
        line = f"{INDENT}{f.name}{self._print_args(f.args)}: {f.type_ref}"
        if is_input and f.default is not None:
            line += f" = {f.default}"
        line += self._print_deprecated(f.deprecation_reason)
        line += "".join(f" {d}" for d in f.directives)
        return f"{description}{line}"

    def _print_args(self, args: tuple[DerivedArgument, ...]) -> str:
        if not args:
            return ""
        ordered = sorted(args, key=lambda a: a.name)
        if not any(a.description for a in ordered):
            return "(" + ", ".join(self._print_arg(a) for a in ordered) + ")"
        indent = INDENT * 2
        lines = [
            f"{self._print_description(a.description, indent)}{indent}{self._print_arg(a)}"
            for a in ordered
        ]
        return "(\n" + "\n".join(lines) + f"\n{INDENT})"

    def _print_arg(self, arg: DerivedArgument) -> str:
        text = f"{arg.name}: {arg.type_ref}"
        if arg.default is not None:
            text += f" = {arg.default}"
        return text + self._print_deprecated(arg.deprecation_reason)

    @staticmethod
    def _print_deprecated(reason: Optional[str]) -> str:
        if reason is None:
            return ""
        if reason == DEFAULT_DEPRECATION_REASON:
            return " @deprecated"
        return f" @deprecated(reason: {json.dumps(reason)})"

    @staticmethod
    def _print_description(description: Optional[str], indent: str) -> str:
        if not description:
            return ""
        escaped = description.replace('"""', '\\"""')
        if len(escaped) <= SINGLE_LINE_DESCRIPTION_LIMIT and "\n" not in escaped and not escaped.endswith('"'):
            return f'{indent}"""{escaped}"""\n'
        body = "\n".join(f"{indent}{line}" if line else "" for line in escaped.split("\n"))
        return f'{indent}"""\n{body}\n{indent}"""\n'


def print_schema(
    types: dict[str, DerivedType],
    directive_definitions: Iterable[str] = (),
) -> str:
    """Convenience function to print derived types as SDL."""
    return SDLPrinter(types, directive_definitions).print()
