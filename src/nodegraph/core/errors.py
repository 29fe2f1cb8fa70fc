"""
Custom exceptions for the nodegraph system.

Build-time errors are aggregated: a single SchemaValidationError carries
every BuildError found in one pass. Request-time errors are translated into
GraphQL error entries by the auth package.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class BuildError:
    """Single schema build error."""
    entity: Optional[str]
    field: Optional[str]
    message: str

    def __str__(self) -> str:
        parts = []
        if self.entity:
            parts.append(self.entity)
        if self.field:
            parts.append(self.field)
        location = ".".join(parts) if parts else "global"
        return f"[{location}] {self.message}"


class NodeGraphError(Exception):
    """Base exception for all nodegraph errors."""
    pass


class SchemaValidationError(NodeGraphError):
    """Raised when the type definitions cannot be turned into a schema."""

    def __init__(self, errors: list[BuildError]):
        self.errors = list(errors)
        lines = "\n".join(f"  {e}" for e in self.errors)
        super().__init__(f"Schema validation failed with {len(self.errors)} error(s):\n{lines}")

    def error_messages(self) -> list[str]:
        """Get all error messages as strings."""
        return [str(e) for e in self.errors]


class RelationshipResolutionError(SchemaValidationError):
    """Raised when relationship declarations across implementers disagree."""

    def __init__(
        self,
        errors: list[BuildError],
        interface_field: Optional[str] = None,
        implementers: Optional[list[str]] = None,
    ):
        self.interface_field = interface_field
        self.implementers = list(implementers or [])
        super().__init__(errors)


class AuthorizationDenied(NodeGraphError):
    """Raised when an authorization rule rejects an operation."""

    code = "FORBIDDEN"

    def __init__(
        self,
        message: str = "Forbidden",
        entity: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        self.entity = entity
        self.operation = operation
        super().__init__(message)


class CallbackInvocationError(NodeGraphError):
    """Raised by the external callback collaborator for a computed field."""

    def __init__(self, callback: str, message: str):
        self.callback = callback
        super().__init__(f"Callback '{callback}' failed: {message}")


class ConfigError(NodeGraphError):
    """Raised when the project configuration is invalid."""
    pass
