"""
Request context for authorization.

Carries the per-request claims and the extra context values an
authorization predicate can reference.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class RequestContext:
    """
    Represents the caller of one request.

    claims is None for unauthenticated requests; `$jwt.<path>` references
    resolve against it. `$context.<path>` references resolve against values.
    """
    claims: Optional[dict[str, Any]] = None
    values: dict[str, Any] = field(default_factory=dict)

    @property
    def is_authenticated(self) -> bool:
        return self.claims is not None

    @classmethod
    def anonymous(cls, **values: Any) -> "RequestContext":
        return cls(claims=None, values=dict(values))
