"""
Runtime module - request-scoped state.
"""

from __future__ import annotations

from .context import RequestContext

__all__ = [
    "RequestContext",
]
