"""
nodegraph CLI - Command line tools for building schemas.
"""

from __future__ import annotations

from .main import main, app

__all__ = ["main", "app"]
