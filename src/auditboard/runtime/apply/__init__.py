# src/auditboard/runtime/apply/__init__.py
"""Domain-specific apply modules.

Each module implements deterministic board state transitions for a subset of
action types and exposes one router, `apply_<domain>(ctx, env)`, that returns
a meta dict when it claims the action and None otherwise.
"""

from __future__ import annotations

__all__ = [
    "config",
    "stake",
    "candidates",
    "voting",
    "tenure",
]
