"""
Exception types raised by the plotflow dataflow engine.

Provides typed exceptions for engine-level failures:
- DataflowError as the common base for everything the engine raises itself.
- CyclicDependency when a key is re-entered while its own resolution is in progress.
- TemplateError for malformed templates (e.g., a DEFAULTS entry that is not a mapping).

Notes:
    - Unresolved keys are not errors: they resolve to themselves (fixpoint).
    - Exceptions raised inside user-supplied functions propagate unmodified; the engine never
      wraps them in these types.
    - This module uses only the Python standard library and has no side effects.

Examples:
    Catch a cycle and inspect the offending chain.

    >>> from plotflow.core.errors import CyclicDependency
    >>> err = CyclicDependency(("A", "B", "A"))
    >>> err.chain
    ('A', 'B', 'A')
    >>> "A -> B -> A" in str(err)
    True
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable

__all__ = [
    "DataflowError",
    "CyclicDependency",
    "TemplateError",
]


class DataflowError(Exception):
    """Base class for errors raised by the dataflow engine itself."""


class CyclicDependency(DataflowError):
    """
    A key was requested again while its own resolution was still in progress.

    Attributes:
        chain (tuple[Hashable, ...]): Keys in resolution order; the re-entered key appears
            both where the cycle starts and as the final element.
    """

    def __init__(self, chain: Iterable[Hashable]) -> None:
        self.chain = tuple(chain)
        rendered = " -> ".join(repr(k) if not isinstance(k, str) else k for k in self.chain)
        super().__init__(f"cyclic dependency: {rendered}")


class TemplateError(DataflowError, ValueError):
    """Malformed template structure (e.g., DEFAULTS bound to a non-mapping)."""
