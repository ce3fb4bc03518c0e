"""
Value model for templates and environments.

Every node of a template (a "term") falls into exactly one TermKind:

- SCALAR: strings, numbers, None, enum members and any other plain value. Strings are never
  treated as sequences.
- SEQUENCE: list, tuple, set, frozenset.
- MAPPING: any collections.abc.Mapping.
- FUNCTION: plain functions, lambdas, bound methods, functools.partial, DependencyFunction.
  Classes and other arbitrary callables are scalars.
- OPAQUE: foreign objects that are never walked (polars frames, Opaque wrappers, registered types).
- REMOVE: the REMOVE sentinel ("drop this entry").

Also defines the reserved DEFAULTS key that introduces template-local defaults.

Notes:
    - Opaque values are compared by identity only; structural ``==`` on dataframes is never
      evaluated by the engine.
    - register_opaque_type extends the opaque set for the whole process.

Examples:
    >>> import polars as pl
    >>> from plotflow.core.values import TermKind, term_kind, REMOVE
    >>> term_kind("Title") is TermKind.SCALAR
    True
    >>> term_kind(pl.DataFrame({"x": [1]})) is TermKind.OPAQUE
    True
    >>> term_kind(REMOVE) is TermKind.REMOVE
    True
"""

from __future__ import annotations

import functools
import types
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final

import polars as pl

__all__ = [
    "TermKind",
    "REMOVE",
    "DEFAULTS",
    "MISSING",
    "Opaque",
    "term_kind",
    "is_collection",
    "is_function",
    "is_opaque",
    "is_hashable",
    "same_term",
    "FunctionTerm",
    "register_opaque_type",
    "opaque_types",
]


class TermKind(str, Enum):
    SCALAR = "scalar"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    FUNCTION = "function"
    OPAQUE = "opaque"
    REMOVE = "remove"


class _Marker:
    """Named singleton used for sentinels; hashable by identity."""

    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name

    def __reduce__(self) -> str:
        return self._name


REMOVE: Final = _Marker("REMOVE")
DEFAULTS: Final = _Marker("DEFAULTS")
# Internal "no binding" marker; distinct from None, which is an ordinary value.
MISSING: Final = _Marker("MISSING")


@dataclass(frozen=True, eq=False)
class Opaque:
    """
    Wrapper marking an arbitrary object as opaque to the engine.

    Attributes:
        value (Any): The wrapped object; returned untouched wherever the wrapper lands.
    """

    value: Any

    def __repr__(self) -> str:
        return f"Opaque({type(self.value).__name__})"


_SEQUENCE_TYPES: Final = (list, tuple, set, frozenset)
_FUNCTION_TYPES: Final = (
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    functools.partial,
)

_opaque_types: tuple[type, ...] = (Opaque, pl.DataFrame, pl.LazyFrame, pl.Series)


def register_opaque_type(cls: type) -> type:
    """
    Register a type whose instances must never be traversed or compared structurally.

    Args:
        cls (type): Type to add to the opaque set.

    Returns:
        type: ``cls`` unchanged, so this can be used as a class decorator.
    """
    global _opaque_types
    if cls not in _opaque_types:
        _opaque_types = _opaque_types + (cls,)
    return cls


def opaque_types() -> tuple[type, ...]:
    """Return the currently registered opaque types."""
    return _opaque_types


def is_opaque(x: Any) -> bool:
    return isinstance(x, _opaque_types)


def is_function(x: Any) -> bool:
    # DependencyFunction subclasses FunctionTerm.
    return isinstance(x, _FUNCTION_TYPES) or isinstance(x, FunctionTerm)


def is_collection(x: Any) -> bool:
    if is_opaque(x):
        return False
    return isinstance(x, Mapping) or isinstance(x, _SEQUENCE_TYPES)


def is_hashable(x: Any) -> bool:
    try:
        hash(x)
    except TypeError:
        return False
    return True


def term_kind(x: Any) -> TermKind:
    """
    Classify a value into its TermKind.

    Args:
        x (Any): Any value appearing in a template or environment.

    Returns:
        TermKind: The single kind the engine treats ``x`` as.
    """
    if x is REMOVE:
        return TermKind.REMOVE
    if is_opaque(x):
        return TermKind.OPAQUE
    if is_function(x):
        return TermKind.FUNCTION
    if isinstance(x, Mapping):
        return TermKind.MAPPING
    if isinstance(x, _SEQUENCE_TYPES):
        return TermKind.SEQUENCE
    return TermKind.SCALAR


def same_term(a: Any, b: Any) -> bool:
    """
    Fixpoint equality: identity for functions and opaque values, ``==`` between values of the same
    type for everything else. Values whose ``==`` has no truth value compare by identity.

    Args:
        a (Any): Current term.
        b (Any): Candidate substitution.

    Returns:
        bool: True if substituting ``b`` for ``a`` would change nothing.
    """
    if a is b:
        return True
    if type(a) is not type(b):
        return False
    if term_kind(a) in (TermKind.OPAQUE, TermKind.FUNCTION, TermKind.REMOVE):
        return False
    try:
        return bool(a == b)
    except (TypeError, ValueError):
        # Element-wise __eq__ (polars expressions, arrays) has no truth value.
        return False


class FunctionTerm:
    """
    Base for callable objects the engine must treat as FUNCTION terms.

    Subclasses implement ``__call__(env)``. The engine may call ``invoke(env, session)`` instead
    to thread its session explicitly.
    """

    __slots__ = ()

    def __call__(self, env: Mapping[Any, Any]) -> Any:  # pragma: no cover - abstract
        raise NotImplementedError

    def invoke(self, env: Mapping[Any, Any], session: Any) -> Any:
        return self(env)
