"""
Structural freezing and canonical digests for terms and environments.

Provides the equality policy used by cache keys: two environments are "the same" iff their frozen
forms are equal. Freezing maps every term onto a hashable value:

- Mapping -> ("map", frozenset of (frozen key, frozen value))
- list, tuple -> (type, tuple of frozen items)
- set, frozenset -> (type, frozenset of frozen items)
- plain scalars (str, bytes, numbers, bool, None, enum members, dates) -> (type, value)
- everything else (functions, opaque values, sentinels, foreign objects) -> an identity wrapper
  (equal only to itself)

Digests are SHA-256 over a canonical JSON rendering (sort_keys=True, compact separators,
ensure_ascii=False) and exist for diagnostics such as debug logs; they are not used as cache keys.

Notes:
    - Values are tagged with their type, so ``1``, ``1.0`` and ``True`` (or ``[x]`` and ``(x,)``)
      never share a frozen form; key order in mappings never matters.
    - Foreign objects never have their ``__eq__`` invoked, so types with element-wise equality
      (polars expressions) are safe inside environments.
    - Identity wrappers hold a strong reference, so an id can never be recycled while a frozen
      key that mentions it is alive.
"""

from __future__ import annotations

import datetime as dt
import hashlib
import json
from collections.abc import Mapping
from enum import Enum
from typing import Any

from .values import is_opaque

__all__ = [
    "freeze",
    "json_dumps_canonical",
    "to_jsonable",
    "term_digest",
]


_PLAIN_SCALARS = (str, bytes, int, float, complex, Enum, dt.date, dt.time, dt.timedelta)


class _Identity:
    """Hashable stand-in for an object that must be compared by identity."""

    __slots__ = ("obj",)

    def __init__(self, obj: Any) -> None:
        self.obj = obj

    def __hash__(self) -> int:
        return id(self.obj)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _Identity) and other.obj is self.obj

    def __repr__(self) -> str:
        return f"<{type(self.obj).__name__}@{id(self.obj):x}>"


def freeze(term: Any) -> Any:
    """
    Convert a term into a hashable value with structural equality.

    Args:
        term (Any): Any template or environment value.

    Returns:
        Any: Hashable frozen form.
    """
    if is_opaque(term):
        return _Identity(term)
    if isinstance(term, Mapping):
        return ("map", frozenset((freeze(k), freeze(v)) for k, v in term.items()))
    if isinstance(term, (list, tuple)):
        return (type(term), tuple(freeze(v) for v in term))
    if isinstance(term, (set, frozenset)):
        return (type(term), frozenset(freeze(v) for v in term))
    if term is None or isinstance(term, _PLAIN_SCALARS):
        return (type(term), term)
    return _Identity(term)


def json_dumps_canonical(obj: Any) -> str:
    """
    Serialize an object to a canonical JSON string.

    Args:
        obj (Any): JSON-serializable object.

    Returns:
        str: Canonical JSON string with sort_keys=True, compact separators,
        and ensure_ascii=False.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def to_jsonable(term: Any) -> Any:
    """
    Render a term as JSON-compatible data for digests and diagnostics.

    Mapping keys become strings (``repr`` for non-strings); sets are sorted by their rendering;
    values JSON cannot express are rendered as ``<TypeName@id>``.
    """
    if is_opaque(term):
        return repr(_Identity(term))
    if isinstance(term, Mapping):
        return {
            (k if isinstance(k, str) else repr(k)): to_jsonable(v) for k, v in term.items()
        }
    if isinstance(term, (list, tuple)):
        return [to_jsonable(v) for v in term]
    if isinstance(term, (set, frozenset)):
        return sorted((to_jsonable(v) for v in term), key=json_dumps_canonical)
    if term is None or isinstance(term, (bool, int, float, str)):
        return term
    return repr(_Identity(term))


def _sha256_hexdigest(s: str) -> str:
    """Compute SHA-256 hex digest of a UTF-8 string."""
    h = hashlib.sha256()
    h.update(s.encode("utf-8"))
    return h.hexdigest()


def term_digest(term: Any) -> str:
    """
    Compute a stable SHA-256 digest of a term's canonical JSON rendering.

    Args:
        term (Any): Term or environment to digest.

    Returns:
        str: Hex digest; re-ordering mapping keys does not change it.

    Examples:
        >>> from plotflow.core.hashing import term_digest
        >>> term_digest({"a": 1, "b": [1, 2]}) == term_digest({"b": [1, 2], "a": 1})
        True
    """
    return _sha256_hexdigest(json_dumps_canonical(to_jsonable(term)))
