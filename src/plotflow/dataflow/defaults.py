"""
Process-wide default bindings and per-key post-processing hooks.

Bindings registered here sit beneath everything else at the root of every evaluation that runs
with ``DataflowSettings.use_defaults`` enabled. A typical use is declaring optional template
parameters as REMOVE once, so that templates stay lean unless a caller supplies a value.

A subkey function registered for a key post-processes every substitution of that key:
``fn(env, key, value)`` receives the environment, the key being resolved and the value it was
about to be replaced by (after any function call), and returns the value to use instead.

Examples:
    >>> from plotflow import REMOVE, transform
    >>> from plotflow.dataflow.defaults import register_defaults, reset_defaults
    >>> register_defaults(Subtitle=REMOVE)
    >>> transform({"title": "Title", "subtitle": "Subtitle"}, "Title", "Sales")
    {'title': 'Sales'}
    >>> reset_defaults()
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

__all__ = [
    "register_defaults",
    "get_defaults",
    "reset_defaults",
    "register_subkey_fn",
    "subkey_fn",
    "reset_subkey_fns",
]

SubkeyFn = Callable[[Mapping[Any, Any], Any, Any], Any]

_GLOBAL_DEFAULTS: dict[Any, Any] = {}
_SUBKEY_FNS: dict[Any, SubkeyFn] = {}


def register_defaults(mapping: Mapping[Any, Any] | None = None, **bindings: Any) -> None:
    """Add or replace global default bindings (mapping form for non-identifier keys)."""
    if mapping:
        _GLOBAL_DEFAULTS.update(mapping)
    _GLOBAL_DEFAULTS.update(bindings)


def get_defaults() -> dict[Any, Any]:
    """Return a copy of the registered global defaults."""
    return dict(_GLOBAL_DEFAULTS)


def reset_defaults() -> None:
    _GLOBAL_DEFAULTS.clear()


def register_subkey_fn(key: Any, fn: SubkeyFn) -> None:
    """
    Register ``fn(env, key, value)`` to post-process every substitution of ``key``.

    Args:
        key (Any): Hashable key whose substitutions are rewritten.
        fn (Callable): Receives the current environment, the key and the candidate value; its
            return value replaces the candidate.

    Examples:
        >>> from plotflow import transform
        >>> from plotflow.dataflow.defaults import register_subkey_fn, reset_subkey_fns
        >>> register_subkey_fn("Title", lambda env, k, v: v.upper())
        >>> transform({"title": "Title"}, "Title", "sales")
        {'title': 'SALES'}
        >>> reset_subkey_fns()
    """
    _SUBKEY_FNS[key] = fn


def subkey_fn(key: Any) -> SubkeyFn | None:
    """Return the hook registered for ``key``, if any."""
    if not _SUBKEY_FNS:
        return None
    try:
        return _SUBKEY_FNS.get(key)
    except TypeError:
        return None


def reset_subkey_fns() -> None:
    _SUBKEY_FNS.clear()
