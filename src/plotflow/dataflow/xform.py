"""
Template substitution engine.

`transform` rewrites a template (any nested data) against an environment until every reachable
subterm is a fixpoint:

1. A mapping carrying a DEFAULTS entry drops it and evaluates its remaining fields in a local
   environment: ambient bindings < template defaults < user overrides.
2. Collections are rewritten element-wise; REMOVE results are dropped and a collection left
   empty becomes REMOVE itself (unless ``prune_empty`` is off), cascading upward. The root of
   an evaluation is returned empty rather than as REMOVE.
3. Any other term is resolved by repeated lookup. A function found along the way (or sitting
   in the template itself) is called with the whole current environment, and a subkey function
   registered for the key (see plotflow.dataflow.defaults) post-processes the result. The chain
   stops at a value that maps to itself or is unbound, at an opaque value, or at a collection
   (which is rewritten per step 2).

Every evaluation runs in a Session that carries the cache handle, the settings and the stack of
keys whose resolution is in progress. Re-entering a (key, environment) pair that is still on the
stack raises CyclicDependency.

Examples:
    >>> from plotflow.dataflow.xform import transform
    >>> transform({"a": "B", "c": "D"}, {"B": "C", "C": 10, "D": 20})
    {'a': 10, 'c': 20}
    >>> transform({"outer": {"middle": {"inner": []}}})
    {}
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from plotflow.core.errors import CyclicDependency, TemplateError
from plotflow.core.values import (
    DEFAULTS,
    MISSING,
    REMOVE,
    FunctionTerm,
    TermKind,
    is_function,
    same_term,
    term_kind,
)

from .cache import Cache, activate, active_cache
from .config import DataflowSettings, current_settings
from .defaults import get_defaults, subkey_fn
from .environment import Environment

__all__ = [
    "Session",
    "transform",
    "resolve_cached",
]

logger = logging.getLogger(__name__)

_COLLECTIONS = (TermKind.MAPPING, TermKind.SEQUENCE)


def _rebuild(coll: Any, items: list[Any]) -> Any:
    if isinstance(coll, tuple):
        return tuple(items)
    if isinstance(coll, (set, frozenset)):
        # Elements that resolved to lists or mappings cannot live in a set.
        try:
            return frozenset(items) if isinstance(coll, frozenset) else set(items)
        except TypeError:
            return items
    return items


def _empty_like(term: Any) -> Any:
    if isinstance(term, Mapping):
        return {}
    return _rebuild(term, [])


class Session:
    """
    State of one evaluation: cache handle, settings, in-progress resolution stack.

    Args:
        cache (Cache): Memo table for dependency resolution.
        settings (DataflowSettings): Engine switches.
    """

    def __init__(self, cache: Cache, settings: DataflowSettings) -> None:
        self.cache = cache
        self.settings = settings
        self._stack: list[tuple[Any, Environment]] = []
        self._in_progress: set[tuple[Any, Environment]] = set()

    @classmethod
    def current(cls, settings: DataflowSettings | None = None) -> Session:
        """Session over the active cache, or over a private cache when no scope is active."""
        cache = active_cache()
        return cls(
            cache if cache is not None else Cache(),
            settings if settings is not None else current_settings(),
        )

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def transform(self, term: Any, env: Environment) -> Any:
        kind = term_kind(term)
        if kind is TermKind.OPAQUE or kind is TermKind.REMOVE:
            return term
        if kind in _COLLECTIONS:
            return self.walk(term, env)
        return self.resolve(term, env)

    def walk(self, coll: Any, env: Environment) -> Any:
        if isinstance(coll, Mapping):
            if DEFAULTS in coll:
                defaults = coll[DEFAULTS]
                if not isinstance(defaults, Mapping):
                    raise TemplateError(
                        f"DEFAULTS must be a mapping, got {type(defaults).__name__}"
                    )
                env = env.merge(defaults)
            out: Any = {}
            for k, v in coll.items():
                if k is DEFAULTS:
                    continue
                xv = self.transform(v, env)
                if xv is not REMOVE:
                    out[k] = xv
        else:
            items = (self.transform(v, env) for v in coll)
            out = _rebuild(coll, [xv for xv in items if xv is not REMOVE])
        if not out and self.settings.prune_empty:
            return REMOVE
        return out

    # ------------------------------------------------------------------
    # Single-term resolution
    # ------------------------------------------------------------------

    def resolve(self, v: Any, env: Environment) -> Any:
        """Follow the lookup chain of a non-collection term to its fixpoint."""
        entered = 0
        try:
            while True:
                sub = env.lookup(v)
                if sub is MISSING:
                    sub = v
                elif self.settings.detect_cycles and not same_term(v, sub):
                    self._enter(v, env)
                    entered += 1
                if is_function(sub):
                    sub = self.call(sub, env)
                hook = subkey_fn(v)
                if hook is not None:
                    sub = hook(env, v, sub)
                if same_term(v, sub):
                    return v
                kind = term_kind(sub)
                if kind is TermKind.OPAQUE:
                    return sub
                if kind in _COLLECTIONS:
                    return self.walk(sub, env)
                v = sub
        finally:
            if entered:
                self._leave(entered)

    def call(self, fn: Any, env: Environment) -> Any:
        if isinstance(fn, FunctionTerm):
            return fn.invoke(env, self)
        return fn(env)

    def resolve_cached(self, key: Any, env: Mapping[Any, Any]) -> Any:
        """
        Resolve ``key`` under ``env`` at most once per session.

        Args:
            key (Any): Key to resolve.
            env (Mapping): Environment (plain mappings are wrapped without overrides).

        Returns:
            Any: The memoized or freshly computed resolution.
        """
        env = Environment.coerce(env)
        value = self.cache.get(key, env)
        debug = logger.isEnabledFor(logging.DEBUG)
        if value is not MISSING:
            if debug:
                logger.debug("cache hit %r env=%s", key, env.digest())
            return value
        if debug:
            logger.debug("cache miss %r env=%s", key, env.digest())
        return self.cache.store(key, env, self.transform(key, env))

    # ------------------------------------------------------------------
    # Cycle tracking
    # ------------------------------------------------------------------

    def _enter(self, key: Any, env: Environment) -> None:
        slot = (key, env)
        if slot in self._in_progress:
            start = self._stack.index(slot)
            chain = [k for k, _ in self._stack[start:]] + [key]
            logger.debug("cycle detected: %r", chain)
            raise CyclicDependency(chain)
        self._stack.append(slot)
        self._in_progress.add(slot)

    def _leave(self, n: int) -> None:
        for _ in range(n):
            self._in_progress.discard(self._stack.pop())


def _user_bindings(args: tuple[Any, ...]) -> Mapping[Any, Any]:
    if not args:
        return {}
    if len(args) == 1:
        if isinstance(args[0], Mapping):
            return args[0]
        raise TypeError(
            f"transform() expects a mapping or key/value pairs, got {type(args[0]).__name__}"
        )
    if len(args) % 2:
        raise TypeError("transform() key/value overrides must come in pairs")
    return dict(zip(args[::2], args[1::2]))


def transform(
    term: Any,
    *args: Any,
    cache: Cache | None = None,
    settings: DataflowSettings | None = None,
) -> Any:
    """
    Rewrite ``term`` against user bindings until it reaches a fixpoint.

    Call forms:
        transform(term)
        transform(term, {"Key": value, ...})
        transform(term, "Key", value, "Other", value, ...)

    Both binding forms are user overrides: they outrank template DEFAULTS at every depth.

    Args:
        term (Any): Template to rewrite.
        *args: Nothing, one mapping (or Environment), or key/value pairs.
        cache (Cache | None): Explicit cache; defaults to the active clean_cache() scope, else a
            private cache for this call. The cache in use is active for the whole evaluation.
        settings (DataflowSettings | None): Engine switches; defaults to current_settings()
            (environment > TOML > built-in defaults).

    Returns:
        Any: The rewritten term. A collection root emptied by pruning is returned empty.

    Raises:
        CyclicDependency: A key's resolution re-entered itself (when detect_cycles is on).
        TemplateError: A DEFAULTS entry is not a mapping.
        TypeError: Malformed binding arguments.

    Examples:
        >>> from plotflow import DEFAULTS, transform
        >>> t = {"section": {"heading": "Heading", DEFAULTS: {"Heading": "Default"}}}
        >>> transform(t, "Heading", "User")
        {'section': {'heading': 'User'}}
    """
    settings = settings if settings is not None else current_settings()
    user = _user_bindings(args)
    if isinstance(user, Environment):
        env = user
    else:
        env = Environment.for_user(user, get_defaults() if settings.use_defaults else None)
    if cache is None:
        cache = active_cache()
    session = Session(cache if cache is not None else Cache(), settings)
    with activate(session.cache):
        result = session.transform(term, env)
    if result is REMOVE and term_kind(term) in _COLLECTIONS:
        return _empty_like(term)
    return result


def resolve_cached(
    key: Any,
    env: Mapping[Any, Any],
    *,
    cache: Cache | None = None,
    settings: DataflowSettings | None = None,
) -> Any:
    """
    Resolve a single key with memoization (the cache-layer entry point).

    Args:
        key (Any): Key to resolve.
        env (Mapping): Environment to resolve against.
        cache (Cache | None): Explicit cache; defaults to the active scope, else a private one.
        settings (DataflowSettings | None): Engine switches.

    Examples:
        >>> from plotflow.dataflow.cache import clean_cache
        >>> from plotflow.dataflow.xform import resolve_cached
        >>> square = lambda e: e["X"] ** 2
        >>> with clean_cache():
        ...     [resolve_cached("Result", {"X": x, "Result": square}) for x in (5, 7)]
        [25, 49]
    """
    if cache is None:
        session = Session.current(settings)
    else:
        session = Session(cache, settings if settings is not None else current_settings())
    with activate(session.cache):
        return session.resolve_cached(key, env)
