"""
Session-scoped memoization for dependency resolution.

A Cache maps (key, Environment) to the fully resolved value of that key. Entries are valid for
one evaluation session; nothing is evicted and nothing persists across sessions.

Scoping
- `clean_cache()` installs a brand-new Cache as the *active* cache for the current context and
  restores the previous one on every exit path (normal return or exception).
- `with_clean_cache(thunk)` is the call form of the same scope.
- `plotflow.dataflow.xform.transform` picks up the active cache when none is passed explicitly,
  or creates a private one for that single evaluation. Either way the cache in use is active
  (see `activate`) while the evaluation runs, so bodies calling cached_assignment share it.
  Inside the engine the handle is threaded explicitly through the session.

The active cache lives in a ContextVar, so threads and asyncio tasks each see their own scope.

Palette assignment
- `cached_assignment(value, palette, kind)` hands out palette entries (colours, sizes, symbols)
  to categories in first-seen order and remembers them for the rest of the session, so the same
  category looks the same across layers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterator, Sequence
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, TypeVar

from plotflow.core.hashing import freeze
from plotflow.core.values import MISSING

from .environment import Environment

__all__ = [
    "Cache",
    "active_cache",
    "activate",
    "clean_cache",
    "with_clean_cache",
    "cached_assignment",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Cache:
    """
    Mutable memo table keyed by (lookup key, Environment) with structural equality.

    Attributes:
        hits (int): Number of successful lookups.
        misses (int): Number of lookups that found nothing.

    Notes:
        - Keys are frozen with plotflow.core.hashing.freeze, so ``"A"`` under two structurally
          equal environments is a single entry.
        - Besides resolution entries the cache holds per-kind palette assignments
          (see cached_assignment).
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[Any, Environment], Any] = {}
        self._assignments: dict[Hashable, dict[Any, Any]] = {}
        self.hits = 0
        self.misses = 0

    @staticmethod
    def _slot(key: Any, env: Environment) -> tuple[Any, Environment]:
        return (freeze(key), Environment.coerce(env))

    def get(self, key: Any, env: Environment, default: Any = MISSING) -> Any:
        value = self._entries.get(self._slot(key, env), MISSING)
        if value is MISSING:
            self.misses += 1
            return default
        self.hits += 1
        return value

    def store(self, key: Any, env: Environment, value: Any) -> Any:
        self._entries[self._slot(key, env)] = value
        return value

    def assignments(self, kind: Hashable) -> dict[Any, Any]:
        """Return the (mutable) value -> palette entry table for ``kind``."""
        return self._assignments.setdefault(kind, {})

    def clear(self) -> None:
        self._entries.clear()
        self._assignments.clear()
        self.hits = 0
        self.misses = 0

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, tuple) or len(item) != 2:
            return False
        key, env = item
        return self._slot(key, env) in self._entries  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Cache(entries={len(self._entries)}, hits={self.hits}, misses={self.misses})"


_active: ContextVar[Cache | None] = ContextVar("plotflow_active_cache", default=None)


def active_cache() -> Cache | None:
    """Return the cache installed by the innermost enclosing clean_cache() or activate(), if any."""
    return _active.get()


@contextmanager
def activate(cache: Cache) -> Iterator[Cache]:
    """Install ``cache`` as the active cache for the block, restoring the previous one after."""
    token = _active.set(cache)
    try:
        yield cache
    finally:
        _active.reset(token)


@contextmanager
def clean_cache() -> Iterator[Cache]:
    """
    Install a fresh, empty Cache for the duration of the block.

    Yields:
        Cache: The newly installed cache (also returned by active_cache() inside the block).

    Examples:
        >>> from plotflow.dataflow.cache import clean_cache, active_cache
        >>> with clean_cache() as cache:
        ...     active_cache() is cache
        True
        >>> active_cache() is None
        True
    """
    cache = Cache()
    logger.debug("cache scope entered")
    try:
        with activate(cache):
            yield cache
    finally:
        logger.debug("cache scope exited (%d entries discarded)", len(cache))


def with_clean_cache(thunk: Callable[[], T]) -> T:
    """
    Run ``thunk`` inside a clean cache scope and return its result.

    Args:
        thunk (Callable[[], T]): Zero-argument callable evaluated with a fresh active cache.

    Returns:
        T: Whatever ``thunk`` returns. Exceptions propagate after the previous scope is restored.
    """
    with clean_cache():
        return thunk()


def cached_assignment(
    value: Any,
    palette: Sequence[Any],
    kind: Hashable,
    *,
    cache: Cache | None = None,
) -> Any:
    """
    Assign a palette entry to ``value``, stable for the rest of the cache session.

    Distinct values of the same ``kind`` receive palette entries in first-seen order; once the
    palette is exhausted assignment wraps around.

    Args:
        value (Any): Category being styled (e.g., a group label).
        palette (Sequence[Any]): Candidate entries (colours, sizes, symbols).
        kind (Hashable): Assignment namespace, e.g. ``"color"`` or ``"symbol"``.
        cache (Cache | None): Cache to use; defaults to the active cache. Without any cache the
            assignment is not remembered and the first palette entry is returned.

    Returns:
        Any: The palette entry for ``value``.

    Raises:
        ValueError: If ``palette`` is empty.

    Examples:
        >>> from plotflow.dataflow.cache import cached_assignment, clean_cache
        >>> with clean_cache():
        ...     [cached_assignment(v, ["red", "blue"], "color") for v in ["a", "b", "a", "c"]]
        ['red', 'blue', 'red', 'red']
    """
    if not palette:
        raise ValueError("palette must not be empty")
    cache = cache if cache is not None else active_cache()
    if cache is None:
        return palette[0]
    table = cache.assignments(kind)
    slot = freeze(value)
    if slot not in table:
        table[slot] = palette[len(table) % len(palette)]
    return table[slot]
