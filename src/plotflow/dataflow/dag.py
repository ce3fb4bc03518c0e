"""
Dependency-declaring functions.

A DependencyFunction is a function term that names, up front, the keys it needs. When the engine
invokes it, every declared key is resolved through the session cache (so a dependency shared by
several dependents is computed once per environment), then the body runs with the resolved
values.

Two construction styles:

- `with_deps(description, dep_keys, body)`: ``body(bindings)`` receives a dict keyed by the
  dependency keys. Keys may be any hashable scalar.
- `@depends_on(*dep_keys)`: the decorated function receives the resolved values as keyword
  arguments; keys must be valid identifiers. The docstring becomes the description.

Examples:
    >>> from plotflow import DEFAULTS, depends_on, transform
    >>> @depends_on("Area")
    ... def radius(Area):
    ...     "Compute radius from area"
    ...     return (Area / 3.0) ** 0.5
    >>> radius.dep_keys, radius.description
    (('Area',), 'Compute radius from area')
    >>> transform({"r": "Radius", DEFAULTS: {"Area": 12.0, "Radius": radius}})
    {'r': 2.0}
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Hashable, Iterable, Mapping
from typing import Any

from plotflow.core.values import DEFAULTS, FunctionTerm

from .cache import activate
from .environment import Environment
from .xform import Session

__all__ = [
    "DependencyFunction",
    "with_deps",
    "depends_on",
    "dependency_edges",
]

logger = logging.getLogger(__name__)


class DependencyFunction(FunctionTerm):
    """
    Function term tagged with an ordered dependency list and a description.

    Attributes:
        description (str | None): Human-readable summary for tooling.
        dep_keys (tuple[Hashable, ...]): Keys resolved (in this order) before the body runs.
        body (Callable): The wrapped computation.
        unpack (bool): If True the body takes keyword arguments, else a single bindings dict.
    """

    def __init__(
        self,
        description: str | None,
        dep_keys: Iterable[Hashable],
        body: Callable[..., Any],
        *,
        unpack: bool = False,
    ) -> None:
        self.description = description
        self.dep_keys = tuple(dep_keys)
        self.body = body
        self.unpack = unpack

    def invoke(self, env: Mapping[Any, Any], session: Session) -> Any:
        """Resolve every dependency through ``session`` and run the body."""
        bindings = {k: session.resolve_cached(k, env) for k in self.dep_keys}
        logger.debug("running %s with deps %r", self.name, self.dep_keys)
        if self.unpack:
            return self.body(**bindings)
        return self.body(bindings)

    def __call__(self, env: Mapping[Any, Any]) -> Any:
        """Invoke outside an engine evaluation, using the active cache if any."""
        session = Session.current()
        with activate(session.cache):
            return self.invoke(Environment.coerce(env), session)

    @property
    def name(self) -> str:
        return getattr(self.body, "__name__", None) or self.description or "<deps>"

    def __repr__(self) -> str:
        return f"DependencyFunction({self.name!r}, deps={list(self.dep_keys)!r})"


def with_deps(
    description: str | None,
    dep_keys: Iterable[Hashable],
    body: Callable[[dict[Any, Any]], Any],
) -> DependencyFunction:
    """
    Wrap ``body`` so that ``dep_keys`` are resolved before it runs.

    Args:
        description (str | None): Summary exposed as ``.description``.
        dep_keys (Iterable[Hashable]): Keys to resolve, in order.
        body (Callable[[dict], Any]): Receives ``{dep_key: resolved value}``.

    Returns:
        DependencyFunction: A function term usable as a template or environment value.

    Examples:
        >>> from plotflow import DEFAULTS, transform, with_deps
        >>> transform({
        ...     "b": "B",
        ...     DEFAULTS: {"A": 10, "B": with_deps("B depends on A", ["A"], lambda d: d["A"] * 2)},
        ... })
        {'b': 20}
    """
    return DependencyFunction(description, dep_keys, body)


def depends_on(
    *dep_keys: str, description: str | None = None
) -> Callable[[Callable[..., Any]], DependencyFunction]:
    """
    Decorator form of with_deps for named functions taking keyword arguments.

    Args:
        *dep_keys (str): Dependency keys; each must be a valid Python identifier.
        description (str | None): Overrides the docstring as ``.description``.

    Raises:
        TypeError: If a key is not an identifier string.
    """
    bad = [k for k in dep_keys if not (isinstance(k, str) and k.isidentifier())]
    if bad:
        raise TypeError(f"depends_on keys must be identifiers, got {bad!r}; use with_deps instead")

    def decorate(fn: Callable[..., Any]) -> DependencyFunction:
        dep = DependencyFunction(
            description if description is not None else fn.__doc__,
            dep_keys,
            fn,
            unpack=True,
        )
        functools.update_wrapper(dep, fn)
        return dep

    return decorate


def dependency_edges(template: Mapping[Any, Any]) -> list[tuple[Hashable, Hashable]]:
    """
    List ``(dependency, dependent)`` edges declared in a template's top-level DEFAULTS.

    Args:
        template (Mapping): Template possibly carrying a DEFAULTS entry.

    Returns:
        list[tuple[Hashable, Hashable]]: Edges in DEFAULTS order, then declared dependency order.

    Examples:
        >>> from plotflow import DEFAULTS, with_deps
        >>> from plotflow.dataflow.dag import dependency_edges
        >>> t = {DEFAULTS: {"A": 1, "B": with_deps(None, ["A"], lambda d: d["A"])}}
        >>> dependency_edges(t)
        [('A', 'B')]
    """
    defaults = template.get(DEFAULTS) or {}
    return [
        (dep, key)
        for key, value in defaults.items()
        if isinstance(value, DependencyFunction)
        for dep in value.dep_keys
    ]
