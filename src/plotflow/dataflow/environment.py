"""
Immutable substitution environments.

An Environment is the mapping of keys to terms consulted while a template is rewritten. It also
carries the user override layer: bindings supplied explicitly by the caller, which are re-applied
on top of every template-local DEFAULTS merge so they win at any nesting depth.

Notes:
    - Environments are persistent: `merge` returns a new instance and never mutates.
    - Equality and hashing are structural (see plotflow.core.hashing.freeze) and include the
      override layer, so an Environment can be used directly in cache keys.
    - The frozen form is computed lazily, once per instance.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from plotflow.core.constants import DIGEST_LENGTH
from plotflow.core.hashing import freeze, term_digest
from plotflow.core.values import MISSING, is_hashable

__all__ = ["Environment"]


class Environment(Mapping[Any, Any]):
    """
    Immutable mapping of bindings plus the user override layer.

    Args:
        bindings (Mapping | None): Visible bindings.
        overrides (Mapping | None): User-supplied bindings that outrank template defaults. They
            are expected to already be present in ``bindings``.

    Examples:
        >>> from plotflow.dataflow.environment import Environment
        >>> env = Environment({"Name": "Ada"}, overrides={"Name": "Ada"})
        >>> local = env.merge({"Name": "World", "Greeting": "Hi"})
        >>> local["Name"], local["Greeting"]
        ('Ada', 'Hi')
    """

    __slots__ = ("_bindings", "_overrides", "_frozen")

    def __init__(
        self,
        bindings: Mapping[Any, Any] | None = None,
        overrides: Mapping[Any, Any] | None = None,
    ) -> None:
        self._bindings: dict[Any, Any] = dict(bindings or {})
        self._overrides: dict[Any, Any] = dict(overrides or {})
        self._frozen: Any = None

    @classmethod
    def coerce(cls, env: Mapping[Any, Any] | None) -> Environment:
        """Return ``env`` if it already is an Environment, else wrap it (no overrides)."""
        if isinstance(env, Environment):
            return env
        return cls(env)

    @classmethod
    def for_user(
        cls, user: Mapping[Any, Any], base: Mapping[Any, Any] | None = None
    ) -> Environment:
        """
        Build a root environment where ``user`` bindings are overrides layered over ``base``.

        Args:
            user (Mapping): Caller-supplied bindings.
            base (Mapping | None): Lower-precedence bindings (e.g., global defaults).
        """
        merged = dict(base or {})
        merged.update(user)
        return cls(merged, overrides=user)

    # Mapping protocol

    def __getitem__(self, key: Any) -> Any:
        return self._bindings[key]

    def __iter__(self) -> Iterator[Any]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def __contains__(self, key: object) -> bool:
        return is_hashable(key) and key in self._bindings

    # Engine helpers

    @property
    def overrides(self) -> Mapping[Any, Any]:
        return dict(self._overrides)

    def lookup(self, key: Any, default: Any = MISSING) -> Any:
        """
        Look up ``key``; unhashable keys (e.g., dataframes) are simply absent.

        Args:
            key (Any): Candidate key.
            default (Any): Returned when there is no binding (MISSING by default).
        """
        if not is_hashable(key):
            return default
        return self._bindings.get(key, default)

    def merge(self, defaults: Mapping[Any, Any]) -> Environment:
        """
        Form the local environment for a subtree carrying template defaults.

        Precedence: ambient bindings < ``defaults`` < user overrides.
        """
        if not defaults:
            return self
        merged = dict(self._bindings)
        merged.update(defaults)
        merged.update(self._overrides)
        return Environment(merged, overrides=self._overrides)

    def frozen(self) -> Any:
        if self._frozen is None:
            self._frozen = (freeze(self._bindings), freeze(self._overrides))
        return self._frozen

    def digest(self) -> str:
        """Short canonical digest for logs."""
        return term_digest({"bindings": self._bindings, "overrides": self._overrides})[
            :DIGEST_LENGTH
        ]

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if isinstance(other, Environment):
            return self.frozen() == other.frozen()
        if isinstance(other, Mapping):
            return not self._overrides and self.frozen()[0] == freeze(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.frozen())

    def __repr__(self) -> str:
        keys = ", ".join(repr(k) for k in self._bindings)
        return f"Environment({{{keys}}}, overrides={sorted(map(repr, self._overrides))})"
