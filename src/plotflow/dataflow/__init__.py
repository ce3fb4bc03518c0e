"""
plotflow.dataflow — lazy, dependency-driven template evaluation.

## Responsibilities
- Rewrite nested templates by repeated key substitution until fixpoint (`transform`).
- Let computed values declare their dependencies before they run (`with_deps`, `depends_on`).
- Memoize dependency resolution per evaluation session (`Cache`, `clean_cache`).
- Keep dataset-shaped values opaque: never walked, never compared structurally.

## Public API
- transform — the substitution engine entry point.
- resolve_cached — memoized single-key resolution.
- with_deps / depends_on / DependencyFunction / dependency_edges — dependency declaration.
- Cache / clean_cache / with_clean_cache / activate / active_cache / cached_assignment — session
  caching.
- Environment — immutable environment with the user override layer.
- DataflowSettings / current_settings — engine switches (env > TOML > defaults), loaded once.
- register_defaults / get_defaults / reset_defaults — global default bindings.
- register_subkey_fn / reset_subkey_fns — per-key post-processing of substitutions.

## Import DAG discipline
- Depends only on stdlib and plotflow.core.
- MUST NOT import plotflow.viz (or altair/pydantic).

## Examples
```python
from plotflow import DEFAULTS, REMOVE, clean_cache, transform, with_deps

template = {
    "title": {"text": "Title", "font": {"size": "TitleSize"}},
    DEFAULTS: {
        "Title": with_deps("Title from count", ["N"], lambda d: f"{d['N']} points"),
        "N": 3,
        "TitleSize": REMOVE,
    },
}
with clean_cache():
    transform(template)  # {'title': {'text': '3 points'}}
```

## Notes
- Precedence inside any subtree: ambient < template DEFAULTS < user overrides.
- Cycles raise plotflow.core.errors.CyclicDependency with the offending chain.
"""

from __future__ import annotations

from .cache import (
    Cache,
    activate,
    active_cache,
    cached_assignment,
    clean_cache,
    with_clean_cache,
)
from .config import DataflowSettings, current_settings
from .dag import DependencyFunction, dependency_edges, depends_on, with_deps
from .defaults import (
    get_defaults,
    register_defaults,
    register_subkey_fn,
    reset_defaults,
    reset_subkey_fns,
)
from .environment import Environment
from .xform import Session, resolve_cached, transform

__all__ = [
    "Cache",
    "DataflowSettings",
    "DependencyFunction",
    "Environment",
    "Session",
    "activate",
    "active_cache",
    "cached_assignment",
    "clean_cache",
    "current_settings",
    "dependency_edges",
    "depends_on",
    "get_defaults",
    "register_defaults",
    "register_subkey_fn",
    "reset_defaults",
    "reset_subkey_fns",
    "resolve_cached",
    "transform",
    "with_clean_cache",
    "with_deps",
]
