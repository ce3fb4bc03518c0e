"""
plotflow — compositional chart specifications on a lazy dataflow engine.

Templates are plain nested data whose leaves name keys. `transform` substitutes keys for values
until nothing changes, calling functions and dependency-declaring functions along the way, and
prunes whatever ends up empty. Chart layers in plotflow.viz are just templates of this kind.

The most used names are re-exported here; see plotflow.core, plotflow.dataflow and
plotflow.viz for the full surface.
"""

from __future__ import annotations

from plotflow.core.errors import CyclicDependency, DataflowError, TemplateError
from plotflow.core.values import DEFAULTS, REMOVE, Opaque, register_opaque_type
from plotflow.dataflow import (
    Cache,
    DataflowSettings,
    DependencyFunction,
    Environment,
    cached_assignment,
    clean_cache,
    depends_on,
    resolve_cached,
    transform,
    with_clean_cache,
    with_deps,
)

__all__ = [
    "DEFAULTS",
    "REMOVE",
    "Opaque",
    "register_opaque_type",
    "Cache",
    "DataflowSettings",
    "DependencyFunction",
    "Environment",
    "cached_assignment",
    "clean_cache",
    "depends_on",
    "resolve_cached",
    "transform",
    "with_clean_cache",
    "with_deps",
    "CyclicDependency",
    "DataflowError",
    "TemplateError",
]
