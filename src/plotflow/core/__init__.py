"""
Core package aggregator for plotflow contracts (value model, hashing, errors, constants).

## Contracts (single source of truth)
- Values — TermKind classification, REMOVE/DEFAULTS sentinels, Opaque wrapper, opaque registry.
- Hashing — structural freezing (cache-key equality) and canonical JSON digests.
- Errors — DataflowError, CyclicDependency, TemplateError.
- Constants — engine switch defaults and configuration lookup names.

## Notes
- Zero‑IO policy: stdlib + polars (type recognition only); no file/network IO.
- Opaque values are compared by identity and never traversed.

## Downstream usage
- plotflow.dataflow — classifies terms with `term_kind`, keys its cache with `freeze`, raises
  `CyclicDependency`.
- plotflow.viz — marks datasets opaque (polars frames are opaque out of the box).

## Examples
```python
from plotflow.core import REMOVE, TermKind, freeze, term_kind
term_kind(REMOVE) is TermKind.REMOVE  # True
freeze({"a": [1, 2]}) == freeze({"a": (1, 2)})  # True
```
"""

from __future__ import annotations

from .errors import CyclicDependency, DataflowError, TemplateError
from .hashing import freeze, term_digest
from .values import DEFAULTS, REMOVE, Opaque, TermKind, register_opaque_type, term_kind

__all__ = [
    "DEFAULTS",
    "REMOVE",
    "Opaque",
    "TermKind",
    "term_kind",
    "register_opaque_type",
    "freeze",
    "term_digest",
    "DataflowError",
    "CyclicDependency",
    "TemplateError",
]
