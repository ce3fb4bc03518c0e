"""
plotflow engine defaults.

Defines the default engine switches and configuration lookup names consumed by
plotflow.dataflow.config. This module is zero-IO and uses only the Python standard library.

Notes:
    - DataflowSettings reads these as its dataclass defaults; change them here, not there.
    - Environment variables are looked up as ``ENV_PREFIX + NAME`` (e.g., PLOTFLOW_PRUNE_EMPTY).
"""

from __future__ import annotations

__all__ = [
    "PRUNE_EMPTY",
    "USE_DEFAULTS",
    "DETECT_CYCLES",
    "ENV_PREFIX",
    "CONFIG_FILENAME",
    "DIGEST_LENGTH",
]

# Emptied collections collapse to REMOVE and cascade upward.
PRUNE_EMPTY: bool = True

# Merge the global defaults registry beneath user bindings at the root of an evaluation.
USE_DEFAULTS: bool = True

# Track in-progress resolutions and raise CyclicDependency instead of recursing forever.
DETECT_CYCLES: bool = True

ENV_PREFIX: str = "PLOTFLOW_"
CONFIG_FILENAME: str = "plotflow.toml"

# Number of hex digits of an environment digest shown in debug logs.
DIGEST_LENGTH: int = 12
