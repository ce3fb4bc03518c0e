"""
Configuration for the plotflow dataflow engine.

Defines DataflowSettings, a frozen dataclass carrying the engine switches. Defaults are sourced
from plotflow.core.constants (the single source of truth).

Source of truth
- plotflow.core.constants.PRUNE_EMPTY, USE_DEFAULTS, DETECT_CYCLES
- plotflow.core.constants.ENV_PREFIX, CONFIG_FILENAME

Notes
- Precedence for `load()`: env > TOML > defaults.
- `current_settings()` is what the engine uses when no settings are passed; it runs `load()`
  once per process (call `current_settings.cache_clear()` to reload).
- Loaders never raise on unrecognised values; they keep the previous setting.
"""

from __future__ import annotations

import functools
import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from plotflow.core.constants import CONFIG_FILENAME as CORE_CONFIG_FILENAME
from plotflow.core.constants import DETECT_CYCLES as CORE_DETECT_CYCLES
from plotflow.core.constants import ENV_PREFIX as CORE_ENV_PREFIX
from plotflow.core.constants import PRUNE_EMPTY as CORE_PRUNE_EMPTY
from plotflow.core.constants import USE_DEFAULTS as CORE_USE_DEFAULTS

__all__ = ["DataflowSettings", "current_settings"]

_TRUE = {"1", "true", "t", "yes", "y", "on"}
_FALSE = {"0", "false", "f", "no", "n", "off"}
_FIELDS = ("prune_empty", "use_defaults", "detect_cycles")


def _bool(v: Any, fallback: bool) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        lo = v.strip().lower()
        if lo in _TRUE:
            return True
        if lo in _FALSE:
            return False
    return fallback


@dataclass(frozen=True)
class DataflowSettings:
    """
    Runtime switches for plotflow.dataflow.xform.transform.

    Attributes:
        prune_empty (bool): Collapse collections emptied by REMOVE into REMOVE, cascading upward.
        use_defaults (bool): Merge the global defaults registry beneath user bindings.
        detect_cycles (bool): Track in-progress resolutions and raise CyclicDependency.

    Examples:
        >>> from plotflow.dataflow.config import DataflowSettings
        >>> DataflowSettings(prune_empty=False)  # doctest: +ELLIPSIS
        DataflowSettings(prune_empty=False, ...)
    """

    prune_empty: bool = CORE_PRUNE_EMPTY
    use_defaults: bool = CORE_USE_DEFAULTS
    detect_cycles: bool = CORE_DETECT_CYCLES

    # Configuration loaders (env/TOML) with precedence: env > TOML > defaults.

    @classmethod
    def _apply_mapping(
        cls, base: DataflowSettings, cfg: dict[str, Any] | None
    ) -> DataflowSettings:
        """Apply a loose config mapping onto DataflowSettings, returning a new instance."""
        if not isinstance(cfg, dict):
            return base
        s = base
        for name in _FIELDS:
            if name in cfg:
                s = replace(s, **{name: _bool(cfg[name], getattr(s, name))})
        return s

    @classmethod
    def from_env(
        cls, base: DataflowSettings | None = None, prefix: str = CORE_ENV_PREFIX
    ) -> DataflowSettings:
        """
        Build DataflowSettings from environment variables. Precedence is env > base > defaults.

        Recognized variables:
            - PLOTFLOW_PRUNE_EMPTY
            - PLOTFLOW_USE_DEFAULTS
            - PLOTFLOW_DETECT_CYCLES
        (1/0/true/false/yes/no/on/off)
        """
        s = base or cls()
        mapping: dict[str, Any] = {}
        for name in _FIELDS:
            v = os.getenv(prefix + name.upper())
            if v:
                mapping[name] = v
        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> DataflowSettings:
        """
        Build DataflowSettings from a TOML file.

        Search order when `path` is None:
            1) ./plotflow.toml (with either a [dataflow] table or direct keys)
            2) ./pyproject.toml under [tool.plotflow.dataflow]

        Returns defaults if no file is present or it cannot be parsed.
        """
        s = cls()

        def _load_toml(p: Path) -> dict[str, Any] | None:
            try:
                with p.open("rb") as fh:
                    return tomllib.load(fh)
            except (OSError, tomllib.TOMLDecodeError):
                return None

        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / CORE_CONFIG_FILENAME)
            cand.append(Path.cwd() / "pyproject.toml")

        cfg: dict[str, Any] | None = None
        for p in cand:
            if not p.exists():
                continue
            data = _load_toml(p)
            if not isinstance(data, dict):
                continue
            if p.name == "pyproject.toml":
                tool = data.get("tool", {})
                cfg = tool.get("plotflow", {}).get("dataflow") if isinstance(tool, dict) else None
            elif isinstance(data.get("dataflow"), dict):
                cfg = data["dataflow"]
            else:
                cfg = data
            if cfg:
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> DataflowSettings:
        """
        Load DataflowSettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search defaults (plotflow.toml,
                pyproject.toml).
        """
        s = cls.from_toml(path)
        s = cls.from_env(base=s)
        return s


@functools.cache
def current_settings() -> DataflowSettings:
    """Process-wide engine settings, loaded once via DataflowSettings.load()."""
    return DataflowSettings.load()
