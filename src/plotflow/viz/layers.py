"""
Vega-Lite layer templates evaluated by the dataflow engine.

A layer is an ordinary template: the Vega-Lite skeleton names keys (``=x``, ``=x-type``,
``=color-encoding``, ...) and its DEFAULTS bind them, partly to literal options and partly to
dependency functions computed from the attached polars dataset. Anything the caller leaves unset
defaults to REMOVE and disappears from the final spec.

Keys
- Inputs: ``=dataset``, ``=mark``, ``=x``, ``=y``, ``=color``, ``=title``, ``=opacity``,
  ``=palette``.
- Computed: ``=x-type``, ``=y-type`` (Vega-Lite field types inferred from polars dtypes) and
  ``=color-encoding`` (nominal colours assigned through cached_assignment so categories keep
  the same colour across every layer of one evaluation).

Any key can be overridden at evaluation time:

    to_vega_lite(layer(df, x="t", y="value"), "=title", "Values over time")

Notes
- The dataset stays opaque during evaluation and is converted to inline ``values`` only after
  the template has been fully resolved (see to_values).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

import altair as alt
import polars as pl
from pydantic import BaseModel, ConfigDict, Field

from plotflow.core.values import DEFAULTS, REMOVE
from plotflow.dataflow import cached_assignment, clean_cache, transform, with_deps

__all__ = [
    "DEFAULT_PALETTE",
    "LayerOptions",
    "layer",
    "overlay",
    "field_type",
    "to_values",
    "to_vega_lite",
    "to_chart",
]

# Vega "tableau10" order.
DEFAULT_PALETTE: tuple[str, ...] = (
    "#4c78a8",
    "#f58518",
    "#e45756",
    "#72b7b2",
    "#54a24b",
    "#eeca3b",
    "#b279a2",
    "#ff9da6",
    "#9d755d",
    "#bab0ac",
)

Mark = Literal["point", "line", "bar", "area", "tick", "circle", "square"]


class LayerOptions(BaseModel):
    """
    Caller-facing options for a single layer.

    Attributes:
        mark (Mark): Vega-Lite mark type.
        x (str): Column mapped to the x channel.
        y (str): Column mapped to the y channel.
        color (str | None): Optional column mapped to colour.
        title (str | None): Optional layer title.
        opacity (float | None): Optional mark opacity in [0, 1].
        palette (list[str]): Colours handed out to nominal colour categories.

    Raises:
        pydantic.ValidationError: Unknown options, unknown mark, or opacity outside [0, 1].

    Examples:
        >>> from plotflow.viz.layers import LayerOptions
        >>> LayerOptions(x="t", y="value").mark
        'point'
    """

    model_config = ConfigDict(extra="forbid")

    mark: Mark = "point"
    x: str
    y: str
    color: str | None = None
    title: str | None = None
    opacity: float | None = Field(default=None, ge=0.0, le=1.0)
    palette: list[str] = Field(default_factory=lambda: list(DEFAULT_PALETTE), min_length=1)


LAYER_TEMPLATE: dict[str, Any] = {
    "data": {"values": "=dataset"},
    "mark": {"type": "=mark", "opacity": "=opacity"},
    "encoding": {
        "x": {"field": "=x", "type": "=x-type"},
        "y": {"field": "=y", "type": "=y-type"},
        "color": "=color-encoding",
    },
    "title": "=title",
}


def _require_column(df: pl.DataFrame, column: str) -> None:
    if column not in df.columns:
        raise ValueError(f"column {column!r} not in dataset (columns={df.columns!r})")


def field_type(df: pl.DataFrame, column: str) -> str:
    """
    Infer the Vega-Lite field type of a column from its polars dtype.

    Args:
        df (pl.DataFrame): Dataset.
        column (str): Column name.

    Returns:
        str: "quantitative" for numeric, "temporal" for temporal, else "nominal".

    Raises:
        ValueError: If the column does not exist.
    """
    _require_column(df, column)
    dtype = df.schema[column]
    if dtype.is_numeric():
        return "quantitative"
    if dtype.is_temporal():
        return "temporal"
    return "nominal"


def _color_encoding(d: Mapping[str, Any]) -> Any:
    column = d["=color"]
    if column is REMOVE:
        return REMOVE
    df = d["=dataset"]
    kind = field_type(df, column)
    if kind != "nominal":
        return {"field": column, "type": kind}
    categories = df.get_column(column).unique(maintain_order=True).to_list()
    palette = d["=palette"]
    return {
        "field": column,
        "type": "nominal",
        "scale": {
            "domain": categories,
            "range": [cached_assignment(c, palette, "color") for c in categories],
        },
    }


def layer(dataset: pl.DataFrame, **options: Any) -> dict[Any, Any]:
    """
    Build a Vega-Lite unit-spec template for ``dataset``.

    Args:
        dataset (pl.DataFrame): Data for the layer (kept opaque during evaluation).
        **options: Fields of LayerOptions.

    Returns:
        dict: Template with DEFAULTS; evaluate with to_vega_lite or to_chart.

    Examples:
        >>> import polars as pl
        >>> from plotflow.viz.layers import layer, to_vega_lite
        >>> spec = to_vega_lite(layer(pl.DataFrame({"t": [0, 1], "v": [1.0, 2.0]}), x="t", y="v"))
        >>> spec["encoding"]["y"]
        {'field': 'v', 'type': 'quantitative'}
    """
    opts = LayerOptions(**options)
    defaults: dict[Any, Any] = {
        "=dataset": dataset,
        "=mark": opts.mark,
        "=x": opts.x,
        "=y": opts.y,
        "=color": opts.color if opts.color is not None else REMOVE,
        "=title": opts.title if opts.title is not None else REMOVE,
        "=opacity": opts.opacity if opts.opacity is not None else REMOVE,
        "=palette": list(opts.palette),
        "=x-type": with_deps(
            "Vega-Lite type of the x field",
            ["=dataset", "=x"],
            lambda d: field_type(d["=dataset"], d["=x"]),
        ),
        "=y-type": with_deps(
            "Vega-Lite type of the y field",
            ["=dataset", "=y"],
            lambda d: field_type(d["=dataset"], d["=y"]),
        ),
        "=color-encoding": with_deps(
            "Colour channel with palette-assigned categories",
            ["=dataset", "=color", "=palette"],
            _color_encoding,
        ),
    }
    return {**LAYER_TEMPLATE, DEFAULTS: defaults}


def overlay(*layers: Mapping[Any, Any], title: str | None = None) -> dict[Any, Any]:
    """Combine layer templates into a layered spec template with an optional shared title."""
    return {
        "layer": list(layers),
        "title": "=overlay-title",
        DEFAULTS: {"=overlay-title": title if title is not None else REMOVE},
    }


def to_values(spec: Any) -> Any:
    """Replace polars frames anywhere in a resolved spec by lists of row dicts."""
    if isinstance(spec, pl.LazyFrame):
        return spec.collect().to_dicts()
    if isinstance(spec, pl.DataFrame):
        return spec.to_dicts()
    if isinstance(spec, Mapping):
        return {k: to_values(v) for k, v in spec.items()}
    if isinstance(spec, list):
        return [to_values(v) for v in spec]
    return spec


def to_vega_lite(template: Mapping[Any, Any], *overrides: Any) -> dict[str, Any]:
    """
    Evaluate a layer/overlay template in a clean cache and return a plain Vega-Lite dict.

    Args:
        template (Mapping): Template from layer() or overlay().
        *overrides: A mapping or key/value pairs, as accepted by transform().
    """
    with clean_cache():
        spec = transform(template, *overrides)
    return to_values(spec)


def to_chart(template: Mapping[Any, Any], *overrides: Any) -> alt.TopLevelMixin:
    """Evaluate a template and load it as an Altair chart (LayerChart for overlays)."""
    spec = to_vega_lite(template, *overrides)
    if "layer" in spec:
        return alt.LayerChart.from_dict(spec)
    return alt.Chart.from_dict(spec)
