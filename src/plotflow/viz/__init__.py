"""
plotflow.viz — Vega-Lite layer templates on top of the dataflow engine.

## Responsibilities
- Provide layer templates whose computed parts are dependency functions over a polars dataset.
- Evaluate templates in a clean cache and hand back plain Vega-Lite dicts or Altair charts.
- Keep categorical colours consistent across layers through the session palette cache.

## Public API
- layers — LayerOptions, layer, overlay, to_vega_lite, to_chart.

## Import DAG discipline
- Depends on: plotflow.dataflow, plotflow.core, polars, altair, pydantic (and stdlib).
- plotflow.dataflow must never import this package.

## Examples
```python
import polars as pl
from plotflow.viz import layer, to_chart

df = pl.DataFrame({"t": [0, 1, 2], "value": [0.1, 0.4, 0.3], "group": ["a", "b", "a"]})
chart = to_chart(layer(df, mark="line", x="t", y="value", color="group"), "=title", "Demo")
chart.to_dict()["title"]  # 'Demo'
```
"""

from __future__ import annotations

from .layers import LayerOptions, layer, overlay, to_chart, to_vega_lite

__all__ = [
    "LayerOptions",
    "layer",
    "overlay",
    "to_chart",
    "to_vega_lite",
]
