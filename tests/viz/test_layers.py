from __future__ import annotations

from datetime import date
from typing import Any

import altair as alt
import polars as pl
import pytest
from pydantic import ValidationError

from plotflow import transform
from plotflow.viz import LayerOptions, layer, overlay, to_chart, to_vega_lite
from plotflow.viz.layers import DEFAULT_PALETTE, field_type, to_values


@pytest.fixture
def df() -> pl.DataFrame:
    return pl.DataFrame(
        {
            "t": [0, 1, 2, 3],
            "value": [1.0, 2.5, 2.0, 4.0],
            "group": ["a", "b", "a", "b"],
        }
    )


def find_in_spec(obj: Any, predicate) -> bool:
    """Recursively scan a chart spec dict for a predicate match."""
    if isinstance(obj, dict):
        if predicate(obj):
            return True
        return any(find_in_spec(v, predicate) for v in obj.values())
    if isinstance(obj, list):
        return any(find_in_spec(v, predicate) for v in obj)
    return False


# 1) Unit layers


def test_layer_minimal_spec_is_lean(df: pl.DataFrame) -> None:
    spec = to_vega_lite(layer(df, x="t", y="value"))
    assert spec["mark"] == {"type": "point"}
    assert spec["encoding"] == {
        "x": {"field": "t", "type": "quantitative"},
        "y": {"field": "value", "type": "quantitative"},
    }
    assert "title" not in spec
    assert spec["data"]["values"] == df.to_dicts()


def test_layer_options_flow_into_spec(df: pl.DataFrame) -> None:
    spec = to_vega_lite(layer(df, x="t", y="value", mark="line", opacity=0.5, title="Values"))
    assert spec["mark"] == {"type": "line", "opacity": 0.5}
    assert spec["title"] == "Values"


def test_nominal_color_gets_palette_scale(df: pl.DataFrame) -> None:
    spec = to_vega_lite(layer(df, x="t", y="value", color="group"))
    color = spec["encoding"]["color"]
    assert color["field"] == "group"
    assert color["type"] == "nominal"
    assert color["scale"] == {"domain": ["a", "b"], "range": list(DEFAULT_PALETTE[:2])}


def test_quantitative_color_has_no_scale(df: pl.DataFrame) -> None:
    spec = to_vega_lite(layer(df, x="t", y="value", color="value"))
    assert spec["encoding"]["color"] == {"field": "value", "type": "quantitative"}


def test_evaluation_time_overrides(df: pl.DataFrame) -> None:
    template = layer(df, x="t", y="value", title="Default")
    assert to_vega_lite(template, "=title", "Override")["title"] == "Override"
    spec = to_vega_lite(template, {"=x": "group"})
    assert spec["encoding"]["x"] == {"field": "group", "type": "nominal"}


def test_dataset_stays_opaque_during_evaluation(df: pl.DataFrame) -> None:
    out = transform(layer(df, x="t", y="value"))
    assert out["data"]["values"] is df


def test_bare_transform_assigns_distinct_colors() -> None:
    df = pl.DataFrame({"t": [0, 1, 2], "v": [1, 2, 3], "g": ["a", "b", "c"]})
    out = transform(layer(df, x="t", y="v", color="g"))
    scale = out["encoding"]["color"]["scale"]
    assert scale["domain"] == ["a", "b", "c"]
    assert scale["range"] == list(DEFAULT_PALETTE[:3])


# 2) Overlays


def test_overlay_shares_colors_across_layers() -> None:
    first = pl.DataFrame({"t": [0, 1], "v": [1, 2], "g": ["a", "b"]})
    second = pl.DataFrame({"t": [0, 1], "v": [3, 4], "g": ["b", "c"]})
    spec = to_vega_lite(
        overlay(
            layer(first, x="t", y="v", color="g"),
            layer(second, x="t", y="v", color="g", mark="line"),
            title="Both",
        )
    )
    assert spec["title"] == "Both"
    scales = [lyr["encoding"]["color"]["scale"] for lyr in spec["layer"]]
    assert dict(zip(scales[0]["domain"], scales[0]["range"])) == {
        "a": DEFAULT_PALETTE[0],
        "b": DEFAULT_PALETTE[1],
    }
    assert dict(zip(scales[1]["domain"], scales[1]["range"])) == {
        "b": DEFAULT_PALETTE[1],
        "c": DEFAULT_PALETTE[2],
    }


def test_overlay_without_title(df: pl.DataFrame) -> None:
    spec = to_vega_lite(overlay(layer(df, x="t", y="value")))
    assert "title" not in spec
    assert len(spec["layer"]) == 1


def test_to_chart_types(df: pl.DataFrame) -> None:
    assert isinstance(to_chart(layer(df, x="t", y="value")), alt.Chart)
    points = layer(df, x="t", y="value")
    line = layer(df, x="t", y="value", mark="line")
    chart = to_chart(overlay(points, line))
    assert isinstance(chart, alt.LayerChart)
    assert find_in_spec(chart.to_dict(), lambda d: d.get("type") == "line")


# 3) Validation and types


@pytest.mark.parametrize(
    "options",
    [
        {"x": "t", "y": "value", "mark": "pie"},
        {"x": "t", "y": "value", "opacity": 2.0},
        {"x": "t", "y": "value", "bogus": 1},
        {"x": "t", "y": "value", "palette": []},
        {"x": "t"},
    ],
)
def test_invalid_options_raise(df: pl.DataFrame, options: dict) -> None:
    with pytest.raises(ValidationError):
        layer(df, **options)


def test_missing_column_raises(df: pl.DataFrame) -> None:
    with pytest.raises(ValueError, match="nope"):
        to_vega_lite(layer(df, x="nope", y="value"))


def test_field_types() -> None:
    frame = pl.DataFrame({"d": [date(2024, 1, 1)], "n": [1], "s": ["x"]})
    assert field_type(frame, "d") == "temporal"
    assert field_type(frame, "n") == "quantitative"
    assert field_type(frame, "s") == "nominal"
    assert LayerOptions(x="d", y="n").palette == list(DEFAULT_PALETTE)


def test_to_values_collects_lazy_frames() -> None:
    lazy = pl.DataFrame({"x": [1, 2]}).lazy()
    assert to_values({"data": {"values": lazy}, "keep": [1]}) == {
        "data": {"values": [{"x": 1}, {"x": 2}]},
        "keep": [1],
    }
