from __future__ import annotations

import pytest

from plotflow import DEFAULTS, REMOVE, transform, with_deps

_SIZE = with_deps(None, ["Base"], lambda d: d["Base"] * 2)


def _env() -> dict:
    return {
        "Title": "Chart",
        "Subtitle": REMOVE,
        "Size": _SIZE,
        "Base": 6,
        "Points": [{"x": "X0"}, {"x": "X1"}],
        "X0": 1,
        "X1": 2,
    }


ENV = _env()

TEMPLATES = [
    {"title": "Title", "subtitle": "Subtitle"},
    {"title": {"text": "Title", "font": {"size": "Size"}}},
    {"data": "Points", "empty": {"nested": []}},
    ["Title", "Subtitle", ("Base", "Size")],
    {"local": {"v": "Title", DEFAULTS: {"Title": "Local"}}, "v": "Title"},
    "Size",
]


@pytest.mark.parametrize("template", TEMPLATES)
def test_transform_output_is_a_fixpoint(template: object) -> None:
    once = transform(template, ENV)
    assert transform(once, {}) == once


@pytest.mark.parametrize("template", TEMPLATES)
def test_transform_is_idempotent(template: object) -> None:
    once = transform(template, ENV)
    assert transform(once, ENV) == once


@pytest.mark.parametrize("template", TEMPLATES)
def test_transform_is_deterministic(template: object) -> None:
    first, second = _env(), _env()
    assert first is not second
    assert transform(template, first) == transform(template, second)


def test_templates_are_not_mutated() -> None:
    template = {"a": ["Subtitle", {"b": "Title"}], DEFAULTS: {"Extra": 1}}
    snapshot = {"a": ["Subtitle", {"b": "Title"}], DEFAULTS: {"Extra": 1}}
    transform(template, ENV)
    assert template == snapshot
