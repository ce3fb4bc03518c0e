from __future__ import annotations

from collections.abc import Iterator

import pytest

from plotflow import DEFAULTS, REMOVE, transform, with_deps
from plotflow.dataflow import (
    DataflowSettings,
    register_defaults,
    register_subkey_fn,
    reset_defaults,
    reset_subkey_fns,
)


@pytest.fixture(autouse=True)
def _clean_global_registries() -> Iterator[None]:
    reset_defaults()
    reset_subkey_fns()
    yield
    reset_defaults()
    reset_subkey_fns()


def _greeting_template() -> dict:
    return {
        "message": "Message",
        DEFAULTS: {
            "Name": "World",
            "Message": lambda env: f"Hello, {env['Name']}!",
        },
    }


def test_template_defaults_apply_without_bindings() -> None:
    assert transform(_greeting_template()) == {"message": "Hello, World!"}


def test_pair_overrides_beat_template_defaults() -> None:
    assert transform(_greeting_template(), "Name", "Ada") == {"message": "Hello, Ada!"}


def test_mapping_overrides_beat_template_defaults() -> None:
    assert transform(_greeting_template(), {"Name": "Ada"}) == {
        "message": "Hello, Ada!"
    }


def test_nested_defaults_at_any_level() -> None:
    out = transform(
        {
            "title": "Title",
            "section": {"heading": "Heading", DEFAULTS: {"Heading": "Default Heading"}},
            DEFAULTS: {"Title": "Default Title"},
        }
    )
    assert out == {"title": "Default Title", "section": {"heading": "Default Heading"}}


def test_nested_defaults_see_parent_defaults() -> None:
    out = transform(
        {
            "outer": {
                "inner": "InnerValue",
                DEFAULTS: {"InnerValue": lambda env: f"Inner uses: {env['OuterValue']}"},
            },
            DEFAULTS: {"OuterValue": "Parent Value"},
        }
    )
    assert out == {"outer": {"inner": "Inner uses: Parent Value"}}


def test_nested_defaults_override_parent_defaults_locally() -> None:
    out = transform(
        {
            "a": "Color",
            "b": {"c": "Color", DEFAULTS: {"Color": "blue"}},
            DEFAULTS: {"Color": "red"},
        }
    )
    assert out == {"a": "red", "b": {"c": "blue"}}


@pytest.mark.parametrize("form", ["pairs", "mapping"])
def test_user_overrides_win_at_any_depth(form: str) -> None:
    template = {"section": {"heading": "Heading", DEFAULTS: {"Heading": "Default"}}}
    if form == "pairs":
        out = transform(template, "Heading", "User")
    else:
        out = transform(template, {"Heading": "User"})
    assert out == {"section": {"heading": "User"}}


def test_defaults_are_scoped_to_their_subtree() -> None:
    out = transform({"a": {"v": "K", DEFAULTS: {"K": 1}}, "b": {"v": "K"}})
    assert out == {"a": {"v": 1}, "b": {"v": "K"}}


def test_nested_defaults_with_dependencies() -> None:
    out = transform(
        {
            "config": {
                "database": {"url": "DbUrl", "pool-size": "PoolSize"},
                DEFAULTS: {
                    "DbHost": "localhost",
                    "DbPort": 5432,
                    "DbName": "mydb",
                    "DbUrl": with_deps(
                        None,
                        ["DbHost", "DbPort", "DbName"],
                        lambda d: f"postgresql://{d['DbHost']}:{d['DbPort']}/{d['DbName']}",
                    ),
                    "PoolSize": with_deps(
                        None, ["Environment"], lambda d: 50 if d["Environment"] == "prod" else 10
                    ),
                },
            },
            DEFAULTS: {"Environment": "prod"},
        }
    )
    assert out == {
        "config": {"database": {"url": "postgresql://localhost:5432/mydb", "pool-size": 50}}
    }


def _conditional_template() -> dict:
    return {
        "title": "Title",
        "subtitle": "Subtitle",
        DEFAULTS: {
            "ShowSubtitle": True,
            "Title": "My Chart",
            "Subtitle": lambda env: "A subtitle" if env["ShowSubtitle"] else REMOVE,
        },
    }


def test_conditional_defaults() -> None:
    assert transform(_conditional_template()) == {"title": "My Chart", "subtitle": "A subtitle"}
    assert transform(_conditional_template(), "ShowSubtitle", False) == {"title": "My Chart"}


def test_lazy_evaluation_only_runs_referenced_defaults() -> None:
    calls: list[str] = []

    def make(name: str):
        def compute(env: object) -> str:
            calls.append(name)
            return f"value-{name}"

        return compute

    out = transform({"needed": "A", DEFAULTS: {"A": make("a"), "B": make("b")}})
    assert out == {"needed": "value-a"}
    assert calls == ["a"]


# Global defaults registry


def test_global_defaults_sit_beneath_user_bindings() -> None:
    register_defaults(Subtitle=REMOVE, Title="Untitled")
    template = {"title": "Title", "subtitle": "Subtitle"}
    assert transform(template) == {"title": "Untitled"}
    assert transform(template, "Title", "Sales") == {"title": "Sales"}


def test_template_defaults_beat_global_defaults() -> None:
    register_defaults({"Color": "red"})
    assert transform({"c": "Color", DEFAULTS: {"Color": "blue"}}) == {"c": "blue"}


def test_global_defaults_can_be_disabled() -> None:
    register_defaults(Subtitle=REMOVE)
    out = transform(
        {"title": "Title", "subtitle": "Subtitle"},
        "Title",
        "X",
        settings=DataflowSettings(use_defaults=False),
    )
    assert out == {"title": "X", "subtitle": "Subtitle"}


# Subkey functions


def test_subkey_fn_post_processes_substitutions() -> None:
    seen: list[tuple] = []

    def clamp(env, key, value):
        seen.append((key, value, env["Max"]))
        return min(value, env["Max"])

    register_subkey_fn("Size", clamp)
    template = {"size": "Size", DEFAULTS: {"Max": 10, "Size": 4}}
    assert transform(template) == {"size": 4}
    assert transform(template, "Size", 25) == {"size": 10}
    assert seen == [("Size", 4, 10), ("Size", 25, 10)]


def test_subkey_fn_sees_function_results() -> None:
    register_subkey_fn("Label", lambda env, key, value: value.upper())
    out = transform({"label": "Label"}, {"Name": "ada", "Label": lambda env: f"hi {env['Name']}"})
    assert out == {"label": "HI ADA"}


def test_subkey_fn_applies_to_unbound_keys() -> None:
    register_subkey_fn("Title", lambda env, key, value: REMOVE if value == key else value)
    assert transform({"title": "Title", "x": 1}) == {"x": 1}
    assert transform({"title": "Title", "x": 1}, "Title", "Sales") == {"title": "Sales", "x": 1}


def test_subkey_fns_can_be_reset() -> None:
    register_subkey_fn("Size", lambda env, key, value: 0)
    reset_subkey_fns()
    assert transform({"size": "Size"}, "Size", 3) == {"size": 3}
