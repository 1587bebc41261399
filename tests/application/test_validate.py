"""Structural validation of composed artifacts."""

from __future__ import annotations

import pytest

from lib_layered_compose.application.validate import ensure_valid, is_symbol, validate
from lib_layered_compose.domain.errors import (
    MalformedPayloadError,
    MissingRouteFieldError,
    UnresolvableServiceDefinitionError,
)

ROUTE = {"controller": "app.controllers.Home", "action": "index", "methods": ["GET"]}
PATTERN = {"pattern": "^/post/(?P<id>\\d+)$", "controller": "app.controllers.Post", "action": "show", "methods": ["GET"]}


@pytest.mark.parametrize("value", ["app.Home", "pkg.mod:Factory", "_private", "a.b.c"])
def test_symbols_accepted(value: str) -> None:
    assert is_symbol(value)


@pytest.mark.parametrize("value", ["", " ", "1abc", "a..b", "a b", "pkg:", None, 3])
def test_symbols_rejected(value: object) -> None:
    assert not is_symbol(value)


def test_valid_routes_pass() -> None:
    assert validate("routes", {"/": ROUTE, "/about": {**ROUTE, "name": "about"}, "regex": [PATTERN]}) == ()


def test_route_missing_methods_reported() -> None:
    violations = validate("routes", {"/x": {"controller": "A", "action": "f"}})

    assert [(v.key, v.message) for v in violations] == [("/x", "missing methods")]


@pytest.mark.parametrize(
    ("entry", "message"),
    [
        ({**ROUTE, "methods": []}, "methods must be a non-empty list of method names"),
        ({**ROUTE, "methods": ["GET", ""]}, "methods must be a non-empty list of method names"),
        ({**ROUTE, "methods": "GET"}, "methods must be a non-empty list of method names"),
        ({**ROUTE, "controller": "not a symbol"}, "controller must be a symbol reference"),
        ({**ROUTE, "action": "  "}, "action must be a non-empty string"),
        ({"action": "index", "methods": ["GET"]}, "missing controller"),
        ("app.Home", "route entry must be a mapping, got str"),
    ],
)
def test_route_field_problems(entry: object, message: str) -> None:
    violations = validate("routes", {"/x": entry})

    assert [v.message for v in violations] == [message]


def test_pattern_routes_report_index() -> None:
    pattern = {key: value for key, value in PATTERN.items() if key != "pattern"}

    violations = validate("routes", {"regex": [PATTERN, pattern]})

    assert [(v.key, v.message) for v in violations] == [("regex[1]", "missing pattern")]


def test_pattern_routes_must_be_a_list() -> None:
    violations = validate("routes", {"regex": PATTERN})

    assert violations[0].message == "pattern routes must be an ordered list"


def test_validation_is_exhaustive() -> None:
    routes = {"/a": {"controller": "A", "action": "f"}, "/b": {"controller": "B", "methods": ["GET"]}}

    with pytest.raises(MissingRouteFieldError) as info:
        ensure_valid("routes", routes)

    assert {(v.key, v.message) for v in info.value.violations} == {("/a", "missing methods"), ("/b", "missing action")}


def test_violations_are_attributed_to_layers() -> None:
    origins = {"/a": {"layer": "vendor.blog", "kind": "provider", "position": 1, "key": "/a"}}

    violation = validate("routes", {"/a": {"controller": "A", "action": "f"}}, origins)[0]

    assert (violation.position, violation.layer) == (1, "vendor.blog")


@pytest.mark.parametrize(
    "services",
    [
        {"mailer": "app.Mailer"},
        {"mailer": {"class": "app.Mailer"}},
        {"mailer": {"class": "app.Mailer", "options": {"host": "localhost", "ports": [25, 587], "tls": None}}},
    ],
)
def test_valid_services_pass(services: dict) -> None:
    ensure_valid("services", services)


@pytest.mark.parametrize(
    ("definition", "fragment"),
    [
        ({"options": {}}, "missing class"),
        ({"class": ""}, "class must be a symbol reference"),
        ({"class": "app.Mailer", "options": ["x"]}, "options must be a mapping"),
        ({"class": "app.Mailer", "factory": "app.make"}, "unsupported definition fields: factory"),
        ({"class": "app.Mailer", "options": {"hook": print}}, "is not a data value"),
        ("not a symbol", "is not a symbol"),
        (42, "definition must be a class reference"),
    ],
)
def test_service_problems(definition: object, fragment: str) -> None:
    with pytest.raises(UnresolvableServiceDefinitionError) as info:
        ensure_valid("services", {"mailer": definition})

    assert any(fragment in violation.message for violation in info.value.violations)
    assert all(violation.kind == "services" for violation in info.value.violations)


@pytest.mark.parametrize("value", [object(), {1, 2}, lambda: None, float("nan"), float("inf")])
def test_config_rejects_non_data(value: object) -> None:
    with pytest.raises(MalformedPayloadError) as info:
        ensure_valid("config", {"app": {"hook": value}})

    assert info.value.violations[0].key == "app.hook"


def test_config_rejects_non_string_keys() -> None:
    violations = validate("config", {"app": {1: "x"}})

    assert violations[0].message == "mapping keys must be strings"


def test_top_level_must_be_a_mapping() -> None:
    violations = validate("config", ["not", "a", "mapping"])

    assert violations[0].key == "<root>"


def test_config_accepts_any_shape_of_data() -> None:
    assert validate("config", {"a": {"b": [1, 2.5, "x", None, True, {"c": []}]}}) == ()


def test_unknown_kind_rejected() -> None:
    with pytest.raises(ValueError):
        validate("templates", {})


@pytest.mark.parametrize(
    ("payload", "key"),
    [
        ({"app": {"name": "\ud800"}}, "app.name"),
        ({"app": {"tags": ["ok", "\udcff"]}}, "app.tags[1]"),
        ({"app": {"\ud800": 1}}, "app.'\\ud800'"),
        ({"\ud800": {}}, "'\\ud800'"),
    ],
)
def test_config_rejects_text_that_is_not_utf8(payload: dict, key: str) -> None:
    with pytest.raises(MalformedPayloadError) as info:
        ensure_valid("config", payload)

    [violation] = info.value.violations
    assert violation.key == key
    assert "UTF-8" in violation.message


def test_nested_violation_names_the_layer_that_set_the_value() -> None:
    """A sibling edit by a later layer must not take the blame."""

    origins = {"app": {"layer": "app", "kind": "app_base", "position": 2, "key": "app"}}
    provenance = {
        "app.hook": {"layer": "vendor.blog", "kind": "provider", "position": 1, "key": "app.hook"},
        "app.name": {"layer": "app", "kind": "app_base", "position": 2, "key": "app.name"},
    }

    [violation] = validate("config", {"app": {"hook": {1, 2}, "name": "x"}}, origins, provenance=provenance)

    assert (violation.key, violation.layer, violation.position) == ("app.hook", "vendor.blog", 1)


def test_list_item_violation_uses_the_list_provenance() -> None:
    provenance = {"regex": {"layer": "vendor.blog", "kind": "provider", "position": 1, "key": "regex"}}
    origins = {"regex": {"layer": "app", "kind": "app_base", "position": 2, "key": "regex"}}

    [violation] = validate("routes", {"regex": [{**PATTERN, "action": ""}]}, origins, provenance=provenance)

    assert (violation.key, violation.layer) == ("regex[0]", "vendor.blog")


def test_route_field_violation_names_the_layer_that_set_the_field() -> None:
    origins = {"/a": {"layer": "app", "kind": "app_base", "position": 2, "key": "/a"}}
    provenance = {
        "/a.controller": {"layer": "vendor.blog", "kind": "provider", "position": 1, "key": "/a.controller"},
        "/a.action": {"layer": "app", "kind": "app_base", "position": 2, "key": "/a.action"},
        "/a.methods": {"layer": "vendor.blog", "kind": "provider", "position": 1, "key": "/a.methods"},
    }
    routes = {"/a": {"controller": "not a symbol", "action": "f", "methods": ["GET"]}}

    [violation] = validate("routes", routes, origins, provenance=provenance)

    assert violation.layer == "vendor.blog"


def test_missing_field_falls_back_to_the_top_level_origin() -> None:
    origins = {"/a": {"layer": "app", "kind": "app_base", "position": 2, "key": "/a"}}
    provenance = {"/a.controller": {"layer": "vendor.blog", "kind": "provider", "position": 1, "key": "/a.controller"}}

    [violation] = validate("routes", {"/a": {"controller": "A", "action": "f"}}, origins, provenance=provenance)

    assert (violation.message, violation.layer) == ("missing methods", "app")
