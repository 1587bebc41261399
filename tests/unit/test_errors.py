from __future__ import annotations

import pytest

from lib_layered_compose.domain.errors import (
    ArtifactCorruptError,
    ArtifactNotFoundError,
    CacheWriteError,
    CompositionError,
    InvalidFormat,
    LayerResolutionError,
    MalformedPayloadError,
    MissingRouteFieldError,
    NotFound,
    UnresolvableServiceDefinitionError,
    ValidationError,
    Violation,
)


def test_error_hierarchy() -> None:
    for cls in (LayerResolutionError, NotFound, InvalidFormat, ValidationError, CacheWriteError, ArtifactNotFoundError):
        assert issubclass(cls, CompositionError)
    for cls in (MalformedPayloadError, MissingRouteFieldError, UnresolvableServiceDefinitionError):
        assert issubclass(cls, ValidationError)
    assert issubclass(ArtifactCorruptError, ArtifactNotFoundError)


def test_validation_error_lists_every_violation() -> None:
    violations = [
        Violation("routes", "/a", "missing methods", 3, "app"),
        Violation("routes", "regex[1]", "missing pattern", 1, "vendor.blog"),
    ]
    error = MissingRouteFieldError("routes", violations)

    message = str(error)
    assert message.splitlines()[0] == "2 violations in routes layers"
    assert "[routes] layer #3 'app': /a: missing methods" in message
    assert "[routes] layer #1 'vendor.blog': regex[1]: missing pattern" in message
    assert error.violations == tuple(violations)


def test_validation_error_report_points_at_first_violation() -> None:
    error = UnresolvableServiceDefinitionError("services", [Violation("services", "mailer", "missing class", 2, "p")])

    report = error.as_dict()

    assert report["error"] == "UnresolvableServiceDefinitionError"
    assert (report["kind"], report["position"], report["layer"], report["key"]) == ("services", 2, "p", "mailer")
    assert report["violations"] == [
        {"kind": "services", "key": "mailer", "message": "missing class", "position": 2, "layer": "p"}
    ]


def test_violation_without_layer_says_unknown() -> None:
    assert Violation("config", "<root>", "not a mapping").describe() == "[config] layer unknown: <root>: not a mapping"


def test_layer_resolution_error_report() -> None:
    error = LayerResolutionError("cannot import", position=2, reference="vendor.missing")

    assert error.as_dict() == {
        "error": "LayerResolutionError",
        "message": "cannot import",
        "kind": None,
        "position": 2,
        "layer": "vendor.missing",
        "key": None,
    }


def test_cache_write_error_carries_commit_state() -> None:
    error = CacheWriteError("boom", identity="/c/routes.http.json", committed=True)

    assert error.as_dict()["committed"] is True
    assert error.identity == "/c/routes.http.json"


def test_artifact_errors_are_caught_together() -> None:
    with pytest.raises(ArtifactNotFoundError) as info:
        raise ArtifactCorruptError("bad", kind="config", mode="cli", identity="/c/config.cli.json")

    assert info.value.as_dict()["mode"] == "cli"
