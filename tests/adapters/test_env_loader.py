"""Environment loader adapter tests: prefix filtering, nesting and coercion."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from lib_layered_compose.adapters.env.default import DefaultEnvLoader, assign_nested


def test_env_loader_nested() -> None:
    """Nested keys use ``__``; values are coerced; other prefixes are ignored."""

    environ = {
        "LAYERED_COMPOSE_CACHE_DIR": "/var/cache/app",
        "LAYERED_COMPOSE_STORE__RETRIES": "3",
        "LAYERED_COMPOSE_STORE__FSYNC": "true",
        "OTHER": "ignored",
    }

    data = DefaultEnvLoader(environ=environ).load("LAYERED_COMPOSE")

    assert data == {"cache_dir": "/var/cache/app", "store": {"retries": 3, "fsync": True}}


def test_env_loader_empty_environ_is_respected() -> None:
    """An explicitly empty mapping must not fall back to the process environment."""

    assert DefaultEnvLoader(environ={}).load("PATH") == {}


def test_env_loader_reads_process_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LAYERED_COMPOSE_ENVIRONMENT", "prod")

    assert DefaultEnvLoader().load("LAYERED_COMPOSE")["environment"] == "prod"


def test_assign_nested_overwrites_scalar_raises() -> None:
    container: dict[str, object] = {"a": "value"}

    with pytest.raises(ValueError):
        assign_nested(container, "A__B", 1)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("false", False), ("NULL", None), ("-4", -4), ("2.5", 2.5), ("nan", "nan"), ("inf", "inf"), ("http,cli", "http,cli")],
)
def test_coercion(raw: str, expected: object) -> None:
    assert DefaultEnvLoader(environ={"X_VALUE": raw}).load("X")["value"] == expected


SCALAR_VALUES = st.sampled_from(["0", "1", "true", "false", "3.5", "none", "prod", "json"])
NAMESPACE_KEYS = st.sampled_from(["STORE__FORMAT", "STORE__DIR", "ENVIRONMENT"])


@given(st.dictionaries(NAMESPACE_KEYS, SCALAR_VALUES, max_size=3))
def test_env_loader_handles_random_namespace(entries) -> None:
    """Randomised inputs map to consistent nested payloads."""

    environ = {f"DEMO_{key}": value for key, value in entries.items()}
    environ["IGNORED"] = "1"

    payload = DefaultEnvLoader(environ=environ).load("DEMO")

    for key in entries:
        node = payload
        parts = key.lower().split("__")
        for part in parts[:-1]:
            node = node[part]
        assert parts[-1] in node
    assert "ignored" not in payload
