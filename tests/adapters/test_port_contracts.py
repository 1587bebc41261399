"""Adapter contract tests: every shipped adapter satisfies its application port."""

from __future__ import annotations

import types
from pathlib import Path

import pytest

from lib_layered_compose.adapters.cache.invalidation import BytecodeCacheInvalidator
from lib_layered_compose.adapters.file_loaders.structured import FILE_LOADERS
from lib_layered_compose.adapters.sources.directory import DirectoryLayerSource
from lib_layered_compose.adapters.sources.memory import MappingLayerSource
from lib_layered_compose.adapters.sources.module import ModuleLayerSource
from lib_layered_compose.application import ports
from lib_layered_compose.testing import _FailingInvalidator


@pytest.mark.parametrize(
    "factory",
    [
        lambda tmp: MappingLayerSource("memory", {("http", "config"): {"a": 1}}),
        lambda tmp: ModuleLayerSource(types.SimpleNamespace(CONFIG_HTTP={"a": 1}), name="module"),
        lambda tmp: DirectoryLayerSource(tmp),
    ],
    ids=["memory", "module", "directory"],
)
def test_layer_sources_satisfy_port(tmp_path: Path, factory) -> None:
    (tmp_path / "config.http.json").write_text('{"a": 1}', encoding="utf-8")

    source = factory(tmp_path)

    assert isinstance(source, ports.LayerSource)
    assert source.slot("http", "config") == {"a": 1}
    assert source.slot("cli", "config") is None
    assert isinstance(source.name, str)


@pytest.mark.parametrize("suffix", list(FILE_LOADERS))
def test_structured_loaders_satisfy_port(tmp_path: Path, suffix: str) -> None:
    path = tmp_path / f"config.http{suffix}"
    path.write_text('{"service": {"value": 1}}' if suffix == ".json" else _document(suffix), encoding="utf-8")

    data = FILE_LOADERS[suffix].load(str(path))

    assert data["service"]["value"] == 1


def _document(suffix: str) -> str:
    return "[service]\nvalue = 1\n" if suffix == ".toml" else "service:\n  value: 1\n"


def test_invalidators_satisfy_port() -> None:
    assert isinstance(BytecodeCacheInvalidator(), ports.CacheInvalidator)
    assert isinstance(_FailingInvalidator(), ports.CacheInvalidator)
