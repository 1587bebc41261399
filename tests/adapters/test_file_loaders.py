from __future__ import annotations

import json
from pathlib import Path

import pytest

from lib_layered_compose.adapters.file_loaders.structured import (
    FILE_LOADERS,
    JSONFileLoader,
    TOMLFileLoader,
    YAMLFileLoader,
)
from lib_layered_compose.domain.errors import InvalidFormat, NotFound


def test_toml_loader_reads_quoted_route_paths(tmp_path: Path) -> None:
    path = tmp_path / "routes.http.toml"
    path.write_text('["/blog"]\ncontroller = "blog.Posts"\naction = "index"\nmethods = ["GET"]\n', encoding="utf-8")

    data = TOMLFileLoader().load(str(path))

    assert data["/blog"]["methods"] == ["GET"]


def test_toml_loader_missing_file(tmp_path: Path) -> None:
    with pytest.raises(NotFound):
        TOMLFileLoader().load(str(tmp_path / "missing.toml"))


def test_toml_loader_invalid(tmp_path: Path) -> None:
    path = tmp_path / "config.http.toml"
    path.write_text("[app\n", encoding="utf-8")

    with pytest.raises(InvalidFormat, match="Invalid TOML"):
        TOMLFileLoader().load(str(path))


def test_json_loader_invalid(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{invalid}", encoding="utf-8")

    with pytest.raises(InvalidFormat):
        JSONFileLoader().load(str(path))


def test_json_loader_rejects_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "routes.json"
    path.write_text(json.dumps([1, 2]), encoding="utf-8")

    with pytest.raises(InvalidFormat, match="did not produce a mapping"):
        JSONFileLoader().load(str(path))


def test_yaml_loader_handles_empty_file(tmp_path: Path) -> None:
    path = tmp_path / "services.http.yaml"
    path.write_text("# no services yet\n", encoding="utf-8")

    assert YAMLFileLoader().load(str(path)) == {}


def test_yaml_loader_refuses_python_tags(tmp_path: Path) -> None:
    path = tmp_path / "services.http.yaml"
    path.write_text("mailer: !!python/object/apply:os.getcwd []\n", encoding="utf-8")

    with pytest.raises(InvalidFormat, match="Invalid YAML"):
        YAMLFileLoader().load(str(path))


def test_registry_covers_supported_suffixes() -> None:
    assert list(FILE_LOADERS) == [".toml", ".json", ".yaml", ".yml"]
