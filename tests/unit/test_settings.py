"""Deployment settings resolved from ``LAYERED_COMPOSE_*`` variables."""

from __future__ import annotations

from pathlib import Path

import pytest

from lib_layered_compose.adapters.cache.store import ArtifactStore
from lib_layered_compose.settings import Settings


def test_settings_defaults(tmp_path: Path) -> None:
    settings = Settings.from_env({}, app_root=tmp_path)

    assert settings.app_root == tmp_path
    assert settings.cache_dir == tmp_path / "var" / "cache"
    assert settings.environment is None
    assert settings.artifact_format == "json"
    assert settings.modes == ("http", "cli")


def test_settings_read_environment(tmp_path: Path) -> None:
    environ = {
        "LAYERED_COMPOSE_APP_ROOT": str(tmp_path),
        "LAYERED_COMPOSE_CACHE_DIR": str(tmp_path / "artifacts"),
        "LAYERED_COMPOSE_ENVIRONMENT": "prod",
        "LAYERED_COMPOSE_ARTIFACT_FORMAT": "python",
        "LAYERED_COMPOSE_MODES": "http",
        "UNRELATED": "ignored",
    }

    settings = Settings.from_env(environ)

    assert settings.cache_dir == tmp_path / "artifacts"
    assert settings.environment == "prod"
    assert settings.artifact_format == "python"
    assert settings.modes == ("http",)


def test_explicit_overrides_beat_environment(tmp_path: Path) -> None:
    environ = {"LAYERED_COMPOSE_ENVIRONMENT": "prod", "LAYERED_COMPOSE_ARTIFACT_FORMAT": "python"}

    settings = Settings.from_env(environ, app_root=tmp_path, environment="staging", artifact_format=None)

    assert settings.environment == "staging"
    assert settings.artifact_format == "python"


@pytest.mark.parametrize(
    "overrides",
    [
        {"artifact_format": "xml"},
        {"environment": "Prod!"},
        {"modes": "http,CLI"},
        {"modes": ""},
    ],
)
def test_invalid_settings_rejected(tmp_path: Path, overrides: dict[str, str]) -> None:
    with pytest.raises(ValueError):
        Settings.from_env({}, app_root=tmp_path, **overrides)


def test_unknown_override_rejected(tmp_path: Path) -> None:
    with pytest.raises(TypeError, match="Unknown settings: colour"):
        Settings.from_env({}, app_root=tmp_path, colour="blue")


def test_store_uses_cache_dir_and_format(tmp_path: Path) -> None:
    store = Settings.from_env({}, app_root=tmp_path, artifact_format="python").store()

    assert isinstance(store, ArtifactStore)
    assert store.identity("routes", "cli") == tmp_path / "var" / "cache" / "routes.cli.py"


def test_blueprint_reads_plan(tmp_path: Path) -> None:
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "layers.json").write_text('{"providers": ["vendor.blog"]}', encoding="utf-8")

    blueprint = Settings.from_env({}, app_root=tmp_path, environment="prod").blueprint()

    assert blueprint.providers == ("vendor.blog",)
    assert blueprint.environment == "prod"


def test_store_uses_the_derived_cache_dir(tmp_path: Path) -> None:
    store = Settings(app_root=tmp_path, artifact_format="python").store()

    assert isinstance(store, ArtifactStore)
    assert (store.cache_dir, store.format) == (tmp_path / "var" / "cache", "python")
