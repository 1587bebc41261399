"""Shared fixtures for building throwaway applications on disk.

Tests describe an application as a mapping of relative paths to file bodies;
``create_app`` writes it below ``tmp_path`` and returns an ``AppSandbox`` that
knows how to produce settings, blueprints and stores for it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from lib_layered_compose.adapters.cache.store import ArtifactStore
from lib_layered_compose.core import Blueprint, load_blueprint
from lib_layered_compose.settings import Settings

VALID_ROUTE = {"controller": "demo.controllers.Home", "action": "index", "methods": ["GET"]}

DEMO_FILES: Mapping[str, str] = {
    "config/layers.toml": 'providers = ["providers/blog"]\n',
    "config/config.http.toml": "[app]\ndebug = true\n",
    "config/config.http.prod.toml": "[app]\ndebug = false\n",
    "config/routes.http.toml": '["/"]\ncontroller = "demo.controllers.Home"\naction = "index"\nmethods = ["GET"]\n',
    "config/services.http.toml": 'mailer = "demo.services.LogMailer"\n',
    "providers/blog/config.http.toml": "[blog]\nper_page = 10\n",
    "providers/blog/routes.http.toml": (
        '["/blog"]\ncontroller = "blog.controllers.Posts"\naction = "index"\nmethods = ["GET"]\n'
    ),
    "providers/blog/services.http.toml": 'mailer = "blog.services.SmtpMailer"\nfeed = "blog.services.Feed"\n',
}


@dataclass(slots=True)
class AppSandbox:
    """An application tree written below a temporary directory."""

    root: Path

    @property
    def cache_dir(self) -> Path:
        return self.root / "var" / "cache"

    def write(self, relative: str, content: str) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def blueprint(self, environment: str | None = None) -> Blueprint:
        return load_blueprint(self.root, environment)

    def store(self, format: str = "json") -> ArtifactStore:
        return ArtifactStore(self.cache_dir, format=format)

    def settings(self, **overrides: object) -> Settings:
        return Settings.from_env({}, app_root=self.root, **overrides)

    @property
    def env(self) -> dict[str, str]:
        """Environment variables pointing the CLI at this sandbox."""

        return {"LAYERED_COMPOSE_APP_ROOT": str(self.root), "LAYERED_COMPOSE_CACHE_DIR": str(self.cache_dir)}


def create_app(tmp_path: Path, files: Mapping[str, str] | None = None) -> AppSandbox:
    """Write *files* (default: a small blog-enabled demo) below ``tmp_path/app``."""

    sandbox = AppSandbox(root=tmp_path / "app")
    sandbox.root.mkdir(parents=True, exist_ok=True)
    (sandbox.root / "config").mkdir(exist_ok=True)
    for relative, content in (DEMO_FILES if files is None else files).items():
        sandbox.write(relative, content)
    return sandbox
