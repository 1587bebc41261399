"""Deployment settings for builds and runtime loads.

Purpose
    Gather the handful of knobs a deployment varies (where the application
    lives, where artifacts go, which environment overlay applies, which
    artifact format to write) from ``LAYERED_COMPOSE_*`` environment
    variables, with explicit keyword overrides taking precedence.

Contents
    - ``ENV_PREFIX``: environment variable prefix.
    - ``Settings``: frozen settings object with ``from_env``, ``store`` and
      ``blueprint`` helpers.

System Integration
    The CLI builds one ``Settings`` per invocation; applications can do the
    same at boot and call ``settings.store()`` to reach the runtime loader.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Mapping, cast

from .adapters.cache.store import ARTIFACT_FORMATS, ArtifactStore
from .adapters.env.default import DefaultEnvLoader
from .core import Blueprint, load_blueprint
from .domain.layers import DEFAULT_MODES, check_mode

ENV_PREFIX: Final[str] = "LAYERED_COMPOSE"

_FIELDS: Final[frozenset[str]] = frozenset({"app_root", "cache_dir", "environment", "artifact_format", "modes"})


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved deployment settings.

    Attributes
    ----------
    app_root:
        Application root holding ``config/``.
    cache_dir:
        Artifact directory; defaults to ``<app_root>/var/cache``.
    environment:
        Environment overlay variant or ``None``.
    artifact_format:
        ``"json"`` or ``"python"``.
    modes:
        Modes warmed when no single mode is requested.

    Examples
    --------
    >>> settings = Settings.from_env({"LAYERED_COMPOSE_ENVIRONMENT": "prod"}, app_root="/srv/app")
    >>> settings.environment, settings.cache_dir.as_posix()
    ('prod', '/srv/app/var/cache')
    """

    app_root: Path = field(default_factory=Path.cwd)
    cache_dir: Path | None = None
    environment: str | None = None
    artifact_format: str = "json"
    modes: tuple[str, ...] = DEFAULT_MODES

    def __post_init__(self) -> None:
        object.__setattr__(self, "app_root", Path(self.app_root))
        cache_dir = Path(self.app_root) / "var" / "cache" if self.cache_dir is None else Path(self.cache_dir)
        object.__setattr__(self, "cache_dir", cache_dir)
        if self.artifact_format not in ARTIFACT_FORMATS:
            raise ValueError(
                f"Unsupported artifact format: {self.artifact_format!r} (expected one of {', '.join(ARTIFACT_FORMATS)})"
            )
        if self.environment is not None:
            check_mode(self.environment)
        modes = tuple(check_mode(mode) for mode in self.modes)
        if not modes:
            raise ValueError("At least one mode is required")
        object.__setattr__(self, "modes", modes)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> Settings:
        """Build settings from ``LAYERED_COMPOSE_*`` variables and *overrides*.

        Overrides whose value is ``None`` are ignored so CLI options that were
        not given fall through to the environment.

        Recognised variables: ``LAYERED_COMPOSE_APP_ROOT``,
        ``LAYERED_COMPOSE_CACHE_DIR``, ``LAYERED_COMPOSE_ENVIRONMENT``,
        ``LAYERED_COMPOSE_ARTIFACT_FORMAT`` and ``LAYERED_COMPOSE_MODES``
        (comma separated).
        """

        unknown = sorted(set(overrides) - _FIELDS)
        if unknown:
            raise TypeError(f"Unknown settings: {', '.join(unknown)}")
        loaded = DefaultEnvLoader(environ=environ).load(ENV_PREFIX)
        values: dict[str, Any] = {key: loaded[key] for key in _FIELDS if key in loaded}
        values.update({key: value for key, value in overrides.items() if value is not None})

        environment = values.get("environment")
        cache_dir = values.get("cache_dir")
        return cls(
            app_root=Path(str(values.get("app_root", "."))).expanduser(),
            cache_dir=Path(str(cache_dir)).expanduser() if cache_dir not in (None, "") else None,
            environment=str(environment) if environment not in (None, "") else None,
            artifact_format=str(values.get("artifact_format", "json")),
            modes=_parse_modes(values.get("modes", DEFAULT_MODES)),
        )

    def store(self) -> ArtifactStore:
        """Return the artifact store for :attr:`cache_dir`."""

        return ArtifactStore(cast(Path, self.cache_dir), format=self.artifact_format)

    def blueprint(self) -> Blueprint:
        """Return the layer plan of :attr:`app_root` for :attr:`environment`."""

        return load_blueprint(self.app_root, self.environment)


def _parse_modes(value: Any) -> tuple[str, ...]:
    """Accept ``"http,cli"`` or a sequence of mode tokens.

    >>> _parse_modes("http, cli")
    ('http', 'cli')
    """

    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(",") if part.strip())
    return tuple(str(part) for part in value)


__all__ = ["ENV_PREFIX", "Settings"]
