"""Composition root for ``lib_layered_compose``.

Purpose
-------
Provide the entry points that read ordered layers, run the kind-specific merge
algebra, validate the outcome, persist snapshots and load them back at boot.
Everything environment-specific (filesystem layout, module imports, artifact
storage) is reached through adapters wired here.

Contents
--------
* :class:`Blueprint` – one application's ordered layer plan.
* :func:`load_blueprint` – read ``config/layers.*`` below an application root.
* :func:`collect_layers` – resolve the plan into ordered :class:`Layer` objects.
* :func:`build` / :func:`build_all` – compose and validate without persisting.
* :func:`warm` – build every requested artifact, then persist them all.
* :func:`load` – runtime read of a persisted snapshot, no merge.

System Role
-----------
Builds happen at deploy or warm-up time; the runtime only ever calls
:func:`load`. Validation failures abort before anything is written.
"""

from __future__ import annotations

import contextvars
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Final, Iterable, Iterator, Mapping, Sequence

from .adapters.cache.store import ArtifactStore
from .adapters.file_loaders.structured import FILE_LOADERS
from .adapters.sources.resolve import resolve_source
from .application.merge import MergeOutcome, merge_config_layers, merge_routes_layers, merge_services_layers
from .application.ports import LayerSource
from .application.validate import ensure_valid
from .domain.errors import (
    InvalidFormat,
    LayerResolutionError,
    MalformedPayloadError,
    NotFound,
    ValidationError,
    Violation,
)
from .domain.layers import (
    APP_BASE,
    APP_ENV,
    ARTIFACT_KINDS,
    BASELINE,
    CONFIG,
    DEFAULT_MODES,
    PROVIDER,
    ROUTES,
    SERVICES,
    Layer,
    check_kind,
    check_mode,
)
from .domain.result import CacheArtifact, CompositionResult
from .observability import log_debug, log_error, log_info, make_event

#: Vendor defaults used when an application does not name its own baseline.
DEFAULT_BASELINE: Final[str] = "lib_layered_compose.baseline"

#: Directory below the application root holding the app layer and the plan.
APP_CONFIG_DIR: Final[str] = "config"

_PLAN_STEM: Final[str] = "layers"

_MERGERS: Final[dict[str, Callable[[Sequence[Layer]], MergeOutcome]]] = {
    CONFIG: merge_config_layers,
    ROUTES: merge_routes_layers,
    SERVICES: merge_services_layers,
}


@dataclass(frozen=True, slots=True)
class Blueprint:
    """Ordered layer plan of one application.

    Attributes
    ----------
    app:
        Application layer source or reference; supplies the base slots and,
        with ``environment`` as variant, the overlay slots.
    baseline:
        Vendor baseline source or reference (``None`` for no baseline).
    providers:
        Provider sources or references in precedence order (later wins).
    environment:
        Environment overlay variant, e.g. ``"prod"``; ``None`` disables it.
    base_dir:
        Directory that relative directory references resolve against.

    Examples
    --------
    >>> plan = Blueprint(app="app.layers", providers=("blog.layers", "shop.layers"), environment="prod")
    >>> [(kind, position) for kind, position, _, _ in plan.plan()]
    [('baseline', 0), ('provider', 1), ('provider', 2), ('app_base', 3), ('app_env', 4)]
    """

    app: Any
    baseline: Any = DEFAULT_BASELINE
    providers: tuple[Any, ...] = ()
    environment: str | None = None
    base_dir: Path | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "providers", tuple(self.providers))
        if self.environment is not None:
            check_mode(self.environment)

    def plan(self) -> Iterator[tuple[str, int, Any, str | None]]:
        """Yield ``(layer_kind, position, reference, variant)`` in precedence order.

        Positions are fixed by the plan: an absent baseline or overlay leaves a
        gap instead of renumbering later layers.
        """

        if self.baseline is not None:
            yield BASELINE, 0, self.baseline, None
        for index, provider in enumerate(self.providers, 1):
            yield PROVIDER, index, provider, None
        app_position = len(self.providers) + 1
        yield APP_BASE, app_position, self.app, None
        if self.environment is not None:
            yield APP_ENV, app_position + 1, self.app, self.environment


def load_blueprint(app_root: str | Path, environment: str | None = None) -> Blueprint:
    """Read the layer plan of the application rooted at *app_root*.

    Why
    ----
    Applications declare their providers once, in a data file next to their
    own layer files, instead of wiring them in code.

    What
    ----
    Looks for ``config/layers.{toml,json,yaml,yml}``. Recognised keys are
    ``baseline`` (reference or ``false`` for none), ``providers`` (ordered
    list of references) and ``app`` (reference, default ``config``). A
    missing plan file means "baseline plus the application's own layer".

    Raises
    ------
    InvalidFormat
        When the plan file does not parse, has the wrong shape, or exists in
        more than one format.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> (Path(tmp.name) / "config").mkdir()
    >>> _ = (Path(tmp.name) / "config" / "layers.toml").write_text('providers = ["vendor.blog"]', encoding="utf-8")
    >>> blueprint = load_blueprint(tmp.name, "prod")
    >>> blueprint.providers, blueprint.environment
    (('vendor.blog',), 'prod')
    >>> tmp.cleanup()
    """

    root = Path(app_root).expanduser().resolve()
    plan = _read_plan(root / APP_CONFIG_DIR)
    providers = plan.get("providers", [])
    if not isinstance(providers, list):
        raise InvalidFormat(f"{root / APP_CONFIG_DIR}: 'providers' must be a list of layer references")
    baseline = plan.get("baseline", DEFAULT_BASELINE)
    app = plan.get("app", APP_CONFIG_DIR)
    if isinstance(app, str) and not Path(app).is_absolute():
        app = str(root / app)
    blueprint = Blueprint(
        app=app,
        baseline=None if baseline is False else baseline,
        providers=tuple(providers),
        environment=environment,
        base_dir=root,
    )
    log_debug("blueprint_loaded", app_root=str(root), providers=len(blueprint.providers), environment=environment)
    return blueprint


def collect_layers(mode: str, kind: str, *, blueprint: Blueprint) -> list[Layer]:
    """Return the layers contributing to ``(mode, kind)`` in precedence order.

    Parameters
    ----------
    mode:
        Execution mode (``http``, ``cli``...).
    kind:
        Artifact kind (``config``, ``routes``, ``services``).
    blueprint:
        Layer plan to resolve.

    Returns
    -------
    list[Layer]
        Present slots only; a layer without the slot is omitted.

    Raises
    ------
    LayerResolutionError
        A listed layer reference cannot be resolved, or its slot cannot be read.
    MalformedPayloadError
        A slot does not parse, is ambiguous, or is not a mapping.
    """

    check_mode(mode)
    check_kind(kind)
    layers: list[Layer] = []
    for layer_kind, position, reference, variant in blueprint.plan():
        source = resolve_source(reference, position=position, base_dir=blueprint.base_dir, kind=kind)
        name = _layer_name(layer_kind, source, variant)
        payload = _read_slot(source, mode, kind, variant, position=position, name=name)
        if payload is None:
            log_debug("layer_missing", **make_event(kind, mode, {"layer": name, "position": position}))
            continue
        layers.append(Layer(kind=layer_kind, order=position, name=name, payload=payload))
        log_debug("layer_collected", **make_event(kind, mode, {"layer": name, "position": position, "keys": len(payload)}))
    return layers


def build(mode: str, kind: str, *, blueprint: Blueprint) -> CompositionResult:
    """Compose and validate one artifact without persisting it.

    Examples
    --------
    >>> from .adapters.sources.memory import MappingLayerSource
    >>> app = MappingLayerSource("app", {("http", "config"): {"debug": True}})
    >>> base = MappingLayerSource("vendor", {("http", "config"): {"debug": False, "locale": "en"}})
    >>> result = build("http", "config", blueprint=Blueprint(app=app, baseline=base))
    >>> dict(result)
    {'debug': True, 'locale': 'en'}
    >>> result.origin("locale")["layer"]
    'vendor'
    """

    layers = collect_layers(mode, kind, blueprint=blueprint)
    outcome = _MERGERS[kind](layers)
    try:
        ensure_valid(kind, outcome.data, outcome.roots, provenance=outcome.provenance)
    except ValidationError as exc:
        log_error("composition_invalid", **make_event(kind, mode, {"violations": len(exc.violations)}))
        raise
    log_info("composition_merged", **make_event(kind, mode, {"layers": len(layers), "keys": len(outcome.data)}))
    return CompositionResult(
        kind=kind,
        mode=mode,
        _data=outcome.data,
        _meta=outcome.provenance,
        layers=tuple(layer.describe() for layer in layers),
    )


def build_all(mode: str, *, blueprint: Blueprint, parallel: bool = False) -> dict[str, CompositionResult]:
    """Build the configuration, routing table and service registry for *mode*.

    The three compositors share no state; with ``parallel=True`` they run in
    a thread pool, each under a copy of the caller's logging context.
    """

    if not parallel:
        return {kind: build(mode, kind, blueprint=blueprint) for kind in ARTIFACT_KINDS}
    with ThreadPoolExecutor(max_workers=len(ARTIFACT_KINDS), thread_name_prefix="compose") as pool:
        futures = {
            kind: pool.submit(contextvars.copy_context().run, build, mode, kind, blueprint=blueprint)
            for kind in ARTIFACT_KINDS
        }
        return {kind: future.result() for kind, future in futures.items()}


def warm(
    mode: str | None = None,
    *,
    blueprint: Blueprint,
    store: ArtifactStore,
    overwrite: bool = True,
    invalidate: bool = True,
    modes: Iterable[str] = DEFAULT_MODES,
) -> list[CacheArtifact]:
    """Build every requested artifact, then persist them.

    Why
    ----
    A validation failure in the last artifact must not leave the first ones
    rewritten.

    What
    ----
    Builds and validates every requested ``(mode, kind)`` pair first. Only
    when every build succeeded are the results written through
    :meth:`ArtifactStore.persist`, one atomic swap per artifact. With
    ``overwrite=False`` pairs whose canonical artifact already exists are
    skipped before building, so they are neither rebuilt nor validated.

    Each swap is atomic on its own; the set is not. A
    :class:`~lib_layered_compose.domain.errors.CacheWriteError` on the Nth
    write leaves the artifacts written before it in place and the remaining
    ones at their previous version.

    Parameters
    ----------
    mode:
        Single mode to warm; ``None`` warms every entry of *modes*.
    blueprint:
        Layer plan.
    store:
        Destination store.
    overwrite:
        Replace existing artifacts (default) or keep them.
    invalidate:
        Invalidate compiled caches after each swap.
    modes:
        Modes warmed when *mode* is ``None``.

    Returns
    -------
    list[CacheArtifact]
        One entry per written artifact, in mode then kind order.
    """

    targets = tuple(modes) if mode is None else (mode,)
    pending: list[CompositionResult] = []
    for target in targets:
        for kind in ARTIFACT_KINDS:
            if not overwrite and store.exists(kind, target):
                log_info("artifact_skipped", **make_event(kind, target, {"identity": str(store.identity(kind, target))}))
                continue
            pending.append(build(target, kind, blueprint=blueprint))
    return [store.persist(result, invalidate=invalidate) for result in pending]


def load(kind: str, mode: str, *, store: ArtifactStore, verify: bool = False) -> CompositionResult:
    """Return the persisted snapshot for ``(kind, mode)``; never builds.

    A missing artifact raises :class:`~lib_layered_compose.domain.errors.ArtifactNotFoundError`.
    """

    return store.load(kind, mode, verify=verify)


def _read_slot(
    source: LayerSource,
    mode: str,
    kind: str,
    variant: str | None,
    *,
    position: int,
    name: str,
) -> Mapping[str, Any] | None:
    """Fetch one slot and reject anything that is not a mapping.

    A slot file that vanished after discovery counts as absent; one that
    exists but cannot be read is a :class:`LayerResolutionError`.
    """

    try:
        payload = source.slot(mode, kind, variant)
    except InvalidFormat as exc:
        log_error("layer_invalid", **make_event(kind, mode, {"layer": name, "position": position, "error": str(exc)}))
        raise MalformedPayloadError(kind, [Violation(kind, "<layer>", str(exc), position, name)]) from exc
    except NotFound:
        return None
    except OSError as exc:
        log_error("layer_unresolved", **make_event(kind, mode, {"layer": name, "position": position, "error": str(exc)}))
        raise LayerResolutionError(
            f"Layer #{position} ({name}): cannot read the {kind} slot for mode {mode!r}: {exc}",
            position=position,
            reference=name,
            kind=kind,
        ) from exc
    if payload is None:
        return None
    if not isinstance(payload, Mapping):
        log_error("layer_invalid", **make_event(kind, mode, {"layer": name, "position": position}))
        raise MalformedPayloadError(
            kind,
            [Violation(kind, "<layer>", f"slot must be a mapping, got {type(payload).__name__}", position, name)],
        )
    return payload


def _layer_name(layer_kind: str, source: LayerSource, variant: str | None) -> str:
    if layer_kind == APP_BASE:
        return "app"
    if layer_kind == APP_ENV:
        return f"app:{variant}"
    return source.name


def _read_plan(config_dir: Path) -> Mapping[str, Any]:
    candidates = [
        config_dir / f"{_PLAN_STEM}{suffix}"
        for suffix in FILE_LOADERS
        if (config_dir / f"{_PLAN_STEM}{suffix}").is_file()
    ]
    if not candidates:
        return {}
    if len(candidates) > 1:
        raise InvalidFormat(f"Ambiguous layer plan in {config_dir}: {', '.join(path.name for path in candidates)}")
    path = candidates[0]
    return FILE_LOADERS[path.suffix.lower()].load(str(path))


__all__ = [
    "APP_CONFIG_DIR",
    "DEFAULT_BASELINE",
    "Blueprint",
    "build",
    "build_all",
    "collect_layers",
    "load",
    "load_blueprint",
    "warm",
]
