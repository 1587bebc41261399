"""Public package surface for ``lib_layered_compose``.

Compose an application's configuration tree, routing table and service
registry from ordered layers (vendor baseline, providers, application base,
environment overlay), validate them, persist immutable snapshots atomically,
and load them at boot without recomputation.
"""

from __future__ import annotations

from .adapters.cache.store import ARTIFACT_FORMATS, ArtifactStore
from .adapters.sources.directory import DirectoryLayerSource
from .adapters.sources.memory import MappingLayerSource
from .adapters.sources.module import ModuleLayerSource
from .adapters.sources.resolve import resolve_source
from .application.merge import MergeOutcome, merge_config, merge_routes, merge_services
from .application.ports import LayerSource
from .application.validate import ensure_valid, validate
from .core import Blueprint, build, build_all, collect_layers, load, load_blueprint, warm
from .domain.errors import (
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
from .domain.layers import ARTIFACT_KINDS, DEFAULT_MODES, Layer, SourceInfo
from .domain.result import CacheArtifact, CompositionResult
from .observability import bind_trace_id, get_logger
from .settings import Settings

__all__ = [
    "ARTIFACT_FORMATS",
    "ARTIFACT_KINDS",
    "DEFAULT_MODES",
    "ArtifactCorruptError",
    "ArtifactNotFoundError",
    "ArtifactStore",
    "Blueprint",
    "CacheArtifact",
    "CacheWriteError",
    "CompositionError",
    "CompositionResult",
    "DirectoryLayerSource",
    "InvalidFormat",
    "Layer",
    "LayerResolutionError",
    "LayerSource",
    "MalformedPayloadError",
    "MappingLayerSource",
    "MergeOutcome",
    "MissingRouteFieldError",
    "ModuleLayerSource",
    "NotFound",
    "Settings",
    "SourceInfo",
    "UnresolvableServiceDefinitionError",
    "ValidationError",
    "Violation",
    "bind_trace_id",
    "build",
    "build_all",
    "collect_layers",
    "ensure_valid",
    "get_logger",
    "load",
    "load_blueprint",
    "merge_config",
    "merge_routes",
    "merge_services",
    "resolve_source",
    "validate",
    "warm",
]
