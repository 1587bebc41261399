"""Domain value objects produced by a build.

Purpose
-------
Anchor the immutable :class:`CompositionResult` that carries a composed
configuration tree, routing table, or service registry from the compositors
to the artifact store and on to the runtime, plus the :class:`CacheArtifact`
record describing a persisted snapshot. This module belongs to the domain
layer and contains no I/O.

Contents
--------
* :class:`CompositionResult` – deeply frozen ``Mapping`` tagged with kind and
  mode, exposing provenance, canonical JSON and a content fingerprint.
* :class:`CacheArtifact` – metadata returned by the cache writer.
* :func:`freeze` / :func:`thaw` – helpers converting between mutable payloads
  and the read-only representation.

System Role
-----------
A result is created exactly once per build and never mutated; a later build
replaces it wholesale. The runtime loader rebuilds one from a persisted
artifact without recomputing anything.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping as MappingABC
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping, TypeVar, overload

from .layers import SourceInfo

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class CompositionResult(MappingABC[str, Any]):
    """Immutable composed artifact handed to the runtime.

    Why
    ----
    The runtime must consume the composed structure with zero further
    computation and without any chance of in-place edits leaking between
    requests or workers.

    What
    ----
    Wraps the merged data in nested ``MappingProxyType`` objects (lists become
    tuples), implements the :class:`Mapping` protocol, and keeps provenance for
    diagnostics.

    Parameters
    ----------
    kind / mode:
        Artifact kind and execution mode the snapshot belongs to.
    _data:
        Composed payload; frozen during initialisation.
    _meta:
        Mapping from dotted keys (or service identifiers) to :class:`SourceInfo`.
    layers:
        Ordered layer descriptions (``position``, ``kind``, ``name``) the
        snapshot was built from.

    Examples
    --------
    >>> result = CompositionResult(
    ...     "config",
    ...     "http",
    ...     {"db": {"host": "localhost", "ports": [5432]}},
    ...     {"db.host": {"layer": "app", "kind": "app_base", "position": 2, "key": "db.host"}},
    ... )
    >>> result.get("db.host")
    'localhost'
    >>> result["db"]["ports"]
    (5432,)
    >>> result.origin("db.host")["layer"]
    'app'
    """

    kind: str
    mode: str
    _data: Mapping[str, Any]
    _meta: Mapping[str, SourceInfo] = field(default_factory=dict)
    layers: tuple[Mapping[str, Any], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "_data", freeze(self._data))
        object.__setattr__(self, "_meta", MappingProxyType(dict(self._meta)))
        object.__setattr__(self, "layers", tuple(MappingProxyType(dict(item)) for item in self.layers))

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def as_dict(self) -> dict[str, Any]:
        """Return a deep, mutable ``dict`` copy of the composed payload.

        Examples
        --------
        >>> result = CompositionResult("routes", "http", {"/": {"methods": ["GET"]}})
        >>> clone = result.as_dict()
        >>> clone["/"]["methods"].append("POST")
        >>> result["/"]["methods"]
        ('GET',)
        """

        return thaw(self._data)

    def to_json(self, *, indent: int | None = None) -> str:
        """Serialise the payload to JSON preserving composed key order.

        >>> CompositionResult("config", "cli", {"a": {"b": 1}}).to_json()
        '{"a":{"b":1}}'
        """

        return json.dumps(self.as_dict(), indent=indent, separators=(",", ":"), ensure_ascii=False)

    def canonical_json(self) -> str:
        """Return the byte-stable JSON form used for artifacts and fingerprints.

        Keys are sorted, so the output depends only on the composed content and
        never on the iteration order of the source layers.
        """

        return json.dumps(self.as_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    @property
    def fingerprint(self) -> str:
        """SHA-256 hex digest of :meth:`canonical_json`."""

        return hashlib.sha256(self.canonical_json().encode("utf-8")).hexdigest()

    @overload
    def get(self, key: str, *, default: T) -> T:  # type: ignore[override]
        ...

    @overload
    def get(self, key: str, *, default: None = ...) -> Any | None:  # type: ignore[override]
        ...

    def get(self, key: str, *, default: Any = None) -> Any:
        """Resolve *key* as a dotted path and return ``default`` when missing.

        A top-level key that itself contains dots (request paths such as
        ``/feed.xml``) is matched verbatim before dotted traversal is tried.
        """

        if key in self._data:
            return self._data[key]
        return _resolve_dotted_path(self._data, key, default)

    def origin(self, key: str) -> SourceInfo | None:
        """Return provenance for *key* or ``None`` when unknown."""

        return self._meta.get(key)

    @property
    def provenance(self) -> Mapping[str, SourceInfo]:
        return self._meta


@dataclass(frozen=True, slots=True)
class CacheArtifact:
    """Metadata describing one persisted snapshot.

    Attributes
    ----------
    kind / mode:
        Snapshot identity.
    identity:
        Canonical artifact path; the handle used for bytecode-cache invalidation.
    written_at:
        ISO-8601 UTC timestamp of the write.
    fingerprint:
        SHA-256 of the canonical payload JSON.
    format:
        Serialisation format (``"json"`` or ``"python"``).
    """

    kind: str
    mode: str
    identity: str
    written_at: str
    fingerprint: str
    format: str

    def as_dict(self) -> dict[str, str]:
        return {
            "kind": self.kind,
            "mode": self.mode,
            "identity": self.identity,
            "written_at": self.written_at,
            "fingerprint": self.fingerprint,
            "format": self.format,
        }


def freeze(value: Any) -> Any:
    """Return a read-only deep copy of *value*.

    >>> frozen = freeze({"a": [1, {"b": 2}]})
    >>> frozen["a"][1]["b"]
    2
    >>> type(frozen["a"]).__name__
    'tuple'
    """

    if isinstance(value, MappingABC):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of :func:`freeze`: mappings become ``dict``, sequences ``list``."""

    if isinstance(value, MappingABC):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(item) for item in value]
    return value


def _resolve_dotted_path(source: Mapping[str, Any], dotted: str, default: Any) -> Any:
    current: Any = source
    for part in dotted.split("."):
        if not isinstance(current, MappingABC) or part not in current:
            return default
        current = current[part]
    return current
