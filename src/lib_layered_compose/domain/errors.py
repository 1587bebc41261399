"""Domain-level exception hierarchy.

Purpose
-------
Expose the stable error taxonomy shared by layer sources, compositors, the
validator, the artifact store, and consuming applications. The hierarchy lives
in the domain layer to respect the Clean Architecture dependency rule (outer
layers may depend on inner layers, not vice versa).

Contents
--------
* :class:`Violation` – one structural problem found while validating a
  composed artifact.
* :class:`CompositionError` – umbrella base class for every failure.
* :class:`LayerResolutionError` – a listed layer cannot be located or read.
* :class:`NotFound` – an optional resource is absent (non-fatal).
* :class:`ValidationError` and its subclasses
  :class:`MalformedPayloadError`, :class:`MissingRouteFieldError`,
  :class:`UnresolvableServiceDefinitionError`.
* :class:`CacheWriteError`, :class:`ArtifactNotFoundError`,
  :class:`ArtifactCorruptError` – persistence and boot failures.

System Role
-----------
Every error carries enough structure for tooling to report the artifact kind,
the layer position, and the offending key without parsing messages. Callers
catch :class:`CompositionError` to handle all library failures uniformly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable


@dataclass(frozen=True, slots=True)
class Violation:
    """Describe a single structural problem in a composed artifact.

    Attributes
    ----------
    kind:
        Artifact kind (``"config"``, ``"routes"``, ``"services"``).
    key:
        Offending key, request path, ``regex[i]`` pattern index, or service
        identifier.
    message:
        Human readable explanation.
    position:
        Order position of the layer that last contributed ``key`` (``None``
        when unknown).
    layer:
        Name of that layer.

    Examples
    --------
    >>> Violation("routes", "/x", "missing methods", 2, "blog").describe()
    "[routes] layer #2 'blog': /x: missing methods"
    """

    kind: str
    key: str
    message: str
    position: int | None = None
    layer: str | None = None

    def describe(self) -> str:
        origin = "layer unknown" if self.position is None else f"layer #{self.position} '{self.layer}'"
        return f"[{self.kind}] {origin}: {self.key}: {self.message}"

    def as_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "key": self.key,
            "message": self.message,
            "position": self.position,
            "layer": self.layer,
        }


class CompositionError(Exception):
    """Base type for all exceptions emitted by ``lib_layered_compose``.

    Why
    ----
    Provide a single catch-all type for consumers and the CLI, plus a
    structured :meth:`as_dict` report for build tooling.
    """

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly description of the failure."""

        return {"error": type(self).__name__, "message": str(self)}


class LayerResolutionError(CompositionError):
    """Raised when a listed layer cannot be resolved to a payload source.

    Attributes
    ----------
    position:
        Order position the layer would have occupied (``0`` for the baseline,
        ``1..n`` for providers).
    reference:
        The reference string that failed to resolve, or the layer name whose
        slot could not be read.
    kind:
        Artifact kind being composed when the failure happened.
    """

    def __init__(self, message: str, *, position: int, reference: str, kind: str | None = None) -> None:
        super().__init__(message)
        self.position = position
        self.reference = reference
        self.kind = kind

    def as_dict(self) -> dict[str, Any]:
        report = super().as_dict()
        report.update(kind=self.kind, position=self.position, layer=self.reference, key=None)
        return report


class NotFound(CompositionError):
    """Represents missing-but-optional resources (slots, files).

    Why
    ----
    Let adapters signal absence without aborting the build. The reader treats
    this as "the layer contributes nothing for this kind".
    """


class InvalidFormat(CompositionError):
    """Raised when a layer file cannot be parsed into structured data.

    Typical Sources
    ---------------
    Structured file loaders (:mod:`tomllib`, :mod:`json`, :mod:`yaml`). The
    reader re-raises it as :class:`MalformedPayloadError` once it knows the
    layer position and artifact kind.
    """


class ValidationError(CompositionError):
    """A composed artifact failed structural checks.

    Carries every :class:`Violation` found in one pass so a single corrected
    build can address them all.
    """

    def __init__(self, kind: str, violations: Iterable[Violation]) -> None:
        self.kind = kind
        self.violations = tuple(violations)
        super().__init__(self._render())

    def _render(self) -> str:
        count = len(self.violations)
        header = f"{count} violation{'s' if count != 1 else ''} in {self.kind} layers"
        return "\n".join([header, *(f"  - {violation.describe()}" for violation in self.violations)])

    def as_dict(self) -> dict[str, Any]:
        first = self.violations[0] if self.violations else None
        report = super().as_dict()
        report.update(
            kind=self.kind,
            position=first.position if first else None,
            layer=first.layer if first else None,
            key=first.key if first else None,
            violations=[violation.as_dict() for violation in self.violations],
        )
        return report


class MalformedPayloadError(ValidationError):
    """A layer payload or composed tree is not a mapping of inert data."""


class MissingRouteFieldError(ValidationError):
    """A route entry lacks ``controller``, ``action`` or ``methods``."""


class UnresolvableServiceDefinitionError(ValidationError):
    """A service definition has no usable class reference or non-data options."""


class CacheWriteError(CompositionError):
    """The write-then-swap sequence could not complete.

    ``committed`` tells whether the canonical artifact was already replaced
    when the failure happened (for example during bytecode invalidation).
    """

    def __init__(self, message: str, *, identity: str, committed: bool = False) -> None:
        super().__init__(message)
        self.identity = identity
        self.committed = committed

    def as_dict(self) -> dict[str, Any]:
        report = super().as_dict()
        report.update(identity=self.identity, committed=self.committed)
        return report


class ArtifactNotFoundError(CompositionError):
    """Runtime load found no canonical artifact; the boot sequence must stop."""

    def __init__(self, message: str, *, kind: str, mode: str, identity: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.mode = mode
        self.identity = identity

    def as_dict(self) -> dict[str, Any]:
        report = super().as_dict()
        report.update(kind=self.kind, mode=self.mode, identity=self.identity)
        return report


class ArtifactCorruptError(ArtifactNotFoundError):
    """The canonical artifact exists but does not describe the requested snapshot."""
