"""Application-layer ports describing adapter responsibilities.

Purpose
-------
Define the structural contracts that adapters must satisfy so the composition
root can orchestrate builds without depending on concrete implementations.

Contents
--------
* :class:`LayerSource` – exposes the data slots one layer contributes.
* :class:`FileLoader` – parses a structured file into a mapping.
* :class:`CacheInvalidator` – drops compiled caches keyed to an artifact path.

System Role
-----------
These protocols enforce Dependency Inversion (DIP). Each adapter implements one
protocol so the application layer can request behaviour via abstraction.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable


@runtime_checkable
class LayerSource(Protocol):
    """Expose the pure data slots of one layer.

    Why
    ----
    Packages and applications declare their payloads in different physical
    ways (modules, directories, in-memory fixtures). The reader only needs
    "give me the payload for this mode and kind".

    Attributes
    ----------
    name:
        Stable identity used in provenance and error reports.
    """

    name: str

    def slot(self, mode: str, kind: str, variant: str | None = None) -> Mapping[str, Any] | None:
        """Return the payload for ``(mode, kind[, variant])`` or ``None`` when absent.

        Reading a slot has no side effects. A present slot holding something
        other than a mapping is returned as-is; the reader rejects it.
        """


class FileLoader(Protocol):
    """Parse a structured file into a mapping.

    Why
    ----
    Segregate parsing concerns (TOML/JSON/YAML) from layer discovery.
    """

    def load(self, path: str) -> Mapping[str, object]:
        """Read *path* and return a mapping or raise ``InvalidFormat``/``NotFound``."""


@runtime_checkable
class CacheInvalidator(Protocol):
    """Invalidate compiled caches keyed to a canonical artifact path.

    Why
    ----
    A runtime that loads artifacts through a compilation cache must never see
    stale compiled output after a swap. The store calls this strictly after the
    atomic rename committed.
    """

    def invalidate(self, identity: str) -> bool:
        """Drop cached compilations for *identity*; return ``True`` if anything was removed."""
