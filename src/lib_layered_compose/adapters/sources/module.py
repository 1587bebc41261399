"""Layer source backed by an importable Python module or object.

Purpose
-------
Let packages ship their layer payloads as plain data constants. A provider
module exposes upper-case slot attributes named ``<KIND>_<MODE>`` and, for
environment overlays, ``<KIND>_<MODE>_<VARIANT>``::

    CONFIG_HTTP = {"blog": {"per_page": 10}}
    ROUTES_HTTP = {"/blog": {"controller": "blog.controllers.Index", "action": "index", "methods": ["GET"]}}
    SERVICES_HTTP = {"blog": "blog.services.Blog"}

Reading a slot is a plain attribute lookup; nothing is called.
"""

from __future__ import annotations

import importlib
from typing import Any

from ...observability import log_debug


def slot_name(mode: str, kind: str, variant: str | None = None) -> str:
    """Return the attribute name holding ``(mode, kind[, variant])``.

    >>> slot_name("http", "routes")
    'ROUTES_HTTP'
    >>> slot_name("cli", "config", "prod")
    'CONFIG_CLI_PROD'
    """

    parts = [kind, mode] if variant is None else [kind, mode, variant]
    return "_".join(part.upper() for part in parts)


class ModuleLayerSource:
    """Serve slots from the attributes of a module (or any object)."""

    def __init__(self, target: object, *, name: str | None = None) -> None:
        self._target = target
        self.name = name or getattr(target, "__name__", type(target).__name__)

    @classmethod
    def from_reference(cls, reference: str) -> ModuleLayerSource:
        """Import ``pkg.module`` or ``pkg.module:attribute`` and wrap it.

        Raises ``ImportError`` or ``AttributeError`` when the reference does not
        resolve; the reader turns those into ``LayerResolutionError``.
        """

        module_name, _, attribute = reference.partition(":")
        target: Any = importlib.import_module(module_name)
        for part in filter(None, attribute.split(".")):
            target = getattr(target, part)
        log_debug("layer_source_imported", layer=reference)
        return cls(target, name=reference)

    def slot(self, mode: str, kind: str, variant: str | None = None) -> Any:
        return getattr(self._target, slot_name(mode, kind, variant), None)

    def __repr__(self) -> str:
        return f"ModuleLayerSource({self.name!r})"
