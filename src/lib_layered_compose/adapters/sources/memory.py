"""In-memory layer source.

Useful for tests, notebooks and applications that assemble layers in code.
Slots are keyed by ``(mode, kind)`` or ``(mode, kind, variant)`` tuples.
"""

from __future__ import annotations

from typing import Any, Mapping


class MappingLayerSource:
    """Serve slots from a mapping of ``(mode, kind[, variant])`` keys.

    Examples
    --------
    >>> source = MappingLayerSource("demo", {("http", "routes"): {"/": {"action": "index"}}})
    >>> source.slot("http", "routes")
    {'/': {'action': 'index'}}
    >>> source.slot("cli", "routes") is None
    True
    """

    def __init__(self, name: str, slots: Mapping[tuple[str, ...], Any]) -> None:
        self.name = name
        self._slots = dict(slots)

    def slot(self, mode: str, kind: str, variant: str | None = None) -> Any:
        key = (mode, kind) if variant is None else (mode, kind, variant)
        return self._slots.get(key)

    def __repr__(self) -> str:
        return f"MappingLayerSource({self.name!r})"
