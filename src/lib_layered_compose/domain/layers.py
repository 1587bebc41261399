"""Layer vocabulary shared by the reader, the compositors and the validator.

Purpose
-------
Name the artifact kinds, the layer kinds and the ordered :class:`Layer`
record so every other module talks about the same things. The module is pure
data: no I/O, no logging.

Contents
--------
* :data:`CONFIG`, :data:`ROUTES`, :data:`SERVICES`, :data:`ARTIFACT_KINDS`.
* :data:`BASELINE`, :data:`PROVIDER`, :data:`APP_BASE`, :data:`APP_ENV`.
* :data:`DEFAULT_MODES` – the two independent universes (``http``, ``cli``).
* :data:`PATTERN_ROUTES_KEY` – reserved route key holding ordered pattern routes.
* :class:`Layer` – one ordered payload.
* :class:`SourceInfo` – provenance record for a merged key.
* :func:`check_mode` / :func:`check_kind` – argument guards.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Final, Mapping, TypedDict

CONFIG: Final[str] = "config"
ROUTES: Final[str] = "routes"
SERVICES: Final[str] = "services"
ARTIFACT_KINDS: Final[tuple[str, ...]] = (CONFIG, ROUTES, SERVICES)

BASELINE: Final[str] = "baseline"
PROVIDER: Final[str] = "provider"
APP_BASE: Final[str] = "app_base"
APP_ENV: Final[str] = "app_env"

DEFAULT_MODES: Final[tuple[str, ...]] = ("http", "cli")

#: Route table key whose value is an ordered list of pattern-based entries.
PATTERN_ROUTES_KEY: Final[str] = "regex"

_MODE_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")


class SourceInfo(TypedDict):
    """Describe the layer that supplied a merged key.

    Attributes
    ----------
    layer:
        Layer name (provider reference, ``"baseline"``, ``"app"``...).
    kind:
        Layer kind (``baseline``, ``provider``, ``app_base``, ``app_env``).
    position:
        Order position of the layer.
    key:
        Dotted key (config/routes) or service identifier.
    """

    layer: str
    kind: str
    position: int
    key: str


@dataclass(frozen=True, slots=True)
class Layer:
    """One ordered, independently authored payload for a single artifact kind.

    Examples
    --------
    >>> layer = Layer(kind=BASELINE, order=0, name="baseline", payload={"a": 1})
    >>> layer.source_info("a")
    {'layer': 'baseline', 'kind': 'baseline', 'position': 0, 'key': 'a'}
    """

    kind: str
    order: int
    name: str
    payload: Mapping[str, Any] = field(repr=False)

    def source_info(self, key: str) -> SourceInfo:
        return {"layer": self.name, "kind": self.kind, "position": self.order, "key": key}

    def describe(self) -> dict[str, Any]:
        return {"position": self.order, "kind": self.kind, "name": self.name}


def check_mode(mode: str) -> str:
    """Return *mode* when it is a usable mode token, else raise ``ValueError``.

    Mode tokens end up in slot names and file names, so they are restricted to
    lower-case identifiers.

    >>> check_mode("http")
    'http'
    """

    if not isinstance(mode, str) or not _MODE_PATTERN.match(mode):
        raise ValueError(f"Invalid mode token: {mode!r}")
    return mode


def check_kind(kind: str) -> str:
    """Return *kind* when it names an artifact kind, else raise ``ValueError``."""

    if kind not in ARTIFACT_KINDS:
        raise ValueError(f"Unsupported artifact kind: {kind!r} (expected one of {', '.join(ARTIFACT_KINDS)})")
    return kind
