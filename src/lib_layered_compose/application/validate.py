"""Structural validation of composed artifacts.

Purpose
-------
Decide whether a composed configuration tree, routing table, or service
registry may be persisted. Only shape is checked; business values are the
application's concern.

Contents
    - ``validate``: collect every :class:`Violation` for one artifact.
    - ``ensure_valid``: raise the kind-specific error when violations exist.
    - ``is_symbol``: symbol reference check shared by routes and services.

Rules
    - every kind: top-level mapping, UTF-8 encodable string keys, inert data
      only (UTF-8 encodable str, int, finite float, bool, None, list, tuple,
      mapping);
    - routes: each path entry and each pattern route needs a symbol
      ``controller``, a non-empty ``action`` and a non-empty ``methods`` list;
      pattern routes also need a non-empty ``pattern``;
    - services: a bare symbol or ``{class, options}`` with a symbol class and
      mapping options.

Validation is exhaustive: a single pass reports all problems so one corrected
build can fix them together.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Any, Final

from ..domain.errors import (
    MalformedPayloadError,
    MissingRouteFieldError,
    UnresolvableServiceDefinitionError,
    ValidationError,
    Violation,
)
from ..domain.layers import CONFIG, PATTERN_ROUTES_KEY, ROUTES, SERVICES, SourceInfo, check_kind

_SYMBOL: Final = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(?:[.:][A-Za-z_][A-Za-z0-9_]*)*$")
_SCALARS: Final = (str, int, float, bool, type(None))
_LIST_INDEX: Final = re.compile(r"\[\d+\].*$")
_SERVICE_FIELDS: Final = frozenset({"class", "options"})
_ERRORS: Final[dict[str, type[ValidationError]]] = {
    CONFIG: MalformedPayloadError,
    ROUTES: MissingRouteFieldError,
    SERVICES: UnresolvableServiceDefinitionError,
}


def is_symbol(value: Any) -> bool:
    """Return ``True`` when *value* is a non-empty symbol reference.

    Symbols are dotted identifiers, optionally with one ``module:attr`` colon.

    >>> is_symbol("app.controllers.Home"), is_symbol("pkg.mod:Factory"), is_symbol(" "), is_symbol(3)
    (True, True, False, False)
    """

    return isinstance(value, str) and bool(_SYMBOL.match(value))


def validate(
    kind: str,
    data: Any,
    origins: Mapping[str, SourceInfo] | None = None,
    *,
    provenance: Mapping[str, SourceInfo] | None = None,
) -> tuple[Violation, ...]:
    """Return every structural violation in *data*.

    Parameters
    ----------
    kind:
        Artifact kind being validated.
    data:
        Composed payload (a plain mapping or a :class:`CompositionResult`).
    origins:
        Optional mapping from top-level keys to the layer that last contributed
        them; used to attribute each violation to a layer.
    provenance:
        Optional dotted-key provenance from the merge. When the offending
        value has its own entry, the violation names the layer that set that
        value rather than the last layer touching the top-level key.

    Returns
    -------
    tuple[Violation, ...]
        Empty when the artifact is valid.

    Examples
    --------
    >>> validate("routes", {"/x": {"controller": "A", "action": "f", "methods": []}})[0].message
    'methods must be a non-empty list of method names'
    >>> validate("config", {"anything": {"goes": [1, 2]}})
    ()
    """

    check_kind(kind)
    collector = _Collector(kind, origins or {}, provenance or {})
    if not isinstance(data, Mapping):
        collector.add("<root>", "<root>", f"top-level value must be a mapping, got {type(data).__name__}")
        return collector.found()

    for key, value in data.items():
        if isinstance(key, str) and not _utf8(key):
            collector.add(key, repr(key), "key is not valid UTF-8 text")
            continue
        _check_inert(collector, key if isinstance(key, str) else repr(key), key, value)
        if not isinstance(key, str):
            continue
        if kind == ROUTES:
            _check_route_table_entry(collector, key, value)
        elif kind == SERVICES:
            _check_service(collector, key, value)
    return collector.found()


def ensure_valid(
    kind: str,
    data: Any,
    origins: Mapping[str, SourceInfo] | None = None,
    *,
    provenance: Mapping[str, SourceInfo] | None = None,
) -> None:
    """Raise the kind-specific :class:`ValidationError` when *data* is invalid."""

    violations = validate(kind, data, origins, provenance=provenance)
    if violations:
        raise _ERRORS[kind](kind, violations)


class _Collector:
    """Accumulate violations and attribute them to layers."""

    def __init__(self, kind: str, origins: Mapping[str, SourceInfo], provenance: Mapping[str, SourceInfo]) -> None:
        self.kind = kind
        self.origins = origins
        self.provenance = provenance
        self._violations: list[Violation] = []

    def add(self, root: Any, key: str, message: str, *, at: str | None = None) -> None:
        info = self._attribute(root, key if at is None else at)
        self._violations.append(
            Violation(
                kind=self.kind,
                key=key,
                message=message,
                position=info["position"] if info else None,
                layer=info["layer"] if info else None,
            )
        )

    def found(self) -> tuple[Violation, ...]:
        return tuple(self._violations)

    def _attribute(self, root: Any, dotted: str) -> SourceInfo | None:
        # list items share the provenance entry of their list
        leaf = _LIST_INDEX.sub("", dotted)
        if leaf in self.provenance:
            return self.provenance[leaf]
        return self.origins.get(root) if isinstance(root, str) else None


def _check_inert(collector: _Collector, path: str, root: Any, value: Any) -> None:
    """Reject anything that is not plain declarative data."""

    if isinstance(value, float) and not math.isfinite(value):
        collector.add(root, path, f"{value!r} is not a finite number")
        return
    if isinstance(value, str) and not _utf8(value):
        collector.add(root, path, "string is not valid UTF-8 text")
        return
    if isinstance(value, _SCALARS):
        return
    if isinstance(value, Mapping):
        for key, item in value.items():
            if not isinstance(key, str):
                collector.add(root, f"{path}.{key!r}", "mapping keys must be strings")
                continue
            if not _utf8(key):
                collector.add(root, f"{path}.{key!r}", "key is not valid UTF-8 text")
                continue
            _check_inert(collector, f"{path}.{key}", root, item)
        return
    if isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _check_inert(collector, f"{path}[{index}]", root, item)
        return
    collector.add(root, path, f"{type(value).__name__} is not a data value")


def _check_route_table_entry(collector: _Collector, path: str, entry: Any) -> None:
    if path != PATTERN_ROUTES_KEY:
        _check_route(collector, path, path, entry, pattern=False)
        return
    if not isinstance(entry, (list, tuple)):
        collector.add(path, path, "pattern routes must be an ordered list")
        return
    for index, item in enumerate(entry):
        _check_route(collector, path, f"{path}[{index}]", item, pattern=True)


def _check_route(collector: _Collector, root: str, label: str, entry: Any, *, pattern: bool) -> None:
    if not isinstance(entry, Mapping):
        collector.add(root, label, f"route entry must be a mapping, got {type(entry).__name__}")
        return
    if pattern and not _non_empty_string(entry.get("pattern")):
        invalid = _missing_or_invalid(entry, "pattern", "pattern must be a non-empty string")
        collector.add(root, label, invalid, at=f"{label}.pattern")
    if not is_symbol(entry.get("controller")):
        invalid = _missing_or_invalid(entry, "controller", "controller must be a symbol reference")
        collector.add(root, label, invalid, at=f"{label}.controller")
    if not _non_empty_string(entry.get("action")):
        invalid = _missing_or_invalid(entry, "action", "action must be a non-empty string")
        collector.add(root, label, invalid, at=f"{label}.action")
    if not _methods_ok(entry.get("methods")):
        collector.add(
            root,
            label,
            _missing_or_invalid(entry, "methods", "methods must be a non-empty list of method names"),
            at=f"{label}.methods",
        )


def _check_service(collector: _Collector, identifier: str, definition: Any) -> None:
    if isinstance(definition, str):
        if not is_symbol(definition):
            collector.add(identifier, identifier, f"class reference {definition!r} is not a symbol")
        return
    if not isinstance(definition, Mapping):
        collector.add(
            identifier,
            identifier,
            f"definition must be a class reference or a mapping with 'class', got {type(definition).__name__}",
        )
        return
    unknown = sorted(str(key) for key in definition if key not in _SERVICE_FIELDS)
    if unknown:
        collector.add(identifier, identifier, f"unsupported definition fields: {', '.join(unknown)}")
    if not is_symbol(definition.get("class")):
        collector.add(identifier, identifier, _missing_or_invalid(definition, "class", "class must be a symbol reference"))
    options = definition.get("options", {})
    if not isinstance(options, Mapping):
        collector.add(identifier, f"{identifier}.options", f"options must be a mapping, got {type(options).__name__}")


def _missing_or_invalid(entry: Mapping[str, Any], field: str, invalid: str) -> str:
    return f"missing {field}" if field not in entry else invalid


def _non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _methods_ok(value: Any) -> bool:
    if not isinstance(value, (list, tuple)) or not value:
        return False
    return all(_non_empty_string(item) for item in value)


def _utf8(text: str) -> bool:
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True
