"""Application-layer merge algebras.

Purpose
-------
Turn an ordered list of layer payloads into one composed structure. Three
distinct algebras live here on purpose and share only the ordering contract:

* configuration: deep merge, last layer wins per key, lists and scalars replace
  wholesale, an explicit empty mapping clears the subtree;
* routes: the same algebra keyed by request path, with the reserved pattern
  route list replaced wholesale like any other list;
* services: left-wins union chaining, ``acc = layer ∪ acc`` per step, whole
  definitions only.

Contents
    - ``MergeOutcome``: data plus provenance produced by the traced variants.
    - ``merge_config`` / ``merge_config_layers``: configuration algebra.
    - ``merge_routes`` / ``merge_routes_layers``: route algebra.
    - ``merge_services`` / ``merge_services_layers``: service algebra.
    - ``left_union``: the single step of the service algebra.

System Role
-----------
Called by :mod:`lib_layered_compose.core` with layers collected by the reader.
Everything here is pure: payloads are copied, never mutated, and nothing is
logged or written.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from ..domain.layers import APP_BASE, APP_ENV, BASELINE, PROVIDER, Layer, SourceInfo


@dataclass(slots=True)
class MergeOutcome:
    """Composed data with provenance.

    Attributes
    ----------
    data:
        Freshly built composed payload (shares nothing with the inputs).
    provenance:
        Dotted key (or service identifier) to the :class:`SourceInfo` of the
        layer that set it.
    roots:
        Top-level key to the last layer that contributed anything beneath it;
        fallback attribution for validation failures without their own
        provenance entry.
    """

    data: dict[str, Any] = field(default_factory=dict)
    provenance: dict[str, SourceInfo] = field(default_factory=dict)
    roots: dict[str, SourceInfo] = field(default_factory=dict)


def merge_config(layers: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    """Deep-merge configuration *layers* (lowest precedence first).

    Examples
    --------
    >>> merge_config([{"a": {"x": 1, "y": 2}}, {"a": {"y": 3, "z": 4}}])
    {'a': {'x': 1, 'y': 3, 'z': 4}}
    >>> merge_config([{"a": [1, 2, 3]}, {"a": [9]}])
    {'a': [9]}
    >>> merge_config([{"cache": {"ttl": 60}}, {"cache": {}}])
    {'cache': {}}
    """

    return merge_config_layers(_anonymous(layers)).data


def merge_config_layers(layers: Iterable[Layer]) -> MergeOutcome:
    """Deep-merge ordered :class:`Layer` objects and record provenance.

    Why
    ----
    Operators need to know which layer supplied a value, and the validator
    needs it to point at the layer to fix.

    What
    ----
    For each layer in order, walks its payload: where both the accumulated and
    the incoming value are mappings the walk recurses; otherwise the incoming
    value (scalar or list) replaces the accumulated one. An explicit empty
    mapping is an override, not an absence. Every key-level decision depends
    only on the two values at that key, so sibling iteration order cannot
    change the outcome.

    Parameters
    ----------
    layers:
        Layers ordered from lowest to highest precedence.

    Returns
    -------
    MergeOutcome
        Composed data plus provenance.

    Examples
    --------
    >>> outcome = merge_config_layers([
    ...     Layer("baseline", 0, "baseline", {"service": {"timeout": 5}}),
    ...     Layer("app_base", 3, "app", {"service": {"timeout": 10}}),
    ... ])
    >>> outcome.data["service"]["timeout"], outcome.provenance["service.timeout"]["layer"]
    (10, 'app')
    """

    outcome = MergeOutcome()
    for layer in layers:
        for key in layer.payload:
            outcome.roots[key] = layer.source_info(key)
        _merge_mapping(outcome.data, outcome.provenance, layer.payload, layer, [])
    return outcome


def merge_routes(layers: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    """Deep-merge route tables keyed by request path.

    A later layer may override single fields of an entry; the reserved pattern
    route list is replaced wholesale.

    >>> merge_routes([
    ...     {"/x": {"controller": "A", "action": "f", "methods": ["GET"]}},
    ...     {"/x": {"action": "g"}},
    ... ])
    {'/x': {'controller': 'A', 'action': 'g', 'methods': ['GET']}}
    """

    return merge_routes_layers(_anonymous(layers)).data


def merge_routes_layers(layers: Iterable[Layer]) -> MergeOutcome:
    """Traced route merge.

    Route tables follow the configuration algebra exactly. Keeping a separate
    entry point lets the two evolve independently and keeps call sites honest
    about what they compose. Appending to the pattern route list is not
    supported: a layer that wants to add a pattern re-declares the full list.
    """

    return merge_config_layers(layers)


def merge_services(
    baseline: Mapping[str, Any],
    providers: Sequence[Mapping[str, Any]],
    app: Mapping[str, Any],
    overlay: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Chain service registries with left-wins unions.

    ``acc = baseline``; ``acc = provider ∪ acc`` for each provider in listed
    order; ``acc = app ∪ acc``; finally ``acc = overlay ∪ acc`` when an
    environment overlay exists. The net effect is that later providers beat
    earlier ones and the application beats everything.

    Examples
    --------
    >>> merge_services({"svc": "Base"}, [{"svc": "P1"}, {"svc": "P2"}], {})
    {'svc': 'P2'}
    >>> merge_services({"svc": "Base"}, [{"svc": "P1"}, {"svc": "P2"}], {"svc": "AppImpl"})
    {'svc': 'AppImpl'}
    """

    layers = [Layer(BASELINE, 0, "baseline", baseline)]
    layers.extend(Layer(PROVIDER, index, f"provider[{index - 1}]", payload) for index, payload in enumerate(providers, 1))
    layers.append(Layer(APP_BASE, len(layers), "app", app))
    if overlay is not None:
        layers.append(Layer(APP_ENV, len(layers), "app:env", overlay))
    return merge_services_layers(layers).data


def merge_services_layers(layers: Sequence[Layer]) -> MergeOutcome:
    """Traced service merge over ordered layers.

    The first layer seeds the accumulator (normally the baseline); each later
    layer is applied as the *left* operand of :func:`left_union`. Definitions
    are copied whole; their ``options`` are never merged with the definition
    they displace.
    """

    outcome = MergeOutcome()
    for layer in layers:
        incoming = {identifier: _clone(definition) for identifier, definition in layer.payload.items()}
        outcome.data = left_union(incoming, outcome.data)
        for identifier in incoming:
            info = layer.source_info(identifier)
            outcome.provenance[identifier] = info
            outcome.roots[identifier] = info
    return outcome


def left_union(left: Mapping[str, Any], right: Mapping[str, Any]) -> dict[str, Any]:
    """Union two identifier-keyed maps keeping *left* entries on collision.

    >>> left_union({"a": 1}, {"a": 2, "b": 3})
    {'a': 1, 'b': 3}
    """

    union = dict(left)
    for key, value in right.items():
        union.setdefault(key, value)
    return union


def _merge_mapping(
    target: dict[str, Any],
    meta: dict[str, SourceInfo],
    incoming: Mapping[str, Any],
    layer: Layer,
    segments: list[str],
) -> None:
    """Recursively merge ``incoming`` into ``target`` while recording provenance."""

    for key, value in incoming.items():
        dotted = _dotted_key(segments, key)
        if isinstance(value, Mapping):
            _merge_branch(target, meta, key, value, dotted, layer, segments)
        else:
            _clear_branch(meta, dotted)
            target[key] = _clone(value)
            meta[dotted] = layer.source_info(dotted)


def _merge_branch(
    target: dict[str, Any],
    meta: dict[str, SourceInfo],
    key: str,
    value: Mapping[str, Any],
    dotted: str,
    layer: Layer,
    segments: list[str],
) -> None:
    """Merge mapping ``value`` into ``target[key]`` and recurse."""

    existing = target.get(key)
    if not value:
        _clear_branch(meta, dotted)
        target[key] = {}
        meta[dotted] = layer.source_info(dotted)
        return

    if not isinstance(existing, dict):
        _clear_branch(meta, dotted)
        existing = {}
        target[key] = existing
    else:
        meta.pop(dotted, None)
    _merge_mapping(existing, meta, value, layer, segments + [key])


def _clear_branch(meta: dict[str, SourceInfo], prefix: str) -> None:
    """Remove provenance entries that belong to *prefix* or its descendants."""

    for meta_key in list(meta.keys()):
        if meta_key == prefix or meta_key.startswith(prefix + "."):
            meta.pop(meta_key, None)


def _clone(value: Any) -> Any:
    """Copy containers so the composed result never aliases a layer payload."""

    if isinstance(value, Mapping):
        return {key: _clone(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_clone(item) for item in value]
    return value


def _dotted_key(segments: list[str], key: str) -> str:
    return ".".join([*segments, str(key)]) if segments else str(key)


def _anonymous(payloads: Iterable[Mapping[str, Any]]) -> list[Layer]:
    """Wrap bare payloads as positional layers for the untraced entry points."""

    return [Layer(PROVIDER, index, f"layer[{index}]", payload) for index, payload in enumerate(payloads)]
