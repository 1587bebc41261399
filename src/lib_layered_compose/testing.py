"""Failure injection helpers for the artifact write protocol.

Purpose
    Let test suites and operators rehearse interrupted warm runs without
    monkeypatching the standard library: a failure can be injected right
    before the atomic swap or right after it.

Contents
    - ``InjectedFailure``: the ``OSError`` raised by the helpers.
    - ``interrupt_before_swap``: the rename never happens.
    - ``interrupt_after_swap``: the rename commits, invalidation fails.

System Integration
    Both helpers temporarily swap collaborators on an
    :class:`~lib_layered_compose.adapters.cache.store.ArtifactStore` and
    restore them on exit.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from .adapters.cache.store import ArtifactStore


class InjectedFailure(OSError):
    """Raised by the injection helpers; an ``OSError`` like a real I/O fault."""


class _FailingInvalidator:
    def invalidate(self, identity: str) -> bool:
        raise InjectedFailure(f"injected failure after swap of {identity}")


@contextmanager
def interrupt_before_swap(store: ArtifactStore) -> Iterator[ArtifactStore]:
    """Make every ``persist`` on *store* fail just before the atomic rename.

    The temporary file has been fully written and synced at that point, so
    this exercises the clean-up path and the "previous artifact untouched"
    guarantee.
    """

    def _replace(source: Any, destination: Any) -> None:
        raise InjectedFailure(f"injected failure before swap onto {destination}")

    previous = store.replace
    store.replace = _replace
    try:
        yield store
    finally:
        store.replace = previous


@contextmanager
def interrupt_after_swap(store: ArtifactStore) -> Iterator[ArtifactStore]:
    """Make every ``persist`` on *store* fail right after the atomic rename."""

    previous = store.invalidator
    store.invalidator = _FailingInvalidator()
    try:
        yield store
    finally:
        store.invalidator = previous
