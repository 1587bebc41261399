"""Bytecode cache invalidation for persisted artifacts.

Python-format artifacts are loaded through :mod:`importlib`, so CPython keeps
compiled copies under ``__pycache__``. Those are validated by source mtime and
size only; an artifact rewritten within the same second with the same size
would otherwise be served from stale bytecode. The store therefore calls an
invalidator strictly after each atomic swap.
"""

from __future__ import annotations

import importlib
import importlib.util
from pathlib import Path
from typing import Iterator

from ...observability import log_debug

_OPTIMIZATION_LEVELS = ("", 1, 2)


class BytecodeCacheInvalidator:
    """Remove compiled bytecode keyed to an artifact path."""

    def invalidate(self, identity: str) -> bool:
        """Delete cached ``.pyc`` files for *identity* and reset import finders.

        Returns ``True`` when at least one compiled file was removed. A missing
        cache entry is not an error.
        """

        removed = False
        for compiled in _compiled_paths(identity):
            try:
                Path(compiled).unlink()
            except FileNotFoundError:
                continue
            removed = True
        importlib.invalidate_caches()
        log_debug("artifact_invalidated", identity=identity, removed=removed)
        return removed


def _compiled_paths(identity: str) -> Iterator[str]:
    for optimization in _OPTIMIZATION_LEVELS:
        try:
            yield importlib.util.cache_from_source(identity, optimization=optimization)
        except NotImplementedError:  # pragma: no cover - interpreter without cache_tag
            return
