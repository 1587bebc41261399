"""Turn layer references into :class:`LayerSource` adapters.

References come from an application's ``config/layers.*`` file or from code:

* an object that already implements ``slot()`` is used as-is;
* a string that looks like a filesystem path (contains a separator, starts
  with ``.``, or names an existing directory below *base_dir*) becomes a
  :class:`DirectoryLayerSource`;
* any other string is imported as ``pkg.module[:attribute]`` and becomes a
  :class:`ModuleLayerSource`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from ...application.ports import LayerSource
from ...domain.errors import LayerResolutionError
from ...observability import log_error
from .directory import DirectoryLayerSource
from .module import ModuleLayerSource


def resolve_source(
    reference: Any,
    *,
    position: int,
    base_dir: Path | None = None,
    kind: str | None = None,
) -> LayerSource:
    """Return a layer source for *reference* or raise :class:`LayerResolutionError`.

    Parameters
    ----------
    reference:
        Source object or reference string.
    position:
        Order position of the layer; carried by the error so tooling can point
        at the offending list entry.
    base_dir:
        Directory relative paths are resolved against (the application root).
    kind:
        Artifact kind being composed; reported by the error.
    """

    if isinstance(reference, LayerSource):
        return reference
    if not isinstance(reference, str) or not reference.strip():
        raise LayerResolutionError(
            f"Layer #{position}: reference must be a non-empty string, got {reference!r}",
            position=position,
            reference=repr(reference),
            kind=kind,
        )
    if _looks_like_path(reference, base_dir):
        return _directory_source(reference, position=position, base_dir=base_dir, kind=kind)
    try:
        return ModuleLayerSource.from_reference(reference)
    except (ImportError, AttributeError, SyntaxError) as exc:
        log_error("layer_unresolved", layer=reference, position=position, error=str(exc))
        raise LayerResolutionError(
            f"Layer #{position}: cannot import {reference!r}: {exc}",
            position=position,
            reference=reference,
            kind=kind,
        ) from exc


def _looks_like_path(reference: str, base_dir: Path | None) -> bool:
    if "/" in reference or "\\" in reference or reference.startswith("."):
        return True
    return base_dir is not None and (base_dir / reference).is_dir()


def _directory_source(
    reference: str, *, position: int, base_dir: Path | None, kind: str | None
) -> DirectoryLayerSource:
    path = Path(reference).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    if not path.is_dir():
        log_error("layer_unresolved", layer=reference, position=position, error="directory not found")
        raise LayerResolutionError(
            f"Layer #{position}: directory {str(path)!r} does not exist",
            position=position,
            reference=reference,
            kind=kind,
        )
    return DirectoryLayerSource(path, name=reference)
