"""Layer source backed by a directory of structured files.

Purpose
-------
Let applications and file-based providers declare their layers as TOML, JSON
or YAML documents. A slot lives in ``<kind>.<mode>[.<variant>].<ext>``::

    config/
        config.http.toml
        config.http.prod.toml
        routes.http.toml
        services.http.yaml
        config.cli.json

System Role
-----------
Implements :class:`lib_layered_compose.application.ports.LayerSource`. Files
are parsed by the loaders in
:mod:`lib_layered_compose.adapters.file_loaders.structured`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

from ...application.ports import FileLoader
from ...domain.errors import InvalidFormat
from ...observability import log_debug
from ..file_loaders.structured import FILE_LOADERS


class DirectoryLayerSource:
    """Serve slots from files under *root*."""

    def __init__(
        self,
        root: str | Path,
        *,
        name: str | None = None,
        loaders: Mapping[str, FileLoader] | None = None,
    ) -> None:
        """Store the directory and the loader registry.

        Parameters
        ----------
        root:
            Directory holding the slot files.
        name:
            Identity used in provenance and reports; defaults to the path.
        loaders:
            Suffix to loader mapping; defaults to :data:`FILE_LOADERS`.
        """

        self.root = Path(root)
        self.name = name or str(self.root)
        self._loaders = dict(loaders or FILE_LOADERS)

    def slot(self, mode: str, kind: str, variant: str | None = None) -> Mapping[str, object] | None:
        """Return the parsed slot or ``None`` when no file declares it.

        Raises
        ------
        InvalidFormat
            When the file does not parse, or when more than one file claims the
            same slot (``routes.http.toml`` next to ``routes.http.yaml``).

        Examples
        --------
        >>> from tempfile import TemporaryDirectory
        >>> tmp = TemporaryDirectory()
        >>> _ = (Path(tmp.name) / "config.http.json").write_text('{"debug": false}', encoding="utf-8")
        >>> source = DirectoryLayerSource(tmp.name)
        >>> source.slot("http", "config")
        {'debug': False}
        >>> source.slot("cli", "config") is None
        True
        >>> tmp.cleanup()
        """

        candidates = self.candidates(mode, kind, variant)
        if not candidates:
            log_debug("layer_slot_missing", layer=self.name, kind=kind, mode=mode, variant=variant)
            return None
        if len(candidates) > 1:
            names = ", ".join(path.name for path in candidates)
            raise InvalidFormat(f"Ambiguous {kind} slot in {self.root}: {names}")
        path = candidates[0]
        return self._loaders[path.suffix.lower()].load(str(path))

    def candidates(self, mode: str, kind: str, variant: str | None = None) -> list[Path]:
        """Return existing files that declare ``(mode, kind[, variant])``."""

        stem = ".".join([kind, mode] if variant is None else [kind, mode, variant])
        return [path for path in (self.root / f"{stem}{suffix}" for suffix in self._loaders) if path.is_file()]

    def __repr__(self) -> str:
        return f"DirectoryLayerSource({self.name!r})"
