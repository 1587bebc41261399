"""Durable storage for composed snapshots.

Purpose
-------
Persist a validated :class:`CompositionResult` so that readers only ever see
the complete previous snapshot or the complete new one, and load it back at
boot without any merge work.

Contents
--------
* :data:`ARTIFACT_FORMATS` – supported serialisations (``json``, ``python``).
* :class:`ArtifactStore` – ``persist`` (write-new, fsync, atomic rename,
  then invalidate) and ``load`` (read canonical, never rebuild).

Write protocol
--------------
1. Serialise the envelope into a uniquely named temporary file next to the
   canonical path, flush and fsync it.
2. ``os.replace`` it onto the canonical path and fsync the directory.
3. Only then invalidate compiled caches keyed to the canonical path.

A failure in steps 1–2 removes the temporary file and leaves the previous
artifact untouched. A failure in step 3 leaves the new artifact in place.
"""

from __future__ import annotations

import importlib.util
import json
import os
import pprint
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Final, Mapping

from ...application.ports import CacheInvalidator
from ...domain.errors import ArtifactCorruptError, ArtifactNotFoundError, CacheWriteError
from ...domain.layers import check_kind, check_mode
from ...domain.result import CacheArtifact, CompositionResult
from ...observability import log_debug, log_error, log_info, make_event
from .invalidation import BytecodeCacheInvalidator

ARTIFACT_FORMATS: Final[dict[str, str]] = {"json": ".json", "python": ".py"}
ENVELOPE_VERSION: Final[int] = 1
_PYTHON_HEADER: Final[str] = "# Generated by lib_layered_compose. Do not edit; rebuild with `lib_layered_compose warm`.\n"


class ArtifactStore:
    """Read and write canonical artifacts under one cache directory.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> store = ArtifactStore(tmp.name)
    >>> artifact = store.persist(CompositionResult("config", "http", {"debug": False}))
    >>> Path(artifact.identity).name
    'config.http.json'
    >>> store.load("config", "http")["debug"]
    False
    >>> tmp.cleanup()
    """

    def __init__(
        self,
        cache_dir: str | Path,
        *,
        format: str = "json",
        invalidator: CacheInvalidator | None = None,
        replace: Callable[[Any, Any], None] | None = None,
    ) -> None:
        """Configure the store.

        Parameters
        ----------
        cache_dir:
            Directory holding the canonical artifacts (created on first write).
        format:
            ``"json"`` or ``"python"``.
        invalidator:
            Compiled-cache invalidator; defaults to :class:`BytecodeCacheInvalidator`.
        replace:
            Atomic rename primitive, :func:`os.replace` unless a test injects
            a failure.
        """

        if format not in ARTIFACT_FORMATS:
            raise ValueError(f"Unsupported artifact format: {format!r} (expected one of {', '.join(ARTIFACT_FORMATS)})")
        self.cache_dir = Path(cache_dir)
        self.format = format
        self.invalidator: CacheInvalidator = invalidator or BytecodeCacheInvalidator()
        self.replace = replace or os.replace

    def identity(self, kind: str, mode: str) -> Path:
        """Return the canonical artifact path for ``(kind, mode)``."""

        return self.cache_dir / f"{check_kind(kind)}.{check_mode(mode)}{ARTIFACT_FORMATS[self.format]}"

    def exists(self, kind: str, mode: str) -> bool:
        return self.identity(kind, mode).is_file()

    def persist(self, result: CompositionResult, *, invalidate: bool = True) -> CacheArtifact:
        """Atomically write *result* onto its canonical identity.

        Raises
        ------
        CacheWriteError
            ``committed=False`` when the previous artifact is untouched,
            ``committed=True`` when the new artifact is in place but a
            post-swap step (directory fsync, invalidation) failed.
        """

        identity = self.identity(result.kind, result.mode)
        try:
            artifact = CacheArtifact(
                kind=result.kind,
                mode=result.mode,
                identity=str(identity),
                written_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
                fingerprint=result.fingerprint,
                format=self.format,
            )
            text = self._serialise(_envelope(result, artifact))
        except UnicodeError as exc:
            log_error("artifact_write_failed", identity=str(identity), committed=False, error=str(exc))
            raise CacheWriteError(f"Could not encode {identity}: {exc}", identity=str(identity)) from exc
        self._write_atomic(identity, text)
        log_info("artifact_written", **make_event(result.kind, result.mode, {"identity": str(identity)}))
        if invalidate:
            self._invalidate(identity)
        return artifact

    def load(self, kind: str, mode: str, *, verify: bool = False) -> CompositionResult:
        """Return the persisted snapshot for ``(kind, mode)``.

        No merge runs and no rebuild is attempted: a missing artifact raises
        :class:`ArtifactNotFoundError` so the boot sequence fails loudly.
        ``verify=True`` additionally recomputes the payload fingerprint.
        """

        identity = self.identity(kind, mode)
        if not identity.is_file():
            log_error("artifact_missing", **make_event(kind, mode, {"identity": str(identity)}))
            raise ArtifactNotFoundError(
                f"No {kind} artifact for mode {mode!r} at {identity}; run the warm step before booting",
                kind=kind,
                mode=mode,
                identity=str(identity),
            )
        envelope = self._deserialise(identity, kind, mode)
        result = _result_from_envelope(envelope, identity, kind, mode)
        if verify and result.fingerprint != envelope.get("fingerprint"):
            raise _corrupt(identity, kind, mode, "fingerprint mismatch")
        log_info("artifact_loaded", **make_event(kind, mode, {"identity": str(identity)}))
        return result

    def _write_atomic(self, identity: Path, text: str) -> None:
        tmp_path: Path | None = None
        try:
            identity.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=str(identity.parent),
                prefix=f".{identity.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_path = Path(handle.name)
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            self.replace(str(tmp_path), str(identity))
            tmp_path = None
        except (OSError, UnicodeError) as exc:
            log_error("artifact_write_failed", identity=str(identity), committed=False, error=str(exc))
            raise CacheWriteError(f"Could not write {identity}: {exc}", identity=str(identity)) from exc
        finally:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
        try:
            _fsync_directory(identity.parent)
        except OSError as exc:
            log_error("artifact_write_failed", identity=str(identity), committed=True, error=str(exc))
            raise CacheWriteError(
                f"{identity} was replaced but the directory could not be synced: {exc}",
                identity=str(identity),
                committed=True,
            ) from exc

    def _invalidate(self, identity: Path) -> None:
        try:
            self.invalidator.invalidate(str(identity))
        except OSError as exc:
            log_error("artifact_write_failed", identity=str(identity), committed=True, error=str(exc))
            raise CacheWriteError(
                f"{identity} was replaced but its bytecode cache could not be invalidated: {exc}",
                identity=str(identity),
                committed=True,
            ) from exc

    def _serialise(self, envelope: Mapping[str, Any]) -> str:
        if self.format == "python":
            return f"{_PYTHON_HEADER}ARTIFACT = {pprint.pformat(envelope, sort_dicts=True, width=100)}\n"
        return json.dumps(envelope, sort_keys=True, separators=(",", ":"), ensure_ascii=False) + "\n"

    def _deserialise(self, identity: Path, kind: str, mode: str) -> Mapping[str, Any]:
        try:
            if self.format == "python":
                envelope = _exec_artifact(identity, kind, mode)
            else:
                envelope = json.loads(identity.read_text(encoding="utf-8"))
        except Exception as exc:  # noqa: BLE001 - any failure means the artifact is unusable
            raise _corrupt(identity, kind, mode, str(exc)) from exc
        if not isinstance(envelope, Mapping):
            raise _corrupt(identity, kind, mode, "envelope is not a mapping")
        log_debug("artifact_read", **make_event(kind, mode, {"identity": str(identity)}))
        return envelope


def _envelope(result: CompositionResult, artifact: CacheArtifact) -> dict[str, Any]:
    return {
        "version": ENVELOPE_VERSION,
        "kind": artifact.kind,
        "mode": artifact.mode,
        "written_at": artifact.written_at,
        "fingerprint": artifact.fingerprint,
        "layers": [dict(layer) for layer in result.layers],
        "payload": result.as_dict(),
    }


def _result_from_envelope(envelope: Mapping[str, Any], identity: Path, kind: str, mode: str) -> CompositionResult:
    if envelope.get("version") != ENVELOPE_VERSION:
        raise _corrupt(identity, kind, mode, f"unsupported envelope version {envelope.get('version')!r}")
    if envelope.get("kind") != kind or envelope.get("mode") != mode:
        raise _corrupt(identity, kind, mode, f"holds {envelope.get('kind')}/{envelope.get('mode')}")
    payload = envelope.get("payload")
    if not isinstance(payload, Mapping):
        raise _corrupt(identity, kind, mode, "payload is not a mapping")
    return CompositionResult(kind, mode, payload, {}, tuple(envelope.get("layers") or ()))


def _exec_artifact(identity: Path, kind: str, mode: str) -> Any:
    """Import a python-format artifact through the regular bytecode-caching loader."""

    spec = importlib.util.spec_from_file_location(f"_lib_layered_compose_artifact_{kind}_{mode}", identity)
    if spec is None or spec.loader is None:
        raise ImportError(f"cannot build an import spec for {identity}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module.ARTIFACT


def _corrupt(identity: Path, kind: str, mode: str, reason: str) -> ArtifactCorruptError:
    log_error("artifact_corrupt", **make_event(kind, mode, {"identity": str(identity), "error": reason}))
    return ArtifactCorruptError(
        f"Artifact {identity} is unusable ({reason}); rebuild it with the warm step",
        kind=kind,
        mode=mode,
        identity=str(identity),
    )


def _fsync_directory(directory: Path) -> None:
    """Make the rename durable on POSIX filesystems."""

    if os.name != "posix":
        return
    descriptor = os.open(str(directory), os.O_RDONLY)
    try:
        os.fsync(descriptor)
    finally:
        os.close(descriptor)


__all__ = ["ARTIFACT_FORMATS", "ArtifactStore", "BytecodeCacheInvalidator"]
