"""Environment variable adapter.

Purpose
-------
Translate prefixed process environment variables into a nested mapping that
:class:`lib_layered_compose.settings.Settings` reads its deployment knobs from
(application root, cache directory, environment overlay, artifact format).

Key behaviours
--------------
* Only keys starting with the prefix are captured (``LAYERED_COMPOSE_``).
* ``__`` nests (``PREFIX_CACHE__DIR`` → ``{"cache": {"dir": ...}}``).
* Light scalar coercion: booleans, ``null``/``none``, integers and finite
  floats; everything else stays a string.
"""

from __future__ import annotations

import math
import os
from typing import Mapping

from ...observability import log_debug


class DefaultEnvLoader:
    """Load environment variables that belong to one prefix."""

    def __init__(self, *, environ: Mapping[str, str] | None = None) -> None:
        """Read from *environ* when given (tests), otherwise from :data:`os.environ`."""

        self._environ = os.environ if environ is None else environ

    def load(self, prefix: str) -> dict[str, object]:
        """Return a nested mapping of the variables carrying *prefix*.

        Parameters
        ----------
        prefix:
            Upper-case prefix; ``_`` is appended when missing.

        Returns
        -------
        dict[str, object]
            Lower-case keys, coerced values.

        Examples
        --------
        >>> loader = DefaultEnvLoader(environ={'DEMO_CACHE_DIR': '/tmp/c', 'DEMO_ENVIRONMENT': 'prod', 'OTHER': 'x'})
        >>> sorted(loader.load('DEMO').items())
        [('cache_dir', '/tmp/c'), ('environment', 'prod')]
        """

        prefix = f"{prefix}_" if prefix and not prefix.endswith("_") else prefix
        collected: dict[str, object] = {}
        for key, value in self._environ.items():
            if prefix and not key.startswith(prefix):
                continue
            stripped = key[len(prefix) :] if prefix else key
            if not stripped:
                continue
            assign_nested(collected, stripped, _coerce(value))
        log_debug("env_variables_loaded", prefix=prefix, keys=sorted(collected.keys()))
        return collected


def assign_nested(target: dict[str, object], key: str, value: object) -> None:
    """Assign *value* below *target* using ``__`` as the nesting delimiter.

    >>> data: dict[str, object] = {}
    >>> assign_nested(data, 'STORE__FORMAT', 'python')
    >>> data
    {'store': {'format': 'python'}}
    """

    parts = key.split("__")
    cursor = target
    for part in parts[:-1]:
        cursor = _ensure_child_mapping(cursor, part)
    cursor[_resolve_key(cursor, parts[-1])] = value


def _resolve_key(mapping: dict[str, object], key: str) -> str:
    """Reuse an existing key differing only by case, else the lower-case key."""

    lower = key.lower()
    for existing in mapping:
        if existing.lower() == lower:
            return existing
    return lower


def _ensure_child_mapping(mapping: dict[str, object], key: str) -> dict[str, object]:
    resolved = _resolve_key(mapping, key)
    child = mapping.setdefault(resolved, {})
    if not isinstance(child, dict):
        raise ValueError(f"Cannot nest below scalar environment key {key}")
    return child


def _coerce(value: str) -> object:
    """Coerce textual values to Python scalars where unambiguous.

    >>> _coerce('true'), _coerce('10'), _coerce('3.5'), _coerce('nan'), _coerce('http,cli')
    (True, 10, 3.5, 'nan', 'http,cli')
    """

    lowered = value.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if lowered in {"null", "none"}:
        return None
    if value.isdigit() or (value.startswith("-") and value[1:].isdigit()):
        return int(value)
    try:
        number = float(value)
    except ValueError:
        return value
    return number if math.isfinite(number) else value
