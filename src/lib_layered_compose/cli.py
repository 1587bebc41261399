"""CLI adapter for ``lib_layered_compose`` built on ``lib_cli_exit_tools``.

Purpose
-------
Let operators and deployment scripts inspect layer plans, compose artifacts,
warm the artifact cache and read persisted snapshots without writing Python.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command; global options feed one :class:`Settings`.
* :func:`cli_info` – distribution metadata.
* :func:`cli_layers` – ordered layer list for one ``(mode, kind)``.
* :func:`cli_build` – compose and validate without persisting.
* :func:`cli_warm` – build everything, then persist.
* :func:`cli_show` – load a persisted artifact.
* :func:`cli_generate_examples` – scaffold the example application.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
Outermost layer: calls the composition root and the settings object only.
Composition failures are printed as a structured JSON report on stderr, then
re-raised so ``lib_cli_exit_tools`` prints the summary and picks the exit code.
"""

from __future__ import annotations

import json
import sys
import uuid
from contextlib import contextmanager
from importlib import metadata
from pathlib import Path
from typing import Any, Final, Iterator, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .adapters.cache.store import ARTIFACT_FORMATS
from .core import build, collect_layers, load, warm
from .domain.errors import CompositionError
from .domain.layers import ARTIFACT_KINDS
from .examples import generate_examples as _generate_examples
from .observability import bind_trace_id
from .settings import Settings

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000
_DIST_NAME: Final[str] = "lib_layered_compose"


def _resolve_version() -> str:
    """Return the installed package version, ``"0.0.0"`` when not installed."""

    try:
        return metadata.version(_DIST_NAME)
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Compose layered configuration, routes and services into cached snapshots",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name=_DIST_NAME,
    message="lib_layered_compose version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.option(
    "--app-root",
    type=click.Path(path_type=Path, file_okay=False, dir_okay=True),
    default=None,
    help="Application root holding config/ (env: LAYERED_COMPOSE_APP_ROOT, default: CWD)",
)
@click.option(
    "--cache-dir",
    type=click.Path(path_type=Path, file_okay=False, dir_okay=True),
    default=None,
    help="Artifact directory (env: LAYERED_COMPOSE_CACHE_DIR, default: <app-root>/var/cache)",
)
@click.option("--env", "environment", default=None, help="Environment overlay variant, e.g. prod")
@click.option(
    "--format",
    "artifact_format",
    type=click.Choice(tuple(ARTIFACT_FORMATS)),
    default=None,
    help="Artifact format (env: LAYERED_COMPOSE_ARTIFACT_FORMAT, default: json)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    traceback: bool,
    app_root: Optional[Path],
    cache_dir: Optional[Path],
    environment: Optional[str],
    artifact_format: Optional[str],
) -> None:
    """Root command storing global options for the subcommands.

    Side Effects
        Mutates ``lib_cli_exit_tools.config.traceback`` and
        ``lib_cli_exit_tools.config.traceback_force_color`` and binds a fresh
        trace id for the invocation.
    """

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    ctx.obj["overrides"] = {
        "app_root": app_root,
        "cache_dir": cache_dir,
        "environment": environment,
        "artifact_format": artifact_format,
    }
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback
    bind_trace_id(f"cli-{uuid.uuid4().hex[:12]}")


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata(_DIST_NAME)
    except metadata.PackageNotFoundError:
        click.echo(f"{_DIST_NAME} (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', _DIST_NAME)}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")


@cli.command("layers", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--mode", default="http", show_default=True, help="Execution mode")
@click.option("--kind", type=click.Choice(ARTIFACT_KINDS), default="config", show_default=True)
@click.pass_context
def cli_layers(ctx: click.Context, mode: str, kind: str) -> None:
    """List the layers contributing to one artifact, lowest precedence first."""

    settings = _settings(ctx)
    with _report_failures():
        layers = collect_layers(mode, kind, blueprint=settings.blueprint())
    rows = [{**layer.describe(), "keys": sorted(str(key) for key in layer.payload)} for layer in layers]
    click.echo(json.dumps(rows, indent=2))


@cli.command("build", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--mode", default="http", show_default=True, help="Execution mode")
@click.option("--kind", type=click.Choice(ARTIFACT_KINDS), default="config", show_default=True)
@click.option("--indent", type=int, default=None, help="Pretty-print JSON output with the provided indent size")
@click.option(
    "--provenance/--no-provenance",
    default=False,
    help="Include the layer that supplied each key",
)
@click.pass_context
def cli_build(ctx: click.Context, mode: str, kind: str, indent: Optional[int], provenance: bool) -> None:
    """Compose and validate one artifact and print it; nothing is written."""

    settings = _settings(ctx)
    with _report_failures():
        result = build(mode, kind, blueprint=settings.blueprint())
    if provenance:
        payload = {
            kind: result.as_dict(),
            "provenance": dict(result.provenance),
            "layers": [dict(item) for item in result.layers],
        }
        click.echo(json.dumps(payload, indent=indent, separators=(",", ":") if indent is None else None))
        return
    click.echo(result.to_json(indent=indent))


@cli.command("warm", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--mode", "modes", multiple=True, help="Mode to warm (repeatable, default: every configured mode)")
@click.option(
    "--overwrite/--no-overwrite",
    default=True,
    show_default=True,
    help="Replace existing artifacts or keep them",
)
@click.option(
    "--invalidate/--no-invalidate",
    default=True,
    show_default=True,
    help="Invalidate compiled caches after each swap",
)
@click.pass_context
def cli_warm(ctx: click.Context, modes: Sequence[str], overwrite: bool, invalidate: bool) -> None:
    """Build every artifact, then persist them atomically.

    Prints a JSON array describing the artifacts that were written.
    """

    settings = _settings(ctx)
    with _report_failures():
        written = warm(
            blueprint=settings.blueprint(),
            store=settings.store(),
            overwrite=overwrite,
            invalidate=invalidate,
            modes=tuple(modes) or settings.modes,
        )
    click.echo(json.dumps([artifact.as_dict() for artifact in written], indent=2))


@cli.command("show", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--mode", default="http", show_default=True, help="Execution mode")
@click.option("--kind", type=click.Choice(ARTIFACT_KINDS), default="config", show_default=True)
@click.option("--indent", type=int, default=None, help="Pretty-print JSON output with the provided indent size")
@click.pass_context
def cli_show(ctx: click.Context, mode: str, kind: str, indent: Optional[int]) -> None:
    """Print a persisted artifact after verifying its fingerprint."""

    settings = _settings(ctx)
    with _report_failures():
        result = load(kind, mode, store=settings.store(), verify=True)
    click.echo(result.to_json(indent=indent))


@cli.command("generate-examples", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option(
    "--destination",
    type=click.Path(path_type=Path, file_okay=False, dir_okay=True, resolve_path=True),
    required=True,
    help="Directory that will receive the example application",
)
@click.option(
    "--force/--no-force",
    default=False,
    help="Overwrite existing example files if set",
    show_default=True,
)
def cli_generate_examples(destination: Path, force: bool) -> None:
    """Generate the example application under *destination*."""

    created = _generate_examples(destination, force=force)
    click.echo(json.dumps([str(path) for path in created], indent=2))


def _settings(ctx: click.Context) -> Settings:
    """Resolve settings from the environment and the global options."""

    overrides: dict[str, Any] = (ctx.obj or {}).get("overrides", {})
    try:
        return Settings.from_env(**overrides)
    except ValueError as exc:
        raise click.UsageError(str(exc), ctx=ctx) from exc


@contextmanager
def _report_failures() -> Iterator[None]:
    """Echo the structured report of a :class:`CompositionError` to stderr and re-raise."""

    try:
        yield
    except CompositionError as exc:
        click.echo(json.dumps(exc.as_dict(), indent=2, default=str), err=True)
        raise


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name=_DIST_NAME,
            )
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
