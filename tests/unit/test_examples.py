from __future__ import annotations

from pathlib import Path

from lib_layered_compose.examples.generate import generate_examples


def test_generate_examples_idempotent(tmp_path: Path) -> None:
    written_first = generate_examples(tmp_path)
    assert written_first
    # second call without force should not overwrite
    assert generate_examples(tmp_path) == []


def test_generate_examples_force_overwrites(tmp_path: Path) -> None:
    paths = generate_examples(tmp_path)
    target = paths[0]
    original = target.read_text(encoding="utf-8")
    target.write_text("override", encoding="utf-8")
    generate_examples(tmp_path, force=True)
    assert target.read_text(encoding="utf-8") == original


def test_generate_examples_layout(tmp_path: Path) -> None:
    paths = generate_examples(tmp_path)
    relative = {p.relative_to(tmp_path).as_posix() for p in paths}
    assert relative == {
        "config/layers.toml",
        "config/config.http.toml",
        "config/config.http.prod.toml",
        "config/config.cli.toml",
        "config/routes.http.toml",
        "config/routes.cli.toml",
        "config/services.http.toml",
        "config/services.cli.toml",
        "providers/blog/config.http.toml",
        "providers/blog/routes.http.toml",
        "providers/blog/services.http.toml",
    }


def test_examples_reexported() -> None:
    from lib_layered_compose.examples import generate_examples as exported

    assert exported is generate_examples
