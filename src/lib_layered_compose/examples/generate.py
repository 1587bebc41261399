"""Example application scaffolding.

Purpose
-------
Produce a small, reproducible application tree that exercises every part of
the layered composition: a layer plan, one directory provider, application
base layers for both modes, and a ``prod`` environment overlay. The tree
builds and warms cleanly, so it doubles as a smoke test and as onboarding
material.

Contents
    - ``ExampleSpec``: relative path plus text content of one file.
    - ``generate_examples``: write the tree, honouring ``force``.
    - ``_build_specs``: yields the file templates.

Layout::

    config/layers.toml            providers = ["providers/blog"]
    config/{config,routes,services}.http.toml
    config/{config,routes,services}.cli.toml
    config/config.http.prod.toml  environment overlay
    providers/blog/{config,routes,services}.http.toml
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator


@dataclass(slots=True)
class ExampleSpec:
    """Describe a single example file to be written to disk.

    Attributes
    ----------
    relative_path:
        Path relative to the destination directory.
    content:
        File contents (UTF-8 text).
    """

    relative_path: Path
    content: str


def generate_examples(destination: str | Path, *, force: bool = False) -> list[Path]:
    """Write the example application under *destination*.

    Parameters
    ----------
    destination:
        Application root that will receive ``config/`` and ``providers/``.
    force:
        Overwrite existing files; otherwise existing files are left alone.

    Returns
    -------
    list[Path]
        Files written during this invocation.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> generated = generate_examples(tmp.name)
    >>> sorted(path.name for path in generated)[:3]
    ['config.cli.toml', 'config.http.prod.toml', 'config.http.toml']
    >>> generate_examples(tmp.name)
    []
    >>> tmp.cleanup()
    """

    dest = Path(destination)
    written: list[Path] = []
    for spec in _build_specs():
        path = dest / spec.relative_path
        if path.exists() and not force:
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(spec.content, encoding="utf-8")
        written.append(path)
    return written


def _build_specs() -> Iterator[ExampleSpec]:
    """Yield the example files, application first, then the provider.

    >>> [spec.relative_path.as_posix() for spec in _build_specs()][0]
    'config/layers.toml'
    """

    config = Path("config")
    blog = Path("providers/blog")

    yield ExampleSpec(
        config / "layers.toml",
        """# Layer plan: baseline first, then providers in precedence order (later wins)
providers = ["providers/blog"]
""",
    )
    yield ExampleSpec(
        config / "config.http.toml",
        """# Application base configuration (http mode)
[app]
name = "demo"
debug = true

[http]
port = 8080
""",
    )
    yield ExampleSpec(
        config / "config.http.prod.toml",
        """# Environment overlay, applied last when the environment is "prod"
[app]
debug = false

[http]
host = "0.0.0.0"
""",
    )
    yield ExampleSpec(
        config / "config.cli.toml",
        """# Application base configuration (cli mode)
[app]
name = "demo"

[cli]
verbosity = 1
""",
    )
    yield ExampleSpec(
        config / "routes.http.toml",
        """# Application routes; a table for an existing path overrides single fields
["/"]
controller = "demo.controllers.Home"
action = "index"
methods = ["GET"]

["/blog"]
action = "landing"
""",
    )
    yield ExampleSpec(
        config / "routes.cli.toml",
        """# Console commands are routes of the cli mode
["cache:warm"]
controller = "demo.commands.Cache"
action = "warm"
methods = ["RUN"]
""",
    )
    yield ExampleSpec(
        config / "services.http.toml",
        """# Application services replace provider definitions wholesale
[mailer]
class = "demo.services.LogMailer"
""",
    )
    yield ExampleSpec(
        config / "services.cli.toml",
        """console = "demo.services.Console"
""",
    )
    yield ExampleSpec(
        blog / "config.http.toml",
        """# Provider defaults for the blog
[blog]
per_page = 10
tags = ["news", "releases"]
""",
    )
    yield ExampleSpec(
        blog / "routes.http.toml",
        """["/blog"]
controller = "blog.controllers.Posts"
action = "index"
methods = ["GET"]

# Pattern routes keep their declared order
[[regex]]
pattern = "^/blog/(?P<slug>[a-z0-9-]+)$"
controller = "blog.controllers.Posts"
action = "show"
methods = ["GET"]
""",
    )
    yield ExampleSpec(
        blog / "services.http.toml",
        """feed = "blog.services.Feed"

[mailer]
class = "blog.services.SmtpMailer"

[mailer.options]
host = "localhost"
port = 25
""",
    )


__all__ = ["ExampleSpec", "generate_examples"]
