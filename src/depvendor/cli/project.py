"""Project commands: init."""

from __future__ import annotations

import getpass
import sys
from pathlib import Path

import click
from rich.markup import escape

from ..errors import ManifestError
from ..manifest import init_manifest
from ._common import console, logger


def _current_user() -> list[str]:
    try:
        return [getpass.getuser()]
    except (KeyError, OSError) as exc:
        logger.debug("Could not determine user name: %s", exc)
        return []


def register_project_commands(main: click.Group) -> None:
    """Register the project setup commands."""

    @main.command()
    @click.pass_obj
    def init(obj: dict):
        """Create a deps.toml skeleton in the current directory."""
        manifest_path: Path = obj["manifest_path"]
        name = Path.cwd().name

        try:
            init_manifest(manifest_path, name=name, authors=_current_user())
        except ManifestError as exc:
            console.print(f"[bold red]{escape(str(exc))}[/]", soft_wrap=True)
            sys.exit(1)

        console.print(f"\n  Created [cyan]{escape(str(manifest_path))}[/] for project [bold]{escape(name)}[/]\n")
