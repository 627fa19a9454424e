"""Update command: converge the vendor directory to the manifest."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click
from rich.markup import escape
from rich.table import Table

from ..errors import DepVendorError
from ..manifest import load_manifest
from ..models import RunContext
from ..sync import SyncPlanner
from ._common import action_label, console, fail


def register_update_commands(main: click.Group) -> None:
    """Register the update command."""

    @main.command()
    @click.option(
        "--force/--no-force", "-f", default=False,
        help="Remove the vendor dir and start from a clean state.",
    )
    @click.option(
        "--prune/--no-prune", default=None,
        help="Delete vendor entries not in the manifest (default: from global config).",
    )
    @click.pass_obj
    def update(obj: dict, force: bool, prune: Optional[bool]):
        """Link, clone, or converge every dependency in the manifest."""
        manifest_path: Path = obj["manifest_path"]
        config = obj["config"]

        context = RunContext(
            config=config,
            force=force,
            prune=config.general.prune if prune is None else prune,
        )

        try:
            manifest = load_manifest(manifest_path)
            project_root = manifest_path.resolve().parent
            results = SyncPlanner(context).sync(manifest, project_root)
        except (DepVendorError, OSError) as exc:
            fail(str(exc))

        if not results:
            console.print("\n  [yellow]No dependencies declared.[/]\n")
            return

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Dependency", style="bold cyan")
        table.add_column("Action")
        table.add_column("Destination")
        table.add_column("Source", style="dim")
        for result in results:
            table.add_row(
                escape(result.name),
                action_label(result.action),
                escape(str(result.destination)),
                escape(result.source),
            )

        console.print()
        console.print(table)
        console.print()
