"""
depvendor CLI -- init a manifest, update the vendor directory.

    depvendor init      write a deps.toml skeleton here
    depvendor update    link, clone, and converge every dependency
    depvendor global    show where the global config lives

Entry point: depvendor.cli:main
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from .. import MANIFEST_FILE, __version__
from ..config import load_or_init_global_config
from ..errors import DepVendorError
from ._common import fail


@click.group()
@click.version_option(version=__version__, prog_name="depvendor")
@click.option(
    "--manifest", "manifest_path", default=MANIFEST_FILE, show_default=True,
    type=click.Path(dir_okay=False, path_type=Path), help="Manifest file to use.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log every step.")
@click.pass_context
def main(ctx: click.Context, manifest_path: Path, verbose: bool):
    """Dependency manager.

    Vendors local paths and git repositories listed in deps.toml.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )
    try:
        config, config_path = load_or_init_global_config()
    except DepVendorError as exc:
        fail(str(exc))

    ctx.obj = {
        "config": config,
        "config_path": config_path,
        "manifest_path": manifest_path,
    }


# ---------------------------------------------------------------------------
# Register all commands from modular files
# ---------------------------------------------------------------------------

from .global_cmd import register_global_commands
from .project import register_project_commands
from .update import register_update_commands

register_global_commands(main)
register_project_commands(main)
register_update_commands(main)
