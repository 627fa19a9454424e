"""Global config command: global."""

from __future__ import annotations

import click
from rich.markup import escape

from ..config import global_config_path
from ..errors import ConfigError
from ._common import console, fail


def register_global_commands(main: click.Group) -> None:
    """Register the global config command."""

    @main.command("global")
    @click.pass_obj
    def global_(obj: dict):
        """Print the resolved global configuration path."""
        path = obj.get("config_path")
        if path is None:
            try:
                path = global_config_path()
            except ConfigError as exc:
                fail(str(exc))
        console.print(f'Global configuration path: "{escape(str(path))}"', highlight=False, soft_wrap=True)
