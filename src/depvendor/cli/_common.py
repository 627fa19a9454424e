"""Shared utilities for all CLI command modules.

Provides the Rich console instance, the logger, and the helpers every
command uses to report failures.
"""

from __future__ import annotations

import logging
import sys
from typing import NoReturn

from rich.console import Console
from rich.markup import escape

from ..models import SyncAction

console = Console()
logger = logging.getLogger("depvendor.cli")


def fail(message: str, code: int = 1) -> NoReturn:
    """Print an error and exit with ``code``."""
    console.print(f"[bold red]Error:[/] {escape(message)}", soft_wrap=True)
    sys.exit(code)


def action_label(action: SyncAction) -> str:
    """Map a sync action to Rich markup.

    Args:
        action: What the run did to a destination.

    Returns:
        str: Rich markup string for the action.
    """
    return {
        SyncAction.LINKED: "[bold green]linked[/]",
        SyncAction.RELINKED: "[bold yellow]relinked[/]",
        SyncAction.KEPT: "[dim]kept[/]",
        SyncAction.CLONED: "[bold green]cloned[/]",
        SyncAction.CONVERGED: "[cyan]converged[/]",
    }.get(action, "[dim]unknown[/]")
