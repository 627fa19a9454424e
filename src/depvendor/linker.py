"""
Path linker -- directory links for local-path dependencies.

One implementation per platform, picked once by ``default_linker()``.
Windows tries a real symlink first and falls back to a junction, which
needs no special privilege.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger("depvendor.linker")


class PathLinker(ABC):
    """Creates a link at ``destination`` pointing to ``source``."""

    @abstractmethod
    def link(self, source: Path, destination: Path) -> None:
        """Create the link. ``source`` is absolute and normalized."""

    def unlink(self, destination: Path) -> None:
        """Remove a link without touching what it points to."""
        destination.unlink()

    def target(self, destination: Path) -> Path:
        """Where an existing link points."""
        return Path(os.readlink(destination))

    def is_link(self, destination: Path) -> bool:
        return destination.is_symlink()


class SymlinkLinker(PathLinker):
    """POSIX symbolic links."""

    def link(self, source: Path, destination: Path) -> None:
        destination.symlink_to(source, target_is_directory=True)


class WindowsLinker(PathLinker):
    """Directory symlinks, or junctions when symlinks need privileges."""

    def link(self, source: Path, destination: Path) -> None:
        try:
            destination.symlink_to(source, target_is_directory=True)
            return
        except OSError as exc:
            logger.debug("Symlink failed (%s), creating a junction instead", exc)

        result = subprocess.run(
            ["cmd", "/c", "mklink", "/J", str(destination), str(source)],
            capture_output=True, text=True, check=False,
        )
        if result.returncode != 0:
            raise OSError(
                f"Could not link {destination} -> {source}: {result.stderr.strip()}"
            )

    def unlink(self, destination: Path) -> None:
        if destination.is_symlink():
            destination.unlink()
        else:
            os.rmdir(destination)

    def is_link(self, destination: Path) -> bool:
        if destination.is_symlink():
            return True
        return bool(getattr(destination, "is_junction", lambda: False)())


def default_linker() -> PathLinker:
    """The linker for the running platform."""
    if sys.platform == "win32":
        return WindowsLinker()
    return SymlinkLinker()
