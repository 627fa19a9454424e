"""
Remote URL derivation for git dependencies.

An explicit ``git`` URL is used verbatim. A ``repo`` shorthand is joined
to the project's ``git-server``, injecting the ``git`` SSH user when the
server string does not already carry one.
"""

from __future__ import annotations

from typing import Optional

from ..errors import ResolutionError
from ..models import DependencySpec


def join_server(server: str, repo: str) -> str:
    """Combine a git server and a repo shorthand into a clone URL.

    >>> join_server("example.com", "team/lib")
    'git@example.com:team/lib'
    >>> join_server("https://example.com", "team/lib")
    'https://git@example.com:team/lib'
    """
    if "@" in server:
        return f"{server}:{repo}"
    if "://" in server:
        protocol, host = server.split("://", 1)
        return f"{protocol}://git@{host}:{repo}"
    return f"git@{server}:{repo}"


def derive_url(dep: DependencySpec, git_server: Optional[str]) -> str:
    """The URL to clone for a remote dependency.

    Raises:
        ResolutionError: If neither ``git`` nor ``repo`` plus a server is usable.
    """
    if dep.git:
        return dep.git
    if dep.repo and git_server:
        return join_server(git_server, dep.repo)
    raise ResolutionError("no git url or path")
