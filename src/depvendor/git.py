"""
Version-control backend -- the git operations the sync planner drives.

GitBackend is the contract; GitCliBackend implements it by running the
``git`` binary. SSH credentials reach git through the environment:
``GIT_SSH_COMMAND`` selects the key, and a throwaway ``SSH_ASKPASS``
helper answers the passphrase prompt when the key is protected.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import stat
import subprocess
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional
from urllib.parse import urlsplit

from .credentials import CredentialCallback
from .errors import BackendError

logger = logging.getLogger("depvendor.git")

ASKPASS_SECRET_ENV = "DEPVENDOR_ASKPASS_SECRET"

_SCP_LIKE_RE = re.compile(r"^(?:(?P<user>[^@/:]+)@)?(?P<host>[^/:]{2,}):(?!//)")


def requires_ssh_auth(url: str) -> bool:
    """Whether git will talk to ``url`` over SSH."""
    if url.startswith("ssh://") or url.startswith("git+ssh://"):
        return True
    if "://" in url or "\\" in url:
        return False
    return _SCP_LIKE_RE.match(url) is not None


def username_from_url(url: str) -> Optional[str]:
    """The user encoded in a remote URL, if any."""
    if "://" in url:
        return urlsplit(url).username or None
    match = _SCP_LIKE_RE.match(url)
    if match:
        return match.group("user")
    return None


@dataclass(frozen=True)
class GitCheckout:
    """Handle to a working tree the backend has cloned or opened."""

    path: Path


@dataclass(frozen=True)
class GitHead:
    """Where HEAD points: a commit id and, unless detached, a branch."""

    commit: str
    branch: Optional[str] = None


class GitBackend(ABC):
    """The operations the sync planner needs from a git implementation."""

    @abstractmethod
    def clone(
        self,
        url: str,
        dest: Path,
        credentials: CredentialCallback,
        branch: Optional[str] = None,
    ) -> GitCheckout:
        """Clone ``url`` into the existing, empty directory ``dest``."""

    @abstractmethod
    def open(self, dest: Path) -> GitCheckout:
        """Open an existing checkout rooted exactly at ``dest``."""

    @abstractmethod
    def fetch(
        self,
        checkout: GitCheckout,
        refspec: Optional[str],
        credentials: CredentialCallback,
    ) -> None:
        """Fetch ``refspec`` (or the remote's default refspecs) from origin."""

    @abstractmethod
    def resolve_branch(self, checkout: GitCheckout, name: str) -> str:
        """Commit id at the fetched tip of remote branch ``name``."""

    @abstractmethod
    def resolve_tag(self, checkout: GitCheckout, name: str) -> str:
        """Commit id a tag peels to."""

    @abstractmethod
    def resolve_commit(self, checkout: GitCheckout, rev: str) -> str:
        """Full commit id for ``rev``."""

    @abstractmethod
    def head(self, checkout: GitCheckout) -> GitHead:
        """The checkout's current HEAD."""

    @abstractmethod
    def reset_hard(
        self,
        checkout: GitCheckout,
        target: str,
        branch: Optional[str] = None,
    ) -> None:
        """Make the working tree exactly ``target``.

        Checks out ``branch`` pointed at ``target`` (or detaches HEAD when
        no branch is given), discards local modifications, and removes
        untracked files.
        """


class GitCliBackend(GitBackend):
    """GitBackend on top of the ``git`` command line."""

    def __init__(self, git: str = "git"):
        self.git = git

    def _run(
        self,
        args: list[str],
        cwd: Optional[Path] = None,
        env: Optional[dict[str, str]] = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess:
        cmd = [self.git, *args]
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, check=False,
                cwd=str(cwd) if cwd else None, env=env,
            )
        except OSError as exc:
            raise BackendError(f"Could not run git: {exc}") from exc

        if check and result.returncode != 0:
            detail = (result.stderr or result.stdout).strip()
            raise BackendError(f"git {args[0]} failed: {detail}")
        return result

    @contextmanager
    def _auth_env(self, url: str, credentials: CredentialCallback) -> Iterator[Optional[dict[str, str]]]:
        """Environment for a git command that talks to ``url``."""
        if not requires_ssh_auth(url):
            yield None
            return

        cred = credentials(username_from_url(url))
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        env["GIT_SSH_COMMAND"] = " ".join([
            "ssh",
            "-i", shlex.quote(str(cred.private_key)),
            "-o", "IdentitiesOnly=yes",
            "-l", shlex.quote(cred.username),
        ])
        if not cred.passphrase:
            yield env
            return

        with tempfile.TemporaryDirectory(prefix="depvendor-") as tmp:
            helper = Path(tmp) / "askpass.sh"
            helper.write_text(
                f'#!/bin/sh\nprintf \'%s\\n\' "${ASKPASS_SECRET_ENV}"\n',
                encoding="utf-8",
            )
            helper.chmod(stat.S_IRWXU)
            env[ASKPASS_SECRET_ENV] = cred.passphrase
            env["SSH_ASKPASS"] = str(helper)
            env["SSH_ASKPASS_REQUIRE"] = "force"
            env.setdefault("DISPLAY", ":0")
            yield env

    def clone(self, url, dest, credentials, branch=None):
        args = ["clone", "--quiet"]
        if branch:
            args += ["--branch", branch]
        args += ["--", url, str(dest)]
        with self._auth_env(url, credentials) as env:
            self._run(args, env=env)
        logger.info("Cloned %s into %s", url, dest)
        return GitCheckout(path=Path(dest))

    def open(self, dest):
        if not dest.is_dir():
            raise BackendError(f"{dest} is not a directory")
        result = self._run(["rev-parse", "--show-toplevel"], cwd=dest, check=False)
        toplevel = result.stdout.strip()
        if result.returncode != 0 or not toplevel:
            raise BackendError(f"{dest} is not a git checkout")
        if Path(toplevel).resolve() != Path(dest).resolve():
            raise BackendError(f"{dest} is not the root of a git checkout (found {toplevel})")
        return GitCheckout(path=Path(dest))

    def remote_url(self, checkout: GitCheckout) -> str:
        result = self._run(["remote", "get-url", "origin"], cwd=checkout.path)
        return result.stdout.strip()

    def fetch(self, checkout, refspec, credentials):
        url = self.remote_url(checkout)
        args = ["fetch", "--quiet", "origin"]
        if refspec:
            args.append(refspec)
        with self._auth_env(url, credentials) as env:
            self._run(args, cwd=checkout.path, env=env)
        logger.debug("Fetched %s into %s", refspec or "default refspecs", checkout.path)

    def _rev_parse(self, checkout: GitCheckout, expr: str, what: str) -> str:
        result = self._run(
            ["rev-parse", "--verify", "--quiet", expr], cwd=checkout.path, check=False,
        )
        commit = result.stdout.strip()
        if result.returncode != 0 or not commit:
            raise BackendError(f"Could not resolve {what} in {checkout.path}")
        return commit

    def resolve_branch(self, checkout, name):
        return self._rev_parse(
            checkout, f"refs/remotes/origin/{name}^{{commit}}", f"branch '{name}'",
        )

    def resolve_tag(self, checkout, name):
        return self._rev_parse(checkout, f"refs/tags/{name}^{{commit}}", f"tag '{name}'")

    def resolve_commit(self, checkout, rev):
        return self._rev_parse(checkout, f"{rev}^{{commit}}", f"revision '{rev}'")

    def head(self, checkout):
        commit = self._rev_parse(checkout, "HEAD^{commit}", "HEAD")
        result = self._run(["symbolic-ref", "--short", "-q", "HEAD"], cwd=checkout.path, check=False)
        branch = result.stdout.strip() if result.returncode == 0 else None
        return GitHead(commit=commit, branch=branch or None)

    def reset_hard(self, checkout, target, branch=None):
        if branch:
            self._run(["checkout", "--quiet", "--force", "-B", branch, target], cwd=checkout.path)
        else:
            self._run(["checkout", "--quiet", "--force", "--detach", target], cwd=checkout.path)
        self._run(["reset", "--quiet", "--hard", target], cwd=checkout.path)
        self._run(["clean", "-fdq"], cwd=checkout.path)
        logger.debug("Reset %s to %s", checkout.path, target)
