"""
Credential provider -- SSH key material for git remotes.

The backend asks for credentials through ``credential_callback``, a bound
method of one CredentialProvider instance. The provider reads only the
RunContext it was built with and its own cached passphrase.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import click

from .config import home_dir, home_env_var
from .errors import AuthError, MissingEnvironmentError
from .models import RunContext

logger = logging.getLogger("depvendor.credentials")


@dataclass(frozen=True)
class SshKeyCredential:
    """What the backend needs to authenticate over SSH."""

    username: str
    public_key: Path
    private_key: Path
    passphrase: str = ""


CredentialCallback = Callable[[Optional[str]], SshKeyCredential]


def _lookup(variable: str) -> str:
    value = os.environ.get(variable)
    if value is None:
        raise MissingEnvironmentError(variable)
    return value


def expand_path(path: Path | str) -> Path:
    """Expand ``$VAR``, ``%VAR%`` and ``~`` path components.

    Only whole components are substituted: ``$HOME/.ssh/id_rsa`` expands,
    ``/tmp/a$b`` does not.

    Raises:
        MissingEnvironmentError: If a referenced variable is unset.
    """
    text = str(path)
    sep = "/" if "/" in text else "\\"

    parts = []
    for part in text.split(sep):
        if part.startswith("$") and len(part) > 1:
            parts.append(_lookup(part[1:]))
        elif len(part) > 2 and part.startswith("%") and part.endswith("%"):
            parts.append(_lookup(part[1:-1]))
        elif part == "~":
            parts.append(_lookup(home_env_var()))
        else:
            parts.append(part)
    return Path(sep.join(parts))


def _prompt_passphrase() -> str:
    return click.prompt("Enter Passphrase", hide_input=True, default="", show_default=False, err=True)


class CredentialProvider:
    """Resolves SSH keys and the key passphrase for one run.

    Args:
        context: The run's immutable context.
        prompt: Reads the passphrase from the terminal. Injectable for tests.
    """

    def __init__(self, context: RunContext, prompt: Optional[Callable[[], str]] = None):
        self.context = context
        self._prompt = prompt or _prompt_passphrase
        self._passphrase: Optional[str] = None

    @property
    def prompted(self) -> bool:
        return self._passphrase is not None

    def resolve_key_paths(self) -> tuple[Path, Path]:
        """Public and private key paths, fully expanded.

        Falls back to ~/.ssh/id_rsa when the global config has no ssh
        section.

        Raises:
            AuthError: If the fallback needs a home directory and there is none.
            MissingEnvironmentError: If a configured path references an unset variable.
        """
        ssh = self.context.config.ssh
        if ssh is not None:
            return expand_path(ssh.public), expand_path(ssh.private)

        home = home_dir()
        if home is None:
            raise AuthError(f"{home_env_var()} not set")
        base = home / ".ssh"
        return base / "id_rsa.pub", base / "id_rsa"

    def ensure_passphrase(self) -> None:
        """Prompt for the key passphrase once, if the key is protected."""
        ssh = self.context.config.ssh
        if ssh is None or not ssh.protected or self.prompted:
            return
        self._passphrase = self._prompt()
        logger.debug("Passphrase cached for this run")

    def credential_callback(self, username_from_url: Optional[str]) -> SshKeyCredential:
        """Build the SSH credential for a remote.

        Args:
            username_from_url: The user encoded in the remote URL, if any.

        Raises:
            AuthError: If the URL carries no username.
        """
        if not username_from_url:
            raise AuthError("missing username in URL")

        public_key, private_key = self.resolve_key_paths()
        passphrase = ""
        if self.context.config.ssh is not None:
            passphrase = self._passphrase or ""
        return SshKeyCredential(
            username=username_from_url,
            public_key=public_key,
            private_key=private_key,
            passphrase=passphrase,
        )
