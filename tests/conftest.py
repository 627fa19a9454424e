"""Shared test fixtures for depvendor."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Optional

import pytest

from depvendor.git import GitBackend, GitCheckout, GitHead, requires_ssh_auth, username_from_url
from depvendor.models import GlobalConfig, RunContext, SshCredentials


@pytest.fixture(autouse=True)
def isolated_rc(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the global config at a temp file so tests never touch ~/.deprc."""
    rc = tmp_path / "home" / ".deprc"
    monkeypatch.setenv("DEPVENDOR_RC", str(rc))
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    return rc


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """An empty project directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def context() -> RunContext:
    """A run context with no SSH section and no force/prune."""
    return RunContext(config=GlobalConfig())


@pytest.fixture
def protected_context(tmp_path: Path) -> RunContext:
    """A run context whose SSH key is passphrase-protected."""
    ssh = SshCredentials(
        private=tmp_path / "keys" / "id_ed25519",
        public=tmp_path / "keys" / "id_ed25519.pub",
        protected=True,
    )
    return RunContext(config=GlobalConfig(ssh=ssh))


class FakeBackend(GitBackend):
    """Records every backend call and fakes checkouts on disk.

    ``clone`` writes a ``.git`` marker and a HEAD file so that later
    runs see the destination as an existing checkout.
    """

    def __init__(self):
        self.calls: list[tuple] = []
        self.credentials_seen: list = []

    def _authenticate(self, url: str, credentials) -> None:
        if requires_ssh_auth(url):
            self.credentials_seen.append(credentials(username_from_url(url)))

    def clone(self, url, dest, credentials, branch=None):
        self.calls.append(("clone", url, dest, branch))
        self._authenticate(url, credentials)
        (dest / ".git").mkdir()
        (dest / "HEAD").write_text(branch or "default", encoding="utf-8")
        return GitCheckout(path=dest)

    def open(self, dest):
        self.calls.append(("open", dest))
        return GitCheckout(path=dest)

    def fetch(self, checkout, refspec, credentials):
        self.calls.append(("fetch", checkout.path, refspec))

    def resolve_branch(self, checkout, name):
        self.calls.append(("resolve_branch", name))
        return f"branch-{name}"

    def resolve_tag(self, checkout, name):
        self.calls.append(("resolve_tag", name))
        return f"tag-{name}"

    def resolve_commit(self, checkout, rev):
        self.calls.append(("resolve_commit", rev))
        return rev

    def head(self, checkout):
        self.calls.append(("head", checkout.path))
        return GitHead(commit="head-commit", branch="main")

    def reset_hard(self, checkout, target, branch=None):
        self.calls.append(("reset_hard", checkout.path, target, branch))

    def names(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


def git(*args: str, cwd: Path) -> str:
    """Run git in ``cwd`` and return its stdout."""
    result = subprocess.run(
        ["git", *args], cwd=str(cwd), capture_output=True, text=True, check=True,
    )
    return result.stdout.strip()


class Upstream:
    """A throwaway local git repository to clone from."""

    def __init__(self, path: Path):
        self.path = path
        path.mkdir(parents=True)
        git("init", "-q", cwd=path)
        git("symbolic-ref", "HEAD", "refs/heads/main", cwd=path)
        git("config", "user.email", "dev@example.com", cwd=path)
        git("config", "user.name", "Dev", cwd=path)
        git("config", "commit.gpgsign", "false", cwd=path)
        git("config", "tag.gpgsign", "false", cwd=path)

    def commit(self, content: str, filename: str = "README") -> str:
        (self.path / filename).write_text(content, encoding="utf-8")
        git("add", filename, cwd=self.path)
        git("commit", "-q", "-m", content.strip() or "empty", cwd=self.path)
        return git("rev-parse", "HEAD", cwd=self.path)

    def tag(self, name: str, annotated: bool = False) -> None:
        if annotated:
            git("tag", "-a", name, "-m", name, cwd=self.path)
        else:
            git("tag", name, cwd=self.path)

    def branch(self, name: str, start: Optional[str] = None) -> None:
        extra = [start] if start else []
        git("branch", name, *extra, cwd=self.path)


@pytest.fixture
def upstream(tmp_path: Path) -> Upstream:
    """A local upstream repository with one commit on ``main``."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    repo = Upstream(tmp_path / "upstream")
    repo.commit("v1\n")
    return repo
