"""
Pydantic models for the manifest, the global config, and a sync run.

On-disk keys are kebab-case (``lib-dir``, ``default-lib-dir``, ``as``);
attributes are snake_case and mapped through field aliases.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from . import DEFAULT_LIB_DIR


class _KebabModel(BaseModel):
    """Base for models read from kebab-case documents."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SshCredentials(_KebabModel):
    """SSH key material declared in the global config."""

    private: Path
    public: Path
    protected: bool = False


class GeneralOptions(_KebabModel):
    """The ``general`` section of the global config."""

    default_lib_dir: Path = Field(default=Path(DEFAULT_LIB_DIR), alias="default-lib-dir")
    prune: bool = False


class GlobalConfig(_KebabModel):
    """Per-user configuration stored in ~/.deprc."""

    general: GeneralOptions = Field(default_factory=GeneralOptions)
    ssh: Optional[SshCredentials] = None


class RefKind(str, Enum):
    """How a remote dependency is pinned."""

    BRANCH = "branch"
    TAG = "tag"
    REVISION = "rev"
    DEFAULT = "default"


class RefSelector(BaseModel):
    """A pin: branch name, tag name, revision id, or the remote default."""

    model_config = ConfigDict(frozen=True)

    kind: RefKind = RefKind.DEFAULT
    value: Optional[str] = None

    def __str__(self) -> str:
        if self.kind == RefKind.DEFAULT:
            return "default branch"
        return f"{self.kind.value} '{self.value}'"


class SourceKind(str, Enum):
    """Where a dependency comes from."""

    LOCAL = "local"
    REMOTE = "remote"


class DependencySpec(_KebabModel):
    """One entry of the manifest's ``dependencies`` table."""

    path: Optional[Path] = None
    repo: Optional[str] = None
    git: Optional[str] = None
    branch: Optional[str] = None
    tag: Optional[str] = None
    rev: Optional[str] = None
    into: Optional[Path] = None
    rename: Optional[str] = Field(default=None, alias="as")

    @property
    def pins(self) -> dict[RefKind, str]:
        """The ref fields that are set, keyed by kind."""
        candidates = {
            RefKind.BRANCH: self.branch,
            RefKind.TAG: self.tag,
            RefKind.REVISION: self.rev,
        }
        return {kind: value for kind, value in candidates.items() if value is not None}

    @property
    def is_remote(self) -> bool:
        return bool(self.git or self.repo)


class ProjectMeta(_KebabModel):
    """The manifest's ``project`` table."""

    name: str
    lib_dir: Optional[Path] = Field(default=None, alias="lib-dir")
    git_server: Optional[str] = Field(default=None, alias="git-server")

    authors: Optional[list[str]] = None
    description: Optional[str] = None
    homepage: Optional[str] = None
    repository: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


class Manifest(_KebabModel):
    """A parsed deps.toml."""

    project: ProjectMeta
    dependencies: dict[str, DependencySpec] = Field(default_factory=dict)

    def ordered(self) -> list[tuple[str, DependencySpec]]:
        """Dependencies in processing order (sorted by key)."""
        return sorted(self.dependencies.items())


class RunContext(BaseModel):
    """Everything a sync run needs that is fixed at startup.

    Built once by the CLI and passed explicitly to the planner and
    the credential provider.
    """

    model_config = ConfigDict(frozen=True)

    config: GlobalConfig = Field(default_factory=GlobalConfig)
    force: bool = False
    prune: bool = False


class SyncAction(str, Enum):
    """What a run did to a destination."""

    LINKED = "linked"
    RELINKED = "relinked"
    KEPT = "kept"
    CLONED = "cloned"
    CONVERGED = "converged"


class SyncResult(BaseModel):
    """Outcome for a single dependency."""

    name: str
    destination: Path
    action: SyncAction
    source: str
