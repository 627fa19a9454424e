"""
Sync planner -- converges the vendor directory to the manifest.

    depvendor update  ->  plan every dependency (validate, derive URL, pick ref)
                      ->  force-reset / prune the vendor directory
                      ->  link, clone, or converge each dependency in order

Planning touches nothing on disk, so a bad manifest entry aborts the run
before any destination is changed. After that, the first failure aborts
the run and earlier changes are left in place.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..credentials import CredentialProvider
from ..errors import ResolutionError
from ..git import GitBackend, GitCliBackend, requires_ssh_auth
from ..linker import PathLinker, default_linker
from ..models import (
    DependencySpec,
    Manifest,
    RefKind,
    RefSelector,
    RunContext,
    SourceKind,
    SyncAction,
    SyncResult,
)
from .refs import ensure_ref, select_ref
from .urls import derive_url

logger = logging.getLogger("depvendor.sync.planner")


def absolute_path(base: Path, path: Path) -> Path:
    """``path`` made absolute against ``base`` and normalized."""
    return Path(os.path.abspath(base / path))


@dataclass(frozen=True)
class PlannedDependency:
    """A dependency with everything needed to sync it worked out."""

    name: str
    destination: Path
    kind: SourceKind
    local_source: Optional[Path] = None
    url: Optional[str] = None
    selector: RefSelector = field(default_factory=RefSelector)

    @property
    def source(self) -> str:
        if self.kind == SourceKind.LOCAL:
            return str(self.local_source)
        if self.selector.kind == RefKind.DEFAULT:
            return str(self.url)
        return f"{self.url} ({self.selector})"


class SyncPlanner:
    """Drives the linker and the git backend for one manifest.

    Args:
        context: Immutable run settings (global config, force, prune).
        backend: Git implementation. Defaults to the git CLI.
        linker: Directory linker. Defaults to the platform's.
        credentials: Credential provider. Defaults to one built from ``context``.
    """

    def __init__(
        self,
        context: RunContext,
        backend: Optional[GitBackend] = None,
        linker: Optional[PathLinker] = None,
        credentials: Optional[CredentialProvider] = None,
    ):
        self.context = context
        self.backend = backend or GitCliBackend()
        self.linker = linker or default_linker()
        self.credentials = credentials or CredentialProvider(context)

    def vendor_dir(self, manifest: Manifest, project_root: Path) -> Path:
        """The directory dependencies land in unless they say ``into``."""
        lib_dir = manifest.project.lib_dir or self.context.config.general.default_lib_dir
        return absolute_path(project_root, lib_dir)

    def plan_dependency(
        self,
        name: str,
        spec: DependencySpec,
        vendor_dir: Path,
        project_root: Path,
        git_server: Optional[str],
    ) -> PlannedDependency:
        """Classify one dependency and compute its destination.

        Raises:
            ResolutionError: On missing or ambiguous source information.
        """
        base = absolute_path(project_root, spec.into) if spec.into else vendor_dir
        destination = base / (spec.rename or name)

        if spec.path is not None:
            if spec.is_remote:
                raise ResolutionError(
                    f"{name}: 'path' cannot be combined with 'git' or 'repo'"
                )
            return PlannedDependency(
                name=name,
                destination=destination,
                kind=SourceKind.LOCAL,
                local_source=absolute_path(project_root, spec.path),
            )

        try:
            url = derive_url(spec, git_server)
            selector = select_ref(spec)
        except ResolutionError as exc:
            raise ResolutionError(f"{name}: {exc}") from exc
        return PlannedDependency(
            name=name,
            destination=destination,
            kind=SourceKind.REMOTE,
            url=url,
            selector=selector,
        )

    def plan(self, manifest: Manifest, project_root: Path) -> list[PlannedDependency]:
        """Plan every dependency in manifest order without touching disk."""
        vendor_dir = self.vendor_dir(manifest, project_root)
        return [
            self.plan_dependency(
                name, spec, vendor_dir, project_root, manifest.project.git_server,
            )
            for name, spec in manifest.ordered()
        ]

    def check_vendor_dir(self, vendor_dir: Path, project_root: Path) -> None:
        """Refuse to force-reset or prune a directory that holds the project.

        Raises:
            ResolutionError: If ``project_root`` is ``vendor_dir`` or lies inside it
                while force or prune is on.
        """
        if not (self.context.force or self.context.prune):
            return
        if project_root.resolve().is_relative_to(vendor_dir.resolve()):
            raise ResolutionError(
                f"lib dir {vendor_dir} contains the project at {project_root}; "
                "refusing to force-reset or prune it"
            )

    def prepare_vendor_dir(self, vendor_dir: Path) -> None:
        """Create the vendor directory, wiping it first under ``force``."""
        if vendor_dir.exists() and self.context.force:
            logger.info("Deleting old lib dir: %s", vendor_dir)
            shutil.rmtree(vendor_dir)
        if not vendor_dir.exists():
            logger.info("Creating lib dir: %s", vendor_dir)
            vendor_dir.mkdir(parents=True)

    def prune(self, vendor_dir: Path, planned: list[PlannedDependency]) -> list[Path]:
        """Remove vendor entries that no planned destination occupies.

        Only dependencies that land directly in ``vendor_dir`` protect an
        entry, under their final (possibly renamed) name. Links are removed
        without following them.

        Returns:
            The removed paths.
        """
        wanted = {dep.destination.name for dep in planned if dep.destination.parent == vendor_dir}

        removed = []
        for entry in sorted(vendor_dir.iterdir()):
            if entry.name in wanted:
                continue
            logger.info("Pruning %s", entry)
            if self.linker.is_link(entry):
                self.linker.unlink(entry)
            elif entry.is_dir():
                shutil.rmtree(entry)
            else:
                entry.unlink()
            removed.append(entry)
        return removed

    def sync(self, manifest: Manifest, project_root: Path) -> list[SyncResult]:
        """Converge every destination to the manifest.

        Args:
            manifest: The parsed manifest.
            project_root: Directory relative manifest paths are resolved against.

        Returns:
            One result per dependency, in manifest order.
        """
        planned = self.plan(manifest, project_root)

        vendor_dir = self.vendor_dir(manifest, project_root)
        self.check_vendor_dir(vendor_dir, project_root)
        self.prepare_vendor_dir(vendor_dir)
        if self.context.prune:
            self.prune(vendor_dir, planned)

        results = []
        for dep in planned:
            dep.destination.parent.mkdir(parents=True, exist_ok=True)
            if dep.kind == SourceKind.LOCAL:
                action = self._sync_local(dep)
            else:
                action = self._sync_remote(dep)
            results.append(SyncResult(
                name=dep.name,
                destination=dep.destination,
                action=action,
                source=dep.source,
            ))
        return results

    def _sync_local(self, dep: PlannedDependency) -> SyncAction:
        dest, source = dep.destination, dep.local_source

        if self.linker.is_link(dest):
            if self.linker.target(dest) == source:
                return SyncAction.KEPT
            logger.info("Relinking \"%s\" to \"%s\"", dest, source)
            self.linker.unlink(dest)
            self.linker.link(source, dest)
            return SyncAction.RELINKED

        if dest.exists():
            logger.debug("%s exists and is not a link, leaving it", dest)
            return SyncAction.KEPT

        logger.info(
            "Linking path \"%s\" into \"%s\" as \"%s\"", source, dest.parent, dest.name,
        )
        self.linker.link(source, dest)
        return SyncAction.LINKED

    def _sync_remote(self, dep: PlannedDependency) -> SyncAction:
        dest, url, selector = dep.destination, dep.url, dep.selector
        callback = self.credentials.credential_callback

        if requires_ssh_auth(url):
            self.credentials.ensure_passphrase()

        if self.linker.is_link(dest):
            logger.info("Replacing link %s with a clone of %s", dest, url)
            self.linker.unlink(dest)

        if not dest.exists():
            logger.info(
                "Cloning %s from \"%s\" into \"%s\" as \"%s\"",
                selector, url, dest.parent, dest.name,
            )
            dest.mkdir(parents=True)
            branch = selector.value if selector.kind == RefKind.BRANCH else None
            checkout = self.backend.clone(url, dest, callback, branch=branch)
            if selector.kind in (RefKind.TAG, RefKind.REVISION):
                ensure_ref(self.backend, checkout, selector, callback)
            return SyncAction.CLONED

        logger.info("Updating \"%s\" to %s of \"%s\"", dest, selector, url)
        checkout = self.backend.open(dest)
        ensure_ref(self.backend, checkout, selector, callback)
        return SyncAction.CONVERGED
