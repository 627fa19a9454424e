"""
Ref selection and the single converge operation, ``ensure_ref``.
"""

from __future__ import annotations

import logging

from ..credentials import CredentialCallback
from ..errors import BackendError, ResolutionError
from ..git import GitBackend, GitCheckout
from ..models import DependencySpec, RefKind, RefSelector

logger = logging.getLogger("depvendor.sync.refs")


def select_ref(dep: DependencySpec) -> RefSelector:
    """Pick the dependency's pin.

    Raises:
        ResolutionError: If more than one of branch/tag/rev is set, or the
            one that is set is empty.
    """
    pins = dep.pins
    if len(pins) > 1:
        fields = ", ".join(kind.value for kind in pins)
        raise ResolutionError(f"ambiguous ref: only one of branch, tag, rev may be set (got {fields})")
    if not pins:
        return RefSelector()
    kind, value = next(iter(pins.items()))
    if not value.strip():
        raise ResolutionError(f"empty {kind.value}: a pinned ref needs a name")
    return RefSelector(kind=kind, value=value)


def ensure_ref(
    backend: GitBackend,
    checkout: GitCheckout,
    selector: RefSelector,
    credentials: CredentialCallback,
) -> str:
    """Fetch what ``selector`` needs and hard-reset the checkout to it.

    Safe to repeat: on an already converged checkout the working tree
    is left as it is.

    Returns:
        The commit id the checkout now sits on.
    """
    branch = None
    if selector.kind == RefKind.BRANCH:
        refspec = f"+refs/heads/{selector.value}:refs/remotes/origin/{selector.value}"
        backend.fetch(checkout, refspec, credentials)
        target = backend.resolve_branch(checkout, selector.value)
        branch = selector.value
    elif selector.kind == RefKind.TAG:
        refspec = f"+refs/tags/{selector.value}:refs/tags/{selector.value}"
        backend.fetch(checkout, refspec, credentials)
        target = backend.resolve_tag(checkout, selector.value)
    elif selector.kind == RefKind.REVISION:
        try:
            target = backend.resolve_commit(checkout, selector.value)
        except BackendError:
            logger.debug("Revision %s not present locally, fetching", selector.value)
            backend.fetch(checkout, None, credentials)
            target = backend.resolve_commit(checkout, selector.value)
    else:
        backend.fetch(checkout, None, credentials)
        head = backend.head(checkout)
        target, branch = head.commit, head.branch

    backend.reset_hard(checkout, target, branch=branch)
    logger.debug("%s at %s (%s)", checkout.path, target, selector)
    return target
