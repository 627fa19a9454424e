"""Tests for ref selection and the ensure_ref converge operation."""

from __future__ import annotations

from pathlib import Path

import pytest

from depvendor.errors import BackendError, ResolutionError
from depvendor.git import GitCheckout
from depvendor.models import DependencySpec, RefKind, RefSelector
from depvendor.sync.refs import ensure_ref, select_ref


def _no_credentials(username):
    raise AssertionError("credentials should not be requested")


class TestSelectRef:
    """Tests for branch/tag/rev precedence."""

    def test_branch(self):
        assert select_ref(DependencySpec(git="u", branch="main")) == RefSelector(
            kind=RefKind.BRANCH, value="main",
        )

    def test_tag(self):
        assert select_ref(DependencySpec(git="u", tag="v1")).kind == RefKind.TAG

    def test_revision(self):
        selector = select_ref(DependencySpec(git="u", rev="abc123"))
        assert selector.kind == RefKind.REVISION
        assert selector.value == "abc123"

    def test_default_when_none_set(self):
        assert select_ref(DependencySpec(git="u")).kind == RefKind.DEFAULT

    @pytest.mark.parametrize("pins", [
        {"branch": "main", "tag": "v1"},
        {"branch": "main", "rev": "abc"},
        {"tag": "v1", "rev": "abc"},
        {"branch": "main", "tag": "v1", "rev": "abc"},
    ])
    def test_more_than_one_is_ambiguous(self, pins):
        with pytest.raises(ResolutionError, match="ambiguous ref"):
            select_ref(DependencySpec(git="u", **pins))

    @pytest.mark.parametrize("field", ["branch", "tag", "rev"])
    @pytest.mark.parametrize("value", ["", "   "])
    def test_empty_pin_is_rejected(self, field, value):
        """An empty pin is an error, not a silent fallback to the default branch."""
        with pytest.raises(ResolutionError, match=f"empty {field}"):
            select_ref(DependencySpec(git="u", **{field: value}))

    def test_empty_pin_still_counts_as_set(self):
        with pytest.raises(ResolutionError, match="ambiguous ref"):
            select_ref(DependencySpec(git="u", branch="", tag="v1"))


class TestEnsureRef:
    """Tests for the single fetch-and-reset operation."""

    @pytest.fixture
    def checkout(self, tmp_path: Path) -> GitCheckout:
        return GitCheckout(path=tmp_path)

    def test_branch(self, fake_backend, checkout):
        target = ensure_ref(
            fake_backend, checkout, RefSelector(kind=RefKind.BRANCH, value="main"), _no_credentials,
        )

        assert target == "branch-main"
        assert fake_backend.calls == [
            ("fetch", checkout.path, "+refs/heads/main:refs/remotes/origin/main"),
            ("resolve_branch", "main"),
            ("reset_hard", checkout.path, "branch-main", "main"),
        ]
        assert "resolve_tag" not in fake_backend.names()
        assert "resolve_commit" not in fake_backend.names()

    def test_tag_detaches_at_peeled_commit(self, fake_backend, checkout):
        ensure_ref(fake_backend, checkout, RefSelector(kind=RefKind.TAG, value="v1"), _no_credentials)

        assert fake_backend.calls == [
            ("fetch", checkout.path, "+refs/tags/v1:refs/tags/v1"),
            ("resolve_tag", "v1"),
            ("reset_hard", checkout.path, "tag-v1", None),
        ]

    def test_revision_needs_no_fetch(self, fake_backend, checkout):
        ensure_ref(
            fake_backend, checkout, RefSelector(kind=RefKind.REVISION, value="abc123"), _no_credentials,
        )

        assert fake_backend.calls == [
            ("resolve_commit", "abc123"),
            ("reset_hard", checkout.path, "abc123", None),
        ]

    def test_unknown_revision_fetches_then_retries(self, fake_backend, checkout):
        attempts = []

        def resolve_commit(co, rev):
            attempts.append(rev)
            if len(attempts) == 1:
                raise BackendError("unknown revision")
            return rev

        fake_backend.resolve_commit = resolve_commit
        ensure_ref(
            fake_backend, checkout, RefSelector(kind=RefKind.REVISION, value="abc123"), _no_credentials,
        )

        assert attempts == ["abc123", "abc123"]
        assert ("fetch", checkout.path, None) in fake_backend.calls

    def test_default_refreshes_current_head(self, fake_backend, checkout):
        ensure_ref(fake_backend, checkout, RefSelector(), _no_credentials)

        assert fake_backend.calls == [
            ("fetch", checkout.path, None),
            ("head", checkout.path),
            ("reset_hard", checkout.path, "head-commit", "main"),
        ]

    def test_repeatable(self, fake_backend, checkout):
        selector = RefSelector(kind=RefKind.TAG, value="v1")
        first = ensure_ref(fake_backend, checkout, selector, _no_credentials)
        second = ensure_ref(fake_backend, checkout, selector, _no_credentials)
        assert first == second
