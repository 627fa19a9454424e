"""Tests for depvendor pydantic models."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from depvendor.models import (
    DependencySpec,
    GlobalConfig,
    RefKind,
    RefSelector,
    RunContext,
)


class TestDependencySpec:
    """Tests for manifest dependency entries."""

    def test_kebab_alias_for_rename(self) -> None:
        spec = DependencySpec.model_validate({"git": "https://example.com/x.git", "as": "y"})
        assert spec.rename == "y"
        assert spec.model_dump(by_alias=True, exclude_none=True) == {
            "git": "https://example.com/x.git", "as": "y",
        }

    def test_unknown_keys_ignored(self) -> None:
        spec = DependencySpec.model_validate({"path": "../x", "optional": True})
        assert spec.path == Path("../x")

    def test_pins_in_fixed_order(self) -> None:
        spec = DependencySpec(rev="abc", branch="main")
        assert list(spec.pins) == [RefKind.BRANCH, RefKind.REVISION]

    def test_empty_pin_is_kept(self) -> None:
        """An empty string is a set pin, so selection can reject it."""
        assert DependencySpec(branch="").pins == {RefKind.BRANCH: ""}

    @pytest.mark.parametrize("fields,remote", [
        ({"git": "https://example.com/x.git"}, True),
        ({"repo": "team/x"}, True),
        ({"path": "../x"}, False),
    ])
    def test_is_remote(self, fields: dict, remote: bool) -> None:
        assert DependencySpec(**fields).is_remote is remote


class TestRefSelector:
    """Tests for ref selector display."""

    def test_default_display(self) -> None:
        assert str(RefSelector()) == "default branch"

    def test_pinned_display(self) -> None:
        assert str(RefSelector(kind=RefKind.TAG, value="v1")) == "tag 'v1'"


class TestRunContext:
    """Tests for the immutable run context."""

    def test_frozen(self) -> None:
        context = RunContext(config=GlobalConfig())
        with pytest.raises(ValidationError):
            context.force = True

    def test_defaults(self) -> None:
        context = RunContext()
        assert context.force is False
        assert context.prune is False
        assert context.config.general.default_lib_dir == Path("VENDOR")

    def test_fields(self) -> None:
        """The context carries the config and the two run policies, nothing else."""
        assert set(RunContext.model_fields) == {"config", "force", "prune"}
