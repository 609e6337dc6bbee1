"""Unit tests for applying change sets to a working tree."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from retools.config import GuardrailConfig
from retools.exceptions import ApplyError, GuardrailError, PathEscapeError
from retools.workspace.applier import ChangeApplier, apply_changes
from retools.workspace.guardrails import Guardrails
from retools.workspace.models import ChangeSet


def _changes(*operations: dict) -> ChangeSet:
    return ChangeSet.from_operations(list(operations))


def _snapshot(root: Path) -> dict[str, str]:
    return {p.relative_to(root).as_posix(): p.read_text() for p in sorted(root.rglob("*")) if p.is_file()}


class TestChangeApplier:
    """Tests for ChangeApplier.apply."""

    def test_create_makes_parent_directories(self, tmp_repo: Path) -> None:
        """Test that create writes exact content and creates parents."""
        applied = apply_changes(tmp_repo, _changes({"path": "a/b.txt", "action": "create", "content": "hi"}))

        assert applied == 1
        assert (tmp_repo / "a").is_dir()
        assert (tmp_repo / "a" / "b.txt").read_bytes() == b"hi"

    def test_delete_missing_is_noop(self, tmp_repo: Path) -> None:
        """Test that deleting a missing file succeeds without side effects."""
        applied = apply_changes(tmp_repo, _changes({"path": "x.txt", "action": "delete"}))

        assert applied == 0
        assert list(tmp_repo.iterdir()) == []

    def test_modify_overwrites(self, tmp_repo: Path) -> None:
        """Test that modify replaces the whole file."""
        (tmp_repo / "app.ts").write_text("old content that is longer")

        apply_changes(tmp_repo, _changes({"path": "app.ts", "action": "modify", "content": "new"}))

        assert (tmp_repo / "app.ts").read_text() == "new"

    def test_modify_missing_creates(self, tmp_repo: Path) -> None:
        """Test that modify of a missing file creates it."""
        apply_changes(tmp_repo, _changes({"path": "src/new.ts", "action": "modify", "content": "x"}))

        assert (tmp_repo / "src" / "new.ts").read_text() == "x"

    def test_delete_existing(self, tmp_repo: Path) -> None:
        """Test that delete removes an existing file."""
        (tmp_repo / "old.css").write_text("x")

        applied = apply_changes(tmp_repo, _changes({"path": "old.css", "action": "delete"}))

        assert applied == 1
        assert not (tmp_repo / "old.css").exists()

    def test_delete_directory(self, tmp_repo: Path) -> None:
        """Test that delete removes a directory tree."""
        (tmp_repo / "legacy" / "sub").mkdir(parents=True)
        (tmp_repo / "legacy" / "sub" / "a.js").write_text("x")

        apply_changes(tmp_repo, _changes({"path": "legacy", "action": "delete"}))

        assert not (tmp_repo / "legacy").exists()

    def test_delete_symlink_removes_link_only(self, tmp_repo: Path) -> None:
        """Test that deleting a symlink removes the link and keeps its target."""
        (tmp_repo / "real.txt").write_text("keep")
        (tmp_repo / "link.txt").symlink_to(tmp_repo / "real.txt")

        applied = apply_changes(tmp_repo, _changes({"path": "link.txt", "action": "delete"}))

        assert applied == 1
        assert (tmp_repo / "real.txt").read_text() == "keep"
        assert not os.path.lexists(tmp_repo / "link.txt")

    def test_delete_directory_symlink_keeps_target_tree(self, tmp_repo: Path) -> None:
        """Test that deleting a link to a directory never removes the directory's files."""
        (tmp_repo / "shared").mkdir()
        (tmp_repo / "shared" / "a.js").write_text("x")
        (tmp_repo / "alias").symlink_to(tmp_repo / "shared", target_is_directory=True)

        apply_changes(tmp_repo, _changes({"path": "alias", "action": "delete"}))

        assert (tmp_repo / "shared" / "a.js").exists()
        assert not os.path.lexists(tmp_repo / "alias")

    def test_modify_through_symlink_writes_target(self, tmp_repo: Path) -> None:
        """Test that modifying a symlinked path updates the link's target."""
        (tmp_repo / "real.txt").write_text("old")
        (tmp_repo / "link.txt").symlink_to(tmp_repo / "real.txt")

        apply_changes(tmp_repo, _changes({"path": "link.txt", "action": "modify", "content": "new"}))

        assert (tmp_repo / "link.txt").is_symlink()
        assert (tmp_repo / "real.txt").read_text() == "new"

    def test_operations_applied_in_order(self, tmp_repo: Path) -> None:
        """Test that the last operation on a path wins."""
        apply_changes(
            tmp_repo,
            _changes(
                {"path": "a.txt", "action": "create", "content": "first"},
                {"path": "a.txt", "action": "modify", "content": "second"},
                {"path": "b.txt", "action": "create", "content": "b"},
                {"path": "b.txt", "action": "delete"},
            ),
        )

        assert _snapshot(tmp_repo) == {"a.txt": "second"}

    def test_reapply_is_idempotent(self, tmp_repo: Path) -> None:
        """Test that applying the same change set twice yields the same tree."""
        change_set = _changes(
            {"path": "a/b.txt", "action": "create", "content": "hi"},
            {"path": "gone.txt", "action": "delete"},
        )

        apply_changes(tmp_repo, change_set)
        first = _snapshot(tmp_repo)
        apply_changes(tmp_repo, change_set)

        assert _snapshot(tmp_repo) == first

    def test_new_file_mode(self, tmp_repo: Path) -> None:
        """Test that created files get regular permissions."""
        apply_changes(tmp_repo, _changes({"path": "a.txt", "action": "create", "content": "x"}))

        assert stat.S_IMODE((tmp_repo / "a.txt").stat().st_mode) == 0o644

    def test_no_temp_files_left(self, tmp_repo: Path) -> None:
        """Test that atomic writes leave no temp files behind."""
        apply_changes(tmp_repo, _changes({"path": "a.txt", "action": "create", "content": "x"}))

        assert [p.name for p in tmp_repo.iterdir()] == ["a.txt"]

    def test_escape_leaves_tree_untouched(self, tmp_repo: Path) -> None:
        """Test that one escaping path aborts the batch before any write."""
        change_set = _changes(
            {"path": "ok.txt", "action": "create", "content": "x"},
            {"path": "../evil.txt", "action": "create", "content": "x"},
        )

        with pytest.raises(PathEscapeError):
            apply_changes(tmp_repo, change_set)

        assert list(tmp_repo.iterdir()) == []
        assert not (tmp_repo.parent / "evil.txt").exists()

    def test_guardrail_violation_leaves_tree_untouched(self, tmp_repo: Path) -> None:
        """Test that forbidden paths abort the batch before any write."""
        change_set = _changes(
            {"path": "ok.txt", "action": "create", "content": "x"},
            {"path": ".git/config", "action": "modify", "content": "x"},
        )

        with pytest.raises(GuardrailError):
            ChangeApplier(tmp_repo, Guardrails(GuardrailConfig())).apply(change_set)

        assert list(tmp_repo.iterdir()) == []

    def test_filesystem_failure_raises_apply_error(self, tmp_repo: Path) -> None:
        """Test that an OS failure mid-batch reports how many ops were applied."""
        (tmp_repo / "f.txt").write_text("a file, not a directory")
        change_set = _changes(
            {"path": "first.txt", "action": "create", "content": "1"},
            {"path": "f.txt/child.txt", "action": "create", "content": "2"},
            {"path": "third.txt", "action": "create", "content": "3"},
        )

        with pytest.raises(ApplyError) as exc_info:
            apply_changes(tmp_repo, change_set)

        assert exc_info.value.applied == 1
        assert exc_info.value.path == "f.txt/child.txt"
        assert exc_info.value.action == "create"
        assert (tmp_repo / "first.txt").exists()
        assert not (tmp_repo / "third.txt").exists()

    def test_empty_change_set(self, tmp_repo: Path) -> None:
        """Test that an empty change set is a no-op."""
        assert apply_changes(tmp_repo, ChangeSet.from_operations([])) == 0
