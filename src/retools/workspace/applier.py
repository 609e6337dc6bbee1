"""Apply change sets to a working tree."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

import structlog

from retools.exceptions import ApplyError
from retools.workspace.guardrails import Guardrails, resolve_inside
from retools.workspace.models import ChangeSet, FileAction, FileOperation

logger = structlog.get_logger()


def _write_atomic(target: Path, content: str) -> None:
    """Replace ``target`` with ``content`` via a sibling temp file."""
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
        if target.exists():
            shutil.copymode(target, tmp_path)
        else:
            tmp_path.chmod(0o644)
        os.replace(tmp_path, target)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def _delete(target: Path) -> bool:
    """Remove a file or directory; return False when nothing was there."""
    if target.is_symlink() or target.is_file():
        target.unlink()
        return True
    if target.is_dir():
        shutil.rmtree(target)
        return True
    return False


class ChangeApplier:
    """Applies file operations under a single working root.

    All paths are validated before the first write, so a change set that
    escapes the root or touches forbidden files leaves the tree untouched.
    A filesystem failure mid-batch is fatal; operations applied before it
    stay on disk.

    Example:
        >>> applier = ChangeApplier(Path("/work/repo"))
        >>> applier.apply(ChangeSet.from_operations(
        ...     [{"path": "a/b.txt", "action": "create", "content": "hi"}]
        ... ))
        1
    """

    def __init__(self, working_root: Path, guardrails: Guardrails | None = None) -> None:
        """Initialize the applier.

        Args:
            working_root: Root of the job's working tree.
            guardrails: Pattern and size guardrails (defaults applied when omitted).
        """
        self.working_root = working_root
        self.guardrails = guardrails or Guardrails()

    def plan(self, change_set: ChangeSet) -> list[tuple[FileOperation, Path]]:
        """Resolve every operation path, enforcing containment and guardrails.

        Writes go through symlinks to their target. Deletes name the link
        itself, never its target.

        Raises:
            PathEscapeError: If any path resolves outside the working root.
            GuardrailError: If guardrails reject the change set.
        """
        resolved = [
            (op, resolve_inside(self.working_root, op.path, follow_symlinks=op.action is not FileAction.DELETE))
            for op in change_set
        ]
        self.guardrails.check_files(change_set.paths)
        return resolved

    def apply(self, change_set: ChangeSet) -> int:
        """Apply operations in order.

        Args:
            change_set: Operations to apply.

        Returns:
            Number of operations that changed the filesystem.

        Raises:
            PathEscapeError: If any path resolves outside the working root.
            GuardrailError: If guardrails reject the change set.
            ApplyError: If a filesystem operation fails.
        """
        log = logger.bind(root=str(self.working_root), operations=len(change_set))
        log.info("Applying file modifications")

        planned = self.plan(change_set)
        applied = 0

        for op, target in planned:
            try:
                if op.action is FileAction.DELETE:
                    if not _delete(target):
                        log.debug("Delete target missing, skipped", path=op.path)
                        continue
                else:
                    _write_atomic(target, op.content or "")
            except OSError as e:
                msg = f"Failed to {op.action.value} {op.path}: {e}"
                log.error("File operation failed", path=op.path, action=op.action.value, error=str(e))
                raise ApplyError(msg, path=op.path, action=op.action.value, applied=applied) from e

            applied += 1
            log.info("File operation applied", path=op.path, action=op.action.value)

        log.info("All changes applied", applied=applied)
        return applied


def apply_changes(
    working_root: Path,
    change_set: ChangeSet,
    guardrails: Guardrails | None = None,
) -> int:
    """Convenience function to apply a change set.

    Args:
        working_root: Root of the job's working tree.
        change_set: Operations to apply.
        guardrails: Optional guardrails.

    Returns:
        Number of operations that changed the filesystem.
    """
    return ChangeApplier(working_root, guardrails).apply(change_set)
