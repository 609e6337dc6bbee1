"""Depth-bounded repository tree walk."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import structlog

from retools.config import ContextConfig

logger = structlog.get_logger()


@dataclass(frozen=True)
class RepositoryFile:
    """A source file found by the walk.

    Attributes:
        path: POSIX path relative to the repository root.
        extension: Lowercased file extension including the dot.
        size: File size in bytes.
    """

    path: str
    extension: str
    size: int

    @property
    def name(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def stem(self) -> str:
        return PurePosixPath(self.path).stem

    @property
    def depth(self) -> int:
        """Number of directory segments above the file."""
        return len(PurePosixPath(self.path).parts) - 1


def _is_ignored(name: str, ignored_dirs: set[str]) -> bool:
    return name.startswith(".") or name in ignored_dirs


def walk_repository(root: Path, config: ContextConfig | None = None) -> list[RepositoryFile]:
    """Collect source files under ``root``.

    Directories are visited in sorted order. Hidden entries and ignored
    directory names are pruned, directories deeper than ``max_depth`` are
    never entered, and collection stops at ``max_files`` across the whole
    walk. Early directories can exhaust the budget. Symlinks are never
    followed or collected.

    Args:
        root: Repository root.
        config: Context limits (defaults used when omitted).

    Returns:
        Collected files in walk order.
    """
    config = config or ContextConfig()
    ignored = set(config.ignored_dirs)
    extensions = set(config.allowed_extensions)
    files: list[RepositoryFile] = []

    def scan(directory: Path, depth: int) -> None:
        if depth > config.max_depth or len(files) >= config.max_files:
            return

        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.debug("Directory skipped", path=str(directory), error=str(e))
            return

        subdirs: list[Path] = []
        for entry in entries:
            if _is_ignored(entry.name, ignored):
                continue
            try:
                if entry.is_dir(follow_symlinks=False):
                    subdirs.append(Path(entry.path))
                    continue
                if not entry.is_file(follow_symlinks=False):
                    continue
                ext = os.path.splitext(entry.name)[1].lower()
                if ext not in extensions:
                    continue
                size = entry.stat(follow_symlinks=False).st_size
            except OSError:
                continue

            if len(files) >= config.max_files:
                return
            rel = Path(entry.path).relative_to(root).as_posix()
            files.append(RepositoryFile(path=rel, extension=ext, size=size))

        for subdir in subdirs:
            scan(subdir, depth + 1)

    if root.is_dir():
        scan(root, 0)

    logger.debug("Repository walk complete", root=str(root), files=len(files))
    return files
