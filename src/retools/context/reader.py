"""Byte-capped, defensive file reads for context extraction."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import structlog

logger = structlog.get_logger()

TRUNCATION_MARKER = "\n... (truncated)"


@dataclass(frozen=True)
class FileRead:
    """Content read from a file under a byte cap."""

    path: str
    content: str
    truncated: bool = False
    readable: bool = True

    @property
    def is_empty(self) -> bool:
        return not self.content.strip()


def truncate_text(text: str, max_bytes: int) -> tuple[str, bool]:
    """Cut text to ``max_bytes`` UTF-8 bytes, appending the truncation marker.

    Returns:
        Tuple of (text, truncated).
    """
    data = text.encode("utf-8")
    if len(data) <= max_bytes:
        return text, False
    prefix = data[:max_bytes].decode("utf-8", errors="ignore")
    return prefix + TRUNCATION_MARKER, True


def is_contained_file(root: Path, rel_path: str) -> bool:
    """Check that ``rel_path`` names a regular, non-symlinked file inside ``root``."""
    file_path = root / rel_path
    try:
        if file_path.is_symlink() or not file_path.is_file():
            return False
        file_path.resolve().relative_to(root.resolve())
    except (OSError, ValueError):
        return False
    return True


def read_capped(root: Path, rel_path: str, max_bytes: int) -> FileRead:
    """Read at most ``max_bytes`` from a file below ``root``.

    Missing, unreadable or non-regular files yield empty content instead of
    raising, as do symlinks and paths that resolve outside ``root``.
    Oversized files yield a prefix tagged as truncated.

    Args:
        root: Repository root.
        rel_path: POSIX path relative to root.
        max_bytes: Byte cap for the returned content.

    Returns:
        FileRead with the (possibly truncated) content.
    """
    file_path = root / rel_path
    try:
        if not is_contained_file(root, rel_path):
            return FileRead(path=rel_path, content="", readable=False)
        with file_path.open("rb") as fh:
            data = fh.read(max_bytes + 1)
    except OSError as e:
        logger.debug("Unreadable file skipped", path=rel_path, error=str(e))
        return FileRead(path=rel_path, content="", readable=False)

    truncated = len(data) > max_bytes
    if truncated:
        data = data[:max_bytes]
    content = data.decode("utf-8", errors="ignore")
    if truncated:
        content += TRUNCATION_MARKER
    return FileRead(path=rel_path, content=content, truncated=truncated)
