"""Guardrails for file operations proposed by the generation service."""

from __future__ import annotations

import fnmatch
import re
from pathlib import Path

import structlog

from retools.config import GuardrailConfig
from retools.exceptions import GuardrailError, PathEscapeError

logger = structlog.get_logger()


def resolve_inside(root: Path, rel_path: str, follow_symlinks: bool = True) -> Path:
    """Resolve ``rel_path`` against ``root`` and require it to stay inside.

    Absolute paths, ``..`` traversal and symlinks pointing out of the root
    are all rejected.

    Args:
        root: Working root.
        rel_path: Operation path relative to root.
        follow_symlinks: When False, only the parent directory is resolved
            and the final component is kept as named, so a symlink there is
            returned as the link itself.

    Returns:
        The resolved absolute path.

    Raises:
        PathEscapeError: If the path resolves outside ``root``.
    """
    candidate = Path(rel_path)
    if not rel_path or candidate.is_absolute() or candidate.drive:
        msg = f"Operation path must be relative to the working root: {rel_path!r}"
        raise PathEscapeError(msg, path=rel_path)

    resolved_root = root.resolve()
    resolved = (resolved_root / candidate).resolve()
    try:
        relative = resolved.relative_to(resolved_root)
    except ValueError:
        msg = f"Operation path escapes the working root: {rel_path!r}"
        raise PathEscapeError(msg, path=rel_path) from None
    if relative == Path("."):
        msg = f"Operation path points at the working root itself: {rel_path!r}"
        raise PathEscapeError(msg, path=rel_path)
    if follow_symlinks or candidate.name == "..":
        return resolved

    parent = (resolved_root / candidate.parent).resolve()
    if parent != resolved_root and resolved_root not in parent.parents:
        msg = f"Operation path escapes the working root: {rel_path!r}"
        raise PathEscapeError(msg, path=rel_path)
    return parent / candidate.name


class Guardrails:
    """Checks operation paths against forbidden patterns and size limits.

    Example:
        >>> guardrails = Guardrails(GuardrailConfig())
        >>> guardrails.check_files([".git/config", "src/app.py"])
        Traceback (most recent call last):
            ...
        retools.exceptions.GuardrailError: ...
    """

    def __init__(self, config: GuardrailConfig | None = None) -> None:
        """Initialize guardrails.

        Args:
            config: Guardrail configuration.
        """
        self.config = config or GuardrailConfig()
        self.enabled = self.config.enabled

    def check_files(self, paths: list[str]) -> None:
        """Check operation paths against guardrails.

        Args:
            paths: Relative paths touched by a change set.

        Raises:
            GuardrailError: If any path or the operation count violates guardrails.
        """
        if not self.enabled:
            logger.debug("Guardrails disabled")
            return

        log = logger.bind(file_count=len(paths))
        log.debug("Checking guardrails")

        if len(paths) > self.config.max_operations:
            msg = f"Too many operations: {len(paths)} (max: {self.config.max_operations})"
            raise GuardrailError(
                msg,
                violated_files=list(paths),
                rule="max_operations",
            )

        violations = self.get_violations(paths)
        for path in violations:
            log.warning("Guardrail violation: forbidden file", file=path)

        if violations:
            msg = f"Forbidden files in change set: {', '.join(violations)}"
            raise GuardrailError(
                msg,
                violated_files=violations,
                rule="forbidden_patterns",
            )

        log.debug("Guardrails passed")

    def _matches_pattern(self, file_path: str, pattern: str) -> bool:
        """Check if a file path matches a glob pattern.

        Supports patterns like:
        - src/**/*.py (any .py file under src/)
        - .git/** (anything below .git)
        - *.pem (any .pem file, at any depth)

        Args:
            file_path: The file path to check.
            pattern: The glob pattern.

        Returns:
            True if the path matches the pattern.
        """
        normalized_path = file_path.replace("\\", "/")
        if normalized_path.startswith("./"):
            normalized_path = normalized_path[2:]
        normalized_pattern = pattern.replace("\\", "/")

        if "**" in normalized_pattern:
            regex_pattern = re.escape(normalized_pattern)
            regex_pattern = regex_pattern.replace(r"\*\*/", "(.*/)?")
            regex_pattern = regex_pattern.replace(r"/\*\*", "(/.*)?")
            regex_pattern = regex_pattern.replace(r"\*", "[^/]*")
            if re.match(f"^{regex_pattern}$", normalized_path):
                return True

        if fnmatch.fnmatchcase(normalized_path, normalized_pattern):
            return True

        # Check if any path component matches
        parts = normalized_path.split("/")
        return any(fnmatch.fnmatchcase(part, normalized_pattern) for part in parts)

    def is_file_allowed(self, file_path: str) -> bool:
        """Check if a path may be written or deleted."""
        if not self.enabled:
            return True
        return not any(self._matches_pattern(file_path, p) for p in self.config.forbidden_patterns)

    def get_violations(self, paths: list[str]) -> list[str]:
        """Get the paths that violate forbidden patterns, without duplicates."""
        if not self.enabled:
            return []
        return [p for p in dict.fromkeys(paths) if not self.is_file_allowed(p)]
