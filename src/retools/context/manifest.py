"""Project manifest (package.json) parsing and framework detection."""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import structlog

from retools.context.reader import is_contained_file

logger = structlog.get_logger()

# Manifests larger than this are treated as malformed.
MAX_MANIFEST_BYTES = 1_000_000


class Framework(str, Enum):
    """Closed set of framework labels."""

    NEXT = "Next.js"
    NUXT = "Nuxt"
    REMIX = "Remix"
    GATSBY = "Gatsby"
    REACT = "React"
    SVELTEKIT = "SvelteKit"
    SVELTE = "Svelte"
    VUE = "Vue"
    ANGULAR = "Angular"
    ASTRO = "Astro"
    EXPRESS = "Express"
    FASTIFY = "Fastify"
    UNKNOWN = "Unknown"


# Meta-frameworks come before the libraries they build on.
FRAMEWORK_PRIORITY: tuple[tuple[str, Framework], ...] = (
    ("next", Framework.NEXT),
    ("nuxt", Framework.NUXT),
    ("@remix-run/react", Framework.REMIX),
    ("gatsby", Framework.GATSBY),
    ("react", Framework.REACT),
    ("@sveltejs/kit", Framework.SVELTEKIT),
    ("svelte", Framework.SVELTE),
    ("vue", Framework.VUE),
    ("@angular/core", Framework.ANGULAR),
    ("astro", Framework.ASTRO),
    ("express", Framework.EXPRESS),
    ("fastify", Framework.FASTIFY),
)


def detect_framework(dependency_names: Iterable[str]) -> Framework:
    """Map a set of dependency names to a framework label.

    The first entry of ``FRAMEWORK_PRIORITY`` present in the names wins.

    Example:
        >>> detect_framework(["react", "next"])
        <Framework.NEXT: 'Next.js'>
        >>> detect_framework([])
        <Framework.UNKNOWN: 'Unknown'>
    """
    names = set(dependency_names)
    for dependency, framework in FRAMEWORK_PRIORITY:
        if dependency in names:
            return framework
    return Framework.UNKNOWN


@dataclass
class Manifest:
    """The fields of a project manifest the extractor cares about."""

    path: str = ""
    name: str = ""
    description: str = ""
    dependencies: list[str] = field(default_factory=list)
    dev_dependencies: list[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.path)

    @property
    def all_dependencies(self) -> list[str]:
        """Runtime and dev dependency names, runtime first, without duplicates."""
        return list(dict.fromkeys(self.dependencies + self.dev_dependencies))

    def identity_text(self) -> str:
        """Render name/description as identity text, empty if neither is set."""
        lines = []
        if self.name:
            lines.append(f"name: {self.name}")
        if self.description:
            lines.append(f"description: {self.description}")
        return "\n".join(lines)


def _dependency_names(value: Any) -> list[str]:
    if not isinstance(value, dict):
        return []
    return [str(name) for name in value]


def _text_field(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def load_manifest(root: Path, filename: str = "package.json") -> Manifest:
    """Load a package.json manifest, returning an empty Manifest on any failure.

    A symlinked manifest, or one resolving outside ``root``, counts as missing.

    Args:
        root: Repository root.
        filename: Manifest path relative to root.

    Returns:
        Parsed Manifest; ``found`` is False when missing or malformed.
    """
    path = root / filename
    try:
        if not is_contained_file(root, filename) or path.stat().st_size > MAX_MANIFEST_BYTES:
            return Manifest()
        data = json.loads(path.read_text(encoding="utf-8", errors="replace"))
    except (OSError, ValueError) as e:
        logger.warning("Failed to parse manifest", path=str(path), error=str(e))
        return Manifest()

    if not isinstance(data, dict):
        logger.warning("Manifest is not a JSON object", path=str(path))
        return Manifest()

    return Manifest(
        path=filename,
        name=_text_field(data.get("name")),
        description=_text_field(data.get("description")),
        dependencies=_dependency_names(data.get("dependencies")),
        dev_dependencies=_dependency_names(data.get("devDependencies")),
    )
