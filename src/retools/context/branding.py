"""Branding slot extraction driven by an ordered rule table.

Each slot has an ordered list of candidate patterns. The first readable
match wins (or the first ``limit`` matches for multi-valued slots), and a
file fills at most one slot per pass. Absent slots are valid.
"""

from __future__ import annotations

import fnmatch
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import structlog

from retools.context.manifest import Manifest
from retools.context.reader import read_capped, truncate_text
from retools.context.walker import RepositoryFile

logger = structlog.get_logger()

COMPONENT_EXTENSIONS = (".tsx", ".jsx", ".js", ".ts", ".vue", ".svelte")

# Stem suffixes that mark test or story files rather than components.
_NON_COMPONENT_SUFFIXES = {"test", "spec", "stories", "story"}

_TOKEN_RE = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z0-9]+")


class BrandingSlot(str, Enum):
    """Named branding extraction targets, in extraction order."""

    IDENTITY = "identity"
    THEME_CONFIG = "themeConfig"
    GLOBAL_STYLES = "globalStyles"
    LAYOUT = "layout"
    NAV_COMPONENT = "navComponent"
    HOMEPAGE = "homepage"


MULTI_VALUED_SLOTS = frozenset({BrandingSlot.LAYOUT, BrandingSlot.NAV_COMPONENT})


class MatchKind(str, Enum):
    """How a candidate pattern is compared with a repository file."""

    PATH = "path"  # glob against the relative path
    BASENAME = "basename"  # glob against the file name
    FRAGMENT = "fragment"  # name fragment: equal, prefix, suffix or word token


@dataclass(frozen=True)
class SlotRule:
    """Extraction rule for one branding slot.

    Attributes:
        slot: Target slot.
        patterns: Candidate patterns in priority order.
        match: How patterns are compared with files.
        limit: Maximum number of entries for the slot.
        max_bytes: Byte cap per entry.
        max_dir_depth: Only consider files with at most this many directory
            segments (None for no restriction).
        extensions: Restrict matches to these extensions (empty for any).
        use_manifest: Try the manifest name/description before the patterns.
    """

    slot: BrandingSlot
    patterns: tuple[str, ...]
    match: MatchKind = MatchKind.PATH
    limit: int = 1
    max_bytes: int = 4000
    max_dir_depth: int | None = None
    extensions: tuple[str, ...] = ()
    use_manifest: bool = False


DEFAULT_SLOT_RULES: tuple[SlotRule, ...] = (
    SlotRule(
        slot=BrandingSlot.IDENTITY,
        patterns=("README.md", "readme.md", "README", "README.txt", "README.rst"),
        max_bytes=4000,
        use_manifest=True,
    ),
    SlotRule(
        slot=BrandingSlot.THEME_CONFIG,
        patterns=(
            "tailwind.config.ts",
            "tailwind.config.js",
            "theme.config.ts",
            "theme.config.js",
            "src/theme.ts",
            "src/theme.js",
            "src/styles/theme.ts",
            "src/styles/theme.js",
            "theme.json",
        ),
        max_bytes=4000,
    ),
    SlotRule(
        slot=BrandingSlot.GLOBAL_STYLES,
        patterns=(
            "app/globals.css",
            "src/app/globals.css",
            "styles/globals.css",
            "src/styles/globals.css",
            "src/index.css",
            "src/global.css",
            "src/styles.css",
            "src/App.css",
            "styles.css",
        ),
        max_bytes=4000,
    ),
    SlotRule(
        slot=BrandingSlot.LAYOUT,
        patterns=(
            "app/layout.tsx",
            "app/layout.jsx",
            "app/layout.js",
            "src/app/layout.tsx",
            "src/app/layout.jsx",
            "src/app/layout.js",
            "pages/_app.*",
            "src/pages/_app.*",
            "src/routes/+layout.svelte",
            "src/App.tsx",
            "src/App.jsx",
            "src/App.vue",
            "src/App.svelte",
            "layouts/default.vue",
        ),
        limit=2,
        max_bytes=6000,
    ),
    SlotRule(
        slot=BrandingSlot.NAV_COMPONENT,
        patterns=("navbar", "navigation", "nav", "header", "menu", "sidebar"),
        match=MatchKind.FRAGMENT,
        limit=2,
        max_bytes=4000,
        extensions=COMPONENT_EXTENSIONS,
    ),
    SlotRule(
        slot=BrandingSlot.HOMEPAGE,
        patterns=(
            "page.tsx",
            "page.jsx",
            "page.js",
            "index.tsx",
            "index.jsx",
            "index.js",
            "index.vue",
            "+page.svelte",
            "Home.tsx",
            "Home.jsx",
            "Home.vue",
            "index.html",
        ),
        match=MatchKind.BASENAME,
        max_bytes=6000,
        max_dir_depth=2,
    ),
)


@dataclass(frozen=True)
class BrandingEntry:
    """Extracted slot content with its provenance path."""

    path: str
    content: str
    truncated: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "content": self.content, "truncated": self.truncated}


@dataclass
class BrandingContext:
    """Ordered mapping from branding slot to extracted entries."""

    slots: dict[BrandingSlot, list[BrandingEntry]] = field(default_factory=dict)

    def get(self, slot: BrandingSlot) -> list[BrandingEntry]:
        return list(self.slots.get(slot, []))

    def first(self, slot: BrandingSlot) -> BrandingEntry | None:
        entries = self.slots.get(slot)
        return entries[0] if entries else None

    def has(self, slot: BrandingSlot) -> bool:
        return bool(self.slots.get(slot))

    def is_empty(self) -> bool:
        return not any(self.slots.values())

    def entries(self) -> Iterator[tuple[BrandingSlot, BrandingEntry]]:
        """Iterate entries in slot order."""
        for slot in BrandingSlot:
            for entry in self.slots.get(slot, []):
                yield slot, entry

    def map_entries(self, fn: Any) -> BrandingContext:
        """Return a new context with ``fn(slot, entry)`` applied to every entry."""
        return BrandingContext(
            slots={
                slot: [fn(slot, entry) for entry in entries]
                for slot, entries in self.slots.items()
            }
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize populated slots; multi-valued slots become lists."""
        data: dict[str, Any] = {}
        for slot in BrandingSlot:
            entries = self.slots.get(slot)
            if not entries:
                continue
            if slot in MULTI_VALUED_SLOTS:
                data[slot.value] = [e.to_dict() for e in entries]
            else:
                data[slot.value] = entries[0].to_dict()
        return data


def _name_tokens(stem: str) -> set[str]:
    return {t.lower() for t in _TOKEN_RE.findall(stem)}


def _matches_fragment(file: RepositoryFile, fragment: str) -> bool:
    stem = file.stem
    parts = stem.split(".")
    if len(parts) > 1 and parts[-1].lower() in _NON_COMPONENT_SUFFIXES:
        return False
    base = parts[0]
    lowered = base.lower()
    fragment = fragment.lower()
    if lowered == fragment or lowered.startswith(fragment) or lowered.endswith(fragment):
        return True
    return fragment in _name_tokens(base)


def _matches(file: RepositoryFile, pattern: str, kind: MatchKind) -> bool:
    if kind is MatchKind.PATH:
        return fnmatch.fnmatchcase(file.path, pattern)
    if kind is MatchKind.BASENAME:
        return fnmatch.fnmatchcase(file.name, pattern)
    return _matches_fragment(file, pattern)


def candidates_for(rule: SlotRule, files: Sequence[RepositoryFile]) -> Iterator[RepositoryFile]:
    """Yield files matching a rule in priority order.

    Patterns are tried in table order; within one pattern, shallower files
    come first, then by path.
    """
    eligible = [
        f
        for f in files
        if (rule.max_dir_depth is None or f.depth <= rule.max_dir_depth)
        and (not rule.extensions or f.extension in rule.extensions)
    ]
    seen: set[str] = set()
    for pattern in rule.patterns:
        matched = [f for f in eligible if f.path not in seen and _matches(f, pattern, rule.match)]
        for f in sorted(matched, key=lambda f: (f.depth, f.path)):
            seen.add(f.path)
            yield f


def extract_branding(
    root: Path,
    files: Sequence[RepositoryFile],
    manifest: Manifest | None = None,
    rules: Sequence[SlotRule] = DEFAULT_SLOT_RULES,
) -> BrandingContext:
    """Run the priority extraction pass over the collected files.

    Args:
        root: Repository root.
        files: Files collected by the walk.
        manifest: Parsed project manifest, for the identity slot.
        rules: Ordered slot rule table.

    Returns:
        BrandingContext; slots with no readable match are absent.
    """
    context = BrandingContext()
    claimed: set[str] = set()

    for rule in rules:
        if rule.slot in context.slots:
            continue
        entries: list[BrandingEntry] = []

        if rule.use_manifest and manifest is not None:
            identity = manifest.identity_text()
            if identity:
                content, truncated = truncate_text(identity, rule.max_bytes)
                entries.append(BrandingEntry(path=manifest.path, content=content, truncated=truncated))

        for candidate in candidates_for(rule, files):
            if len(entries) >= rule.limit:
                break
            if candidate.path in claimed:
                continue
            read = read_capped(root, candidate.path, rule.max_bytes)
            if read.is_empty:
                continue
            entries.append(BrandingEntry(path=read.path, content=read.content, truncated=read.truncated))
            claimed.add(read.path)

        if entries:
            context.slots[rule.slot] = entries[: rule.limit]
            logger.debug(
                "Branding slot populated",
                slot=rule.slot.value,
                paths=[e.path for e in entries[: rule.limit]],
            )

    return context
