"""Repository context extractor - the main entry point for context building.

Coordinates the tree walk, manifest parsing, framework detection and the
branding pass, and keeps the result under the context byte ceiling.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import structlog

from retools.config import ContextConfig
from retools.context.branding import (
    DEFAULT_SLOT_RULES,
    BrandingContext,
    BrandingEntry,
    BrandingSlot,
    SlotRule,
    extract_branding,
)
from retools.context.manifest import Framework, detect_framework, load_manifest
from retools.context.reader import TRUNCATION_MARKER, truncate_text
from retools.context.walker import RepositoryFile, walk_repository

logger = structlog.get_logger()

# Re-fitting passes before branding content is dropped entirely.
_MAX_FIT_PASSES = 5

_MARKER_LEN = len(TRUNCATION_MARKER.encode("utf-8")) + 8


def _encoded_len(text: str) -> int:
    """Byte length of ``text`` once embedded in compact JSON."""
    return len(json.dumps(text, ensure_ascii=False).encode("utf-8")) - 2


def fair_shares(lengths: list[int], budget: int) -> list[int]:
    """Split ``budget`` across items so no single item starves the rest.

    Items smaller than an even share keep their full length, and what they
    leave over is shared among the larger ones.

    Example:
        >>> fair_shares([10, 500, 500], 310)
        [10, 150, 150]
    """
    caps = [0] * len(lengths)
    remaining = max(budget, 0)
    order = sorted(range(len(lengths)), key=lambda i: lengths[i])
    for k, i in enumerate(order):
        share = remaining // (len(order) - k)
        caps[i] = min(lengths[i], share)
        remaining -= caps[i]
    return caps


def _drop_tail(items: list[str], overshoot: int) -> list[str]:
    """Drop trailing items until their JSON size covers ``overshoot`` bytes."""
    keep = len(items)
    freed = 0
    while keep and freed < overshoot:
        keep -= 1
        freed += _encoded_len(items[keep]) + 3
    return items[:keep]


@dataclass
class GenerationContext:
    """Bounded repository summary handed to the generation call.

    Attributes:
        files: Relative file paths (at most ``context_file_limit``).
        framework: Detected framework label.
        dependencies: Runtime dependency names (capped).
        branding: Extracted branding slots.
        total_files: Number of files collected by the walk.
    """

    files: list[str] = field(default_factory=list)
    framework: Framework = Framework.UNKNOWN
    dependencies: list[str] = field(default_factory=list)
    branding: BrandingContext = field(default_factory=BrandingContext)
    total_files: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "files": list(self.files),
            "total_files": self.total_files,
            "framework": self.framework.value,
            "dependencies": list(self.dependencies),
            "branding": self.branding.to_dict(),
        }

    def to_json(self, *, indent: int | None = None) -> str:
        separators = None if indent else (",", ":")
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent, separators=separators)

    def serialized_size(self) -> int:
        """Size in bytes of the compact JSON serialization."""
        return len(self.to_json().encode("utf-8"))


class ContextExtractor:
    """Builds a GenerationContext from a repository working tree.

    Extraction never raises: missing manifests, unreadable files and empty
    trees all produce a (possibly empty) context.

    Example:
        >>> extractor = ContextExtractor(Path("/repo"))
        >>> context = extractor.extract()
        >>> context.framework
        <Framework.UNKNOWN: 'Unknown'>
    """

    def __init__(
        self,
        root: Path,
        config: ContextConfig | None = None,
        *,
        rules: tuple[SlotRule, ...] = DEFAULT_SLOT_RULES,
    ) -> None:
        """Initialize the extractor.

        Args:
            root: Repository root (the job's working tree).
            config: Context limits.
            rules: Branding rule table.
        """
        self.root = root
        self.config = config or ContextConfig()
        self.rules = rules

    def extract(self) -> GenerationContext:
        """Build the generation context.

        Returns:
            GenerationContext within the configured byte ceiling.
        """
        log = logger.bind(root=str(self.root))
        log.info("Scanning repository")

        files: list[RepositoryFile] = walk_repository(self.root, self.config)
        manifest = load_manifest(self.root, self.config.manifest)
        framework = detect_framework(manifest.all_dependencies)
        branding = extract_branding(self.root, files, manifest, self.rules)

        context = GenerationContext(
            files=[f.path for f in files[: self.config.context_file_limit]],
            framework=framework,
            dependencies=manifest.dependencies[: self.config.max_dependencies],
            branding=branding,
            total_files=len(files),
        )
        context = self._fit_to_budget(context)

        log.info(
            "Repository context built",
            files=len(files),
            framework=framework.value,
            dependencies=len(context.dependencies),
            branding_slots=[slot.value for slot in BrandingSlot if branding.has(slot)],
            size=context.serialized_size(),
        )
        return context

    def _fit_to_budget(self, context: GenerationContext) -> GenerationContext:
        """Truncate branding entries so the serialized context fits the ceiling.

        Each entry gets a fair share of the space left after the fixed
        fields, so one oversized file cannot consume the whole budget. When
        the fixed fields alone are over the ceiling, file paths and then
        dependency names are dropped from the tail, and branding last.
        """
        limit = self.config.max_context_bytes
        original_size = context.serialized_size()
        if original_size <= limit:
            return context

        bare = replace(
            context,
            branding=context.branding.map_entries(lambda _slot, e: replace(e, content="", truncated=True)),
        )
        if bare.serialized_size() > limit:
            context = self._trim_fixed_fields(bare, limit)
            logger.warning(
                "Context fields trimmed to fit context budget",
                before=original_size,
                after=context.serialized_size(),
                files=len(context.files),
                dependencies=len(context.dependencies),
                limit=limit,
            )
            return context

        available = limit - bare.serialized_size()
        for _ in range(_MAX_FIT_PASSES):
            context = replace(context, branding=self._shrink(context.branding, available))
            overshoot = context.serialized_size() - limit
            if overshoot <= 0:
                break
            available -= overshoot
        else:
            context = bare

        logger.debug(
            "Branding truncated to fit context budget",
            before=original_size,
            after=context.serialized_size(),
            limit=limit,
        )
        return context

    @staticmethod
    def _trim_fixed_fields(context: GenerationContext, limit: int) -> GenerationContext:
        for name in ("files", "dependencies"):
            while True:
                overshoot = context.serialized_size() - limit
                items = getattr(context, name)
                if overshoot <= 0 or not items:
                    break
                context = replace(context, **{name: _drop_tail(items, overshoot)})
        if context.serialized_size() > limit:
            context = replace(context, branding=BrandingContext())
        return context

    @staticmethod
    def _shrink(branding: BrandingContext, available: int) -> BrandingContext:
        slots = list(branding.slots.items())
        entries = [entry for _, slot_entries in slots for entry in slot_entries]
        encoded = [_encoded_len(e.content) for e in entries]
        caps = iter(fair_shares(encoded, available))
        sizes = iter(encoded)

        def shrink_entry(entry: BrandingEntry) -> BrandingEntry:
            cap = next(caps)
            size = next(sizes)
            if size <= cap:
                return entry
            raw_len = len(entry.content.encode("utf-8"))
            raw_cap = max(0, cap * raw_len // max(size, 1) - _MARKER_LEN)
            content, _ = truncate_text(entry.content, raw_cap)
            return replace(entry, content=content, truncated=True)

        return BrandingContext(
            slots={slot: [shrink_entry(e) for e in slot_entries] for slot, slot_entries in slots}
        )


def extract_context(root: Path, config: ContextConfig | None = None) -> GenerationContext:
    """Convenience function to extract a generation context.

    Args:
        root: Repository root.
        config: Context limits.

    Returns:
        GenerationContext for the repository.
    """
    return ContextExtractor(root, config).extract()
