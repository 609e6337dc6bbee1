"""Prompt context blocks built from extracted branding."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import PurePosixPath

from retools.context.branding import BrandingContext, BrandingSlot

# File extension to code fence language.
_FENCE_LANGUAGES = {
    ".ts": "ts",
    ".tsx": "tsx",
    ".js": "js",
    ".jsx": "jsx",
    ".css": "css",
    ".json": "json",
    ".html": "html",
    ".vue": "vue",
    ".svelte": "svelte",
    ".md": "markdown",
}


class ContextPriority(IntEnum):
    """Priority levels for branding blocks (higher = kept first)."""

    IDENTITY = 100
    LAYOUT = 80
    THEME = 70
    STYLES = 60
    NAVIGATION = 50
    HOMEPAGE = 40


SLOT_PRIORITIES = {
    BrandingSlot.IDENTITY: ContextPriority.IDENTITY,
    BrandingSlot.LAYOUT: ContextPriority.LAYOUT,
    BrandingSlot.THEME_CONFIG: ContextPriority.THEME,
    BrandingSlot.GLOBAL_STYLES: ContextPriority.STYLES,
    BrandingSlot.NAV_COMPONENT: ContextPriority.NAVIGATION,
    BrandingSlot.HOMEPAGE: ContextPriority.HOMEPAGE,
}

SLOT_TITLES = {
    BrandingSlot.IDENTITY: "Project Identity",
    BrandingSlot.THEME_CONFIG: "Theme Configuration",
    BrandingSlot.GLOBAL_STYLES: "Global Styles",
    BrandingSlot.LAYOUT: "Layout",
    BrandingSlot.NAV_COMPONENT: "Navigation",
    BrandingSlot.HOMEPAGE: "Homepage",
}


@dataclass
class ContextBlock:
    """Markdown for one branding slot.

    Attributes:
        slot: Slot the block describes; fixes its title and priority.
        body: Fenced file content, or raw manifest identity text.
        sources: Paths the body was read from.
    """

    slot: BrandingSlot
    body: str
    sources: list[str] = field(default_factory=list)

    @property
    def title(self) -> str:
        return SLOT_TITLES[self.slot]

    @property
    def priority(self) -> int:
        return SLOT_PRIORITIES[self.slot]

    def render(self) -> str:
        """Render the full block with its source line."""
        parts = [f"### {self.title}", "", self.body]
        if self.sources:
            parts += ["", f"_Source: {', '.join(self.sources)}_"]
        return "\n".join(parts)

    def render_compact(self, max_lines: int = 12) -> str:
        """Render only the head of the body, keeping code fences balanced.

        Args:
            max_lines: Body lines to keep.

        Returns:
            Compact markdown; the full rendering when the body is short enough.
        """
        lines = self.body.strip().splitlines()
        if len(lines) <= max_lines:
            return self.render()

        head = lines[:max_lines]
        if sum(line.startswith("```") for line in head) % 2:
            head.append("```")
        omitted = len(lines) - max_lines
        return "\n".join([f"### {self.title}", "", *head, f"_... {omitted} more lines_"])


def _fenced(path: str, content: str) -> str:
    language = _FENCE_LANGUAGES.get(PurePosixPath(path).suffix.lower(), "")
    return f"```{language}\n{content.rstrip()}\n```"


def branding_blocks(branding: BrandingContext) -> list[ContextBlock]:
    """Convert a BrandingContext into one block per populated slot, in slot order."""
    blocks: list[ContextBlock] = []
    for slot in BrandingSlot:
        entries = branding.get(slot)
        if not entries:
            continue
        lead = branding.first(slot)
        if slot is BrandingSlot.IDENTITY and lead.path.endswith(".json"):
            body = lead.content
        else:
            body = "\n\n".join(f"`{e.path}`\n{_fenced(e.path, e.content)}" for e in entries)
        blocks.append(ContextBlock(slot=slot, body=body, sources=[e.path for e in entries]))
    return blocks
