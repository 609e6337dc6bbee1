"""Fit branding blocks into the branding section of the system prompt."""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from retools.context.blocks import ContextBlock

logger = structlog.get_logger()

# Branding section of the system prompt, roughly 6k tokens.
DEFAULT_CHAR_BUDGET = 24000

SECTION_SEPARATOR = "\n\n"


@dataclass
class PackResult:
    """Packed branding section.

    Attributes:
        content: Markdown for the included blocks.
        included_blocks: Blocks in the section, in input order.
        excluded_blocks: Blocks dropped for lack of space.
        compacted: Titles of blocks that were shortened to fit.
    """

    content: str
    included_blocks: list[ContextBlock]
    excluded_blocks: list[ContextBlock]
    compacted: list[str] = field(default_factory=list)

    @property
    def total_chars(self) -> int:
        return len(self.content)


@dataclass
class ContextPacker:
    """Packs branding blocks within a character budget.

    Blocks are admitted highest priority first: in full when they fit, in
    compact form when only that fits, otherwise dropped. Admitted blocks
    keep their input order in the output.

    Attributes:
        char_budget: Maximum characters for the section.
        compact_lines: Body lines kept by a compact rendering.
    """

    char_budget: int = DEFAULT_CHAR_BUDGET
    compact_lines: int = 12

    def _fit(self, block: ContextBlock, remaining: int) -> tuple[str, bool] | None:
        full = block.render()
        if len(full) + len(SECTION_SEPARATOR) <= remaining:
            return full, False
        compact = block.render_compact(self.compact_lines)
        if compact != full and len(compact) + len(SECTION_SEPARATOR) <= remaining:
            return compact, True
        return None

    def pack(self, blocks: list[ContextBlock]) -> PackResult:
        """Pack blocks within the budget.

        Args:
            blocks: Blocks in the order they should appear.

        Returns:
            PackResult with the section content.
        """
        rendered: dict[int, str] = {}
        excluded: list[ContextBlock] = []
        compacted: list[str] = []
        remaining = self.char_budget

        for index in sorted(range(len(blocks)), key=lambda i: (-blocks[i].priority, i)):
            block = blocks[index]
            fitted = self._fit(block, remaining)
            if fitted is None:
                excluded.append(block)
                logger.debug(
                    "Branding block dropped",
                    title=block.title,
                    priority=block.priority,
                    remaining=remaining,
                )
                continue
            text, is_compact = fitted
            if is_compact:
                compacted.append(block.title)
            rendered[index] = text
            remaining -= len(text) + len(SECTION_SEPARATOR)

        order = sorted(rendered)
        result = PackResult(
            content=SECTION_SEPARATOR.join(rendered[i] for i in order),
            included_blocks=[blocks[i] for i in order],
            excluded_blocks=excluded,
            compacted=compacted,
        )

        logger.debug(
            "Branding section packed",
            included=len(result.included_blocks),
            excluded=len(excluded),
            compacted=compacted,
            chars=result.total_chars,
            budget=self.char_budget,
        )
        return result
