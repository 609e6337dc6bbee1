"""Prompt template renderer using Jinja2."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import jinja2
import structlog

from retools.context.blocks import branding_blocks
from retools.context.extractor import GenerationContext
from retools.context.manifest import Framework
from retools.context.packer import DEFAULT_CHAR_BUDGET, ContextPacker

logger = structlog.get_logger()

# Template directory is relative to this module
TEMPLATES_DIR = Path(__file__).parent / "templates"

# Dependencies listed in the prompt.
PROMPT_DEPENDENCIES = 10

_REACT_FAMILY = {Framework.NEXT, Framework.REMIX, Framework.GATSBY, Framework.REACT}
_VUE_FAMILY = {Framework.VUE, Framework.NUXT}
_SVELTE_FAMILY = {Framework.SVELTE, Framework.SVELTEKIT}
_SERVER_FRAMEWORKS = {Framework.EXPRESS, Framework.FASTIFY}


def framework_notes(framework: Framework) -> list[str]:
    """Branding instructions narrowed to the detected framework."""
    if framework in _REACT_FAMILY:
        notes = [
            "Reuse the existing components and their props instead of writing new markup from scratch.",
            "Keep the styling approach already in use (Tailwind classes, CSS modules or styled components).",
        ]
        if framework is Framework.NEXT:
            notes.append("Follow the routing convention in use (app/ or pages/ directory).")
        return notes
    if framework in _VUE_FAMILY:
        return [
            "Write single-file components that match the existing <template>/<script>/<style> layout.",
            "Keep scoped styles and the existing design tokens.",
        ]
    if framework in _SVELTE_FAMILY:
        return [
            "Write Svelte components in the style of the existing ones, including their <style> blocks.",
        ]
    if framework is Framework.ANGULAR:
        return ["Follow the existing module, component and stylesheet structure."]
    if framework is Framework.ASTRO:
        return ["Reuse the existing layouts and components in .astro files."]
    if framework in _SERVER_FRAMEWORKS:
        return ["Keep the existing route and middleware structure; match templates and static styles if present."]
    return ["Reuse the existing colors, fonts and spacing found in the style files."]


class PromptRenderer:
    """Renders prompt templates with context.

    Example:
        >>> renderer = PromptRenderer()
        >>> prompt = renderer.render_system(GenerationContext())
        >>> "Framework: Unknown" in prompt
        True
    """

    def __init__(
        self,
        templates_dir: Path | None = None,
        *,
        branding_budget: int = DEFAULT_CHAR_BUDGET,
    ) -> None:
        """Initialize the renderer.

        Args:
            templates_dir: Directory containing templates.
                          Defaults to built-in templates.
            branding_budget: Character budget for the branding section.
        """
        self.templates_dir = templates_dir or TEMPLATES_DIR
        self.branding_budget = branding_budget
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(self.templates_dir)),
            autoescape=False,  # We're generating markdown, not HTML
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=jinja2.StrictUndefined,
        )

    def render(self, template_name: str, **context: Any) -> str:
        """Render a template with the given context.

        Args:
            template_name: Name of the template (without .md extension).
            **context: Variables to pass to the template.

        Returns:
            Rendered template content.

        Raises:
            jinja2.TemplateNotFound: If template doesn't exist.
            jinja2.UndefinedError: If required variable is missing.
        """
        log = logger.bind(template=template_name)
        log.debug("Rendering prompt template")

        template = self.env.get_template(f"{template_name}.md")
        rendered = template.render(**context)

        log.debug("Template rendered", length=len(rendered))
        return rendered

    def render_system(self, context: GenerationContext, *, fix_mode: bool = False) -> str:
        """Render the system prompt for a generation call.

        Args:
            context: Extracted repository context.
            fix_mode: Use the minimal-fix variant for build failures.

        Returns:
            System prompt text.
        """
        packed = ContextPacker(char_budget=self.branding_budget).pack(branding_blocks(context.branding))
        return self.render(
            "system_fix" if fix_mode else "system",
            framework=context.framework.value,
            total_files=context.total_files,
            files=context.files,
            dependencies=context.dependencies[:PROMPT_DEPENDENCIES],
            branding=packed.content,
            framework_notes=framework_notes(context.framework),
        )
