"""Unit tests for prompt rendering."""

from __future__ import annotations

from pathlib import Path

import jinja2
import pytest

from retools.context.branding import BrandingContext, BrandingEntry, BrandingSlot
from retools.context.extractor import GenerationContext, extract_context
from retools.context.manifest import Framework
from retools.prompts.renderer import PromptRenderer, framework_notes


class TestFrameworkNotes:
    """Tests for framework_notes."""

    def test_next_mentions_routing(self) -> None:
        """Test that Next.js gets the routing note on top of React notes."""
        notes = framework_notes(Framework.NEXT)

        assert any("routing" in note for note in notes)
        assert len(notes) == len(framework_notes(Framework.REACT)) + 1

    @pytest.mark.parametrize("framework", list(Framework))
    def test_every_framework_has_notes(self, framework: Framework) -> None:
        """Test that every label maps to at least one note."""
        assert framework_notes(framework)


class TestPromptRenderer:
    """Tests for PromptRenderer."""

    def test_render_empty_context(self) -> None:
        """Test rendering for an empty repository."""
        prompt = PromptRenderer().render_system(GenerationContext())

        assert prompt.startswith("You are Retools AI")
        assert "Framework: Unknown" in prompt
        assert "Dependencies: None" in prompt
        assert "preserve the existing stack as is" in prompt
        assert "Existing branding and style" not in prompt

    def test_render_repository_context(self, next_repo: Path) -> None:
        """Test that files, dependencies and branding reach the prompt."""
        prompt = PromptRenderer().render_system(extract_context(next_repo))

        assert "Framework: Next.js" in prompt
        assert "Dependencies: next, react, react-dom" in prompt
        assert "- `app/page.tsx`" in prompt
        assert "## Existing branding and style" in prompt
        assert "### Project Identity" in prompt
        assert "name: acme-site" in prompt
        assert "preserve Next.js as is" in prompt

    def test_dependencies_capped_in_prompt(self) -> None:
        """Test that at most ten dependencies are listed."""
        context = GenerationContext(dependencies=[f"dep{i}" for i in range(12)])

        prompt = PromptRenderer().render_system(context)

        assert "dep9" in prompt
        assert "dep10" not in prompt

    def test_branding_budget(self) -> None:
        """Test that the branding section respects its budget."""
        branding = BrandingContext(
            slots={
                BrandingSlot.IDENTITY: [BrandingEntry(path="README.md", content="# Acme")],
                BrandingSlot.HOMEPAGE: [BrandingEntry(path="app/page.tsx", content="x" * 5000)],
            }
        )

        prompt = PromptRenderer(branding_budget=500).render_system(GenerationContext(branding=branding))

        assert "### Project Identity" in prompt
        assert "### Homepage" not in prompt

    def test_fix_variant(self) -> None:
        """Test the minimal-fix prompt."""
        prompt = PromptRenderer().render_system(GenerationContext(), fix_mode=True)

        assert "smallest possible change" in prompt
        assert "Respond with a JSON array" in prompt

    def test_missing_variable_raises(self, tmp_path: Path) -> None:
        """Test strict undefined handling in custom templates."""
        (tmp_path / "custom.md").write_text("Hello {{ name }}")
        renderer = PromptRenderer(tmp_path)

        assert renderer.render("custom", name="Acme") == "Hello Acme"
        with pytest.raises(jinja2.UndefinedError):
            renderer.render("custom")
