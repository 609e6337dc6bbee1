"""Prompt rendering for generation calls."""

from retools.prompts.renderer import PromptRenderer, framework_notes

__all__ = ["PromptRenderer", "framework_notes"]
