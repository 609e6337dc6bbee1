"""retools - repository change engine for AI-generated edits."""

__version__ = "0.1.0"
