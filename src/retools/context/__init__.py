"""Repository context extraction.

Builds a bounded summary of an unknown repository for the generation call.

Key components:
- walk_repository: depth-bounded, capped tree walk
- read_capped: defensive byte-capped reads
- load_manifest / detect_framework: package.json facts
- extract_branding: ordered slot rule table for identity and style signals
- ContextExtractor: main entry point that coordinates extraction
"""

from retools.context.branding import (
    DEFAULT_SLOT_RULES,
    BrandingContext,
    BrandingEntry,
    BrandingSlot,
    SlotRule,
    extract_branding,
)
from retools.context.extractor import ContextExtractor, GenerationContext, extract_context
from retools.context.manifest import Framework, detect_framework, load_manifest
from retools.context.reader import TRUNCATION_MARKER, read_capped
from retools.context.walker import RepositoryFile, walk_repository

__all__ = [
    "DEFAULT_SLOT_RULES",
    "TRUNCATION_MARKER",
    "BrandingContext",
    "BrandingEntry",
    "BrandingSlot",
    "ContextExtractor",
    "Framework",
    "GenerationContext",
    "RepositoryFile",
    "SlotRule",
    "detect_framework",
    "extract_branding",
    "extract_context",
    "load_manifest",
    "read_capped",
    "walk_repository",
]
