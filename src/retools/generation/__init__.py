"""Code-generation client and response parsing."""

from retools.generation.client import GenerationClient, response_text
from retools.generation.response import find_operations_array, parse_change_set

__all__ = [
    "GenerationClient",
    "find_operations_array",
    "parse_change_set",
    "response_text",
]
