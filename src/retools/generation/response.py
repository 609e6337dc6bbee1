"""Recover a change set from free-form generation output."""

from __future__ import annotations

import json
from typing import Any

import structlog
from pydantic import ValidationError

from retools.exceptions import ResponseParseError
from retools.workspace.models import ChangeSet

logger = structlog.get_logger()

_EXCERPT_CHARS = 500


def find_operations_array(text: str) -> list[dict[str, Any]] | None:
    """Locate the first syntactically valid JSON array of objects in ``text``.

    Every ``[`` is tried as the start of a JSON value. Arrays whose items are
    not all objects (e.g. ``[1]`` in prose) are skipped; an empty array is
    accepted.

    Raises:
        ResponseParseError: If the input nests too deeply to decode.

    Example:
        >>> find_operations_array('Sure [1]. Here: [{"path": "a", "action": "delete"}] done')
        [{'path': 'a', 'action': 'delete'}]
    """
    decoder = json.JSONDecoder()
    index = text.find("[")
    while index != -1:
        try:
            value, end = decoder.raw_decode(text, index)
        except ValueError:
            index = text.find("[", index + 1)
            continue
        except RecursionError as e:
            logger.error("Response nesting too deep to decode", offset=index)
            msg = "Response nesting too deep to decode"
            raise ResponseParseError(msg, response_excerpt=text[:_EXCERPT_CHARS]) from e
        if isinstance(value, list) and all(isinstance(item, dict) for item in value):
            return value
        index = text.find("[", end if end > index else index + 1)
    return None


def parse_change_set(text: str) -> ChangeSet:
    """Extract and validate the change set embedded in a response.

    Args:
        text: Full response text.

    Returns:
        Validated ChangeSet.

    Raises:
        ResponseParseError: If no array is found or it fails validation.
    """
    excerpt = text[:_EXCERPT_CHARS]
    operations = find_operations_array(text)
    if operations is None:
        logger.error("No JSON array found in response", response_chars=len(text))
        msg = "No JSON array found in response"
        raise ResponseParseError(msg, response_excerpt=excerpt)

    try:
        change_set = ChangeSet.model_validate(operations)
    except ValidationError as e:
        logger.error("Change set failed validation", errors=e.error_count())
        msg = f"Invalid change set in response: {e}"
        raise ResponseParseError(msg, response_excerpt=excerpt) from e

    logger.debug("Change set parsed", operations=len(change_set), **change_set.summary())
    return change_set
