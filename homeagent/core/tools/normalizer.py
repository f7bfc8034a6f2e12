"""
homeagent.core.tools.normalizer - Tool Result Normalization

Turns whatever a provider returned into one text string for the planner.
The external tool ecosystem is not a single schema: results may be plain
strings, error-flagged results, structured results with content blocks of
varying shapes, or something else entirely.

``normalize`` runs an ordered chain of extractors. Each extractor is a pure
function ``candidate -> str | None``; the first non-None answer wins. The
function is total: it never raises and never returns an empty string.

Example:
    >>> normalize("Kitchen lights turned on successfully")
    'Kitchen lights turned on successfully'
    >>> normalize({"content": [{"type": "text", "text": "A"}, {"type": "text", "text": "B"}]})
    'A\\nB'
    >>> normalize({"content": []})
    'No content'
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

NO_CONTENT = "No content"
ERROR_WITHOUT_MESSAGE = "Tool reported an error without a message"

Extractor = Callable[[Any], str | None]

_MISSING = object()


def _get(obj: Any, name: str) -> Any:
    """Attribute or mapping key lookup; _MISSING when absent."""
    if isinstance(obj, Mapping):
        return obj.get(name, _MISSING)
    if isinstance(obj, str | bytes | int | float | bool) or obj is None:
        return _MISSING
    return getattr(obj, name, _MISSING)


def _present(value: Any) -> bool:
    return value is not _MISSING and value is not None


def generic_text(obj: Any) -> str:
    """Best-effort textual representation of an arbitrary value."""
    if isinstance(obj, str):
        return obj
    if isinstance(obj, BaseModel):
        return obj.model_dump_json(exclude_none=True)
    if isinstance(obj, Mapping | list | tuple):
        try:
            return json.dumps(obj, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            return str(obj)
    return str(obj)


# ============================================================================
# Block-level extraction
# ============================================================================


def _block_text(block: Any) -> str:
    """Text for one content block (may be empty)."""
    if block is None:
        return ""
    if isinstance(block, str):
        return block

    text = _get(block, "text")
    if _present(text):
        return text if isinstance(text, str) else generic_text(text)

    nested = _get(block, "content")
    if _present(nested):
        return _collection_text(nested)

    resource = _get(block, "resource")
    if _present(resource):
        resource_text = _get(resource, "text")
        if _present(resource_text):
            return str(resource_text)

    return generic_text(block)


def _collection_text(content: Any) -> str:
    """Join the text of a content collection (or single content value)."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list | tuple):
        fragments = [_block_text(block) for block in content]
        return "\n".join(f for f in fragments if f)
    return _block_text(content)


# ============================================================================
# Extractor chain
# ============================================================================


def extract_error(raw: Any) -> str | None:
    """Error-flagged result -> embedded message (or generic fallback)."""
    flag = _get(raw, "isError")
    if flag is not True:
        flag = _get(raw, "is_error")
    if flag is not True:
        return None

    content = _get(raw, "content")
    if _present(content):
        text = _collection_text(content)
        if text:
            return text

    for name in ("message", "error"):
        value = _get(raw, name)
        if _present(value) and str(value):
            return str(value)

    return ERROR_WITHOUT_MESSAGE


def extract_content(raw: Any) -> str | None:
    """Result exposing a content collection -> joined block text."""
    content = _get(raw, "content")
    if content is _MISSING:
        return None
    return _collection_text(content) or NO_CONTENT


def extract_text_payload(raw: Any) -> str | None:
    """Plain string, ``text`` field or structured payload -> text."""
    if isinstance(raw, str):
        return raw or None

    text = _get(raw, "text")
    if _present(text) and str(text):
        return str(text)

    structured = _get(raw, "structuredContent")
    if _present(structured):
        return generic_text(structured)

    return None


EXTRACTORS: tuple[Extractor, ...] = (
    extract_error,
    extract_content,
    extract_text_payload,
)


def normalize(raw: Any) -> str:
    """
    Convert a provider-specific tool result into text.

    Priority: error flag, content collection, single textual payload,
    then the "No content" placeholder.

    Args:
        raw: Whatever the provider returned

    Returns:
        Non-empty text (never raises)
    """
    try:
        for extractor in EXTRACTORS:
            text = extractor(raw)
            if text is not None:
                return text or NO_CONTENT
        return NO_CONTENT
    except Exception:
        logger.warning("Unrecognized tool result shape, using generic representation", exc_info=True)
        try:
            return generic_text(raw) or NO_CONTENT
        except Exception:
            return NO_CONTENT
