"""
homeagent.utils.json_cleanup - Model Output Cleanup

Small models rarely return clean JSON. They wrap it in code fences of
varying spelling, chat before the fence, escape quotes, prefix an ``=``, or
drop the array brackets. These helpers recover a JSON array from such text.
"""

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

# Fence spellings seen in the wild; some models write "`` json"
_OPENING_FENCES = ("```json", "`` json")
_FENCE = "```"


def _drop_before(content: str, tags: tuple[str, ...]) -> str:
    """Remove everything up to and including each tag (case-insensitive)."""
    for tag in tags:
        index = content.lower().find(tag)
        if index >= 0:
            content = content[index + len(tag) :]
    return content


def _shape_array(content: str) -> str:
    """Strip fences, chatter, prefixes and brackets, then re-wrap as ``[...]``."""
    if _FENCE in content or "`` " in content:
        content = _drop_before(content, _OPENING_FENCES)
        for fence in _OPENING_FENCES:
            content = content.replace(fence, "")

        # Anything after a closing fence is chatter
        index = content.find(_FENCE, 1)
        if index > 1:
            content = content[:index]
        content = content.replace(_FENCE, "")

    content = content.replace("\n", "").replace("\r", "").strip()
    content = content.lstrip("=").strip("`").strip()
    content = content.lstrip("[").rstrip("]")

    return f"[{content}]"


def clean_json_array(text: str | None) -> str | None:
    """
    Best-effort extraction of a JSON array from raw model output.

    Escaped quotes (``\\"``) are only unescaped when the array does not
    already parse, so legitimate escapes inside string values survive.

    Args:
        text: Model reply content

    Returns:
        Text shaped as ``[...]``, or None for empty/blank input. The result
        is not guaranteed to parse; callers still validate it.

    Example:
        >>> clean_json_array('Sure!```json\\n[{"Device": "TV", "Action": "On"}]\\n```')
        '[{"Device": "TV", "Action": "On"}]'
        >>> clean_json_array('{"Action": "Speak", "Text": "Hi"}')
        '[{"Action": "Speak", "Text": "Hi"}]'
    """
    if text is None or not text.strip():
        return None

    content = text.strip()
    shaped = _shape_array(content)
    if '\\"' not in shaped:
        return shaped

    try:
        json.loads(shaped)
    except json.JSONDecodeError:
        logger.debug("Model output has escaped quotes, unescaping before parse")
        return _shape_array(content.replace('\\"', '"'))
    return shaped


def extract_chat_content(body: str | bytes | None) -> str | None:
    """
    Pull ``choices[0].message.content`` out of a raw chat-completion body.

    Args:
        body: JSON response body from an OpenAI-compatible server

    Returns:
        The message content, or None when the body is not a completion
        or the content is blank
    """
    if not body:
        return None
    try:
        payload: Any = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.debug("Chat response body is not JSON")
        return None

    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None

    if not isinstance(content, str) or not content.strip():
        return None
    return content
