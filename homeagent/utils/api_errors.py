"""
homeagent.utils.api_errors - Friendly Model-Server Errors

Turns raw failures from the model server (error bodies, SDK exceptions,
socket errors) into one-line messages a user can act on.

Example:
    >>> parse_error_response('{"error": {"message": "No models loaded"}}')
    'No AI model is loaded in LM Studio. Load a model in the LM Studio interface or run `lms load`.'
    >>> describe_exception(ConnectionRefusedError())
    'Cannot connect to the model server. Make sure LM Studio is running on http://localhost:1234.'
"""

import asyncio
import json
from typing import Any

import anthropic
import openai

DEFAULT_FALLBACK = "Unknown error occurred"

NO_MODEL_LOADED = (
    "No AI model is loaded in LM Studio. Load a model in the LM Studio interface or run `lms load`."
)
CONNECTION_REFUSED = (
    "Cannot connect to the model server. Make sure LM Studio is running on http://localhost:1234."
)
TIMED_OUT = "Request timed out. The AI model might be busy or overloaded. Try again in a moment."
RATE_LIMITED = "Too many requests. Please wait a moment before trying again."
AUTH_FAILED = "Authentication error. Please check your API configuration."
SERVER_ERROR = "Server error occurred. Please try again or restart LM Studio if the problem persists."
ENDPOINT_NOT_FOUND = (
    "API endpoint not found. Please check that LM Studio is running and properly configured."
)

# Plain-text bodies longer than this are replaced by the fallback
_MAX_PLAIN_TEXT = 200


def friendly_message(message: str) -> str:
    """Map a model-server error message onto a known failure category."""
    lower = message.lower()

    if "no models loaded" in lower or "model_not_found" in lower:
        return NO_MODEL_LOADED
    if "connection" in lower and "refused" in lower:
        return CONNECTION_REFUSED
    if "timeout" in lower or "timed out" in lower:
        return TIMED_OUT
    if "rate limit" in lower:
        return RATE_LIMITED
    if "invalid" in lower and ("token" in lower or "api key" in lower):
        return AUTH_FAILED
    if "server error" in lower or "internal error" in lower:
        return SERVER_ERROR
    return message


def _plain_text_error(body: str, fallback: str) -> str:
    lower = body.lower()

    if "connection refused" in lower:
        return CONNECTION_REFUSED
    if "404" in lower or "not found" in lower:
        return ENDPOINT_NOT_FOUND
    if "500" in lower or "internal server error" in lower:
        return SERVER_ERROR
    return body if len(body) <= _MAX_PLAIN_TEXT else fallback


def _payload_error(payload: Any, fallback: str) -> str:
    if not isinstance(payload, dict):
        return fallback

    error = payload.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message:
            return friendly_message(message)
        return "API error occurred"
    if isinstance(error, str) and error:
        return friendly_message(error)

    for key in ("message", "detail"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return fallback


def parse_error_response(
    body: str | bytes | dict[str, Any] | None,
    fallback: str = DEFAULT_FALLBACK,
) -> str:
    """
    Extract a user-facing message from an error response body.

    Understands ``{"error": {"message": ...}}`` (LM Studio / OpenAI),
    ``{"message": ...}`` and ``{"detail": ...}`` JSON bodies as well as plain
    text.

    Args:
        body: Raw response body or already-decoded JSON payload
        fallback: Returned when nothing useful can be extracted

    Returns:
        Friendly error message
    """
    if body is None:
        return fallback
    if not isinstance(body, str | bytes):
        return _payload_error(body, fallback)

    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    if not text.strip():
        return fallback

    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return _plain_text_error(text, fallback)
    return _payload_error(payload, fallback)


def describe_exception(exc: BaseException) -> str:
    """
    Friendly description of a failure raised while talking to the model.

    Args:
        exc: Exception from an LLM provider, the network stack or a planner

    Returns:
        Non-empty message
    """
    if isinstance(exc, openai.APITimeoutError | anthropic.APITimeoutError):
        return TIMED_OUT
    if isinstance(exc, openai.APIConnectionError | anthropic.APIConnectionError):
        return CONNECTION_REFUSED
    if isinstance(exc, openai.RateLimitError | anthropic.RateLimitError):
        return RATE_LIMITED
    if isinstance(exc, openai.AuthenticationError | anthropic.AuthenticationError):
        return AUTH_FAILED
    if isinstance(exc, openai.APIStatusError | anthropic.APIStatusError):
        fallback = f"HTTP {exc.status_code}: {exc.message}"
        if exc.body is not None:
            return friendly_message(parse_error_response(exc.body, fallback))
        return friendly_message(fallback)
    if isinstance(exc, ConnectionRefusedError):
        return CONNECTION_REFUSED
    if isinstance(exc, TimeoutError | asyncio.TimeoutError):
        return TIMED_OUT

    message = str(exc)
    if not message:
        return type(exc).__name__
    return friendly_message(message)
