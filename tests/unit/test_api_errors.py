"""
Unit tests for homeagent.utils.api_errors - Friendly Model-Server Errors.
"""

import asyncio
from unittest.mock import MagicMock

import anthropic
import openai
import pytest

from homeagent.utils.api_errors import (
    AUTH_FAILED,
    CONNECTION_REFUSED,
    DEFAULT_FALLBACK,
    ENDPOINT_NOT_FOUND,
    NO_MODEL_LOADED,
    RATE_LIMITED,
    SERVER_ERROR,
    TIMED_OUT,
    describe_exception,
    friendly_message,
    parse_error_response,
)


def _response(status_code):
    response = MagicMock()
    response.status_code = status_code
    response.headers = {}
    return response


class TestFriendlyMessage:
    @pytest.mark.parametrize(
        "message,expected",
        [
            ("No models loaded. Please load a model", NO_MODEL_LOADED),
            ("model_not_found", NO_MODEL_LOADED),
            ("connect ECONNREFUSED: Connection refused", CONNECTION_REFUSED),
            ("Request timeout after 60s", TIMED_OUT),
            ("Rate limit reached for requests", RATE_LIMITED),
            ("Invalid API key provided", AUTH_FAILED),
            ("Internal error in inference engine", SERVER_ERROR),
            ("Context length exceeded", "Context length exceeded"),
        ],
    )
    def test_categories(self, message, expected):
        assert friendly_message(message) == expected


class TestParseErrorResponse:
    def test_lm_studio_error_body(self):
        body = '{"error": {"message": "No models loaded. Please load a model in the developer page"}}'
        assert parse_error_response(body) == NO_MODEL_LOADED

    def test_error_object_without_message(self):
        assert parse_error_response('{"error": {"code": 42}}') == "API error occurred"

    def test_error_string(self):
        assert parse_error_response('{"error": "Rate limit exceeded"}') == RATE_LIMITED

    def test_message_and_detail_fields(self):
        assert parse_error_response('{"message": "Bad request"}') == "Bad request"
        assert parse_error_response('{"detail": "Not allowed"}') == "Not allowed"

    def test_bytes_body(self):
        assert parse_error_response(b'{"message": "Bad request"}') == "Bad request"

    def test_decoded_payload(self):
        assert parse_error_response({"message": "Already parsed"}) == "Already parsed"

    @pytest.mark.parametrize("body", [None, "", "   ", "{}", "[1, 2]"])
    def test_fallback(self, body):
        assert parse_error_response(body) == DEFAULT_FALLBACK

    def test_custom_fallback(self):
        assert parse_error_response(None, "HTTP 502") == "HTTP 502"

    def test_plain_text_not_found(self):
        assert parse_error_response("404 page not found") == ENDPOINT_NOT_FOUND

    def test_plain_text_server_error(self):
        assert parse_error_response("Internal Server Error") == SERVER_ERROR

    def test_plain_text_connection_refused(self):
        assert parse_error_response("dial tcp: connection refused") == CONNECTION_REFUSED

    def test_short_plain_text_kept(self):
        assert parse_error_response("Bad gateway") == "Bad gateway"

    def test_long_plain_text_replaced(self):
        assert parse_error_response("x" * 300, "too long") == "too long"


class TestDescribeException:
    def test_builtin_connection_refused(self):
        assert describe_exception(ConnectionRefusedError()) == CONNECTION_REFUSED

    def test_builtin_timeouts(self):
        assert describe_exception(TimeoutError()) == TIMED_OUT
        assert describe_exception(asyncio.TimeoutError()) == TIMED_OUT

    def test_message_is_mapped(self):
        assert describe_exception(RuntimeError("rate limit hit")) == RATE_LIMITED

    def test_message_passthrough(self):
        assert describe_exception(ValueError("Unknown provider")) == "Unknown provider"

    def test_empty_message_uses_type_name(self):
        assert describe_exception(RuntimeError()) == "RuntimeError"

    def test_openai_connection_error(self):
        exc = openai.APIConnectionError(request=MagicMock())
        assert describe_exception(exc) == CONNECTION_REFUSED

    def test_openai_timeout(self):
        exc = openai.APITimeoutError(request=MagicMock())
        assert describe_exception(exc) == TIMED_OUT

    def test_openai_status_error_body(self):
        exc = openai.NotFoundError(
            "Error code: 404",
            response=_response(404),
            body={"message": "No models loaded", "type": "invalid_request_error"},
        )
        assert describe_exception(exc) == NO_MODEL_LOADED

    def test_status_error_without_body(self):
        exc = openai.InternalServerError("Error code: 503", response=_response(503), body=None)
        assert describe_exception(exc).startswith("HTTP 503")

    def test_anthropic_rate_limit(self):
        exc = anthropic.RateLimitError("Error code: 429", response=_response(429), body=None)
        assert describe_exception(exc) == RATE_LIMITED

    def test_anthropic_auth(self):
        exc = anthropic.AuthenticationError("Error code: 401", response=_response(401), body=None)
        assert describe_exception(exc) == AUTH_FAILED
