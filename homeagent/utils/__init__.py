"""
homeagent.utils - Model Output and Error Helpers
"""

from homeagent.utils.api_errors import describe_exception, friendly_message, parse_error_response
from homeagent.utils.json_cleanup import clean_json_array, extract_chat_content

__all__ = [
    "clean_json_array",
    "describe_exception",
    "extract_chat_content",
    "friendly_message",
    "parse_error_response",
]
