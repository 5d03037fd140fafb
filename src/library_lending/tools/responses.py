"""
MCP response builders shared by the lending tools.

Tools return both a human-readable text block and structured data. Business
failures carry the service's reason code in ``data.reason`` so clients can
branch on it without parsing text.
"""

from typing import Any

from ..models.results import FailureReason


def text_response(message: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    """Successful tool result."""
    response: dict[str, Any] = {
        "content": [{
            "type": "text",
            "text": message
        }]
    }
    if data is not None:
        response["data"] = data
    return response


def error_response(message: str, reason: FailureReason | None = None) -> dict[str, Any]:
    """Failed tool result, optionally tagged with a reason code."""
    response: dict[str, Any] = {
        "isError": True,
        "content": [{
            "type": "text",
            "text": message
        }]
    }
    if reason is not None:
        response["data"] = {"reason": reason.value}
    return response
