"""Shared utilities for all tool modules."""

from mcp.types import TextContent


def text_response(text: str) -> list[TextContent]:
    """Wrap ``text`` in the single-item content envelope every tool returns."""
    return [TextContent(type="text", text=text)]


def error_message(e: BaseException) -> str:
    """Human-readable message for a caught exception.

    Falls back to the exception class name when the message is empty
    (e.g. a bare ``httpx.ReadTimeout()``).
    """
    return str(e) or type(e).__name__
