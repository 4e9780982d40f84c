"""
agent_labs.application.messages - Helpers shared by agents and stores.

Work on LangChain message objects by duck typing only (``.type`` and
``.content``), so this module carries no vendor import.
"""

from __future__ import annotations

from typing import Any

# LangChain message type → stored role
_ROLES = {
    "human": "user",
    "ai": "agent",
    "AIMessageChunk": "agent",
    "system": "system",
    "tool": "tool",
}


def content_to_text(content: Any) -> str:
    """Flatten message content (str or list of content blocks) to text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(str(block.get("text", "")))
    return "".join(parts)


def role_of(message: Any) -> str:
    return _ROLES.get(getattr(message, "type", ""), "agent")
