"""
agent_labs.agent.schemas - Structured-output response schemas.

Agents reference a schema by name in the catalogue
("structuredOutput": "TranslationResult").
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class TranslationResult(BaseModel):
    """Translation output containing the translated text, source language, and target language"""

    translated_text: str = Field(description="The translated text.")
    source_language: str = Field(description="Detected language of the input, e.g. 'French'.")
    target_language: str = Field(description="Language of the translated text, e.g. 'English'.")


# name → (schema, description)
STRUCTURED_OUTPUTS: dict[str, tuple[type[BaseModel], str]] = {
    "TranslationResult": (
        TranslationResult,
        "Translation output containing the translated text, source language, "
        "and target language",
    ),
}


class ExtractedUserMemories(BaseModel):
    """Facts about the user found in their last message"""

    memories: list[str] = Field(
        default_factory=list,
        description="New facts about the user, one short sentence each. Empty when nothing new was said.",
    )
