"""
agent_labs.agent.user_memory - Long-term memory about the user.

Agents with "userMemory" in the catalogue remember facts about the user
across conversations. The user is the username of a signed context id
(RequestContext.username); anonymous requests get no memory.

Around each turn:
    1. before: the user's stored memories are appended to the instructions
    2. after:  an extractor model reads the user's message and stores the
       facts that are not known yet
"""

from __future__ import annotations

import logging
from typing import Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from agent_labs.application.context import RequestContext
from agent_labs.domain.entities import UserMemory
from agent_labs.domain.ports import UserMemoryRepository
from agent_labs.agent.schemas import ExtractedUserMemories

logger = logging.getLogger(__name__)

EXTRACTOR_INSTRUCTIONS = (
    "You are a helpful assistant that can extract user data from a given text. "
    "If the info already exists in the context, don't extract it again. "
    "Extract only data that helps us to know the user better."
)


class UserMemoryProvider:
    """Loads and learns the memories of the user behind a request."""

    def __init__(self, repository: UserMemoryRepository, extractor: BaseChatModel):
        self._repo = repository
        self._extractor = extractor

    async def recall(self, ctx: RequestContext) -> list[UserMemory]:
        if not ctx.username:
            return []
        memories = await self._repo.get_memories(ctx.username)
        if memories:
            logger.info("Loaded %d memory(ies) of user %s", len(memories), ctx.username)
        return memories

    @staticmethod
    def instructions(base: str, memories: list[UserMemory]) -> str:
        """The agent instructions followed by what we know about the user."""
        if not memories:
            return base
        known = "\n".join(m.memory for m in memories)
        return f"{base}\n\nWhat we know about the user:\n{known}"

    async def learn(
        self,
        ctx: RequestContext,
        message: str,
        known: Optional[list[UserMemory]] = None,
    ) -> list[UserMemory]:
        """Extract new facts from the user's message and store them.

        An extraction failure is logged and nothing is learned; the turn
        itself is already answered.
        """
        if not ctx.username or not message.strip():
            return []

        known = known if known is not None else await self._repo.get_memories(ctx.username)
        known_text = "\n".join(m.memory for m in known) or "nothing yet"
        prompt = [
            SystemMessage(content=EXTRACTOR_INSTRUCTIONS),
            SystemMessage(content=(
                f"This is what we know about the user: {known_text}. "
                f"Don't extract the same info again. The user id is: {ctx.username}"
            )),
            HumanMessage(content=message),
        ]
        try:
            parsed = await self._extractor.with_structured_output(
                ExtractedUserMemories,
            ).ainvoke(prompt)
        except Exception as exc:
            logger.warning("Memory extraction failed for user %s: %s", ctx.username, exc)
            return []

        if parsed is None:
            return []
        extracted = parsed if isinstance(parsed, ExtractedUserMemories) else ExtractedUserMemories(**parsed)
        seen = {m.memory.strip().lower() for m in known}
        new: list[UserMemory] = []
        for text in extracted.memories:
            text = text.strip()
            if text and text.lower() not in seen:
                seen.add(text.lower())
                new.append(UserMemory(user_id=ctx.username, memory=text))

        await self._repo.add_memories(new)
        if new:
            logger.info("Learned %d new memory(ies) about user %s", len(new), ctx.username)
        return new
