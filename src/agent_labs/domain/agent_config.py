"""
agent_labs.domain.agent_config - Agent configuration and A2A agent card.

An AgentConfiguration is read once from the agents catalogue and never
mutated afterwards. The AgentCard is the public description served at
/a2a/{agent}/.well-known/agent-card.json.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class AgentConfiguration:
    """Static configuration for one agent.

    Attributes:
        agent_id:              Catalogue key (e.g. "translation").
        chat_deployment_name:  Overrides the default chat deployment/model.
        tools:                 Tool or sub-agent names the agent may call.
        memory:                Persist the conversation in the message store.
        user_memory:           Remember facts about the signed-in user across threads.
        structured_output:     Name of a registered response schema.
    """
    agent_id: str
    name: str
    description: str = ""
    instructions: str = ""
    chat_deployment_name: Optional[str] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_output_tokens: Optional[int] = None

    # A2A card
    version: str = "1.0.0"
    streaming: bool = False
    url: str = ""
    skill_id: str = ""
    skill_name: str = ""
    skill_description: str = ""
    tags: tuple[str, ...] = ()
    examples: tuple[str, ...] = ()

    tools: tuple[str, ...] = ()
    memory: bool = False
    user_memory: bool = False
    structured_output: Optional[str] = None

    @classmethod
    def from_dict(cls, agent_id: str, raw: dict[str, Any]) -> AgentConfiguration:
        def _opt_float(key: str) -> Optional[float]:
            value = raw.get(key)
            return float(value) if value is not None else None

        max_tokens = raw.get("maxOutputTokens")
        return cls(
            agent_id=agent_id,
            name=raw.get("name", agent_id),
            description=raw.get("description", ""),
            instructions=raw.get("instructions", ""),
            chat_deployment_name=raw.get("chatDeploymentName") or None,
            temperature=_opt_float("temperature"),
            top_p=_opt_float("topP"),
            max_output_tokens=int(max_tokens) if max_tokens is not None else None,
            version=raw.get("version", "1.0.0"),
            streaming=bool(raw.get("streaming", False)),
            url=raw.get("url", ""),
            skill_id=raw.get("skillId", agent_id),
            skill_name=raw.get("skillName", ""),
            skill_description=raw.get("skillDescription", ""),
            tags=tuple(raw.get("tags", [])),
            examples=tuple(raw.get("examples", [])),
            tools=tuple(raw.get("tools", [])),
            memory=bool(raw.get("memory", False)),
            user_memory=bool(raw.get("userMemory", False)),
            structured_output=raw.get("structuredOutput") or None,
        )

    def card(self) -> AgentCard:
        return AgentCard(
            name=self.name.replace(" ", ""),
            description=self.description,
            version=self.version,
            url=self.url,
            streaming=self.streaming,
            skills=[
                AgentSkill(
                    id=self.skill_id,
                    name=self.skill_name,
                    description=self.skill_description,
                    tags=list(self.tags),
                    examples=list(self.examples),
                )
            ],
        )


@dataclass(frozen=True)
class AgentSkill:
    id: str
    name: str
    description: str
    tags: list[str] = field(default_factory=list)
    examples: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AgentCard:
    """A2A agent card (text in, text out, no push notifications)."""
    name: str
    description: str
    version: str
    url: str
    streaming: bool
    skills: list[AgentSkill] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "url": self.url,
            "defaultInputModes": ["text"],
            "defaultOutputModes": ["text"],
            "capabilities": {
                "streaming": self.streaming,
                "pushNotifications": False,
            },
            "skills": [
                {
                    "id": s.id,
                    "name": s.name,
                    "description": s.description,
                    "tags": s.tags,
                    "examples": s.examples,
                }
                for s in self.skills
            ],
        }
