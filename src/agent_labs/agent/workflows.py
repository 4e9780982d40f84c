"""
agent_labs.agent.workflows - Sequential and concurrent multi-agent workflows.

Both shapes are plain LangGraph StateGraphs over already-built ChatAgents:

    sequential:  START → agent_0 → agent_1 → ... → END
                 each agent sees the user input plus every earlier reply.

    concurrent:  START ─┬→ agent_0 ─┬→ END
                        ├→ agent_1 ─┤
                        └→ agent_n ─┘
                 every agent sees only the user input; replies are
                 gathered by a list reducer and returned in agent order.
"""

from __future__ import annotations

import logging
import operator
import re
from dataclasses import dataclass
from typing import Annotated, Sequence, Union

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from agent_labs.application.context import RequestContext
from agent_labs.domain.exceptions import WorkflowError
from agent_labs.agent.chat_agent import ChatAgent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowMessage:
    role: str  # "user" | "agent"
    author: str
    text: str


@dataclass(frozen=True)
class _Reply:
    index: int
    message: WorkflowMessage


class WorkflowState(TypedDict):
    inputs: list[WorkflowMessage]
    replies: Annotated[list[_Reply], operator.add]


def _to_langchain(messages: Sequence[WorkflowMessage]) -> list[BaseMessage]:
    converted: list[BaseMessage] = []
    for m in messages:
        if m.role == "user":
            converted.append(HumanMessage(content=m.text))
        else:
            converted.append(AIMessage(content=m.text, name=re.sub(r"[^A-Za-z0-9_-]", "_", m.author)))
    return converted


def _node_name(index: int, agent: ChatAgent) -> str:
    return f"{index}_{agent.agent_id}"


class Workflow:
    """A compiled agent graph with a list-of-messages interface."""

    def __init__(self, name: str, kind: str, agents: Sequence[ChatAgent], graph):
        self.name = name
        self.kind = kind
        self.agents = list(agents)
        self._graph = graph

    async def run(
        self, messages: Sequence[Union[str, WorkflowMessage]],
    ) -> list[WorkflowMessage]:
        """Run the workflow and return the input followed by every agent reply."""
        inputs = [
            m if isinstance(m, WorkflowMessage) else WorkflowMessage("user", "user", m)
            for m in messages
        ]
        if not inputs:
            raise WorkflowError(f"Workflow '{self.name}' needs at least one input message")

        logger.info(
            "Running %s workflow '%s' with %d agent(s)", self.kind, self.name, len(self.agents),
        )
        try:
            state = await self._graph.ainvoke({"inputs": inputs, "replies": []})
        except WorkflowError:
            raise
        except Exception as exc:
            logger.exception("Workflow '%s' failed", self.name)
            raise WorkflowError(f"Workflow '{self.name}' failed: {exc}") from exc

        replies = sorted(state["replies"], key=lambda r: r.index)
        return inputs + [r.message for r in replies]


def _check_agents(name: str, agents: Sequence[ChatAgent]) -> None:
    if not agents:
        raise WorkflowError(f"Workflow '{name}' has no agents")


def build_sequential(name: str, agents: Sequence[ChatAgent]) -> Workflow:
    """Chain agents; each one answers the conversation so far."""
    _check_agents(name, agents)
    builder = StateGraph(WorkflowState)

    def make_node(index: int, agent: ChatAgent):
        async def node(state: WorkflowState) -> dict:
            done = [r.message for r in sorted(state["replies"], key=lambda r: r.index)]
            conversation = _to_langchain(state["inputs"] + done)
            result = await agent.run_conversation(
                conversation, ctx=RequestContext(request_type="Workflow"),
            )
            logger.info("Workflow '%s': %s replied (%d chars)", name, agent.name, len(result.text))
            return {"replies": [_Reply(index, WorkflowMessage("agent", agent.name, result.text))]}
        return node

    previous = START
    for i, agent in enumerate(agents):
        node_name = _node_name(i, agent)
        builder.add_node(node_name, make_node(i, agent))
        builder.add_edge(previous, node_name)
        previous = node_name
    builder.add_edge(previous, END)

    return Workflow(name, "sequential", agents, builder.compile())


def build_concurrent(name: str, agents: Sequence[ChatAgent]) -> Workflow:
    """Fan the same input out to every agent and gather the replies."""
    _check_agents(name, agents)
    builder = StateGraph(WorkflowState)

    def make_node(index: int, agent: ChatAgent):
        async def node(state: WorkflowState) -> dict:
            result = await agent.run_conversation(
                _to_langchain(state["inputs"]), ctx=RequestContext(request_type="Workflow"),
            )
            logger.info("Workflow '%s': %s replied (%d chars)", name, agent.name, len(result.text))
            return {"replies": [_Reply(index, WorkflowMessage("agent", agent.name, result.text))]}
        return node

    for i, agent in enumerate(agents):
        node_name = _node_name(i, agent)
        builder.add_node(node_name, make_node(i, agent))
        builder.add_edge(START, node_name)
        builder.add_edge(node_name, END)

    return Workflow(name, "concurrent", agents, builder.compile())
