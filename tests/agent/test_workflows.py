"""
Tests for the sequential and concurrent LangGraph workflows.
"""
import pytest
from langchain_core.messages import AIMessage, HumanMessage

from agent_labs.agent.chat_agent import ChatAgent
from agent_labs.agent.workflows import WorkflowMessage, build_concurrent, build_sequential
from agent_labs.domain.exceptions import WorkflowError
from tests.fakes import ScriptedChatModel, scripted


class FailingChatModel(ScriptedChatModel):
    def _generate(self, messages, stop=None, run_manager=None, **kwargs):
        raise RuntimeError("provider down")


def make_agent(agent_id: str, name: str, reply: str) -> ChatAgent:
    return ChatAgent(
        agent_id=agent_id,
        name=name,
        instructions=f"You are {name}.",
        llm=scripted(reply),
    )


class TestSequentialWorkflow:

    @pytest.mark.asyncio
    async def test_each_agent_sees_earlier_replies(self):
        summary = make_agent("summary", "Summary Agent", "Résumé de la réunion.")
        actions = make_agent("actions-extractor", "Actions Extractor", "- Envoyer le compte rendu")
        workflow = build_sequential("meeting", [summary, actions])

        messages = await workflow.run(["Transcription de la réunion"])

        assert messages == [
            WorkflowMessage("user", "user", "Transcription de la réunion"),
            WorkflowMessage("agent", "Summary Agent", "Résumé de la réunion."),
            WorkflowMessage("agent", "Actions Extractor", "- Envoyer le compte rendu"),
        ]
        prompt = actions._llm.prompts[0]
        assert isinstance(prompt[1], HumanMessage)
        assert isinstance(prompt[2], AIMessage)
        assert prompt[2].content == "Résumé de la réunion."
        assert prompt[2].name == "Summary_Agent"
        assert len(summary._llm.prompts[0]) == 2

    def test_no_agents(self):
        with pytest.raises(WorkflowError, match="no agents"):
            build_sequential("empty", [])


class TestConcurrentWorkflow:

    @pytest.mark.asyncio
    async def test_replies_in_agent_order(self):
        agents = [
            make_agent("return-exchange", "Return/Exchange Agent", "Échange demandé."),
            make_agent("refund", "Refund Agent", "Éligible au remboursement."),
            make_agent("follow-up", "Follow-up Agent", "Merci pour votre message."),
        ]
        workflow = build_concurrent("after-sales", agents)

        messages = await workflow.run(["Mon colis est arrivé abîmé."])

        assert workflow.kind == "concurrent"
        assert [m.author for m in messages] == [
            "user", "Return/Exchange Agent", "Refund Agent", "Follow-up Agent",
        ]
        assert messages[2].text == "Éligible au remboursement."
        for agent in agents:
            # Only the system prompt and the customer message
            assert [type(m) for m in agent._llm.prompts[0][1:]] == [HumanMessage]

    @pytest.mark.asyncio
    async def test_empty_input(self):
        workflow = build_concurrent("after-sales", [make_agent("refund", "Refund Agent", "ok")])
        with pytest.raises(WorkflowError, match="at least one input"):
            await workflow.run([])

    @pytest.mark.asyncio
    async def test_agent_failure_is_a_workflow_error(self):
        agent = make_agent("refund", "Refund Agent", "ok")
        agent._llm = FailingChatModel(messages=iter([]))
        workflow = build_concurrent("after-sales", [agent])
        with pytest.raises(WorkflowError, match="provider down"):
            await workflow.run(["hello"])
