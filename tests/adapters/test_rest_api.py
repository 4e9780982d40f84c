"""
Tests for the front-end REST surface: agents, chat, approvals, SSE
stream, threads and context ids.
"""
import json

import pytest
from fastapi.testclient import TestClient

from agent_labs import __version__
from agent_labs.adapters.rest.app import app
from agent_labs.agent.schemas import TranslationResult
from agent_labs.application.services.context_ids import ContextIdSigner
from agent_labs.domain.exceptions import ConfigurationError
from tests.fakes import tool_call


def sse_events(text: str) -> list[dict]:
    return [json.loads(line[len("data: "):]) for line in text.splitlines() if line.startswith("data: ")]


class TestAgents:

    def test_list_agents(self, make_client):
        agents = make_client().get("/api/agents").json()

        by_id = {a["id"]: a for a in agents}
        assert list(by_id) == ["history", "translation", "order", "customer-support", "hr-assistant"]
        assert by_id["history"]["streaming"] is True
        assert by_id["customer-support"]["tools"] == ["order_agent"]

    def test_health(self, make_client):
        assert make_client().get("/health").json() == {"status": "ok", "version": __version__}


class TestChat:

    def test_chat(self, make_client):
        client = make_client("Napoléon est né en 1769.")

        response = client.post(
            "/api/agents/history/chat",
            json={"message": "Quand est né Napoléon ?", "contextId": "thread-1"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["agentId"] == "history"
        assert body["contextId"] == "thread-1"
        assert body["response"] == "Napoléon est né en 1769."
        assert body["pendingApprovals"] == []

    def test_generated_context_id(self, make_client):
        body = make_client("ok").post("/api/agents/history/chat", json={"message": "hi"}).json()
        assert len(body["contextId"]) == 32

    def test_structured_output(self, make_client):
        client = make_client(structured_response=TranslationResult(
            translated_text="Hello", source_language="French", target_language="English",
        ))

        body = client.post("/api/agents/translation/chat", json={"message": "Bonjour"}).json()

        assert body["structured"]["translated_text"] == "Hello"
        assert json.loads(body["response"])["target_language"] == "English"

    @pytest.mark.parametrize("message", ["", "   "])
    def test_empty_message(self, make_client, message):
        response = make_client("ok").post("/api/agents/history/chat", json={"message": message})
        assert response.status_code == 400
        assert response.json() == {"detail": "Message cannot be empty."}

    def test_unknown_agent(self, make_client):
        response = make_client("ok").post("/api/agents/nope/chat", json={"message": "hi"})
        assert response.status_code == 404
        assert "nope" in response.json()["detail"]

    def test_signed_context_required(self, make_client):
        signer = ContextIdSigner("k")
        client = make_client("ok", signer=signer, require_signed_context=True)

        rejected = client.post("/api/agents/history/chat", json={"message": "hi", "contextId": "bob|1"})
        accepted = client.post(
            "/api/agents/history/chat",
            json={"message": "hi", "contextId": "bob|1"},
            headers={"X-Context-Signature": signer.generate_signature("bob|1")},
        )

        assert rejected.status_code == 401
        assert accepted.status_code == 200


class TestStream:

    def test_stream_chunks_then_context_id(self, make_client):
        client = make_client("Napoleon was born in 1769.")

        response = client.post("/api/agents/history/stream", json={"message": "When?"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = sse_events(response.text)
        assert "".join(e["text"] for e in events[:-1]) == "Napoleon was born in 1769."
        context_id = events[-1]["contextId"]

        stored = client.get(f"/api/threads/{context_id}/messages").json()
        assert [m["role"] for m in stored["messages"]] == ["user", "agent"]
        assert stored["messages"][1]["messageText"] == "Napoleon was born in 1769."

    def test_agent_without_streaming(self, make_client):
        response = make_client("ok").post("/api/agents/translation/stream", json={"message": "hi"})
        assert response.status_code == 400


class TestApprovals:

    def test_nothing_pending(self, make_client):
        response = make_client("ok").post(
            "/api/agents/hr-assistant/approvals",
            json={"contextId": "ctx-1", "decisions": []},
        )
        assert response.status_code == 404

    def test_park_then_approve(self, make_client):
        client = make_client(
            tool_call("delete_employee_data", call_id="call_7", employee_id="E42"),
            "The data of E42 was deleted.",
        )

        parked = client.post(
            "/api/agents/hr-assistant/chat",
            json={"message": "Delete employee E42", "contextId": "hr-1"},
        ).json()

        assert parked["response"] == ""
        assert parked["pendingApprovals"] == [
            {"callId": "call_7", "toolName": "delete_employee_data", "arguments": {"employee_id": "E42"}}
        ]

        resumed = client.post(
            "/api/agents/hr-assistant/approvals",
            json={"contextId": "hr-1", "decisions": [{"callId": "call_7", "approved": True}]},
        ).json()

        assert resumed["response"] == "The data of E42 was deleted."
        assert resumed["pendingApprovals"] == []

    def test_unknown_call_id(self, make_client):
        client = make_client(tool_call("delete_employee_data", call_id="call_7", employee_id="E1"))
        client.post("/api/agents/hr-assistant/chat", json={"message": "Delete E1", "contextId": "hr-2"})

        response = client.post(
            "/api/agents/hr-assistant/approvals",
            json={"contextId": "hr-2", "decisions": [{"callId": "bogus", "approved": True}]},
        )

        assert response.status_code == 400


class TestThreads:

    def test_list_read_clear(self, make_client):
        client = make_client("Réponse")
        client.post("/api/agents/history/chat", json={"message": "Question", "contextId": "t-1"})

        threads = client.get("/api/threads").json()
        assert [(t["threadId"], t["messageCount"]) for t in threads] == [("t-1", 2)]

        messages = client.get("/api/threads/t-1/messages").json()
        assert messages["messageCount"] == 2
        assert [m["messageText"] for m in messages["messages"]] == ["Question", "Réponse"]

        assert client.delete("/api/threads/t-1").json() == {"threadId": "t-1", "deletedCount": 2}
        assert client.get("/api/threads/t-1/messages").status_code == 404

    def test_clear_unknown_thread(self, make_client):
        assert make_client().delete("/api/threads/ghost").status_code == 404

    def test_blank_thread_id(self, make_client):
        response = make_client().get("/api/threads/%20/messages")
        assert response.status_code == 400
        assert response.json() == {"detail": "Thread ID is required."}


class TestContextIds:

    def test_issue_signed_id(self, make_client):
        signer = ContextIdSigner("k")
        body = make_client(signer=signer).post("/api/context-ids", json={"username": "alice"}).json()

        assert body["contextId"].startswith("alice|")
        assert signer.validate_signature(body["contextId"], body["signature"])

    def test_blank_username(self, make_client):
        response = make_client(signer=ContextIdSigner("k")).post(
            "/api/context-ids", json={"username": "  "},
        )
        assert response.status_code == 400


class TestStartup:

    def test_signed_context_without_key_fails_startup(self, tmp_path, monkeypatch):
        monkeypatch.setenv("REQUIRE_SIGNED_CONTEXT", "true")
        monkeypatch.setenv("CONTEXT_ID_SIGNING_KEY", "")
        monkeypatch.setenv("DB_PATH", str(tmp_path / "startup.db"))

        with pytest.raises(ConfigurationError, match="CONTEXT_ID_SIGNING_KEY"):
            with TestClient(app):
                pass
