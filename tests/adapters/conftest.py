"""Fixtures for the HTTP adapters: the FastAPI app wired to test doubles."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from agent_labs.adapters.rest.app import app
from agent_labs.adapters.rest.dependencies import set_factory
from agent_labs.agent.agent_factory import AgentFactory
from agent_labs.agent.tools.registry import ToolRegistry
from agent_labs.agent.tools.sensitive import DeleteEmployeeDataTool
from agent_labs.application.services.thread_history import ThreadHistoryService
from agent_labs.domain.agent_config import AgentConfiguration
from agent_labs.infrastructure.persistence.chat_history_repo import (
    SQLiteChatMessageStore,
    SQLiteThreadRepository,
)
from agent_labs.infrastructure.persistence.connection import AsyncSQLiteConnection
from agent_labs.infrastructure.persistence.migrations import run_migrations
from tests.fakes import FakeServices, scripted


@pytest.fixture
def db(tmp_path):
    conn = AsyncSQLiteConnection(str(tmp_path / "api.db"))
    asyncio.run(run_migrations(conn))
    return conn


@pytest.fixture
def api_configs(agent_configs):
    configs = dict(agent_configs)
    configs["hr-assistant"] = AgentConfiguration.from_dict("hr-assistant", {
        "name": "HR Assistant",
        "instructions": "Manage employee records.",
        "tools": ["delete_employee_data"],
    })
    return configs


@pytest.fixture
def make_client(api_configs, db):
    """Build a TestClient whose agents all replay the given replies.

    The lifespan is not run: the app is wired to FakeServices instead of
    a real ServiceFactory.
    """
    def _make(*replies, structured_response=None, signer=None, require_signed_context=False):
        agent_factory = AgentFactory(
            api_configs,
            lambda **kwargs: scripted(*replies, structured_response=structured_response),
            tools=ToolRegistry([DeleteEmployeeDataTool()]),
            message_store=SQLiteChatMessageStore(db),
        )
        set_factory(FakeServices(
            agent_factory=agent_factory,
            thread_service=ThreadHistoryService(SQLiteThreadRepository(db)),
            signer=signer,
            require_signed_context=require_signed_context,
        ))
        return TestClient(app)

    yield _make
    set_factory(None)
