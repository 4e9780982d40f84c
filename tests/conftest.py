"""Shared fixtures: temporary SQLite database, seeded orders, agent catalogue."""

import pytest
import pytest_asyncio

from agent_labs.domain.agent_config import AgentConfiguration
from agent_labs.infrastructure.persistence.connection import AsyncSQLiteConnection
from agent_labs.infrastructure.persistence.migrations import run_migrations
from agent_labs.infrastructure.persistence.order_repo import SQLiteOrderRepository, seed_orders
from tests.fakes import PROJECT_ROOT


@pytest_asyncio.fixture
async def connection(tmp_path):
    """A migrated, empty database in a temp directory."""
    conn = AsyncSQLiteConnection(str(tmp_path / "agents.db"))
    await run_migrations(conn)
    return conn


@pytest_asyncio.fixture
async def order_repo(connection):
    """Order repository seeded from data/orders.json."""
    repo = SQLiteOrderRepository(connection)
    await seed_orders(repo, PROJECT_ROOT / "data" / "orders.json")
    return repo


@pytest.fixture
def agent_configs():
    """Small catalogue: a plain agent, a structured one and an orchestrator."""
    entries = {
        "history": {
            "name": "History Agent",
            "description": "Answers history questions",
            "instructions": "You are a history expert.",
            "streaming": True,
            "memory": True,
        },
        "translation": {
            "name": "Translation Agent",
            "instructions": "Translate the text.",
            "structuredOutput": "TranslationResult",
        },
        "order": {
            "name": "Order Agent",
            "instructions": "Look up orders.",
            "tools": ["get_order_status"],
        },
        "customer-support": {
            "name": "Customer Support Agent",
            "instructions": "Route the request.",
            "tools": ["order_agent"],
            "memory": True,
        },
    }
    return {k: AgentConfiguration.from_dict(k, v) for k, v in entries.items()}
