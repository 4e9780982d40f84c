"""
Tests for the SQLite conversation store, thread, order and user memory
repositories.
"""
import json

import pytest
import pytest_asyncio
from langchain_core.messages import AIMessage, HumanMessage

from agent_labs.domain.entities import UserMemory
from agent_labs.domain.exceptions import RepositoryError
from agent_labs.infrastructure.persistence.chat_history_repo import (
    SQLiteChatMessageStore,
    SQLiteThreadRepository,
)
from agent_labs.infrastructure.persistence.order_repo import SQLiteOrderRepository, seed_orders
from agent_labs.infrastructure.persistence.user_memory_repo import SQLiteUserMemoryRepository
from tests.fakes import PROJECT_ROOT


class FixedClock:
    """Always returns the same millisecond."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now


class TestChatMessageStore:

    @pytest.mark.asyncio
    async def test_append_generates_thread_id(self, connection):
        store = SQLiteChatMessageStore(connection)
        thread_id = await store.append(None, [HumanMessage(content="hi")])
        assert thread_id
        assert [m.content for m in await store.get_recent(thread_id)] == ["hi"]

    @pytest.mark.asyncio
    async def test_recent_window_oldest_first(self, connection):
        store = SQLiteChatMessageStore(connection, clock=FixedClock())
        for turn in range(3):
            await store.append("t1", [
                HumanMessage(content=f"question {turn}"),
                AIMessage(content=f"answer {turn}"),
            ])

        recent = await store.get_recent("t1", limit=4)

        assert [m.content for m in recent] == ["question 1", "answer 1", "question 2", "answer 2"]
        assert [type(m) for m in recent] == [HumanMessage, AIMessage, HumanMessage, AIMessage]

    @pytest.mark.asyncio
    async def test_same_message_id_is_an_upsert(self, connection):
        store = SQLiteChatMessageStore(connection)
        await store.append("t1", [HumanMessage(content="draft", id="m1")])
        await store.append("t1", [HumanMessage(content="final", id="m1")])

        messages = await SQLiteThreadRepository(connection).get_messages("t1")

        assert len(messages) == 1
        assert messages[0].key == "t1m1"
        assert messages[0].message_text == "final"

    @pytest.mark.asyncio
    async def test_unknown_thread_is_empty(self, connection):
        assert await SQLiteChatMessageStore(connection).get_recent("nope") == []


class TestThreadRepository:

    @pytest_asyncio.fixture
    async def repos(self, connection):
        return SQLiteChatMessageStore(connection), SQLiteThreadRepository(connection)

    @pytest.mark.asyncio
    async def test_messages_roles_and_serialization(self, repos):
        store, threads = repos
        await store.append("t1", [HumanMessage(content="Bonjour"), AIMessage(content="Salut")])

        messages = await threads.get_messages("t1")

        assert [m.role for m in messages] == ["user", "agent"]
        assert [m.message_text for m in messages] == ["Bonjour", "Salut"]
        assert messages[0].timestamp < messages[1].timestamp
        assert json.loads(messages[0].serialized_message)["type"] == "human"

    @pytest.mark.asyncio
    async def test_list_and_clear(self, repos):
        store, threads = repos
        await store.append("t1", [HumanMessage(content="a"), AIMessage(content="b")])
        await store.append("t2", [HumanMessage(content="c")])

        summaries = {s.thread_id: s.message_count for s in await threads.list_threads()}
        assert summaries == {"t1": 2, "t2": 1}

        assert await threads.clear("t1") == 2
        assert await threads.clear("t1") == 0
        assert await threads.get_messages("t1") == []

    @pytest.mark.asyncio
    async def test_blank_thread_id(self, repos):
        _, threads = repos
        with pytest.raises(ValueError):
            await threads.get_messages(" ")


class TestOrderRepository:

    @pytest.mark.asyncio
    async def test_order_with_items(self, order_repo):
        order = await order_repo.get_order_by_id(" ord-2026-003 ")

        assert order.order_id == "ORD-2026-003"
        assert order.customer == "Lucas Martin"
        assert [i.product_name for i in order.items] == ["Machine à café expresso", "Détartrant"]
        assert order.total_amount == 268.5
        assert order.shipping_address.city == "Lyon"

    @pytest.mark.asyncio
    async def test_missing_order(self, order_repo):
        assert await order_repo.get_order_by_id("ORD-0000-000") is None

    @pytest.mark.asyncio
    async def test_status(self, order_repo):
        status = await order_repo.get_order_status_by_id(5)
        assert status.code == "CANCELLED"
        assert status.is_final
        assert await order_repo.get_order_status_by_id(99) is None

    @pytest.mark.asyncio
    async def test_orders_by_customer_newest_first(self, order_repo):
        orders = await order_repo.get_orders_by_customer("MARIE DUPONT")
        assert [o.order_id for o in orders] == ["ORD-2026-001", "ORD-2026-002"]

    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, connection):
        repo = SQLiteOrderRepository(connection)
        orders_file = PROJECT_ROOT / "data" / "orders.json"

        assert await seed_orders(repo, orders_file) == 5
        assert await seed_orders(repo, orders_file) == 0
        assert await repo.count() == 5

    @pytest.mark.asyncio
    async def test_seed_missing_file(self, connection, tmp_path):
        repo = SQLiteOrderRepository(connection)
        assert await seed_orders(repo, tmp_path / "missing.json") == 0

    @pytest.mark.asyncio
    async def test_seed_invalid_file(self, connection, tmp_path):
        seed_file = tmp_path / "orders.json"
        seed_file.write_text(json.dumps({"orders": [{"orderId": "ORD-1"}]}), encoding="utf-8")
        repo = SQLiteOrderRepository(connection)

        with pytest.raises(RepositoryError, match="Invalid order seed file"):
            await seed_orders(repo, seed_file)
        assert await repo.count() == 0


class TestUserMemoryRepository:

    @pytest.mark.asyncio
    async def test_add_and_get_per_user(self, connection):
        repo = SQLiteUserMemoryRepository(connection)

        added = await repo.add_memories([
            UserMemory(user_id="alice", memory="Is called Alice"),
            UserMemory(user_id="alice", memory="Lives in Lyon"),
            UserMemory(user_id="bob", memory="Is vegetarian"),
        ])

        memories = await repo.get_memories("alice")
        assert added == 3
        assert [m.memory for m in memories] == ["Is called Alice", "Lives in Lyon"]
        assert all(m.id is not None and m.created_at is not None for m in memories)

    @pytest.mark.asyncio
    async def test_nothing_to_add(self, connection):
        repo = SQLiteUserMemoryRepository(connection)
        assert await repo.add_memories([]) == 0
        assert await repo.get_memories("alice") == []

    @pytest.mark.asyncio
    async def test_delete_only_that_user(self, connection):
        repo = SQLiteUserMemoryRepository(connection)
        await repo.add_memories([
            UserMemory(user_id="alice", memory="Is called Alice"),
            UserMemory(user_id="bob", memory="Is vegetarian"),
        ])

        assert await repo.delete_memories("alice") == 1
        assert await repo.get_memories("alice") == []
        assert [m.memory for m in await repo.get_memories("bob")] == ["Is vegetarian"]

    @pytest.mark.asyncio
    async def test_blank_user_id(self, connection):
        with pytest.raises(ValueError):
            await SQLiteUserMemoryRepository(connection).delete_memories("  ")
