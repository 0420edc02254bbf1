"""Tests for the in-memory conversation store."""

import asyncio

import pytest

from llm.conversation_store import (
    ConversationStore,
    ConversationTurn,
    InMemoryConversationStore,
    Role,
)


def run(coro):
    return asyncio.run(coro)


class TestInMemoryConversationStore:
    def test_satisfies_protocol(self, store):
        assert isinstance(store, ConversationStore)

    def test_unknown_user_has_empty_history(self, store):
        assert run(store.get_history("nobody")) == []

    def test_append_keeps_order(self, store):
        async def scenario():
            for i in range(3):
                await store.append("u1", ConversationTurn(role=Role.USER, text=f"m{i}"))
            return await store.get_history("u1")

        assert [t.text for t in run(scenario())] == ["m0", "m1", "m2"]

    def test_recent_returns_last_turns(self, store):
        async def scenario():
            for i in range(15):
                await store.append("u1", ConversationTurn(role=Role.USER, text=str(i)))
            return await store.recent("u1", 10), await store.get_history("u1")

        recent, full = run(scenario())
        assert [t.text for t in recent] == [str(i) for i in range(5, 15)]
        assert len(full) == 15

    def test_history_is_a_copy(self, store):
        async def scenario():
            await store.append("u1", ConversationTurn(role=Role.USER, text="hi"))
            history = await store.get_history("u1")
            history.clear()
            return await store.get_history("u1")

        assert len(run(scenario())) == 1

    def test_turns_are_immutable(self):
        turn = ConversationTurn(role=Role.USER, text="hi")
        with pytest.raises(AttributeError):
            turn.text = "changed"

    def test_clear_removes_user(self, store):
        async def scenario():
            await store.append("u1", ConversationTurn(role=Role.USER, text="hi"))
            await store.append("u2", ConversationTurn(role=Role.USER, text="hey"))
            await store.clear("u1")
            return await store.get_history("u1"), store.user_count()

        history, users = run(scenario())
        assert history == []
        assert users == 1

    def test_concurrent_appends_are_all_kept(self):
        store = InMemoryConversationStore()

        async def writer(n):
            for i in range(20):
                await store.append("shared", ConversationTurn(role=Role.USER, text=f"{n}-{i}"))
                await asyncio.sleep(0)

        async def scenario():
            await asyncio.gather(*(writer(n) for n in range(5)))
            return await store.get_history("shared")

        history = run(scenario())
        assert len(history) == 100
        for n in range(5):
            mine = [t.text for t in history if t.text.startswith(f"{n}-")]
            assert mine == [f"{n}-{i}" for i in range(20)]

    def test_to_dict_shape(self):
        turn = ConversationTurn(role=Role.ASSISTANT, text="done", tool_result={"tool": "x"})
        data = turn.to_dict()
        assert data["role"] == "assistant"
        assert data["toolResult"] == {"tool": "x"}
        assert data["truncated"] is False
        assert data["timestamp"]
