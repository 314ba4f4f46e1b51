"""Tests for the in-memory session store and per-chat locking."""

import asyncio

import pytest

from commerce_bot.schemas.session_schema import ConversationStage

from tests.conftest import make_session


class TestGetPutDelete:
    def test_unseen_chat_is_none(self, store):
        assert store.get("nobody") is None

    def test_put_then_get(self, store):
        store.put("chat-1", make_session(product_type="sports"))
        assert store.get("chat-1").product_type == "sports"

    def test_get_returns_a_copy(self, store):
        store.put("chat-1", make_session(product_type="sports"))
        copy = store.get("chat-1")
        copy.product_type = "formal"
        assert store.get("chat-1").product_type == "sports"

    def test_put_stores_a_copy(self, store):
        session = make_session()
        store.put("chat-1", session)
        session.stage = ConversationStage.GET_SIZE
        assert store.get("chat-1").stage == ConversationStage.FOOTWEAR_TYPE

    def test_put_under_wrong_key_rejected(self, store):
        with pytest.raises(ValueError):
            store.put("chat-2", make_session(chat_id="chat-1"))

    def test_delete(self, store):
        store.put("chat-1", make_session())
        store.delete("chat-1")
        assert "chat-1" not in store
        assert len(store) == 0

    def test_delete_missing_is_noop(self, store):
        store.delete("nobody")


class TestWithLock:
    @pytest.mark.asyncio
    async def test_returns_function_result(self, store):
        async def work():
            return 42

        assert await store.with_lock("chat-1", work) == 42

    @pytest.mark.asyncio
    async def test_same_chat_is_serialised_in_arrival_order(self, store):
        events: list[str] = []

        def make_job(name: str, delay: float):
            async def job():
                events.append(f"{name}-start")
                await asyncio.sleep(delay)
                events.append(f"{name}-end")
            return job

        await asyncio.gather(
            store.with_lock("chat-1", make_job("a", 0.05)),
            store.with_lock("chat-1", make_job("b", 0.0)),
        )
        assert events == ["a-start", "a-end", "b-start", "b-end"]

    @pytest.mark.asyncio
    async def test_different_chats_run_concurrently(self, store):
        release = asyncio.Event()
        events: list[str] = []

        async def slow():
            events.append("slow-start")
            await release.wait()
            events.append("slow-end")

        async def fast():
            events.append("fast")
            release.set()

        await asyncio.wait_for(
            asyncio.gather(store.with_lock("chat-1", slow), store.with_lock("chat-2", fast)),
            timeout=1.0,
        )
        assert events == ["slow-start", "fast", "slow-end"]

    @pytest.mark.asyncio
    async def test_locks_released_after_use(self, store):
        async def work():
            assert store.active_locks() == 1

        await store.with_lock("chat-1", work)
        assert store.active_locks() == 0

    @pytest.mark.asyncio
    async def test_lock_released_when_function_raises(self, store):
        async def boom():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await store.with_lock("chat-1", boom)
        assert store.active_locks() == 0
