"""
Tests for the Redis-backed conversation store.
"""

import pytest

from juno.domains.planner.state import ConversationBusyError, start_conversation


class TestConversationStore:
    """Tests for saving, loading and deleting conversations."""

    @pytest.mark.asyncio
    async def test_save_and_get_round_trip(self, store, fake_redis):
        """A saved conversation is stored with the configured TTL."""
        state = start_conversation()
        await store.save(state)

        loaded = await store.get(state.id)
        assert loaded == state
        assert fake_redis.expiry[f"planner:conversation:{state.id}"] == 3600

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        """Unknown ids return None."""
        assert await store.get("missing") is None

    @pytest.mark.asyncio
    async def test_delete_removes_state_and_marker(self, store, fake_redis):
        """Delete drops both the state and any pending marker."""
        state = start_conversation()
        await store.save(state)
        fake_redis.data[f"planner:pending:{state.id}"] = "token"

        await store.delete(state.id)
        assert fake_redis.data == {}


class TestPendingMarker:
    """Tests for the one-message-at-a-time guard."""

    @pytest.mark.asyncio
    async def test_second_holder_is_rejected(self, store):
        """A conversation cannot be held twice."""
        async with store.pending("abc"):
            with pytest.raises(ConversationBusyError):
                async with store.pending("abc"):
                    pass

    @pytest.mark.asyncio
    async def test_marker_released_after_use(self, store, fake_redis):
        """The marker is removed when processing finishes, even on error."""
        with pytest.raises(RuntimeError):
            async with store.pending("abc"):
                assert "planner:pending:abc" in fake_redis.data
                raise RuntimeError("boom")
        assert "planner:pending:abc" not in fake_redis.data

        async with store.pending("abc"):
            pass

    @pytest.mark.asyncio
    async def test_replaced_marker_is_left_alone(self, store, fake_redis):
        """A marker taken over after a reset is not released by the old holder."""
        async with store.pending("abc"):
            await store.clear_pending("abc")
            fake_redis.data["planner:pending:abc"] = "newer"
        assert fake_redis.data["planner:pending:abc"] == "newer"
