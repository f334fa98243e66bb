"""Tests for the optimistic client-side like cache."""

import asyncio

import pytest

from agora.client.reaction_cache import ItemState, Phase, ReactionCache
from agora.errors import NotFound, ToggleInFlight, Transient, Unauthorized
from agora.reactions.base import LikeableKind
from agora.reactions.memory_store import InMemoryReactionStore

FORUM = LikeableKind.FORUM


class FakeServer:
    """Toggle endpoint backed by an in-memory store, with scripted failures."""

    def __init__(self, user_id: int = 1):
        self.store = InMemoryReactionStore()
        self.user_id = user_id
        self.calls = 0
        self.failures = []
        self.gate = None

    async def toggle(self, kind, item_id):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.failures:
            raise self.failures.pop(0)
        state = await self.store.toggle_like(self.user_id, kind, item_id)
        return {"id": item_id, "likes": state.likes, "liked": state.liked}


@pytest.fixture
def server():
    s = FakeServer()
    s.store.add_likeable(FORUM, 1, likes=5)
    return s


@pytest.fixture
def cache(server):
    c = ReactionCache(server.toggle)
    c.seed(FORUM, 1, likes=5, liked=False)
    return c


class TestStateMachine:
    def test_optimistic_step_is_one_unit_and_a_flip(self, cache):
        settled = cache.get(FORUM, 1)
        optimistic = cache.apply_optimistic_toggle(FORUM, 1)
        assert optimistic.phase is Phase.OPTIMISTIC
        assert optimistic.likes - settled.likes == 1
        assert optimistic.liked is not settled.liked
        assert optimistic.origin == settled

    def test_optimistic_unlike(self, cache):
        cache.seed(FORUM, 1, likes=6, liked=True)
        optimistic = cache.apply_optimistic_toggle(FORUM, 1)
        assert (optimistic.likes, optimistic.liked) == (5, False)

    def test_second_optimistic_step_rejected(self, cache):
        cache.apply_optimistic_toggle(FORUM, 1)
        with pytest.raises(ToggleInFlight):
            cache.apply_optimistic_toggle(FORUM, 1)

    def test_unknown_item(self, cache):
        with pytest.raises(KeyError):
            cache.apply_optimistic_toggle(FORUM, 2)

    def test_server_value_wins(self, cache):
        cache.apply_optimistic_toggle(FORUM, 1)
        # someone else liked meanwhile; the reply is taken as-is
        state = cache.reconcile(FORUM, 1, result={"likes": 9, "liked": True})
        assert state == ItemState(likes=9, liked=True)
        assert state.settled

    def test_error_restores_origin(self, cache):
        cache.apply_optimistic_toggle(FORUM, 1)
        state = cache.reconcile(FORUM, 1, error=Unauthorized())
        assert state == ItemState(likes=5, liked=False)

    def test_not_found_drops_item(self, cache):
        cache.apply_optimistic_toggle(FORUM, 1)
        assert cache.reconcile(FORUM, 1, error=NotFound("forums", 1)) is None
        assert cache.get(FORUM, 1) is None

    def test_seed_during_flight_moves_rollback_target(self, cache):
        cache.apply_optimistic_toggle(FORUM, 1)
        cache.seed(FORUM, 1, likes=8, liked=False)
        assert cache.get(FORUM, 1).phase is Phase.OPTIMISTIC
        assert cache.reconcile(FORUM, 1, error=Transient()) == ItemState(likes=8, liked=False)

    def test_seed_from_payload(self, cache):
        state = cache.seed_from(LikeableKind.COMMENT, {"id": 3, "likes": 2, "liked": True, "content": "x"})
        assert state == ItemState(likes=2, liked=True)
        assert (LikeableKind.COMMENT, 3) in cache


class TestToggle:
    async def test_like_then_unlike_scenario(self, cache, server):
        server.gate = asyncio.Event()
        pending = asyncio.create_task(cache.toggle(FORUM, 1))
        await asyncio.sleep(0)
        shown = cache.get(FORUM, 1)
        assert (shown.likes, shown.liked, shown.phase) == (6, True, Phase.OPTIMISTIC)

        server.gate.set()
        settled = await pending
        assert settled == ItemState(likes=6, liked=True)

        server.gate = None
        settled = await cache.toggle(FORUM, 1)
        assert settled == ItemState(likes=5, liked=False)
        assert server.calls == 2

    async def test_failure_rolls_back_and_raises(self, cache, server):
        server.failures = [Unauthorized("token expired")]
        with pytest.raises(Unauthorized):
            await cache.toggle(FORUM, 1)
        assert cache.get(FORUM, 1) == ItemState(likes=5, liked=False)
        # no retry for auth failures
        assert server.calls == 1

    async def test_transient_retried_once(self, cache, server):
        server.failures = [Transient("connection reset")]
        state = await cache.toggle(FORUM, 1)
        assert state == ItemState(likes=6, liked=True)
        assert server.calls == 2

    async def test_transient_twice_rolls_back(self, cache, server):
        server.failures = [Transient("down"), Transient("still down")]
        with pytest.raises(Transient):
            await cache.toggle(FORUM, 1)
        assert cache.get(FORUM, 1) == ItemState(likes=5, liked=False)
        assert (await server.store.like_state(1, FORUM, 1)).likes == 5

    async def test_not_found_drops_item(self, cache, server):
        server.store.remove_likeable(FORUM, 1)
        with pytest.raises(NotFound):
            await cache.toggle(FORUM, 1)
        assert cache.get(FORUM, 1) is None
        assert server.calls == 1

    async def test_double_click_is_queued(self, cache, server):
        server.gate = asyncio.Event()
        first = asyncio.create_task(cache.toggle(FORUM, 1))
        second = asyncio.create_task(cache.toggle(FORUM, 1))
        await asyncio.sleep(0)

        # only the first request is on the wire
        assert server.calls == 1
        assert cache.get(FORUM, 1).likes == 6

        server.gate.set()
        assert await first == ItemState(likes=6, liked=True)
        assert await second == ItemState(likes=5, liked=False)
        assert server.calls == 2
        assert (await server.store.like_state(1, FORUM, 1)).likes == 5

    async def test_cancelled_toggle_rolls_back(self, cache, server):
        server.gate = asyncio.Event()
        pending = asyncio.create_task(cache.toggle(FORUM, 1))
        await asyncio.sleep(0)
        assert cache.get(FORUM, 1).phase is Phase.OPTIMISTIC

        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending
        assert cache.get(FORUM, 1) == ItemState(likes=5, liked=False)

        # the item is usable again
        server.gate = None
        assert await cache.toggle(FORUM, 1) == ItemState(likes=6, liked=True)


class TestLocks:
    async def test_lock_released_when_item_dropped(self, cache, server):
        server.store.remove_likeable(FORUM, 1)
        with pytest.raises(NotFound):
            await cache.toggle(FORUM, 1)
        assert not cache._locks

    async def test_unknown_item_leaves_no_lock(self, cache):
        with pytest.raises(KeyError):
            await cache.toggle(FORUM, 2)
        assert (FORUM, 2) not in cache._locks

    async def test_forget_drops_lock(self, cache):
        await cache.toggle(FORUM, 1)
        assert (FORUM, 1) in cache._locks
        cache.forget(FORUM, 1)
        assert not cache._locks

