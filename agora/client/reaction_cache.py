"""
Client-side like state with optimistic updates.

Each cached item is either Settled (matches the last server response) or
Optimistic (a toggle was applied locally and its request is in flight):

    Settled(n, liked) --toggle--> Optimistic(n +/- 1, not liked)
    Optimistic --server reply--> Settled(server likes, server liked)
    Optimistic --failure-------> Settled(n, liked)     (rolled back)
    Optimistic --NotFound------> dropped from the cache

The server reply replaces the cached pair outright; the local prediction is
never merged with it. Nothing here re-fetches the parent forum after a
toggle.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple

from agora.errors import NotFound, ToggleInFlight, Transient
from agora.reactions.base import LikeableKind

logger = logging.getLogger(__name__)

ToggleRequest = Callable[[LikeableKind, int], Awaitable[Mapping[str, Any]]]
ItemKey = Tuple[LikeableKind, int]


class Phase(str, Enum):
    SETTLED = "settled"
    OPTIMISTIC = "optimistic"


@dataclass(frozen=True)
class ItemState:
    likes: int
    liked: bool
    phase: Phase = Phase.SETTLED
    # pre-toggle settled state, kept while optimistic for rollback
    origin: Optional["ItemState"] = None

    @property
    def settled(self) -> bool:
        return self.phase is Phase.SETTLED


class ReactionCache:
    """
    Optimistic like cache for the current user.

    `toggle_request` performs the network call, usually
    ForumApiClient.toggle_like. One toggle per item is in flight at a time;
    `toggle()` queues a second one behind the first.
    """

    def __init__(self, toggle_request: ToggleRequest, retries: int = 1):
        self._toggle_request = toggle_request
        self._retries = retries
        self._items: Dict[ItemKey, ItemState] = {}
        self._locks: Dict[ItemKey, asyncio.Lock] = {}
        # toggles holding or waiting on each lock
        self._lock_users: Dict[ItemKey, int] = {}

    @staticmethod
    def _key(kind: LikeableKind, item_id: int) -> ItemKey:
        return LikeableKind(kind), int(item_id)

    def get(self, kind: LikeableKind, item_id: int) -> Optional[ItemState]:
        return self._items.get(self._key(kind, item_id))

    def __contains__(self, key: ItemKey) -> bool:
        return self._key(*key) in self._items

    def seed(self, kind: LikeableKind, item_id: int, likes: int, liked: bool) -> ItemState:
        """Record server-read state for an item."""
        key = self._key(kind, item_id)
        fresh = ItemState(likes=int(likes), liked=bool(liked))
        current = self._items.get(key)
        if current is not None and not current.settled:
            # a toggle is pending; the read only moves its rollback target
            self._items[key] = replace(current, origin=fresh)
            return self._items[key]
        self._items[key] = fresh
        return fresh

    def seed_from(self, kind: LikeableKind, payload: Mapping[str, Any]) -> ItemState:
        return self.seed(kind, payload["id"], payload.get("likes", 0), payload.get("liked", False))

    def forget(self, kind: LikeableKind, item_id: int) -> None:
        key = self._key(kind, item_id)
        self._items.pop(key, None)
        self._drop_lock_if_idle(key)

    def _drop_lock_if_idle(self, key: ItemKey) -> None:
        if key not in self._items and not self._lock_users.get(key):
            self._locks.pop(key, None)

    def apply_optimistic_toggle(self, kind: LikeableKind, item_id: int) -> ItemState:
        key = self._key(kind, item_id)
        current = self._items[key]
        if not current.settled:
            raise ToggleInFlight(f"like toggle already pending for {key[0].value}/{key[1]}")
        liked = not current.liked
        optimistic = ItemState(
            likes=current.likes + (1 if liked else -1),
            liked=liked,
            phase=Phase.OPTIMISTIC,
            origin=current,
        )
        self._items[key] = optimistic
        return optimistic

    def reconcile(
        self,
        kind: LikeableKind,
        item_id: int,
        result: Optional[Mapping[str, Any]] = None,
        error: Optional[BaseException] = None,
    ) -> Optional[ItemState]:
        """
        Settle an item from a toggle outcome.

        On success the server pair replaces whatever is cached. On NotFound
        the item is dropped and None returned. Any other error restores the
        pre-toggle state.
        """
        key = self._key(kind, item_id)
        if error is None:
            if result is None:
                raise ValueError("reconcile needs a result or an error")
            settled = ItemState(likes=int(result["likes"]), liked=bool(result["liked"]))
            self._items[key] = settled
            return settled

        if isinstance(error, NotFound):
            self._items.pop(key, None)
            return None

        current = self._items.get(key)
        if current is None:
            return None
        if not current.settled and current.origin is not None:
            self._items[key] = current.origin
        return self._items[key]

    async def _send(self, kind: LikeableKind, item_id: int) -> Mapping[str, Any]:
        attempt = 0
        while True:
            try:
                return await self._toggle_request(kind, item_id)
            except Transient as e:
                if attempt >= self._retries:
                    raise
                attempt += 1
                logger.info("retrying like toggle on %s/%s after: %s", kind.value, item_id, e)

    async def toggle(self, kind: LikeableKind, item_id: int) -> ItemState:
        """
        Toggle the current user's like with optimistic feedback.

        Returns the settled state. Failures are re-raised after rollback so
        the caller can surface them.
        """
        key = self._key(kind, item_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                self.apply_optimistic_toggle(*key)
                try:
                    result = await self._send(*key)
                except BaseException as e:
                    # includes cancellation; Optimistic must not outlive the request
                    self.reconcile(*key, error=e)
                    raise
                return self.reconcile(*key, result=result)
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
            self._drop_lock_if_idle(key)
