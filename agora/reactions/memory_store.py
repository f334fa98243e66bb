from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, Optional, Set, Tuple

from agora.errors import NotFound, Unauthorized
from agora.reactions.base import LikeableKind, LikeState

logger = logging.getLogger(__name__)


class InMemoryReactionStore:
    """
    Process-local ReactionStore. State is lost on restart.

    Not used by the HTTP app, whose likeables live in SQL. It stands in for
    the server when exercising ReactionCache, and likeables must be
    registered with add_likeable first.
    """

    def __init__(self, known_users: Optional[Iterable[int]] = None):
        self._counts: Dict[Tuple[LikeableKind, int], int] = {}
        self._members: Set[Tuple[int, LikeableKind, int]] = set()
        self._users = set(known_users) if known_users is not None else None
        self._lock = asyncio.Lock()

    def add_likeable(self, kind: LikeableKind, likeable_id: int, likes: int = 0) -> None:
        self._counts[(kind, likeable_id)] = likes

    def remove_likeable(self, kind: LikeableKind, likeable_id: int) -> None:
        self._counts.pop((kind, likeable_id), None)
        self._members = {m for m in self._members if m[1:] != (kind, likeable_id)}

    def _check_user(self, user_id: Optional[int]) -> None:
        if user_id is None or (self._users is not None and user_id not in self._users):
            raise Unauthorized()

    def _check_item(self, kind: LikeableKind, likeable_id: int) -> None:
        if (kind, likeable_id) not in self._counts:
            raise NotFound(kind.value, likeable_id)

    async def toggle_like(self, user_id: Optional[int], kind: LikeableKind, likeable_id: int) -> LikeState:
        self._check_user(user_id)
        async with self._lock:
            self._check_item(kind, likeable_id)
            key = (kind, likeable_id)
            member = (user_id, kind, likeable_id)
            if member in self._members:
                self._members.discard(member)
                self._counts[key] = max(0, self._counts[key] - 1)
                liked = False
            else:
                self._members.add(member)
                self._counts[key] += 1
                liked = True
            logger.debug("user %s %s %s/%s -> %s", user_id, "liked" if liked else "unliked",
                         kind.value, likeable_id, self._counts[key])
            return LikeState(likes=self._counts[key], liked=liked)

    async def like_state(self, user_id: Optional[int], kind: LikeableKind, likeable_id: int) -> LikeState:
        self._check_item(kind, likeable_id)
        liked = user_id is not None and (user_id, kind, likeable_id) in self._members
        return LikeState(likes=self._counts[(kind, likeable_id)], liked=liked)

    async def liked_ids(self, user_id: Optional[int], kind: LikeableKind, likeable_ids: Iterable[int]) -> Set[int]:
        if user_id is None:
            return set()
        return {i for i in likeable_ids if (user_id, kind, i) in self._members}
