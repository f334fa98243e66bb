from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Protocol, Set


class LikeableKind(str, Enum):
    # values double as the URL segment: POST /api/<kind>/{id}/like
    FORUM = "forums"
    COMMENT = "comments"


@dataclass(frozen=True)
class LikeState:
    likes: int
    liked: bool


class ReactionStore(Protocol):
    """
    Persistence strategy behind the like toggle.

    Implementations own the membership set and the denormalized counter and
    must make the membership test, the insert/delete and the counter change
    one atomic unit per (user, likeable).
    """

    async def toggle_like(self, user_id: Optional[int], kind: LikeableKind, likeable_id: int) -> LikeState:
        """
        Flip the user's like on the item and return the authoritative pair.

        Raises Unauthorized for an unknown principal and NotFound for an
        unknown likeable. Unlike floors the counter at zero.
        """
        ...

    async def like_state(self, user_id: Optional[int], kind: LikeableKind, likeable_id: int) -> LikeState:
        ...

    async def liked_ids(self, user_id: Optional[int], kind: LikeableKind, likeable_ids: Iterable[int]) -> Set[int]:
        ...
