from __future__ import annotations

import logging
from typing import Iterable, Optional, Set

from sqlalchemy import case, delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from agora.errors import NotFound, Unauthorized
from agora.models.forum_model import Comment, Forum
from agora.models.like_model import CommentLike, ForumLike
from agora.models.user_model import User
from agora.reactions.base import LikeableKind, LikeState

logger = logging.getLogger(__name__)

# kind -> (likeable model, membership model, membership FK column)
_LIKEABLES = {
    LikeableKind.FORUM: (Forum, ForumLike, ForumLike.forum_id),
    LikeableKind.COMMENT: (Comment, CommentLike, CommentLike.comment_id),
}


class SqlReactionStore:
    """ReactionStore over the forum_likes / comment_likes tables."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _membership_id(self, user_id: int, kind: LikeableKind, likeable_id: int) -> Optional[int]:
        _, membership, target_col = _LIKEABLES[kind]
        return (
            await self.session.execute(
                select(membership.id)
                .where(membership.user_id == user_id, target_col == likeable_id)
                .limit(1)
            )
        ).scalar_one_or_none()

    async def toggle_like(self, user_id: Optional[int], kind: LikeableKind, likeable_id: int) -> LikeState:
        db = self.session
        target, membership, target_col = _LIKEABLES[kind]

        if user_id is None or await db.get(User, user_id) is None:
            raise Unauthorized()

        # row lock serializes toggles on this likeable (ignored by SQLite)
        found = (
            await db.execute(
                select(target.id).where(target.id == likeable_id).with_for_update()
            )
        ).scalar_one_or_none()
        if found is None:
            await db.rollback()
            raise NotFound(kind.value, likeable_id)

        existing = await self._membership_id(user_id, kind, likeable_id)
        if existing is not None:
            await db.execute(delete(membership).where(membership.id == existing))
            delta = case((target.likes > 0, target.likes - 1), else_=0)
            liked = False
        else:
            db.add(membership(user_id=user_id, **{target_col.key: likeable_id}))
            try:
                await db.flush()
            except IntegrityError:
                # same user's concurrent like got there first
                await db.rollback()
                logger.info("duplicate like by user %s on %s/%s treated as already liked",
                            user_id, kind.value, likeable_id)
                return await self.like_state(user_id, kind, likeable_id)
            delta = target.likes + 1
            liked = True

        # updated_at pinned so a like does not count as an edit
        await db.execute(
            update(target)
            .where(target.id == likeable_id)
            .values(likes=delta, updated_at=target.updated_at)
            .execution_options(synchronize_session=False)
        )
        likes = (
            await db.execute(select(target.likes).where(target.id == likeable_id))
        ).scalar_one()
        await db.commit()

        logger.debug("user %s %s %s/%s -> %s", user_id, "liked" if liked else "unliked",
                     kind.value, likeable_id, likes)
        return LikeState(likes=int(likes), liked=liked)

    async def like_state(self, user_id: Optional[int], kind: LikeableKind, likeable_id: int) -> LikeState:
        target, _, _ = _LIKEABLES[kind]
        likes = (
            await self.session.execute(select(target.likes).where(target.id == likeable_id))
        ).scalar_one_or_none()
        if likes is None:
            raise NotFound(kind.value, likeable_id)
        liked = likeable_id in await self.liked_ids(user_id, kind, [likeable_id])
        return LikeState(likes=int(likes), liked=liked)

    async def liked_ids(self, user_id: Optional[int], kind: LikeableKind, likeable_ids: Iterable[int]) -> Set[int]:
        ids = list(likeable_ids)
        if user_id is None or not ids:
            return set()
        _, membership, target_col = _LIKEABLES[kind]
        rows = await self.session.execute(
            select(target_col).where(membership.user_id == user_id, target_col.in_(ids))
        )
        return set(rows.scalars().all())
