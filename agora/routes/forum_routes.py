import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from agora.config import LIKE_RATE_LIMIT, WRITE_RATE_LIMIT
from agora.database import get_async_session
from agora.deps.reactions import get_reaction_store
from agora.limiter import limiter
from agora.models.forum_model import Comment, Forum
from agora.models.user_model import User
from agora.reactions.base import LikeableKind, ReactionStore
from agora.schemas.forum_schemas import (
    CreateForumIn, ForumDetailOut, ForumOut, UpdateForumIn,
)
from agora.utils.forum_out import comment_to_out, forum_to_out
from agora.utils.token_utils import get_current_user, get_current_user_optional

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/forums", tags=["forums"])


async def _get_forum_or_404(db: AsyncSession, forum_id: int, refresh: bool = False) -> Forum:
    forum = await db.get(Forum, forum_id, populate_existing=refresh)
    if not forum:
        raise HTTPException(status_code=404, detail="Forum not found")
    return forum


def _ensure_owner(forum: Forum, user: User, action: str) -> None:
    if forum.author_id != user.id:
        raise HTTPException(status_code=403, detail=f"Not authorized to {action} this forum")


# ------------------------------
# Routes
# ------------------------------
@router.get("", response_model=List[ForumOut])
async def list_forums(
    db: AsyncSession = Depends(get_async_session),
    viewer: Optional[User] = Depends(get_current_user_optional),
    store: ReactionStore = Depends(get_reaction_store),
):
    rows = (
        await db.execute(select(Forum).order_by(Forum.created_at.desc(), Forum.id.desc()))
    ).scalars().all()
    liked = await store.liked_ids(getattr(viewer, "id", None), LikeableKind.FORUM, [f.id for f in rows])
    return [await forum_to_out(f, db, liked=f.id in liked) for f in rows]


@router.get("/{forum_id}", response_model=ForumDetailOut)
async def get_forum(
    forum_id: int,
    db: AsyncSession = Depends(get_async_session),
    viewer: Optional[User] = Depends(get_current_user_optional),
    store: ReactionStore = Depends(get_reaction_store),
):
    forum = await _get_forum_or_404(db, forum_id)
    viewer_id = getattr(viewer, "id", None)

    comments = (
        await db.execute(
            select(Comment)
            .where(Comment.forum_id == forum_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
        )
    ).scalars().all()
    liked_comments = await store.liked_ids(viewer_id, LikeableKind.COMMENT, [c.id for c in comments])
    forum_liked = forum_id in await store.liked_ids(viewer_id, LikeableKind.FORUM, [forum_id])

    forum_out = await forum_to_out(forum, db, liked=forum_liked)
    return ForumDetailOut(
        **forum_out.model_dump(),
        comments=[await comment_to_out(c, db, liked=c.id in liked_comments) for c in comments],
    )


@router.post("", response_model=ForumOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_RATE_LIMIT)
async def create_forum(
    request: Request,
    payload: CreateForumIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    forum = Forum(
        title=payload.title.strip(),
        description=payload.description,
        tags=[t.strip() for t in payload.tags if t.strip()],
        author_id=user.id,
    )
    db.add(forum)
    await db.commit()
    await db.refresh(forum)
    logger.info("user %s created forum %s", user.id, forum.id)
    return await forum_to_out(forum, db)


@router.put("/{forum_id}", response_model=ForumOut)
@limiter.limit(WRITE_RATE_LIMIT)
async def update_forum(
    request: Request,
    forum_id: int,
    payload: UpdateForumIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    store: ReactionStore = Depends(get_reaction_store),
):
    forum = await _get_forum_or_404(db, forum_id)
    _ensure_owner(forum, user, "update")

    # Update only allowed fields
    if payload.title is not None:
        forum.title = payload.title.strip()
    if payload.description is not None:
        forum.description = payload.description
    if payload.tags is not None:
        forum.tags = [t.strip() for t in payload.tags if t.strip()]

    await db.commit()
    await db.refresh(forum)
    liked = forum_id in await store.liked_ids(user.id, LikeableKind.FORUM, [forum_id])
    return await forum_to_out(forum, db, liked=liked)


@router.delete("/{forum_id}", status_code=204)
async def delete_forum(
    forum_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    forum = await _get_forum_or_404(db, forum_id)
    _ensure_owner(forum, user, "delete")

    await db.delete(forum)  # cascades to comments + likes
    await db.commit()
    logger.info("user %s deleted forum %s", user.id, forum_id)
    return Response(status_code=204)


@router.post("/{forum_id}/like", response_model=ForumOut)
@limiter.limit(LIKE_RATE_LIMIT)
async def toggle_forum_like(
    request: Request,
    forum_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    store: ReactionStore = Depends(get_reaction_store),
):
    state = await store.toggle_like(user.id, LikeableKind.FORUM, forum_id)
    forum = await _get_forum_or_404(db, forum_id, refresh=True)
    return await forum_to_out(forum, db, liked=state.liked, likes=state.likes)
