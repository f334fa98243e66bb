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
from agora.schemas.forum_schemas import CommentOut, CreateCommentIn, UpdateCommentIn
from agora.utils.forum_out import comment_to_out
from agora.utils.token_utils import get_current_user, get_current_user_optional

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/comments", tags=["comments"])


async def _get_comment_or_404(db: AsyncSession, comment_id: int, refresh: bool = False) -> Comment:
    comment = await db.get(Comment, comment_id, populate_existing=refresh)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    return comment


@router.get("/forum/{forum_id}", response_model=List[CommentOut])
async def list_comments(
    forum_id: int,
    db: AsyncSession = Depends(get_async_session),
    viewer: Optional[User] = Depends(get_current_user_optional),
    store: ReactionStore = Depends(get_reaction_store),
):
    rows = (
        await db.execute(
            select(Comment)
            .where(Comment.forum_id == forum_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
        )
    ).scalars().all()
    liked = await store.liked_ids(getattr(viewer, "id", None), LikeableKind.COMMENT, [c.id for c in rows])
    return [await comment_to_out(c, db, liked=c.id in liked) for c in rows]


@router.post("/forum/{forum_id}", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_RATE_LIMIT)
async def create_comment(
    request: Request,
    forum_id: int,
    payload: CreateCommentIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    forum = await db.get(Forum, forum_id)
    if not forum:
        raise HTTPException(status_code=404, detail="Forum not found")

    comment = Comment(forum_id=forum_id, author_id=user.id, content=payload.content)
    db.add(comment)
    await db.commit()
    await db.refresh(comment)
    return await comment_to_out(comment, db)


@router.put("/{comment_id}", response_model=CommentOut)
@limiter.limit(WRITE_RATE_LIMIT)
async def update_comment(
    request: Request,
    comment_id: int,
    payload: UpdateCommentIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    store: ReactionStore = Depends(get_reaction_store),
):
    comment = await _get_comment_or_404(db, comment_id)
    if comment.author_id != user.id:
        raise HTTPException(status_code=403, detail="Not authorized to update this comment")

    comment.content = payload.content
    await db.commit()
    await db.refresh(comment)
    liked = comment_id in await store.liked_ids(user.id, LikeableKind.COMMENT, [comment_id])
    return await comment_to_out(comment, db, liked=liked)


@router.delete("/{comment_id}", status_code=204)
async def delete_comment(
    comment_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    comment = await _get_comment_or_404(db, comment_id)
    if comment.author_id != user.id:
        raise HTTPException(status_code=403, detail="Not authorized to delete this comment")

    await db.delete(comment)
    await db.commit()
    return Response(status_code=204)


@router.post("/{comment_id}/like", response_model=CommentOut)
@limiter.limit(LIKE_RATE_LIMIT)
async def toggle_comment_like(
    request: Request,
    comment_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    store: ReactionStore = Depends(get_reaction_store),
):
    state = await store.toggle_like(user.id, LikeableKind.COMMENT, comment_id)
    comment = await _get_comment_or_404(db, comment_id, refresh=True)
    return await comment_to_out(comment, db, liked=state.liked, likes=state.likes)
