# agora/utils/forum_out.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agora.models.forum_model import Comment, Forum
from agora.models.user_model import User
from agora.schemas.forum_schemas import AuthorOut, CommentOut, ForumOut


def _iso(dt) -> str:
    return dt.isoformat() if dt is not None else ""


async def author_out(db: AsyncSession, author_id: Optional[int]) -> Optional[AuthorOut]:
    if not author_id:
        return None
    u = await db.get(User, author_id)
    return AuthorOut(id=u.id, username=u.username) if u else None


async def comment_to_out(
    c: Comment,
    db: AsyncSession,
    liked: bool = False,
    likes: Optional[int] = None,
) -> CommentOut:
    return CommentOut(
        id=c.id,
        forum_id=c.forum_id,
        content=c.content,
        author=await author_out(db, c.author_id),
        likes=int(c.likes or 0) if likes is None else likes,
        liked=bool(liked),
        created_at=_iso(c.created_at),
        updated_at=_iso(c.updated_at),
    )


async def forum_to_out(
    f: Forum,
    db: AsyncSession,
    liked: bool = False,
    likes: Optional[int] = None,
) -> ForumOut:
    # likes/liked override lets a toggle response carry the store's pair verbatim
    comment_count = (
        await db.execute(select(func.count(Comment.id)).where(Comment.forum_id == f.id))
    ).scalar_one()
    return ForumOut(
        id=f.id,
        title=f.title,
        description=f.description,
        tags=list(f.tags or []),
        author=await author_out(db, f.author_id),
        likes=int(f.likes or 0) if likes is None else likes,
        liked=bool(liked),
        comment_count=int(comment_count or 0),
        created_at=_iso(f.created_at),
        updated_at=_iso(f.updated_at),
    )
