# agora/deps/reactions.py
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agora.database import get_async_session
from agora.reactions.sql_store import SqlReactionStore


async def get_reaction_store(db: AsyncSession = Depends(get_async_session)) -> SqlReactionStore:
    """
    Reaction store bound to the request's session, so the viewer lookup and
    the toggle share one unit of work.
    """
    return SqlReactionStore(db)
