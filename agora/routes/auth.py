import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from passlib.hash import bcrypt
from fastapi.responses import JSONResponse

from agora.config import AUTH_RATE_LIMIT
from agora.database import get_async_session
from agora.limiter import limiter
from agora.models.user_model import User
from agora.schemas.user_schemas import UserCreate, UserOut, UserLogin, AuthResponse
from agora.utils.token_utils import create_access_token, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def _user_out(user: User) -> UserOut:
    return UserOut(id=user.id, username=user.username, email=user.email)


_CONFLICT_DETAIL = "User with this email or username already exists"


async def _find_conflict(db: AsyncSession, username: str, email: str):
    # username OR email conflict in a single round-trip
    return (
        await db.execute(
            select(User.id).where(
                (User.username == username) | (func.lower(User.email) == email)
            ).limit(1)
        )
    ).scalar_one_or_none()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_RATE_LIMIT)
async def register(request: Request, payload: UserCreate, db: AsyncSession = Depends(get_async_session)):
    username_norm = payload.username.strip()
    email_norm = str(payload.email).strip().lower()
    if not username_norm:
        raise HTTPException(status_code=400, detail="Username is required")

    if await _find_conflict(db, username_norm, email_norm) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=_CONFLICT_DETAIL)

    user = User(
        username=username_norm,
        email=email_norm,
        password=bcrypt.hash(payload.password),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # a concurrent registration took the name or email after the check
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=_CONFLICT_DETAIL)
    await db.refresh(user)
    logger.info("registered user %s (%s)", user.id, user.username)

    return AuthResponse(token=create_access_token(user), user=_user_out(user))


@router.post("/login", response_model=AuthResponse)
@limiter.limit(AUTH_RATE_LIMIT)
async def login(request: Request, payload: UserLogin, db: AsyncSession = Depends(get_async_session)):
    email_norm = str(payload.email).strip().lower()
    db_user = (
        await db.execute(select(User).where(func.lower(User.email) == email_norm))
    ).scalar_one_or_none()

    if not db_user or not bcrypt.verify(payload.password, db_user.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    try:
        token = create_access_token(db_user)
    except RuntimeError as e:
        logger.error("token creation failed for user %s: %s", db_user.id, e)
        raise HTTPException(status_code=500, detail="Token creation failed")

    return JSONResponse({
        "token": token,
        "user": _user_out(db_user).model_dump(),
    })


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)):
    return _user_out(user)
