import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from agora.config import CORS_ORIGINS, DB_SCHEMA, setup_logging
from agora.database import Base, engine
from agora.errors import NotFound, Unauthorized
from agora.routes import auth, forum_routes, comment_routes

# 🔒 Rate limiting setup

from agora.limiter import limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

logger = logging.getLogger(__name__)

app = FastAPI(title="Agora Forum API")

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests. Please slow down."}
    )

@app.exception_handler(Unauthorized)
async def unauthorized_handler(request: Request, exc: Unauthorized):
    return JSONResponse(
        status_code=401,
        content={"detail": exc.message},
        headers={"WWW-Authenticate": "Bearer"},
    )

@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": exc.message})

# ✅ Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ✅ Include your routers
app.include_router(auth.router, prefix="/api/auth")
app.include_router(forum_routes.router, prefix="/api")
app.include_router(comment_routes.router, prefix="/api")

# ✅ Run DB init on startup
@app.on_event("startup")
async def on_startup():
    setup_logging()
    # Tiny retry so a momentary DB disconnect doesn't crash the app.
    for attempt in range(2):
        try:
            async with engine.begin() as conn:
                if DB_SCHEMA:
                    await conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{DB_SCHEMA}";'))
                await conn.run_sync(Base.metadata.create_all)
            break  # success
        except Exception as e:
            if attempt == 0:
                logger.warning("DB init failed, retrying once: %r", e)
                await asyncio.sleep(0.5)
            else:
                # Tables should already exist from previous runs.
                logger.error("Skipping DB init due to error: %r", e)
