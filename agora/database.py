from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from agora.config import DATABASE_URL, DB_SCHEMA, SQL_ECHO
from typing import AsyncGenerator


def make_engine(url: str, echo: bool = False) -> AsyncEngine:
    eng = create_async_engine(
        url.replace("postgresql://", "postgresql+asyncpg://"),
        echo=echo,
        future=True
    )
    if eng.dialect.name == "sqlite":
        # SQLite ships with FK enforcement off; cascades depend on it
        @event.listens_for(eng.sync_engine, "connect")
        def _sqlite_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    return eng


engine = make_engine(DATABASE_URL, echo=SQL_ECHO)

AsyncSessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
Base = declarative_base()


def table_args(*constraints):
    """__table_args__ tuple carrying the configured schema, if any."""
    if DB_SCHEMA:
        return (*constraints, {"schema": DB_SCHEMA})
    return constraints


def fk(target: str) -> str:
    """Qualify a "table.column" foreign key target with the schema."""
    return f"{DB_SCHEMA}.{target}" if DB_SCHEMA else target


# Dependency for FastAPI routes
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session
