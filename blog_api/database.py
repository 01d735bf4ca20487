from contextlib import asynccontextmanager
from typing import Awaitable, Callable

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from blog_api.config import settings

# Module-level engine variable allows tests to override with a test engine.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def create_tables() -> None:
    """Create any missing tables from the ORM metadata."""
    # Import models so every table is registered on Base.metadata.
    import blog_api.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# ---------------------------------------------------------------------------
# Post-commit hooks
# ---------------------------------------------------------------------------

AfterCommit = Callable[[], Awaitable[None]]


def after_commit(session: AsyncSession, callback: AfterCommit) -> None:
    """
    Queue *callback* to run once *session* has committed.  Queuing the same
    callback twice runs it once; a rollback discards the queue.
    """
    callbacks: list[AfterCommit] = session.info.setdefault("after_commit", [])
    if callback not in callbacks:
        callbacks.append(callback)


async def run_after_commit(session: AsyncSession) -> None:
    for callback in session.info.pop("after_commit", []):
        await callback()


@asynccontextmanager
async def session_scope(factory: async_sessionmaker):
    """
    One request's session: commit when the handler returns, then run the
    queued post-commit hooks; roll back on error.
    """
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            session.info.pop("after_commit", None)
            await session.rollback()
            raise
        await run_after_commit(session)


async def get_db():
    async with session_scope(async_session) as session:
        yield session
