"""
User repository — keyed storage for User records.

The ``posts`` counter is only ever changed through ``increment_posts``,
which issues a single UPDATE so concurrent create/delete requests for the
same author cannot lose each other's writes.
"""
from typing import Any

from sqlalchemy import delete as sa_delete
from sqlalchemy import select, update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.models import User


async def create(db: AsyncSession, *, name: str, email: str, password: str) -> User:
    user = User(name=name, email=email, password=password, posts=0)
    db.add(user)
    await db.flush()
    return user


async def find_by_id(db: AsyncSession, user_id: int) -> User | None:
    return await db.get(User, user_id)


async def find_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def list_all(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return list(result.scalars().all())


async def update(db: AsyncSession, user_id: int, fields: dict[str, Any]) -> User | None:
    """Apply *fields* to the user and return it, or None if it does not exist."""
    user = await db.get(User, user_id)
    if user is None:
        return None
    for field, value in fields.items():
        setattr(user, field, value)
    await db.flush()
    return user


async def delete(db: AsyncSession, user_id: int) -> None:
    await db.execute(sa_delete(User).where(User.id == user_id))
    await db.flush()


async def increment_posts(db: AsyncSession, user_id: int, amount: int = 1) -> bool:
    """
    Atomically add *amount* (which may be negative) to the user's post
    counter.  The counter never drops below zero; returns False when no
    row was changed.
    """
    result = await db.execute(
        sa_update(User)
        .where(User.id == user_id, User.posts + amount >= 0)
        .values(posts=User.posts + amount)
    )
    return result.rowcount > 0
