"""
Post repository — keyed storage and feed queries for Post records.

Every read eager-loads the creator with ``selectinload`` (the relationship
is ``noload`` by default) and uses ``populate_existing`` so an instance
already sitting in the session identity map gets its creator filled in.
"""
from typing import Any

from sqlalchemy import delete as sa_delete
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from blog_api.models import Post


def _with_creator(stmt):
    return stmt.options(selectinload(Post.creator)).execution_options(populate_existing=True)


async def create(
    db: AsyncSession,
    *,
    title: str,
    category: str,
    description: str,
    thumbnail: str,
    creator_id: int,
) -> Post:
    post = Post(
        title=title,
        category=category,
        description=description,
        thumbnail=thumbnail,
        creator_id=creator_id,
    )
    db.add(post)
    await db.flush()
    return await find_by_id(db, post.id)


async def find_by_id(db: AsyncSession, post_id: int) -> Post | None:
    result = await db.execute(_with_creator(select(Post).where(Post.id == post_id)))
    return result.scalar_one_or_none()


async def list_all(db: AsyncSession) -> list[Post]:
    """All posts, most recently updated first."""
    q = _with_creator(select(Post).order_by(Post.updated_at.desc(), Post.id.desc()))
    result = await db.execute(q)
    return list(result.scalars().all())


async def list_by_category(db: AsyncSession, category: str) -> list[Post]:
    """Posts in *category*, most recently created first."""
    q = _with_creator(
        select(Post)
        .where(Post.category == category)
        .order_by(Post.created_at.desc(), Post.id.desc())
    )
    result = await db.execute(q)
    return list(result.scalars().all())


async def list_by_creator(db: AsyncSession, creator_id: int) -> list[Post]:
    """Posts written by *creator_id*, most recently created first."""
    q = _with_creator(
        select(Post)
        .where(Post.creator_id == creator_id)
        .order_by(Post.created_at.desc(), Post.id.desc())
    )
    result = await db.execute(q)
    return list(result.scalars().all())


async def update(db: AsyncSession, post_id: int, fields: dict[str, Any]) -> Post | None:
    """Apply *fields* to the post and return it, or None if it does not exist."""
    post = await db.get(Post, post_id)
    if post is None:
        return None
    for field, value in fields.items():
        setattr(post, field, value)
    await db.flush()
    return await find_by_id(db, post_id)


async def delete(db: AsyncSession, post_id: int) -> None:
    await db.execute(sa_delete(Post).where(Post.id == post_id))
    await db.flush()
