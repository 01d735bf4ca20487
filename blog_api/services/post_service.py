"""
Post service — create/edit/delete workflows and feed reads for Post.

Design notes
------------
- Mutations run strictly in order: size check, file release, file store,
  repository write, counter update.  A step that fails raises one of the
  ``blog_api.errors`` types and nothing after it runs.
- Ownership is checked before any file or record is touched; a caller who
  is not the creator gets ``Forbidden``.
- The author's ``posts`` counter moves through the atomic
  ``user_repository.increment_posts`` primitive, never a read-then-write.
- Reads use the Redis cache-aside layer.  Cached values are the plain
  dicts produced by ``post_to_dict``; every write purges ``posts:*`` once
  its transaction has committed.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.cache import cache, feed_key
from blog_api.config import settings
from blog_api.database import after_commit
from blog_api.errors import (
    CreateFailed,
    Forbidden,
    NotFound,
    StorageIOError,
    UpdateFailed,
    ValidationError,
)
from blog_api.models import Category, Post
from blog_api.repositories import post_repository, user_repository
from blog_api.schemas import PostInput
from blog_api.security import AuthContext
from blog_api.storage import AssetStore, IncomingFile

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _isoformat(value) -> str | None:
    return value.isoformat() if value else None


def post_to_dict(post: Post) -> dict:
    creator = post.creator
    return {
        "id": post.id,
        "title": post.title,
        "category": post.category,
        "description": post.description,
        "thumbnail": post.thumbnail,
        "creator_id": post.creator_id,
        "creator": (
            {"id": creator.id, "name": creator.name, "email": creator.email}
            if creator is not None
            else None
        ),
        "created_at": _isoformat(post.created_at),
        "updated_at": _isoformat(post.updated_at),
    }


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def _require_category(value: str | None) -> Category:
    category = Category.parse(value)
    if category is None:
        raise ValidationError(f"{value} is not a supported category.")
    return category


def _validate_edit(data: PostInput) -> Category:
    description = (data.description or "").strip()
    if not data.title or not data.category or len(description) < settings.MIN_DESCRIPTION_LENGTH:
        raise ValidationError("Fill in all fields.")
    return _require_category(data.category)


async def _load_owned(db: AsyncSession, caller: AuthContext, post_id: int) -> Post:
    post = await post_repository.find_by_id(db, post_id)
    if post is None:
        raise NotFound("Post not found.")
    if post.creator_id != caller.id:
        raise Forbidden("Only the author can change this post.")
    return post


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def _feed(key: str, loader):
    async def load() -> list[dict]:
        return [post_to_dict(p) for p in await loader()]
    return cache.get_or_load(key, load, settings.CACHE_TTL_LIST)


async def get_posts(db: AsyncSession) -> list[dict]:
    """All posts, most recently updated first."""
    return await _feed(feed_key("list"), lambda: post_repository.list_all(db))


async def get_post(db: AsyncSession, post_id: int) -> dict:
    async def load() -> dict:
        post = await post_repository.find_by_id(db, post_id)
        if post is None:
            raise NotFound("Post not found.")
        return post_to_dict(post)

    return await cache.get_or_load(feed_key("detail", post_id), load, settings.CACHE_TTL_DETAIL)


async def get_posts_by_category(db: AsyncSession, category: str) -> list[dict]:
    """
    Posts whose category equals *category* exactly, most recently created
    first.  A value that names no category simply matches nothing.
    """
    return await _feed(
        feed_key("category", category),
        lambda: post_repository.list_by_category(db, category),
    )


async def get_posts_by_creator(db: AsyncSession, creator_id: int) -> list[dict]:
    """Posts written by *creator_id*, most recently created first."""
    return await _feed(
        feed_key("creator", creator_id),
        lambda: post_repository.list_by_creator(db, creator_id),
    )


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

async def create_post(
    db: AsyncSession,
    store: AssetStore,
    caller: AuthContext,
    data: PostInput,
    thumbnail: IncomingFile | None,
) -> dict:
    """
    Store the thumbnail, create the post with *caller* as its creator and
    bump the caller's post counter.

    Nothing is written when validation or the thumbnail store fails.  If
    the record cannot be created the stored thumbnail is released again.
    """
    if not data.title or not data.category or not data.description or thumbnail is None:
        raise ValidationError("Fill in all fields and choose thumbnail.")
    category = _require_category(data.category)

    stored_name = await store.store(
        thumbnail.content, thumbnail.filename, settings.MAX_THUMBNAIL_SIZE
    )
    try:
        post = await post_repository.create(
            db,
            title=data.title,
            category=category.value,
            description=data.description,
            thumbnail=stored_name,
            creator_id=caller.id,
        )
    except Exception:
        await store.remove(stored_name)
        raise
    if post is None:
        await store.remove(stored_name)
        raise CreateFailed("Post couldn't be created.")

    await user_repository.increment_posts(db, caller.id, 1)
    after_commit(db, cache.invalidate_posts)
    logger.info("User %s created post %s", caller.id, post.id)
    return post_to_dict(post)


async def edit_post(
    db: AsyncSession,
    store: AssetStore,
    caller: AuthContext,
    post_id: int,
    data: PostInput,
    thumbnail: IncomingFile | None = None,
) -> dict:
    """
    Update the text fields of a post owned by *caller*, optionally
    replacing its thumbnail.

    A replacement thumbnail is size-checked before the old file is
    released.  Failing to release the old file is logged and the edit
    carries on.
    """
    category = _validate_edit(data)
    post = await _load_owned(db, caller, post_id)

    fields = {
        "title": data.title,
        "category": category.value,
        "description": data.description,
    }
    if thumbnail is not None:
        store.ensure_size(thumbnail.size, settings.MAX_THUMBNAIL_SIZE)
        if post.thumbnail:
            try:
                await store.remove(post.thumbnail)
            except StorageIOError as exc:
                logger.warning("Could not release thumbnail of post %s: %s", post_id, exc)
        fields["thumbnail"] = await store.store(
            thumbnail.content, thumbnail.filename, settings.MAX_THUMBNAIL_SIZE
        )

    updated = await post_repository.update(db, post_id, fields)
    if updated is None:
        raise UpdateFailed("Couldn't update post.")

    after_commit(db, cache.invalidate_posts)
    logger.info("User %s edited post %s", caller.id, post_id)
    return post_to_dict(updated)


async def delete_post(
    db: AsyncSession,
    store: AssetStore,
    caller: AuthContext,
    post_id: int,
) -> str:
    """
    Remove the thumbnail, the post and one from the creator's counter.

    A post without a thumbnail on record is still deleted.  If the
    thumbnail cannot be removed the record is left untouched.
    """
    post = await _load_owned(db, caller, post_id)
    creator_id, thumbnail = post.creator_id, post.thumbnail

    if thumbnail:
        await store.remove(thumbnail)
    await post_repository.delete(db, post_id)
    await user_repository.increment_posts(db, creator_id, -1)

    after_commit(db, cache.invalidate_posts)
    logger.info("User %s deleted post %s", caller.id, post_id)
    return f"Post {post_id} deleted successfully."
