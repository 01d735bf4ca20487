"""
User service — registration, login and profile workflows for User.

Users are read without caching; the author list is small and changes
rarely.  Profile edits do purge the post cache, because post feeds embed
the creator's name and email.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.cache import cache
from blog_api.config import settings
from blog_api.database import after_commit
from blog_api.errors import (
    Conflict,
    InvalidCredentials,
    NotFound,
    StorageIOError,
    UpdateFailed,
    ValidationError,
)
from blog_api.models import User
from blog_api.repositories import user_repository
from blog_api.schemas import EditUserRequest, LoginRequest, RegisterRequest
from blog_api.security import AuthContext, CredentialService
from blog_api.storage import AssetStore, IncomingFile

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def user_to_dict(user: User) -> dict:
    """Public view of a user; the password hash never leaves this module."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "avatar": user.avatar,
        "posts": user.posts,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _check_new_password(password: str, confirmation: str | None, mismatch_message: str) -> None:
    if len(password.strip()) < settings.MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password should be at least {settings.MIN_PASSWORD_LENGTH} characters."
        )
    if password != confirmation:
        raise ValidationError(mismatch_message)


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def register_user(
    db: AsyncSession, credentials: CredentialService, data: RegisterRequest
) -> str:
    """Create an account and return a confirmation message."""
    if not data.name or not data.email or not data.password:
        raise ValidationError("Fill in all fields.")

    email = _normalize_email(data.email)
    if await user_repository.find_by_email(db, email) is not None:
        raise Conflict("Email already exists.")
    _check_new_password(data.password, data.password2, "Passwords do not match.")

    user = await user_repository.create(
        db,
        name=data.name,
        email=email,
        password=await credentials.hash_password(data.password),
    )
    logger.info("Registered user %s", user.id)
    return f"New user {user.email} registered."


async def login_user(
    db: AsyncSession, credentials: CredentialService, data: LoginRequest
) -> dict:
    """
    Return ``{token, id, name}`` for a valid email/password pair.

    An unknown email and a wrong password fail with the same
    ``InvalidCredentials`` message.
    """
    if not data.email or not data.password:
        raise ValidationError("Fill in all fields.")

    user = await user_repository.find_by_email(db, _normalize_email(data.email))
    if user is None or not await credentials.verify_password(data.password, user.password):
        raise InvalidCredentials()

    token = credentials.issue_token(AuthContext(id=user.id, name=user.name))
    return {"token": token, "id": user.id, "name": user.name}


async def get_user(db: AsyncSession, user_id: int) -> dict:
    user = await user_repository.find_by_id(db, user_id)
    if user is None:
        raise NotFound("User not found.")
    return user_to_dict(user)


async def get_authors(db: AsyncSession) -> list[dict]:
    """Return all users ordered by creation date (newest first)."""
    return [user_to_dict(u) for u in await user_repository.list_all(db)]


async def change_avatar(
    db: AsyncSession,
    store: AssetStore,
    caller: AuthContext,
    avatar: IncomingFile | None,
) -> dict:
    """
    Replace the caller's avatar.

    The size bound is checked first so an oversized upload leaves the
    current avatar in place.  Then the old file is released (a failure is
    logged and ignored), the new one stored, and the reference updated.
    """
    if avatar is None:
        raise ValidationError("Please choose an image.")
    store.ensure_size(avatar.size, settings.MAX_AVATAR_SIZE)

    user = await user_repository.find_by_id(db, caller.id)
    if user is None:
        raise NotFound("User not found.")

    if user.avatar:
        try:
            await store.remove(user.avatar)
        except StorageIOError as exc:
            logger.warning("Could not release avatar of user %s: %s", caller.id, exc)

    stored_name = await store.store(avatar.content, avatar.filename, settings.MAX_AVATAR_SIZE)
    updated = await user_repository.update(db, caller.id, {"avatar": stored_name})
    if updated is None:
        await store.remove(stored_name)
        raise UpdateFailed("Avatar couldn't be changed.")

    logger.info("User %s changed avatar", caller.id)
    return user_to_dict(updated)


async def edit_user(
    db: AsyncSession,
    credentials: CredentialService,
    caller: AuthContext,
    data: EditUserRequest,
) -> dict:
    """Update name, email and password after checking the current password."""
    if not data.name or not data.email or not data.current_password or not data.new_password:
        raise ValidationError("Fill in all fields.")

    user = await user_repository.find_by_id(db, caller.id)
    if user is None:
        raise NotFound("User not found.")

    email = _normalize_email(data.email)
    owner = await user_repository.find_by_email(db, email)
    if owner is not None and owner.id != user.id:
        raise Conflict("Email already exists.")

    if not await credentials.verify_password(data.current_password, user.password):
        raise InvalidCredentials("Invalid current password.")
    _check_new_password(data.new_password, data.new_confirm_password, "New passwords do not match.")

    updated = await user_repository.update(
        db,
        user.id,
        {
            "name": data.name,
            "email": email,
            "password": await credentials.hash_password(data.new_password),
        },
    )
    if updated is None:
        raise UpdateFailed("Couldn't update user.")

    after_commit(db, cache.invalidate_posts)
    logger.info("User %s edited profile", caller.id)
    return user_to_dict(updated)
