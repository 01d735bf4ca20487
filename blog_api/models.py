from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blog_api.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Category(str, enum.Enum):
    AGRICULTURE = "Agriculture"
    BUSINESS = "Business"
    EDUCATION = "Education"
    ENTERTAINMENT = "Entertainment"
    ART = "Art"
    INVESTMENT = "Investment"
    UNCATEGORIZED = "Uncategorized"
    WEATHER = "Weather"

    @classmethod
    def parse(cls, value: str | None) -> "Category | None":
        """Return the member whose value is *value*, or None."""
        try:
            return cls(value)
        except ValueError:
            return None


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint("posts >= 0", name="ck_users_posts_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    # Denormalized count of authored posts, maintained by the post workflow.
    posts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    # lazy="noload" enforces explicit eager loading in repositories
    authored_posts: Mapped[List["Post"]] = relationship(
        "Post", back_populates="creator", lazy="noload"
    )


# ---------------------------------------------------------------------------
# Post
# ---------------------------------------------------------------------------
class Post(Base):
    __tablename__ = "posts"

    __table_args__ = (
        # Author feed sorted by date
        Index("ix_posts_creator_id_created_at", "creator_id", "created_at"),
        # Category feed sorted by date
        Index("ix_posts_category_created_at", "category", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    category: Mapped[str] = mapped_column(
        String(50), nullable=False, default=Category.UNCATEGORIZED.value
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    thumbnail: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False, index=True
    )

    creator_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    creator: Mapped["User"] = relationship("User", back_populates="authored_posts", lazy="noload")
