from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# --- User ---

class CreatorResponse(BaseModel):
    """Public fields of a post's creator."""

    id: int
    name: str
    email: str
    model_config = ConfigDict(from_attributes=True)


class UserResponse(CreatorResponse):
    avatar: str | None = None
    posts: int
    created_at: datetime


# Request bodies keep every field optional so that missing input is reported
# by the orchestrators with their own messages rather than by FastAPI.

class RegisterRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    password: str | None = None
    password2: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class LoginResponse(BaseModel):
    token: str
    id: int
    name: str


class EditUserRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    current_password: str | None = Field(None, alias="currentPassword")
    new_password: str | None = Field(None, alias="newPassword")
    new_confirm_password: str | None = Field(None, alias="newConfirmPassword")
    model_config = ConfigDict(populate_by_name=True)


# --- Post ---

class PostInput(BaseModel):
    """Text fields of a post create/edit form."""

    title: str | None = None
    category: str | None = None
    description: str | None = None


class PostResponse(BaseModel):
    id: int
    title: str
    category: str
    description: str
    thumbnail: str
    creator_id: int
    creator: CreatorResponse | None = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


# --- Generic ---

class MessageResponse(BaseModel):
    message: str
