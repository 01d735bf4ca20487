from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.config import settings
from blog_api.database import get_db
from blog_api.dependencies import get_asset_store, get_credentials, get_current_user, read_upload
from blog_api.schemas import (
    EditUserRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    UserResponse,
)
from blog_api.security import AuthContext, CredentialService
from blog_api.services import user_service
from blog_api.storage import AssetStore

router = APIRouter(prefix=f"{settings.API_PREFIX}/users", tags=["users"])


@router.post("/register", status_code=201, response_model=MessageResponse)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    credentials: CredentialService = Depends(get_credentials),
):
    message = await user_service.register_user(db, credentials, data)
    return MessageResponse(message=message)


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
    credentials: CredentialService = Depends(get_credentials),
):
    return await user_service.login_user(db, credentials, data)


@router.get("", response_model=list[UserResponse])
async def list_authors(db: AsyncSession = Depends(get_db)):
    return await user_service.get_authors(db)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    return await user_service.get_user(db, user_id)


@router.post("/change-avatar", response_model=UserResponse)
async def change_avatar(
    avatar: UploadFile | None = File(None),
    caller: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: AssetStore = Depends(get_asset_store),
):
    return await user_service.change_avatar(db, store, caller, await read_upload(avatar))


@router.patch("/edit-user", response_model=UserResponse)
async def edit_user(
    data: EditUserRequest,
    caller: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    credentials: CredentialService = Depends(get_credentials),
):
    return await user_service.edit_user(db, credentials, caller, data)
