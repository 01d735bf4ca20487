from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.config import settings
from blog_api.database import get_db
from blog_api.dependencies import get_asset_store, get_current_user, read_upload
from blog_api.schemas import MessageResponse, PostInput, PostResponse
from blog_api.security import AuthContext
from blog_api.services import post_service
from blog_api.storage import AssetStore

router = APIRouter(prefix=f"{settings.API_PREFIX}/posts", tags=["posts"])


@router.post("", status_code=201, response_model=PostResponse)
async def create_post(
    title: str | None = Form(None),
    category: str | None = Form(None),
    description: str | None = Form(None),
    thumbnail: UploadFile | None = File(None),
    caller: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: AssetStore = Depends(get_asset_store),
):
    data = PostInput(title=title, category=category, description=description)
    return await post_service.create_post(db, store, caller, data, await read_upload(thumbnail))


@router.get("", response_model=list[PostResponse])
async def list_posts(db: AsyncSession = Depends(get_db)):
    return await post_service.get_posts(db)


@router.get("/categories/{category}", response_model=list[PostResponse])
async def list_category_posts(category: str, db: AsyncSession = Depends(get_db)):
    return await post_service.get_posts_by_category(db, category)


@router.get("/users/{user_id}", response_model=list[PostResponse])
async def list_user_posts(user_id: int, db: AsyncSession = Depends(get_db)):
    return await post_service.get_posts_by_creator(db, user_id)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: int, db: AsyncSession = Depends(get_db)):
    return await post_service.get_post(db, post_id)


@router.patch("/{post_id}", response_model=PostResponse)
async def edit_post(
    post_id: int,
    title: str | None = Form(None),
    category: str | None = Form(None),
    description: str | None = Form(None),
    thumbnail: UploadFile | None = File(None),
    caller: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: AssetStore = Depends(get_asset_store),
):
    data = PostInput(title=title, category=category, description=description)
    return await post_service.edit_post(
        db, store, caller, post_id, data, await read_upload(thumbnail)
    )


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: int,
    caller: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: AssetStore = Depends(get_asset_store),
):
    message = await post_service.delete_post(db, store, caller, post_id)
    return MessageResponse(message=message)
