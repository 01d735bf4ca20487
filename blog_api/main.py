import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from blog_api.cache import cache
from blog_api.config import settings
from blog_api.database import create_tables
from blog_api.dependencies import get_asset_store
from blog_api.errors import install_error_handlers
from blog_api.middleware import AccessLogMiddleware
from blog_api.routers import posts, users

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await create_tables()
    try:
        await cache.connect()
    except Exception as exc:
        logger.warning("Starting without Redis: %s", exc)
    logger.info("Serving uploads from %s", get_asset_store().root.resolve())
    yield
    # Shutdown
    await cache.disconnect()


app = FastAPI(
    title="Blog API",
    description="Posts with thumbnails, authors and token authentication",
    version=VERSION,
    lifespan=lifespan,
)

# Middleware
app.add_middleware(AccessLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

# Routers
app.include_router(users.router)
app.include_router(posts.router)

# Uploaded thumbnails and avatars, read-only
app.mount(
    settings.UPLOAD_URL_PATH,
    StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
    name="uploads",
)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION, "cache": cache.stats}
