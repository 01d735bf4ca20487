"""
Asset store — flat-file storage for uploaded thumbnails and avatars.

Files live in a single upload directory under generated names of the form
``<original base name><uuid4 hex>.<ext>``.  Every disk operation is awaited
through Starlette's thread pool so that uploads never block the event loop.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

from starlette.concurrency import run_in_threadpool

from blog_api.config import Settings
from blog_api.errors import PayloadTooLarge, StorageIOError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IncomingFile:
    """An uploaded file that has been read into memory."""

    filename: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


def generate_name(original_name: str) -> str:
    """
    Return a collision-resistant filename that keeps the extension of
    *original_name*.  Directory components supplied by the client are
    discarded.
    """
    name = Path(original_name or "").name or "upload"
    parts = name.split(".")
    base = parts[0] or "upload"
    suffix = f".{parts[-1]}" if len(parts) > 1 and parts[-1] else ""
    return f"{base}{uuid.uuid4().hex}{suffix}"


class AssetStore:
    def __init__(self, config: Settings | None = None, root: str | Path | None = None) -> None:
        if root is None:
            if config is None:
                raise ValueError("AssetStore needs either a config or a root directory")
            root = config.UPLOAD_DIR
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, stored_name: str) -> Path:
        return self.root / Path(stored_name).name

    def exists(self, stored_name: str) -> bool:
        return self.path_for(stored_name).is_file()

    @staticmethod
    def ensure_size(size: int, max_size: int) -> None:
        if size > max_size:
            raise PayloadTooLarge(
                f"File too big. File should be less than {max_size // 1000}kb."
            )

    async def store(self, content: bytes, original_name: str, max_size: int) -> str:
        """Persist *content* under a generated name and return that name."""
        self.ensure_size(len(content), max_size)
        stored_name = generate_name(original_name)
        try:
            await run_in_threadpool(self.path_for(stored_name).write_bytes, content)
        except OSError as exc:
            logger.error("Could not write %s: %s", stored_name, exc)
            raise StorageIOError("File couldn't be saved.") from exc
        logger.debug("Stored %s (%d bytes)", stored_name, len(content))
        return stored_name

    async def remove(self, stored_name: str) -> None:
        """Delete *stored_name*; a file that is already gone is not an error."""
        try:
            await run_in_threadpool(self.path_for(stored_name).unlink, True)
        except OSError as exc:
            logger.error("Could not remove %s: %s", stored_name, exc)
            raise StorageIOError("File couldn't be removed.") from exc
        logger.debug("Removed %s", stored_name)
