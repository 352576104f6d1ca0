"""Photo blob storage with a local-disk provider."""

from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath

import structlog

logger = structlog.get_logger()

_CONTENT_TYPE_SUFFIX = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


class PhotoStorage(ABC):
    """Abstract base class for photo blob stores."""

    @abstractmethod
    async def save(self, user_id: uuid.UUID, filename: str, data: bytes, content_type: str | None = None) -> str:
        """Store the blob and return its public URL."""
        ...

    @abstractmethod
    async def delete(self, image_url: str) -> None:
        """Remove a blob previously returned by ``save``. Missing blobs are ignored."""
        ...


class LocalPhotoStorage(PhotoStorage):
    """Write photos under ``media_dir/<user_id>/`` and serve them from ``base_url``."""

    def __init__(self, media_dir: str, base_url: str) -> None:
        self.media_dir = Path(media_dir)
        self.base_url = base_url.rstrip("/")

    def object_name(self, user_id: uuid.UUID, filename: str, content_type: str | None) -> str:
        suffix = PurePosixPath(filename).suffix.lower() or _CONTENT_TYPE_SUFFIX.get(content_type or "", ".jpg")
        return f"{user_id}/{uuid.uuid4().hex}{suffix}"

    async def save(self, user_id: uuid.UUID, filename: str, data: bytes, content_type: str | None = None) -> str:
        name = self.object_name(user_id, filename, content_type)
        path = self.media_dir / name
        await asyncio.to_thread(_write_file, path, data)
        logger.info("photo_stored", user_id=str(user_id), object_name=name, size=len(data))
        return f"{self.base_url}/{name}"

    def path_for(self, image_url: str) -> Path | None:
        prefix = self.base_url + "/"
        if not image_url.startswith(prefix):
            return None
        name = PurePosixPath(image_url[len(prefix):])
        if name.is_absolute() or ".." in name.parts:
            return None
        return self.media_dir.joinpath(*name.parts)

    async def delete(self, image_url: str) -> None:
        path = self.path_for(image_url)
        if path is None:
            logger.warning("photo_delete_skipped", image_url=image_url)
            return
        await asyncio.to_thread(path.unlink, True)
        logger.info("photo_deleted", object_name=str(path.relative_to(self.media_dir)))


def _write_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
