"""Blob storage for message attachments."""
import io
import os
import uuid
from dataclasses import dataclass
from typing import Optional

import aiofiles
from PIL import Image

from hivley.errors import StorageError, ValidationError
from hivley.utils.logger import setup_logger
from hivley.utils.validators import sanitize_filename

logger = setup_logger(__name__)

THUMBNAIL_SIZE = (200, 200)


@dataclass
class UploadedFile:
    path: str
    public_url: str
    size: int
    content_type: str
    thumbnail_path: Optional[str] = None
    thumbnail_url: Optional[str] = None


def attachment_path(user_id: str, message_id: str, file_name: str) -> str:
    """Storage key for a message attachment."""
    ext = os.path.splitext(sanitize_filename(file_name))[1].lower()
    return f"{sanitize_filename(user_id)}/messages/{sanitize_filename(message_id)}/{uuid.uuid4()}{ext}"


class LocalBlobStore:
    """Stores uploads on local disk and hands out public URLs."""

    def __init__(self, root: str, public_base_url: str, max_bytes: Optional[int] = None):
        self.root = os.path.abspath(root)
        self.public_base_url = public_base_url.rstrip("/")
        self.max_bytes = max_bytes

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{path}"

    def full_path(self, path: str) -> str:
        """Resolve a storage key, refusing anything outside the root."""
        full_path = os.path.abspath(os.path.join(self.root, path))
        if os.path.commonpath([self.root, full_path]) != self.root:
            raise ValidationError(f"Invalid storage path: {path}", code="INVALID_PATH")
        return full_path

    async def upload(self, path: str, data: bytes, content_type: str) -> UploadedFile:
        """Save bytes under ``path`` and return the public URL."""
        if self.max_bytes is not None and len(data) > self.max_bytes:
            raise ValidationError(
                f"File exceeds the {self.max_bytes} byte upload limit",
                code="FILE_TOO_LARGE"
            )

        full_path = self.full_path(path)
        try:
            os.makedirs(os.path.dirname(full_path), exist_ok=True)
            async with aiofiles.open(full_path, "wb") as f:
                await f.write(data)
        except OSError as e:
            logger.error(f"Upload failed for {path}: {e}")
            raise StorageError(f"Could not store {path}", code="UPLOAD_FAILED") from e

        uploaded = UploadedFile(
            path=path,
            public_url=self.public_url(path),
            size=len(data),
            content_type=content_type
        )

        if content_type.startswith("image/"):
            thumbnail_path = await self._make_thumbnail(path, data)
            if thumbnail_path:
                uploaded.thumbnail_path = thumbnail_path
                uploaded.thumbnail_url = self.public_url(thumbnail_path)

        logger.info(f"File saved: {path} ({uploaded.size} bytes)")
        return uploaded

    async def delete(self, path: str) -> bool:
        full_path = self.full_path(path)
        if not os.path.exists(full_path):
            return False
        os.remove(full_path)
        logger.info(f"File deleted: {path}")
        return True

    async def _make_thumbnail(self, path: str, content: bytes) -> Optional[str]:
        """Create a JPEG thumbnail next to the upload; None if the image is unreadable."""
        try:
            image = Image.open(io.BytesIO(content))
            thumbnail = image.copy()
            thumbnail.thumbnail(THUMBNAIL_SIZE, Image.Resampling.LANCZOS)

            # Convert to RGB if necessary
            if thumbnail.mode in ("RGBA", "LA", "P"):
                if thumbnail.mode == "P":
                    thumbnail = thumbnail.convert("RGBA")
                rgb_thumbnail = Image.new("RGB", thumbnail.size, (255, 255, 255))
                rgb_thumbnail.paste(thumbnail, mask=thumbnail.split()[-1])
                thumbnail = rgb_thumbnail
            elif thumbnail.mode != "RGB":
                thumbnail = thumbnail.convert("RGB")

            buffer = io.BytesIO()
            thumbnail.save(buffer, "JPEG", quality=85)

            directory, file_name = os.path.split(path)
            stem = os.path.splitext(file_name)[0]
            thumb_path = f"{directory}/thumb_{stem}.jpg" if directory else f"thumb_{stem}.jpg"
            async with aiofiles.open(self.full_path(thumb_path), "wb") as f:
                await f.write(buffer.getvalue())
        except Exception as e:
            logger.error(f"Error processing image {path}: {e}")
            return None

        return thumb_path
