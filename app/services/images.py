"""Profile image storage on local disk."""

import base64
import binascii
import os
from pathlib import Path

from app.config import get_settings
from app.security import random_string

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"


class ProfileImageStore:
    """Saves and removes base64 profile images under UPLOAD_DIR/PROFILE_DIR."""

    def __init__(self, directory: str | Path, max_size_mb: int = 2) -> None:
        self.directory = Path(directory)
        self.max_bytes = max_size_mb * 1024 * 1024

    def create_folders(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def decode(image_b64: str) -> bytes | None:
        """Decode a base64 payload. Returns None if it is not valid base64."""
        try:
            return base64.b64decode(image_b64, validate=True)
        except (binascii.Error, ValueError):
            return None

    def is_within_size(self, data: bytes) -> bool:
        return len(data) <= self.max_bytes

    def is_supported(self, data: bytes) -> bool:
        """Only PNG and JPEG are accepted."""
        return data.startswith(PNG_SIGNATURE) or data.startswith(JPEG_SIGNATURE)

    def save(self, data: bytes) -> str:
        """Write image bytes under a random name. Returns the stored filename."""
        self.create_folders()
        filename = random_string(32)
        (self.directory / filename).write_bytes(data)
        return filename

    def delete(self, filename: str) -> None:
        file_path = self.directory / filename
        if file_path.exists():
            os.remove(file_path)


_image_store: ProfileImageStore | None = None


def get_image_store() -> ProfileImageStore:
    """Get singleton profile image store."""
    global _image_store
    if _image_store is None:
        settings = get_settings()
        _image_store = ProfileImageStore(
            Path(settings.UPLOAD_DIR) / settings.PROFILE_DIR,
            max_size_mb=settings.MAX_IMAGE_SIZE_MB,
        )
    return _image_store
