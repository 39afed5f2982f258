"""
Cover image storage.

Uploaded covers are stored under generated names of the form
``book-cover-<random>.<ext>`` and addressed by a public URL that is
saved in the book's ``cover_url``. Two stores are provided:

* ``LocalCoverStorage`` writes files to a directory that the app serves
  under ``/covers``.
* ``SupabaseCoverStorage`` uploads to a Supabase storage bucket.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any, Optional

from .config import Config
from .storage import create_supabase_client


logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 5 * 1024 * 1024


def cover_filename(original_name: Optional[str]) -> str:
    """Generate a storage name, keeping the extension of the upload."""
    ext = "jpg"
    if original_name and "." in original_name:
        candidate = original_name.rsplit(".", 1)[-1].lower()
        if candidate.isalnum():
            ext = candidate
    return f"book-cover-{uuid.uuid4().hex}.{ext}"


def validate_cover(content_type: Optional[str], size: int, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
    if not content_type or not content_type.startswith("image/"):
        raise ValueError("Please upload an image file")
    if size > max_bytes:
        raise ValueError(f"Image must be smaller than {max_bytes // (1024 * 1024)}MB")


class CoverStorage:
    max_bytes = DEFAULT_MAX_BYTES

    def save(self, data: bytes, filename: Optional[str], content_type: Optional[str]) -> str:
        """Validate and store an upload, returning its public URL."""
        validate_cover(content_type, len(data), self.max_bytes)
        name = cover_filename(filename)
        url = self._put(name, data, content_type or "image/jpeg")
        logger.info("Stored cover %s (%d bytes)", name, len(data))
        return url

    def owns(self, url: Optional[str]) -> bool:
        raise NotImplementedError

    def delete(self, url: str) -> None:
        raise NotImplementedError

    def _put(self, name: str, data: bytes, content_type: str) -> str:
        raise NotImplementedError


class LocalCoverStorage(CoverStorage):
    def __init__(self, directory: str, base_url: str = "/covers", max_bytes: int = DEFAULT_MAX_BYTES):
        self.directory = Path(directory)
        self.base_url = base_url.rstrip("/")
        self.max_bytes = max_bytes

    def _put(self, name: str, data: bytes, content_type: str) -> str:
        self.directory.mkdir(parents=True, exist_ok=True)
        (self.directory / name).write_bytes(data)
        return f"{self.base_url}/{name}"

    def owns(self, url: Optional[str]) -> bool:
        return bool(url) and url.startswith(self.base_url + "/book-cover-")

    def delete(self, url: str) -> None:
        name = url.rsplit("/", 1)[-1]
        path = self.directory / name
        if path.exists():
            path.unlink()


class SupabaseCoverStorage(CoverStorage):
    def __init__(self, client: Any, bucket: str = "book-covers", max_bytes: int = DEFAULT_MAX_BYTES):
        self.client = client
        self.bucket = bucket
        self.max_bytes = max_bytes

    def _put(self, name: str, data: bytes, content_type: str) -> str:
        files = self.client.storage.from_(self.bucket)
        files.upload(name, data, {"content-type": content_type})
        return files.get_public_url(name)

    def owns(self, url: Optional[str]) -> bool:
        return bool(url) and f"/{self.bucket}/book-cover-" in url

    def delete(self, url: str) -> None:
        name = url.split("?", 1)[0].rsplit("/", 1)[-1]
        self.client.storage.from_(self.bucket).remove([name])


def build_cover_storage(config: Config, client: Any = None) -> CoverStorage:
    if (config.STORAGE_BACKEND or "memory").lower() == "supabase":
        return SupabaseCoverStorage(
            client or create_supabase_client(config),
            bucket=config.COVER_BUCKET,
            max_bytes=config.MAX_COVER_BYTES,
        )
    return LocalCoverStorage(config.COVER_DIR, max_bytes=config.MAX_COVER_BYTES)
