"""
Storage Repository (remote).

Supabase Storage implementation of ``ObjectStorage`` for member photos.
"""

from __future__ import annotations

from gym_manager.database import DatabaseManager
from gym_manager.errors import UploadError
from gym_manager.logger import StructuredLogger
from gym_manager.repositories.base_repository import BaseRepository


class SupabaseStorageRepository(BaseRepository):
    """Uploads blobs to a Supabase Storage bucket and returns public URLs."""

    def __init__(self, db: DatabaseManager, logger: StructuredLogger, bucket: str) -> None:
        super().__init__(db, logger)
        self._bucket = bucket

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        def _upload() -> str:
            bucket = self.supabase.storage.from_(self._bucket)
            bucket.upload(path, data, {"content-type": content_type})
            return str(bucket.get_public_url(path))

        url = self._remote(_upload, UploadError, operation_name=f"upload ({self._bucket}/{path})")
        self._logger.info("Uploaded %d bytes to %s/%s", len(data), self._bucket, path)
        return url
