from __future__ import annotations

import logging
import mimetypes
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from igire.config import settings
from igire.infra.supabase_client import get_supabase_client

logger = logging.getLogger(__name__)


class MediaStorageError(RuntimeError):
    pass


def _object_path(kind: str, file_name: str) -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    safe_name = "".join(ch if ch.isalnum() or ch in "._-" else "_" for ch in (file_name or "upload"))
    return f"{kind}/{stamp}-{uuid4().hex[:8]}-{safe_name}"


class SupabaseMediaStorage:
    def __init__(self, client: Any | None = None, bucket: str | None = None) -> None:
        self._client = client
        self.bucket = bucket or settings.supabase_media_bucket

    def _storage(self) -> Any:
        if self._client is None:
            client, err = get_supabase_client()
            if client is None:
                raise MediaStorageError(err or "Supabase storage unavailable")
            self._client = client
        return self._client.storage.from_(self.bucket)

    def upload(self, kind: str, file_name: str, data: bytes, content_type: str | None = None) -> str:
        if not data:
            raise MediaStorageError("Uploaded file is empty")

        path = _object_path(kind, file_name)
        mime = content_type or mimetypes.guess_type(file_name or "")[0] or "application/octet-stream"
        bucket = self._storage()
        try:
            bucket.upload(path, data, {"content-type": mime})
        except Exception as exc:
            raise MediaStorageError(f"Media upload failed: {exc}") from exc

        url = bucket.get_public_url(path)
        logger.info("Stored %s upload at %s", kind, path)
        return str(url).rstrip("?")
