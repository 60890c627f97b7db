"""
Storage abstraction over Supabase Storage buckets.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from ankor_api.errors import UpstreamError


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def create_signed_upload_url(self, bucket: str, path: str) -> dict:
        ...

    def public_url(self, bucket: str, path: str) -> str:
        ...

    def create_signed_url(self, bucket: str, path: str, expires_in: int = 3600) -> str:
        ...


def _first(payload: Any, *keys: str) -> str:
    if not isinstance(payload, dict):
        return ""
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


@dataclass
class SupabaseStorageClient:
    """
    Thin wrapper that normalizes storage3 return shapes, which differ in key
    casing (``signed_url``/``signedUrl``/``signedURL``) between releases.
    """

    client: Any

    def _bucket(self, bucket: str):
        return self.client.storage.from_(bucket)

    def create_signed_upload_url(self, bucket: str, path: str) -> dict:
        data = self._bucket(bucket).create_signed_upload_url(path)
        signed_url = _first(data, "signed_url", "signedUrl", "signedURL")
        token = _first(data, "token")
        if not signed_url or not token:
            raise UpstreamError("Failed to create upload URL")
        return {"signed_url": signed_url, "token": token}

    def public_url(self, bucket: str, path: str) -> str:
        result = self._bucket(bucket).get_public_url(path)
        if isinstance(result, str):
            return result
        return _first(result, "publicUrl", "publicURL", "public_url")

    def create_signed_url(self, bucket: str, path: str, expires_in: int = 3600) -> str:
        data = self._bucket(bucket).create_signed_url(path, expires_in)
        signed_url = _first(data, "signedUrl", "signedURL", "signed_url")
        if not signed_url:
            raise UpstreamError("Failed to create signed URL")
        return signed_url
