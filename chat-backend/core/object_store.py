"""Object store adapters for profile pictures."""
import io
import logging
import re
import uuid
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple
from urllib.parse import quote

import cloudinary
import cloudinary.uploader
import cloudinary.utils
from starlette.concurrency import run_in_threadpool

from core.exceptions import StorageError

logger = logging.getLogger(__name__)


class ObjectStore(ABC):
    @abstractmethod
    async def upload(self, key: str, data: bytes, content_type: Optional[str], cache_control: Optional[str]) -> None:
        ...

    @abstractmethod
    async def public_url(self, key: str) -> str:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...


class FirebaseObjectStore(ObjectStore):
    """
    Firebase Storage through the Admin SDK bucket.

    Uploads carry a download token so `public_url` can hand out the same
    token URL the browser SDK's getDownloadURL() returns, without making
    the object publicly readable.
    """

    def __init__(self, bucket):
        self.bucket = bucket

    def _upload(self, key, data, content_type, cache_control):
        blob = self.bucket.blob(key)
        blob.cache_control = cache_control
        blob.metadata = {"firebaseStorageDownloadTokens": uuid.uuid4().hex}
        blob.upload_from_string(data, content_type=content_type or "application/octet-stream")

    def _public_url(self, key):
        blob = self.bucket.get_blob(key)
        if blob is None:
            raise StorageError(f"Object {key} does not exist", key=key)
        token = (blob.metadata or {}).get("firebaseStorageDownloadTokens", "").split(",")[0]
        url = f"https://firebasestorage.googleapis.com/v0/b/{self.bucket.name}/o/{quote(key, safe='')}?alt=media"
        if token:
            url += f"&token={token}"
        return url

    async def upload(self, key: str, data: bytes, content_type: Optional[str], cache_control: Optional[str]) -> None:
        try:
            await run_in_threadpool(self._upload, key, data, content_type, cache_control)
        except Exception as exc:
            raise StorageError(f"Upload of {key} failed: {exc}", key=key) from exc

    async def public_url(self, key: str) -> str:
        try:
            return await run_in_threadpool(self._public_url, key)
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError(f"Could not resolve URL for {key}: {exc}", key=key) from exc

    async def delete(self, key: str) -> None:
        try:
            await run_in_threadpool(self.bucket.delete_blob, key)
        except Exception as exc:
            raise StorageError(f"Delete of {key} failed: {exc}", key=key) from exc


class CloudinaryObjectStore(ObjectStore):
    def __init__(self, cloud_name: Optional[str], api_key: Optional[str], api_secret: Optional[str], folder: str):
        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True,
        )
        self.folder = folder

    def _public_id(self, key: str) -> str:
        # Cloudinary reads a trailing ".com" as the file format
        return f"{self.folder}/{re.sub(r'[^A-Za-z0-9@_-]', '_', key)}"

    async def upload(self, key: str, data: bytes, content_type: Optional[str], cache_control: Optional[str]) -> None:
        if cache_control:
            logger.debug("Cloudinary ignores per-upload cache directive %r", cache_control)
        try:
            await run_in_threadpool(
                cloudinary.uploader.upload,
                io.BytesIO(data),
                public_id=self._public_id(key),
                overwrite=True,
                resource_type="image",
            )
        except Exception as exc:
            raise StorageError(f"Upload of {key} failed: {exc}", key=key) from exc

    async def public_url(self, key: str) -> str:
        url, _options = cloudinary.utils.cloudinary_url(self._public_id(key), secure=True)
        return url

    async def delete(self, key: str) -> None:
        try:
            await run_in_threadpool(cloudinary.uploader.destroy, self._public_id(key))
        except Exception as exc:
            raise StorageError(f"Delete of {key} failed: {exc}", key=key) from exc


class MemoryObjectStore(ObjectStore):
    def __init__(self, bucket: str = "memory-bucket"):
        self.bucket = bucket
        # key -> (data, content_type, cache_control)
        self.objects: Dict[str, Tuple[bytes, Optional[str], Optional[str]]] = {}

    async def upload(self, key: str, data: bytes, content_type: Optional[str], cache_control: Optional[str]) -> None:
        self.objects[key] = (bytes(data), content_type, cache_control)

    async def public_url(self, key: str) -> str:
        if key not in self.objects:
            raise StorageError(f"Object {key} does not exist", key=key)
        return f"memory://{self.bucket}/{quote(key, safe='')}"

    async def delete(self, key: str) -> None:
        self.objects.pop(key, None)
