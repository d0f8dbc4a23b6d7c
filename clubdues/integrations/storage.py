import io
import logging
import os
import uuid
from functools import lru_cache
from pathlib import Path

import cloudinary
import cloudinary.uploader

from clubdues.config import get_settings

logger = logging.getLogger(__name__)

LOCAL_URL_PREFIX = "/uploads"


def sanitize_filename(filename: str, fallback: str = "file") -> str:
    name = os.path.basename(filename or "")
    safe = "".join(c for c in name if c.isalnum() or c in "._-")
    return safe or fallback


class StorageBackend:
    """Stores uploaded bytes and returns the reference kept on the owning record."""

    def save(self, data: bytes, filename: str, content_type: str, folder: str) -> str:
        raise NotImplementedError

    def delete(self, reference: str) -> None:
        raise NotImplementedError


class LocalStorage(StorageBackend):
    def __init__(self, root, url_prefix: str = LOCAL_URL_PREFIX):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    def save(self, data: bytes, filename: str, content_type: str, folder: str) -> str:
        target_dir = self.root / folder
        target_dir.mkdir(parents=True, exist_ok=True)
        name = f"{uuid.uuid4().hex}_{sanitize_filename(filename)}"
        with open(target_dir / name, "wb") as f:
            f.write(data)
        return f"{self.url_prefix}/{folder}/{name}"

    def path_for(self, reference: str) -> Path:
        relative = reference[len(self.url_prefix):].lstrip("/")
        return self.root / relative

    def delete(self, reference: str) -> None:
        if not reference or not reference.startswith(self.url_prefix + "/"):
            return
        self.path_for(reference).unlink(missing_ok=True)


class CloudinaryStorage(StorageBackend):
    """
    Uploads through the Cloudinary SDK. References are the assets' secure URLs;
    the public id of every upload made by this process is kept so a stored
    file can be destroyed again.
    """

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        base_folder: str = "club-management",
    ):
        cloudinary.config(
            cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True
        )
        self.base_folder = base_folder
        self._uploaded = {}

    def save(self, data: bytes, filename: str, content_type: str, folder: str) -> str:
        result = cloudinary.uploader.upload(
            io.BytesIO(data),
            folder=f"{self.base_folder}/{folder}",
            resource_type="auto",
            filename_override=sanitize_filename(filename),
            use_filename=True,
            unique_filename=True,
        )
        url = result["secure_url"]
        self._uploaded[url] = (result["public_id"], result.get("resource_type", "image"))
        return url

    def delete(self, reference: str) -> None:
        entry = self._uploaded.pop(reference, None)
        if entry is None:
            logger.warning("No public id known for cloud upload %s, left in place", reference)
            return
        public_id, resource_type = entry
        cloudinary.uploader.destroy(public_id, resource_type=resource_type, invalidate=True)
        logger.info("Destroyed cloud upload %s", public_id)


@lru_cache
def get_storage_backend() -> StorageBackend:
    settings = get_settings()
    if settings.storage_backend == "cloudinary":
        if not (
            settings.cloudinary_cloud_name
            and settings.cloudinary_api_key
            and settings.cloudinary_api_secret
        ):
            raise RuntimeError("Cloudinary credentials are not set")
        return CloudinaryStorage(
            settings.cloudinary_cloud_name,
            settings.cloudinary_api_key,
            settings.cloudinary_api_secret,
            base_folder=settings.cloudinary_folder,
        )
    if settings.storage_backend != "local":
        raise RuntimeError(f"Unknown STORAGE_BACKEND: {settings.storage_backend}")
    return LocalStorage(settings.upload_dir)
