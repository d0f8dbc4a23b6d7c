import logging
from dataclasses import dataclass
from typing import FrozenSet, Optional

from fastapi import UploadFile

from clubdues.domain.errors import StorageError, ValidationError
from clubdues.integrations.storage import StorageBackend

logger = logging.getLogger(__name__)

MB = 1024 * 1024


@dataclass(frozen=True)
class UploadPolicy:
    folder: str
    allowed_types: FrozenSet[str]
    max_bytes: int
    type_message: str


PAYMENT_PROOF_POLICY = UploadPolicy(
    folder="payments",
    allowed_types=frozenset({"image/png", "image/jpeg", "image/jpg", "application/pdf"}),
    max_bytes=5 * MB,
    type_message="Only PNG/JPEG/PDF allowed",
)

EXPENSE_PROOF_POLICY = UploadPolicy(
    folder="expenses",
    allowed_types=frozenset(
        {"image/jpeg", "image/png", "image/gif", "image/webp", "application/pdf"}
    ),
    max_bytes=5 * MB,
    type_message="Only images or PDF are allowed",
)

AVATAR_POLICY = UploadPolicy(
    folder="avatars",
    allowed_types=frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"}),
    max_bytes=3 * MB,
    type_message="Only image files are allowed",
)


@dataclass(frozen=True)
class IncomingFile:
    filename: str
    content_type: str
    data: bytes


def read_upload(upload: Optional[UploadFile], policy: UploadPolicy) -> Optional[IncomingFile]:
    """
    Check an optional upload against the policy and read it into memory.
    Returns None when no file was sent.
    """
    if upload is None or not upload.filename:
        return None
    content_type = (upload.content_type or "").lower()
    if content_type not in policy.allowed_types:
        raise ValidationError(policy.type_message)
    data = upload.file.read(policy.max_bytes + 1)
    if len(data) > policy.max_bytes:
        raise ValidationError(f"File too large (max {policy.max_bytes // MB} MB)")
    return IncomingFile(filename=upload.filename, content_type=content_type, data=data)


def store_file(
    storage: StorageBackend, incoming: Optional[IncomingFile], policy: UploadPolicy
) -> Optional[str]:
    if incoming is None:
        return None
    try:
        return storage.save(incoming.data, incoming.filename, incoming.content_type, policy.folder)
    except Exception as e:
        logger.exception("Storing %s upload failed", policy.folder)
        raise StorageError("File upload failed") from e


def discard_file(storage: StorageBackend, reference: Optional[str]) -> None:
    """Best-effort removal of a stored file whose owning record was never written."""
    if not reference:
        return
    try:
        storage.delete(reference)
    except Exception:
        logger.exception("Could not remove orphaned upload %s", reference)
