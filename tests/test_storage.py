import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from clubdues.domain.errors import StorageError, ValidationError
from clubdues.domain.services.upload_service import (
    AVATAR_POLICY,
    PAYMENT_PROOF_POLICY,
    IncomingFile,
    read_upload,
    store_file,
)
from clubdues.integrations import storage as storage_module
from clubdues.integrations.storage import CloudinaryStorage, LocalStorage, sanitize_filename


def _upload(data: bytes, filename: str, content_type: str) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data), filename=filename, headers=Headers({"content-type": content_type})
    )


def test_sanitize_filename_strips_paths_and_odd_characters():
    assert sanitize_filename("../../etc/pass wd.png") == "passwd.png"
    assert sanitize_filename("") == "file"


def test_local_storage_save_and_delete(tmp_path):
    local = LocalStorage(tmp_path)

    ref = local.save(b"data", "proof.pdf", "application/pdf", "payments")

    assert ref.startswith("/uploads/payments/")
    path = local.path_for(ref)
    assert path.read_bytes() == b"data"
    local.delete(ref)
    assert not path.exists()
    local.delete(ref)


def test_local_storage_ignores_foreign_references(tmp_path):
    LocalStorage(tmp_path).delete("https://cdn.example.org/x.png")


def test_read_upload_returns_none_without_file():
    assert read_upload(None, PAYMENT_PROOF_POLICY) is None


def test_read_upload_enforces_type_and_size():
    with pytest.raises(ValidationError, match="Only image files"):
        read_upload(_upload(b"%PDF", "a.pdf", "application/pdf"), AVATAR_POLICY)

    too_big = b"x" * (AVATAR_POLICY.max_bytes + 1)
    with pytest.raises(ValidationError, match=r"File too large \(max 3 MB\)"):
        read_upload(_upload(too_big, "a.png", "image/png"), AVATAR_POLICY)

    incoming = read_upload(_upload(b"ok", "a.jpg", "image/jpeg"), PAYMENT_PROOF_POLICY)
    assert incoming == IncomingFile(filename="a.jpg", content_type="image/jpeg", data=b"ok")



class _FakeUploader:
    def __init__(self, error=None):
        self.error = error
        self.uploads = []
        self.destroyed = []

    def upload(self, file, **options):
        if self.error:
            raise self.error
        self.uploads.append((file.read(), options))
        public_id = f"{options['folder']}/{options['filename_override']}_x1"
        return {
            "secure_url": f"https://res.cloudinary.com/demo/image/upload/v1/{public_id}",
            "public_id": public_id,
            "resource_type": "image",
        }

    def destroy(self, public_id, **options):
        self.destroyed.append((public_id, options))
        return {"result": "ok"}


@pytest.fixture
def uploader(monkeypatch):
    fake = _FakeUploader()
    monkeypatch.setattr(storage_module.cloudinary.uploader, "upload", fake.upload)
    monkeypatch.setattr(storage_module.cloudinary.uploader, "destroy", fake.destroy)
    return fake


def test_cloudinary_save_uploads_into_folder(uploader):
    backend = CloudinaryStorage("demo", "key", "secret", base_folder="club")

    url = backend.save(b"img", "my receipt.png", "image/png", "payments")

    assert url == "https://res.cloudinary.com/demo/image/upload/v1/club/payments/myreceipt.png_x1"
    data, options = uploader.uploads[0]
    assert data == b"img"
    assert options["folder"] == "club/payments"
    assert options["resource_type"] == "auto"
    assert options["use_filename"] is True
    assert options["unique_filename"] is True


def test_cloudinary_delete_destroys_by_public_id(uploader):
    backend = CloudinaryStorage("demo", "key", "secret", base_folder="club")
    url = backend.save(b"img", "p.png", "image/png", "avatars")

    backend.delete(url)

    assert uploader.destroyed == [
        ("club/avatars/p.png_x1", {"resource_type": "image", "invalidate": True})
    ]


def test_cloudinary_delete_of_unknown_reference_is_skipped(uploader):
    CloudinaryStorage("demo", "key", "secret").delete("https://res.cloudinary.com/demo/other.png")

    assert uploader.destroyed == []


def test_store_file_wraps_backend_errors(monkeypatch):
    failing = _FakeUploader(error=RuntimeError("Invalid Signature"))
    monkeypatch.setattr(storage_module.cloudinary.uploader, "upload", failing.upload)
    incoming = IncomingFile(filename="p.png", content_type="image/png", data=b"x")

    with pytest.raises(StorageError, match="File upload failed"):
        store_file(CloudinaryStorage("demo", "key", "bad"), incoming, PAYMENT_PROOF_POLICY)
