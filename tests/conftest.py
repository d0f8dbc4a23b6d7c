import os
import tempfile

os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="clubdues-uploads-")
for _var in ("DEFAULT_ADMIN_PASSWORD", "SMTP_HOST", "SMTP_PORT", "SMTP_USER", "SMTP_PASS", "LOG_DIR"):
    os.environ.pop(_var, None)

from datetime import datetime  # noqa: E402
from typing import Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from clubdues.data.base import Base, SessionLocal, create_tables, engine  # noqa: E402
from clubdues.data.repositories import user_repository  # noqa: E402
from clubdues.domain.models.user import Role, User  # noqa: E402
from clubdues.domain.services.auth_service import create_access_token, get_password_hash  # noqa: E402
from clubdues.integrations.storage import LocalStorage, get_storage_backend  # noqa: E402
from clubdues.main import app  # noqa: E402

DEFAULT_PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def fresh_database():
    Base.metadata.drop_all(bind=engine)
    create_tables()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path):
    local = LocalStorage(tmp_path / "uploads")
    app.dependency_overrides[get_storage_backend] = lambda: local
    yield local
    app.dependency_overrides.pop(get_storage_backend, None)


@pytest.fixture
def client(storage):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(
        username: Optional[str] = None,
        role: Role = Role.MEMBER,
        fixed_amount: float = 500.0,
        email: Optional[str] = None,
        created_at: Optional[datetime] = None,
        blocked: bool = False,
        password: str = DEFAULT_PASSWORD,
    ) -> User:
        counter["n"] += 1
        user = user_repository.create_user(
            db,
            name=f"Member {counter['n']}",
            username=username or f"member{counter['n']}",
            hashed_password=get_password_hash(password),
            role=role,
            email=email,
            fixed_amount=fixed_amount,
        )
        changes = {}
        if created_at is not None:
            changes["created_at"] = created_at
        if blocked:
            changes["is_blocked"] = True
        if changes:
            user = user_repository.update_user(db, user.id, **changes)
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(username="admin", role=Role.ADMIN, fixed_amount=0.0)


@pytest.fixture
def member(make_user):
    return make_user(username="alice", fixed_amount=500.0)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def member_headers(member):
    return auth_headers(member)


@pytest.fixture
def headers_for():
    return auth_headers
