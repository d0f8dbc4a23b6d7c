import dataclasses

from clubdues.config import get_settings
from clubdues.data.repositories import user_repository
from clubdues.domain.models.user import Role
from clubdues.domain.services.auth_service import verify_password
from clubdues.domain.services.user_service import ensure_default_admin
from clubdues.scripts import create_admin


def test_health(client):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "database": "connected"}


def test_unknown_route_uses_message_shape(client):
    resp = client.get("/api/nowhere")

    assert resp.status_code == 404
    assert resp.json() == {"message": "Not Found"}


def test_malformed_body_is_a_bad_request(client, admin_headers, member):
    resp = client.patch(
        f"/api/users/{member.id}", json={"fixed_amount": "lots"}, headers=admin_headers
    )

    assert resp.status_code == 400
    assert "fixed_amount" in resp.json()["message"]


def test_default_admin_is_created_once(db):
    settings = dataclasses.replace(get_settings(), default_admin_password="changeme1")

    first = ensure_default_admin(db, settings)
    second = ensure_default_admin(db, settings)

    assert first.id == second.id
    assert first.role == Role.ADMIN
    assert len(user_repository.list_users(db)) == 1


def test_default_admin_skipped_without_password(db):
    assert ensure_default_admin(db, get_settings()) is None
    assert user_repository.list_users(db) == []


def test_create_admin_command(db, capsys):
    assert create_admin.main(["--username", "Boss", "--password", "topsecret"]) == 0

    user = user_repository.get_user_by_username(db, "boss")
    assert user.role == Role.ADMIN
    assert verify_password("topsecret", user.hashed_password)
    assert "Admin created" in capsys.readouterr().out

    assert create_admin.main(["--username", "boss", "--password", "other123"]) == 0
    assert "already exists" in capsys.readouterr().out


def test_create_admin_command_rejects_short_password(capsys):
    assert create_admin.main(["--password", "123"]) == 1
    assert "at least 6" in capsys.readouterr().err
