import dataclasses
from datetime import datetime, timedelta

import pytest

from clubdues.config import get_settings
from clubdues.domain.errors import ConflictError, ValidationError
from clubdues.domain.services import verification_service
from clubdues.integrations import mail_service

NOW = datetime(2024, 6, 1, 12, 0, 0)


def test_request_and_verify_code(db):
    code = verification_service.request_email_code(db, get_settings(), "New@Club.org", now=NOW)

    assert len(code) == 6 and code.isdigit()
    assert verification_service.verify_email_code(db, "new@club.org", code, now=NOW + timedelta(minutes=4))


def test_code_is_single_use(db):
    code = verification_service.request_email_code(db, get_settings(), "new@club.org", now=NOW)
    verification_service.verify_email_code(db, "new@club.org", code, now=NOW)

    with pytest.raises(ValidationError, match="expired or not requested"):
        verification_service.verify_email_code(db, "new@club.org", code, now=NOW)


def test_wrong_code_is_rejected(db):
    code = verification_service.request_email_code(db, get_settings(), "new@club.org", now=NOW)
    wrong = "000000" if code != "000000" else "111111"

    with pytest.raises(ValidationError, match="Invalid code"):
        verification_service.verify_email_code(db, "new@club.org", wrong, now=NOW)


def test_code_expires_after_five_minutes(db):
    code = verification_service.request_email_code(db, get_settings(), "new@club.org", now=NOW)

    with pytest.raises(ValidationError, match="expired"):
        verification_service.verify_email_code(db, "new@club.org", code, now=NOW + timedelta(minutes=5, seconds=1))


def test_new_request_replaces_previous_code(db, monkeypatch):
    codes = iter(["111111", "222222"])
    monkeypatch.setattr(verification_service, "generate_code", lambda: next(codes))
    verification_service.request_email_code(db, get_settings(), "new@club.org", now=NOW)
    verification_service.request_email_code(db, get_settings(), "new@club.org", now=NOW)

    with pytest.raises(ValidationError):
        verification_service.verify_email_code(db, "new@club.org", "111111", now=NOW)
    assert verification_service.verify_email_code(db, "new@club.org", "222222", now=NOW)


def test_email_in_use_and_missing_email(db, make_user):
    make_user(email="taken@club.org")

    with pytest.raises(ConflictError):
        verification_service.request_email_code(db, get_settings(), "TAKEN@club.org")
    with pytest.raises(ValidationError, match="Email is required"):
        verification_service.request_email_code(db, get_settings(), "  ")


def test_code_is_mailed_when_smtp_is_configured(db, monkeypatch):
    sent = []

    class FakeSMTP:
        def __init__(self, host, port, timeout=None):
            self.host, self.port = host, port

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def starttls(self):
            pass

        def login(self, user, password):
            pass

        def send_message(self, msg):
            sent.append(msg)

    monkeypatch.setattr(mail_service.smtplib, "SMTP", FakeSMTP)
    settings = dataclasses.replace(
        get_settings(), smtp_host="smtp.club.org", smtp_port=587, smtp_user="bot", smtp_pass="pw"
    )

    code = verification_service.request_email_code(db, settings, "new@club.org", now=NOW)

    assert len(sent) == 1
    assert sent[0]["To"] == "new@club.org"
    assert code in sent[0].get_content()


def test_email_code_endpoints(client, monkeypatch):
    monkeypatch.setattr(verification_service, "generate_code", lambda: "424242")

    resp = client.post("/api/auth/request-email-code", json={"email": "new@club.org"})
    assert resp.status_code == 200
    assert resp.json() == {"message": "Code sent to email"}

    resp = client.post("/api/auth/verify-email-code", json={"email": "new@club.org", "code": "999999"})
    assert resp.status_code == 400

    resp = client.post("/api/auth/verify-email-code", json={"email": "new@club.org", "code": "424242"})
    assert resp.json() == {"verified": True}


def test_verify_endpoint_requires_email_and_code(client):
    resp = client.post("/api/auth/verify-email-code", json={"email": "new@club.org"})

    assert resp.status_code == 400
    assert resp.json() == {"message": "Email and code are required"}
