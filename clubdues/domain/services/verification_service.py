import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from clubdues.config import Settings
from clubdues.data.base import utcnow
from clubdues.data.repositories import user_repository, verification_repository
from clubdues.domain.errors import ConflictError, ValidationError
from clubdues.domain.services.auth_service import get_password_hash, verify_password
from clubdues.domain.services.user_service import normalize_email
from clubdues.integrations.mail_service import send_email

logger = logging.getLogger(__name__)

CODE_TTL = timedelta(minutes=5)


def generate_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def request_email_code(
    db: Session, settings: Settings, email: Optional[str], now: Optional[datetime] = None
) -> str:
    """
    Issue a fresh 6-digit code for an email that no account uses yet.
    Only the hash is stored; requesting again replaces the previous code.
    """
    address = normalize_email(email)
    if not address:
        raise ValidationError("Email is required")
    if user_repository.email_taken(db, address):
        raise ConflictError("Email already in use")

    now = now or utcnow()
    verification_repository.purge_expired(db, now)
    code = generate_code()
    verification_repository.save_code(db, address, get_password_hash(code), now + CODE_TTL)

    sent = send_email(
        settings,
        address,
        "Your verification code",
        f"Your code is: {code}. It expires in {int(CODE_TTL.total_seconds() // 60)} minutes.",
    )
    if not sent and not settings.is_production:
        logger.info("[EMAIL CODE] %s -> %s", address, code)
    return code


def verify_email_code(
    db: Session, email: Optional[str], code: Optional[str], now: Optional[datetime] = None
) -> bool:
    address = normalize_email(email)
    if not address or not code:
        raise ValidationError("Email and code are required")
    entry = verification_repository.get_live_code(db, address, now or utcnow())
    if entry is None:
        raise ValidationError("Code expired or not requested")
    code_hash, _ = entry
    if not verify_password(str(code).strip(), code_hash):
        raise ValidationError("Invalid code")
    verification_repository.delete_code(db, address)
    return True
