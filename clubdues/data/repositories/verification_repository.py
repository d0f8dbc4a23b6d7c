from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import Column, DateTime, String

from clubdues.data.base import Base


class VerificationCodeORM(Base):
    __tablename__ = "verification_codes"
    email = Column(String, primary_key=True)
    code_hash = Column(String, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)


def save_code(db, email: str, code_hash: str, expires_at: datetime) -> None:
    entry = db.query(VerificationCodeORM).filter(VerificationCodeORM.email == email).first()
    if entry:
        entry.code_hash = code_hash
        entry.expires_at = expires_at
    else:
        db.add(VerificationCodeORM(email=email, code_hash=code_hash, expires_at=expires_at))
    db.commit()


def get_live_code(db, email: str, now: datetime) -> Optional[Tuple[str, datetime]]:
    entry = (
        db.query(VerificationCodeORM)
        .filter(VerificationCodeORM.email == email, VerificationCodeORM.expires_at > now)
        .first()
    )
    if entry is None:
        return None
    return entry.code_hash, entry.expires_at


def delete_code(db, email: str) -> None:
    db.query(VerificationCodeORM).filter(VerificationCodeORM.email == email).delete(
        synchronize_session=False
    )
    db.commit()


def purge_expired(db, now: datetime) -> int:
    deleted = (
        db.query(VerificationCodeORM)
        .filter(VerificationCodeORM.expires_at <= now)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted
