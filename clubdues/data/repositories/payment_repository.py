from typing import List, Optional, Tuple

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy import Enum as SAEnum
from sqlalchemy.exc import IntegrityError

from clubdues.data.base import Base, utcnow
from clubdues.data.repositories.user_repository import UserORM, user_to_domain
from clubdues.domain.models.payment import Payment, PaymentStatus
from clubdues.domain.models.user import User


class PaymentORM(Base):
    __tablename__ = "payments"
    __table_args__ = (
        UniqueConstraint("user_id", "month", name="uq_payments_user_month"),
    )
    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    month = Column(String(7), nullable=False)  # YYYY-MM
    amount = Column(Float, nullable=False, default=0.0)
    status = Column(
        SAEnum(PaymentStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    proof_url = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


def payment_to_domain(payment_orm: PaymentORM) -> Payment:
    return Payment(
        id=payment_orm.id,
        user_id=payment_orm.user_id,
        month=payment_orm.month,
        amount=payment_orm.amount,
        status=payment_orm.status,
        proof_url=payment_orm.proof_url,
        created_at=payment_orm.created_at,
        updated_at=payment_orm.updated_at,
    )


def _find_month(db, user_id: int, month: str) -> Optional[PaymentORM]:
    return (
        db.query(PaymentORM)
        .filter(PaymentORM.user_id == user_id, PaymentORM.month == month)
        .first()
    )


def get_payment(db, payment_id: int) -> Optional[Payment]:
    payment = db.query(PaymentORM).filter(PaymentORM.id == payment_id).first()
    return payment_to_domain(payment) if payment else None


def get_payment_for_month(db, user_id: int, month: str) -> Optional[Payment]:
    payment = _find_month(db, user_id, month)
    return payment_to_domain(payment) if payment else None


def list_user_payments(db, user_id: int) -> List[Payment]:
    rows = (
        db.query(PaymentORM)
        .filter(PaymentORM.user_id == user_id)
        .order_by(PaymentORM.created_at.desc(), PaymentORM.id.desc())
        .all()
    )
    return [payment_to_domain(p) for p in rows]


def list_payments_with_users(
    db, status: Optional[PaymentStatus] = None
) -> List[Tuple[Payment, User]]:
    query = db.query(PaymentORM, UserORM).join(UserORM, PaymentORM.user_id == UserORM.id)
    if status is not None:
        query = query.filter(PaymentORM.status == status)
    rows = query.order_by(PaymentORM.created_at.desc(), PaymentORM.id.desc()).all()
    return [(payment_to_domain(p), user_to_domain(u)) for p, u in rows]


def completed_user_ids_for_month(db, month: str) -> List[int]:
    rows = (
        db.query(PaymentORM.user_id)
        .filter(PaymentORM.month == month, PaymentORM.status == PaymentStatus.COMPLETED)
        .all()
    )
    return [r[0] for r in rows]


def upsert_month_payment(
    db, user_id: int, month: str, amount: float, proof_url: Optional[str]
) -> Payment:
    """
    Insert or overwrite the single (user, month) record, resetting it to pending.
    The stored proof is only replaced when a new one is given.
    A concurrent insert that wins the unique constraint turns this call into an update.
    """
    values = {"amount": amount, "status": PaymentStatus.PENDING}
    if proof_url:
        values["proof_url"] = proof_url
    payment = _find_month(db, user_id, month)
    if payment is None:
        payment = PaymentORM(user_id=user_id, month=month, **values)
        db.add(payment)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            payment = _find_month(db, user_id, month)
            for key, value in values.items():
                setattr(payment, key, value)
            db.commit()
    else:
        for key, value in values.items():
            setattr(payment, key, value)
        db.commit()
    db.refresh(payment)
    return payment_to_domain(payment)


def update_payment(db, payment_id: int, **fields) -> Optional[Payment]:
    payment = db.query(PaymentORM).filter(PaymentORM.id == payment_id).first()
    if payment is None:
        return None
    for key, value in fields.items():
        setattr(payment, key, value)
    db.commit()
    db.refresh(payment)
    return payment_to_domain(payment)


def sum_payments(db, status: Optional[PaymentStatus] = None) -> Tuple[float, int]:
    query = db.query(func.coalesce(func.sum(PaymentORM.amount), 0.0), func.count(PaymentORM.id))
    if status is not None:
        query = query.filter(PaymentORM.status == status)
    total, count = query.one()
    return float(total or 0.0), int(count or 0)


def delete_all_user_data(db, user_id: int) -> int:
    deleted = (
        db.query(PaymentORM)
        .filter(PaymentORM.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted
