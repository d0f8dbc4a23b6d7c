import logging
import math
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from clubdues.data.repositories import expense_repository, payment_repository, user_repository
from clubdues.domain.errors import NotFoundError, ValidationError
from clubdues.domain.helpers.months import parse_month_token
from clubdues.domain.models.payment import Payment, PaymentStatus
from clubdues.domain.models.user import User
from clubdues.domain.services.upload_service import (
    PAYMENT_PROOF_POLICY,
    IncomingFile,
    discard_file,
    store_file,
)
from clubdues.integrations.storage import StorageBackend

logger = logging.getLogger(__name__)


def parse_status(status: Optional[str]) -> Optional[PaymentStatus]:
    if status is None or str(status).strip() == "":
        return None
    try:
        return PaymentStatus(str(status).strip().lower())
    except ValueError:
        raise ValidationError('status must be "pending" or "completed"')


def _parse_optional_amount(amount) -> Optional[float]:
    """Submitted amount as a float, or None when blank or not a number."""
    if amount is None or str(amount).strip() == "":
        return None
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def resolve_amount(
    override: Optional[float], existing: Optional[Payment], fixed_amount: float
) -> float:
    """
    Amount for a submission: a positive override, else the month's previous
    positive amount, else the member's positive fixed amount, else zero.
    """
    if override is not None and override > 0:
        return override
    if existing is not None and existing.amount and existing.amount > 0:
        return existing.amount
    if fixed_amount and fixed_amount > 0:
        return fixed_amount
    return 0.0


def list_user_payments(db: Session, user_id: int) -> List[Payment]:
    return payment_repository.list_user_payments(db, user_id)


def list_payments(db: Session, status: Optional[str] = None) -> List[Tuple[Payment, User]]:
    return payment_repository.list_payments_with_users(db, parse_status(status))


def submit_payment(
    db: Session,
    storage: Optional[StorageBackend],
    user: User,
    month: Optional[str],
    amount=None,
    proof: Optional[IncomingFile] = None,
) -> Payment:
    month = parse_month_token(month)
    existing = payment_repository.get_payment_for_month(db, user.id, month)
    if existing is not None and existing.is_completed:
        raise ValidationError("Payment for this month is already completed")
    final_amount = resolve_amount(_parse_optional_amount(amount), existing, user.fixed_amount)

    proof_url = store_file(storage, proof, PAYMENT_PROOF_POLICY)
    try:
        payment = payment_repository.upsert_month_payment(
            db, user.id, month, final_amount, proof_url
        )
    except Exception:
        db.rollback()
        discard_file(storage, proof_url)
        raise
    logger.info(
        "User %s submitted payment for %s (amount=%s, proof=%s)",
        user.id,
        month,
        final_amount,
        bool(proof_url),
    )
    return payment


def mark_payment(
    db: Session, payment_id: int, status: Optional[str], amount: Optional[float] = None
) -> Payment:
    new_status = parse_status(status)
    if new_status is None:
        raise ValidationError('status must be "pending" or "completed"')
    current = payment_repository.get_payment(db, payment_id)
    if current is None:
        raise NotFoundError("Payment not found")
    if current.is_completed and new_status == PaymentStatus.PENDING:
        raise ValidationError("Completed payments cannot be changed back to pending")

    update = {"status": new_status}
    if amount is not None:
        value = float(amount)
        if not math.isfinite(value) or value <= 0:
            raise ValidationError("amount must be a positive number")
        update["amount"] = value
    payment = payment_repository.update_payment(db, payment_id, **update)
    logger.info("Payment %s marked %s", payment_id, new_status.value)
    return payment


def unpaid_members(db: Session, month: Optional[str]) -> Tuple[str, List[User]]:
    month = parse_month_token(month)
    paid_ids = payment_repository.completed_user_ids_for_month(db, month)
    return month, user_repository.list_users_excluding(db, paid_ids)


def payment_totals(db: Session, status: Optional[str] = None) -> Tuple[float, int]:
    return payment_repository.sum_payments(db, parse_status(status))


def club_balance(db: Session) -> Tuple[float, float, float]:
    """Income from completed payments, total expenses, and their difference."""
    income, _ = payment_repository.sum_payments(db, PaymentStatus.COMPLETED)
    expenses, _ = expense_repository.sum_expenses(db)
    return income, expenses, income - expenses
