import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from dateutil.parser import parse
from sqlalchemy.orm import Session

from clubdues.data.repositories import expense_repository
from clubdues.domain.errors import NotFoundError, ValidationError
from clubdues.domain.models.expense import Expense
from clubdues.domain.services.upload_service import (
    EXPENSE_PROOF_POLICY,
    IncomingFile,
    discard_file,
    store_file,
)
from clubdues.integrations.storage import StorageBackend

logger = logging.getLogger(__name__)

LATEST_LIMIT = 20


def _validate_type(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("type is required")
    return value.strip()


def _validate_amount(value) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError("amount must be a positive number")
    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError("amount must be a positive number")
    return amount


def _validate_date(value) -> datetime:
    if isinstance(value, datetime):
        moment = value
    else:
        try:
            moment = parse(str(value or ""))
        except (ValueError, OverflowError):
            raise ValidationError("date must be a valid date")
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def list_latest_expenses(db: Session, limit: int = LATEST_LIMIT) -> List[Expense]:
    return expense_repository.list_latest_expenses(db, limit)


def expense_totals(db: Session) -> Tuple[float, int]:
    return expense_repository.sum_expenses(db)


def create_expense(
    db: Session,
    storage: Optional[StorageBackend],
    type: Optional[str],
    amount,
    date,
    note: Optional[str] = None,
    proof: Optional[IncomingFile] = None,
) -> Expense:
    expense_type = _validate_type(type)
    value = _validate_amount(amount)
    moment = _validate_date(date)

    proof_url = store_file(storage, proof, EXPENSE_PROOF_POLICY)
    try:
        expense = expense_repository.add_expense(
            db, type=expense_type, amount=value, date=moment, note=note, proof_url=proof_url
        )
    except Exception:
        db.rollback()
        discard_file(storage, proof_url)
        raise
    logger.info("Expense %s created: %s %.2f", expense.id, expense.type, expense.amount)
    return expense


def update_expense(db: Session, expense_id: int, changes: Dict[str, Any]) -> Expense:
    update: Dict[str, Any] = {}
    if "type" in changes:
        if not isinstance(changes["type"], str) or not changes["type"].strip():
            raise ValidationError("type cannot be empty")
        update["type"] = changes["type"].strip()
    if "amount" in changes:
        update["amount"] = _validate_amount(changes["amount"])
    if "date" in changes:
        update["date"] = _validate_date(changes["date"])
    if "note" in changes:
        update["note"] = changes["note"]
    expense = expense_repository.update_expense(db, expense_id, **update)
    if expense is None:
        raise NotFoundError("Expense not found")
    logger.info("Expense %s updated (%s)", expense_id, ", ".join(sorted(update)) or "no changes")
    return expense


def delete_expense(db: Session, expense_id: int) -> None:
    if not expense_repository.delete_expense(db, expense_id):
        raise NotFoundError("Expense not found")
    logger.info("Expense %s deleted", expense_id)
