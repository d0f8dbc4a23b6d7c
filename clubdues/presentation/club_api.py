from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from clubdues.data.base import get_db
from clubdues.domain.models.user import User
from clubdues.domain.services import payment_service
from clubdues.domain.services.auth_service import get_current_user

router = APIRouter(prefix="/api", tags=["club"])


class BalanceResponse(BaseModel):
    income: float
    expenses: float
    balance: float


@router.get("/club/balance", response_model=BalanceResponse)
def club_balance_endpoint(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    """
    Completed payment income minus all expenses, computed on every call.
    """
    income, expenses, balance = payment_service.club_balance(db)
    return BalanceResponse(income=income, expenses=expenses, balance=balance)


@router.get("/health")
def health_endpoint(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"status": "ok", "database": "connected"}
