from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from clubdues.data.base import get_db
from clubdues.domain.models.expense import Expense
from clubdues.domain.models.user import User
from clubdues.domain.services import expense_service
from clubdues.domain.services.auth_service import get_current_user, require_admin
from clubdues.domain.services.upload_service import EXPENSE_PROOF_POLICY, read_upload
from clubdues.integrations.storage import StorageBackend, get_storage_backend
from clubdues.presentation.payments_api import TotalResponse


class ExpenseResponse(BaseModel):
    id: int
    type: str
    amount: float
    date: datetime
    note: Optional[str] = None
    proof_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @staticmethod
    def from_domain(e: Expense) -> "ExpenseResponse":
        return ExpenseResponse(
            id=e.id,
            type=e.type,
            amount=e.amount,
            date=e.date,
            note=e.note,
            proof_url=e.proof_url,
            created_at=e.created_at,
            updated_at=e.updated_at,
        )


class UpdateExpenseRequest(BaseModel):
    type: Optional[str] = None
    amount: Optional[float] = None
    date: Optional[str] = None
    note: Optional[str] = None


router = APIRouter(prefix="/api/expenses", tags=["expenses"])


@router.get("/latest", response_model=List[ExpenseResponse])
def latest_expenses_endpoint(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return [ExpenseResponse.from_domain(e) for e in expense_service.list_latest_expenses(db)]


@router.get("/total", response_model=TotalResponse)
def expense_total_endpoint(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    total, count = expense_service.expense_totals(db)
    return TotalResponse(total=total, count=count)


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
def create_expense_endpoint(
    type: Optional[str] = Form(None),
    amount: Optional[str] = Form(None),
    date: Optional[str] = Form(None),
    note: Optional[str] = Form(None),
    proof: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_backend),
    current_user: User = Depends(require_admin),
):
    incoming = read_upload(proof, EXPENSE_PROOF_POLICY)
    expense = expense_service.create_expense(
        db, storage, type=type, amount=amount, date=date, note=note, proof=incoming
    )
    return ExpenseResponse.from_domain(expense)


@router.patch("/{expense_id}", response_model=ExpenseResponse)
def update_expense_endpoint(
    expense_id: int,
    req: UpdateExpenseRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    expense = expense_service.update_expense(db, expense_id, req.model_dump(exclude_unset=True))
    return ExpenseResponse.from_domain(expense)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense_endpoint(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    expense_service.delete_expense(db, expense_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
