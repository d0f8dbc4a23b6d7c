from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from clubdues.data.base import get_db
from clubdues.domain.models.payment import Payment
from clubdues.domain.models.user import User
from clubdues.domain.services import payment_service, user_service
from clubdues.domain.services.auth_service import get_current_user, require_admin
from clubdues.domain.services.upload_service import PAYMENT_PROOF_POLICY, read_upload
from clubdues.integrations.storage import StorageBackend, get_storage_backend
from clubdues.presentation.user_api import DuesResponse, UserResponse


class PaymentResponse(BaseModel):
    id: int
    user_id: int
    month: str
    amount: float
    status: str
    proof_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[UserResponse] = None

    @staticmethod
    def from_domain(p: Payment, user: Optional[User] = None) -> "PaymentResponse":
        return PaymentResponse(
            id=p.id,
            user_id=p.user_id,
            month=p.month,
            amount=p.amount,
            status=p.status.value,
            proof_url=p.proof_url,
            created_at=p.created_at,
            updated_at=p.updated_at,
            user=UserResponse.from_domain(user) if user else None,
        )


class UnpaidResponse(BaseModel):
    month: str
    users: List[UserResponse]


class TotalResponse(BaseModel):
    total: float
    count: int


class MarkPaymentRequest(BaseModel):
    status: Optional[str] = None
    amount: Optional[float] = None


router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.get("/me", response_model=List[PaymentResponse])
def my_payments_endpoint(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    payments = payment_service.list_user_payments(db, current_user.id)
    return [PaymentResponse.from_domain(p) for p in payments]


@router.get("/me/dues", response_model=DuesResponse)
def my_dues_endpoint(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return DuesResponse.from_domain(user_service.dues_for_user(db, current_user))


@router.post("/submit", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def submit_payment_endpoint(
    month: Optional[str] = Form(None),
    amount: Optional[str] = Form(None),
    proof: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_backend),
    current_user: User = Depends(get_current_user),
):
    """
    Create or overwrite the caller's payment for ``month`` (YYYY-MM) and reset
    it to pending. ``proof`` is an optional PNG/JPEG/PDF file.
    """
    incoming = read_upload(proof, PAYMENT_PROOF_POLICY)
    payment = payment_service.submit_payment(
        db, storage, current_user, month, amount=amount, proof=incoming
    )
    return PaymentResponse.from_domain(payment)


@router.get("", response_model=List[PaymentResponse])
def list_payments_endpoint(
    status: Optional[str] = Query(None, description="pending or completed"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    rows = payment_service.list_payments(db, status)
    return [PaymentResponse.from_domain(p, u) for p, u in rows]


@router.get("/user/{user_id}", response_model=List[PaymentResponse])
def user_payments_endpoint(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    payments = payment_service.list_user_payments(db, user_id)
    return [PaymentResponse.from_domain(p) for p in payments]


@router.get("/unpaid", response_model=UnpaidResponse)
def unpaid_endpoint(
    month: Optional[str] = Query(None, description="YYYY-MM"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    month, users = payment_service.unpaid_members(db, month)
    return UnpaidResponse(month=month, users=[UserResponse.from_domain(u) for u in users])


@router.patch("/{payment_id}/mark", response_model=PaymentResponse)
def mark_payment_endpoint(
    payment_id: int,
    req: MarkPaymentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    payment = payment_service.mark_payment(db, payment_id, req.status, req.amount)
    return PaymentResponse.from_domain(payment)


@router.get("/total", response_model=TotalResponse)
def payment_total_endpoint(
    status: Optional[str] = Query(None, description="pending or completed"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    total, count = payment_service.payment_totals(db, status)
    return TotalResponse(total=total, count=count)
