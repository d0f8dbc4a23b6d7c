from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from clubdues.data.base import get_db
from clubdues.domain.helpers.dues import DuesSummary
from clubdues.domain.models.user import User
from clubdues.domain.services import user_service
from clubdues.domain.services.auth_service import require_admin
from clubdues.domain.services.upload_service import AVATAR_POLICY, read_upload
from clubdues.integrations.storage import StorageBackend, get_storage_backend


class UserResponse(BaseModel):
    id: int
    name: str
    username: str
    email: Optional[str] = None
    role: str
    fixed_amount: float
    avatar_url: Optional[str] = None
    is_blocked: bool = False
    created_at: Optional[datetime] = None

    @staticmethod
    def from_domain(u: User) -> "UserResponse":
        return UserResponse(
            id=u.id,
            name=u.name,
            username=u.username,
            email=u.email,
            role=u.role.value,
            fixed_amount=u.fixed_amount,
            avatar_url=u.avatar_url,
            is_blocked=u.is_blocked,
            created_at=u.created_at,
        )


class DuesResponse(BaseModel):
    join_month: str
    current_month: str
    fixed_amount: float
    eligible_months: List[str]
    due_months: List[str]
    due_count: int
    total_due: float
    progress: int
    streak: int
    paid_this_year: float

    @staticmethod
    def from_domain(d: DuesSummary) -> "DuesResponse":
        return DuesResponse(
            join_month=d.join_month,
            current_month=d.current_month,
            fixed_amount=d.fixed_amount,
            eligible_months=d.eligible_months,
            due_months=d.due_months,
            due_count=len(d.due_months),
            total_due=d.total_due,
            progress=d.progress,
            streak=d.streak,
            paid_this_year=d.paid_this_year,
        )


class CreatedResponse(BaseModel):
    id: int


class UpdateUserRequest(BaseModel):
    name: Optional[str] = None
    role: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    fixed_amount: Optional[float] = None


class BlockUserRequest(BaseModel):
    blocked: bool = False


class BlockUserResponse(BaseModel):
    message: str
    user: UserResponse


class ResetPasswordRequest(BaseModel):
    password: Optional[str] = None


router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=List[UserResponse])
def list_users_endpoint(
    db: Session = Depends(get_db), current_user: User = Depends(require_admin)
):
    return [UserResponse.from_domain(u) for u in user_service.list_users(db)]


@router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
def create_user_endpoint(
    name: Optional[str] = Form(None),
    username: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    fixed_amount: Optional[float] = Form(None),
    role: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_backend),
    current_user: User = Depends(require_admin),
):
    """
    Create a member (or admin) account. Accepts multipart form data with an
    optional ``avatar`` image.
    """
    incoming = read_upload(avatar, AVATAR_POLICY)
    user = user_service.create_user(
        db,
        storage,
        name=name,
        username=username,
        password=password,
        email=email,
        fixed_amount=fixed_amount,
        role=role,
        avatar=incoming,
    )
    return CreatedResponse(id=user.id)


@router.patch("/{user_id}", response_model=UserResponse)
def update_user_endpoint(
    user_id: int,
    req: UpdateUserRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = user_service.update_user(db, user_id, req.model_dump(exclude_unset=True))
    return UserResponse.from_domain(user)


@router.patch("/{user_id}/block", response_model=BlockUserResponse)
def block_user_endpoint(
    user_id: int,
    req: BlockUserRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = user_service.set_blocked(db, current_user, user_id, req.blocked)
    return BlockUserResponse(
        message="User blocked" if req.blocked else "User unblocked",
        user=UserResponse.from_domain(user),
    )


@router.patch("/{user_id}/password")
def reset_password_endpoint(
    user_id: int,
    req: ResetPasswordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user_service.reset_password(db, user_id, req.password)
    return {"message": "Password updated"}


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user_endpoint(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user_service.delete_user_account(db, current_user, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{user_id}/dues", response_model=DuesResponse)
def user_dues_endpoint(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = user_service.get_user_or_404(db, user_id)
    return DuesResponse.from_domain(user_service.dues_for_user(db, user))
