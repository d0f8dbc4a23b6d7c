from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from clubdues.config import get_settings
from clubdues.data.base import get_db
from clubdues.domain.errors import AuthorizationError
from clubdues.domain.models.user import User
from clubdues.domain.services import verification_service
from clubdues.domain.services.auth_service import (
    authenticate_user,
    create_access_token,
    get_current_user,
)
from clubdues.presentation.user_api import UserResponse

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse


class EmailCodeRequest(BaseModel):
    email: Optional[str] = None


class VerifyEmailCodeRequest(BaseModel):
    email: Optional[str] = None
    code: Optional[str] = None


@router.post("/login", response_model=LoginResponse)
def login_endpoint(req: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate_user(db, req.username or "", req.password or "")
    return LoginResponse(
        token=create_access_token(user), user=UserResponse.from_domain(user)
    )


@router.get("/me", response_model=UserResponse)
def read_users_me(current_user: User = Depends(get_current_user)):
    return UserResponse.from_domain(current_user)


@router.post("/signup")
def signup_endpoint():
    raise AuthorizationError("Signup disabled. Contact admin for an account.")


@router.post("/request-email-code")
def request_email_code_endpoint(req: EmailCodeRequest, db: Session = Depends(get_db)):
    verification_service.request_email_code(db, get_settings(), req.email)
    return {"message": "Code sent to email"}


@router.post("/verify-email-code")
def verify_email_code_endpoint(req: VerifyEmailCodeRequest, db: Session = Depends(get_db)):
    verified = verification_service.verify_email_code(db, req.email, req.code)
    return {"verified": verified}
