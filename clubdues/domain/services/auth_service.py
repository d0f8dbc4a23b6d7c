import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from clubdues.config import get_settings
from clubdues.data.base import get_db
from clubdues.data.repositories.user_repository import get_user, get_user_by_username
from clubdues.domain.errors import AuthenticationError, AuthorizationError, ValidationError
from clubdues.domain.models.user import Role, User

logger = logging.getLogger(__name__)

settings = get_settings()

pwd_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds
)

ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 6
BLOCKED_MESSAGE = "Account blocked. Please contact admin."

bearer_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def validate_password(password: Optional[str]) -> str:
    if not password or len(str(password)) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    return str(password)


def normalize_username(username: Optional[str]) -> str:
    return str(username or "").strip().lower()


def create_access_token(user: User, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=settings.access_token_expire_days)
    )
    to_encode = {"sub": str(user.id), "role": user.role.value, "exp": expire}
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def authenticate_user(db: Session, username: str, password: str) -> User:
    user = get_user_by_username(db, normalize_username(username))
    if not user or not verify_password(password or "", user.hashed_password):
        logger.info("Failed login for username=%r", normalize_username(username))
        raise AuthenticationError("Invalid credentials")
    if user.is_blocked:
        logger.info("Blocked user %s attempted to log in", user.id)
        raise AuthorizationError(BLOCKED_MESSAGE)
    logger.info("User %s logged in", user.id)
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise AuthenticationError("No token")
    try:
        payload = jwt.decode(
            credentials.credentials, settings.secret_key, algorithms=[ALGORITHM]
        )
        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise AuthenticationError("Invalid token")
    user = get_user(db, user_id)
    if user is None:
        raise AuthenticationError("Invalid token")
    if user.is_blocked:
        raise AuthorizationError(BLOCKED_MESSAGE)
    return user


def require_role(*roles: Role):
    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise AuthorizationError("Forbidden")
        return current_user

    return role_checker


require_admin = require_role(Role.ADMIN)
