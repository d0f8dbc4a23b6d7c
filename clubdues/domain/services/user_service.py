import logging
import math
from datetime import date
from typing import Any, Dict, List, Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.orm import Session

from clubdues.config import Settings
from clubdues.data.base import utcnow
from clubdues.data.repositories import payment_repository, user_repository
from clubdues.domain.errors import ConflictError, NotFoundError, ValidationError
from clubdues.domain.helpers.dues import DuesSummary, calculate_dues, effective_join_month
from clubdues.domain.models.user import Role, User
from clubdues.domain.services.auth_service import (
    get_password_hash,
    normalize_username,
    validate_password,
)
from clubdues.domain.services.upload_service import (
    AVATAR_POLICY,
    IncomingFile,
    discard_file,
    store_file,
)
from clubdues.integrations.storage import StorageBackend

logger = logging.getLogger(__name__)


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Lower-cased, syntax-checked email, or None when blank."""
    if email is None or not str(email).strip():
        return None
    try:
        result = validate_email(str(email).strip(), check_deliverability=False)
    except EmailNotValidError:
        raise ValidationError("email must be a valid email address")
    return result.normalized.lower()


def parse_role(role: Optional[str]) -> Role:
    try:
        return Role(str(role).strip().lower())
    except ValueError:
        raise ValidationError("invalid role")


def _validate_fixed_amount(fixed_amount: Optional[float]) -> float:
    if fixed_amount is None:
        return 0.0
    amount = float(fixed_amount)
    if not math.isfinite(amount) or amount < 0:
        raise ValidationError("fixed_amount must be a non-negative number")
    return amount


def get_user_or_404(db: Session, user_id: int) -> User:
    user = user_repository.get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def list_users(db: Session) -> List[User]:
    return user_repository.list_users(db)


def create_user(
    db: Session,
    storage: Optional[StorageBackend],
    name: Optional[str],
    username: Optional[str],
    password: Optional[str],
    email: Optional[str] = None,
    fixed_amount: Optional[float] = None,
    role: Optional[str] = None,
    avatar: Optional[IncomingFile] = None,
) -> User:
    name = str(name or "").strip()
    if not name:
        raise ValidationError("name is required")
    uname = normalize_username(username)
    if not uname:
        raise ValidationError("username is required")
    password = validate_password(password)
    if user_repository.username_taken(db, uname):
        raise ConflictError("Username exists")
    email_value = normalize_email(email)
    if email_value and user_repository.email_taken(db, email_value):
        raise ConflictError("Email exists")
    amount = _validate_fixed_amount(fixed_amount)
    user_role = parse_role(role) if role else Role.MEMBER
    hashed = get_password_hash(password)

    avatar_url = store_file(storage, avatar, AVATAR_POLICY)
    try:
        user = user_repository.create_user(
            db,
            name=name,
            username=uname,
            hashed_password=hashed,
            role=user_role,
            email=email_value,
            fixed_amount=amount,
            avatar_url=avatar_url,
        )
    except Exception:
        db.rollback()
        discard_file(storage, avatar_url)
        raise
    logger.info("Created %s account %s (%s)", user.role.value, user.id, user.username)
    return user


def update_user(db: Session, user_id: int, changes: Dict[str, Any]) -> User:
    get_user_or_404(db, user_id)
    update: Dict[str, Any] = {}
    if "name" in changes:
        name = str(changes["name"] or "").strip()
        if not name:
            raise ValidationError("name cannot be empty")
        update["name"] = name
    if "role" in changes:
        update["role"] = parse_role(changes["role"])
    if "username" in changes:
        uname = normalize_username(changes["username"])
        if not uname:
            raise ValidationError("username cannot be empty")
        if user_repository.username_taken(db, uname, exclude_id=user_id):
            raise ConflictError("Username exists")
        update["username"] = uname
    if "email" in changes:
        email_value = normalize_email(changes["email"])
        if email_value and user_repository.email_taken(db, email_value, exclude_id=user_id):
            raise ConflictError("Email exists")
        update["email"] = email_value
    if "fixed_amount" in changes:
        update["fixed_amount"] = _validate_fixed_amount(changes["fixed_amount"])
    return user_repository.update_user(db, user_id, **update)


def set_blocked(db: Session, acting_user: User, user_id: int, blocked: bool) -> User:
    if blocked and acting_user.id == user_id:
        raise ValidationError("You cannot block your own account")
    user = user_repository.set_blocked(db, user_id, blocked)
    if user is None:
        raise NotFoundError("User not found")
    logger.info("User %s %s by admin %s", user_id, "blocked" if blocked else "unblocked", acting_user.id)
    return user


def reset_password(db: Session, user_id: int, password: Optional[str]) -> None:
    password = validate_password(password)
    get_user_or_404(db, user_id)
    user_repository.update_password(db, user_id, get_password_hash(password))
    logger.info("Password reset for user %s", user_id)


def delete_user_account(db: Session, acting_user: User, user_id: int) -> None:
    """Delete a user together with their payment records. Expenses are club-wide and stay."""
    if acting_user.id == user_id:
        raise ValidationError("You cannot delete your own account")
    get_user_or_404(db, user_id)
    removed = payment_repository.delete_all_user_data(db, user_id)
    user_repository.delete_user(db, user_id)
    logger.info("Deleted user %s and %d payment records", user_id, removed)


def dues_for_user(db: Session, user: User, today: Optional[date] = None) -> DuesSummary:
    today = today or utcnow().date()
    payments = payment_repository.list_user_payments(db, user.id)
    join_month = effective_join_month(user.created_at, payments, today)
    return calculate_dues(join_month, user.fixed_amount, payments, today)


def ensure_default_admin(db: Session, settings: Settings) -> Optional[User]:
    """Create the bootstrap admin when a password is configured and the username is free."""
    if not settings.default_admin_password:
        return None
    username = normalize_username(settings.default_admin_username)
    existing = user_repository.get_user_by_username(db, username)
    if existing:
        return existing
    user = user_repository.create_user(
        db,
        name="Admin",
        username=username,
        hashed_password=get_password_hash(settings.default_admin_password),
        role=Role.ADMIN,
        email=normalize_email(settings.default_admin_email),
    )
    logger.info("Default admin created: username=%r", username)
    return user
