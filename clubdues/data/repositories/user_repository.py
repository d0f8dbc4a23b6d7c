from typing import List, Optional

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String
from sqlalchemy import Enum as SAEnum

from clubdues.data.base import Base, utcnow
from clubdues.domain.models.user import Role, User


class UserORM(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=True)
    hashed_password = Column(String, nullable=False)
    role = Column(
        SAEnum(Role, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.MEMBER,
    )
    fixed_amount = Column(Float, nullable=False, default=0.0)
    avatar_url = Column(String, nullable=True)
    is_blocked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


def user_to_domain(user_orm: UserORM) -> User:
    return User(
        id=user_orm.id,
        name=user_orm.name,
        username=user_orm.username,
        email=user_orm.email,
        hashed_password=user_orm.hashed_password,
        role=user_orm.role,
        fixed_amount=user_orm.fixed_amount or 0.0,
        avatar_url=user_orm.avatar_url,
        is_blocked=bool(user_orm.is_blocked),
        created_at=user_orm.created_at,
        updated_at=user_orm.updated_at,
    )


def _get_orm(db, user_id: int) -> Optional[UserORM]:
    return db.query(UserORM).filter(UserORM.id == user_id).first()


def get_user(db, user_id: int) -> Optional[User]:
    user = _get_orm(db, user_id)
    return user_to_domain(user) if user else None


def get_user_by_username(db, username: str) -> Optional[User]:
    user = db.query(UserORM).filter(UserORM.username == username).first()
    return user_to_domain(user) if user else None


def username_taken(db, username: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(UserORM.id).filter(UserORM.username == username)
    if exclude_id is not None:
        query = query.filter(UserORM.id != exclude_id)
    return query.first() is not None


def email_taken(db, email: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(UserORM.id).filter(UserORM.email == email)
    if exclude_id is not None:
        query = query.filter(UserORM.id != exclude_id)
    return query.first() is not None


def list_users(db) -> List[User]:
    return [user_to_domain(u) for u in db.query(UserORM).order_by(UserORM.id).all()]


def list_users_excluding(db, excluded_ids: List[int]) -> List[User]:
    query = db.query(UserORM)
    if excluded_ids:
        query = query.filter(UserORM.id.notin_(excluded_ids))
    return [user_to_domain(u) for u in query.order_by(UserORM.name).all()]


def create_user(
    db,
    name: str,
    username: str,
    hashed_password: str,
    role: Role = Role.MEMBER,
    email: Optional[str] = None,
    fixed_amount: float = 0.0,
    avatar_url: Optional[str] = None,
) -> User:
    db_user = UserORM(
        name=name,
        username=username,
        email=email,
        hashed_password=hashed_password,
        role=role,
        fixed_amount=fixed_amount,
        avatar_url=avatar_url,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return user_to_domain(db_user)


def update_user(db, user_id: int, **fields) -> Optional[User]:
    user = _get_orm(db, user_id)
    if user is None:
        return None
    for key, value in fields.items():
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return user_to_domain(user)


def update_password(db, user_id: int, new_hashed_password: str) -> Optional[User]:
    return update_user(db, user_id, hashed_password=new_hashed_password)


def set_blocked(db, user_id: int, blocked: bool) -> Optional[User]:
    return update_user(db, user_id, is_blocked=blocked)


def delete_user(db, user_id: int) -> bool:
    user = _get_orm(db, user_id)
    if user:
        db.delete(user)
        db.commit()
        return True
    return False
