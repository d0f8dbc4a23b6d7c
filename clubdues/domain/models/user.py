from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class Role(Enum):
    ADMIN = "admin"
    MEMBER = "member"


@dataclass
class User:
    id: int
    name: str
    username: str
    hashed_password: str
    role: Role = Role.MEMBER
    email: Optional[str] = None
    fixed_amount: float = 0.0
    avatar_url: Optional[str] = None
    is_blocked: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
