from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class PaymentStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"


@dataclass
class Payment:
    id: int
    user_id: int
    month: str  # YYYY-MM
    amount: float
    status: PaymentStatus = PaymentStatus.PENDING
    proof_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.status == PaymentStatus.COMPLETED
