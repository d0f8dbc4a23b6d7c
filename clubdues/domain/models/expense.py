from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Expense:
    id: int
    type: str
    amount: float
    date: datetime
    note: Optional[str] = None
    proof_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        # Basic validation
        if self.amount <= 0:
            raise ValueError("Expense amount must be positive.")
