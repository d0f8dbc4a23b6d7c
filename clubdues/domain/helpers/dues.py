import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, List, Optional, Union

from clubdues.domain.helpers.months import month_token, token_year, year_months
from clubdues.domain.models.payment import Payment

# Month tokens are zero-padded YYYY-MM strings, so plain string comparison
# orders them chronologically across years as well.


@dataclass(frozen=True)
class DuesSummary:
    join_month: str
    current_month: str
    fixed_amount: float
    eligible_months: List[str] = field(default_factory=list)
    due_months: List[str] = field(default_factory=list)
    total_due: float = 0.0
    progress: int = 0
    streak: int = 0
    paid_this_year: float = 0.0


def effective_join_month(
    created_at: Optional[Union[date, datetime]],
    payments: Iterable[Payment],
    today: date,
) -> str:
    """
    Month from which dues are tracked: the account's creation month, else the
    earliest month in its payment history, else the current month.
    """
    if created_at is not None:
        return month_token(created_at)
    months = [p.month for p in payments if p.month]
    if months:
        return min(months)
    return month_token(today)


def eligible_months(join_month: str, today: date) -> List[str]:
    months = year_months(today.year)
    join_year = token_year(join_month)
    if join_year > today.year:
        return []
    if join_year < today.year:
        return months
    return [m for m in months if m >= join_month]


def calculate_dues(
    join_month: str,
    fixed_amount: float,
    payments: Iterable[Payment],
    today: date,
) -> DuesSummary:
    payments = list(payments)
    current = month_token(today)
    completed = {p.month for p in payments if p.is_completed}

    eligible = eligible_months(join_month, today)
    due = [m for m in eligible if m < current and m not in completed]
    paid_eligible = sum(1 for m in eligible if m in completed)
    progress = math.floor(paid_eligible * 100 / len(eligible) + 0.5) if eligible else 0

    streak = 0
    for m in reversed(year_months(today.year)):
        if m > current:
            continue
        if m not in completed:
            break
        streak += 1

    year_prefix = f"{today.year:04d}-"
    paid_this_year = sum(
        p.amount for p in payments if p.is_completed and p.month.startswith(year_prefix)
    )

    fixed_amount = fixed_amount or 0.0
    return DuesSummary(
        join_month=join_month,
        current_month=current,
        fixed_amount=fixed_amount,
        eligible_months=eligible,
        due_months=due,
        total_due=fixed_amount * len(due),
        progress=progress,
        streak=streak,
        paid_this_year=paid_this_year,
    )
