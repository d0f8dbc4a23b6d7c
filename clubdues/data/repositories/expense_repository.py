from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import Column, DateTime, Float, Integer, String, Text, func

from clubdues.data.base import Base, utcnow
from clubdues.domain.models.expense import Expense


class ExpenseORM(Base):
    __tablename__ = "expenses"
    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    type = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    note = Column(Text, nullable=True)
    proof_url = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


def expense_to_domain(expense_orm: ExpenseORM) -> Expense:
    return Expense(
        id=expense_orm.id,
        type=expense_orm.type,
        amount=expense_orm.amount,
        date=expense_orm.date,
        note=expense_orm.note,
        proof_url=expense_orm.proof_url,
        created_at=expense_orm.created_at,
        updated_at=expense_orm.updated_at,
    )


def get_expense(db, expense_id: int) -> Optional[Expense]:
    expense = db.query(ExpenseORM).filter(ExpenseORM.id == expense_id).first()
    return expense_to_domain(expense) if expense else None


def list_latest_expenses(db, limit: int = 20) -> List[Expense]:
    rows = (
        db.query(ExpenseORM)
        .order_by(ExpenseORM.date.desc(), ExpenseORM.id.desc())
        .limit(limit)
        .all()
    )
    return [expense_to_domain(e) for e in rows]


def add_expense(
    db,
    type: str,
    amount: float,
    date: datetime,
    note: Optional[str] = None,
    proof_url: Optional[str] = None,
) -> Expense:
    expense = ExpenseORM(type=type, amount=amount, date=date, note=note, proof_url=proof_url)
    db.add(expense)
    db.commit()
    db.refresh(expense)
    return expense_to_domain(expense)


def update_expense(db, expense_id: int, **fields) -> Optional[Expense]:
    expense = db.query(ExpenseORM).filter(ExpenseORM.id == expense_id).first()
    if expense is None:
        return None
    for key, value in fields.items():
        setattr(expense, key, value)
    db.commit()
    db.refresh(expense)
    return expense_to_domain(expense)


def delete_expense(db, expense_id: int) -> bool:
    expense = db.query(ExpenseORM).filter(ExpenseORM.id == expense_id).first()
    if expense:
        db.delete(expense)
        db.commit()
        return True
    return False


def sum_expenses(db) -> Tuple[float, int]:
    total, count = db.query(
        func.coalesce(func.sum(ExpenseORM.amount), 0.0), func.count(ExpenseORM.id)
    ).one()
    return float(total or 0.0), int(count or 0)
