"""Per-user financial records (``users/{uid}/<collection>``)."""

import datetime as dt
from dataclasses import dataclass
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TransactionType(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionStatus(StrEnum):
    PAID = "paid"
    PENDING = "pending"


class RecurrenceSchedule(StrEnum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"


class LineItem(BaseModel):
    name: str = Field(..., min_length=1)
    amount: float


class _RecordIn(BaseModel):
    model_config = ConfigDict(extra="forbid")


class TransactionIn(_RecordIn):
    type: TransactionType
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    date: dt.date
    description: str = Field(..., min_length=1, max_length=500)
    category: str = Field(..., min_length=1, max_length=80)
    subcategory: Optional[str] = None
    is_recurring: bool = False
    recurrence_schedule: Optional[RecurrenceSchedule] = None
    status: TransactionStatus = TransactionStatus.PAID
    credit_card_id: Optional[str] = None
    gross_amount: Optional[float] = None
    total_deductions: Optional[float] = None
    earnings: Optional[list[LineItem]] = None
    deductions: Optional[list[LineItem]] = None
    fgts_amount: Optional[float] = None
    company_name: Optional[str] = None
    notes: Optional[str] = None
    vendor: Optional[str] = None
    consumption: Optional[str] = None


class DebtIn(_RecordIn):
    name: str = Field(..., min_length=1, max_length=120)
    total_amount: float = Field(..., gt=0, allow_inf_nan=False)
    paid_amount: float = Field(0.0, ge=0, allow_inf_nan=False)
    creditor: str = ""


class GoalContribution(BaseModel):
    id: str
    amount: float
    date: dt.date


class GoalIn(_RecordIn):
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    category: str = "Outros"
    target_amount: float = Field(..., gt=0, allow_inf_nan=False)
    current_amount: float = Field(0.0, ge=0, allow_inf_nan=False)
    target_date: Optional[dt.date] = None
    monthly_contribution: Optional[float] = Field(None, ge=0)
    contributions: Optional[list[GoalContribution]] = None


class BudgetIn(_RecordIn):
    name: str = Field(..., min_length=1, max_length=120)
    category: str = Field(..., min_length=1, max_length=80)
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    spent_amount: Optional[float] = Field(None, ge=0)
    period: str = Field("monthly", pattern="^monthly$")
    start_date: dt.date
    end_date: dt.date


class CreditCardIn(_RecordIn):
    name: str = Field(..., min_length=1, max_length=80)
    last_four_digits: str = Field(..., pattern=r"^\d{4}$")
    limit: float = Field(..., gt=0, allow_inf_nan=False)
    due_date: int = Field(..., ge=1, le=31)
    closing_date: int = Field(..., ge=1, le=31)


@dataclass(frozen=True)
class RecordCollection:
    name: str
    subject_type: str
    schema: type[_RecordIn]
    order_by: str
    descending: bool = False


RECORD_COLLECTIONS: dict[str, RecordCollection] = {
    definition.name: definition
    for definition in (
        RecordCollection("transactions", "Transaction", TransactionIn, "date", descending=True),
        RecordCollection("debts", "Debt", DebtIn, "name"),
        RecordCollection("goals", "Goal", GoalIn, "name"),
        RecordCollection("budgets", "Budget", BudgetIn, "start_date", descending=True),
        RecordCollection("credit_cards", "CreditCard", CreditCardIn, "name"),
    )
}


class RecordListResponse(BaseModel):
    items: list[dict]
    total: int
