from dataclasses import dataclass, field
from datetime import date as Date
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from finance_assistant.domain.categories import is_valid_category

T = TypeVar("T")


class TransactionType(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


def _date_part(value: Any) -> Any:
    # Backend serializes calendar dates as full ISO timestamps.
    if isinstance(value, str) and len(value) > 10 and value[10] in {"T", " "}:
        return value[:10]
    if isinstance(value, datetime):
        return value.date()
    return value


class ApiModel(BaseModel):
    """Base for models exchanged with the backend, which speaks camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TransactionFields(ApiModel):
    amount: Decimal = Field(gt=0)
    category: str
    description: str | None = None
    date: Date

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, value: Any) -> Any:
        return _date_part(value)


class TransactionCandidate(ApiModel):
    amount: Decimal = Field(gt=0)
    category: str
    description: str | None = None
    date: Date = Field(default_factory=Date.today)
    type: TransactionType
    original_text: str = ""

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, value: Any) -> Any:
        # Parsers leave the date out when the text does not mention one.
        if value is None or value == "":
            return Date.today()
        return _date_part(value)

    @model_validator(mode="after")
    def check_category(self) -> "TransactionCandidate":
        if not is_valid_category(self.type, self.category):
            raise ValueError(f"Category '{self.category}' is not a valid {self.type.value} category")
        return self

    def to_fields(self) -> TransactionFields:
        return TransactionFields(
            amount=self.amount,
            category=self.category,
            description=self.description,
            date=self.date,
        )


class Expense(ApiModel):
    id: str
    amount: Decimal
    category: str
    description: str | None = None
    date: Date
    source: str | None = None
    created_at: datetime | None = None

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, value: Any) -> Any:
        return _date_part(value)


class Income(Expense):
    pass


class RecurringFields(ApiModel):
    type: TransactionType
    amount: Decimal = Field(gt=0)
    category: str
    frequency: Frequency
    next_date: Date
    description: str | None = None

    @field_validator("next_date", mode="before")
    @classmethod
    def normalize_date(cls, value: Any) -> Any:
        return _date_part(value)

    @model_validator(mode="after")
    def check_category(self) -> "RecurringFields":
        if not is_valid_category(self.type, self.category):
            raise ValueError(f"Category '{self.category}' is not a valid {self.type.value} category")
        return self


class RecurringUpdate(ApiModel):
    type: TransactionType | None = None
    amount: Decimal | None = Field(default=None, gt=0)
    category: str | None = None
    frequency: Frequency | None = None
    next_date: Date | None = None
    description: str | None = None

    @field_validator("next_date", mode="before")
    @classmethod
    def normalize_date(cls, value: Any) -> Any:
        return _date_part(value)


class RecurringTransaction(ApiModel):
    id: str
    type: TransactionType
    amount: Decimal = Field(gt=0)
    category: str
    # Records written by other clients may carry a frequency outside the enum; totals count it as monthly.
    frequency: Frequency | str = Field(union_mode="left_to_right")
    next_date: Date
    is_active: bool = True
    description: str | None = None

    @field_validator("next_date", mode="before")
    @classmethod
    def normalize_date(cls, value: Any) -> Any:
        return _date_part(value)


class RecurringSummary(BaseModel):
    monthly_expense: Decimal
    monthly_income: Decimal
    net: Decimal
    active_count: int
    inactive_count: int


class ChartPoint(BaseModel):
    name: str
    value: float


class PeriodComparison(BaseModel):
    expense_total: Decimal
    income_total: Decimal
    balance: Decimal
    previous_expense_total: Decimal
    previous_income_total: Decimal
    previous_balance: Decimal
    expense_change_percent: float
    income_change_percent: float
    balance_change: Decimal


@dataclass
class DateGroup(Generic[T]):
    label: str
    key: str
    items: list[T] = field(default_factory=list)
