from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field


class TextRequest(BaseModel):
    text: str


class DetectResponse(BaseModel):
    looks_like_transaction: bool


class DateGroupsRequest(BaseModel):
    items: list[dict[str, Any]]
    now: datetime | None = None
    locale: str | None = None


class DateGroupResponse(BaseModel):
    label: str
    key: str
    items: list[dict[str, Any]]


class BreakdownRequest(BaseModel):
    records: list[dict[str, Any]]
    labels: dict[str, str] | None = None
    percentages: bool = False


class SalaryScheduleRequest(BaseModel):
    amount: Decimal = Field(gt=0)
    description: str | None = None


class SuggestedDateResponse(BaseModel):
    next_date: date
