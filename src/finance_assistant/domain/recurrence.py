import calendar
from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum

from finance_assistant.models import Frequency, RecurringSummary, RecurringTransaction, TransactionType

# Fixed approximation, not calendar-exact.
_MONTHLY_FACTORS: dict[str, tuple[Decimal, Decimal]] = {
    Frequency.DAILY.value: (Decimal(30), Decimal(1)),
    Frequency.WEEKLY.value: (Decimal(4), Decimal(1)),
    Frequency.MONTHLY.value: (Decimal(1), Decimal(1)),
    Frequency.YEARLY.value: (Decimal(1), Decimal(12)),
}


def _as_decimal(amount: Decimal | int | float | str) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


def to_monthly_equivalent(
    amount: Decimal | int | float | str,
    frequency: Frequency | str | None,
) -> Decimal:
    """Monthly figure for an amount charged once per ``frequency``; unknown frequencies count as monthly."""
    value = _as_decimal(amount)
    key = frequency.value if isinstance(frequency, Enum) else str(frequency or "").lower()
    multiplier, divisor = _MONTHLY_FACTORS.get(key, (Decimal(1), Decimal(1)))
    return value * multiplier / divisor


def _add_months(anchor: date, months: int) -> date:
    month_index = anchor.month - 1 + months
    year = anchor.year + month_index // 12
    month = month_index % 12 + 1
    day = min(anchor.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def next_occurrence(today: date, creating: bool = True) -> date:
    """
    Suggested first ``next_date`` for a new monthly schedule such as a salary.

    Today if it is the 1st, otherwise the 1st of next month. This is a default
    offered to the user when creating; edits keep the date they were given.
    """
    if not creating:
        return today
    if today.day > 1:
        return _add_months(today.replace(day=1), 1)
    return today


def advance_occurrence(anchor: date, frequency: Frequency | str) -> date:
    """Occurrence that follows ``anchor``; month ends clamp (Jan 31 -> Feb 28)."""
    key = frequency.value if isinstance(frequency, Enum) else str(frequency).lower()
    if key == Frequency.DAILY.value:
        return anchor + timedelta(days=1)
    if key == Frequency.WEEKLY.value:
        return anchor + timedelta(days=7)
    if key == Frequency.MONTHLY.value:
        return _add_months(anchor, 1)
    if key == Frequency.YEARLY.value:
        return _add_months(anchor, 12)
    raise ValueError(f"Unknown frequency: {frequency!r}")


def monthly_total(records: Iterable[RecurringTransaction], transaction_type: TransactionType) -> Decimal:
    return sum(
        (
            to_monthly_equivalent(record.amount, record.frequency)
            for record in records
            if record.is_active and record.type == transaction_type
        ),
        Decimal(0),
    )


def summarize_recurring(records: Iterable[RecurringTransaction]) -> RecurringSummary:
    records = list(records)
    monthly_expense = monthly_total(records, TransactionType.EXPENSE)
    monthly_income = monthly_total(records, TransactionType.INCOME)
    active_count = sum(1 for record in records if record.is_active)
    return RecurringSummary(
        monthly_expense=monthly_expense,
        monthly_income=monthly_income,
        net=monthly_income - monthly_expense,
        active_count=active_count,
        inactive_count=len(records) - active_count,
    )
