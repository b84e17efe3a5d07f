from collections.abc import Iterable
from decimal import Decimal
from typing import Any

from finance_assistant.models import PeriodComparison


def total_amount(records: Iterable[Any]) -> Decimal:
    total = Decimal(0)
    for record in records:
        amount = record.get("amount") if isinstance(record, dict) else getattr(record, "amount", 0)
        total += Decimal(str(amount or 0))
    return total


def change_percent(current: Decimal, previous: Decimal) -> float:
    if not previous:
        return 0.0
    return float((current - previous) / previous * 100)


def compare_periods(
    current_expenses: Iterable[Any],
    current_incomes: Iterable[Any],
    previous_expenses: Iterable[Any],
    previous_incomes: Iterable[Any],
) -> PeriodComparison:
    expense_total = total_amount(current_expenses)
    income_total = total_amount(current_incomes)
    previous_expense_total = total_amount(previous_expenses)
    previous_income_total = total_amount(previous_incomes)
    balance = income_total - expense_total
    previous_balance = previous_income_total - previous_expense_total

    return PeriodComparison(
        expense_total=expense_total,
        income_total=income_total,
        balance=balance,
        previous_expense_total=previous_expense_total,
        previous_income_total=previous_income_total,
        previous_balance=previous_balance,
        expense_change_percent=change_percent(expense_total, previous_expense_total),
        income_change_percent=change_percent(income_total, previous_income_total),
        balance_change=balance - previous_balance,
    )
