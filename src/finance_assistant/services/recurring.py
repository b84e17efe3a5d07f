from datetime import date
from decimal import Decimal

from finance_assistant.domain.recurrence import next_occurrence, summarize_recurring
from finance_assistant.integration.base import PersistenceService
from finance_assistant.logger import get_logger
from finance_assistant.models import (
    Frequency,
    RecurringFields,
    RecurringSummary,
    RecurringTransaction,
    RecurringUpdate,
    TransactionType,
)

logger = get_logger(__name__)

SALARY_DESCRIPTION = "Lương hàng tháng"


class RecurringService:
    """Recurring schedules plus the monthly figures derived from them."""

    def __init__(self, persistence: PersistenceService) -> None:
        self.persistence = persistence

    async def list_all(self) -> list[RecurringTransaction]:
        return await self.persistence.list_recurring()

    async def summary(self) -> RecurringSummary:
        # Always recomputed from fresh records.
        records = await self.persistence.list_recurring()
        summary = summarize_recurring(records)
        logger.debug(
            "[RECURRING] %d active / %d inactive, monthly expense %s, income %s.",
            summary.active_count,
            summary.inactive_count,
            summary.monthly_expense,
            summary.monthly_income,
        )
        return summary

    async def create(self, fields: RecurringFields) -> RecurringTransaction:
        record = await self.persistence.create_recurring(fields)
        frequency = record.frequency.value if isinstance(record.frequency, Frequency) else record.frequency
        logger.info("[RECURRING] Created %s %s (%s).", record.type.value, record.id, frequency)
        return record

    async def update(self, recurring_id: str, fields: RecurringUpdate) -> RecurringTransaction:
        return await self.persistence.update_recurring(recurring_id, fields)

    async def toggle(self, recurring_id: str) -> RecurringTransaction:
        record = await self.persistence.toggle_recurring(recurring_id)
        logger.info(
            "[RECURRING] %s is now %s.",
            recurring_id,
            "active" if record.is_active else "paused",
        )
        return record

    async def delete(self, recurring_id: str) -> None:
        await self.persistence.delete_recurring(recurring_id)
        logger.info("[RECURRING] Deleted %s.", recurring_id)

    async def create_salary_schedule(
        self,
        amount: Decimal | int,
        *,
        today: date | None = None,
        description: str = SALARY_DESCRIPTION,
    ) -> RecurringTransaction:
        fields = RecurringFields(
            type=TransactionType.INCOME,
            amount=amount,
            category="salary",
            frequency=Frequency.MONTHLY,
            next_date=next_occurrence(today or date.today(), creating=True),
            description=description,
        )
        return await self.create(fields)
