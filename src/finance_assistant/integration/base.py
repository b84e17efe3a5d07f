from abc import ABC, abstractmethod

from finance_assistant.models import (
    Expense,
    Income,
    RecurringFields,
    RecurringTransaction,
    RecurringUpdate,
    TransactionFields,
)


class PersistenceService(ABC):
    """Storage for confirmed transactions and recurring schedules. Failures raise PersistenceError."""

    @abstractmethod
    async def create_expense(self, fields: TransactionFields) -> Expense:
        pass

    @abstractmethod
    async def create_income(self, fields: TransactionFields) -> Income:
        pass

    @abstractmethod
    async def list_recurring(self) -> list[RecurringTransaction]:
        pass

    @abstractmethod
    async def create_recurring(self, fields: RecurringFields) -> RecurringTransaction:
        pass

    @abstractmethod
    async def update_recurring(self, recurring_id: str, fields: RecurringUpdate) -> RecurringTransaction:
        pass

    @abstractmethod
    async def delete_recurring(self, recurring_id: str) -> None:
        pass

    @abstractmethod
    async def toggle_recurring(self, recurring_id: str) -> RecurringTransaction:
        pass
