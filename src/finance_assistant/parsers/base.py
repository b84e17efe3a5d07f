from abc import ABC, abstractmethod

from finance_assistant.models import TransactionCandidate


class TransactionParser(ABC):
    @abstractmethod
    async def parse(self, text: str) -> TransactionCandidate:
        """Turn free text into a transaction candidate. Raises ParseError on failure."""
        pass
