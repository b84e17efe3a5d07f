class FinanceAssistantError(Exception):
    """Base class for errors raised by finance_assistant."""


class ParseError(FinanceAssistantError):
    """The parse service could not turn free text into a transaction candidate."""


class PersistenceError(FinanceAssistantError):
    """A create/update/delete call against the persistence service failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidCandidateState(FinanceAssistantError):
    """An event was dispatched that the candidate workflow cannot accept in its current state."""
