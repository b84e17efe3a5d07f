"""
Confirmation workflow for transactions typed into the assistant chat.

    idle -> detecting -> parsing -> awaiting_confirmation -> confirmed | dismissed -> idle

At most one candidate is pending per workflow. New text while a parse is in
flight or a candidate is pending is rejected with InvalidCandidateState, as are
confirm/dismiss without a pending candidate. Service failures never raise out of
``dispatch``; they land in ``last_error`` with the workflow in idle (parse) or
awaiting_confirmation (save).
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel

from finance_assistant.domain.amounts import looks_like_monetary_text
from finance_assistant.errors import InvalidCandidateState, ParseError, PersistenceError
from finance_assistant.integration.base import PersistenceService
from finance_assistant.logger import get_logger
from finance_assistant.models import Expense, Income, TransactionCandidate, TransactionType
from finance_assistant.parsers.base import TransactionParser
from finance_assistant.services.events import TRANSACTION_CREATED, TransactionEvents

logger = get_logger(__name__)

PARSE_FAILED_MESSAGE = "Could not analyze the transaction"
SAVE_FAILED_MESSAGE = "Could not save the transaction"
CHAT_FAILED_MESSAGE = "Something went wrong, please try again later"


class WorkflowState(str, Enum):
    IDLE = "idle"
    DETECTING = "detecting"
    PARSING = "parsing"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    DISMISSED = "dismissed"


@dataclass(frozen=True)
class SubmitText:
    text: str


@dataclass(frozen=True)
class Confirm:
    pass


@dataclass(frozen=True)
class Dismiss:
    pass


WorkflowEvent = SubmitText | Confirm | Dismiss


class WorkflowOutcome(BaseModel):
    state: WorkflowState
    transitions: list[WorkflowState]
    candidate: TransactionCandidate | None = None
    error: str | None = None
    routed_to_chat: bool = False
    record: Expense | Income | None = None
    message: str | None = None


ChatHandler = Callable[[str], Awaitable[None]]


class CandidateWorkflow:
    def __init__(
        self,
        parser: TransactionParser,
        persistence: PersistenceService,
        events: TransactionEvents,
        *,
        detector: Callable[[str], bool] = looks_like_monetary_text,
        chat_handler: ChatHandler | None = None,
    ) -> None:
        self.parser = parser
        self.persistence = persistence
        self.events = events
        self.detector = detector
        self.chat_handler = chat_handler

        self._state = WorkflowState.IDLE
        self.history: list[WorkflowState] = [WorkflowState.IDLE]
        self.candidate: TransactionCandidate | None = None
        self.last_error: str | None = None
        self._confirming = False
        self._closed = False
        self._transitions: list[WorkflowState] = []

    @property
    def current_state(self) -> WorkflowState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Dispose the workflow; a parse that finishes afterwards is dropped."""
        self._closed = True
        self.candidate = None

    def _enter(self, state: WorkflowState) -> None:
        logger.debug("[WORKFLOW] %s -> %s", self._state.value, state.value)
        self._state = state
        self.history.append(state)
        self._transitions.append(state)

    def _outcome(self, **kwargs: object) -> WorkflowOutcome:
        return WorkflowOutcome(
            state=self._state,
            transitions=list(self._transitions),
            candidate=self.candidate,
            error=self.last_error,
            **kwargs,
        )

    def snapshot(self) -> WorkflowOutcome:
        return WorkflowOutcome(
            state=self._state,
            transitions=[],
            candidate=self.candidate,
            error=self.last_error,
        )

    async def dispatch(self, event: WorkflowEvent) -> WorkflowOutcome:
        if self._closed:
            raise InvalidCandidateState("Workflow has been closed")
        self._transitions = []
        if isinstance(event, SubmitText):
            return await self._submit(event.text)
        if isinstance(event, Confirm):
            return await self._confirm()
        if isinstance(event, Dismiss):
            return self._dismiss()
        raise TypeError(f"Unsupported workflow event: {event!r}")

    async def _submit(self, text: str) -> WorkflowOutcome:
        if self._state is not WorkflowState.IDLE:
            raise InvalidCandidateState(
                f"Cannot accept new text while {self._state.value}; confirm or dismiss the pending transaction first"
            )
        text = text.strip()
        if not text:
            return self._outcome()

        self.last_error = None
        self._enter(WorkflowState.DETECTING)
        if not self.detector(text):
            self._enter(WorkflowState.IDLE)
            await self._forward_to_chat(text)
            return self._outcome(routed_to_chat=True)

        self._enter(WorkflowState.PARSING)
        try:
            candidate = await self.parser.parse(text)
        except asyncio.CancelledError:
            if not self._closed:
                self._enter(WorkflowState.IDLE)
            raise
        except ParseError as exc:
            logger.info("[WORKFLOW] Parse failed for '%s...': %s", text[:50], exc)
            return self._parse_failed()
        except Exception:
            logger.exception("[WORKFLOW] Unexpected parse failure for '%s...'.", text[:50])
            return self._parse_failed()

        if self._closed:
            logger.info("[WORKFLOW] Discarding parse result that arrived after close.")
            return self._outcome()

        if not candidate.original_text:
            candidate = candidate.model_copy(update={"original_text": text})
        self.candidate = candidate
        self._enter(WorkflowState.AWAITING_CONFIRMATION)
        logger.info(
            "[WORKFLOW] Candidate ready: %s %s (%s).",
            candidate.type.value,
            candidate.amount,
            candidate.category,
        )
        return self._outcome()

    def _parse_failed(self) -> WorkflowOutcome:
        if self._closed:
            return self._outcome()
        self.candidate = None
        self.last_error = PARSE_FAILED_MESSAGE
        self._enter(WorkflowState.IDLE)
        return self._outcome()

    async def _forward_to_chat(self, text: str) -> None:
        if self.chat_handler is None:
            return
        try:
            await self.chat_handler(text)
        except Exception:
            logger.exception("[WORKFLOW] Chat handler failed.")
            self.last_error = CHAT_FAILED_MESSAGE

    def _require_candidate(self) -> TransactionCandidate:
        if self._state is not WorkflowState.AWAITING_CONFIRMATION or self.candidate is None:
            raise InvalidCandidateState("No transaction is pending confirmation")
        if self._confirming:
            raise InvalidCandidateState("The pending transaction is already being saved")
        return self.candidate

    async def _confirm(self) -> WorkflowOutcome:
        candidate = self._require_candidate()
        self._confirming = True
        try:
            fields = candidate.to_fields()
            if candidate.type is TransactionType.INCOME:
                record: Expense | Income = await self.persistence.create_income(fields)
            else:
                record = await self.persistence.create_expense(fields)
        except PersistenceError as exc:
            logger.warning("[WORKFLOW] Saving candidate failed: %s", exc)
            self.last_error = SAVE_FAILED_MESSAGE
            return self._outcome()
        except Exception:
            logger.exception("[WORKFLOW] Unexpected failure while saving candidate.")
            self.last_error = SAVE_FAILED_MESSAGE
            return self._outcome()
        finally:
            self._confirming = False

        self.candidate = None
        self.last_error = None
        self._enter(WorkflowState.CONFIRMED)
        await self.events.emit(TRANSACTION_CREATED)
        self._enter(WorkflowState.IDLE)
        kind = "income" if candidate.type is TransactionType.INCOME else "expense"
        return self._outcome(record=record, message=f"Saved {kind}: {candidate.amount}")

    def _dismiss(self) -> WorkflowOutcome:
        self._require_candidate()
        self.candidate = None
        self.last_error = None
        self._enter(WorkflowState.DISMISSED)
        self._enter(WorkflowState.IDLE)
        return self._outcome()


class WorkflowRegistry:
    """
    One workflow per conversation.

    Only conversations with a parse in flight or a candidate pending are kept; a
    workflow that is back in idle after a dispatch is dropped, and reading the
    state of an unknown conversation never creates one.
    """

    def __init__(self, factory: Callable[[], CandidateWorkflow]) -> None:
        self._factory = factory
        self._workflows: dict[str, CandidateWorkflow] = {}

    def get(self, conversation_id: str) -> CandidateWorkflow:
        workflow = self._workflows.get(conversation_id)
        if workflow is None or workflow.closed:
            workflow = self._factory()
            self._workflows[conversation_id] = workflow
        return workflow

    def peek(self, conversation_id: str) -> CandidateWorkflow | None:
        return self._workflows.get(conversation_id)

    async def dispatch(self, conversation_id: str, event: WorkflowEvent) -> WorkflowOutcome:
        workflow = self.get(conversation_id)
        try:
            return await workflow.dispatch(event)
        finally:
            if workflow.current_state is WorkflowState.IDLE and self._workflows.get(conversation_id) is workflow:
                del self._workflows[conversation_id]

    def snapshot(self, conversation_id: str) -> WorkflowOutcome:
        workflow = self.peek(conversation_id)
        if workflow is None:
            return WorkflowOutcome(state=WorkflowState.IDLE, transitions=[])
        return workflow.snapshot()

    def discard(self, conversation_id: str) -> None:
        workflow = self._workflows.pop(conversation_id, None)
        if workflow is not None:
            workflow.close()

    def close_all(self) -> None:
        for conversation_id in list(self._workflows):
            self.discard(conversation_id)

    def __len__(self) -> int:
        return len(self._workflows)
