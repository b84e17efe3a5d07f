import inspect
from collections.abc import Awaitable, Callable

from finance_assistant.logger import get_logger

logger = get_logger(__name__)

TRANSACTION_CREATED = "transaction-created"

Listener = Callable[[str], Awaitable[None] | None]


class TransactionEvents:
    """
    Fan-out notification for views that derive data from stored transactions.

    Listeners receive only the event name and are expected to re-fetch what they
    show. A failing listener is logged and does not stop the others.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def emit(self, event: str = TRANSACTION_CREATED) -> int:
        delivered = 0
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception:
                logger.exception("[EVENTS] Listener %r failed for '%s'.", listener, event)
        logger.debug("[EVENTS] '%s' delivered to %d listener(s).", event, delivered)
        return delivered
