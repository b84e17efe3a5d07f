from fastapi import HTTPException, Request

from finance_assistant.services.events import TransactionEvents
from finance_assistant.services.recurring import RecurringService
from finance_assistant.services.workflow import WorkflowRegistry


def get_workflows(request: Request) -> WorkflowRegistry:
    workflows = getattr(request.app.state, "workflows", None)
    if workflows is None:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return workflows


def get_recurring_service(request: Request) -> RecurringService:
    service = getattr(request.app.state, "recurring", None)
    if service is None:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return service


def get_events(request: Request) -> TransactionEvents:
    events = getattr(request.app.state, "events", None)
    if events is None:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return events
