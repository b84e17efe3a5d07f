from typing import Annotated

from fastapi import APIRouter, Depends

from finance_assistant.api.dependencies import get_workflows
from finance_assistant.api.schemas import TextRequest
from finance_assistant.services.workflow import (
    Confirm,
    Dismiss,
    SubmitText,
    WorkflowOutcome,
    WorkflowRegistry,
)

router = APIRouter(prefix="/assistant", tags=["assistant"])


@router.post("/{conversation_id}/messages", response_model=WorkflowOutcome)
async def submit_message(
    conversation_id: str,
    req: TextRequest,
    workflows: Annotated[WorkflowRegistry, Depends(get_workflows)],
) -> WorkflowOutcome:
    return await workflows.dispatch(conversation_id, SubmitText(req.text))


@router.post("/{conversation_id}/confirm", response_model=WorkflowOutcome)
async def confirm_candidate(
    conversation_id: str,
    workflows: Annotated[WorkflowRegistry, Depends(get_workflows)],
) -> WorkflowOutcome:
    return await workflows.dispatch(conversation_id, Confirm())


@router.post("/{conversation_id}/dismiss", response_model=WorkflowOutcome)
async def dismiss_candidate(
    conversation_id: str,
    workflows: Annotated[WorkflowRegistry, Depends(get_workflows)],
) -> WorkflowOutcome:
    return await workflows.dispatch(conversation_id, Dismiss())


@router.get("/{conversation_id}", response_model=WorkflowOutcome)
async def get_conversation_state(
    conversation_id: str,
    workflows: Annotated[WorkflowRegistry, Depends(get_workflows)],
) -> WorkflowOutcome:
    return workflows.snapshot(conversation_id)


@router.delete("/{conversation_id}")
async def close_conversation(
    conversation_id: str,
    workflows: Annotated[WorkflowRegistry, Depends(get_workflows)],
) -> dict[str, str]:
    workflows.discard(conversation_id)
    return {"status": "closed"}
