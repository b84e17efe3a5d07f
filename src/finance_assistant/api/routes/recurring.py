from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends

from finance_assistant.api.dependencies import get_recurring_service
from finance_assistant.api.schemas import SalaryScheduleRequest, SuggestedDateResponse
from finance_assistant.domain.recurrence import next_occurrence
from finance_assistant.models import (
    RecurringFields,
    RecurringSummary,
    RecurringTransaction,
    RecurringUpdate,
)
from finance_assistant.services.recurring import SALARY_DESCRIPTION, RecurringService

router = APIRouter(prefix="/recurring", tags=["recurring"])


@router.get("", response_model=list[RecurringTransaction])
async def list_recurring(
    service: Annotated[RecurringService, Depends(get_recurring_service)],
) -> list[RecurringTransaction]:
    return await service.list_all()


@router.get("/summary", response_model=RecurringSummary)
async def recurring_summary(
    service: Annotated[RecurringService, Depends(get_recurring_service)],
) -> RecurringSummary:
    return await service.summary()


@router.get("/suggested-next-date", response_model=SuggestedDateResponse)
async def suggested_next_date() -> SuggestedDateResponse:
    return SuggestedDateResponse(next_date=next_occurrence(date.today(), creating=True))


@router.post("", response_model=RecurringTransaction)
async def create_recurring(
    fields: RecurringFields,
    service: Annotated[RecurringService, Depends(get_recurring_service)],
) -> RecurringTransaction:
    return await service.create(fields)


@router.post("/salary", response_model=RecurringTransaction)
async def create_salary_schedule(
    req: SalaryScheduleRequest,
    service: Annotated[RecurringService, Depends(get_recurring_service)],
) -> RecurringTransaction:
    return await service.create_salary_schedule(
        req.amount,
        description=req.description or SALARY_DESCRIPTION,
    )


@router.patch("/{recurring_id}", response_model=RecurringTransaction)
async def update_recurring(
    recurring_id: str,
    fields: RecurringUpdate,
    service: Annotated[RecurringService, Depends(get_recurring_service)],
) -> RecurringTransaction:
    return await service.update(recurring_id, fields)


@router.post("/{recurring_id}/toggle", response_model=RecurringTransaction)
async def toggle_recurring(
    recurring_id: str,
    service: Annotated[RecurringService, Depends(get_recurring_service)],
) -> RecurringTransaction:
    return await service.toggle(recurring_id)


@router.delete("/{recurring_id}")
async def delete_recurring(
    recurring_id: str,
    service: Annotated[RecurringService, Depends(get_recurring_service)],
) -> dict[str, str]:
    await service.delete(recurring_id)
    return {"status": "deleted"}
