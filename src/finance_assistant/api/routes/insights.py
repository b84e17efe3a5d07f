from datetime import datetime

from fastapi import APIRouter, HTTPException

from finance_assistant.api.schemas import (
    BreakdownRequest,
    DateGroupResponse,
    DateGroupsRequest,
    DetectResponse,
    TextRequest,
)
from finance_assistant.core import settings
from finance_assistant.domain.amounts import looks_like_monetary_text
from finance_assistant.domain.charts import breakdown_by_category, extract_series, to_percentages
from finance_assistant.domain.date_groups import group_by_date
from finance_assistant.models import ChartPoint

router = APIRouter(prefix="/insights", tags=["insights"])


@router.post("/detect", response_model=DetectResponse)
async def detect_transaction(req: TextRequest) -> DetectResponse:
    return DetectResponse(looks_like_transaction=looks_like_monetary_text(req.text))


@router.post("/chart-series", response_model=list[ChartPoint])
async def chart_series(req: TextRequest) -> list[ChartPoint]:
    return extract_series(req.text)


@router.post("/category-breakdown", response_model=list[ChartPoint])
async def category_breakdown(req: BreakdownRequest) -> list[ChartPoint]:
    points = breakdown_by_category(req.records, labels=req.labels)
    return to_percentages(points) if req.percentages else points


@router.post("/date-groups", response_model=list[DateGroupResponse])
async def date_groups(req: DateGroupsRequest) -> list[DateGroupResponse]:
    try:
        groups = group_by_date(
            req.items,
            req.now or datetime.now().astimezone(),
            locale=req.locale or settings.get_display_locale(),
        )
    except KeyError as exc:
        raise HTTPException(status_code=422, detail="Every item needs a date") from exc
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=f"Invalid item date: {exc}") from exc
    return [
        DateGroupResponse(label=group.label, key=group.key, items=group.items)
        for group in groups
    ]
