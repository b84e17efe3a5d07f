"""
Relative-date buckets for grouped transaction lists.

Buckets are created in the order their keys are first seen, so callers sort the
input (newest first) before grouping. Nothing here re-sorts the buckets.
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, TypeVar

from finance_assistant.models import DateGroup

T = TypeVar("T")

DateValue = date | datetime | str


@dataclass(frozen=True)
class BucketLabels:
    today: str
    yesterday: str
    last_week: str
    this_month: str
    month: str
    weekdays: tuple[str, ...]


LABELS: dict[str, BucketLabels] = {
    "vi": BucketLabels(
        today="Hôm nay",
        yesterday="Hôm qua",
        last_week="Tuần trước",
        this_month="Tháng này",
        month="Tháng {month:02d}/{year}",
        weekdays=("Thứ hai", "Thứ ba", "Thứ tư", "Thứ năm", "Thứ sáu", "Thứ bảy", "Chủ nhật"),
    ),
    "en": BucketLabels(
        today="Today",
        yesterday="Yesterday",
        last_week="Last week",
        this_month="This month",
        month="Month {month:02d}/{year}",
        weekdays=("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"),
    ),
}


def _to_date(value: DateValue, now: date | datetime) -> date:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            if isinstance(now, datetime) and now.tzinfo is not None:
                value = value.astimezone(now.tzinfo)
            else:
                value = value.astimezone()
        return value.date()
    return value


def _today(now: date | datetime) -> date:
    return now.date() if isinstance(now, datetime) else now


def default_date_of(item: Any) -> DateValue:
    if isinstance(item, Mapping):
        return item["date"]
    return item.date


def classify_date(value: DateValue, now: date | datetime, locale: str = "vi") -> tuple[str, str]:
    """Return ``(key, label)`` of the bucket a date falls into relative to ``now``."""
    labels = LABELS.get(locale, LABELS["vi"])
    today = _today(now)
    day = _to_date(value, now)

    week_start = today - timedelta(days=today.weekday())
    week_end = week_start + timedelta(days=6)
    last_week_start = week_start - timedelta(days=7)

    if day == today:
        return "today", labels.today
    if day == today - timedelta(days=1):
        return "yesterday", labels.yesterday
    if week_start <= day <= week_end:
        label = f"{labels.weekdays[day.weekday()]}, {day:%d/%m}"
        return f"thisweek-{day.isoformat()}", label
    if last_week_start <= day < week_start:
        return "lastweek", labels.last_week
    if (day.year, day.month) == (today.year, today.month):
        return "thismonth", labels.this_month
    return (
        f"month-{day.year:04d}-{day.month:02d}",
        labels.month.format(month=day.month, year=day.year),
    )


def group_by_date(
    items: Iterable[T],
    now: date | datetime,
    *,
    date_of: Callable[[T], DateValue] | None = None,
    locale: str = "vi",
) -> list[DateGroup[T]]:
    get_date = date_of or default_date_of
    groups: list[DateGroup[T]] = []
    by_key: dict[str, DateGroup[T]] = {}

    for item in items:
        key, label = classify_date(get_date(item), now, locale)
        group = by_key.get(key)
        if group is None:
            group = DateGroup(label=label, key=key, items=[])
            by_key[key] = group
            groups.append(group)
        group.items.append(item)

    return groups


def flatten_groups(groups: Iterable[DateGroup[T]]) -> list[T]:
    return [item for group in groups for item in group.items]
