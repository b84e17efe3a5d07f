import re
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from finance_assistant.models import ChartPoint

# "- Ăn uống: 2.000.000 ₫ (45%)", "- **Ăn uống** (45%)", "• Transport (30,5%)"
_SERIES_LINE = re.compile(
    r"[-•]\s*\*{0,2}([^*:(\n]+?)\*{0,2}\s*(?::[^(]*?)?\((\d+(?:[.,]\d+)?)%\)"
)

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 29
MIN_SERIES_POINTS = 2


def extract_series(text: str | None) -> list[ChartPoint]:
    """
    Pull a labelled percentage breakdown out of assistant text.

    Lines that do not match are skipped. A single slice is not worth a chart, so
    fewer than two qualifying lines give an empty list.
    """
    if not text:
        return []

    points: list[ChartPoint] = []
    for line in text.split("\n"):
        match = _SERIES_LINE.search(line)
        if not match:
            continue
        name = match.group(1).strip()
        value = float(match.group(2).replace(",", "."))
        if value > 0 and MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH:
            points.append(ChartPoint(name=name, value=value))

    return points if len(points) >= MIN_SERIES_POINTS else []


def _read(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def breakdown_by_category(
    records: Iterable[Any],
    *,
    labels: Mapping[str, str] | None = None,
) -> list[ChartPoint]:
    """Sum record amounts per category, in the order categories first appear."""
    totals: dict[str, Decimal] = {}
    for record in records:
        category = str(_read(record, "category") or "other")
        name = labels.get(category, category) if labels else category
        amount = Decimal(str(_read(record, "amount") or 0))
        totals[name] = totals.get(name, Decimal(0)) + amount
    return [ChartPoint(name=name, value=float(total)) for name, total in totals.items()]


def to_percentages(points: Iterable[ChartPoint]) -> list[ChartPoint]:
    points = list(points)
    total = sum(point.value for point in points)
    if total <= 0:
        return []
    return [
        ChartPoint(name=point.name, value=round(point.value / total * 100, 1))
        for point in points
    ]
