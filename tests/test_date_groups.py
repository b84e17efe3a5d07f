from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

import pytest

from finance_assistant.domain.date_groups import classify_date, flatten_groups, group_by_date

# Thursday; the ISO week runs Mon 17 - Sun 23 Nov 2025.
NOW = datetime(2025, 11, 20, 10, 30)


@dataclass
class Tx:
    id: int
    date: str


@pytest.mark.parametrize(
    ("value", "key", "label"),
    [
        ("2025-11-20T08:00:00", "today", "Hôm nay"),
        ("2025-11-19", "yesterday", "Hôm qua"),
        ("2025-11-17", "thisweek-2025-11-17", "Thứ hai, 17/11"),
        ("2025-11-23", "thisweek-2025-11-23", "Chủ nhật, 23/11"),
        ("2025-11-16", "lastweek", "Tuần trước"),
        ("2025-11-10", "lastweek", "Tuần trước"),
        ("2025-11-09", "thismonth", "Tháng này"),
        ("2025-11-01", "thismonth", "Tháng này"),
        ("2025-10-31", "month-2025-10", "Tháng 10/2025"),
        ("2024-11-20", "month-2024-11", "Tháng 11/2024"),
    ],
)
def test_classify_date(value: str, key: str, label: str) -> None:
    assert classify_date(value, NOW) == (key, label)


def test_classify_date_english_labels() -> None:
    assert classify_date(date(2025, 11, 18), NOW, locale="en") == (
        "thisweek-2025-11-18",
        "Tuesday, 18/11",
    )
    assert classify_date(date(2025, 9, 2), NOW, locale="en") == ("month-2025-09", "Month 09/2025")


def test_yesterday_wins_over_last_week_on_monday() -> None:
    monday = datetime(2025, 11, 17, 9, 0)

    assert classify_date("2025-11-16", monday)[0] == "yesterday"
    assert classify_date("2025-11-15", monday)[0] == "lastweek"


def test_current_week_spanning_month_start() -> None:
    first_of_month = datetime(2025, 10, 1, 12, 0)  # Wednesday

    assert classify_date("2025-09-29", first_of_month)[0] == "thisweek-2025-09-29"
    assert classify_date("2025-09-25", first_of_month)[0] == "lastweek"
    assert classify_date("2025-09-21", first_of_month)[0] == "month-2025-09"


def test_aware_dates_use_the_timezone_of_now() -> None:
    ict = timezone(timedelta(hours=7))
    now = datetime(2025, 11, 20, 0, 30, tzinfo=ict)

    # 18:00 UTC on the 19th is already the 20th in UTC+7.
    assert classify_date("2025-11-19T18:00:00Z", now)[0] == "today"


def test_group_by_date_preserves_first_seen_order() -> None:
    items = [
        Tx(1, "2025-11-20"),
        Tx(2, "2025-11-19"),
        Tx(3, "2025-11-20"),
        Tx(4, "2025-10-02"),
        Tx(5, "2025-11-12"),
        Tx(6, "2025-10-15"),
    ]

    groups = group_by_date(items, NOW)

    assert [group.key for group in groups] == ["today", "yesterday", "month-2025-10", "lastweek"]
    assert [tx.id for tx in groups[0].items] == [1, 3]
    assert [tx.id for tx in groups[2].items] == [4, 6]


def test_group_by_date_does_not_resort_unsorted_input() -> None:
    items = [{"date": "2025-09-01"}, {"date": "2025-11-20"}]

    groups = group_by_date(items, NOW)

    assert [group.key for group in groups] == ["month-2025-09", "today"]


def test_group_by_date_is_total_and_idempotent() -> None:
    items = [Tx(i, (date(2025, 11, 20) - timedelta(days=i * 3)).isoformat()) for i in range(40)]

    groups = group_by_date(items, NOW)
    regrouped = group_by_date(flatten_groups(groups), NOW)

    assert sum(len(group.items) for group in groups) == len(items)
    assert sorted(tx.id for tx in flatten_groups(groups)) == list(range(40))
    assert all(group.items for group in groups)
    assert [(g.key, g.label, g.items) for g in regrouped] == [(g.key, g.label, g.items) for g in groups]


def test_group_by_date_custom_accessor() -> None:
    rows = [("a", date(2025, 11, 20)), ("b", date(2025, 11, 19))]

    groups = group_by_date(rows, NOW, date_of=lambda row: row[1], locale="en")

    assert [(group.label, [row[0] for row in group.items]) for group in groups] == [
        ("Today", ["a"]),
        ("Yesterday", ["b"]),
    ]


def test_group_by_date_empty() -> None:
    assert group_by_date([], NOW) == []
