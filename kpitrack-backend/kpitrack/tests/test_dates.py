from __future__ import annotations

from datetime import date, datetime

import pytest

from kpitrack.services.dates import as_day, format_day_label, iter_days, parse_date


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2025-01-06", date(2025, 1, 6)),
        ("2025-01-06T08:30:00Z", date(2025, 1, 6)),
        ("20250106", date(2025, 1, 6)),
        ("01/06/2025", date(2025, 1, 6)),
        ("25/12/2025", date(2025, 12, 25)),
        ("6-Jan-25", date(2025, 1, 6)),
        ("Jan 6, 2025", date(2025, 1, 6)),
        ("January 6, 2025", date(2025, 1, 6)),
        ("Monday, January 6, 2025", date(2025, 1, 6)),
        ("Jan 6, 2025 - Monday", date(2025, 1, 6)),
        ("45663", date(2025, 1, 6)),
        (45663, date(2025, 1, 6)),
        (datetime(2025, 1, 6, 23, 59), date(2025, 1, 6)),
    ],
)
def test_parse_date_formats(raw, expected):
    assert parse_date(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "null", "#DIV/0!", "not a date", "2025-02-30", "1850-01-01", "13/13/2025"])
def test_parse_date_rejects_garbage(raw):
    assert parse_date(raw) is None


def test_day_label_round_trips_through_parser():
    label = format_day_label(date(2025, 1, 1))
    assert label == "Jan 1, 2025 - Wednesday"
    assert parse_date(label) == date(2025, 1, 1)


def test_iter_days_is_inclusive():
    days = list(iter_days(date(2025, 1, 30), date(2025, 2, 2)))
    assert days == [date(2025, 1, 30), date(2025, 1, 31), date(2025, 2, 1), date(2025, 2, 2)]
    assert list(iter_days(date(2025, 1, 2), date(2025, 1, 1))) == []


def test_as_day_truncates_datetimes():
    assert as_day(datetime(2025, 3, 4, 18, 0)) == date(2025, 3, 4)
    assert as_day("2025-03-04") == date(2025, 3, 4)
