from __future__ import annotations

import pytest

from kpitrack.models import FilterCriteria
from kpitrack.services.aggregator import project_progress, summarize
from kpitrack.services.record_matcher import filter_records
from kpitrack.services.valuation import to_out, value_records

from conftest import make_activity, make_record


def _activity(**fields):
    payload = {"projectCode": "P100", "projectFullCode": "P100-01", "totalValue": 1000, "totalUnits": 10}
    payload.update(fields)
    return make_activity(**payload)


def test_summary_matches_detail_rows_exactly():
    records = [
        make_record("p1", projectFullCode="P100-01", inputType="Planned", quantity=0.1),
        make_record("p2", projectFullCode="P100-01", inputType="Planned", quantity=0.2),
        make_record("a1", projectFullCode="P100-01", inputType="Actual", quantity=0.3),
        make_record("a2", projectFullCode="P100-01", inputType="Actual", quantity=20, value=20),
        make_record("orphan", inputType="Actual", quantity=4, value=999),
    ]
    valued = filter_records(value_records(records, [_activity(totalValue=333.33, totalUnits=3)]), FilterCriteria())
    summary = summarize(valued)

    detail = [to_out(row) for row in valued]
    planned_total = 0.0
    actual_total = 0.0
    for row in detail:
        if row.input_type and row.input_type.value == "Planned":
            planned_total += row.value
        elif row.input_type and row.input_type.value == "Actual":
            actual_total += row.value
    assert summary.planned.value == planned_total
    assert summary.actual.value == actual_total
    assert summary.total_count == 5
    assert summary.unmatched_count == 1
    assert summary.actual.count == 3
    assert summary.actual.quantity == pytest.approx(24.3)


def test_achievement_rate_by_value():
    records = [
        make_record("p", projectFullCode="P100-01", inputType="Planned", quantity=10),
        make_record("a", projectFullCode="P100-01", inputType="Actual", quantity=4),
    ]
    summary = summarize(value_records(records, [_activity()]))
    assert summary.planned.value == 1000
    assert summary.actual.value == 400
    assert summary.achievement_rate == pytest.approx(40.0)
    assert summary.achievement_basis == "value"


def test_achievement_rate_falls_back_to_quantity():
    records = [
        make_record("p", projectFullCode="P9", activityName="Unknown", inputType="Planned", quantity=8),
        make_record("a", projectFullCode="P9", activityName="Unknown", inputType="Actual", quantity=2),
    ]
    summary = summarize(value_records(records, []))
    assert summary.achievement_basis == "quantity"
    assert summary.achievement_rate == pytest.approx(25.0)


def test_empty_summary():
    summary = summarize([])
    assert summary.total_count == 0
    assert summary.achievement_rate == 0
    assert summary.achievement_basis == "none"


def test_project_progress_from_matched_kpi_quantities():
    activities = [
        _activity(id="piles", plannedUnits=99, actualUnits=99),
        _activity(id="wall", activityName="Secant Wall", totalValue=500, totalUnits=50, plannedUnits=40, actualUnits=10),
        _activity(id="elsewhere", projectCode="P200", projectFullCode="P200"),
    ]
    records = [
        make_record("p", projectFullCode="P100-01", inputType="Planned", quantity=10),
        make_record("a", projectFullCode="P100-01", inputType="Actual", quantity=5),
    ]
    valued = value_records(records, activities)
    result = project_progress(activities, valued, "P100-01")

    assert [row.activity_id for row in result.activities] == ["piles", "wall"]
    piles, wall = result.activities
    assert piles.planned_units == 10
    assert piles.actual_units == 5
    assert piles.planned_value == pytest.approx(1000)
    assert piles.earned_value == pytest.approx(500)
    assert piles.progress == pytest.approx(50)
    assert piles.remaining_value == pytest.approx(500)
    # no KPI rows: stored units
    assert wall.planned_value == pytest.approx(400)
    assert wall.earned_value == pytest.approx(100)
    assert wall.remaining_value == pytest.approx(400)
    assert result.total_project_value == pytest.approx(1400)
    assert result.total_earned_value == pytest.approx(600)
    assert result.progress == pytest.approx(600 / 1400 * 100)


def test_remaining_value_floors_at_zero_and_falls_back_to_planned_units():
    activities = [
        _activity(id="over", totalUnits=4, totalValue=400),
        _activity(id="open", activityName="Secant Wall", totalUnits=None, totalValue=None, rate=20, plannedUnits=8, actualUnits=3),
    ]
    records = [make_record("a", projectFullCode="P100-01", inputType="Actual", quantity=6)]
    result = project_progress(activities, value_records(records, activities), "P100-01")

    over, open_ = result.activities
    assert over.remaining_value == 0
    assert open_.remaining_value == pytest.approx(100)
