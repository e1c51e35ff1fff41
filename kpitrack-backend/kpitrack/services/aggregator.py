from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

from ..models import (
    ActivityDefinition,
    ActivityProgress,
    InputType,
    KpiSummary,
    PartitionTotals,
    ProjectProgressResponse,
)
from .identifiers import canonical_project_code, matches_project
from .valuation import ValuedRecord, activity_unit_rate


def _partition(rows: Sequence[ValuedRecord], input_type: InputType) -> PartitionTotals:
    selected = [row for row in rows if row.input_type is input_type]
    quantity = 0.0
    value = 0.0
    for row in selected:
        quantity += row.quantity
        if row.matchable:
            value += row.value
    return PartitionTotals(count=len(selected), quantity=quantity, value=value)


def summarize(valued: Iterable[ValuedRecord]) -> KpiSummary:
    """Totals over exactly the rows a detail listing renders, in the same order."""
    rows = list(valued)
    planned = _partition(rows, InputType.PLANNED)
    actual = _partition(rows, InputType.ACTUAL)

    if planned.value > 0:
        rate, basis = actual.value * 100 / planned.value, "value"
    elif planned.quantity > 0:
        rate, basis = actual.quantity * 100 / planned.quantity, "quantity"
    else:
        rate, basis = 0.0, "none"

    return KpiSummary(
        totalCount=len(rows),
        unmatchedCount=sum(1 for row in rows if not row.matchable),
        planned=planned,
        actual=actual,
        achievementRate=rate,
        achievementBasis=basis,
    )


def _activity_key(activity: ActivityDefinition):
    return activity.id if activity.id is not None else id(activity)


def _belongs_to(activity: ActivityDefinition, project_full_code: str) -> bool:
    return matches_project(
        canonical_project_code(activity),
        project_full_code,
        candidate_code=activity.project_code,
        candidate_sub_code=activity.project_sub_code,
    )


def project_progress(
    activities: Iterable[ActivityDefinition],
    valued: Iterable[ValuedRecord],
    project_full_code: str,
) -> ProjectProgressResponse:
    """Earned-value progress of one project from its BOQ activities.

    Units come from the KPI rows matched to each activity; when no KPI rows
    carry a positive quantity the activity's stored units are used instead.
    """
    project_activities = [activity for activity in activities if _belongs_to(activity, project_full_code)]
    planned_units: Dict[object, float] = {}
    actual_units: Dict[object, float] = {}
    for row in valued:
        if row.activity is None or not row.matchable:
            continue
        key = _activity_key(row.activity)
        if row.input_type is InputType.PLANNED:
            planned_units[key] = planned_units.get(key, 0.0) + row.quantity
        elif row.input_type is InputType.ACTUAL:
            actual_units[key] = actual_units.get(key, 0.0) + row.quantity

    rows: List[ActivityProgress] = []
    total_value = 0.0
    total_earned = 0.0
    for activity in project_activities:
        key = _activity_key(activity)
        planned = planned_units.get(key, 0.0) or (activity.planned_units or 0.0)
        actual = actual_units.get(key, 0.0) or (activity.actual_units or 0.0)
        rate = activity_unit_rate(activity).rate
        planned_value = planned * rate
        earned_value = actual * rate
        total_units = activity.total_units or planned
        total_value += planned_value
        total_earned += earned_value
        rows.append(
            ActivityProgress(
                activityId=activity.id,
                activityName=activity.activity_name,
                zone=activity.zone,
                rate=rate,
                plannedUnits=planned,
                actualUnits=actual,
                plannedValue=planned_value,
                earnedValue=earned_value,
                remainingValue=max(total_units - actual, 0.0) * rate,
                progress=_percent(earned_value, planned_value),
            )
        )

    return ProjectProgressResponse(
        projectFullCode=project_full_code,
        totalProjectValue=total_value,
        totalEarnedValue=total_earned,
        progress=_percent(total_earned, total_value),
        activities=rows,
    )


def _percent(part: float, whole: float) -> float:
    return part * 100 / whole if whole > 0 else 0.0
