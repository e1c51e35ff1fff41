"""Unit-rate resolution and monetary valuation of progress records.

Every value shown for a KPI, whether in a detail row or in a summary total,
comes from :func:`value_records`; nothing else multiplies quantities by rates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

from ..models import ActivityDefinition, InputType, ProgressRecord, ValuedRecordOut
from .activity_index import ActivityIndex
from .identifiers import canonical_project_code

logger = logging.getLogger(__name__)

DEFAULT_VALUE_EPSILON = 1e-6

SOURCE_ACTIVITY_TOTAL = "activity_total"
SOURCE_ACTIVITY_RATE = "activity_rate"
SOURCE_RECORD_RATE = "record_rate"
SOURCE_LOOSE_TOTAL = "loose_total"
SOURCE_LOOSE_RATE = "loose_rate"
SOURCE_UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class RateResolution:
    rate: float
    source: str
    activity: Optional[ActivityDefinition] = None


def _positive(value: Optional[float]) -> float:
    if value is None or value <= 0:
        return 0.0
    return float(value)


def activity_unit_rate(activity: ActivityDefinition) -> RateResolution:
    """Contract allocation (total value / total units) beats a stored flat rate."""
    total_units = _positive(activity.total_units)
    total_value = _positive(activity.total_value)
    if total_units and total_value:
        return RateResolution(total_value / total_units, SOURCE_ACTIVITY_TOTAL, activity)
    stored = _positive(activity.rate)
    if stored:
        return RateResolution(stored, SOURCE_ACTIVITY_RATE, activity)
    return RateResolution(0.0, SOURCE_UNRESOLVED, activity)


def resolve_rate_detail(record: ProgressRecord, index: ActivityIndex) -> RateResolution:
    match = index.resolve(record)
    matched = match.activity if match else None
    if matched is not None:
        resolution = activity_unit_rate(matched)
        if resolution.rate > 0:
            return resolution

    record_rate = _positive(record.rate)
    if record_rate:
        return RateResolution(record_rate, SOURCE_RECORD_RATE, matched)

    for candidate in index.loose_candidates(record):
        resolution = activity_unit_rate(candidate)
        if resolution.rate > 0:
            source = SOURCE_LOOSE_TOTAL if resolution.source == SOURCE_ACTIVITY_TOTAL else SOURCE_LOOSE_RATE
            return RateResolution(resolution.rate, source, matched or candidate)

    return RateResolution(0.0, SOURCE_UNRESOLVED, matched)


def resolve_rate(record: ProgressRecord, index: ActivityIndex) -> float:
    return resolve_rate_detail(record, index).rate


def has_quantity_defect(record: ProgressRecord, *, epsilon: float = DEFAULT_VALUE_EPSILON) -> bool:
    """True when the stored value looks like the quantity copied into the value column.

    This is a heuristic: a genuine record priced at exactly 1 per unit looks the
    same and is treated as defective too.
    """
    quantity = record.quantity or 0.0
    stored = record.value or 0.0
    return quantity > 0 and stored > 0 and abs(stored - quantity) <= epsilon


def compute_value(record: ProgressRecord, rate: float, *, epsilon: float = DEFAULT_VALUE_EPSILON) -> float:
    quantity = record.quantity or 0.0
    stored = record.value or 0.0

    if quantity > 0 and rate > 0:
        return quantity * rate
    if quantity > 0 and stored > 0 and not has_quantity_defect(record, epsilon=epsilon):
        return stored
    if quantity == 0:
        if record.input_type is InputType.PLANNED:
            return _positive(record.planned_value)
        if record.input_type is InputType.ACTUAL:
            return _positive(record.actual_value)
    return 0.0


class ScopeTable:
    """Division name to scope name lookup, built once per computation batch."""

    def __init__(self, mapping: Optional[Mapping[str, str]] = None):
        self._by_division: Dict[str, str] = {}
        for division, scope in (mapping or {}).items():
            self.add(division, scope)

    def add(self, division: Optional[str], scope: Optional[str]) -> None:
        key = (division or "").strip().lower()
        name = (scope or "").strip()
        if key and name:
            self._by_division.setdefault(key, name)

    def scope_for(self, division: Optional[str]) -> Optional[str]:
        return self._by_division.get((division or "").strip().lower())

    def __len__(self) -> int:
        return len(self._by_division)

    @classmethod
    def build(
        cls,
        activities: Iterable[ActivityDefinition],
        overrides: Optional[Mapping[str, str]] = None,
    ) -> "ScopeTable":
        table = cls(overrides)
        for activity in activities:
            table.add(activity.activity_division, activity.activity_scope)
        return table


@dataclass(frozen=True)
class ValuedRecord:
    record: ProgressRecord
    project_full_code: str
    matchable: bool
    rate: float
    rate_source: str
    value: float
    value_defect: bool
    activity: Optional[ActivityDefinition]
    division: Optional[str]
    scope: Optional[str]
    timing: Optional[str]

    @property
    def input_type(self) -> Optional[InputType]:
        return self.record.input_type

    @property
    def quantity(self) -> float:
        return self.record.quantity or 0.0


def value_record(
    record: ProgressRecord,
    index: ActivityIndex,
    scope_table: ScopeTable,
    *,
    epsilon: float = DEFAULT_VALUE_EPSILON,
) -> ValuedRecord:
    full_code = canonical_project_code(record)
    # a bare sub-code does not identify a project
    matchable = bool((record.project_full_code or "").strip() or (record.project_code or "").strip())
    if matchable:
        resolution = resolve_rate_detail(record, index)
        value = compute_value(record, resolution.rate, epsilon=epsilon)
    else:
        resolution = RateResolution(0.0, SOURCE_UNRESOLVED)
        value = 0.0

    activity = resolution.activity
    division = record.activity_division or (activity.activity_division if activity else None)
    timing = record.activity_timing or (activity.activity_timing if activity else None)
    scope = (
        record.activity_scope
        or (activity.activity_scope if activity else None)
        or scope_table.scope_for(division)
    )
    return ValuedRecord(
        record=record,
        project_full_code=full_code,
        matchable=matchable,
        rate=resolution.rate,
        rate_source=resolution.source,
        value=value,
        value_defect=has_quantity_defect(record, epsilon=epsilon),
        activity=activity,
        division=division,
        scope=scope,
        timing=timing,
    )


def value_records(
    records: Iterable[ProgressRecord],
    activities: Iterable[ActivityDefinition],
    *,
    scope_table: Optional[ScopeTable] = None,
    epsilon: float = DEFAULT_VALUE_EPSILON,
) -> List[ValuedRecord]:
    index = activities if isinstance(activities, ActivityIndex) else ActivityIndex(activities)
    table = scope_table if scope_table is not None else ScopeTable.build(index.activities)
    valued = [value_record(record, index, table, epsilon=epsilon) for record in records]
    unmatched = sum(1 for row in valued if not row.matchable)
    unresolved = sum(1 for row in valued if row.matchable and row.rate_source == SOURCE_UNRESOLVED)
    logger.debug(
        "value_records records=%s activities=%s unmatched=%s unresolved_rates=%s",
        len(valued),
        len(index),
        unmatched,
        unresolved,
    )
    return valued


def to_out(valued: ValuedRecord) -> ValuedRecordOut:
    record = valued.record
    return ValuedRecordOut(
        id=record.id,
        projectFullCode=valued.project_full_code,
        projectCode=record.project_code,
        activityName=record.activity_name,
        inputType=record.input_type,
        quantity=valued.quantity,
        value=valued.value,
        storedValue=record.value,
        rate=valued.rate,
        rateSource=valued.rate_source,
        matchable=valued.matchable,
        valueDefect=valued.value_defect,
        matchedActivityId=valued.activity.id if valued.activity else None,
        zone=record.zone,
        section=record.section,
        unit=record.unit,
        activityDivision=valued.division,
        activityScope=valued.scope,
        activityTiming=valued.timing,
        activityDate=record.activity_date,
        day=record.day,
        approvalStatus=record.approval_status,
    )
