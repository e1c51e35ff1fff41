from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from ..models import FilterCriteria, InputType
from .identifiers import base_project_code, matches_project, normalize_zone, zones_equivalent
from .valuation import ValuedRecord


def _text_matches(value: Optional[str], wanted: Sequence[str]) -> bool:
    text = (value or "").strip().lower()
    if not text:
        return False
    for item in wanted:
        needle = item.strip().lower()
        if needle == text or needle in text:
            return True
    return False


def _in_range(value: float, lower: Optional[float], upper: Optional[float]) -> bool:
    if lower is not None and value < lower:
        return False
    if upper is not None and value > upper:
        return False
    return True


def _matches_projects(valued: ValuedRecord, projects: Sequence[str]) -> bool:
    record = valued.record
    return any(
        matches_project(
            valued.project_full_code,
            selected,
            candidate_code=record.project_code,
            candidate_sub_code=record.project_sub_code,
        )
        for selected in projects
    )


def _matches_zones(valued: ValuedRecord, zones: Sequence[str]) -> bool:
    record = valued.record
    codes = [code for code in (valued.project_full_code, base_project_code(record)) if code]
    record_zone = record.zone
    for code in codes:
        record_zone = normalize_zone(record_zone, code)
    if not record_zone:
        return False
    for wanted in zones:
        selected = wanted
        for code in codes:
            selected = normalize_zone(selected, code)
        if zones_equivalent(record_zone, selected):
            return True
    return False


def _matches_search(valued: ValuedRecord, search: str) -> bool:
    record = valued.record
    needle = search.lower()
    haystack = (
        valued.project_full_code,
        record.activity_name,
        record.zone,
        record.section,
        record.unit,
        valued.division,
        valued.scope,
        record.day,
        record.input_type.value if record.input_type else None,
    )
    return any(needle in text.lower() for text in haystack if text)


def matches_criteria(valued: ValuedRecord, criteria: FilterCriteria) -> bool:
    """Every active criterion must pass; an empty list or ``None`` is inactive."""
    record = valued.record

    if criteria.projects and not _matches_projects(valued, criteria.projects):
        return False

    if criteria.activities and not _text_matches(record.activity_name, criteria.activities):
        return False

    if criteria.input_types:
        wanted = {InputType.parse(item) for item in criteria.input_types}
        if record.input_type is None or record.input_type not in wanted:
            return False

    if criteria.zones and not _matches_zones(valued, criteria.zones):
        return False

    if criteria.sections:
        # Planned rows carry no section
        if record.input_type is InputType.PLANNED:
            return False
        if not _text_matches(record.section, criteria.sections):
            return False

    if criteria.units and not _text_matches(record.unit, criteria.units):
        return False

    if criteria.divisions and not _text_matches(valued.division, criteria.divisions):
        return False

    if criteria.scopes and not _text_matches(valued.scope, criteria.scopes):
        return False

    if criteria.timings and not _text_matches(valued.timing, criteria.timings):
        return False

    if criteria.date_from is not None or criteria.date_to is not None:
        day = record.activity_date
        if day is None:
            return False
        if criteria.date_from is not None and day < criteria.date_from:
            return False
        if criteria.date_to is not None and day > criteria.date_to:
            return False

    if not _in_range(valued.value, criteria.value_min, criteria.value_max):
        return False

    if not _in_range(valued.quantity, criteria.quantity_min, criteria.quantity_max):
        return False

    if criteria.search and not _matches_search(valued, criteria.search):
        return False

    return True


def filter_records(valued: Iterable[ValuedRecord], criteria: Optional[FilterCriteria]) -> List[ValuedRecord]:
    rows = list(valued)
    if criteria is None:
        return rows
    return [row for row in rows if matches_criteria(row, criteria)]
