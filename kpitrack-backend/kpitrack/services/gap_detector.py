"""Detection of ongoing projects that skipped their daily progress report."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Set, Tuple

from ..models import IgnoredReportEntry, MissingReportEntry, ProgressRecord, Project
from .dates import as_day, format_day_label, iter_days, parse_date
from .identifiers import (
    canonical_project_code,
    full_code_variants,
    normalize_status,
    project_code_parts,
)

logger = logging.getLogger(__name__)

ONGOING_STATUS = "ongoing"

_Presence = Set[Tuple[str, date]]


def record_day(record: ProgressRecord):
    """The day a record reports on, falling back to its free-text day label."""
    if record.activity_date is not None:
        return record.activity_date
    return parse_date(record.day)


def _presence_index(records: Iterable[ProgressRecord]) -> Tuple[_Presence, _Presence]:
    present: _Presence = set()
    bare: _Presence = set()
    for record in records:
        day = record_day(record)
        if day is None:
            continue
        full_code = canonical_project_code(record)
        if not full_code:
            continue
        base, sub = project_code_parts(full_code, record.project_code, record.project_sub_code)
        identifiers = {full_code.lower(), *full_code_variants(base, sub)}
        if record.project_code and record.project_code.lower() != full_code.lower():
            identifiers.add(record.project_code.lower())
        for identifier in identifiers:
            present.add((identifier, day))
        if not sub and base:
            bare.add((base.lower(), day))
    return present, bare


def _suppression_index(ignored: Iterable[IgnoredReportEntry], projects: Iterable[Project]) -> Dict[str, Set[str]]:
    codes_by_id = {project.id.lower(): canonical_project_code(project).lower() for project in projects}
    suppressed: Dict[str, Set[str]] = defaultdict(set)
    for entry in ignored:
        markers = set()
        if entry.ignored_date is not None:
            markers.add(entry.ignored_date.isoformat())
        if entry.ignored_day_label:
            markers.add(entry.ignored_day_label.lower())
        if not markers:
            continue
        key = entry.project_id.strip().lower()
        suppressed[key].update(markers)
        code = codes_by_id.get(key)
        if code:
            suppressed[code].update(markers)
    return suppressed


def ongoing_projects(projects: Iterable[Project]) -> List[Project]:
    return [project for project in projects if normalize_status(project.project_status) == ONGOING_STATUS]


def detect_missing_reports(
    start,
    end,
    projects: Iterable[Project],
    records: Iterable[ProgressRecord],
    ignored: Iterable[IgnoredReportEntry] = (),
) -> List[MissingReportEntry]:
    """List every ongoing project and day in ``[start, end]`` without a report.

    A project with a sub-code also counts as reported on a day when a record
    exists for its base code without any sub-code. Days listed in the ignore
    entries, by ISO date or by day label, are skipped.
    """
    start_day = as_day(start)
    end_day = as_day(end)
    if start_day is None or end_day is None or start_day > end_day:
        return []

    project_list = list(projects)
    active = ongoing_projects(project_list)
    if not active:
        return []

    days = list(iter_days(start_day, end_day))
    present, bare = _presence_index(records)
    suppressed = _suppression_index(ignored, project_list)

    missing: List[Tuple[date, str, MissingReportEntry]] = []
    for project in active:
        full_code = canonical_project_code(project)
        code_key = full_code.lower()
        base, sub = project_code_parts(full_code, project.project_code, project.project_sub_code)
        skipped = suppressed.get(project.id.lower(), set()) | suppressed.get(code_key, set())
        for day in days:
            if (code_key, day) in present:
                continue
            if sub and (base.lower(), day) in bare:
                continue
            label = format_day_label(day)
            if day.isoformat() in skipped or label.lower() in skipped:
                continue
            entry = MissingReportEntry(project=project, date=day, dayLabel=label)
            missing.append((day, code_key, entry))

    missing.sort(key=lambda item: (item[0], item[1]))
    logger.debug(
        "detect_missing_reports start=%s end=%s projects=%s days=%s missing=%s",
        start_day,
        end_day,
        len(active),
        len(days),
        len(missing),
    )
    return [entry for _, _, entry in missing]
