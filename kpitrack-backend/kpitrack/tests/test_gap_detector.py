from __future__ import annotations

from datetime import date, datetime

from kpitrack.models import IgnoredReportEntry
from kpitrack.services.gap_detector import detect_missing_reports, ongoing_projects

from conftest import make_project, make_record

JAN_1 = date(2025, 1, 1)
JAN_2 = date(2025, 1, 2)
JAN_3 = date(2025, 1, 3)


def _p100_01():
    return make_project("p1", projectCode="P100", projectSubCode="01", projectFullCode="P100-01")


def _summary(entries):
    return [(entry.project.id, entry.report_date) for entry in entries]


def test_every_day_without_a_report_is_missing():
    entries = detect_missing_reports(JAN_1, JAN_3, [_p100_01()], [])
    assert _summary(entries) == [("p1", JAN_1), ("p1", JAN_2), ("p1", JAN_3)]
    assert entries[0].day_label == "Jan 1, 2025 - Wednesday"


def test_reported_day_is_not_missing():
    records = [make_record(projectCode="P100", projectSubCode="01", projectFullCode="P100-01", activityDate="2025-01-01")]
    entries = detect_missing_reports(JAN_1, JAN_2, [_p100_01()], records)
    assert _summary(entries) == [("p1", JAN_2)]


def test_ignored_day_is_suppressed():
    ignored = [IgnoredReportEntry(projectId="p1", ignoredDate=JAN_2)]
    entries = detect_missing_reports(JAN_1, JAN_3, [_p100_01()], [], ignored)
    assert _summary(entries) == [("p1", JAN_1), ("p1", JAN_3)]


def test_ignore_entry_by_code_and_day_label():
    ignored = [IgnoredReportEntry(projectId="P100-01", ignoredDayLabel="Jan 3, 2025 - Friday")]
    entries = detect_missing_reports(JAN_1, JAN_3, [_p100_01()], [], ignored)
    assert _summary(entries) == [("p1", JAN_1), ("p1", JAN_2)]


def test_day_label_counts_as_presence_when_date_missing():
    records = [make_record(projectFullCode="P100-01", day="Jan 2, 2025 - Thursday")]
    entries = detect_missing_reports(JAN_1, JAN_3, [_p100_01()], records)
    assert _summary(entries) == [("p1", JAN_1), ("p1", JAN_3)]


def test_bare_base_record_covers_sub_projects():
    records = [make_record(projectCode="P100", projectFullCode="P100", activityDate=JAN_1)]
    entries = detect_missing_reports(JAN_1, JAN_1, [_p100_01()], records)
    assert entries == []


def test_other_sub_project_does_not_count():
    records = [make_record(projectCode="P100", projectSubCode="02", projectFullCode="P100-02", activityDate=JAN_1)]
    entries = detect_missing_reports(JAN_1, JAN_1, [_p100_01()], records)
    assert _summary(entries) == [("p1", JAN_1)]


def test_only_ongoing_projects_are_checked():
    projects = [
        make_project("a", projectCode="A", projectStatus="On-Going"),
        make_project("b", projectCode="B", projectStatus="completed"),
        make_project("c", projectCode="C", projectStatus=None),
    ]
    assert [project.id for project in ongoing_projects(projects)] == ["a"]
    assert _summary(detect_missing_reports(JAN_1, JAN_1, projects, [])) == [("a", JAN_1)]


def test_results_are_ordered_by_date_then_project_code():
    projects = [make_project("z", projectCode="Z1"), make_project("a", projectCode="A1")]
    entries = detect_missing_reports(JAN_1, JAN_2, projects, [])
    assert _summary(entries) == [("a", JAN_1), ("z", JAN_1), ("a", JAN_2), ("z", JAN_2)]


def test_reversed_window_is_empty_and_datetimes_are_truncated():
    assert detect_missing_reports(JAN_3, JAN_1, [_p100_01()], []) == []
    entries = detect_missing_reports(datetime(2025, 1, 1, 18), datetime(2025, 1, 1, 6), [_p100_01()], [])
    assert _summary(entries) == [("p1", JAN_1)]


def test_end_to_end_single_report():
    project = make_project("p1", projectCode="P100", projectSubCode="01", projectFullCode="P100-01")
    record = make_record(projectFullCode="P100-01", activityDate="2025-01-01")
    entries = detect_missing_reports(JAN_1, JAN_2, [project], [record], [])
    assert len(entries) == 1
    assert entries[0].project.id == "p1"
    assert entries[0].report_date == JAN_2
