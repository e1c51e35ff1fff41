from __future__ import annotations

from datetime import date
from typing import List, Optional, Sequence

import psycopg
import pytest

from kpitrack.models import ActivityDefinition, IgnoredReportEntry, ProgressRecord, Project
from kpitrack.services.kpi_tracking import clear_tracking_cache


def make_record(record_id: str = "r1", **fields) -> ProgressRecord:
    payload = {"id": record_id, "activityName": "Bored Piles", "inputType": "Actual", "quantity": 1}
    payload.update(fields)
    return ProgressRecord.model_validate(payload)


def make_activity(activity_id: str = "a1", **fields) -> ActivityDefinition:
    payload = {"id": activity_id, "activityName": "Bored Piles"}
    payload.update(fields)
    return ActivityDefinition.model_validate(payload)


def make_project(project_id: str = "p1", **fields) -> Project:
    payload = {"id": project_id, "projectStatus": "on-going"}
    payload.update(fields)
    return Project.model_validate(payload)


class FakeRepo:
    """In-memory stand-in for KpiTrackingRepo."""

    def __init__(
        self,
        records: Sequence[ProgressRecord] = (),
        activities: Sequence[ActivityDefinition] = (),
        projects: Sequence[Project] = (),
        ignored: Sequence[IgnoredReportEntry] = (),
        fail: bool = False,
    ):
        self.records = list(records)
        self.activities = list(activities)
        self.projects = list(projects)
        self.ignored = list(ignored)
        self.fail = fail
        self.calls: List[str] = []

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if self.fail:
            raise psycopg.OperationalError("connection refused")

    def fetch_records(self, project_codes: Optional[Sequence[str]] = None) -> List[ProgressRecord]:
        self._check("fetch_records")
        return list(self.records)

    def fetch_activities(self) -> List[ActivityDefinition]:
        self._check("fetch_activities")
        return list(self.activities)

    def fetch_projects(self) -> List[Project]:
        self._check("fetch_projects")
        return list(self.projects)

    def fetch_ignored(self) -> List[IgnoredReportEntry]:
        self._check("fetch_ignored")
        return list(self.ignored)

    def insert_ignored(self, project_id: str, ignored_date: date, day_label, created_by=None):
        self._check("insert_ignored")
        for entry in self.ignored:
            if entry.project_id == project_id and entry.ignored_date == ignored_date:
                return entry, False
        entry = IgnoredReportEntry(
            id=str(len(self.ignored) + 1),
            projectId=project_id,
            ignoredDate=ignored_date,
            ignoredDayLabel=day_label,
            createdBy=created_by,
        )
        self.ignored.append(entry)
        return entry, True


@pytest.fixture(autouse=True)
def _clear_tracking_cache():
    clear_tracking_cache()
    yield
    clear_tracking_cache()


@pytest.fixture
def sample_projects() -> List[Project]:
    return [
        make_project("p100-01", projectCode="P100", projectSubCode="01", projectFullCode="P100-01"),
        make_project("p200", projectCode="P200", projectStatus="On Going"),
        make_project("p300", projectCode="P300", projectStatus="completed"),
    ]


@pytest.fixture
def sample_activities() -> List[ActivityDefinition]:
    return [
        make_activity(
            "boq-1",
            projectCode="P100",
            projectSubCode="01",
            projectFullCode="P100-01",
            zone="P100-01 - 1",
            rate=50,
            totalValue=1000,
            totalUnits=10,
            activityDivision="Piling",
            activityScope="Foundations",
            activityTiming="post-commencement",
        ),
        make_activity(
            "boq-2",
            projectCode="P200",
            projectFullCode="P200",
            activityName="Wellpoint Installation",
            rate=35,
            activityDivision="Dewatering",
        ),
    ]
