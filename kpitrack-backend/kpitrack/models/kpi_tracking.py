from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..services.dates import parse_date

_NUMBER_RE = re.compile(r"-?[0-9]+[0-9,.\s]*")


def parse_number(value) -> Optional[float]:
    """Read a stored number that may arrive as text such as ``"1,250.5 AED"``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    text = str(value).strip()
    if not text:
        return None
    match = _NUMBER_RE.search(text)
    if not match:
        return None
    numeric = re.sub(r"[\s,]", "", match.group(0)).rstrip(".")
    try:
        return float(numeric)
    except ValueError:
        return None


def _clean_text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class InputType(str, Enum):
    PLANNED = "Planned"
    ACTUAL = "Actual"

    @classmethod
    def parse(cls, value) -> Optional["InputType"]:
        if isinstance(value, cls):
            return value
        text = (_clean_text(value) or "").lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return None


class ProgressRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    project_code: Optional[str] = Field(default=None, alias="projectCode")
    project_sub_code: Optional[str] = Field(default=None, alias="projectSubCode")
    project_full_code: Optional[str] = Field(default=None, alias="projectFullCode")
    activity_name: Optional[str] = Field(default=None, alias="activityName")
    input_type: Optional[InputType] = Field(default=None, alias="inputType")
    quantity: float = 0.0
    value: Optional[float] = None
    rate: Optional[float] = None
    planned_value: Optional[float] = Field(default=None, alias="plannedValue")
    actual_value: Optional[float] = Field(default=None, alias="actualValue")
    zone: Optional[str] = None
    section: Optional[str] = None
    unit: Optional[str] = None
    activity_division: Optional[str] = Field(default=None, alias="activityDivision")
    activity_scope: Optional[str] = Field(default=None, alias="activityScope")
    activity_timing: Optional[str] = Field(default=None, alias="activityTiming")
    activity_date: Optional[date] = Field(default=None, alias="activityDate")
    day: Optional[str] = None
    approval_status: Optional[str] = Field(default=None, alias="approvalStatus")
    notes: Optional[str] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value)

    @field_validator(
        "project_code",
        "project_sub_code",
        "project_full_code",
        "activity_name",
        "zone",
        "section",
        "unit",
        "activity_division",
        "activity_scope",
        "activity_timing",
        "day",
        "approval_status",
        "notes",
        mode="before",
    )
    @classmethod
    def _strip_text(cls, value):
        return _clean_text(value)

    @field_validator("input_type", mode="before")
    @classmethod
    def _parse_input_type(cls, value):
        return InputType.parse(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def _parse_quantity(cls, value):
        return parse_number(value) or 0.0

    @field_validator("value", "rate", "planned_value", "actual_value", mode="before")
    @classmethod
    def _parse_amount(cls, value):
        return parse_number(value)

    @field_validator("activity_date", mode="before")
    @classmethod
    def _parse_activity_date(cls, value):
        return parse_date(value)


class ActivityDefinition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    project_code: Optional[str] = Field(default=None, alias="projectCode")
    project_sub_code: Optional[str] = Field(default=None, alias="projectSubCode")
    project_full_code: Optional[str] = Field(default=None, alias="projectFullCode")
    activity_name: str = Field(alias="activityName")
    zone: Optional[str] = None
    unit: Optional[str] = None
    rate: Optional[float] = None
    total_value: Optional[float] = Field(default=None, alias="totalValue")
    total_units: Optional[float] = Field(default=None, alias="totalUnits")
    planned_units: Optional[float] = Field(default=None, alias="plannedUnits")
    actual_units: Optional[float] = Field(default=None, alias="actualUnits")
    activity_division: Optional[str] = Field(default=None, alias="activityDivision")
    activity_scope: Optional[str] = Field(default=None, alias="activityScope")
    activity_timing: Optional[str] = Field(default=None, alias="activityTiming")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return None if value is None else str(value)

    @field_validator(
        "project_code",
        "project_sub_code",
        "project_full_code",
        "zone",
        "unit",
        "activity_division",
        "activity_scope",
        "activity_timing",
        mode="before",
    )
    @classmethod
    def _strip_text(cls, value):
        return _clean_text(value)

    @field_validator("activity_name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return _clean_text(value) or ""

    @field_validator("rate", "total_value", "total_units", "planned_units", "actual_units", mode="before")
    @classmethod
    def _parse_amount(cls, value):
        return parse_number(value)


class Project(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    project_code: Optional[str] = Field(default=None, alias="projectCode")
    project_sub_code: Optional[str] = Field(default=None, alias="projectSubCode")
    project_full_code: Optional[str] = Field(default=None, alias="projectFullCode")
    project_name: Optional[str] = Field(default=None, alias="projectName")
    project_status: Optional[str] = Field(default=None, alias="projectStatus")
    responsible_division: Optional[str] = Field(default=None, alias="responsibleDivision")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value)

    @field_validator(
        "project_code",
        "project_sub_code",
        "project_full_code",
        "project_name",
        "project_status",
        "responsible_division",
        mode="before",
    )
    @classmethod
    def _strip_text(cls, value):
        return _clean_text(value)


class IgnoredReportEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    project_id: str = Field(alias="projectId")
    ignored_date: Optional[date] = Field(default=None, alias="ignoredDate")
    ignored_day_label: Optional[str] = Field(default=None, alias="ignoredDayLabel")
    created_by: Optional[str] = Field(default=None, alias="createdBy")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @field_validator("id", "project_id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return None if value is None else str(value)

    @field_validator("ignored_date", mode="before")
    @classmethod
    def _parse_ignored_date(cls, value):
        return parse_date(value)

    @field_validator("ignored_day_label", mode="before")
    @classmethod
    def _strip_label(cls, value):
        return _clean_text(value)


class MissingReportEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project: Project
    report_date: date = Field(alias="date")
    day_label: str = Field(alias="dayLabel")


class FilterCriteria(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    projects: List[str] = Field(default_factory=list)
    activities: List[str] = Field(default_factory=list)
    input_types: List[str] = Field(default_factory=list, alias="inputTypes")
    zones: List[str] = Field(default_factory=list)
    sections: List[str] = Field(default_factory=list)
    units: List[str] = Field(default_factory=list)
    divisions: List[str] = Field(default_factory=list)
    scopes: List[str] = Field(default_factory=list)
    timings: List[str] = Field(default_factory=list)
    date_from: Optional[date] = Field(default=None, alias="dateFrom")
    date_to: Optional[date] = Field(default=None, alias="dateTo")
    value_min: Optional[float] = Field(default=None, alias="valueMin")
    value_max: Optional[float] = Field(default=None, alias="valueMax")
    quantity_min: Optional[float] = Field(default=None, alias="quantityMin")
    quantity_max: Optional[float] = Field(default=None, alias="quantityMax")
    search: Optional[str] = None

    @field_validator(
        "projects",
        "activities",
        "input_types",
        "zones",
        "sections",
        "units",
        "divisions",
        "scopes",
        "timings",
        mode="before",
    )
    @classmethod
    def _drop_blanks(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        return [text for text in (_clean_text(item) for item in value) if text]

    @field_validator("search", mode="before")
    @classmethod
    def _strip_search(cls, value):
        return _clean_text(value)


class ValuedRecordOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    project_full_code: str = Field(alias="projectFullCode")
    project_code: Optional[str] = Field(default=None, alias="projectCode")
    activity_name: Optional[str] = Field(default=None, alias="activityName")
    input_type: Optional[InputType] = Field(default=None, alias="inputType")
    quantity: float = 0.0
    value: float = 0.0
    stored_value: Optional[float] = Field(default=None, alias="storedValue")
    rate: float = 0.0
    rate_source: str = Field(alias="rateSource")
    matchable: bool = True
    value_defect: bool = Field(default=False, alias="valueDefect")
    matched_activity_id: Optional[str] = Field(default=None, alias="matchedActivityId")
    zone: Optional[str] = None
    section: Optional[str] = None
    unit: Optional[str] = None
    activity_division: Optional[str] = Field(default=None, alias="activityDivision")
    activity_scope: Optional[str] = Field(default=None, alias="activityScope")
    activity_timing: Optional[str] = Field(default=None, alias="activityTiming")
    activity_date: Optional[date] = Field(default=None, alias="activityDate")
    day: Optional[str] = None
    approval_status: Optional[str] = Field(default=None, alias="approvalStatus")


class PartitionTotals(BaseModel):
    count: int = 0
    quantity: float = 0.0
    value: float = 0.0


class KpiSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_count: int = Field(default=0, alias="totalCount")
    unmatched_count: int = Field(default=0, alias="unmatchedCount")
    planned: PartitionTotals = Field(default_factory=PartitionTotals)
    actual: PartitionTotals = Field(default_factory=PartitionTotals)
    achievement_rate: float = Field(default=0.0, alias="achievementRate")
    achievement_basis: str = Field(default="none", alias="achievementBasis")


class KpiSummaryResponse(BaseModel):
    summary: KpiSummary = Field(default_factory=KpiSummary)
    error: Optional[str] = None


class KpiTrackingPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    records: List[ValuedRecordOut] = Field(default_factory=list)
    summary: KpiSummary = Field(default_factory=KpiSummary)
    total: int = 0
    page: int = 1
    page_size: int = Field(default=50, alias="pageSize")
    total_pages: int = Field(default=0, alias="totalPages")
    error: Optional[str] = None


class MissingReportsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")
    entries: List[MissingReportEntry] = Field(default_factory=list)
    total: int = 0
    error: Optional[str] = None


class IgnoreReportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="projectId")
    ignored_date: date = Field(alias="date")
    day_label: Optional[str] = Field(default=None, alias="dayLabel")
    created_by: Optional[str] = Field(default=None, alias="createdBy")

    @field_validator("project_id")
    @classmethod
    def _validate_project_id(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("projectId is required")
        return value.strip()


class IgnoreReportResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    created: bool
    already_ignored: bool = Field(default=False, alias="alreadyIgnored")
    entry: IgnoredReportEntry


class PendingApprovalResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    records: List[ProgressRecord] = Field(default_factory=list)
    total: int = 0
    error: Optional[str] = None


class ActivityProgress(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    activity_id: Optional[str] = Field(default=None, alias="activityId")
    activity_name: str = Field(alias="activityName")
    zone: Optional[str] = None
    rate: float = 0.0
    planned_units: float = Field(default=0.0, alias="plannedUnits")
    actual_units: float = Field(default=0.0, alias="actualUnits")
    planned_value: float = Field(default=0.0, alias="plannedValue")
    earned_value: float = Field(default=0.0, alias="earnedValue")
    remaining_value: float = Field(default=0.0, alias="remainingValue")
    progress: float = 0.0


class ProjectProgressResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_full_code: str = Field(alias="projectFullCode")
    total_project_value: float = Field(default=0.0, alias="totalProjectValue")
    total_earned_value: float = Field(default=0.0, alias="totalEarnedValue")
    progress: float = 0.0
    activities: List[ActivityProgress] = Field(default_factory=list)
    error: Optional[str] = None
