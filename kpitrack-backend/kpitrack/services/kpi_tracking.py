from __future__ import annotations

import logging
import math
import time
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import psycopg
from fastapi import HTTPException, status

from ..config import settings
from ..models import (
    FilterCriteria,
    IgnoreReportRequest,
    IgnoreReportResponse,
    InputType,
    KpiSummaryResponse,
    KpiTrackingPage,
    MissingReportsResponse,
    PendingApprovalResponse,
    ProjectProgressResponse,
)
from ..repos.kpi_tracking_repo import KpiTrackingRepo
from .aggregator import project_progress, summarize
from .approvals import pending_approval, visible_records
from .dates import format_day_label
from .gap_detector import detect_missing_reports
from .identifiers import canonical_project_code
from .record_matcher import filter_records
from .valuation import ScopeTable, ValuedRecord, to_out, value_records

logger = logging.getLogger(__name__)

TTL_SECONDS = 45.0
DEFAULT_WINDOW_DAYS = 7
_CACHE: Dict[Tuple, Tuple[float, object]] = {}


def _ensure_feature_enabled() -> None:
    if not settings.feature_kpi_tracking:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="KPI tracking API is disabled")


def _cache_get(key: Tuple):
    entry = _CACHE.get(key)
    if not entry:
        return None
    ts, payload = entry
    if time.time() - ts > TTL_SECONDS:
        _CACHE.pop(key, None)
        return None
    return payload


def _cache_set(key: Tuple, payload):
    _CACHE[key] = (time.time(), payload)


def clear_tracking_cache():
    _CACHE.clear()


def _store_error(operation: str, exc: Exception) -> str:
    logger.warning("%s failed; returning empty result: %s", operation, exc)
    return f"KPI store unavailable: {exc}"


def _validate_criteria(criteria: FilterCriteria) -> None:
    unknown = [item for item in criteria.input_types if InputType.parse(item) is None]
    if unknown:
        allowed = ", ".join(member.value for member in InputType)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"inputType must be one of {allowed}",
        )
    if criteria.date_from and criteria.date_to and criteria.date_from > criteria.date_to:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="dateFrom must not be after dateTo")


def _load_valued(repo: KpiTrackingRepo, project_codes: Optional[Sequence[str]] = None) -> List[ValuedRecord]:
    records = visible_records(repo.fetch_records(project_codes), settings.approval_required_since)
    activities = repo.fetch_activities()
    scope_table = ScopeTable.build(activities, settings.scope_divisions)
    return value_records(records, activities, scope_table=scope_table, epsilon=settings.value_epsilon)


def build_tracking_page(
    repo: KpiTrackingRepo,
    criteria: FilterCriteria,
    page: int = 1,
    page_size: Optional[int] = None,
) -> KpiTrackingPage:
    """One page of valued records plus the summary of the whole filtered set."""
    _ensure_feature_enabled()
    _validate_criteria(criteria)
    size = page_size or settings.tracking_page_size
    page = max(page, 1)
    try:
        valued = _load_valued(repo, criteria.projects)
    except psycopg.Error as exc:
        return KpiTrackingPage(page=page, pageSize=size, error=_store_error("build_tracking_page", exc))

    filtered = filter_records(valued, criteria)
    total = len(filtered)
    offset = (page - 1) * size
    return KpiTrackingPage(
        records=[to_out(row) for row in filtered[offset:offset + size]],
        summary=summarize(filtered),
        total=total,
        page=page,
        pageSize=size,
        totalPages=math.ceil(total / size) if total else 0,
    )


def get_summary(repo: KpiTrackingRepo, criteria: FilterCriteria) -> KpiSummaryResponse:
    _ensure_feature_enabled()
    _validate_criteria(criteria)
    try:
        valued = _load_valued(repo, criteria.projects)
    except psycopg.Error as exc:
        return KpiSummaryResponse(error=_store_error("get_summary", exc))
    return KpiSummaryResponse(summary=summarize(filter_records(valued, criteria)))


def resolve_window(start: Optional[date], end: Optional[date]) -> Tuple[date, date]:
    end_day = end or date.today()
    start_day = start or settings.reporting_start_date or end_day - timedelta(days=DEFAULT_WINDOW_DAYS - 1)
    if start_day > end_day:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="startDate must not be after endDate")
    return start_day, end_day


def find_missing_reports(
    repo: KpiTrackingRepo,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> MissingReportsResponse:
    _ensure_feature_enabled()
    start_day, end_day = resolve_window(start, end)
    cache_key = ("missing", start_day, end_day)
    cached = _cache_get(cache_key)
    if cached:
        return cached

    try:
        projects = repo.fetch_projects()
        records = repo.fetch_records()
        ignored = repo.fetch_ignored()
    except psycopg.Error as exc:
        return MissingReportsResponse(
            startDate=start_day,
            endDate=end_day,
            error=_store_error("find_missing_reports", exc),
        )

    entries = detect_missing_reports(start_day, end_day, projects, records, ignored)
    response = MissingReportsResponse(startDate=start_day, endDate=end_day, entries=entries, total=len(entries))
    _cache_set(cache_key, response)
    return response


def ignore_missing_report(repo: KpiTrackingRepo, request: IgnoreReportRequest) -> IgnoreReportResponse:
    _ensure_feature_enabled()
    day_label = request.day_label or format_day_label(request.ignored_date)
    try:
        entry, created = repo.insert_ignored(
            request.project_id,
            request.ignored_date,
            day_label,
            request.created_by,
        )
    except psycopg.Error as exc:
        logger.warning("ignore_missing_report failed project_id=%s: %s", request.project_id, exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="KPI store unavailable") from exc
    clear_tracking_cache()
    if not created:
        logger.info(
            "ignore_missing_report duplicate project_id=%s date=%s",
            request.project_id,
            request.ignored_date,
        )
    return IgnoreReportResponse(created=created, alreadyIgnored=not created, entry=entry)


def get_pending_approval(repo: KpiTrackingRepo) -> PendingApprovalResponse:
    _ensure_feature_enabled()
    try:
        records = repo.fetch_records()
    except psycopg.Error as exc:
        return PendingApprovalResponse(error=_store_error("get_pending_approval", exc))
    pending = pending_approval(records)
    return PendingApprovalResponse(records=pending, total=len(pending))


def get_project_progress(repo: KpiTrackingRepo, project_code: str) -> ProjectProgressResponse:
    _ensure_feature_enabled()
    wanted = project_code.strip()
    try:
        projects = repo.fetch_projects()
    except psycopg.Error as exc:
        return ProjectProgressResponse(projectFullCode=wanted, error=_store_error("get_project_progress", exc))

    project = next(
        (
            candidate
            for candidate in projects
            if canonical_project_code(candidate).lower() == wanted.lower() or candidate.id == wanted
        ),
        None,
    )
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")

    full_code = canonical_project_code(project)
    try:
        records = visible_records(repo.fetch_records([full_code]), settings.approval_required_since)
        activities = repo.fetch_activities()
    except psycopg.Error as exc:
        return ProjectProgressResponse(projectFullCode=full_code, error=_store_error("get_project_progress", exc))

    valued = value_records(
        records,
        activities,
        scope_table=ScopeTable.build(activities, settings.scope_divisions),
        epsilon=settings.value_epsilon,
    )
    own = filter_records(valued, FilterCriteria(projects=[full_code]))
    return project_progress(activities, own, full_code)
