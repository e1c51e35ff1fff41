from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from pydantic import ValidationError

from ..models import (
    FilterCriteria,
    IgnoreReportRequest,
    IgnoreReportResponse,
    KpiSummaryResponse,
    KpiTrackingPage,
    MissingReportsResponse,
    PendingApprovalResponse,
    ProjectProgressResponse,
)
from ..repos.kpi_tracking_repo import KpiTrackingRepo
from ..services.kpi_tracking import (
    build_tracking_page,
    find_missing_reports,
    get_pending_approval,
    get_project_progress,
    get_summary,
    ignore_missing_report,
)

logger = logging.getLogger(__name__)


def get_repo() -> KpiTrackingRepo:
    return KpiTrackingRepo()


def get_criteria(
    project: Optional[List[str]] = Query(default=None, description="Project full code, repeatable"),
    activity: Optional[List[str]] = Query(default=None),
    input_type: Optional[List[str]] = Query(default=None, alias="inputType"),
    zone: Optional[List[str]] = Query(default=None),
    section: Optional[List[str]] = Query(default=None),
    unit: Optional[List[str]] = Query(default=None),
    division: Optional[List[str]] = Query(default=None),
    scope: Optional[List[str]] = Query(default=None),
    timing: Optional[List[str]] = Query(default=None),
    date_from: Optional[str] = Query(default=None, alias="dateFrom"),
    date_to: Optional[str] = Query(default=None, alias="dateTo"),
    value_min: Optional[float] = Query(default=None, alias="valueMin"),
    value_max: Optional[float] = Query(default=None, alias="valueMax"),
    quantity_min: Optional[float] = Query(default=None, alias="quantityMin"),
    quantity_max: Optional[float] = Query(default=None, alias="quantityMax"),
    search: Optional[str] = Query(default=None),
) -> FilterCriteria:
    try:
        return FilterCriteria(
            projects=project,
            activities=activity,
            inputTypes=input_type,
            zones=zone,
            sections=section,
            units=unit,
            divisions=division,
            scopes=scope,
            timings=timing,
            dateFrom=date_from or None,
            dateTo=date_to or None,
            valueMin=value_min,
            valueMax=value_max,
            quantityMin=quantity_min,
            quantityMax=quantity_max,
            search=search,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.errors()) from exc


router = APIRouter(prefix="/api/v2/kpi-tracking", tags=["kpi-tracking"])


@router.get("/records", response_model=KpiTrackingPage)
def tracking_records(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(default=None, alias="pageSize", ge=1, le=500),
    criteria: FilterCriteria = Depends(get_criteria),
    repo: KpiTrackingRepo = Depends(get_repo),
    x_request_id: Optional[str] = Header(default=None, alias="X-Request-Id"),
) -> KpiTrackingPage:
    result = build_tracking_page(repo, criteria, page=page, page_size=page_size)
    logger.info(
        "tracking_records page=%s total=%s error=%s request_id=%s",
        result.page,
        result.total,
        result.error is not None,
        x_request_id,
    )
    return result


@router.get("/summary", response_model=KpiSummaryResponse)
def tracking_summary(
    criteria: FilterCriteria = Depends(get_criteria),
    repo: KpiTrackingRepo = Depends(get_repo),
    x_request_id: Optional[str] = Header(default=None, alias="X-Request-Id"),
) -> KpiSummaryResponse:
    result = get_summary(repo, criteria)
    logger.info("tracking_summary total=%s request_id=%s", result.summary.total_count, x_request_id)
    return result


@router.get("/missing-reports", response_model=MissingReportsResponse)
def missing_reports(
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    repo: KpiTrackingRepo = Depends(get_repo),
    x_request_id: Optional[str] = Header(default=None, alias="X-Request-Id"),
) -> MissingReportsResponse:
    result = find_missing_reports(repo, start_date, end_date)
    logger.info(
        "missing_reports start=%s end=%s missing=%s request_id=%s",
        result.start_date,
        result.end_date,
        result.total,
        x_request_id,
    )
    return result


@router.post("/missing-reports/ignore", response_model=IgnoreReportResponse)
def ignore_report(
    payload: IgnoreReportRequest,
    repo: KpiTrackingRepo = Depends(get_repo),
    x_request_id: Optional[str] = Header(default=None, alias="X-Request-Id"),
) -> IgnoreReportResponse:
    result = ignore_missing_report(repo, payload)
    logger.info(
        "ignore_report project_id=%s date=%s created=%s request_id=%s",
        payload.project_id,
        payload.ignored_date,
        result.created,
        x_request_id,
    )
    return result


@router.get("/pending-approval", response_model=PendingApprovalResponse)
def pending_approval(
    repo: KpiTrackingRepo = Depends(get_repo),
    x_request_id: Optional[str] = Header(default=None, alias="X-Request-Id"),
) -> PendingApprovalResponse:
    result = get_pending_approval(repo)
    logger.info("pending_approval total=%s request_id=%s", result.total, x_request_id)
    return result


@router.get("/projects/{project_code}/progress", response_model=ProjectProgressResponse)
def project_progress(
    project_code: str,
    repo: KpiTrackingRepo = Depends(get_repo),
    x_request_id: Optional[str] = Header(default=None, alias="X-Request-Id"),
) -> ProjectProgressResponse:
    result = get_project_progress(repo, project_code)
    logger.info(
        "project_progress project=%s activities=%s request_id=%s",
        result.project_full_code,
        len(result.activities),
        x_request_id,
    )
    return result
