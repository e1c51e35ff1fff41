from .kpi_tracking import (
    ActivityDefinition,
    ActivityProgress,
    FilterCriteria,
    IgnoredReportEntry,
    IgnoreReportRequest,
    IgnoreReportResponse,
    InputType,
    KpiSummary,
    KpiSummaryResponse,
    KpiTrackingPage,
    MissingReportEntry,
    MissingReportsResponse,
    PartitionTotals,
    PendingApprovalResponse,
    ProgressRecord,
    Project,
    ProjectProgressResponse,
    ValuedRecordOut,
    parse_number,
)

__all__ = [
    "ActivityDefinition",
    "ActivityProgress",
    "FilterCriteria",
    "IgnoredReportEntry",
    "IgnoreReportRequest",
    "IgnoreReportResponse",
    "InputType",
    "KpiSummary",
    "KpiSummaryResponse",
    "KpiTrackingPage",
    "MissingReportEntry",
    "MissingReportsResponse",
    "PartitionTotals",
    "PendingApprovalResponse",
    "ProgressRecord",
    "Project",
    "ProjectProgressResponse",
    "ValuedRecordOut",
    "parse_number",
]
