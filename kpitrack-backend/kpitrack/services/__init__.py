"""Service layer namespace."""

__all__ = [
    "activity_index",
    "aggregator",
    "approvals",
    "dates",
    "gap_detector",
    "identifiers",
    "kpi_tracking",
    "record_matcher",
    "valuation",
]
