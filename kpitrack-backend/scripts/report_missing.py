from __future__ import annotations

import argparse
import logging
from datetime import date

from fastapi import HTTPException

from kpitrack.db import close_pool, open_pool
from kpitrack.models import MissingReportsResponse
from kpitrack.repos.kpi_tracking_repo import KpiTrackingRepo
from kpitrack.services.dates import parse_date
from kpitrack.services.kpi_tracking import find_missing_reports


def _date_arg(value: str) -> date:
    parsed = parse_date(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"unrecognised date: {value!r}")
    return parsed


def _print_report(result: MissingReportsResponse) -> None:
    print(f"Missing daily reports {result.start_date} .. {result.end_date}")
    if result.error:
        print(f"  store error: {result.error}")
        return
    if not result.entries:
        print("  none")
        return
    for entry in result.entries:
        project = entry.project
        name = project.project_name or project.project_full_code or project.id
        print(f"  {entry.day_label:<28} {project.project_full_code or project.project_code or '-':<12} {name}")
    print(f"{result.total} missing report(s)")


def main() -> None:
    parser = argparse.ArgumentParser(description="List ongoing projects without a daily KPI report")
    parser.add_argument("--start", type=_date_arg, default=None, help="First day (defaults to the configured start)")
    parser.add_argument("--end", type=_date_arg, default=None, help="Last day (defaults to today)")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    open_pool()
    try:
        try:
            result = find_missing_reports(KpiTrackingRepo(), args.start, args.end)
        except HTTPException as exc:
            parser.error(str(exc.detail))
        _print_report(result)
    finally:
        close_pool()


if __name__ == "__main__":
    main()
