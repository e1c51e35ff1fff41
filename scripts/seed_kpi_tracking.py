#!/usr/bin/env python3
"""
Seed synthetic KPI progress rows for the fixture projects.

Rows deliberately mimic the upstream spreadsheet export: quantities and values
stored as text, dates in mixed formats, some rows carrying only a day label and
some days skipped entirely so the missing-report view has gaps to show. The
script is idempotent; row ids are derived from (activity, date, input type).
"""
from __future__ import annotations

import argparse
import random
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Tuple

ROOT = Path(__file__).resolve().parent.parent
BACKEND_DIR = ROOT / "kpitrack-backend"

import sys

sys.path.append(str(BACKEND_DIR))

from kpitrack.db import close_pool, initialize_database, open_pool, pool  # type: ignore  # noqa: E402
from kpitrack.models import ActivityDefinition  # type: ignore  # noqa: E402
from kpitrack.services.approvals import approval_note  # type: ignore  # noqa: E402
from kpitrack.services.dates import format_day_label  # type: ignore  # noqa: E402


RANDOM = random.Random(42)
DAYS_RANGE = 30
SKIP_PROBABILITY = 0.15

DATE_STYLES = (
    lambda d: d.isoformat(),
    lambda d: d.strftime("%m/%d/%Y"),
    lambda d: f"{d.day}-{d.strftime('%b')}-{d.strftime('%y')}",
    lambda d: None,
)


def _fetch_activities() -> List[ActivityDefinition]:
    from psycopg.rows import dict_row

    with pool.connection() as conn:
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute("SET search_path TO kpitrack, public")
            cur.execute("SELECT * FROM kpitrack.boq_activities ORDER BY id")
            return [ActivityDefinition.model_validate(row) for row in cur.fetchall()]


def _messy_number(value: float) -> str:
    text = f"{value:,.2f}"
    return text if RANDOM.random() < 0.7 else f" {text} "


def _build_rows(activities: List[ActivityDefinition], days: int) -> List[Dict[str, object]]:
    today = date.today()
    rows: Dict[Tuple[str, date, str], Dict[str, object]] = {}
    for activity in activities:
        daily_planned = (activity.total_units or 200.0) / max(days, 1)
        for offset in range(days):
            report_date = today - timedelta(days=offset)
            if RANDOM.random() < SKIP_PROBABILITY:
                continue
            for input_type in ("Planned", "Actual"):
                quantity = round(daily_planned * RANDOM.uniform(0.6, 1.2), 2)
                key = (activity.id or activity.activity_name, report_date, input_type)
                approved = input_type == "Planned" or RANDOM.random() < 0.6
                rows[key] = {
                    "id": f"seed-{key[0]}-{report_date.isoformat()}-{input_type.lower()}",
                    "project_code": activity.project_code,
                    "project_sub_code": activity.project_sub_code,
                    "project_full_code": activity.project_full_code if RANDOM.random() < 0.8 else None,
                    "activity_name": activity.activity_name,
                    "input_type": input_type,
                    "quantity": _messy_number(quantity),
                    # some exports copy the quantity into the value column
                    "value": _messy_number(quantity) if RANDOM.random() < 0.1 else None,
                    "rate": None,
                    "zone": activity.zone,
                    "section": "Section A" if input_type == "Actual" else None,
                    "unit": activity.unit,
                    "activity_date": RANDOM.choice(DATE_STYLES)(report_date),
                    "day": format_day_label(report_date),
                    "approval_status": "approved" if approved else "pending",
                    "notes": approval_note("seed@kpitrack.local", datetime.now(timezone.utc)) if approved else None,
                }
    return list(rows.values())


def seed_records(rows: List[Dict[str, object]]) -> None:
    with pool.connection() as conn:
        with conn.cursor() as cur:
            cur.execute("SET search_path TO kpitrack, public")
            for row in rows:
                cur.execute(
                    """
                    INSERT INTO kpitrack.kpi_records (
                        id, project_code, project_sub_code, project_full_code, activity_name,
                        input_type, quantity, value, rate, zone, section, unit,
                        activity_date, day, approval_status, notes
                    )
                    VALUES (
                        %(id)s, %(project_code)s, %(project_sub_code)s, %(project_full_code)s, %(activity_name)s,
                        %(input_type)s, %(quantity)s, %(value)s, %(rate)s, %(zone)s, %(section)s, %(unit)s,
                        %(activity_date)s, %(day)s, %(approval_status)s, %(notes)s
                    )
                    ON CONFLICT (id) DO NOTHING
                    """,
                    row,
                )
        conn.commit()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--days", type=int, default=DAYS_RANGE, help="Number of past days to cover")
    args = parser.parse_args()
    open_pool()
    try:
        initialize_database()
        activities = _fetch_activities()
        if not activities:
            print("No BOQ activities found; check the fixture files.")
            return

        rows = _build_rows(activities, args.days)
        seed_records(rows)

        print(f"Seeded up to {len(rows)} kpi_records rows for {len(activities)} activities.")
    finally:
        close_pool()


if __name__ == "__main__":
    main()
