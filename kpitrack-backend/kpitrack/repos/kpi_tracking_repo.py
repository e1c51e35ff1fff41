from __future__ import annotations

import logging
from datetime import date
from time import perf_counter
from typing import Any, Dict, List, Optional, Sequence, Tuple

from psycopg.rows import dict_row

from ..config import settings
from ..db import pool
from ..models import ActivityDefinition, IgnoredReportEntry, ProgressRecord, Project

logger = logging.getLogger(__name__)


RECORD_COLUMNS: Sequence[str] = (
    "id",
    "project_code",
    "project_sub_code",
    "project_full_code",
    "activity_name",
    "input_type",
    "quantity",
    "value",
    "rate",
    "planned_value",
    "actual_value",
    "zone",
    "section",
    "unit",
    "activity_division",
    "activity_scope",
    "activity_timing",
    "activity_date",
    "day",
    "approval_status",
    "notes",
    "created_at",
)

ACTIVITY_COLUMNS: Sequence[str] = (
    "id",
    "project_code",
    "project_sub_code",
    "project_full_code",
    "activity_name",
    "zone",
    "unit",
    "rate",
    "total_value",
    "total_units",
    "planned_units",
    "actual_units",
    "activity_division",
    "activity_scope",
    "activity_timing",
)

PROJECT_COLUMNS: Sequence[str] = (
    "id",
    "project_code",
    "project_sub_code",
    "project_full_code",
    "project_name",
    "project_status",
    "responsible_division",
)


class KpiTrackingRepo:
    """Reads KPI rows, BOQ activities, projects and ignore entries in bounded chunks."""

    def __init__(self, page_size: Optional[int] = None):
        self.page_size = page_size or settings.store_page_size

    def _fetch_all(self, label: str, query: str, params: Tuple[Any, ...] = ()) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        chunks = 0
        start = perf_counter()
        with pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute("SET search_path TO kpitrack, public")
                offset = 0
                while True:
                    cur.execute(f"{query} LIMIT %s OFFSET %s", (*params, self.page_size, offset))
                    chunk = cur.fetchall()
                    chunks += 1
                    rows.extend(chunk)
                    if len(chunk) < self.page_size:
                        break
                    offset += self.page_size
        elapsed = (perf_counter() - start) * 1000
        logger.debug("%s rows=%s chunks=%s elapsed_ms=%.2f", label, len(rows), chunks, elapsed)
        return rows

    def fetch_records(self, project_codes: Optional[Sequence[str]] = None) -> List[ProgressRecord]:
        columns = ", ".join(RECORD_COLUMNS)
        query = f"SELECT {columns} FROM kpitrack.kpi_records"
        params: Tuple[Any, ...] = ()
        bases = sorted({code.split("-", 1)[0].strip().lower() for code in project_codes or () if code.strip()})
        if bases:
            # Narrow by base code only; exact sub-project matching happens in the engine
            query += (
                " WHERE lower(COALESCE(NULLIF(project_code, ''), split_part(project_full_code, '-', 1)))"
                " = ANY(%s)"
            )
            params = (bases,)
        query += " ORDER BY created_at, id"
        rows = self._fetch_all("fetch_records", query, params)
        return [ProgressRecord.model_validate(row) for row in rows]

    def fetch_activities(self) -> List[ActivityDefinition]:
        columns = ", ".join(ACTIVITY_COLUMNS)
        rows = self._fetch_all(
            "fetch_activities",
            f"SELECT {columns} FROM kpitrack.boq_activities ORDER BY created_at, id",
        )
        return [ActivityDefinition.model_validate(row) for row in rows]

    def fetch_projects(self) -> List[Project]:
        columns = ", ".join(PROJECT_COLUMNS)
        rows = self._fetch_all(
            "fetch_projects",
            f"SELECT {columns} FROM kpitrack.projects ORDER BY COALESCE(project_code, project_full_code), id",
        )
        return [Project.model_validate(row) for row in rows]

    def fetch_ignored(self) -> List[IgnoredReportEntry]:
        rows = self._fetch_all(
            "fetch_ignored",
            """
            SELECT id, project_id, ignored_date, ignored_day_label, created_by, created_at
            FROM kpitrack.ignored_reports
            ORDER BY ignored_date, id
            """.strip(),
        )
        return [IgnoredReportEntry.model_validate(row) for row in rows]

    def insert_ignored(
        self,
        project_id: str,
        ignored_date: date,
        day_label: Optional[str],
        created_by: Optional[str] = None,
    ) -> Tuple[IgnoredReportEntry, bool]:
        """Insert an ignore entry; returns the stored row and whether it was new."""
        start = perf_counter()
        with pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute("SET search_path TO kpitrack, public")
                cur.execute(
                    """
                    INSERT INTO kpitrack.ignored_reports (project_id, ignored_date, ignored_day_label, created_by)
                    VALUES (%s, %s, %s, %s)
                    ON CONFLICT (project_id, ignored_date) DO NOTHING
                    RETURNING id, project_id, ignored_date, ignored_day_label, created_by, created_at
                    """,
                    (project_id, ignored_date, day_label, created_by),
                )
                row = cur.fetchone()
                created = row is not None
                if row is None:
                    cur.execute(
                        """
                        SELECT id, project_id, ignored_date, ignored_day_label, created_by, created_at
                        FROM kpitrack.ignored_reports
                        WHERE project_id = %s AND ignored_date = %s
                        """,
                        (project_id, ignored_date),
                    )
                    row = cur.fetchone()
            conn.commit()
        elapsed = (perf_counter() - start) * 1000
        logger.debug(
            "insert_ignored project_id=%s date=%s created=%s elapsed_ms=%.2f",
            project_id,
            ignored_date,
            created,
            elapsed,
        )
        return IgnoredReportEntry.model_validate(row), created
