import json
import logging
from pathlib import Path
from typing import Iterable

from psycopg_pool import ConnectionPool

from .config import settings

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
FIXTURE_DIR = BASE_DIR / "fixtures"

# start closed, we'll open in app lifespan
pool = ConnectionPool(conninfo=settings.database_url, max_size=10, open=False)


SCHEMA_STATEMENTS: Iterable[str] = (
    """
    CREATE TABLE IF NOT EXISTS kpitrack.projects (
        id TEXT PRIMARY KEY,
        project_code TEXT,
        project_sub_code TEXT,
        project_full_code TEXT,
        project_name TEXT,
        project_status TEXT,
        responsible_division TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS kpitrack.boq_activities (
        id TEXT PRIMARY KEY,
        project_code TEXT,
        project_sub_code TEXT,
        project_full_code TEXT,
        activity_name TEXT NOT NULL,
        zone TEXT,
        unit TEXT,
        rate NUMERIC(18, 4),
        total_value NUMERIC(18, 2),
        total_units NUMERIC(18, 4),
        planned_units NUMERIC(18, 4),
        actual_units NUMERIC(18, 4),
        activity_division TEXT,
        activity_scope TEXT,
        activity_timing TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS kpitrack.kpi_records (
        id TEXT PRIMARY KEY,
        project_code TEXT,
        project_sub_code TEXT,
        project_full_code TEXT,
        activity_name TEXT,
        input_type TEXT,
        quantity TEXT,
        value TEXT,
        rate TEXT,
        planned_value TEXT,
        actual_value TEXT,
        zone TEXT,
        section TEXT,
        unit TEXT,
        activity_division TEXT,
        activity_scope TEXT,
        activity_timing TEXT,
        activity_date TEXT,
        day TEXT,
        approval_status TEXT,
        notes TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS kpi_records_full_code_idx
        ON kpitrack.kpi_records (project_full_code)
    """,
    """
    CREATE TABLE IF NOT EXISTS kpitrack.ignored_reports (
        id BIGSERIAL PRIMARY KEY,
        project_id TEXT NOT NULL,
        ignored_date DATE NOT NULL,
        ignored_day_label TEXT,
        created_by TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        UNIQUE (project_id, ignored_date)
    )
    """,
)


def open_pool() -> None:
    if pool.closed:
        pool.open()


def close_pool() -> None:
    if not pool.closed:
        pool.close()


def initialize_database() -> None:
    try:
        ensure_schema()
        seed_database()
    except Exception:  # pragma: no cover - defensive guard
        logger.exception("Database initialization failed")
        raise


def ensure_schema() -> None:
    with pool.connection() as conn:
        with conn.cursor() as cur:
            cur.execute("CREATE SCHEMA IF NOT EXISTS kpitrack")
            cur.execute("SET search_path TO kpitrack, public")
            for statement in SCHEMA_STATEMENTS:
                cur.execute(statement)
        conn.commit()


def _table_is_empty(conn, table: str) -> bool:
    with conn.cursor() as cur:
        cur.execute(f"SELECT COUNT(*) FROM kpitrack.{table}")
        (count,) = cur.fetchone()
    return count == 0


def seed_database() -> None:
    """Idempotent bootstrap of fixture projects and BOQ activities.

    Seeding only runs when the target table is empty so live data is never
    overwritten.
    """
    projects_path = FIXTURE_DIR / "projects.json"
    activities_path = FIXTURE_DIR / "boq_activities.json"

    if not projects_path.exists():
        return

    with pool.connection() as conn:
        if _table_is_empty(conn, "projects"):
            logger.info("Seeding kpitrack.projects from %s", projects_path)
            projects = json.loads(projects_path.read_text())
            with conn.cursor() as cur:
                for project in projects:
                    cur.execute(
                        """
                        INSERT INTO kpitrack.projects (
                            id, project_code, project_sub_code, project_full_code,
                            project_name, project_status, responsible_division
                        )
                        VALUES (
                            %(id)s, %(project_code)s, %(project_sub_code)s, %(project_full_code)s,
                            %(project_name)s, %(project_status)s, %(responsible_division)s
                        )
                        ON CONFLICT (id) DO UPDATE SET
                            project_status = EXCLUDED.project_status,
                            updated_at = NOW()
                        """,
                        project,
                    )
            conn.commit()

        if activities_path.exists() and _table_is_empty(conn, "boq_activities"):
            logger.info("Seeding kpitrack.boq_activities from %s", activities_path)
            activities = json.loads(activities_path.read_text())
            with conn.cursor() as cur:
                for activity in activities:
                    cur.execute(
                        """
                        INSERT INTO kpitrack.boq_activities (
                            id, project_code, project_sub_code, project_full_code,
                            activity_name, zone, unit, rate, total_value, total_units,
                            planned_units, actual_units, activity_division,
                            activity_scope, activity_timing
                        )
                        VALUES (
                            %(id)s, %(project_code)s, %(project_sub_code)s, %(project_full_code)s,
                            %(activity_name)s, %(zone)s, %(unit)s, %(rate)s, %(total_value)s,
                            %(total_units)s, %(planned_units)s, %(actual_units)s,
                            %(activity_division)s, %(activity_scope)s, %(activity_timing)s
                        )
                        ON CONFLICT (id) DO NOTHING
                        """,
                        activity,
                    )
            conn.commit()
