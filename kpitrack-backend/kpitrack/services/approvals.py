from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from ..models import InputType, ProgressRecord

APPROVED_STATUS = "approved"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def approval_note(approved_by: str, on: datetime) -> str:
    return f"APPROVED:approved:by:{approved_by}:date:{on.date().isoformat()}"


def is_approved(record: ProgressRecord) -> bool:
    if (record.approval_status or "").strip().lower() == APPROVED_STATUS:
        return True
    notes = record.notes or ""
    return "APPROVED:" in notes and ":approved:" in notes


def needs_approval(record: ProgressRecord) -> bool:
    return not is_approved(record)


def is_visible(record: ProgressRecord, approval_required_since: Optional[datetime]) -> bool:
    """Actual rows entered after the approval cutoff stay hidden until approved."""
    if approval_required_since is None or record.input_type is not InputType.ACTUAL:
        return True
    if record.created_at is None:
        return True
    if _as_utc(record.created_at) < _as_utc(approval_required_since):
        return True
    return is_approved(record)


def visible_records(
    records: Iterable[ProgressRecord],
    approval_required_since: Optional[datetime],
) -> List[ProgressRecord]:
    return [record for record in records if is_visible(record, approval_required_since)]


def pending_approval(records: Iterable[ProgressRecord]) -> List[ProgressRecord]:
    pending = [
        record for record in records if record.input_type is InputType.ACTUAL and needs_approval(record)
    ]
    oldest = datetime.min.replace(tzinfo=timezone.utc)
    pending.sort(key=lambda record: _as_utc(record.created_at) if record.created_at else oldest, reverse=True)
    return pending
