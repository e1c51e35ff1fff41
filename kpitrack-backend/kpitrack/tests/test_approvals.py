from __future__ import annotations

from datetime import datetime, timezone

from kpitrack.services.approvals import (
    approval_note,
    is_visible,
    needs_approval,
    pending_approval,
    visible_records,
)

from conftest import make_record

CUTOFF = datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_status_or_note_marks_approval():
    assert not needs_approval(make_record(approvalStatus="Approved"))
    note = approval_note("qa@example.com", datetime(2025, 2, 1, 9, 0))
    assert note == "APPROVED:approved:by:qa@example.com:date:2025-02-01"
    assert not needs_approval(make_record(notes=f"checked. {note}"))
    assert needs_approval(make_record(approvalStatus="pending", notes="APPROVED: later"))
    assert needs_approval(make_record())


def test_recent_actuals_need_approval_to_be_visible():
    fresh = make_record("fresh", inputType="Actual", createdAt="2025-01-05T10:00:00Z")
    approved = make_record("approved", inputType="Actual", createdAt="2025-01-05T10:00:00Z", approvalStatus="approved")
    legacy = make_record("legacy", inputType="Actual", createdAt=datetime(2024, 12, 31, 23, 0))
    planned = make_record("planned", inputType="Planned", createdAt="2025-01-05T10:00:00Z")

    assert not is_visible(fresh, CUTOFF)
    assert is_visible(approved, CUTOFF)
    assert is_visible(legacy, CUTOFF)
    assert is_visible(planned, CUTOFF)
    assert is_visible(fresh, None)
    assert [record.id for record in visible_records([fresh, approved, legacy, planned], CUTOFF)] == [
        "approved",
        "legacy",
        "planned",
    ]


def test_pending_approval_lists_newest_first():
    records = [
        make_record("old", createdAt="2025-01-01T00:00:00Z"),
        make_record("done", createdAt="2025-01-03T00:00:00Z", approvalStatus="approved"),
        make_record("new", createdAt="2025-01-02T00:00:00Z"),
        make_record("undated"),
        make_record("plan", inputType="Planned", createdAt="2025-01-04T00:00:00Z"),
    ]
    assert [record.id for record in pending_approval(records)] == ["new", "old", "undated"]
