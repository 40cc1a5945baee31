# Overview: Service-layer operations for the audit log; encapsulates business logic and database work.

from __future__ import annotations

from typing import Optional

from ..extensions import db
from ..models import AuditLog
"""
Audit Log Invariants (authoritative)

- Append-only; no updates or deletes of existing entries.
- No domain/business logic in the audit log itself.
- Entries describing a change are written in the same DB transaction as the
  change, except "attempted" and "failed" entries, which are committed on
  their own so they survive a rollback of the change.
"""

STATUS_ATTEMPTED = "attempted"
STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"

VALID_STATUSES = (STATUS_ATTEMPTED, STATUS_SUCCESS, STATUS_FAILED)


def log_action(
    *,
    user_id: int | None,
    action_type: str,
    entity_type: str,
    entity_id: int | None,
    status: str = STATUS_SUCCESS,
    details: Optional[dict] = None,
    notes: Optional[str] = None,
    commit: bool = False,
) -> AuditLog:
    """
    Append one audit entry.

    With commit=False the entry joins the caller's transaction (flushed, not
    committed). With commit=True it is committed immediately.
    """
    if status not in VALID_STATUSES:
        raise ValueError(f"Invalid audit status: {status}")

    entry = AuditLog(
        user_id=user_id,
        action_type=action_type,
        entity_type=entity_type,
        entity_id=entity_id,
        status=status,
        details=details,
        notes=notes,
    )
    db.session.add(entry)
    if commit:
        db.session.commit()
    else:
        db.session.flush()  # ensures entry.id is assigned without committing
    return entry


def list_entries(
    *,
    entity_type: str | None = None,
    entity_id: int | None = None,
    action_type: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[AuditLog], int]:
    """Newest first."""
    query = db.session.query(AuditLog)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(AuditLog.entity_id == entity_id)
    if action_type:
        query = query.filter(AuditLog.action_type == action_type)

    total = query.count()
    rows = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).offset(offset).all()
    return rows, total
