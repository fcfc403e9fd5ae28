# Overview: Service-layer operations for the audit trail; append and query only.

"""
Audit Trail

WHY: Every mutating back-office action must be attributable. Entries are
append-only; the only delete path is retention cleanup from the CLI.

Writers call record() with commit=False when the audited change is part of
a larger unit of work, so the entry lands in the same transaction as the
change it describes.
"""

from __future__ import annotations

from datetime import timedelta

from flask import has_request_context, request

from ..extensions import db
from ..models import AuditLogEntry, User
from tarpprint.time_utils import parse_iso_datetime, parse_range_end, utcnow


AUDIT_ACTIONS = (
    "CREATE",
    "UPDATE",
    "DELETE",
    "LOGIN",
    "LOGIN_FAILED",
    "LOGOUT",
    "PERMISSION_DENIED",
)


class AuditQueryError(ValueError):
    """Raised for unusable audit filters (bad dates, unknown action)."""


def _request_client() -> tuple[str | None, str | None]:
    if not has_request_context():
        return None, None
    return request.remote_addr, request.headers.get("User-Agent")


def record(
    action: str,
    table_name: str,
    record_id: int | None = None,
    *,
    actor: User | None = None,
    actor_email: str | None = None,
    old_values: dict | None = None,
    new_values: dict | None = None,
    commit: bool = True,
) -> AuditLogEntry:
    """
    Append one audit entry.

    Client IP and user agent are taken from the current request when there
    is one (CLI actions leave them empty).
    """
    ip_address, user_agent = _request_client()

    entry = AuditLogEntry(
        user_id=actor.id if actor else None,
        user_name=actor.name if actor else None,
        user_email=actor.email if actor else actor_email,
        action=action,
        table_name=table_name,
        record_id=record_id,
        old_values=old_values,
        new_values=new_values,
        ip_address=ip_address,
        user_agent=user_agent,
        created_at=utcnow(),
    )
    db.session.add(entry)
    if commit:
        db.session.commit()
    return entry


def query_logs(
    *,
    user_name: str | None = None,
    action: str | None = None,
    table_name: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    limit: int | None = None,
) -> tuple[list[AuditLogEntry], int]:
    """
    Filtered audit entries, newest first, with the total match count.

    user_name is a case-insensitive substring match on the actor's name or
    email. end_date given as a bare date includes the whole day.
    There is no cursor: limit only caps the rows returned, total is always
    the full count.
    """
    query = db.session.query(AuditLogEntry)

    if user_name:
        pattern = f"%{user_name.strip().lower()}%"
        query = query.filter(
            db.or_(
                db.func.lower(AuditLogEntry.user_name).like(pattern),
                db.func.lower(AuditLogEntry.user_email).like(pattern),
            )
        )

    if action:
        action = action.strip().upper()
        if action not in AUDIT_ACTIONS:
            raise AuditQueryError(f"action must be one of {', '.join(AUDIT_ACTIONS)}")
        query = query.filter(AuditLogEntry.action == action)

    if table_name:
        query = query.filter(AuditLogEntry.table_name == table_name.strip())

    try:
        start_dt = parse_iso_datetime(start_date) if start_date else None
        end_dt = parse_range_end(end_date) if end_date else None
    except ValueError:
        raise AuditQueryError("start_date and end_date must be ISO-8601 dates")

    if start_dt:
        query = query.filter(AuditLogEntry.created_at >= start_dt)
    if end_dt:
        query = query.filter(AuditLogEntry.created_at <= end_dt)

    total = query.count()

    query = query.order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
    if limit is not None:
        if limit < 1:
            raise AuditQueryError("limit must be >= 1")
        query = query.limit(limit)

    return query.all(), total


def cleanup_audit_logs(retention_days: int) -> int:
    """Delete entries older than the retention window. Returns count deleted."""
    if retention_days < 1:
        raise ValueError("retention_days must be >= 1")
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(AuditLogEntry).filter(
        AuditLogEntry.created_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
