# Overview: Service-layer operations for maintenance; retention cleanup run from the CLI.

from __future__ import annotations

from . import audit_service, session_service


def cleanup_sessions(*, older_than_days: int = 30) -> int:
    """Delete expired or revoked sessions older than the cutoff."""
    if older_than_days < 1:
        raise ValueError("older_than_days must be >= 1")
    return session_service.cleanup_expired_sessions(older_than_days=older_than_days)


def cleanup_audit_logs(*, retention_days: int = 365) -> int:
    """Delete audit entries older than retention_days."""
    return audit_service.cleanup_audit_logs(retention_days)
