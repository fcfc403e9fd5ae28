"""
Login Throttling Service

WHY: Prevent brute-force password attacks by limiting failed login attempts.
After too many failures, the identifier is temporarily locked.

SECURITY FEATURES:
- Tracks failed attempts per email
- Lockout after MAX_FAILED_ATTEMPTS failures within LOCKOUT_WINDOW
- Lockout duration: LOCKOUT_DURATION minutes
- Uses the audit_logs table for tracking (LOGIN_FAILED rows)
"""

from datetime import timedelta
from ..extensions import db
from ..models import AuditLogEntry, User
from . import audit_service
from tarpprint.time_utils import utcnow


# Configuration constants
MAX_FAILED_ATTEMPTS = 10  # Lock after 10 failed attempts
LOCKOUT_WINDOW = timedelta(minutes=15)  # Within 15 minutes
LOCKOUT_DURATION = timedelta(minutes=15)  # Lockout for 15 minutes


def _normalize(identifier: str) -> str:
    return (identifier or "").strip().lower()


def _failed_query(identifier: str):
    return db.session.query(AuditLogEntry).filter(
        AuditLogEntry.action == "LOGIN_FAILED",
        AuditLogEntry.user_email == _normalize(identifier),
    )


def get_recent_failed_attempts(identifier: str) -> int:
    """
    Count failed login attempts for an email within LOCKOUT_WINDOW.

    Failures before the most recent successful login do not count.
    """
    cutoff = utcnow() - LOCKOUT_WINDOW

    last_success = db.session.query(AuditLogEntry).filter(
        AuditLogEntry.action == "LOGIN",
        AuditLogEntry.user_email == _normalize(identifier),
    ).order_by(AuditLogEntry.created_at.desc()).first()
    if last_success and last_success.created_at > cutoff:
        cutoff = last_success.created_at

    return _failed_query(identifier).filter(AuditLogEntry.created_at >= cutoff).count()


def is_account_locked(identifier: str) -> tuple[bool, int | None]:
    """
    Check if an identifier is currently locked due to too many failed attempts.

    Returns:
    - (True, seconds_remaining) if locked
    - (False, None) if not locked
    """
    failed_count = get_recent_failed_attempts(identifier)

    if failed_count >= MAX_FAILED_ATTEMPTS:
        most_recent = _failed_query(identifier).order_by(AuditLogEntry.created_at.desc()).first()

        if most_recent:
            lockout_end = most_recent.created_at + LOCKOUT_DURATION
            now = utcnow()

            if now < lockout_end:
                seconds_remaining = int((lockout_end - now).total_seconds())
                return True, max(seconds_remaining, 1)

    return False, None


def record_failed_attempt(identifier: str) -> int:
    """
    Record a failed login attempt.

    Returns the total number of recent failed attempts.
    """
    email = _normalize(identifier)
    user = db.session.query(User).filter(db.func.lower(User.email) == email).first()

    audit_service.record(
        "LOGIN_FAILED",
        "users",
        user.id if user else None,
        actor_email=email,
    )

    return get_recent_failed_attempts(email)


def record_successful_login(user: User) -> None:
    """
    Record a successful login.

    Old failures are kept for the audit trail; a success restarts the
    lockout clock since the user proved they know the password.
    """
    audit_service.record("LOGIN", "users", user.id, actor=user)


def get_lockout_status(identifier: str) -> dict:
    failed_count = get_recent_failed_attempts(identifier)
    is_locked, seconds_remaining = is_account_locked(identifier)

    return {
        "locked": is_locked,
        "failed_attempts": failed_count,
        "max_attempts": MAX_FAILED_ATTEMPTS,
        "seconds_until_unlock": seconds_remaining,
        "lockout_window_minutes": int(LOCKOUT_WINDOW.total_seconds() / 60),
        "lockout_duration_minutes": int(LOCKOUT_DURATION.total_seconds() / 60),
    }
