# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/tarpprint/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on registration
- Login throttling to prevent brute-force attacks
- Generic "Invalid email or password" for every credential failure
- Session management with token-based auth
- Distinct 401 codes for a missing header vs. a bad token
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import audit_service
from ..services import session_service
from ..services import login_throttle_service
from ..services.auth_service import AuthError, PasswordValidationError, INVALID_CREDENTIALS
from ..permissions import get_capabilities
from ..decorators import require_auth
from tarpprint.time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user, session, token, message: str) -> dict:
    return {
        "success": True,
        "user": user.to_dict(),
        "token": token,
        "expires_at": to_utc_z(session.expires_at),
        "capabilities": get_capabilities(user.role),
        "message": message,
    }


@auth_bp.post("/register")
def register_route():
    """
    Customer self-registration.

    Body: {email, password, name, phone?, address?}
    Returns the same shape as login. Staff and admin accounts are created
    from the CLI only.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        user, session, token = auth_service.register(
            email=data.get("email"),
            password=data.get("password"),
            name=data.get("name"),
            phone=data.get("phone"),
            address=data.get("address"),
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500

    audit_service.record(
        "CREATE",
        "users",
        user.id,
        actor=user,
        new_values={"email": user.email, "name": user.name, "role": user.role},
    )
    return jsonify(_session_payload(user, session, token, "Registration successful")), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    SECURITY:
    - Checks for lockout before attempting authentication
    - Records failed attempts for throttling
    - Records successful logins for audit trail
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    email = data.get("email")
    password = data.get("password")
    if not email or not password or not isinstance(email, str) or not isinstance(password, str):
        return jsonify({"error": "Email and password are required"}), 400

    try:
        is_locked, seconds_remaining = login_throttle_service.is_account_locked(email)
        if is_locked:
            return jsonify({
                "error": "Account temporarily locked due to too many failed login attempts",
                "locked": True,
                "retry_after_seconds": seconds_remaining,
                "retry_after_minutes": (seconds_remaining // 60) + 1,
            }), 429

        user = auth_service.authenticate(email, password)

        if not user:
            failed_count = login_throttle_service.record_failed_attempt(email)
            remaining = login_throttle_service.MAX_FAILED_ATTEMPTS - failed_count
            if remaining <= 0:
                return jsonify({
                    "error": "Account locked due to too many failed login attempts",
                    "locked": True,
                    "retry_after_minutes": int(login_throttle_service.LOCKOUT_DURATION.total_seconds() // 60),
                }), 429
            return jsonify({"error": INVALID_CREDENTIALS}), 401

        login_throttle_service.record_successful_login(user)

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        return jsonify(_session_payload(user, session, token, "Login successful")), 200

    except AuthError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/lockout-status")
def lockout_status_route():
    email = request.args.get("email", "")
    if not email:
        return jsonify({"error": "email is required"}), 400
    return jsonify(login_throttle_service.get_lockout_status(email))


@auth_bp.get("/session")
@require_auth
def session_route():
    """
    Current user and capabilities for a bearer token.

    WHY: Clients rehydrate their cached session on page load with this.
    """
    context = g.session_context
    return jsonify({
        "success": True,
        "user": g.current_user.to_dict(),
        "expires_at": to_utc_z(context.session.expires_at),
        "capabilities": get_capabilities(g.current_user.role),
    })


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the presented session token."""
    try:
        session_service.revoke_session(g.session_token, reason="User logout")
        audit_service.record("LOGOUT", "users", g.current_user.id, actor=g.current_user)
        return jsonify({"success": True, "message": "Logout successful"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def get_me_route():
    return jsonify({"success": True, "user": g.current_user.to_dict()})


@auth_bp.patch("/me")
@require_auth
def update_me_route():
    """Update name, phone and address of the current user."""
    data = request.get_json(silent=True)
    try:
        old_values, new_values = auth_service.update_profile(g.current_user, data)
    except AuthError as e:
        return jsonify({"error": str(e)}), e.status_code

    if new_values:
        audit_service.record(
            "UPDATE",
            "users",
            g.current_user.id,
            actor=g.current_user,
            old_values=old_values,
            new_values=new_values,
        )
    return jsonify({"success": True, "user": g.current_user.to_dict()})


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    """
    Change password and revoke every other session of the user.

    Body: {current_password, new_password}
    """
    data = request.get_json(silent=True) or {}
    current_password = data.get("current_password")
    new_password = data.get("new_password")
    if not current_password or not new_password:
        return jsonify({"error": "current_password and new_password are required"}), 400

    user = g.current_user
    try:
        auth_service.change_password(user, current_password, new_password)
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthError as e:
        return jsonify({"error": str(e)}), e.status_code

    revoked = session_service.revoke_all_user_sessions(
        user.id,
        reason="Password changed",
        keep_session_id=g.session_context.session.id,
    )
    audit_service.record(
        "UPDATE",
        "users",
        user.id,
        actor=user,
        new_values={"password_changed": True, "sessions_revoked": revoked},
    )
    return jsonify({"success": True, "sessions_revoked": revoked})
