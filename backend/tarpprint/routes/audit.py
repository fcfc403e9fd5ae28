# Overview: Flask API routes for the audit trail viewer; read-only.

from flask import Blueprint, request, jsonify

from ..services import audit_service
from ..services.audit_service import AuditQueryError
from ..decorators import require_auth, require_permission


audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit")


@audit_bp.get("/logs")
@require_auth
@require_permission("VIEW_AUDIT_LOG")
def get_logs_route():
    """
    Query params (all optional):
    - user_name: substring of actor name or email
    - action: CREATE, UPDATE, DELETE, LOGIN, LOGIN_FAILED, LOGOUT, PERMISSION_DENIED
    - table_name: exact table name
    - start_date, end_date: YYYY-MM-DD (end date inclusive) or ISO datetimes
    - limit: cap on returned rows; total is always the full match count
    """
    try:
        logs, total = audit_service.query_logs(
            user_name=request.args.get("user_name"),
            action=request.args.get("action"),
            table_name=request.args.get("table_name"),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            limit=request.args.get("limit", type=int),
        )
    except AuditQueryError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "success": True,
        "logs": [entry.to_dict() for entry in logs],
        "total": total,
    })
