# Overview: Flask API routes for sales reports; parses input and returns JSON responses.

from flask import Blueprint, request, g, jsonify, current_app

from ..services import reporting_service
from ..services.reporting_service import ReportError
from ..decorators import require_auth, require_permission


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.post("/sales")
@require_auth
@require_permission("GENERATE_REPORTS")
def generate_sales_report_route():
    """Body: {report_type: daily|weekly|monthly, start_date, end_date}"""
    data = request.get_json(silent=True) or {}
    try:
        report = reporting_service.generate_sales_report(
            report_type=data.get("report_type"),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            actor=g.current_user,
        )
    except ReportError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to generate sales report")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"success": True, "report": report.to_dict()}), 201


@reports_bp.get("/sales")
@require_auth
@require_permission("VIEW_REPORTS")
def list_sales_reports_route():
    """Newest first, 10 by default (?limit=)."""
    limit = request.args.get("limit", default=reporting_service.DEFAULT_LIST_LIMIT, type=int)
    try:
        reports = reporting_service.list_reports(limit=limit)
    except ReportError as e:
        return jsonify({"error": str(e)}), e.status_code
    return jsonify({"items": [r.to_dict() for r in reports], "count": len(reports)})


@reports_bp.get("/sales/<int:report_id>")
@require_auth
@require_permission("VIEW_REPORTS")
def get_sales_report_route(report_id: int):
    report = reporting_service.get_report(report_id)
    if report is None:
        return jsonify({"error": "Report not found"}), 404
    return jsonify(report.to_dict())
