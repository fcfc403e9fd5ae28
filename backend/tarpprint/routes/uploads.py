# Overview: Flask API routes for design file uploads; multipart in, JSON out.

from flask import Blueprint, request, g, jsonify, current_app, send_from_directory, abort

from ..services import upload_service
from ..services.upload_service import UploadError
from ..decorators import require_auth, require_permission


uploads_bp = Blueprint("uploads", __name__, url_prefix="/api/uploads")

# Public file serving lives outside /api
files_bp = Blueprint("files", __name__)


@uploads_bp.get("/constraints")
def constraints_route():
    """Server-side limits; clients must not hard-code their own."""
    return jsonify(upload_service.get_constraints())


@uploads_bp.post("")
@require_auth
@require_permission("UPLOAD_FILES")
def upload_route():
    """
    Multipart upload, field name "file".

    Returns {success, file_url, file_name, id}.
    """
    try:
        record = upload_service.save_upload(request.files.get("file"), g.current_user)
    except UploadError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to store upload")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "success": True,
        "file_url": record.file_url,
        "file_name": record.file_name,
        "id": record.id,
    }), 201


@uploads_bp.app_errorhandler(413)
def too_large(_error):
    """Body rejected by MAX_CONTENT_LENGTH before it reached the view."""
    max_mb = upload_service.get_constraints()["max_megabytes"]
    return jsonify({"error": f"File too large. Maximum size is {max_mb:g} MB"}), 413


@files_bp.get("/uploads/<path:stored_name>")
def serve_upload(stored_name: str):
    path = upload_service.get_upload_path(stored_name)
    if path is None:
        abort(404)
    return send_from_directory(path.parent, path.name)
