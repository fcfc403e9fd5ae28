# Overview: Service-layer operations for design file uploads; validation, storage and metadata rows.

"""
Design File Uploads

Files land in UPLOAD_FOLDER as "<uuid hex>-<secure filename>" and are
served back from /uploads/<stored name>. The size and extension limits
configured here are the only ones that count; clients read them from
GET /api/uploads/constraints.
"""

from __future__ import annotations

import os
from pathlib import Path
from uuid import uuid4

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..extensions import db
from ..models import UploadedFile, User
from tarpprint.time_utils import utcnow


class UploadError(Exception):
    """Raised for rejected uploads; status_code maps to the HTTP response."""
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def get_constraints() -> dict:
    max_bytes = current_app.config["MAX_UPLOAD_BYTES"]
    return {
        "allowed_extensions": list(current_app.config["ALLOWED_UPLOAD_EXTENSIONS"]),
        "max_bytes": max_bytes,
        "max_megabytes": round(max_bytes / (1024 * 1024), 2),
    }


def _extension(filename: str) -> str:
    parts = filename.rsplit(".", 1)
    return parts[1].lower() if len(parts) == 2 else ""


def _validate_upload(uploaded: FileStorage | None) -> str:
    if uploaded is None or uploaded.filename is None or not uploaded.filename.strip():
        raise UploadError("No file uploaded")

    allowed = current_app.config["ALLOWED_UPLOAD_EXTENSIONS"]
    if _extension(uploaded.filename) not in allowed:
        raise UploadError(f"Only {', '.join(e.upper() for e in allowed)} files are allowed")

    return uploaded.filename.strip()


def _safe_filename(original: str) -> str:
    cleaned = secure_filename(original) or f"upload.{_extension(original)}"
    return f"{uuid4().hex}-{cleaned}"


def save_upload(uploaded: FileStorage | None, owner: User | None) -> UploadedFile:
    """
    Validate and store one design file.

    Raises:
        UploadError: missing file, disallowed extension, empty or too large
    """
    original = _validate_upload(uploaded)

    binary = uploaded.read()
    if not binary:
        raise UploadError("Uploaded file is empty")

    max_bytes = current_app.config["MAX_UPLOAD_BYTES"]
    if len(binary) > max_bytes:
        raise UploadError(
            f"File too large. Maximum size is {get_constraints()['max_megabytes']:g} MB",
            status_code=413,
        )

    folder = Path(current_app.config["UPLOAD_FOLDER"])
    folder.mkdir(parents=True, exist_ok=True)

    stored_name = _safe_filename(original)
    target_path = folder / stored_name
    target_path.write_bytes(binary)

    record = UploadedFile(
        owner_id=owner.id if owner else None,
        file_name=original[:255],
        stored_name=stored_name,
        file_url=f"/uploads/{stored_name}",
        content_type=uploaded.mimetype or None,
        size_bytes=len(binary),
        created_at=utcnow(),
    )
    db.session.add(record)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        # No orphaned file on disk when the metadata row fails
        os.remove(target_path)
        raise

    current_app.logger.info("Stored upload %s (%d bytes) for user_id=%s", stored_name, len(binary), record.owner_id)
    return record


def get_upload_path(stored_name: str) -> Path | None:
    """Absolute path of a stored upload, or None if it is not one of ours."""
    if secure_filename(stored_name) != stored_name:
        return None
    if not db.session.query(UploadedFile.id).filter_by(stored_name=stored_name).first():
        return None
    path = Path(current_app.config["UPLOAD_FOLDER"]) / stored_name
    return path if path.is_file() else None
