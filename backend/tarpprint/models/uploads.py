from __future__ import annotations

from ..extensions import db
from tarpprint.time_utils import to_utc_z


class UploadedFile(db.Model):
    """Metadata for a design file stored under UPLOAD_FOLDER."""
    __tablename__ = "uploaded_files"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    # Original client filename (display only)
    file_name = db.Column(db.String(255), nullable=False)
    stored_name = db.Column(db.String(255), nullable=False, unique=True)
    file_url = db.Column(db.String(512), nullable=False)
    content_type = db.Column(db.String(128), nullable=True)
    size_bytes = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "file_name": self.file_name,
            "file_url": self.file_url,
            "content_type": self.content_type,
            "size_bytes": self.size_bytes,
            "created_at": to_utc_z(self.created_at),
        }
