from __future__ import annotations

from ..extensions import db
from tarpprint.money import money_to_json
from tarpprint.time_utils import to_utc_z


class Material(db.Model):
    """
    Printable substrate with a per-square-meter rate.

    Reference data: the ordering flow only reads it. Orders snapshot the
    computed price, so changing price_per_sqm never rewrites old orders.
    """
    __tablename__ = "materials"
    __table_args__ = (
        db.CheckConstraint("price_per_sqm > 0", name="ck_materials_price_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    price_per_sqm = db.Column(db.Numeric(12, 2), nullable=False)
    available = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price_per_sqm": money_to_json(self.price_per_sqm),
            "available": self.available,
            "created_at": to_utc_z(self.created_at),
        }


class Template(db.Model):
    """Ready-made design a customer can pick instead of uploading a file."""
    __tablename__ = "templates"
    __table_args__ = (
        db.Index("ix_templates_active_category", "is_active", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(160), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(64), nullable=False, default="Business")
    preview_url = db.Column(db.String(512), nullable=True)

    # Flat surcharge per printed unit
    price_modifier = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    rating_average = db.Column(db.Float, nullable=False, default=0.0)
    usage_count = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "preview_url": self.preview_url,
            "price_modifier": money_to_json(self.price_modifier),
            "rating_average": round(self.rating_average or 0.0, 2),
            "usage_count": self.usage_count,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
