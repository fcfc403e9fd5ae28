from __future__ import annotations

from ..extensions import db
from tarpprint.money import money_to_json
from tarpprint.time_utils import to_utc_z


class SalesReport(db.Model):
    """
    Point-in-time sales aggregate over a date range.

    Written once when generated and never recomputed; later order edits do
    not change an existing report.
    """
    __tablename__ = "sales_reports"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    report_type = db.Column(db.String(16), nullable=False)  # daily, weekly, monthly (label only)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)

    total_orders = db.Column(db.Integer, nullable=False, default=0)
    total_revenue = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_customers = db.Column(db.Integer, nullable=False, default=0)

    popular_materials = db.Column(db.JSON, nullable=False, default=list)
    payment_methods_breakdown = db.Column(db.JSON, nullable=False, default=dict)
    top_templates = db.Column(db.JSON, nullable=False, default=list)

    generated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "report_type": self.report_type,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "total_orders": self.total_orders,
            "total_revenue": money_to_json(self.total_revenue),
            "total_customers": self.total_customers,
            "popular_materials": list(self.popular_materials or []),
            "payment_methods_breakdown": dict(self.payment_methods_breakdown or {}),
            "top_templates": list(self.top_templates or []),
            "generated_by_user_id": self.generated_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
