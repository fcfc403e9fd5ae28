from __future__ import annotations

from ..extensions import db
from tarpprint.time_utils import to_utc_z


class Review(db.Model):
    """Customer review of a completed order (one per order)."""
    __tablename__ = "reviews"
    __table_args__ = (
        db.UniqueConstraint("order_id", name="uq_reviews_order"),
        db.CheckConstraint("overall_rating BETWEEN 1 AND 5", name="ck_reviews_overall_rating"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    overall_rating = db.Column(db.Integer, nullable=False)
    quality_rating = db.Column(db.Integer, nullable=True)
    service_rating = db.Column(db.Integer, nullable=True)
    delivery_rating = db.Column(db.Integer, nullable=True)
    comment = db.Column(db.Text, nullable=True)
    photos = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("review", uselist=False))
    customer = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "overall_rating": self.overall_rating,
            "quality_rating": self.quality_rating,
            "service_rating": self.service_rating,
            "delivery_rating": self.delivery_rating,
            "comment": self.comment,
            "photos": list(self.photos or []),
            "created_at": to_utc_z(self.created_at),
        }
