from __future__ import annotations

from ..extensions import db
from tarpprint.money import money_to_json
from tarpprint.time_utils import to_utc_z


class OrderStatus:
    """Closed set of order lifecycle stages."""
    PENDING = "pending"
    PROCESSING = "processing"
    PRINTED = "printed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    ALL = (PENDING, PROCESSING, PRINTED, COMPLETED, CANCELLED)

    COLORS = {
        PENDING: "bg-yellow-500",
        PROCESSING: "bg-blue-500",
        PRINTED: "bg-purple-500",
        COMPLETED: "bg-green-500",
        CANCELLED: "bg-red-500",
    }

    @classmethod
    def is_valid(cls, value) -> bool:
        return isinstance(value, str) and value in cls.ALL


class Order(db.Model):
    """
    Customer print order.

    total_price is a snapshot taken at creation (material rate at order
    time, plus template surcharge). It is never recomputed on read.

    Design source is either an uploaded file (file_url/file_name) or a
    template_id, never both.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('pending', 'processing', 'printed', 'completed', 'cancelled')",
            name="ck_orders_status",
        ),
        db.CheckConstraint("quantity >= 1", name="ck_orders_quantity_positive"),
        db.Index("ix_orders_customer_created", "customer_id", "created_at"),
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number, e.g. "TP-240415-K3QZ"
    order_number = db.Column(db.String(32), nullable=False, unique=True, index=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    width_m = db.Column(db.Numeric(6, 2), nullable=False)
    height_m = db.Column(db.Numeric(6, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    material_id = db.Column(db.Integer, db.ForeignKey("materials.id"), nullable=False, index=True)
    template_id = db.Column(db.Integer, db.ForeignKey("templates.id"), nullable=True, index=True)

    design_notes = db.Column(db.Text, nullable=True)
    file_url = db.Column(db.String(512), nullable=True)
    file_name = db.Column(db.String(255), nullable=True)

    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    is_paid = db.Column(db.Boolean, nullable=False, default=False)
    payment_method = db.Column(db.String(64), nullable=True)
    payment_reference = db.Column(db.String(128), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=OrderStatus.PENDING, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("User", backref=db.backref("orders", lazy=True))
    material = db.relationship("Material")
    template = db.relationship("Template")

    def to_dict(self, include_customer: bool = True) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "width": money_to_json(self.width_m),
            "height": money_to_json(self.height_m),
            "quantity": self.quantity,
            "material_id": self.material_id,
            "material": self.material.to_dict() if self.material else None,
            "template_id": self.template_id,
            "template": self.template.to_dict() if self.template else None,
            "design_notes": self.design_notes,
            "file_url": self.file_url,
            "file_name": self.file_name,
            "total_price": money_to_json(self.total_price),
            "is_paid": self.is_paid,
            "payment_method": self.payment_method,
            "payment_reference": self.payment_reference,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_customer:
            data["customer"] = self.customer.to_dict() if self.customer else None
        return data


class OrderStatusUpdate(db.Model):
    """
    Status history row, one per transition (including creation).

    IMMUTABLE: appended, never updated.
    """
    __tablename__ = "order_status_updates"
    __table_args__ = (
        db.Index("ix_order_status_updates_order_created", "order_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    from_status = db.Column(db.String(16), nullable=True)
    to_status = db.Column(db.String(16), nullable=False)
    note = db.Column(db.Text, nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("status_updates", lazy=True, order_by="OrderStatusUpdate.id"))
    created_by = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "note": self.note,
            "created_by_user_id": self.created_by_user_id,
            "created_by_name": self.created_by.name if self.created_by else None,
            "created_at": to_utc_z(self.created_at),
        }


class OrderMessage(db.Model):
    """Conversation between the customer and the shop about one order."""
    __tablename__ = "order_messages"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    sender_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sender = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "sender_id": self.sender_id,
            "sender_name": self.sender.name if self.sender else None,
            "sender_role": self.sender.role if self.sender else None,
            "content": self.content,
            "created_at": to_utc_z(self.created_at),
        }
