# Overview: Service-layer operations for orders; creation, status and payment changes, history and messages.

"""
Order Lifecycle Service

WHY: Orders are the one transactional entity of the storefront. Customers
create them, staff and admins move them through the five statuses and flip
the paid flag; nobody deletes them.

DESIGN PRINCIPLES:
- Server-side integrity: the form bounds (0.5-10 m, 1-100 units) and the
  price are re-checked here, never trusted from the client
- total_price is a snapshot of the pricing function at creation time
- Status changes follow ORDER_STATUS_POLICY ("guarded" transition table by
  default, "open" for any-to-any)
- Every change appends an OrderStatusUpdate and/or an audit entry
- Last write wins for concurrent staff edits (no version column)
"""

from __future__ import annotations

import secrets
import string
from decimal import Decimal

from flask import current_app, has_app_context
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Material, Order, OrderMessage, OrderStatus, OrderStatusUpdate, Template, UploadedFile, User
from . import audit_service
from .payment_service import PAYMENT_METHODS, PaymentError, simulate_payment
from .permission_service import user_has_permission
from .pricing_service import PricingError, estimate_price, validate_order_dimensions
from tarpprint.money import money_to_json, to_decimal
from tarpprint.time_utils import utcnow


ORDER_NUMBER_PREFIX = "TP"
ORDER_NUMBER_ALPHABET = string.digits + string.ascii_uppercase
ORDER_NUMBER_ATTEMPTS = 5

PRICE_TOLERANCE = Decimal("0.01")

MAX_MESSAGE_LENGTH = 2000

CREATE_FIELDS = {
    "width",
    "height",
    "quantity",
    "material_id",
    "template_id",
    "design_notes",
    "file_url",
    "file_name",
    "total_price",
    "payment_method",
    "payment_details",
}

ORDER_SORTS = ("newest", "oldest", "price-high", "price-low")

# Guarded policy: allowed next statuses
STATUS_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.PRINTED, OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.PRINTED: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}

STATUS_POLICIES = ("guarded", "open")


class OrderError(Exception):
    """Raised for order operation errors; status_code maps to the HTTP response."""
    def __init__(self, message: str, details: dict | None = None, status_code: int = 400):
        super().__init__(message)
        self.details = details or {}
        self.status_code = status_code


# =============================================================================
# ORDER NUMBERS
# =============================================================================

def generate_order_number(now=None) -> str:
    """TP-YYMMDD-XXXX: UTC date stamp plus four random base-36 characters."""
    now = now or utcnow()
    suffix = "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(4))
    return f"{ORDER_NUMBER_PREFIX}-{now:%y%m%d}-{suffix}"


def _allocate_order_number() -> str:
    for _ in range(ORDER_NUMBER_ATTEMPTS):
        candidate = generate_order_number()
        if not db.session.query(Order.id).filter_by(order_number=candidate).first():
            return candidate
    raise OrderError("Could not allocate a unique order number", status_code=409)


# =============================================================================
# CREATION
# =============================================================================

def _optional_int(name: str, value) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise OrderError(f"{name} must be an integer", details={"field": name})
    try:
        return int(str(value).strip())
    except ValueError:
        raise OrderError(f"{name} must be an integer", details={"field": name})


def _resolve_design_file(customer: User, file_url: str | None, file_name: str | None):
    """Uploaded design must be one of the customer's own uploads."""
    if not file_url:
        return None, None
    upload = db.session.query(UploadedFile).filter_by(file_url=str(file_url).strip()).first()
    if upload is None or upload.owner_id != customer.id:
        raise OrderError("file_url does not refer to one of your uploads", details={"field": "file_url"})
    return upload.file_url, (str(file_name).strip() if file_name else upload.file_name)


def price_order(*, width, height, quantity, material_id, template_id=None, require_available=True):
    """
    Validate order dimensions and price them with current catalog rates.

    Returns (width, height, quantity, material, template, PriceEstimate).
    """
    try:
        width, height, quantity = validate_order_dimensions(width, height, quantity)
    except PricingError as e:
        raise OrderError(str(e), details=e.details)

    material_id = _optional_int("material_id", material_id)
    if material_id is None:
        raise OrderError("material_id is required", details={"field": "material_id"})
    material = db.session.get(Material, material_id)
    if material is None:
        raise OrderError("Material not found", details={"field": "material_id"}, status_code=404)
    if require_available and not material.available:
        raise OrderError("Material is not available", details={"field": "material_id"})

    template = None
    template_id = _optional_int("template_id", template_id)
    if template_id is not None:
        template = db.session.get(Template, template_id)
        if template is None or not template.is_active:
            raise OrderError("Template not found", details={"field": "template_id"}, status_code=404)

    try:
        estimate = estimate_price(
            width,
            height,
            quantity,
            material.price_per_sqm,
            template_surcharge=template.price_modifier if template else None,
        )
    except PricingError as e:
        raise OrderError(str(e), details=e.details)

    return width, height, quantity, material, template, estimate


def create_order(*, customer: User, payload: dict) -> Order:
    """
    Create a pending order for a customer.

    Args:
        customer: the authenticated customer (owner of the new order)
        payload: width, height, quantity, material_id, and optionally
            template_id, design_notes, file_url/file_name, total_price,
            payment_method (required), payment_details

    Raises:
        OrderError: validation, pricing mismatch or unknown references
    """
    if not isinstance(payload, dict):
        raise OrderError("Invalid JSON payload")

    unknown = sorted(set(payload) - CREATE_FIELDS)
    if unknown:
        raise OrderError(f"Field not allowed: {', '.join(unknown)}")

    if payload.get("file_url") and payload.get("template_id") not in (None, ""):
        raise OrderError(
            "Choose either an uploaded file or a template, not both",
            details={"fields": ["file_url", "template_id"]},
        )

    width, height, quantity, material, template, estimate = price_order(
        width=payload.get("width"),
        height=payload.get("height"),
        quantity=payload.get("quantity"),
        material_id=payload.get("material_id"),
        template_id=payload.get("template_id"),
    )

    submitted = payload.get("total_price")
    if submitted is not None:
        try:
            submitted_dec = to_decimal(submitted)
        except (ArithmeticError, TypeError, ValueError):
            raise OrderError("total_price must be a number", details={"field": "total_price"})
        if not submitted_dec.is_finite():
            raise OrderError("total_price must be a finite number", details={"field": "total_price"})
        if abs(submitted_dec - estimate.total_price) > PRICE_TOLERANCE:
            raise OrderError(
                "Submitted total_price does not match current pricing",
                details={
                    "expected": float(estimate.total_price),
                    "submitted": float(submitted_dec),
                },
                status_code=409,
            )

    file_url, file_name = _resolve_design_file(customer, payload.get("file_url"), payload.get("file_name"))

    method = payload.get("payment_method")
    if not method:
        raise OrderError("payment_method is required", details={"field": "payment_method"})
    details = payload.get("payment_details")
    if details is not None and not isinstance(details, dict):
        raise OrderError("payment_details must be an object", details={"field": "payment_details"})
    try:
        outcome = simulate_payment(method, estimate.total_price, details)
    except PaymentError as e:
        raise OrderError(str(e), details={"field": "payment_method"})

    notes = payload.get("design_notes")
    if notes is not None:
        notes = str(notes).strip() or None

    now = utcnow()
    order = Order(
        order_number=_allocate_order_number(),
        customer_id=customer.id,
        width_m=width,
        height_m=height,
        quantity=quantity,
        material_id=material.id,
        template_id=template.id if template else None,
        design_notes=notes,
        file_url=file_url,
        file_name=file_name,
        total_price=estimate.total_price,
        is_paid=outcome.is_paid,
        payment_method=outcome.method_id,
        payment_reference=outcome.reference,
        status=OrderStatus.PENDING,
        created_at=now,
        updated_at=now,
    )
    db.session.add(order)

    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise OrderError("Could not allocate a unique order number", status_code=409)

    db.session.add(OrderStatusUpdate(
        order_id=order.id,
        from_status=None,
        to_status=OrderStatus.PENDING,
        note="Order placed",
        created_by_user_id=customer.id,
        created_at=now,
    ))

    if template is not None:
        template.usage_count = (template.usage_count or 0) + 1

    audit_service.record(
        "CREATE",
        "orders",
        order.id,
        actor=customer,
        new_values={
            "order_number": order.order_number,
            "total_price": money_to_json(order.total_price),
            "status": order.status,
            "is_paid": order.is_paid,
            "payment_method": order.payment_method,
        },
        commit=False,
    )
    db.session.commit()

    if has_app_context():
        current_app.logger.info(
            "Order %s created by user_id=%s total=%s paid=%s",
            order.order_number, customer.id, order.total_price, order.is_paid,
        )
    return order


# =============================================================================
# READS
# =============================================================================

def _can_view_all(viewer: User) -> bool:
    return user_has_permission(viewer, "VIEW_ALL_ORDERS")


def list_orders(
    *,
    viewer: User,
    status: str | None = None,
    search: str | None = None,
    sort: str | None = None,
) -> list[Order]:
    """
    Customers see only their own orders; staff and admins see all.

    search matches order_number or customer name (case-insensitive).
    """
    sort = sort or "newest"
    if sort not in ORDER_SORTS:
        raise OrderError(f"sort must be one of {', '.join(ORDER_SORTS)}")

    query = db.session.query(Order)
    if not _can_view_all(viewer):
        query = query.filter(Order.customer_id == viewer.id)

    if status and status != "all":
        if not OrderStatus.is_valid(status):
            raise OrderError(f"status must be one of {', '.join(OrderStatus.ALL)}")
        query = query.filter(Order.status == status)

    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.join(User, Order.customer_id == User.id).filter(
            db.or_(
                db.func.lower(Order.order_number).like(pattern),
                db.func.lower(User.name).like(pattern),
            )
        )

    order_by = {
        "newest": (Order.created_at.desc(), Order.id.desc()),
        "oldest": (Order.created_at.asc(), Order.id.asc()),
        "price-high": (Order.total_price.desc(), Order.id.desc()),
        "price-low": (Order.total_price.asc(), Order.id.asc()),
    }[sort]
    return query.order_by(*order_by).all()


def get_order(*, viewer: User, order_id: int) -> Order:
    """
    Fetch one order the viewer may see.

    Customers asking for someone else's order get the same 404 as for a
    missing one.
    """
    order = db.session.get(Order, order_id)
    if order is None:
        raise OrderError("Order not found", status_code=404)
    if order.customer_id != viewer.id and not _can_view_all(viewer):
        raise OrderError("Order not found", status_code=404)
    return order


def list_history(order: Order) -> list[OrderStatusUpdate]:
    return (
        db.session.query(OrderStatusUpdate)
        .filter_by(order_id=order.id)
        .order_by(OrderStatusUpdate.created_at.asc(), OrderStatusUpdate.id.asc())
        .all()
    )


# =============================================================================
# MUTATIONS (staff / admin)
# =============================================================================

def _status_policy() -> str:
    policy = current_app.config.get("ORDER_STATUS_POLICY", "guarded") if has_app_context() else "guarded"
    if policy not in STATUS_POLICIES:
        raise OrderError(f"Unknown ORDER_STATUS_POLICY: {policy}", status_code=500)
    return policy


def allowed_transitions(current_status: str, policy: str | None = None) -> set[str]:
    policy = policy or _status_policy()
    if policy == "open":
        return {s for s in OrderStatus.ALL if s != current_status}
    return set(STATUS_TRANSITIONS.get(current_status, set()))


def update_status(*, order_id: int, new_status, actor: User, note: str | None = None) -> Order:
    """
    Move an order to a new status.

    Raises:
        OrderError: unknown order (404), invalid status (400), same status
            or transition not allowed by the policy (409)
    """
    if not OrderStatus.is_valid(new_status):
        raise OrderError(
            f"Invalid status. Must be one of {', '.join(OrderStatus.ALL)}",
            details={"field": "status"},
        )

    order = db.session.get(Order, order_id)
    if order is None:
        raise OrderError("Order not found", status_code=404)

    old_status = order.status
    if new_status == old_status:
        raise OrderError(f"Order is already {old_status}", status_code=409)

    allowed = allowed_transitions(old_status)
    if new_status not in allowed:
        raise OrderError(
            f"Cannot change status from {old_status} to {new_status}",
            details={"from": old_status, "to": new_status, "allowed": sorted(allowed)},
            status_code=409,
        )

    now = utcnow()
    order.status = new_status
    order.updated_at = now

    db.session.add(OrderStatusUpdate(
        order_id=order.id,
        from_status=old_status,
        to_status=new_status,
        note=(note or "").strip() or None,
        created_by_user_id=actor.id if actor else None,
        created_at=now,
    ))
    audit_service.record(
        "UPDATE",
        "orders",
        order.id,
        actor=actor,
        old_values={"status": old_status},
        new_values={"status": new_status},
        commit=False,
    )
    db.session.commit()
    return order


def update_payment(
    *,
    order_id: int,
    is_paid,
    actor: User,
    payment_method: str | None = None,
    payment_reference: str | None = None,
) -> Order:
    """
    Set the paid flag. Method and reference are kept only while paid.
    """
    if not isinstance(is_paid, bool):
        raise OrderError("is_paid must be a boolean", details={"field": "is_paid"})

    order = db.session.get(Order, order_id)
    if order is None:
        raise OrderError("Order not found", status_code=404)

    if is_paid:
        if payment_method is not None and payment_method not in PAYMENT_METHODS:
            raise OrderError(
                f"Invalid payment method: {payment_method}",
                details={"field": "payment_method"},
            )
        method = payment_method or order.payment_method
        reference = payment_reference if payment_reference is not None else order.payment_reference
        if reference is not None:
            reference = str(reference).strip()[:128] or None
    else:
        method = None
        reference = None

    old_values = {
        "is_paid": order.is_paid,
        "payment_method": order.payment_method,
        "payment_reference": order.payment_reference,
    }

    order.is_paid = is_paid
    order.payment_method = method
    order.payment_reference = reference
    order.updated_at = utcnow()

    audit_service.record(
        "UPDATE",
        "orders",
        order.id,
        actor=actor,
        old_values=old_values,
        new_values={
            "is_paid": order.is_paid,
            "payment_method": order.payment_method,
            "payment_reference": order.payment_reference,
        },
        commit=False,
    )
    db.session.commit()
    return order


# =============================================================================
# MESSAGES
# =============================================================================

def list_messages(order: Order) -> list[OrderMessage]:
    return (
        db.session.query(OrderMessage)
        .filter_by(order_id=order.id)
        .order_by(OrderMessage.created_at.asc(), OrderMessage.id.asc())
        .all()
    )


def add_message(*, order: Order, sender: User, content) -> OrderMessage:
    if not isinstance(content, str) or not content.strip():
        raise OrderError("content is required", details={"field": "content"})
    content = content.strip()
    if len(content) > MAX_MESSAGE_LENGTH:
        raise OrderError(f"content exceeds max length {MAX_MESSAGE_LENGTH}", details={"field": "content"})

    message = OrderMessage(
        order_id=order.id,
        sender_id=sender.id,
        content=content,
        created_at=utcnow(),
    )
    db.session.add(message)
    db.session.commit()
    return message
